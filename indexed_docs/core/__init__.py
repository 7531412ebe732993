"""Core modules for logging."""

from . import debug

__all__ = [
    "debug",
]
