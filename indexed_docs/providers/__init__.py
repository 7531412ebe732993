"""Documentation providers."""

from .base import DocsProvider
from .docs_rs import DocsRsProvider

__all__ = ["DocsProvider", "DocsRsProvider"]
