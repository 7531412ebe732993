"""Configuration for indexed-docs."""

from .settings import DocsRsConfig, SearchConfig, Settings, StoreConfig, load_settings

__all__ = [
    "DocsRsConfig",
    "SearchConfig",
    "Settings",
    "StoreConfig",
    "load_settings",
]
