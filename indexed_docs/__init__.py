"""Indexed documentation for coding assistants.

Fetches package documentation through pluggable providers, parses it
into searchable entries and keeps them in a local store keyed by
package identity and version.

Key features:
- Provider registry with a docs.rs reference provider
- Per-package records that stay readable when a neighbour is corrupt
- Concurrent requests for the same package share one indexing run
- Token-aware context injection
"""

from dataclasses import dataclass
from typing import Optional

from .config.settings import Settings
from .coordinator import IndexingCoordinator, IndexingState, ProgressCallback
from .errors import (
    CorruptRecordError,
    FetchError,
    FetchErrorReason,
    IndexedDocsError,
    ParseError,
    ProviderNotFound,
    StorageError,
)
from .injector import ContextInjector
from .models import (
    DocEntry,
    DocSearchResult,
    EntryKind,
    IndexedPackage,
    PackageIdentity,
    ProviderDescriptor,
    RawDocument,
)
from .providers import DocsProvider, DocsRsProvider
from .registry import IndexedDocsRegistry, global_registry, init_global, shutdown_global
from .store import IndexedDocsStore

__version__ = "0.1.0"


@dataclass
class DocsIndex:
    """Everything the query surface needs, built once by :func:`init`."""

    settings: Settings
    registry: IndexedDocsRegistry
    store: IndexedDocsStore
    coordinator: IndexingCoordinator
    injector: ContextInjector

    async def aclose(self) -> None:
        """Release provider resources."""
        for provider in self.registry.providers():
            await provider.aclose()


def init(
    settings: Optional[Settings] = None,
    progress: Optional[ProgressCallback] = None,
) -> DocsIndex:
    """
    Initialize the documentation index.

    Establishes the process-wide provider registry, registers the docs.rs
    provider when enabled and wires the store and coordinator.

    Args:
        settings: Configuration (defaults when None)
        progress: Optional indexing progress callback

    Returns:
        DocsIndex to pass to every caller of the query surface
    """
    settings = settings or Settings()
    registry = init_global()

    if settings.docs_rs.enabled:
        provider = DocsRsProvider(
            base_url=settings.docs_rs.base_url,
            timeout=settings.docs_rs.timeout,
            user_agent=settings.docs_rs.user_agent,
            project_dir=settings.docs_rs.project_dir,
        )
        registry.register(provider.descriptor, provider)

    store = IndexedDocsStore(settings.store.path)
    coordinator = IndexingCoordinator(
        registry,
        store,
        max_age=settings.store.max_age,
        progress=progress,
    )
    injector = ContextInjector(
        store,
        max_context_tokens=settings.search.max_context_tokens,
        max_results=settings.search.max_results,
    )
    return DocsIndex(
        settings=settings,
        registry=registry,
        store=store,
        coordinator=coordinator,
        injector=injector,
    )


__all__ = [
    "init",
    "DocsIndex",
    # Models
    "DocEntry",
    "DocSearchResult",
    "EntryKind",
    "IndexedPackage",
    "PackageIdentity",
    "ProviderDescriptor",
    "RawDocument",
    # Errors
    "CorruptRecordError",
    "FetchError",
    "FetchErrorReason",
    "IndexedDocsError",
    "ParseError",
    "ProviderNotFound",
    "StorageError",
    # Providers
    "DocsProvider",
    "DocsRsProvider",
    # Registry
    "IndexedDocsRegistry",
    "global_registry",
    "init_global",
    "shutdown_global",
    # Store, indexing, injection
    "IndexedDocsStore",
    "IndexingCoordinator",
    "IndexingState",
    "ContextInjector",
]
