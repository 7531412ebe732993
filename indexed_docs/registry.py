"""Registry of documentation providers.

The registry is constructed once at startup with :func:`init_global` and
passed to the components that need it. Code that cannot receive it
explicitly calls :func:`global_registry`, which treats a missing
initialization as a programming error.
"""

import logging
import threading
from typing import Dict, List, Optional, Tuple

from .errors import ProviderNotFound
from .models import ProviderDescriptor
from .providers.base import DocsProvider

logger = logging.getLogger(__name__)


class IndexedDocsRegistry:
    """Directory of available documentation providers keyed by id."""

    def __init__(self):
        self._providers: Dict[str, Tuple[ProviderDescriptor, DocsProvider]] = {}
        self._lock = threading.Lock()

    def register(self, descriptor: ProviderDescriptor, provider: DocsProvider) -> None:
        """Insert or replace the provider for ``descriptor.id`` (last write wins)."""
        if not isinstance(provider, DocsProvider):
            raise TypeError(f"{provider!r} is not a DocsProvider")
        with self._lock:
            replaced = descriptor.id in self._providers
            self._providers[descriptor.id] = (descriptor, provider)
        logger.info("%s provider '%s'", "Replaced" if replaced else "Registered", descriptor.id)

    def unregister(self, provider_id: str) -> None:
        """Remove a provider; no-op if it is not registered."""
        with self._lock:
            removed = self._providers.pop(provider_id, None)
        if removed is not None:
            logger.info("Unregistered provider '%s'", provider_id)

    def resolve(self, provider_id: str) -> DocsProvider:
        """Return the provider registered under ``provider_id``.

        Raises:
            ProviderNotFound: If no provider is registered under that id
        """
        with self._lock:
            registered = self._providers.get(provider_id)
        if registered is None:
            raise ProviderNotFound(provider_id)
        return registered[1]

    def descriptor(self, provider_id: str) -> ProviderDescriptor:
        with self._lock:
            registered = self._providers.get(provider_id)
        if registered is None:
            raise ProviderNotFound(provider_id)
        return registered[0]

    def list_providers(self) -> List[ProviderDescriptor]:
        """Registered descriptors, sorted by id."""
        with self._lock:
            descriptors = [descriptor for descriptor, _ in self._providers.values()]
        return sorted(descriptors, key=lambda d: d.id)

    def providers(self) -> List[DocsProvider]:
        with self._lock:
            return [provider for _, provider in self._providers.values()]

    def __contains__(self, provider_id: object) -> bool:
        with self._lock:
            return provider_id in self._providers


_global_registry: Optional[IndexedDocsRegistry] = None
_global_lock = threading.Lock()


def init_global() -> IndexedDocsRegistry:
    """Create the process-wide registry. Returns the existing one if already created."""
    global _global_registry
    with _global_lock:
        if _global_registry is None:
            _global_registry = IndexedDocsRegistry()
            logger.debug("Initialized global provider registry")
        return _global_registry


def global_registry() -> IndexedDocsRegistry:
    """Get the process-wide registry.

    Raises:
        RuntimeError: If init_global() has not been called
    """
    if _global_registry is None:
        raise RuntimeError("Provider registry not initialized. Call init_global() at startup.")
    return _global_registry


def shutdown_global() -> None:
    """Tear down the process-wide registry."""
    global _global_registry
    with _global_lock:
        _global_registry = None
