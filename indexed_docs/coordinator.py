"""Indexing coordinator.

Drives fetch -> parse -> store for a package and makes sure only one
indexing run per package identity is in flight at a time. Concurrent
callers for the same identity share the running task.
"""

import asyncio
import hashlib
import logging
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Dict, List, Optional

from .errors import (
    CorruptRecordError,
    FetchError,
    FetchErrorReason,
    IndexedDocsError,
    ParseError,
)
from .models import IndexedPackage, PackageIdentity
from .registry import IndexedDocsRegistry
from .store import IndexedDocsStore

logger = logging.getLogger(__name__)


class IndexingState(Enum):
    """Stages of one indexing run."""

    IDLE = "idle"
    RESOLVING = "resolving"
    FRESHNESS_CHECK = "freshness_check"
    CACHE_HIT = "cache_hit"
    FETCHING = "fetching"
    PARSING = "parsing"
    COMMITTING = "committing"
    DONE = "done"
    FAILED = "failed"


ProgressCallback = Callable[[PackageIdentity, IndexingState], None]


class IndexingCoordinator:
    """Ensures packages are indexed, coalescing concurrent requests."""

    def __init__(
        self,
        registry: IndexedDocsRegistry,
        store: IndexedDocsStore,
        max_age: Optional[timedelta] = None,
        progress: Optional[ProgressCallback] = None,
    ):
        """
        Initialize the coordinator.

        Args:
            registry: Providers to resolve package identities against
            store: Where indexed packages are committed
            max_age: Cached packages older than this are re-indexed
                (None = cached packages never expire)
            progress: Called on every state transition
        """
        self.registry = registry
        self.store = store
        self.max_age = max_age
        self.progress = progress

        self._in_flight: Dict[PackageIdentity, asyncio.Task] = {}
        self._states: Dict[PackageIdentity, IndexingState] = {}
        self._errors: Dict[PackageIdentity, IndexedDocsError] = {}

    async def ensure_indexed(
        self,
        identity: PackageIdentity,
        force_refresh: bool = False,
    ) -> IndexedPackage:
        """
        Make sure a package is indexed and return it.

        A call for an identity that is already being indexed waits for the
        running attempt, whatever its ``force_refresh`` value. Cancelling
        the caller does not cancel the shared attempt.

        Args:
            identity: Package to index
            force_refresh: Skip the cache and fetch again

        Returns:
            The committed (or cached) IndexedPackage

        Raises:
            ProviderNotFound, FetchError, ParseError, StorageError
        """
        task = self._in_flight.get(identity)
        if task is None:
            task = asyncio.get_running_loop().create_task(
                self._run(identity, force_refresh), name=f"index {identity.key}"
            )
            task.add_done_callback(_consume_result)
            self._in_flight[identity] = task
        else:
            logger.debug("Joining in-flight indexing of %s", identity.key)

        return await asyncio.shield(task)

    def is_indexing(self, identity: PackageIdentity) -> bool:
        return identity in self._in_flight

    def in_flight(self) -> List[PackageIdentity]:
        return list(self._in_flight)

    def state(self, identity: PackageIdentity) -> IndexingState:
        return self._states.get(identity, IndexingState.IDLE)

    def latest_error(self, identity: PackageIdentity) -> Optional[IndexedDocsError]:
        """Last terminal error for ``identity``; cleared by a successful run."""
        return self._errors.get(identity)

    async def _run(self, identity: PackageIdentity, force_refresh: bool) -> IndexedPackage:
        try:
            package = await self._index(identity, force_refresh)
        except IndexedDocsError as e:
            self._errors[identity] = e
            self._set_state(identity, IndexingState.FAILED)
            logger.error("Indexing %s failed: %s", identity.key, e)
            raise
        else:
            self._errors.pop(identity, None)
            return package
        finally:
            # Leave the in-flight map before waiters see the result
            if self._in_flight.get(identity) is asyncio.current_task():
                del self._in_flight[identity]
            self._states.pop(identity, None)

    async def _index(self, identity: PackageIdentity, force_refresh: bool) -> IndexedPackage:
        self._set_state(identity, IndexingState.RESOLVING)
        provider = self.registry.resolve(identity.provider_id)

        self._set_state(identity, IndexingState.FRESHNESS_CHECK)
        if not force_refresh:
            cached = await self._cached(identity)
            if cached is not None and self._is_fresh(cached):
                self._set_state(identity, IndexingState.CACHE_HIT)
                logger.debug("Cache hit for %s", identity.key)
                return cached

        self._set_state(identity, IndexingState.FETCHING)
        logger.info("Fetching documentation for %s", identity.key)
        try:
            raw = await provider.fetch_raw(identity)
        except FetchError:
            raise
        except Exception as e:
            raise FetchError(identity, FetchErrorReason.NETWORK_ERROR, repr(e)) from e

        self._set_state(identity, IndexingState.PARSING)
        try:
            entries = provider.parse(raw)
        except ParseError:
            raise
        except Exception as e:
            raise ParseError(identity, repr(e), raw.content) from e

        self._set_state(identity, IndexingState.COMMITTING)
        package = IndexedPackage(
            identity=identity,
            entries=tuple(entries),
            indexed_at=datetime.now(timezone.utc),
            content_hash=hashlib.sha256(raw.content).hexdigest(),
        )
        await self.store.put(package)

        self._set_state(identity, IndexingState.DONE)
        logger.info("Indexed %s: %d entries", identity.key, len(package.entries))
        return package

    async def _cached(self, identity: PackageIdentity) -> Optional[IndexedPackage]:
        try:
            return await self.store.get(identity)
        except CorruptRecordError as e:
            # Re-indexing overwrites the corrupt record; I/O failures propagate
            logger.warning("Cached record for %s is corrupt, re-indexing: %s", identity.key, e)
            return None

    def _is_fresh(self, package: IndexedPackage) -> bool:
        if self.max_age is None:
            return True
        return datetime.now(timezone.utc) - package.indexed_at < self.max_age

    def _set_state(self, identity: PackageIdentity, state: IndexingState) -> None:
        self._states[identity] = state
        if self.progress is None:
            return
        try:
            self.progress(identity, state)
        except Exception:
            logger.exception("Progress callback failed for %s", identity.key)


def _consume_result(task: asyncio.Task) -> None:
    # Every waiter may have been cancelled; mark the outcome as retrieved
    if not task.cancelled():
        task.exception()
