"""Persistent store for indexed documentation.

Each package identity is kept in its own JSON record so a corrupt or
half-written file never affects other packages. Records are replaced
atomically: the new content is written to a temporary file and renamed
over the old one.
"""

import asyncio
import hashlib
import json
import logging
import re
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Optional

import aiofiles
import aiofiles.os

from .errors import CorruptRecordError, StorageError
from .models import DocEntry, DocSearchResult, IndexedPackage, PackageIdentity

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

# Relevance tiers, highest first
EXACT_TITLE_SCORE = 1.0
PATH_SEGMENT_SCORE = 0.8
TITLE_SUBSTRING_SCORE = 0.6
PATH_SUBSTRING_SCORE = 0.4
BODY_SUBSTRING_SCORE = 0.2
TOKEN_MATCH_SCORE = 0.1

_TOKEN_SPLIT = re.compile(r"[\s:]+")


def score_entry(entry: DocEntry, query: str) -> float:
    """Score how well an entry matches a query (0 means no match).

    Exact title beats a path segment match, which beats a body match.
    """
    needle = query.strip().lower()
    if not needle:
        return 0.0

    title = entry.title.lower()
    segments = [segment.lower() for segment in entry.path]
    qualified = "::".join(segments)

    if title == needle:
        return EXACT_TITLE_SCORE
    if needle in segments or qualified == needle or qualified.endswith("::" + needle):
        return PATH_SEGMENT_SCORE
    if needle in title:
        return TITLE_SUBSTRING_SCORE
    if needle in qualified:
        return PATH_SUBSTRING_SCORE

    body = entry.body.lower()
    if needle in body:
        return BODY_SUBSTRING_SCORE

    tokens = [token for token in _TOKEN_SPLIT.split(needle) if token]
    if len(tokens) > 1 and all(
        token in title or token in qualified or token in body for token in tokens
    ):
        return TOKEN_MATCH_SCORE
    return 0.0


def _identity_order(identity: PackageIdentity) -> tuple:
    return (identity.key, identity.provider_id, identity.name, identity.version or "")


class IndexedDocsStore:
    """File-backed cache of indexed packages keyed by package identity."""

    def __init__(self, persist_directory: str = "./.indexed_docs/store"):
        self.persist_dir = Path(persist_directory)
        self.persist_dir.mkdir(parents=True, exist_ok=True)

        # Serializes writers per identity; readers never lock. Entries live
        # only while a writer holds or waits for them.
        self._write_locks: Dict[PackageIdentity, asyncio.Lock] = {}
        self._lock_users: Dict[PackageIdentity, int] = {}

    def _record_path(self, identity: PackageIdentity) -> Path:
        # identity.key is not injective ("a@1" vs name "a", version "1")
        encoded = json.dumps([identity.provider_id, identity.name, identity.version])
        digest = hashlib.sha256(encoded.encode("utf-8")).hexdigest()[:32]
        return self.persist_dir / f"{digest}.json"

    @asynccontextmanager
    async def _write_lock(self, identity: PackageIdentity) -> AsyncIterator[None]:
        lock = self._write_locks.setdefault(identity, asyncio.Lock())
        self._lock_users[identity] = self._lock_users.get(identity, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[identity] -= 1
            if not self._lock_users[identity]:
                del self._lock_users[identity]
                del self._write_locks[identity]

    def _record_paths(self) -> List[Path]:
        return sorted(self.persist_dir.glob("*.json"))

    async def _read_record(self, path: Path) -> Optional[IndexedPackage]:
        try:
            async with aiofiles.open(path, "r", encoding="utf-8") as f:
                text = await f.read()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}") from e

        try:
            record: Dict[str, Any] = json.loads(text)
            if record.get("schema_version") != SCHEMA_VERSION:
                raise ValueError(f"unsupported schema version {record.get('schema_version')!r}")
            package = IndexedPackage.from_dict(record)
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise CorruptRecordError(f"Corrupt record {path.name}: {e}") from e

        if self._record_path(package.identity) != path:
            raise CorruptRecordError(
                f"Record {path.name} holds {package.identity.key}, which belongs elsewhere",
                identity=package.identity,
            )
        return package

    async def get(self, identity: PackageIdentity) -> Optional[IndexedPackage]:
        """Return the cached package, if any. Freshness is not evaluated here."""
        try:
            package = await self._read_record(self._record_path(identity))
        except StorageError as e:
            e.identity = identity
            raise
        if package is not None and package.identity != identity:
            raise CorruptRecordError(
                f"Record for {identity.key} holds {package.identity.key}", identity=identity
            )
        return package

    async def put(self, package: IndexedPackage) -> None:
        """Atomically replace the record for ``package.identity``."""
        identity = package.identity
        path = self._record_path(identity)
        record = {"schema_version": SCHEMA_VERSION, **package.to_dict()}
        data = json.dumps(record, indent=2)

        async with self._write_lock(identity):
            tmp_path = path.with_name(f"{path.name}.{uuid.uuid4().hex}.tmp")
            try:
                async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                    await f.write(data)
                await aiofiles.os.replace(tmp_path, path)
            except OSError as e:
                await self._discard(tmp_path)
                raise StorageError(f"Failed to write {identity.key}: {e}", identity=identity) from e

        logger.info("Stored %s (%d entries)", identity.key, len(package.entries))

    async def _discard(self, path: Path) -> None:
        try:
            await aiofiles.os.remove(path)
        except OSError:
            logger.debug("Could not remove temporary file %s", path)

    async def delete(self, identity: PackageIdentity) -> None:
        """Remove the record for ``identity``; no-op if absent."""
        async with self._write_lock(identity):
            try:
                await aiofiles.os.remove(self._record_path(identity))
            except FileNotFoundError:
                return
            except OSError as e:
                raise StorageError(f"Failed to delete {identity.key}: {e}", identity=identity) from e
        logger.info("Evicted %s", identity.key)

    async def _load_all(self) -> List[IndexedPackage]:
        """Load every readable record, skipping corrupt ones."""
        packages = []
        for path in self._record_paths():
            try:
                package = await self._read_record(path)
            except CorruptRecordError as e:
                logger.warning("Skipping unreadable record: %s", e)
                continue
            if package is not None:
                packages.append(package)
        return packages

    async def list_packages(self) -> List[PackageIdentity]:
        """All cached identities, ordered by identity key."""
        packages = await self._load_all()
        return sorted((p.identity for p in packages), key=_identity_order)

    async def search(
        self,
        identity_scope: Optional[PackageIdentity],
        query: str,
        limit: Optional[int] = None,
    ) -> List[DocSearchResult]:
        """
        Search indexed documentation.

        Args:
            identity_scope: Restrict to one package (None = all packages)
            query: Case-insensitive search text
            limit: Maximum results to return (None = all)

        Returns:
            Results by descending relevance, ties broken by entry path
        """
        if not query.strip():
            return []

        if identity_scope is not None:
            package = await self.get(identity_scope)
            packages = [package] if package is not None else []
        else:
            packages = await self._load_all()

        results = []
        for package in packages:
            for entry in package.entries:
                score = score_entry(entry, query)
                if score > 0:
                    results.append(DocSearchResult(
                        identity=package.identity,
                        entry=entry,
                        relevance_score=score,
                    ))

        results.sort(key=lambda r: (-r.relevance_score, r.entry.path, _identity_order(r.identity)))
        if limit is not None:
            return results[:limit]
        return results

    async def prune(self, older_than: timedelta) -> List[PackageIdentity]:
        """Evict packages indexed longer than ``older_than`` ago."""
        cutoff = datetime.now(timezone.utc) - older_than
        evicted = []
        for package in await self._load_all():
            if package.indexed_at < cutoff:
                await self.delete(package.identity)
                evicted.append(package.identity)
        return evicted

    async def clear(self) -> int:
        """Remove every record, readable or not. Returns count removed."""
        removed = 0
        for path in list(self.persist_dir.glob("*.json")) + list(self.persist_dir.glob("*.tmp")):
            try:
                await aiofiles.os.remove(path)
                removed += 1
            except FileNotFoundError:
                continue
            except OSError as e:
                raise StorageError(f"Failed to remove {path.name}: {e}") from e
        return removed

    async def stats(self) -> Dict[str, Any]:
        """Get store status including what's indexed and when."""
        status: Dict[str, Any] = {
            "store_dir": str(self.persist_dir),
            "packages": {},
            "total_entries": 0,
            "unreadable_records": 0,
        }

        readable = 0
        for package in await self._load_all():
            readable += 1
            status["packages"][package.identity.key] = {
                "entry_count": len(package.entries),
                "indexed_at": package.indexed_at.isoformat(),
                "content_hash": package.content_hash,
            }
            status["total_entries"] += len(package.entries)

        status["unreadable_records"] = len(self._record_paths()) - readable
        return status
