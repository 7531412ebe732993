"""Data models for the indexed documentation system."""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class EntryKind(Enum):
    """Kinds of documentation units."""

    MODULE = "module"
    TYPE = "type"
    FUNCTION = "function"
    CONSTANT = "constant"
    TRAIT = "trait"
    OTHER = "other"


@dataclass(frozen=True)
class PackageIdentity:
    """Names one documentation source: provider, package and version."""

    provider_id: str
    name: str
    version: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.provider_id:
            raise ValueError("provider_id must not be empty")
        if not self.name:
            raise ValueError("name must not be empty")
        if self.version == "":
            # An empty version means "unversioned"
            object.__setattr__(self, "version", None)

    @property
    def key(self) -> str:
        """Render as ``provider/name@version``."""
        base = f"{self.provider_id}/{self.name}"
        if self.version:
            return f"{base}@{self.version}"
        return base

    @classmethod
    def parse(cls, key: str) -> "PackageIdentity":
        """Inverse of :attr:`key`."""
        provider_id, sep, rest = key.strip().partition("/")
        if not sep:
            raise ValueError(f"Expected 'provider/name[@version]', got: {key!r}")
        name, _, version = rest.partition("@")
        return cls(provider_id=provider_id, name=name, version=version or None)

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "provider_id": self.provider_id,
            "name": self.name,
            "version": self.version,
        }

    def __str__(self) -> str:
        return self.key


@dataclass(frozen=True)
class DocEntry:
    """One indexed documentation unit (a type, function, module...)."""

    path: Tuple[str, ...]
    kind: EntryKind
    title: str
    body: str = ""
    source_url: Optional[str] = None

    def __post_init__(self) -> None:
        # Accept any sequence for path but store a tuple
        object.__setattr__(self, "path", tuple(self.path))
        if not self.path:
            raise ValueError("DocEntry.path must not be empty")
        if not self.title:
            raise ValueError("DocEntry.title must not be empty")

    @property
    def qualified_name(self) -> str:
        return "::".join(self.path)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": list(self.path),
            "kind": self.kind.value,
            "title": self.title,
            "body": self.body,
            "source_url": self.source_url,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DocEntry":
        return cls(
            path=tuple(data["path"]),
            kind=EntryKind(data["kind"]),
            title=data["title"],
            body=data.get("body", ""),
            source_url=data.get("source_url"),
        )


@dataclass(frozen=True)
class IndexedPackage:
    """The committed entry set for one package identity."""

    identity: PackageIdentity
    entries: Tuple[DocEntry, ...]
    indexed_at: datetime
    content_hash: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "entries", tuple(self.entries))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "identity": self.identity.to_dict(),
            "indexed_at": self.indexed_at.isoformat(),
            "content_hash": self.content_hash,
            "entries": [entry.to_dict() for entry in self.entries],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "IndexedPackage":
        indexed_at = datetime.fromisoformat(data["indexed_at"])
        if indexed_at.tzinfo is None:
            # Timestamps are always written in UTC
            indexed_at = indexed_at.replace(tzinfo=timezone.utc)
        return cls(
            identity=PackageIdentity(**data["identity"]),
            entries=tuple(DocEntry.from_dict(e) for e in data["entries"]),
            indexed_at=indexed_at,
            content_hash=data["content_hash"],
        )


@dataclass(frozen=True)
class RawDocument:
    """Unparsed documentation content as returned by a provider."""

    identity: PackageIdentity
    content: bytes
    content_type: str = "application/octet-stream"
    source_url: Optional[str] = None


@dataclass(frozen=True)
class ProviderDescriptor:
    """Registry-facing description of a provider."""

    id: str
    display_name: str


@dataclass
class DocSearchResult:
    """Result from documentation search."""

    identity: PackageIdentity
    entry: DocEntry
    relevance_score: float

    def __str__(self) -> str:
        """String representation for display."""
        header = f"[{self.identity.key}] {self.entry.qualified_name}"
        if self.entry.body:
            return f"{header}\n{self.entry.body}"
        return header
