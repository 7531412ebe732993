"""Exceptions raised by the indexed documentation system."""

from enum import Enum
from typing import Optional

from .models import PackageIdentity

# Bytes of raw content kept in ParseError.raw_excerpt
RAW_EXCERPT_BYTES = 2048


class IndexedDocsError(Exception):
    """Base exception for indexed documentation errors."""

    pass


class ProviderNotFound(IndexedDocsError):
    """No provider is registered under the requested id."""

    def __init__(self, provider_id: str):
        super().__init__(f"No documentation provider registered for '{provider_id}'")
        self.provider_id = provider_id


class FetchErrorReason(Enum):
    """Why a provider failed to fetch raw documentation."""

    NOT_FOUND = "not_found"
    NETWORK_ERROR = "network_error"
    RATE_LIMITED = "rate_limited"


class FetchError(IndexedDocsError):
    """Fetching raw documentation failed."""

    def __init__(
        self,
        identity: PackageIdentity,
        reason: FetchErrorReason,
        message: str = "",
        retry_after: Optional[float] = None,
    ):
        detail = f": {message}" if message else ""
        super().__init__(f"Failed to fetch {identity.key} ({reason.value}){detail}")
        self.identity = identity
        self.reason = reason
        self.retry_after = retry_after

    @property
    def is_transient(self) -> bool:
        """Network errors and rate limiting are worth retrying, not-found is not."""
        return self.reason is not FetchErrorReason.NOT_FOUND


class ParseError(IndexedDocsError):
    """Raw documentation could not be parsed.

    The raw content is kept so callers can attach it to bug reports.
    """

    def __init__(self, identity: PackageIdentity, message: str, raw: bytes = b""):
        super().__init__(f"Failed to parse documentation for {identity.key}: {message}")
        self.identity = identity
        self.raw = raw

    @property
    def raw_excerpt(self) -> str:
        excerpt = self.raw[:RAW_EXCERPT_BYTES].decode("utf-8", errors="replace")
        if len(self.raw) > RAW_EXCERPT_BYTES:
            excerpt += f"... ({len(self.raw)} bytes total)"
        return excerpt


class StorageError(IndexedDocsError):
    """The underlying persistence layer failed or returned corrupt data."""

    def __init__(self, message: str, identity: Optional[PackageIdentity] = None):
        super().__init__(message)
        self.identity = identity


class CorruptRecordError(StorageError):
    """A stored record exists but cannot be decoded or belongs to another identity.

    Re-indexing the identity replaces the record.
    """

    pass
