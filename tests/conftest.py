"""Shared fixtures for indexed_docs tests."""

import asyncio
import json
from datetime import datetime, timezone
from typing import List, Optional

import pytest

from indexed_docs.errors import FetchError, FetchErrorReason, ParseError
from indexed_docs.models import (
    DocEntry,
    EntryKind,
    IndexedPackage,
    PackageIdentity,
    RawDocument,
)
from indexed_docs.providers.base import DocsProvider
from indexed_docs.registry import IndexedDocsRegistry, shutdown_global
from indexed_docs.store import IndexedDocsStore


class FakeProvider(DocsProvider):
    """Provider serving canned JSON documents.

    Each fetch returns the next document in ``documents`` (the last one
    repeats). Documents are lists of entry dicts.
    """

    def __init__(
        self,
        documents: Optional[List[list]] = None,
        provider_id: str = "fake",
        delay: float = 0.0,
        fetch_error: Optional[FetchErrorReason] = None,
    ):
        super().__init__(provider_id, "Fake Provider")
        self.documents = documents or [[
            {"path": ["demo"], "kind": "module", "title": "demo", "body": "Demo crate"},
        ]]
        self.delay = delay
        self.fetch_error = fetch_error
        self.fetch_calls = 0
        self.parse_calls = 0

    async def fetch_raw(self, identity: PackageIdentity) -> RawDocument:
        self.fetch_calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fetch_error is not None:
            raise FetchError(identity, self.fetch_error, "canned failure")
        document = self.documents[min(self.fetch_calls, len(self.documents)) - 1]
        content = document if isinstance(document, bytes) else json.dumps(document).encode()
        return RawDocument(identity=identity, content=content, content_type="application/json")

    def parse(self, raw: RawDocument) -> List[DocEntry]:
        self.parse_calls += 1
        try:
            items = json.loads(raw.content)
        except ValueError as e:
            raise ParseError(raw.identity, str(e), raw.content) from e
        return [DocEntry.from_dict(item) for item in items]


def make_package(
    identity: PackageIdentity,
    entries: List[DocEntry],
    indexed_at: Optional[datetime] = None,
) -> IndexedPackage:
    return IndexedPackage(
        identity=identity,
        entries=tuple(entries),
        indexed_at=indexed_at or datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
        content_hash="0" * 64,
    )


@pytest.fixture(autouse=True)
def reset_global_registry():
    """Every test starts without a process-wide registry."""
    shutdown_global()
    yield
    shutdown_global()


@pytest.fixture
def store(tmp_path):
    """Store in a temp directory."""
    return IndexedDocsStore(str(tmp_path / "store"))


@pytest.fixture
def registry():
    return IndexedDocsRegistry()


@pytest.fixture
def fake_provider(registry):
    """FakeProvider registered under 'fake'."""
    provider = FakeProvider()
    registry.register(provider.descriptor, provider)
    return provider


@pytest.fixture
def widget_entries():
    return [
        DocEntry(path=("mod", "Widget"), kind=EntryKind.TYPE, title="Widget"),
        DocEntry(
            path=("mod",),
            kind=EntryKind.MODULE,
            title="Other",
            body="contains Widget here",
        ),
    ]
