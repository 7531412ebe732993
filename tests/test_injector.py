"""Tests for indexed_docs.injector module."""

import asyncio

from conftest import make_package
from indexed_docs.injector import ContextInjector
from indexed_docs.models import DocEntry, DocSearchResult, EntryKind, PackageIdentity

SERDE = PackageIdentity("docs.rs", "serde", "1.0.0")


def result(title, body="", score=1.0):
    entry = DocEntry(path=("serde", title), kind=EntryKind.TRAIT, title=title, body=body)
    return DocSearchResult(identity=SERDE, entry=entry, relevance_score=score)


class TestFormatContext:
    def test_empty(self, store):
        assert ContextInjector(store).format_context([]) == ""

    def test_includes_header_and_entries(self, store):
        text = ContextInjector(store).format_context([
            result("Serialize", "A data structure that can be serialized."),
        ])

        assert text.startswith("## Relevant Documentation")
        assert "### serde::Serialize (trait, docs.rs/serde@1.0.0)" in text
        assert "A data structure that can be serialized." in text

    def test_respects_token_budget(self, store):
        injector = ContextInjector(store, max_context_tokens=100)
        text = injector.format_context([result(f"Item{i}", "x" * 1000) for i in range(5)])

        assert len(text) <= 100 * injector.chars_per_token
        assert "..." in text


class TestGetRelevantContext:
    def test_queries_store(self, store):
        asyncio.run(store.put(make_package(SERDE, [
            DocEntry(path=("serde", "Serialize"), kind=EntryKind.TRAIT, title="Serialize",
                     body="Serialize a value."),
        ])))

        text = asyncio.run(ContextInjector(store).get_relevant_context("serialize"))

        assert "serde::Serialize" in text

    def test_no_results(self, store):
        assert asyncio.run(ContextInjector(store).get_relevant_context("anything")) == ""
