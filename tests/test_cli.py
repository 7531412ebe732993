"""Tests for the indexed-docs CLI."""

import asyncio
import json
from unittest.mock import AsyncMock, patch

import pytest
from typer.testing import CliRunner

from conftest import make_package
from indexed_docs.cli import app, parse_package
from indexed_docs.errors import FetchError, FetchErrorReason
from indexed_docs.models import DocEntry, EntryKind, PackageIdentity, RawDocument
from indexed_docs.providers.docs_rs import JSON_CONTENT_TYPE, DocsRsProvider
from indexed_docs.store import IndexedDocsStore

SERDE = PackageIdentity("docs.rs", "serde", "1.0.0")

RUSTDOC_JSON = {
    "index": {"1": {"docs": "A data structure that can be serialized."}},
    "paths": {
        "0": {"crate_id": 0, "path": ["serde"], "kind": "module"},
        "1": {"crate_id": 0, "path": ["serde", "Serialize"], "kind": "trait"},
    },
}

runner = CliRunner()


@pytest.fixture
def store_dir(tmp_path):
    return tmp_path / "store"


@pytest.fixture
def config(tmp_path, store_dir):
    path = tmp_path / "indexed_docs.yaml"
    path.write_text(f"store:\n  path: {store_dir}\n")
    return str(path)


@pytest.fixture
def populated(store_dir):
    store = IndexedDocsStore(str(store_dir))
    asyncio.run(store.put(make_package(SERDE, [
        DocEntry(
            path=("serde", "Serialize"),
            kind=EntryKind.TRAIT,
            title="Serialize",
            body="A data structure that can be serialized.",
        ),
    ])))
    return store


class TestParsePackage:
    def test_bare_name(self):
        assert parse_package("serde", "docs.rs") == PackageIdentity("docs.rs", "serde")

    def test_bare_name_with_version(self):
        assert parse_package("serde@1.0.0", "docs.rs") == SERDE

    def test_full_key(self):
        assert parse_package("other/serde@1.0.0", "docs.rs") == PackageIdentity("other", "serde", "1.0.0")


class TestCommands:
    def test_missing_config(self, tmp_path):
        result = runner.invoke(app, ["--config", str(tmp_path / "nope.yaml"), "list"])
        assert result.exit_code == 1

    def test_providers(self, config):
        result = runner.invoke(app, ["--config", config, "providers"])
        assert result.exit_code == 0
        assert "docs.rs" in result.output

    def test_index(self, config, store_dir):
        raw = RawDocument(SERDE, json.dumps(RUSTDOC_JSON).encode(), JSON_CONTENT_TYPE)

        with patch.object(DocsRsProvider, "fetch_raw", new=AsyncMock(return_value=raw)):
            result = runner.invoke(app, ["--config", config, "index", "serde@1.0.0"])

        assert result.exit_code == 0, result.output
        assert "2 entries" in result.output
        stored = asyncio.run(IndexedDocsStore(str(store_dir)).get(SERDE))
        assert [e.title for e in stored.entries] == ["serde", "Serialize"]

    def test_index_failure(self, config):
        error = FetchError(SERDE, FetchErrorReason.NOT_FOUND, "missing")

        with patch.object(DocsRsProvider, "fetch_raw", new=AsyncMock(side_effect=error)):
            result = runner.invoke(app, ["--config", config, "index", "serde@1.0.0"])

        assert result.exit_code == 1
        assert "Failed to fetch" in result.output

    def test_list(self, config, populated):
        result = runner.invoke(app, ["--config", config, "list"])
        assert result.exit_code == 0
        assert SERDE.key in result.output

    def test_list_empty(self, config):
        result = runner.invoke(app, ["--config", config, "list"])
        assert result.exit_code == 0
        assert "No packages indexed yet" in result.output

    def test_search_context(self, config, populated):
        result = runner.invoke(app, ["--config", config, "search", "serialize", "--context"])
        assert result.exit_code == 0
        assert "serde::Serialize" in result.output

    def test_search_no_results(self, config, populated):
        result = runner.invoke(app, ["--config", config, "search", "tokio"])
        assert result.exit_code == 0
        assert "No matching documentation" in result.output

    def test_show(self, config, populated):
        result = runner.invoke(app, ["--config", config, "show", "serde@1.0.0"])
        assert result.exit_code == 0
        assert "serde::Serialize" in result.output

    def test_show_missing(self, config):
        result = runner.invoke(app, ["--config", config, "show", "serde@1.0.0"])
        assert result.exit_code == 1

    def test_evict(self, config, populated):
        result = runner.invoke(app, ["--config", config, "evict", "serde@1.0.0"])

        assert result.exit_code == 0
        assert asyncio.run(populated.get(SERDE)) is None

    def test_evict_all(self, config, populated):
        result = runner.invoke(app, ["--config", config, "evict", "--all"])

        assert result.exit_code == 0
        assert asyncio.run(populated.list_packages()) == []

    def test_suggest(self, tmp_path, store_dir):
        project = tmp_path / "project"
        project.mkdir()
        (project / "Cargo.toml").write_text('[dependencies]\nserde = "1.0"\n')
        config = tmp_path / "suggest.yaml"
        config.write_text(f"store:\n  path: {store_dir}\ndocs_rs:\n  project_dir: {project}\n")

        result = runner.invoke(app, ["--config", str(config), "suggest"])

        assert result.exit_code == 0
        assert "docs.rs/serde" in result.output

    def test_evict_requires_target(self, config):
        result = runner.invoke(app, ["--config", config, "evict"])
        assert result.exit_code == 1
