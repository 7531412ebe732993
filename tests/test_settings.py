"""Tests for indexed_docs.config.settings module."""

from datetime import timedelta

import pytest

from indexed_docs.config.settings import Settings, load_settings


class TestSettings:
    def test_defaults(self):
        settings = Settings()
        assert settings.docs_rs.enabled is True
        assert settings.docs_rs.base_url == "https://docs.rs"
        assert settings.store.max_age is None
        assert settings.search.max_results == 10

    def test_from_yaml(self, tmp_path):
        config = tmp_path / "indexed_docs.yaml"
        config.write_text(
            "store:\n"
            "  path: /tmp/docs-store\n"
            "  max_age_days: 14\n"
            "docs_rs:\n"
            "  timeout: 5\n"
            "search:\n"
            "  max_results: 3\n"
        )

        settings = Settings.from_yaml(str(config))

        assert settings.store.path == "/tmp/docs-store"
        assert settings.store.max_age == timedelta(days=14)
        assert settings.docs_rs.timeout == 5
        assert settings.docs_rs.base_url == "https://docs.rs"
        assert settings.search.max_results == 3

    def test_empty_yaml(self, tmp_path):
        config = tmp_path / "indexed_docs.yaml"
        config.write_text("")
        assert Settings.from_yaml(str(config)) == Settings()

    def test_env_expansion(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DOCS_STORE", "/data/docs")
        config = tmp_path / "indexed_docs.yaml"
        config.write_text('store:\n  path: "${DOCS_STORE}"\n')

        assert Settings.from_yaml(str(config)).store.path == "/data/docs"

    def test_unknown_key_rejected(self, tmp_path):
        config = tmp_path / "indexed_docs.yaml"
        config.write_text("store:\n  colour: blue\n")
        with pytest.raises(TypeError):
            Settings.from_yaml(str(config))

    def test_to_dict(self):
        assert Settings().to_dict()["search"] == {"max_results": 10, "max_context_tokens": 2000}


class TestLoadSettings:
    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_settings(str(tmp_path / "nope.yaml"))

    def test_loads(self, tmp_path):
        config = tmp_path / "indexed_docs.yaml"
        config.write_text("docs_rs:\n  enabled: false\n")
        assert load_settings(str(config)).docs_rs.enabled is False
