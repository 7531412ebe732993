"""Tests for indexed_docs.detector module."""

from indexed_docs.detector import Dependency, ProjectDetector, parse_cargo_toml

CARGO_TOML = """
[package]
name = "app"
version = "0.1.0"

[dependencies]
serde = "1.0"
tokio = { version = "1.37", features = ["full"] }
json = { package = "serde_json", version = "1" }

[dev-dependencies]
serde = "1.0"
insta = "1"

[target.'cfg(unix)'.dependencies]
nix = "0.28"
"""


class TestParseCargoToml:
    def test_tables(self):
        deps = parse_cargo_toml(CARGO_TOML)
        names = [d.name for d in deps]

        assert "serde" in names
        assert "insta" in names
        assert "nix" in names
        assert Dependency(name="tokio", version="1.37") in deps

    def test_renamed_crate(self):
        names = [d.name for d in parse_cargo_toml(CARGO_TOML)]
        assert "serde_json" in names
        assert "json" not in names

    def test_workspace_dependencies(self):
        deps = parse_cargo_toml('[workspace.dependencies]\nanyhow = "1"\n')
        assert deps == [Dependency(name="anyhow", version="1")]

    def test_invalid_toml_falls_back(self):
        content = '[dependencies]\nserde = "1.0"\nbroken = = =\n'
        assert Dependency(name="serde", version="1.0") in parse_cargo_toml(content)


class TestProjectDetector:
    def test_no_manifest(self, tmp_path):
        assert ProjectDetector(str(tmp_path)).detect() == []

    def test_deduplicates(self, tmp_path):
        (tmp_path / "Cargo.toml").write_text(CARGO_TOML)

        names = [d.name for d in ProjectDetector(str(tmp_path)).detect()]

        assert names.count("serde") == 1
        assert names[0] == "serde"
