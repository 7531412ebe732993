"""Project dependency detection.

Finds the crates a Rust project depends on by reading its Cargo.toml,
so the docs.rs provider can suggest packages worth indexing.
"""

import logging
import re
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

DEPENDENCY_TABLES = ("dependencies", "dev-dependencies", "build-dependencies")


@dataclass
class Dependency:
    """Represents a detected dependency."""

    name: str
    version: Optional[str] = None


class ProjectDetector:
    """Detects dependencies from a project's Cargo manifest."""

    def __init__(self, project_dir: str):
        self.project_dir = Path(project_dir)

    @property
    def manifest_path(self) -> Path:
        return self.project_dir / "Cargo.toml"

    def detect(self) -> List[Dependency]:
        """
        Detect dependencies in the project.

        Returns:
            Dependencies in manifest order, without duplicates
        """
        if not self.manifest_path.exists():
            return []

        try:
            content = self.manifest_path.read_text()
        except OSError as e:
            logger.warning("Could not read %s: %s", self.manifest_path, e)
            return []

        seen = set()
        dependencies = []
        for dep in parse_cargo_toml(content):
            if dep.name not in seen:
                seen.add(dep.name)
                dependencies.append(dep)
        return dependencies


def parse_cargo_toml(content: str) -> List[Dependency]:
    """Parse Cargo.toml content for dependencies."""
    dependencies: List[Dependency] = []

    try:
        data = tomllib.loads(content)
    except tomllib.TOMLDecodeError:
        # Fallback: regex parsing
        return _parse_cargo_toml_lines(content)

    tables: List[Dict[str, Any]] = [data.get(t, {}) for t in DEPENDENCY_TABLES]
    tables.append(data.get("workspace", {}).get("dependencies", {}))
    for target in data.get("target", {}).values():
        if isinstance(target, dict):
            tables.extend(target.get(t, {}) for t in DEPENDENCY_TABLES)

    for table in tables:
        for name, spec in table.items():
            if isinstance(spec, str):
                dependencies.append(Dependency(name=name, version=spec))
            elif isinstance(spec, dict):
                # `foo = { package = "real-name" }` renames a crate
                dependencies.append(Dependency(
                    name=spec.get("package", name),
                    version=spec.get("version"),
                ))

    return dependencies


def _parse_cargo_toml_lines(content: str) -> List[Dependency]:
    dependencies = []
    in_deps = False
    for line in content.split("\n"):
        stripped = line.strip()
        if stripped.startswith("["):
            in_deps = stripped.strip("[]") in DEPENDENCY_TABLES
            continue

        if in_deps:
            match = re.match(r'^([a-zA-Z0-9_-]+)\s*=\s*"([^"]+)"', stripped)
            if match:
                dependencies.append(Dependency(name=match.group(1), version=match.group(2)))
                continue
            match = re.match(r"^([a-zA-Z0-9_-]+)\s*=\s*\{", stripped)
            if match:
                version = re.search(r'version\s*=\s*"([^"]+)"', stripped)
                dependencies.append(Dependency(
                    name=match.group(1),
                    version=version.group(1) if version else None,
                ))

    return dependencies
