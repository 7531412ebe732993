"""Configuration settings for indexed-docs."""

import os
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Dict, Optional

import yaml


@dataclass
class StoreConfig:
    """Persistent store configuration."""

    path: str = "./.indexed_docs/store"
    # None keeps cached packages until explicitly refreshed or evicted
    max_age_days: Optional[int] = None

    @property
    def max_age(self) -> Optional[timedelta]:
        if self.max_age_days is None:
            return None
        return timedelta(days=self.max_age_days)


@dataclass
class DocsRsConfig:
    """docs.rs provider configuration."""

    enabled: bool = True
    base_url: str = "https://docs.rs"
    timeout: int = 30
    user_agent: str = "indexed-docs"
    # Rust project whose Cargo.toml drives package suggestions
    project_dir: Optional[str] = None


@dataclass
class SearchConfig:
    """Search and context injection limits."""

    max_results: int = 10
    max_context_tokens: int = 2000


@dataclass
class Settings:
    """Main settings configuration."""

    store: StoreConfig = field(default_factory=StoreConfig)
    docs_rs: DocsRsConfig = field(default_factory=DocsRsConfig)
    search: SearchConfig = field(default_factory=SearchConfig)

    @classmethod
    def from_yaml(cls, yaml_path: str) -> "Settings":
        """Load settings from YAML file with environment variable expansion."""
        with open(yaml_path, "r") as f:
            data = yaml.safe_load(f) or {}

        data = cls._expand_env_vars(data)

        return cls(
            store=StoreConfig(**data.get("store", {})),
            docs_rs=DocsRsConfig(**data.get("docs_rs", {})),
            search=SearchConfig(**data.get("search", {})),
        )

    @staticmethod
    def _expand_env_vars(data: Any) -> Any:
        """Recursively expand environment variables in configuration."""
        if isinstance(data, dict):
            return {k: Settings._expand_env_vars(v) for k, v in data.items()}
        elif isinstance(data, list):
            return [Settings._expand_env_vars(item) for item in data]
        elif isinstance(data, str) and data.startswith("${") and data.endswith("}"):
            env_var = data[2:-1]
            return os.environ.get(env_var, "")
        return data

    def to_dict(self) -> Dict[str, Any]:
        return {
            "store": vars(self.store).copy(),
            "docs_rs": vars(self.docs_rs).copy(),
            "search": vars(self.search).copy(),
        }


def load_settings(config_path: str = "indexed_docs.yaml") -> Settings:
    """Load settings from configuration file."""
    if not os.path.exists(config_path):
        raise FileNotFoundError(f"Configuration file not found: {config_path}")
    return Settings.from_yaml(config_path)
