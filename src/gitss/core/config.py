"""
Configuration module for GITSS.

Supports loading from YAML/JSON files with environment variable overrides.
Default values are loaded from defaults.yaml for maintainability.
"""

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)

# Path to the default configuration file
_DEFAULTS_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"

# Cache for default values
_defaults_cache: dict[str, Any] | None = None


def _load_defaults() -> dict[str, Any]:
    """Load default configuration values from defaults.yaml."""
    global _defaults_cache

    if _defaults_cache is not None:
        return _defaults_cache

    if not _DEFAULTS_CONFIG_PATH.exists():
        logger.warning(f"Defaults config not found: {_DEFAULTS_CONFIG_PATH}")
        _defaults_cache = {}
        return _defaults_cache

    try:
        content = _DEFAULTS_CONFIG_PATH.read_text(encoding="utf-8")
        _defaults_cache = yaml.safe_load(content) or {}
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse defaults config: {e}")
        _defaults_cache = {}

    return _defaults_cache


def _get_default(section: str, key: str, fallback: Any = None) -> Any:
    """Get a default value from the defaults config."""
    defaults = _load_defaults()
    section_defaults = defaults.get(section, {})
    value = section_defaults.get(key, fallback)
    return fallback if value is None else value


@dataclass
class StoreConfig:
    """Configuration for the Qdrant document store."""

    host: str = field(default_factory=lambda: _get_default("store", "host", "localhost"))
    port: int = field(default_factory=lambda: _get_default("store", "port", 6333))
    url: Optional[str] = field(default_factory=lambda: _get_default("store", "url", None))
    api_key: Optional[str] = field(default_factory=lambda: _get_default("store", "api_key", None))
    collection_name: str = field(
        default_factory=lambda: _get_default("store", "collection_name", "gitss_files")
    )
    timeout: int = field(default_factory=lambda: _get_default("store", "timeout", 30))


@dataclass
class IndexingConfig:
    """Configuration for the indexing pipeline."""

    git_data_dir: str = field(
        default_factory=lambda: _get_default("indexing", "git_data_dir", "./data/git")
    )
    batch_size: int = field(default_factory=lambda: _get_default("indexing", "batch_size", 100))


@dataclass
class SearchConfig:
    """Configuration for the search service."""

    page_limit: int = field(default_factory=lambda: _get_default("search", "page_limit", 20))
    facet_size: int = field(default_factory=lambda: _get_default("search", "facet_size", 10))
    preview_lines: int = field(default_factory=lambda: _get_default("search", "preview_lines", 3))


@dataclass
class ServerConfig:
    """Configuration for the HTTP server."""

    host: str = field(default_factory=lambda: _get_default("server", "host", "0.0.0.0"))
    port: int = field(default_factory=lambda: _get_default("server", "port", 3000))
    debug: bool = field(default_factory=lambda: _get_default("server", "debug", False))


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = field(default_factory=lambda: _get_default("logging", "level", "INFO"))
    format: str = field(
        default_factory=lambda: _get_default(
            "logging", "format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
    )


@dataclass
class GitssConfig:
    """Main configuration class for GITSS."""

    store: StoreConfig = field(default_factory=StoreConfig)
    indexing: IndexingConfig = field(default_factory=IndexingConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_file(cls, path: Path | str) -> "GitssConfig":
        """
        Load configuration from a YAML or JSON file.

        Args:
            path: Path to the configuration file (.yaml, .yml, or .json)

        Returns:
            GitssConfig instance with loaded values

        Raises:
            FileNotFoundError: If the config file doesn't exist
            ValueError: If the file format is unsupported
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        content = path.read_text(encoding="utf-8")

        if path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(content) or {}
        elif path.suffix == ".json":
            data = json.loads(content) if content.strip() else {}
        else:
            raise ValueError(f"Unsupported config file format: {path.suffix}")

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict) -> "GitssConfig":
        """Create GitssConfig from a dictionary."""
        config = cls()

        if "store" in data:
            config.store = StoreConfig(**data["store"])
        if "indexing" in data:
            config.indexing = IndexingConfig(**data["indexing"])
        if "search" in data:
            config.search = SearchConfig(**data["search"])
        if "server" in data:
            config.server = ServerConfig(**data["server"])
        if "logging" in data:
            config.logging = LoggingConfig(**data["logging"])

        return config

    def apply_env_overrides(self) -> "GitssConfig":
        """
        Apply environment variable overrides to the configuration.

        Environment variables follow the pattern: GITSS_<SECTION>_<KEY>
        Examples:
            - GITSS_STORE_HOST
            - GITSS_INDEXING_GIT_DATA_DIR
            - GITSS_SEARCH_PAGE_LIMIT
            - GITSS_LOGGING_LEVEL

        Returns:
            Self with environment overrides applied
        """
        env_mappings = {
            # Store config
            "GITSS_STORE_HOST": ("store", "host", str),
            "GITSS_STORE_PORT": ("store", "port", int),
            "GITSS_STORE_URL": ("store", "url", str),
            "GITSS_STORE_API_KEY": ("store", "api_key", str),
            "GITSS_STORE_COLLECTION_NAME": ("store", "collection_name", str),
            "GITSS_STORE_TIMEOUT": ("store", "timeout", int),
            # Indexing config
            "GITSS_INDEXING_GIT_DATA_DIR": ("indexing", "git_data_dir", str),
            "GITSS_INDEXING_BATCH_SIZE": ("indexing", "batch_size", int),
            # Search config
            "GITSS_SEARCH_PAGE_LIMIT": ("search", "page_limit", int),
            "GITSS_SEARCH_FACET_SIZE": ("search", "facet_size", int),
            "GITSS_SEARCH_PREVIEW_LINES": ("search", "preview_lines", int),
            # Server config
            "GITSS_SERVER_HOST": ("server", "host", str),
            "GITSS_SERVER_PORT": ("server", "port", int),
            "GITSS_SERVER_DEBUG": ("server", "debug", _parse_bool),
            # Logging config
            "GITSS_LOGGING_LEVEL": ("logging", "level", str),
        }

        for env_var, (section, key, converter) in env_mappings.items():
            value = os.environ.get(env_var)
            if value is not None:
                section_obj = getattr(self, section)
                setattr(section_obj, key, converter(value))

        return self

    def to_dict(self) -> dict:
        """Convert configuration to a dictionary."""
        return asdict(self)

    def to_yaml(self) -> str:
        """Serialize configuration to YAML string."""
        return yaml.dump(self.to_dict(), default_flow_style=False, sort_keys=False)

    def to_json(self) -> str:
        """Serialize configuration to JSON string."""
        return json.dumps(self.to_dict(), indent=2)

    def save(self, path: Path | str) -> None:
        """
        Save configuration to a file.

        Args:
            path: Path to save the configuration (.yaml, .yml, or .json)

        Raises:
            ValueError: If the file format is unsupported
        """
        path = Path(path)

        if path.suffix in (".yaml", ".yml"):
            content = self.to_yaml()
        elif path.suffix == ".json":
            content = self.to_json()
        else:
            raise ValueError(f"Unsupported config file format: {path.suffix}")

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")


def _parse_bool(value: str) -> bool:
    """Parse a string to boolean."""
    return value.lower() in ("true", "1", "yes", "on")


def configure_logging(config: LoggingConfig) -> None:
    """Apply the logging section to the root logger."""
    logging.basicConfig(level=config.level.upper(), format=config.format)


def load_config(config_path: Optional[Path | str] = None, apply_env: bool = True) -> GitssConfig:
    """
    Load configuration with optional environment variable overrides.

    Args:
        config_path: Optional path to config file. If None, uses defaults.
        apply_env: Whether to apply environment variable overrides.

    Returns:
        GitssConfig instance
    """
    if config_path:
        config = GitssConfig.from_file(config_path)
    else:
        config = GitssConfig()

    if apply_env:
        config.apply_env_overrides()

    return config
