"""
Configuration module for MBS Vector Sync.

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
from dotenv import load_dotenv

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
    return section_defaults.get(key, fallback)


@dataclass
class EmbeddingConfig:
    """Configuration for the embedding provider."""

    api_key: str = field(default_factory=lambda: _get_default("embedding", "api_key", ""))
    api_url: str = field(
        default_factory=lambda: _get_default(
            "embedding", "api_url", "https://api.openai.com/v1/embeddings"
        )
    )
    model: str = field(
        default_factory=lambda: _get_default("embedding", "model", "text-embedding-ada-002")
    )
    dimension: int = field(default_factory=lambda: _get_default("embedding", "dimension", 1536))
    timeout: float = field(default_factory=lambda: _get_default("embedding", "timeout", 30.0))


@dataclass
class VectorStoreConfig:
    """Configuration for the Qdrant vector store."""

    host: str = field(default_factory=lambda: _get_default("vector_store", "host", "localhost"))
    port: int = field(default_factory=lambda: _get_default("vector_store", "port", 6333))
    api_key: str = field(default_factory=lambda: _get_default("vector_store", "api_key", ""))
    collection_name: str = field(
        default_factory=lambda: _get_default("vector_store", "collection_name", "mbs_codes")
    )
    vector_size: int = field(
        default_factory=lambda: _get_default("vector_store", "vector_size", 1536)
    )
    scroll_page_size: int = field(
        default_factory=lambda: _get_default("vector_store", "scroll_page_size", 100)
    )


@dataclass
class SyncConfig:
    """Configuration for the reconciliation engine."""

    num_workers: int = field(default_factory=lambda: _get_default("sync", "num_workers", 4))


@dataclass
class ServerConfig:
    """Configuration for the HTTP server."""

    host: str = field(default_factory=lambda: _get_default("server", "host", "0.0.0.0"))
    port: int = field(default_factory=lambda: _get_default("server", "port", 8080))
    api_key: str = field(default_factory=lambda: _get_default("server", "api_key", ""))


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
class SyncAppConfig:
    """Main configuration class for MBS Vector Sync."""

    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    vector_store: VectorStoreConfig = field(default_factory=VectorStoreConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_file(cls, path: Path | str) -> "SyncAppConfig":
        """
        Load configuration from a YAML or JSON file.

        Args:
            path: Path to the configuration file (.yaml, .yml, or .json)

        Returns:
            SyncAppConfig instance with loaded values

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
    def _from_dict(cls, data: dict) -> "SyncAppConfig":
        """Create SyncAppConfig from a dictionary."""
        config = cls()

        if "embedding" in data:
            config.embedding = EmbeddingConfig(**data["embedding"])
        if "vector_store" in data:
            config.vector_store = VectorStoreConfig(**data["vector_store"])
        if "sync" in data:
            config.sync = SyncConfig(**data["sync"])
        if "server" in data:
            config.server = ServerConfig(**data["server"])
        if "logging" in data:
            config.logging = LoggingConfig(**data["logging"])

        return config

    def apply_env_overrides(self) -> "SyncAppConfig":
        """
        Apply environment variable overrides to the configuration.

        Environment variables follow the pattern: MBS_<SECTION>_<KEY>
        Examples:
            - MBS_EMBEDDING_API_KEY
            - MBS_VECTOR_STORE_HOST
            - MBS_SYNC_NUM_WORKERS
            - MBS_SERVER_API_KEY
            - MBS_LOGGING_LEVEL

        The unprefixed names used by earlier deployments (OPENAI_API_KEY,
        QDRANT_HOST, QDRANT_PORT, NUM_WORKERS, SERVER_PORT, SERVER_API_KEY)
        are honoured too; a prefixed variable wins when both are set.

        Returns:
            Self with environment overrides applied
        """
        legacy_mappings = {
            "OPENAI_API_KEY": ("embedding", "api_key", str),
            "QDRANT_HOST": ("vector_store", "host", str),
            "QDRANT_PORT": ("vector_store", "port", int),
            "NUM_WORKERS": ("sync", "num_workers", int),
            "SERVER_PORT": ("server", "port", int),
            "SERVER_API_KEY": ("server", "api_key", str),
        }
        env_mappings = {
            # Embedding config
            "MBS_EMBEDDING_API_KEY": ("embedding", "api_key", str),
            "MBS_EMBEDDING_API_URL": ("embedding", "api_url", str),
            "MBS_EMBEDDING_MODEL": ("embedding", "model", str),
            "MBS_EMBEDDING_DIMENSION": ("embedding", "dimension", int),
            "MBS_EMBEDDING_TIMEOUT": ("embedding", "timeout", float),
            # Vector store config
            "MBS_VECTOR_STORE_HOST": ("vector_store", "host", str),
            "MBS_VECTOR_STORE_PORT": ("vector_store", "port", int),
            "MBS_VECTOR_STORE_API_KEY": ("vector_store", "api_key", str),
            "MBS_VECTOR_STORE_COLLECTION_NAME": ("vector_store", "collection_name", str),
            "MBS_VECTOR_STORE_VECTOR_SIZE": ("vector_store", "vector_size", int),
            "MBS_VECTOR_STORE_SCROLL_PAGE_SIZE": ("vector_store", "scroll_page_size", int),
            # Sync config
            "MBS_SYNC_NUM_WORKERS": ("sync", "num_workers", int),
            # Server config
            "MBS_SERVER_HOST": ("server", "host", str),
            "MBS_SERVER_PORT": ("server", "port", int),
            "MBS_SERVER_API_KEY": ("server", "api_key", str),
            # Logging config
            "MBS_LOGGING_LEVEL": ("logging", "level", str),
        }

        for mappings in (legacy_mappings, env_mappings):
            for env_var, (section, key, converter) in mappings.items():
                value = os.environ.get(env_var)
                if value is None or value == "":
                    continue
                try:
                    converted = converter(value)
                except ValueError:
                    logger.warning(f"Ignoring invalid value for {env_var}: {value!r}")
                    continue
                setattr(getattr(self, section), key, converted)

        return self

    def validate(self) -> "SyncAppConfig":
        """
        Check values that would make a run impossible.

        Raises:
            ValueError: If a numeric setting is out of range
        """
        if self.sync.num_workers < 1:
            raise ValueError(f"sync.num_workers must be at least 1, got {self.sync.num_workers}")
        if self.vector_store.vector_size < 1:
            raise ValueError(
                f"vector_store.vector_size must be at least 1, got {self.vector_store.vector_size}"
            )
        if self.vector_store.scroll_page_size < 1:
            raise ValueError(
                "vector_store.scroll_page_size must be at least 1, "
                f"got {self.vector_store.scroll_page_size}"
            )
        if self.embedding.dimension != self.vector_store.vector_size:
            raise ValueError(
                f"embedding.dimension ({self.embedding.dimension}) must match "
                f"vector_store.vector_size ({self.vector_store.vector_size})"
            )
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


def load_config(
    config_path: Optional[Path | str] = None,
    apply_env: bool = True,
    load_env_file: bool = True,
) -> SyncAppConfig:
    """
    Load configuration with optional environment variable overrides.

    Args:
        config_path: Optional path to config file. If None, uses defaults.
        apply_env: Whether to apply environment variable overrides.
        load_env_file: Whether to read a .env file from the working directory
            before applying overrides. Existing variables are not replaced.

    Returns:
        SyncAppConfig instance
    """
    if config_path:
        config = SyncAppConfig.from_file(config_path)
    else:
        config = SyncAppConfig()

    if apply_env:
        if load_env_file:
            load_dotenv()
        config.apply_env_overrides()

    return config


def setup_logging(config: LoggingConfig) -> None:
    """Configure root logging from the logging section."""
    level = getattr(logging, config.level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=config.format)
    logging.getLogger().setLevel(level)
