"""
Core Layer - MBS records, fingerprints, and configuration.
"""

from mbs_sync.core.config import (
    EmbeddingConfig,
    LoggingConfig,
    ServerConfig,
    SyncAppConfig,
    SyncConfig,
    VectorStoreConfig,
    load_config,
    setup_logging,
)
from mbs_sync.core.fingerprint import FINGERPRINT_FIELDS, compute_fingerprint
from mbs_sync.core.records import (
    BATCH_ITEMS_KEY,
    InvalidBatchError,
    MBSItem,
    load_batch_file,
    parse_batch,
)

__all__ = [
    # Records
    "MBSItem",
    "InvalidBatchError",
    "BATCH_ITEMS_KEY",
    "parse_batch",
    "load_batch_file",
    # Fingerprint
    "FINGERPRINT_FIELDS",
    "compute_fingerprint",
    # Config
    "SyncAppConfig",
    "EmbeddingConfig",
    "VectorStoreConfig",
    "SyncConfig",
    "ServerConfig",
    "LoggingConfig",
    "load_config",
    "setup_logging",
]
