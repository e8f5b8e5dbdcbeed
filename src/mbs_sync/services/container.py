"""
Centralized services container module for MBS Vector Sync.

Provides a shared container for the clients and services used by both the
CLI and HTTP entry points, so neither depends on the other.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from mbs_sync.core.config import SyncAppConfig, load_config
from mbs_sync.infrastructure import (
    EmbeddingClientInterface,
    VectorStoreInterface,
    create_embedding_client,
    create_vector_store,
)
from mbs_sync.services.metrics_collector import MetricsCollector
from mbs_sync.services.sync_service import SyncService

logger = logging.getLogger(__name__)


@dataclass
class ServicesContainer:
    """
    Container holding all shared service instances.

    Attributes:
        config: Application configuration
        embedding_client: Client for generating embeddings
        vector_store: Qdrant-backed index of MBS items
        metrics_collector: In-memory metrics shared by every run
    """

    config: SyncAppConfig
    embedding_client: EmbeddingClientInterface
    vector_store: VectorStoreInterface
    metrics_collector: MetricsCollector = field(default_factory=MetricsCollector)

    def create_sync_service(
        self,
        num_workers: Optional[int] = None,
        progress_callback: Optional[Callable[[int, int, str], None]] = None,
    ) -> SyncService:
        """Build a SyncService over the shared clients."""
        return SyncService(
            embedding_client=self.embedding_client,
            vector_store=self.vector_store,
            num_workers=num_workers or self.config.sync.num_workers,
            progress_callback=progress_callback,
            metrics_collector=self.metrics_collector,
        )

    async def close(self) -> None:
        """Close both remote clients."""
        await self.embedding_client.close()
        await self.vector_store.close()


def create_services(
    config_path: Optional[Path] = None,
    config: Optional[SyncAppConfig] = None,
) -> ServicesContainer:
    """
    Create all services from configuration.

    Args:
        config_path: Optional path to configuration file. Ignored when
                    config is given.
        config: Already loaded configuration.

    Returns:
        ServicesContainer with all services created (not yet verified).

    Raises:
        ValueError: If the configuration is invalid.
    """
    config = config or load_config(config_path)
    config.validate()

    if not config.embedding.api_key:
        logger.warning("No embedding API key configured; embedding calls will be rejected")

    embedding_client = create_embedding_client(
        api_url=config.embedding.api_url,
        api_key=config.embedding.api_key,
        model=config.embedding.model,
        dimension=config.embedding.dimension,
        timeout=config.embedding.timeout,
    )

    vector_store = create_vector_store(
        host=config.vector_store.host,
        port=config.vector_store.port,
        collection_name=config.vector_store.collection_name,
        vector_size=config.vector_store.vector_size,
        api_key=config.vector_store.api_key or None,
        scroll_page_size=config.vector_store.scroll_page_size,
    )

    return ServicesContainer(
        config=config,
        embedding_client=embedding_client,
        vector_store=vector_store,
    )


async def verify_services(services: ServicesContainer) -> None:
    """
    Check connectivity to both remote services before any run.

    Raises:
        EmbeddingClientError: If the test embedding fails
        VectorStoreError: If the collection cannot be created or checked
    """
    await services.embedding_client.validate()
    logger.info("Embedding provider reachable")

    await services.vector_store.initialize()
    logger.info(f"Vector store ready: {services.config.vector_store.collection_name}")
