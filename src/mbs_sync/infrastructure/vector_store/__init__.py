"""
Vector Store module for MBS Vector Sync.

Provides Qdrant-based storage for MBS item embeddings and their payloads.
"""

from typing import Optional

from .base import (
    HASH_FIELD,
    LAST_CHECK_FIELD,
    IndexEntry,
    VectorStoreError,
    VectorStoreInterface,
)
from .qdrant import QdrantVectorStore, to_point_id

__all__ = [
    "HASH_FIELD",
    "LAST_CHECK_FIELD",
    "IndexEntry",
    "VectorStoreError",
    "VectorStoreInterface",
    "QdrantVectorStore",
    "create_vector_store",
    "to_point_id",
]


def create_vector_store(
    host: str = "localhost",
    port: int = 6333,
    collection_name: str = "mbs_codes",
    vector_size: int = 1536,
    api_key: Optional[str] = None,
    scroll_page_size: int = 100,
) -> VectorStoreInterface:
    """
    Factory function to create a vector store.

    Args:
        host: Qdrant server host
        port: Qdrant server port
        collection_name: Name of the collection
        vector_size: Dimension of embedding vectors
        api_key: Optional API key for authentication
        scroll_page_size: Points fetched per page when enumerating the collection

    Returns:
        Configured VectorStoreInterface instance
    """
    return QdrantVectorStore(
        host=host,
        port=port,
        collection_name=collection_name,
        vector_size=vector_size,
        api_key=api_key,
        scroll_page_size=scroll_page_size,
    )
