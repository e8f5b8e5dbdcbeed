"""
Infrastructure Layer - Embedding client and vector store implementations.
"""

from mbs_sync.infrastructure.embedding import (
    DimensionMismatchError,
    EmbeddingClientError,
    EmbeddingClientInterface,
    EmbeddingRequestError,
    InvalidResponseError,
    OpenAIEmbeddingClient,
    create_embedding_client,
)
from mbs_sync.infrastructure.fakes import InMemoryVectorStore, LocalEmbeddingClient
from mbs_sync.infrastructure.vector_store import (
    HASH_FIELD,
    LAST_CHECK_FIELD,
    IndexEntry,
    QdrantVectorStore,
    VectorStoreError,
    VectorStoreInterface,
    create_vector_store,
)

__all__ = [
    # Embedding client
    "EmbeddingClientInterface",
    "OpenAIEmbeddingClient",
    "EmbeddingClientError",
    "EmbeddingRequestError",
    "InvalidResponseError",
    "DimensionMismatchError",
    "create_embedding_client",
    # Vector store
    "VectorStoreInterface",
    "QdrantVectorStore",
    "IndexEntry",
    "VectorStoreError",
    "HASH_FIELD",
    "LAST_CHECK_FIELD",
    "create_vector_store",
    # Fakes for testing
    "InMemoryVectorStore",
    "LocalEmbeddingClient",
]
