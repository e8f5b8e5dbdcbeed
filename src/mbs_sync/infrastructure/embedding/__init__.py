"""
Embedding client module for MBS Vector Sync.

Provides an async HTTP client that turns item descriptions into vectors,
one text per provider call.
"""

from .client import OpenAIEmbeddingClient, create_embedding_client
from .errors import (
    DimensionMismatchError,
    EmbeddingClientError,
    EmbeddingRequestError,
    InvalidResponseError,
)
from .interface import EmbeddingClientInterface
from .response_parser import parse_embedding_response

__all__ = [
    "EmbeddingClientInterface",
    "OpenAIEmbeddingClient",
    "create_embedding_client",
    "EmbeddingClientError",
    "EmbeddingRequestError",
    "InvalidResponseError",
    "DimensionMismatchError",
    "parse_embedding_response",
]
