"""OpenAI-compatible embedding client implementation."""

import logging
from typing import List, Optional

import httpx

from .errors import EmbeddingRequestError, InvalidResponseError
from .interface import EmbeddingClientInterface
from .response_parser import parse_embedding_response

logger = logging.getLogger(__name__)


class OpenAIEmbeddingClient(EmbeddingClientInterface):
    """
    Embedding client for OpenAI-compatible APIs.

    Sends one text per request and makes exactly one attempt per call;
    a failed call is reported to the caller and never retried here.
    Uses connection pooling so concurrent workers share HTTP connections.
    """

    def __init__(
        self,
        api_url: str,
        api_key: str,
        model: str = "text-embedding-ada-002",
        dimension: int = 1536,
        timeout: float = 30.0,
    ):
        """
        Initialize the embedding client.

        Args:
            api_url: Full URL of the embeddings endpoint
            api_key: API key for bearer authentication
            model: Model name to use for embeddings
            dimension: Expected embedding dimension
            timeout: Request timeout in seconds
        """
        if dimension < 1:
            raise ValueError("dimension must be at least 1")

        self._api_url = api_url.rstrip("/")
        self._api_key = api_key
        self._model = model
        self._dimension = dimension
        self._timeout = timeout

        # Reused across requests
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def model(self) -> str:
        """Return the configured model name."""
        return self._model

    def get_dimension(self) -> int:
        """Return the embedding vector dimension."""
        return self._dimension

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client with connection pooling."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                limits=httpx.Limits(max_keepalive_connections=10, max_connections=20),
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client and release connections."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def embed(self, text: str) -> List[float]:
        """
        Generate the embedding for one text.

        Raises:
            EmbeddingRequestError: For transport errors and non-200 responses
            InvalidResponseError: For unparseable or empty responses
            DimensionMismatchError: If the vector has the wrong length
        """
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }
        payload = {"input": text, "model": self._model}

        client = await self._get_client()
        try:
            response = await client.post(self._api_url, headers=headers, json=payload)
        except httpx.TimeoutException as e:
            raise EmbeddingRequestError(f"Request timeout: {e}") from e
        except httpx.RequestError as e:
            raise EmbeddingRequestError(f"Request error: {e}") from e

        if response.status_code in (401, 403):
            raise EmbeddingRequestError(
                f"Authentication failed: {response.status_code} - {response.text} "
                f"(url={self._api_url}, model={self._model})"
            )
        if response.status_code != 200:
            raise EmbeddingRequestError(
                f"API error: {response.status_code} - {response.text} "
                f"(url={self._api_url}, model={self._model})"
            )

        try:
            body = response.json()
        except ValueError as e:
            raise InvalidResponseError(f"Response is not valid JSON: {e}") from e

        return parse_embedding_response(body, self._dimension)


def create_embedding_client(
    api_url: str,
    api_key: str,
    model: str = "text-embedding-ada-002",
    dimension: int = 1536,
    timeout: float = 30.0,
) -> EmbeddingClientInterface:
    """
    Factory function to create an embedding client.

    Args:
        api_url: Full URL of the embeddings endpoint
        api_key: API key for authentication
        model: Model name to use for embeddings
        dimension: Expected embedding dimension
        timeout: Request timeout in seconds

    Returns:
        Configured EmbeddingClientInterface instance
    """
    return OpenAIEmbeddingClient(
        api_url=api_url,
        api_key=api_key,
        model=model,
        dimension=dimension,
        timeout=timeout,
    )
