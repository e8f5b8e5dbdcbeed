"""Abstract interface for embedding clients."""

from abc import ABC, abstractmethod


class EmbeddingClientInterface(ABC):
    """Abstract interface for embedding clients."""

    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        """
        Generate the embedding for a single text.

        Args:
            text: Text to embed

        Returns:
            Embedding vector of length get_dimension()

        Raises:
            EmbeddingClientError: If the provider call fails
        """
        pass

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the embedding vector dimension."""
        pass

    async def validate(self) -> None:
        """
        Check connectivity and credentials with one test embedding.

        Raises:
            EmbeddingClientError: If the test embedding fails
        """
        await self.embed("test")

    async def close(self) -> None:
        """Release any held connections."""
        return None
