"""Response parsing logic for embedding API."""

import logging

from .errors import DimensionMismatchError, InvalidResponseError

logger = logging.getLogger(__name__)


def parse_embedding_response(response_data: dict, expected_dimension: int) -> list[float]:
    """
    Parse the API response and extract the single embedding.

    Args:
        response_data: JSON response from the API
        expected_dimension: Expected embedding dimension

    Returns:
        Embedding vector

    Raises:
        InvalidResponseError: If response format is invalid or holds no data
        DimensionMismatchError: If the vector has the wrong length
    """
    try:
        data = response_data.get("data", [])
        if not data:
            raise InvalidResponseError("No embedding data in response")

        embedding = data[0]["embedding"]
        if not isinstance(embedding, list):
            raise InvalidResponseError(
                f"Embedding must be a list, got {type(embedding).__name__}"
            )

        vector = [float(value) for value in embedding]

    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise InvalidResponseError(f"Invalid response format: {e}") from e

    if len(vector) != expected_dimension:
        raise DimensionMismatchError(
            f"Embedding dimension mismatch: expected {expected_dimension}, got {len(vector)}"
        )

    return vector
