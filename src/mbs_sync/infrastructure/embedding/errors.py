"""Exception types for embedding client."""


class EmbeddingClientError(Exception):
    """Base exception for embedding client errors."""

    pass


class EmbeddingRequestError(EmbeddingClientError):
    """The provider could not be reached or answered with a non-200 status."""

    pass


class InvalidResponseError(EmbeddingClientError):
    """The provider answered 200 but the body is not a usable embedding."""

    pass


class DimensionMismatchError(InvalidResponseError):
    """The returned vector does not have the configured dimension."""

    pass
