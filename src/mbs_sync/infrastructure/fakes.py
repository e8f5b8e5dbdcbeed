"""
Fake implementations for testing.

Provides in-memory implementations of infrastructure interfaces
for use in unit and integration tests without external dependencies.
"""

from __future__ import annotations

import asyncio
import hashlib
import math
from collections.abc import Callable

from mbs_sync.infrastructure.embedding import EmbeddingClientInterface, EmbeddingRequestError
from mbs_sync.infrastructure.vector_store import (
    IndexEntry,
    VectorStoreError,
    VectorStoreInterface,
)


class InMemoryVectorStore(VectorStoreInterface):
    """
    In-memory vector store for testing.

    Implements VectorStoreInterface without requiring Qdrant. Scans are
    paginated like the real adapter, and individual operations can be made
    to fail to exercise per-item and run-level error handling.
    """

    def __init__(self, vector_size: int = 1536, page_size: int = 100):
        """
        Initialize in-memory store.

        Args:
            vector_size: Expected dimension of vectors
            page_size: Entries returned per scroll page
        """
        self._vector_size = vector_size
        self._page_size = page_size
        self._points: dict[str, tuple[list[float], dict]] = {}

        # Failure injection
        self.fail_lookups: set[str] = set()
        self.fail_upserts: set[str] = set()
        self.fail_deletes: set[str] = set()
        self.fail_scroll = False

        # Call log
        self.lookup_calls: list[str] = []
        self.upsert_calls: list[str] = []
        self.delete_calls: list[str] = []
        self.scroll_pages = 0

    async def get_point(self, identifier: str) -> IndexEntry | None:
        """Look up a single entry by identifier."""
        self.lookup_calls.append(identifier)
        if identifier in self.fail_lookups:
            raise VectorStoreError(f"Injected lookup failure for '{identifier}'")

        stored = self._points.get(identifier)
        if stored is None:
            return None
        vector, payload = stored
        return IndexEntry(identifier=identifier, payload=dict(payload), vector=list(vector))

    async def upsert(self, identifier: str, vector: list[float], payload: dict) -> None:
        """Insert or replace the point for an identifier."""
        self.upsert_calls.append(identifier)
        if identifier in self.fail_upserts:
            raise VectorStoreError(f"Injected upsert failure for '{identifier}'")
        if len(vector) != self._vector_size:
            raise VectorStoreError(
                f"Vector size mismatch: expected {self._vector_size}, got {len(vector)}"
            )
        self._points[identifier] = (list(vector), dict(payload))

    async def delete(self, identifier: str) -> None:
        """Delete the point for an identifier."""
        self.delete_calls.append(identifier)
        if identifier in self.fail_deletes:
            raise VectorStoreError(f"Injected delete failure for '{identifier}'")
        self._points.pop(identifier, None)

    async def scroll_all(self) -> list[IndexEntry]:
        """Enumerate every entry page by page."""
        if self.fail_scroll:
            raise VectorStoreError("Injected scroll failure")

        identifiers = sorted(self._points)
        entries: list[IndexEntry] = []
        for start in range(0, len(identifiers), self._page_size):
            self.scroll_pages += 1
            for identifier in identifiers[start : start + self._page_size]:
                _, payload = self._points[identifier]
                entries.append(IndexEntry(identifier=identifier, payload=dict(payload)))
        return entries

    async def count(self) -> int:
        """Return the number of stored entries."""
        return len(self._points)

    def put(self, identifier: str, payload: dict, vector: list[float] | None = None) -> None:
        """Seed an entry directly, bypassing the call log."""
        self._points[identifier] = (vector or [0.0] * self._vector_size, dict(payload))

    def get_payload(self, identifier: str) -> dict | None:
        """Return the stored payload for an identifier, if any."""
        stored = self._points.get(identifier)
        return dict(stored[1]) if stored else None

    def identifiers(self) -> set[str]:
        """Return every stored identifier."""
        return set(self._points)


class LocalEmbeddingClient(EmbeddingClientInterface):
    """
    Local embedding client for testing.

    Returns deterministic pseudo-random vectors based on text hash.
    No API calls required. Tracks how many calls are in flight at once so
    tests can check the worker bound.
    """

    def __init__(
        self,
        dimension: int = 1536,
        fail_on: Callable[[str], bool] | None = None,
        delay: float = 0.0,
        output_dimension: int | None = None,
    ):
        """
        Initialize local embedding client.

        Args:
            dimension: Dimension reported by get_dimension()
            fail_on: Predicate on the input text; matching texts raise
                EmbeddingRequestError
            delay: Seconds to sleep inside each call
            output_dimension: Length of generated vectors if it should differ
                from the reported dimension
        """
        self._dimension = dimension
        self._output_dimension = output_dimension or dimension
        self._fail_on = fail_on
        self._delay = delay

        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def get_dimension(self) -> int:
        """Return the embedding vector dimension."""
        return self._dimension

    async def embed(self, text: str) -> list[float]:
        """
        Generate a deterministic embedding for a text.

        Uses SHA-256 hash of text to generate reproducible vectors.
        Same text always produces same embedding.
        """
        self.calls.append(text)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            # Always yield so concurrent workers interleave
            await asyncio.sleep(self._delay)
            if self._fail_on is not None and self._fail_on(text):
                raise EmbeddingRequestError(f"Injected embedding failure for {text!r}")
            return self._text_to_vector(text)
        finally:
            self.in_flight -= 1

    def _text_to_vector(self, text: str) -> list[float]:
        """Convert text to a deterministic unit vector."""
        text_hash = hashlib.sha256(text.encode("utf-8")).digest()

        vector = []
        hash_bytes = text_hash

        while len(vector) < self._output_dimension:
            for byte in hash_bytes:
                if len(vector) >= self._output_dimension:
                    break
                # Convert byte to float in range [-1, 1]
                vector.append((byte / 127.5) - 1.0)

            # Generate more bytes if needed
            if len(vector) < self._output_dimension:
                hash_bytes = hashlib.sha256(hash_bytes).digest()

        norm = math.sqrt(sum(v * v for v in vector))
        if norm > 0:
            vector = [v / norm for v in vector]

        return vector

