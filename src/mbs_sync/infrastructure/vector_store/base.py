"""
Vector Store base types and interfaces.

Contains abstract interface, data classes, and exceptions for vector stores.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional

# Reserved payload fields written next to the record attributes
HASH_FIELD = "_hash"
LAST_CHECK_FIELD = "_last_check"


class VectorStoreError(Exception):
    """Base exception for vector store errors."""

    pass


@dataclass
class IndexEntry:
    """The index's view of one stored item."""

    identifier: str
    payload: Dict = field(default_factory=dict)
    vector: Optional[List[float]] = None

    @property
    def fingerprint(self) -> Optional[str]:
        """Fingerprint stored by the last successful upsert, if any."""
        value = self.payload.get(HASH_FIELD)
        return value if isinstance(value, str) else None


class VectorStoreInterface(ABC):
    """Abstract interface for vector stores."""

    async def initialize(self) -> None:
        """Create the collection if needed and check its vector size."""
        return None

    @abstractmethod
    async def get_point(self, identifier: str) -> Optional[IndexEntry]:
        """
        Look up a single entry by identifier.

        Returns:
            The entry with its payload, or None if it does not exist

        Raises:
            VectorStoreError: If the lookup itself fails
        """
        pass

    @abstractmethod
    async def upsert(self, identifier: str, vector: List[float], payload: dict) -> None:
        """Insert or wholesale replace the vector and payload of an identifier."""
        pass

    @abstractmethod
    async def delete(self, identifier: str) -> None:
        """Delete the entry for an identifier. Missing identifiers are not an error."""
        pass

    @abstractmethod
    async def scroll_all(self) -> List[IndexEntry]:
        """
        Enumerate every entry in the collection, following pagination to the end.

        Vectors are not fetched. The returned list is a complete snapshot.

        Raises:
            VectorStoreError: If any page cannot be read
        """
        pass

    @abstractmethod
    async def count(self) -> int:
        """Return the number of entries in the collection."""
        pass

    async def close(self) -> None:
        """Release any held connections."""
        return None
