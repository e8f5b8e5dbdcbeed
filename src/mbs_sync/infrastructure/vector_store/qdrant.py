"""
Qdrant-based vector store implementation.

Stores MBS item embeddings with their full record payload.
"""

import logging
import uuid
from typing import List, Optional, Union

from qdrant_client import AsyncQdrantClient, models
from qdrant_client.http.exceptions import UnexpectedResponse

from .base import HASH_FIELD, LAST_CHECK_FIELD, IndexEntry, VectorStoreError, VectorStoreInterface

logger = logging.getLogger(__name__)

# Namespace for identifiers that are not valid unsigned point ids
POINT_ID_NAMESPACE = uuid.UUID("6f1c3b9e-2d4a-5e8f-9b7c-0a1d2e3f4a5b")

# Payload key holding the source identifier
IDENTIFIER_FIELD = "item_num"

_MAX_UNSIGNED_ID = 2**64


def to_point_id(identifier: str) -> Union[int, str]:
    """
    Map an item identifier to a Qdrant point id.

    Canonical decimal identifiers (no sign, no leading zeros) become unsigned
    integer ids; anything else, including "0123", becomes a deterministic
    UUIDv5 string. Distinct identifiers therefore never share a point.
    """
    if identifier.isascii() and identifier.isdigit():
        value = int(identifier)
        if value < _MAX_UNSIGNED_ID and str(value) == identifier:
            return value
    return str(uuid.uuid5(POINT_ID_NAMESPACE, identifier))


def _identifier_from_point(point_id: Union[int, str], payload: dict) -> str:
    identifier = payload.get(IDENTIFIER_FIELD)
    if isinstance(identifier, str) and identifier:
        return identifier
    return str(point_id)


class QdrantVectorStore(VectorStoreInterface):
    """
    Qdrant-based vector store implementation.

    Points are keyed by item identifier and carry every record field plus
    the reserved fingerprint and last-check fields in their payload.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6333,
        collection_name: str = "mbs_codes",
        vector_size: int = 1536,
        api_key: Optional[str] = None,
        scroll_page_size: int = 100,
    ):
        if scroll_page_size < 1:
            raise ValueError("scroll_page_size must be at least 1")

        self._host = host
        self._port = port
        self._collection_name = collection_name
        self._vector_size = vector_size
        self._api_key = api_key or None
        self._scroll_page_size = scroll_page_size
        self._client: Optional[AsyncQdrantClient] = None
        self._initialized = False

    async def _get_client(self) -> AsyncQdrantClient:
        """Get or create the Qdrant client."""
        if self._client is None:
            self._client = AsyncQdrantClient(
                host=self._host,
                port=self._port,
                api_key=self._api_key,
            )
        return self._client

    def get_collection_name(self) -> str:
        """Get the current collection name."""
        return self._collection_name

    async def initialize(self) -> None:
        """Create the collection if it doesn't exist and check its vector size."""
        if self._initialized:
            return

        client = await self._get_client()

        try:
            collections = await client.get_collections()
            exists = any(c.name == self._collection_name for c in collections.collections)

            if not exists:
                await client.create_collection(
                    collection_name=self._collection_name,
                    vectors_config=models.VectorParams(
                        size=self._vector_size,
                        distance=models.Distance.COSINE,
                    ),
                )
                logger.info(f"Created collection: {self._collection_name}")

                await client.create_payload_index(
                    collection_name=self._collection_name,
                    field_name=IDENTIFIER_FIELD,
                    field_schema=models.PayloadSchemaType.KEYWORD,
                )
                await client.create_payload_index(
                    collection_name=self._collection_name,
                    field_name="category",
                    field_schema=models.PayloadSchemaType.KEYWORD,
                )
                logger.info("Created payload indexes")
            else:
                collection_info = await client.get_collection(self._collection_name)
                existing_params = collection_info.config.params if collection_info.config else None
                existing_param_size = (
                    existing_params.vectors.size
                    if existing_params and isinstance(existing_params.vectors, models.VectorParams)
                    else None
                )
                if existing_param_size and existing_param_size != self._vector_size:
                    raise VectorStoreError(
                        f"Existing collection '{self._collection_name}' has vector size "
                        f"{existing_param_size}, but config requested {self._vector_size}."
                    )

            self._initialized = True

        except VectorStoreError:
            raise
        except Exception as e:
            raise VectorStoreError(f"Failed to initialize collection: {e}") from e

    async def get_point(self, identifier: str) -> Optional[IndexEntry]:
        """Look up a single entry by identifier."""
        await self.initialize()
        client = await self._get_client()

        try:
            results = await client.retrieve(
                collection_name=self._collection_name,
                ids=[to_point_id(identifier)],
                with_payload=True,
                with_vectors=False,
            )
        except UnexpectedResponse as e:
            if e.status_code == 404:
                return None
            raise VectorStoreError(f"Failed to get point '{identifier}': {e}") from e
        except Exception as e:
            raise VectorStoreError(f"Failed to get point '{identifier}': {e}") from e

        if not results:
            return None

        point = results[0]
        return IndexEntry(identifier=identifier, payload=dict(point.payload or {}))

    async def upsert(self, identifier: str, vector: List[float], payload: dict) -> None:
        """Insert or replace the point for an identifier."""
        await self.initialize()
        client = await self._get_client()

        if IDENTIFIER_FIELD not in payload:
            payload = {**payload, IDENTIFIER_FIELD: identifier}

        try:
            await client.upsert(
                collection_name=self._collection_name,
                points=[
                    models.PointStruct(id=to_point_id(identifier), vector=vector, payload=payload)
                ],
                wait=True,
            )
        except Exception as e:
            raise VectorStoreError(f"Failed to upsert point '{identifier}': {e}") from e

    async def delete(self, identifier: str) -> None:
        """Delete the point for an identifier."""
        await self.initialize()
        client = await self._get_client()

        try:
            await client.delete(
                collection_name=self._collection_name,
                points_selector=models.PointIdsList(points=[to_point_id(identifier)]),
                wait=True,
            )
        except Exception as e:
            raise VectorStoreError(f"Failed to delete point '{identifier}': {e}") from e

    async def scroll_all(self) -> List[IndexEntry]:
        """Enumerate every point, following next_page_offset until exhausted."""
        await self.initialize()
        client = await self._get_client()

        entries: List[IndexEntry] = []
        offset = None
        pages = 0
        try:
            while True:
                records, offset = await client.scroll(
                    collection_name=self._collection_name,
                    limit=self._scroll_page_size,
                    offset=offset,
                    with_payload=[HASH_FIELD, LAST_CHECK_FIELD, IDENTIFIER_FIELD],
                    with_vectors=False,
                )
                pages += 1
                for record in records:
                    payload = dict(record.payload or {})
                    entries.append(
                        IndexEntry(
                            identifier=_identifier_from_point(record.id, payload),
                            payload=payload,
                        )
                    )
                if offset is None:
                    break
        except Exception as e:
            raise VectorStoreError(f"Failed to scroll collection: {e}") from e

        logger.debug(
            f"Scrolled {len(entries)} points in {pages} pages",
            extra={"collection": self._collection_name},
        )
        return entries

    async def count(self) -> int:
        """Return the exact number of points in the collection."""
        await self.initialize()
        client = await self._get_client()

        try:
            result = await client.count(collection_name=self._collection_name, exact=True)
            return result.count
        except Exception as e:
            raise VectorStoreError(f"Failed to count points: {e}") from e

    async def close(self) -> None:
        """Close the client connection."""
        if self._client:
            await self._client.close()
            self._client = None
            self._initialized = False
