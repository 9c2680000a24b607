"""
Vector Index Service

Async client for an external Qdrant vector index. The index holds a derived,
disposable projection of notes keyed by note id: it can be rebuilt from the
notes table at any time and is never authoritative.

Lifecycle (per process):

    UNCONFIGURED --initialize()--> INITIALIZING --> READY
                                               \\--> FAILED

Only READY permits indexing and search. There is no transition out of
FAILED; recovering requires a process restart.
"""

from __future__ import annotations

import enum
import logging
import math
from typing import Any, NamedTuple

import httpx
from qdrant_client import AsyncQdrantClient
from qdrant_client.http.exceptions import ApiException
from qdrant_client.models import Distance, PointIdsList, PointStruct, VectorParams

from mod_notes.core.exceptions import IndexingError, ServiceUnavailableError
from mod_notes.schemas.notes import VectorIndexStats
from mod_notes.services.embeddings import EMBEDDING_DIMENSION

logger = logging.getLogger(__name__)

# Qdrant client failures: HTTP status errors, wrapped transport errors, timeouts
QDRANT_ERRORS = (ApiException, httpx.HTTPError, ValueError)


class IndexState(str, enum.Enum):
    UNCONFIGURED = "unconfigured"
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"


class IndexHit(NamedTuple):
    """One nearest-neighbour match returned by the index."""

    id: str
    score: float
    payload: dict[str, Any]


class VectorIndexService:
    """
    Qdrant client wrapper with an explicit availability state.

    Every request carries the configured timeout. Client failures are
    translated into domain errors: ``IndexingError`` on writes,
    ``ServiceUnavailableError`` on search.

    Usage::

        index = VectorIndexService(url="http://qdrant:6333")
        await index.initialize()
        if await index.health_check():
            hits = await index.search(vector, limit=10, score_threshold=0.7)
    """

    def __init__(
        self,
        url: str | None = None,
        api_key: str | None = None,
        collection: str = "notes",
        vector_size: int = EMBEDDING_DIMENSION,
        timeout: float = 5.0,
    ) -> None:
        """
        Initialize the index wrapper (no network I/O until ``initialize``).

        Args:
            url: Qdrant base URL. None or empty leaves the index UNCONFIGURED.
            api_key: Optional Qdrant API key.
            collection: Collection holding note vectors.
            vector_size: Expected vector dimension.
            timeout: Per-request timeout in seconds.
        """
        self._url = (url or "").rstrip("/")
        self._api_key = api_key
        self._collection = collection
        self._vector_size = vector_size
        self._timeout = timeout
        self._client: AsyncQdrantClient | None = None
        self._state = IndexState.UNCONFIGURED

    @property
    def state(self) -> IndexState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state is IndexState.READY

    @property
    def collection(self) -> str:
        return self._collection

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> IndexState:
        """
        Connect and make sure the collection exists.

        Never raises: a failure leaves the service in FAILED and semantic
        search disabled for the rest of the process lifetime.
        """
        if self._state is not IndexState.UNCONFIGURED:
            return self._state

        if not self._url:
            logger.info("Qdrant URL not configured, vector search disabled")
            return self._state

        self._state = IndexState.INITIALIZING
        # The client takes whole seconds
        self._client = AsyncQdrantClient(
            url=self._url,
            api_key=self._api_key,
            timeout=max(1, math.ceil(self._timeout)),
        )

        try:
            await self._ensure_collection()
        except QDRANT_ERRORS as e:
            logger.error("Failed to initialize vector index: %s", e)
            self._state = IndexState.FAILED
            return self._state

        self._state = IndexState.READY
        logger.info("Vector index ready (collection=%s)", self._collection)
        return self._state

    async def _ensure_collection(self) -> None:
        """Create the collection (cosine distance) if it does not exist yet."""
        assert self._client is not None
        response = await self._client.get_collections()
        if any(col.name == self._collection for col in response.collections):
            return

        await self._client.create_collection(
            collection_name=self._collection,
            vectors_config=VectorParams(size=self._vector_size, distance=Distance.COSINE),
        )
        logger.info("Created collection: %s", self._collection)

    async def close(self) -> None:
        """Close the client. The state is left untouched."""
        if self._client is not None:
            await self._client.close()
            self._client = None

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def health_check(self) -> bool:
        """
        Lightweight liveness probe.

        Returns False without network I/O unless READY; otherwise lists
        collections and reports whether Qdrant answered.
        """
        if not self.is_ready or self._client is None:
            return False

        try:
            await self._client.get_collections()
        except QDRANT_ERRORS as e:
            logger.error("Vector index health check failed: %s", e)
            return False
        return True

    async def upsert(
        self,
        point_id: str,
        vector: list[float],
        payload: dict[str, Any],
    ) -> None:
        """
        Insert or replace the point for ``point_id``.

        Raises:
            IndexingError: If the index is not READY or the write fails.
        """
        if not self.is_ready or self._client is None:
            raise IndexingError(f"Vector index not ready ({self._state.value})")

        try:
            await self._client.upsert(
                collection_name=self._collection,
                points=[PointStruct(id=str(point_id), vector=vector, payload=payload)],
                wait=True,
            )
        except QDRANT_ERRORS as e:
            raise IndexingError(f"Failed to index note {point_id}: {e}") from e

        logger.info("Indexed note: %s", point_id)

    async def search(
        self,
        vector: list[float],
        limit: int = 10,
        score_threshold: float | None = None,
    ) -> list[IndexHit]:
        """
        Nearest-neighbour search with payloads, best match first.

        Raises:
            ServiceUnavailableError: If the index is not READY, times out,
                or returns an error.
        """
        if not self.is_ready or self._client is None:
            raise ServiceUnavailableError("Vector search service is not available")

        try:
            response = await self._client.query_points(
                collection_name=self._collection,
                query=vector,
                limit=limit,
                score_threshold=score_threshold,
                with_payload=True,
            )
        except QDRANT_ERRORS as e:
            logger.error("Vector search failed: %s", e)
            raise ServiceUnavailableError(f"Vector search failed: {e}") from e

        return [
            IndexHit(id=str(point.id), score=float(point.score), payload=point.payload or {})
            for point in response.points
        ]

    async def delete(self, point_id: str) -> None:
        """
        Remove the point for ``point_id``. A no-op unless READY.

        Raises:
            IndexingError: If the delete request fails.
        """
        if not self.is_ready or self._client is None:
            return

        try:
            await self._client.delete(
                collection_name=self._collection,
                points_selector=PointIdsList(points=[str(point_id)]),
                wait=True,
            )
        except QDRANT_ERRORS as e:
            raise IndexingError(f"Failed to remove note {point_id} from index: {e}") from e

        logger.info("Removed note from index: %s", point_id)

    async def get_stats(self) -> VectorIndexStats:
        """Collection statistics, or an unavailable marker. Never raises."""
        if not self.is_ready or self._client is None:
            return VectorIndexStats(
                available=False,
                status=self._state.value,
                error="Vector service not initialized",
            )

        try:
            info = await self._client.get_collection(self._collection)
        except QDRANT_ERRORS as e:
            logger.error("Failed to get vector stats: %s", e)
            return VectorIndexStats(available=False, status=self._state.value, error=str(e))

        # Newer Qdrant releases dropped vectors_count; one vector per point here
        vector_count = getattr(info, "vectors_count", None)
        if vector_count is None:
            vector_count = info.points_count
        status = getattr(info.status, "value", info.status)
        return VectorIndexStats(
            available=True,
            vector_count=vector_count,
            indexed_count=info.indexed_vectors_count,
            status=str(status) if status is not None else None,
        )
