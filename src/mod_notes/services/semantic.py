"""
Semantic Search Strategy

Embeds the query, asks the vector index for its nearest neighbours and
projects the hits into SearchResults. Ordering and scores come straight
from the index; nothing is re-ranked locally.
"""

from __future__ import annotations

import logging

import pydantic

from mod_notes.core.exceptions import (
    IndexingError,
    ServiceUnavailableError,
    ValidationError,
)
from mod_notes.schemas.notes import SEARCH_BODY_PREVIEW_LENGTH, SearchResult, truncate_text
from mod_notes.services.embeddings import EmbeddingProvider
from mod_notes.services.vector_index import IndexHit, VectorIndexService

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10
DEFAULT_THRESHOLD = 0.7


def hit_to_search_result(hit: IndexHit) -> SearchResult:
    """Project an index hit (payload + similarity) into a SearchResult."""
    payload = hit.payload
    return SearchResult(
        id=hit.id,
        title=payload.get("title", ""),
        body=truncate_text(payload.get("body", ""), SEARCH_BODY_PREVIEW_LENGTH),
        score=hit.score,
        created_at=payload.get("created_at"),
    )


class SemanticSearchStrategy:
    """
    Vector similarity search over the external index.

    A caller who asks for semantic search gets semantic results or an
    error: an unhealthy index raises ``ServiceUnavailableError`` instead
    of quietly answering with lexical matches.
    """

    def __init__(self, index: VectorIndexService, provider: EmbeddingProvider) -> None:
        self._index = index
        self._provider = provider

    async def vector_search(
        self,
        query: str,
        limit: int = DEFAULT_LIMIT,
        threshold: float = DEFAULT_THRESHOLD,
    ) -> list[SearchResult]:
        """
        Find notes semantically similar to ``query``.

        Args:
            query: Natural language query.
            limit: Maximum number of results.
            threshold: Minimum similarity score for a hit.

        Returns:
            SearchResults in index order, score = cosine similarity.

        Raises:
            ServiceUnavailableError: If the index probe fails, or the index
                times out or errors during the search.
            IndexingError: If the query embedding cannot be generated.
            ValidationError: If ``query`` is empty.
        """
        if not await self._index.health_check():
            raise ServiceUnavailableError("Vector search service is not available")

        try:
            vector = await self._provider.generate_embedding(query)
        except ValidationError:
            raise
        except Exception as e:
            raise IndexingError(f"Failed to embed search query: {e}") from e

        hits = await self._index.search(vector, limit=limit, score_threshold=threshold)

        results: list[SearchResult] = []
        for hit in hits:
            try:
                results.append(hit_to_search_result(hit))
            except pydantic.ValidationError:
                # Points not written by this service (foreign ids or payloads)
                logger.warning("Skipping malformed index hit %s", hit.id)
        return results
