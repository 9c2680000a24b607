"""
Note Service

The note-facing facade over storage and both search strategies.

The notes table is the source of truth. The vector index is a derived
cache kept in sync on a best-effort basis: every write is persisted first,
then mirrored into the index by a background task whose failures are
logged and never reach the caller.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Callable, Coroutine, Sequence
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mod_notes.core.exceptions import (
    IndexingError,
    InvalidIdentifierError,
    NotesError,
    ServiceUnavailableError,
)
from mod_notes.models import Note
from mod_notes.models.base import utcnow
from mod_notes.repositories.base import parse_id
from mod_notes.repositories.notes import NoteRepository, note_repository
from mod_notes.schemas.notes import (
    INDEX_BODY_PREVIEW_LENGTH,
    NoteCreate,
    NotesStats,
    NoteUpdate,
    SearchResult,
)
from mod_notes.services.embeddings import EmbeddingProvider
from mod_notes.services.lexical import LexicalSearchStrategy
from mod_notes.services.semantic import (
    DEFAULT_LIMIT,
    DEFAULT_THRESHOLD,
    SemanticSearchStrategy,
)
from mod_notes.services.vector_index import VectorIndexService

logger = logging.getLogger(__name__)

RECENT_WINDOW = timedelta(days=7)


def embedding_text(title: str, body: str) -> str:
    """Text a note is embedded from."""
    return f"{title} {body}"


def index_payload(title: str, body: str, created_at: datetime) -> dict[str, Any]:
    """Payload stored next to a note's vector in the index."""
    return {
        "title": title,
        "body": body[:INDEX_BODY_PREVIEW_LENGTH],
        "created_at": created_at.isoformat(),
    }


def _as_list(vector: Any) -> list[float]:
    # pgvector hands back numpy arrays
    return [float(value) for value in vector]


class NoteService:
    """
    Orchestrates note persistence, lexical/semantic search and index mirroring.

    Collaborators are injected explicitly; nothing is read from globals.

    Embeddings are generated and stored whenever an embedding provider is
    configured. Index calls are attempted only while the vector index is
    READY.

    Usage::

        service = NoteService(provider, index, session_factory=AsyncSessionLocal)
        note = await service.create_note(session, NoteCreate(title="t", body="b"))
        hits = await service.search_notes(session, "quantum")
        await service.wait_for_mirrors()
    """

    def __init__(
        self,
        provider: EmbeddingProvider,
        index: VectorIndexService,
        repository: NoteRepository = note_repository,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        escape_regex: bool = False,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """
        Args:
            provider: Embedding provider (configured or synthetic-only).
            index: Vector index client.
            repository: Note data access.
            session_factory: Opens sessions for background tasks, which run
                after the request session is closed. Without one, background
                re-embeds refresh the index but not the stored embedding.
            escape_regex: Treat regex-mode queries as literal text.
            clock: Current time source (for stats).
        """
        self._provider = provider
        self._index = index
        self._repository = repository
        self._session_factory = session_factory
        self._clock = clock
        self._lexical = LexicalSearchStrategy(repository, escape_regex=escape_regex)
        self._semantic = SemanticSearchStrategy(index, provider)
        self._pending: set[asyncio.Task[None]] = set()

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    async def create_note(self, session: AsyncSession, note_in: NoteCreate) -> Note:
        """
        Persist a new note, embedding it first when a provider is configured.

        Embedding failures are logged and the note is stored without one.
        """
        data = note_in.model_dump()
        embedding: list[float] | None = None

        if self._provider.is_configured:
            try:
                embedding = await self._provider.generate_embedding(
                    embedding_text(note_in.title, note_in.body)
                )
            except NotesError as e:
                logger.warning("Failed to generate embedding: %s", e)
        data["embedding"] = embedding

        note = await self._repository.create(session, data)

        if embedding is not None and self._index.is_ready:
            self._schedule(
                self._mirror_upsert(note.id, note.title, note.body, note.created_at, embedding)
            )
        return note

    async def get_all_notes(
        self,
        session: AsyncSession,
        limit: int = 50,
        skip: int = 0,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> Sequence[Note]:
        """List notes sorted by ``sort_by`` (created_at, updated_at or title)."""
        return await self._repository.get_all(session, skip, limit, sort_by, sort_order)

    async def get_note_by_id(self, session: AsyncSession, note_id: Any) -> Note | None:
        """Fetch one note. Unknown and malformed ids both yield None."""
        try:
            return await self._repository.get_by_id(session, note_id)
        except InvalidIdentifierError:
            return None

    async def update_note(
        self,
        session: AsyncSession,
        note_id: Any,
        note_in: NoteUpdate,
    ) -> Note | None:
        """
        Apply a partial update.

        Omitted fields stay unchanged (``tags=[]`` clears tags). Title or
        body changes schedule a re-embed whenever a provider is configured:
        the stored embedding is refreshed, and the index point too when the
        index is READY. There is no diffing against the previous embedding.

        Returns:
            The updated note, or None for unknown or malformed ids.
        """
        changes = note_in.changes()
        try:
            note = await self._repository.update(session, note_id, changes)
        except InvalidIdentifierError:
            return None
        if note is None:
            return None

        # Stored embedding follows title/body regardless of index state
        refresh_stored = self._session_factory is not None or self._index.is_ready
        if (
            ("title" in changes or "body" in changes)
            and self._provider.is_configured
            and refresh_stored
        ):
            self._schedule(
                self._mirror_reembed(note.id, note.title, note.body, note.created_at)
            )
        return note

    async def delete_note(self, session: AsyncSession, note_id: Any) -> bool:
        """
        Delete a note and schedule its removal from the index.

        Returns:
            False for unknown or malformed ids.
        """
        try:
            deleted = await self._repository.delete(session, note_id)
        except InvalidIdentifierError:
            return False

        if deleted and self._index.is_ready:
            self._schedule(self._mirror_delete(str(parse_id(note_id))))
        return deleted

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def search_notes(
        self,
        session: AsyncSession,
        query: str,
        limit: int = 20,
        skip: int = 0,
        use_regex: bool = False,
    ) -> list[SearchResult]:
        """Lexical search (full-text with regex fallback)."""
        return await self._lexical.search(session, query, limit, skip, use_regex)

    async def vector_search(
        self,
        query: str,
        limit: int = DEFAULT_LIMIT,
        threshold: float = DEFAULT_THRESHOLD,
    ) -> list[SearchResult]:
        """Semantic search; never falls back to lexical results."""
        return await self._semantic.vector_search(query, limit, threshold)

    # ------------------------------------------------------------------
    # Stats & maintenance
    # ------------------------------------------------------------------

    async def get_notes_stats(self, session: AsyncSession) -> NotesStats:
        """Total and trailing-7-day note counts plus vector index statistics."""
        since = self._clock() - RECENT_WINDOW
        total = await self._repository.count(session)
        recent = await self._repository.count_created_since(session, since)
        vector_stats = await self._index.get_stats()
        return NotesStats(
            total_notes=total,
            recent_notes=recent,
            last_week=recent,
            vector_stats=vector_stats,
        )

    async def reindex_notes(self, session: AsyncSession) -> int:
        """
        Rebuild the vector index from the notes table.

        Notes without a stored embedding are embedded first when a provider
        is configured and skipped otherwise. Per-note index failures are
        logged and skipped.

        Returns:
            Number of notes written to the index.

        Raises:
            ServiceUnavailableError: If the index is not READY.
        """
        if not self._index.is_ready:
            raise ServiceUnavailableError("Vector index is not available")

        indexed = 0
        for note in await self._repository.get_for_reindex(session):
            vector = None if note.embedding is None else _as_list(note.embedding)
            if vector is None:
                if not self._provider.is_configured:
                    continue
                vector = await self._provider.generate_embedding(
                    embedding_text(note.title, note.body)
                )
                await self._repository.update_embedding(session, note.id, vector)

            try:
                await self._index.upsert(
                    str(note.id), vector, index_payload(note.title, note.body, note.created_at)
                )
            except IndexingError as e:
                logger.warning("Skipping note %s during reindex: %s", note.id, e)
                continue
            indexed += 1

        logger.info("Reindex complete: %d notes indexed", indexed)
        return indexed

    async def wait_for_mirrors(self) -> None:
        """Wait until every scheduled index mirroring task has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # ------------------------------------------------------------------
    # Index mirroring (background, best-effort)
    # ------------------------------------------------------------------

    def _schedule(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _mirror_upsert(
        self,
        note_id: uuid.UUID,
        title: str,
        body: str,
        created_at: datetime,
        embedding: list[float],
    ) -> None:
        try:
            await self._index.upsert(
                str(note_id), embedding, index_payload(title, body, created_at)
            )
        except IndexingError as e:
            logger.warning(
                "Failed to index note in vector database: %s",
                e,
                extra={"event": "index.mirror_failed", "note_id": note_id},
            )
        except Exception:
            logger.exception("Unexpected error indexing note %s", note_id)

    async def _mirror_reembed(
        self,
        note_id: uuid.UUID,
        title: str,
        body: str,
        created_at: datetime,
    ) -> None:
        try:
            embedding = await self._provider.generate_embedding(embedding_text(title, body))
            if self._session_factory is not None:
                # Request session is closed by now: open a dedicated one
                async with self._session_factory() as session:
                    await self._repository.update_embedding(session, note_id, embedding)
        except Exception:
            logger.exception("Failed to refresh embedding for note %s", note_id)
            return

        if self._index.is_ready:
            await self._mirror_upsert(note_id, title, body, created_at, embedding)

    async def _mirror_delete(self, note_id: str) -> None:
        try:
            await self._index.delete(note_id)
        except IndexingError as e:
            # Leaves a stale entry behind; the index is a rebuildable cache
            logger.warning(
                "Failed to remove note from vector index: %s",
                e,
                extra={"event": "index.mirror_failed", "note_id": note_id},
            )
        except Exception:
            logger.exception("Unexpected error removing note %s from index", note_id)
