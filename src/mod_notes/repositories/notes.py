"""
Note Repository

Data access layer for Note entities with lexical search capabilities.
Extends BaseRepository with PostgreSQL full-text and regex query methods.
"""

from collections.abc import Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import Select, func, literal_column, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from mod_notes.models import Note
from mod_notes.models.base import utcnow
from mod_notes.repositories.base import BaseRepository, parse_id

TEXT_SEARCH_CONFIG = literal_column("'english'::regconfig")

# ts_rank weights are ordered {D, C, B, A}: title (A) counts twice as much as body (B)
TEXT_RANK_WEIGHTS = literal_column("'{0, 0, 0.5, 1.0}'::float4[]")

SORTABLE_COLUMNS = {
    "created_at": Note.created_at,
    "updated_at": Note.updated_at,
    "title": Note.title,
}


def search_vector() -> ColumnElement[Any]:
    """
    Weighted tsvector over title (A) and body (B).

    Must stay textually identical to the expression of the
    ``ix_notes_search_vector`` GIN index for the planner to use it.
    """
    title_vector = func.setweight(
        func.to_tsvector(TEXT_SEARCH_CONFIG, Note.title), literal_column("'A'")
    )
    body_vector = func.setweight(
        func.to_tsvector(TEXT_SEARCH_CONFIG, Note.body), literal_column("'B'")
    )
    return title_vector.op("||")(body_vector)


def build_list_statement(
    skip: int = 0,
    limit: int = 50,
    sort_by: str = "created_at",
    sort_order: str = "desc",
) -> Select[tuple[Note]]:
    """SELECT for paginated listing. Unknown ``sort_by`` values fall back to created_at."""
    column = SORTABLE_COLUMNS.get(sort_by, Note.created_at)
    ordering = column.asc() if sort_order == "asc" else column.desc()
    # id as secondary key keeps pages stable when timestamps collide
    return select(Note).order_by(ordering, Note.id).offset(skip).limit(limit)


def build_text_search_statement(
    query: str,
    skip: int = 0,
    limit: int = 20,
) -> Select[tuple[Note, float]]:
    """SELECT (note, rank) for the weighted full-text query, best rank first."""
    tsquery = func.websearch_to_tsquery(TEXT_SEARCH_CONFIG, query)
    vector = search_vector()
    rank = func.ts_rank(TEXT_RANK_WEIGHTS, vector, tsquery).label("score")
    return (
        select(Note, rank)
        .where(vector.op("@@")(tsquery))
        .order_by(rank.desc(), Note.created_at.desc())
        .offset(skip)
        .limit(limit)
    )


def build_regex_search_statement(
    pattern: str,
    skip: int = 0,
    limit: int = 20,
) -> Select[tuple[Note]]:
    """SELECT for a case-insensitive regex over title OR body, newest first."""
    return (
        select(Note)
        .where(
            or_(
                Note.title.regexp_match(pattern, flags="i"),
                Note.body.regexp_match(pattern, flags="i"),
            )
        )
        .order_by(Note.created_at.desc())
        .offset(skip)
        .limit(limit)
    )


class NoteRepository(BaseRepository[Note]):
    """
    Repository for Note entities.

    Inherits standard CRUD from BaseRepository and adds:
        - get_all: Sorted, paginated listing
        - search_text: Weighted full-text search (title 2x, body 1x)
        - search_regex: Case-insensitive pattern search
        - count_created_since: Trailing-window counts for stats
        - update_embedding: Targeted embedding updates for background tasks
    """

    def __init__(self) -> None:
        super().__init__(Note)

    async def get_all(  # type: ignore[override]
        self,
        session: AsyncSession,
        skip: int = 0,
        limit: int = 50,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> Sequence[Note]:
        """Get notes sorted by ``sort_by`` with offset-based pagination."""
        result = await session.execute(
            build_list_statement(skip, limit, sort_by, sort_order)
        )
        return result.scalars().all()

    async def create(self, session: AsyncSession, obj_in: Any) -> Note:
        """Insert a note whose created_at and updated_at share one instant."""
        data = obj_in.model_dump() if hasattr(obj_in, "model_dump") else dict(obj_in)
        now = utcnow()
        data.setdefault("created_at", now)
        data.setdefault("updated_at", data["created_at"])
        return await super().create(session, data)

    async def update(  # type: ignore[override]
        self,
        session: AsyncSession,
        id: Any,
        obj_in: Any,
    ) -> Note | None:
        """Partial update that always bumps ``updated_at``, even with no field changes."""
        data = dict(obj_in)
        data["updated_at"] = utcnow()
        return await super().update(session, id, data)

    async def search_text(
        self,
        session: AsyncSession,
        query: str,
        skip: int = 0,
        limit: int = 20,
    ) -> list[tuple[Note, float]]:
        """
        Full-text search ranked by weighted relevance.

        Args:
            session: Database session.
            query: Raw user query (parsed with websearch_to_tsquery).
            skip: Results to skip.
            limit: Maximum number of results.

        Returns:
            (note, rank) pairs ordered by descending rank.

        Raises:
            sqlalchemy.exc.SQLAlchemyError: If the store rejects the query.
        """
        result = await session.execute(build_text_search_statement(query, skip, limit))
        return [(row[0], float(row[1])) for row in result.all()]

    async def search_regex(
        self,
        session: AsyncSession,
        pattern: str,
        skip: int = 0,
        limit: int = 20,
    ) -> Sequence[Note]:
        """Pattern search over title OR body, newest first."""
        result = await session.execute(
            build_regex_search_statement(pattern, skip, limit)
        )
        return result.scalars().all()

    async def count_created_since(self, session: AsyncSession, since: datetime) -> int:
        """Count notes with ``created_at >= since`` (inclusive boundary)."""
        return await self.count(session, Note.created_at >= since)

    async def get_for_reindex(self, session: AsyncSession) -> Sequence[Note]:
        """All notes, oldest first, for rebuilding the vector index."""
        result = await session.execute(select(Note).order_by(Note.created_at))
        return result.scalars().all()

    async def update_embedding(
        self,
        session: AsyncSession,
        note_id: Any,
        embedding: list[float],
    ) -> None:
        """
        Update only the embedding field of a note.

        Used by background tasks to avoid full entity reload.
        Uses bulk UPDATE for efficiency (no SELECT required) and leaves
        ``updated_at`` alone: the embedding is derived data, not an edit.
        """
        stmt = (
            update(Note)
            .where(Note.id == parse_id(note_id))
            .values(embedding=embedding, updated_at=Note.updated_at)
        )
        await session.execute(stmt)
        await session.commit()


# Module-level instance for convenience imports
note_repository = NoteRepository()
