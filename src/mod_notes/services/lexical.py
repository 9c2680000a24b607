"""
Lexical Search Strategy

Keyword search over the notes table. The preferred mode is PostgreSQL's
weighted full-text search (title 2x, body 1x); a case-insensitive regex
scan over title and body serves both as an explicit mode and as the
transparent fallback when the full-text query fails.
"""

from __future__ import annotations

import enum
import logging
import re
from typing import NamedTuple

from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from mod_notes.core.exceptions import ValidationError
from mod_notes.repositories.notes import NoteRepository, note_repository
from mod_notes.schemas.notes import SearchResult

logger = logging.getLogger(__name__)

INVALID_REGEX_SQLSTATE = "2201B"


class LexicalMode(str, enum.Enum):
    TEXT = "text"
    REGEX = "regex"


class LexicalSearchOutcome(NamedTuple):
    """Results plus the mode that actually produced them."""

    results: list[SearchResult]
    mode: LexicalMode
    fell_back: bool = False


def choose_lexical_mode(use_regex: bool) -> LexicalMode:
    """Requested mode before any fallback: regex only when asked for."""
    return LexicalMode.REGEX if use_regex else LexicalMode.TEXT


def _sqlstate(error: DBAPIError) -> str | None:
    orig = error.orig
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


class LexicalSearchStrategy:
    """
    Ranked text search with a regex fallback.

    An empty or whitespace-only query yields no results rather than an
    error. Full-text failures are rolled back, logged as a
    ``lexical.fallback`` event and answered by regex mode. Regex mode
    passes the query through as a live pattern unless ``escape_regex``
    is set.
    """

    def __init__(
        self,
        repository: NoteRepository = note_repository,
        escape_regex: bool = False,
    ) -> None:
        self._repository = repository
        self._escape_regex = escape_regex

    async def search(
        self,
        session: AsyncSession,
        query: str,
        limit: int = 20,
        skip: int = 0,
        use_regex: bool = False,
    ) -> list[SearchResult]:
        """Search notes; see ``search_with_mode`` for the mode details."""
        outcome = await self.search_with_mode(session, query, limit, skip, use_regex)
        return outcome.results

    async def search_with_mode(
        self,
        session: AsyncSession,
        query: str,
        limit: int = 20,
        skip: int = 0,
        use_regex: bool = False,
    ) -> LexicalSearchOutcome:
        """
        Search notes and report which mode ran.

        Args:
            session: Active async database session.
            query: Raw user query, trimmed before use.
            limit: Maximum number of results.
            skip: Results to skip (applied after ordering).
            use_regex: Go straight to regex mode.

        Returns:
            LexicalSearchOutcome; ``fell_back`` is True when full-text
            search was requested but regex mode answered.

        Raises:
            ValidationError: If regex mode rejects the query as a pattern.
            sqlalchemy.exc.SQLAlchemyError: If regex mode itself fails.
        """
        requested = choose_lexical_mode(use_regex)
        cleaned = query.strip() if query else ""
        if not cleaned:
            return LexicalSearchOutcome([], requested)

        if requested is LexicalMode.TEXT:
            # asyncpg command_timeout surfaces as a bare TimeoutError
            try:
                rows = await self._repository.search_text(session, cleaned, skip, limit)
            except (SQLAlchemyError, TimeoutError) as e:
                await session.rollback()
                logger.warning(
                    "Text search failed, falling back to regex: %s",
                    e,
                    extra={
                        "event": "lexical.fallback",
                        "reason": type(e).__name__,
                        "mode": LexicalMode.REGEX.value,
                    },
                )
            else:
                results = [SearchResult.from_note(note, score) for note, score in rows]
                return LexicalSearchOutcome(results, LexicalMode.TEXT)

        results = await self._search_regex(session, cleaned, skip, limit)
        return LexicalSearchOutcome(
            results, LexicalMode.REGEX, fell_back=requested is LexicalMode.TEXT
        )

    async def _search_regex(
        self,
        session: AsyncSession,
        query: str,
        skip: int,
        limit: int,
    ) -> list[SearchResult]:
        pattern = re.escape(query) if self._escape_regex else query
        try:
            notes = await self._repository.search_regex(session, pattern, skip, limit)
        except DBAPIError as e:
            if _sqlstate(e) != INVALID_REGEX_SQLSTATE:
                raise
            await session.rollback()
            raise ValidationError(f"Invalid search pattern: {query!r}") from e

        # Regex matches are unranked
        return [SearchResult.from_note(note) for note in notes]
