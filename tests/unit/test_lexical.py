"""
Lexical Search Strategy Unit Tests

Mode selection, full-text to regex fallback and result projection, with a
mocked repository standing in for PostgreSQL.
"""

import re
import uuid
from datetime import UTC, datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import DBAPIError, SQLAlchemyError

from mod_notes.core.exceptions import ValidationError
from mod_notes.services.lexical import (
    LexicalMode,
    LexicalSearchStrategy,
    choose_lexical_mode,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _note(title: str = "Quantum notes", body: str = "Entanglement basics"):
    return SimpleNamespace(
        id=uuid.uuid4(),
        title=title,
        body=body,
        created_at=datetime(2026, 1, 1, tzinfo=UTC),
    )


def _db_error(sqlstate: str) -> DBAPIError:
    orig = Exception("database error")
    orig.sqlstate = sqlstate
    return DBAPIError("SELECT ...", {}, orig)


@pytest.fixture
def repository():
    repo = MagicMock()
    repo.search_text = AsyncMock(return_value=[])
    repo.search_regex = AsyncMock(return_value=[])
    return repo


@pytest.fixture
def session():
    return AsyncMock()


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


def test_choose_lexical_mode():
    assert choose_lexical_mode(False) is LexicalMode.TEXT
    assert choose_lexical_mode(True) is LexicalMode.REGEX


@pytest.mark.asyncio
@pytest.mark.parametrize("query", ["", "   ", "\t\n"])
async def test_blank_query_returns_nothing(repository, session, query):
    strategy = LexicalSearchStrategy(repository)

    outcome = await strategy.search_with_mode(session, query)

    assert outcome.results == []
    repository.search_text.assert_not_called()
    repository.search_regex.assert_not_called()


@pytest.mark.asyncio
async def test_text_mode_ranks_and_trims_query(repository, session):
    best, other = _note("Quantum"), _note("Other", "quantum in body")
    repository.search_text.return_value = [(best, 0.6), (other, 0.2)]
    strategy = LexicalSearchStrategy(repository)

    outcome = await strategy.search_with_mode(session, "  quantum  ", limit=5, skip=2)

    assert outcome.mode is LexicalMode.TEXT
    assert not outcome.fell_back
    assert [r.id for r in outcome.results] == [best.id, other.id]
    assert outcome.results[0].score == pytest.approx(0.6)
    repository.search_text.assert_awaited_once_with(session, "quantum", 2, 5)
    repository.search_regex.assert_not_called()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error", [SQLAlchemyError("tsquery failed"), TimeoutError()], ids=["db-error", "timeout"]
)
async def test_text_failure_falls_back_to_regex(repository, session, error):
    match = _note()
    repository.search_text.side_effect = error
    repository.search_regex.return_value = [match]
    strategy = LexicalSearchStrategy(repository)

    outcome = await strategy.search_with_mode(session, "quantum")

    assert outcome.mode is LexicalMode.REGEX
    assert outcome.fell_back
    assert [r.id for r in outcome.results] == [match.id]
    assert outcome.results[0].score == 0.0
    session.rollback.assert_awaited_once()
    repository.search_regex.assert_awaited_once_with(session, "quantum", 0, 20)


@pytest.mark.asyncio
async def test_regex_mode_passes_pattern_through(repository, session):
    strategy = LexicalSearchStrategy(repository)

    outcome = await strategy.search_with_mode(session, "qu.*m", use_regex=True)

    assert outcome.mode is LexicalMode.REGEX
    assert not outcome.fell_back
    repository.search_text.assert_not_called()
    repository.search_regex.assert_awaited_once_with(session, "qu.*m", 0, 20)


@pytest.mark.asyncio
async def test_regex_mode_escapes_when_configured(repository, session):
    strategy = LexicalSearchStrategy(repository, escape_regex=True)

    await strategy.search(session, "c++", use_regex=True)

    repository.search_regex.assert_awaited_once_with(session, re.escape("c++"), 0, 20)


@pytest.mark.asyncio
async def test_invalid_regex_is_validation_error(repository, session):
    repository.search_regex.side_effect = _db_error("2201B")
    strategy = LexicalSearchStrategy(repository)

    with pytest.raises(ValidationError):
        await strategy.search(session, "(unclosed", use_regex=True)

    session.rollback.assert_awaited_once()


@pytest.mark.asyncio
async def test_other_regex_errors_propagate(repository, session):
    repository.search_regex.side_effect = _db_error("57014")  # query_canceled
    strategy = LexicalSearchStrategy(repository)

    with pytest.raises(DBAPIError):
        await strategy.search(session, "quantum", use_regex=True)


@pytest.mark.asyncio
async def test_bodies_are_truncated(repository, session):
    repository.search_text.return_value = [(_note(body="x" * 300), 0.1)]
    strategy = LexicalSearchStrategy(repository)

    results = await strategy.search(session, "x")

    assert len(results[0].body) == 203
    assert results[0].body.endswith("...")


@pytest.mark.asyncio
async def test_short_bodies_are_untouched(repository, session):
    repository.search_text.return_value = [(_note(body="x" * 200), 0.1)]
    strategy = LexicalSearchStrategy(repository)

    results = await strategy.search(session, "x")

    assert results[0].body == "x" * 200
