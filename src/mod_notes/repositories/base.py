"""
Base Repository

Async SQLAlchemy CRUD shared by the repositories, plus identifier parsing.
Sessions are always owned by the caller (request dependency or a
background task's own session).
"""

import uuid
from collections.abc import Sequence
from typing import Any, Generic, TypeVar

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from mod_notes.core.exceptions import InvalidIdentifierError
from mod_notes.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)


def parse_id(value: Any) -> uuid.UUID:
    """
    Coerce an opaque identifier into the store's UUID key.

    Raises:
        InvalidIdentifierError: If ``value`` is not a UUID in any accepted form.
    """
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError) as e:
        raise InvalidIdentifierError(value) from e


def _as_dict(obj_in: Any, partial: bool = False) -> dict[str, Any]:
    if hasattr(obj_in, "model_dump"):
        return obj_in.model_dump(exclude_unset=partial)
    return dict(obj_in)


class BaseRepository(Generic[ModelType]):
    """
    CRUD for one mapped model keyed by a UUID ``id`` column.

    Identifier arguments are parsed before any query runs: a malformed id
    raises ``InvalidIdentifierError``, while a well-formed id with no row
    yields None/False. Callers can tell the two apart.

    Usage:
        class NoteRepository(BaseRepository[Note]):
            def __init__(self):
                super().__init__(Note)
    """

    def __init__(self, model: type[ModelType]):
        self.model = model

    async def create(self, session: AsyncSession, obj_in: Any) -> ModelType:
        """
        Insert a row and commit.

        Args:
            session: Caller-owned session.
            obj_in: Pydantic schema or mapping of column values.

        Returns:
            The new entity, refreshed so server-side values are loaded.
        """
        db_obj = self.model(**_as_dict(obj_in))
        session.add(db_obj)
        await session.commit()
        await session.refresh(db_obj)
        return db_obj

    async def get_by_id(self, session: AsyncSession, id: Any) -> ModelType | None:
        """Row with this id, or None."""
        key = parse_id(id)
        result = await session.execute(
            select(self.model).where(self.model.id == key)  # type: ignore[attr-defined]
        )
        return result.scalars().first()

    async def update(
        self,
        session: AsyncSession,
        id: Any,
        obj_in: Any,
    ) -> ModelType | None:
        """
        Apply the supplied fields to an existing row and commit.

        Args:
            session: Caller-owned session.
            id: Primary key of the row.
            obj_in: Pydantic schema (unset fields skipped) or mapping.

        Returns:
            The refreshed entity, or None if no row has this id.
        """
        db_obj = await self.get_by_id(session, id)
        if db_obj is None:
            return None

        for field, value in _as_dict(obj_in, partial=True).items():
            setattr(db_obj, field, value)
        await session.commit()
        await session.refresh(db_obj)
        return db_obj

    async def delete(self, session: AsyncSession, id: Any) -> bool:
        """Hard delete by primary key. Returns False if no row matched."""
        key = parse_id(id)
        result = await session.execute(
            delete(self.model).where(self.model.id == key)  # type: ignore[attr-defined]
        )
        await session.commit()
        return bool(result.rowcount)

    async def count(self, session: AsyncSession, *criteria: Any) -> int:
        """Count rows matching all ``criteria`` (all rows when none given)."""
        stmt = select(func.count()).select_from(self.model)
        if criteria:
            stmt = stmt.where(*criteria)
        return int((await session.execute(stmt)).scalar_one())

    async def get_all(
        self,
        session: AsyncSession,
        skip: int = 0,
        limit: int = 100,
    ) -> Sequence[ModelType]:
        """Unordered page of rows."""
        result = await session.execute(select(self.model).offset(skip).limit(limit))
        return result.scalars().all()
