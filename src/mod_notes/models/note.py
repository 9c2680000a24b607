"""
Note Model

Core entity for storing notes, the source of truth for both search modes.
The optional embedding column keeps the vector a note was indexed with.
"""

import uuid

from pgvector.sqlalchemy import Vector
from sqlalchemy import CheckConstraint, String, Uuid
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import Mapped, mapped_column

from mod_notes.models.base import Base, TimestampMixin

EMBEDDING_DIMENSION = 1536  # text-embedding-3-small output size
TITLE_MAX_LENGTH = 200
BODY_MAX_LENGTH = 10000


class Note(Base, TimestampMixin):
    """
    Note entity with vector embedding support.

    Attributes:
        id: UUID primary key (generated Python-side).
        title: Note title (max 200 chars), trimmed before storage.
        body: Note content (max 10000 chars), trimmed before storage.
        tags: Ordered list of non-empty, trimmed tags.
        embedding: 1536-dim vector (nullable: only set when a provider is configured).
    """

    __tablename__ = "notes"
    __table_args__ = (
        CheckConstraint("updated_at >= created_at", name="ck_notes_updated_after_created"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(TITLE_MAX_LENGTH), nullable=False)
    body: Mapped[str] = mapped_column(String(BODY_MAX_LENGTH), nullable=False)
    tags: Mapped[list[str]] = mapped_column(
        ARRAY(String), nullable=False, default=list
    )
    embedding: Mapped[list[float] | None] = mapped_column(
        Vector(EMBEDDING_DIMENSION), nullable=True
    )

    def __repr__(self) -> str:
        return f"<Note(id={self.id!s:.8}, title='{self.title[:20]}...')>"
