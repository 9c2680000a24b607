"""
Note Schemas

Pydantic models for Note API request/response validation.
Separates concerns: NoteCreate (input), NoteRead (output), NoteUpdate (partial),
SearchResult (uniform projection for both search strategies).
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from mod_notes.models.note import BODY_MAX_LENGTH, TITLE_MAX_LENGTH

if TYPE_CHECKING:
    from mod_notes.models import Note

SEARCH_BODY_PREVIEW_LENGTH = 200
INDEX_BODY_PREVIEW_LENGTH = 500
ELLIPSIS = "..."

SortField = Literal["created_at", "updated_at", "title"]
SortOrder = Literal["asc", "desc"]


def truncate_text(text: str, limit: int) -> str:
    """Cut ``text`` to ``limit`` chars, appending an ellipsis when it was longer."""
    if len(text) <= limit:
        return text
    return text[:limit] + ELLIPSIS


def clean_tags(tags: list[str]) -> list[str]:
    """Trim every tag and drop the ones left empty, preserving order."""
    return [tag.strip() for tag in tags if tag and tag.strip()]


class NoteBase(BaseModel):
    """Base schema with shared validation rules for Note fields."""

    # Strip before length checks: "   " is rejected as empty
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(
        ...,
        min_length=1,
        max_length=TITLE_MAX_LENGTH,
        description="Note title (1-200 chars after trimming)",
    )
    body: str = Field(
        ...,
        min_length=1,
        max_length=BODY_MAX_LENGTH,
        description="Note content (1-10000 chars after trimming)",
    )
    tags: list[str] = Field(default_factory=list, description="Optional tags")

    @field_validator("tags")
    @classmethod
    def _drop_empty_tags(cls, value: list[str]) -> list[str]:
        return clean_tags(value)


class NoteCreate(NoteBase):
    """Request schema for POST /notes (inherits all NoteBase validations)."""

    pass


class NoteUpdate(BaseModel):
    """
    Request schema for PUT /notes/{id}.

    All fields optional to support partial updates. An omitted ``tags``
    leaves the stored tags untouched; ``tags=[]`` clears them.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str | None = Field(None, min_length=1, max_length=TITLE_MAX_LENGTH)
    body: str | None = Field(None, min_length=1, max_length=BODY_MAX_LENGTH)
    tags: list[str] | None = None

    @field_validator("tags")
    @classmethod
    def _drop_empty_tags(cls, value: list[str] | None) -> list[str] | None:
        return None if value is None else clean_tags(value)

    def changes(self) -> dict[str, object]:
        """Fields the caller actually supplied (explicit nulls count as omitted)."""
        return self.model_dump(exclude_unset=True, exclude_none=True)


class NoteRead(BaseModel):
    """Full Note representation (the embedding vector is never serialized)."""

    id: UUID
    title: str
    body: str
    tags: list[str]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)  # Enables ORM model conversion


class SearchResult(BaseModel):
    """
    Single search hit, shared by lexical and semantic search.

    ``score`` is a text-relevance rank for lexical results and a cosine
    similarity for semantic results; the two are not comparable.
    """

    id: UUID
    title: str
    body: str = Field(description="Body truncated to 200 chars")
    score: float
    created_at: datetime | None = None

    @classmethod
    def from_note(cls, note: Note, score: float = 0.0) -> SearchResult:
        """Project a stored note into a search hit."""
        return cls(
            id=note.id,
            title=note.title,
            body=truncate_text(note.body, SEARCH_BODY_PREVIEW_LENGTH),
            score=score,
            created_at=note.created_at,
        )


class VectorIndexStats(BaseModel):
    """Pass-through statistics of the vector index, or an unavailable marker."""

    available: bool
    vector_count: int | None = None
    indexed_count: int | None = None
    status: str | None = None
    error: str | None = None


class NotesStats(BaseModel):
    """Aggregate note counts plus vector index statistics."""

    total_notes: int
    recent_notes: int = Field(description="Notes created in the trailing 7 days")
    last_week: int = Field(description="Alias of recent_notes")
    vector_stats: VectorIndexStats
