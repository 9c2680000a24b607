"""Models package - re-exports all models for convenient imports."""

from mod_notes.models.base import Base, TimestampMixin
from mod_notes.models.note import Note

__all__ = [
    "Base",
    "TimestampMixin",
    "Note",
]
