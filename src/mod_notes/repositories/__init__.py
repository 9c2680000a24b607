"""Repositories package."""

from mod_notes.repositories.base import BaseRepository, parse_id
from mod_notes.repositories.notes import NoteRepository, note_repository

__all__ = [
    "BaseRepository",
    "NoteRepository",
    "note_repository",
    "parse_id",
]
