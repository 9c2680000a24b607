"""
Notes API Router

REST endpoints for note CRUD operations, lexical search and semantic search.
Thin request/response mapping over NoteService.
"""

from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from mod_notes.core.database import get_db
from mod_notes.core.exceptions import (
    IndexingError,
    ServiceUnavailableError,
    ValidationError,
)
from mod_notes.schemas.notes import (
    NoteCreate,
    NoteRead,
    NotesStats,
    NoteUpdate,
    SearchResult,
)
from mod_notes.services.notes import NoteService

router = APIRouter()


def get_note_service(request: Request) -> NoteService:
    """FastAPI dependency returning the NoteService built at startup."""
    return request.app.state.note_service


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Note not found")


@router.post("/", response_model=NoteRead, status_code=status.HTTP_201_CREATED)
async def create_note(
    note: NoteCreate,
    db: AsyncSession = Depends(get_db),
    service: NoteService = Depends(get_note_service),
):
    """
    Create a new note.

    When an embedding provider is configured the note is embedded before
    storage and mirrored into the vector index in the background; it is
    immediately readable either way.
    """
    return await service.create_note(db, note)


@router.get("/", response_model=list[NoteRead])
async def read_notes(
    limit: int = Query(50, ge=1, le=100),
    skip: int = Query(0, ge=0),
    sort_by: Literal["created_at", "updated_at", "title"] = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    db: AsyncSession = Depends(get_db),
    service: NoteService = Depends(get_note_service),
):
    """List notes with sorting and pagination."""
    return await service.get_all_notes(db, limit, skip, sort_by, sort_order)


@router.get("/search", response_model=list[SearchResult])
async def search_notes(
    q: str = Query(..., min_length=1, description="Search query"),
    limit: int = Query(20, ge=1, le=50),
    skip: int = Query(0, ge=0),
    use_regex: bool = Query(False, description="Use regex search instead of text search"),
    db: AsyncSession = Depends(get_db),
    service: NoteService = Depends(get_note_service),
):
    """
    Keyword search over title and body.

    Full-text search ranks title matches twice as high as body matches.
    If the full-text query fails the service answers with regex matches.
    """
    if not q.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Search query is required"
        )
    try:
        return await service.search_notes(db, q, limit, skip, use_regex)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e


@router.get("/vector-search", response_model=list[SearchResult])
async def vector_search(
    q: str = Query(..., min_length=1, description="Search query"),
    limit: int = Query(10, ge=1, le=20),
    threshold: float = Query(0.7, ge=0.0, le=1.0, description="Similarity threshold"),
    service: NoteService = Depends(get_note_service),
):
    """
    Semantic search using vector embeddings.

    Raises:
        HTTPException 503: If the vector index is unavailable.
        HTTPException 502: If the query embedding could not be generated.
    """
    if not q.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Search query is required"
        )
    try:
        return await service.vector_search(q, limit, threshold)
    except ServiceUnavailableError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e)
        ) from e
    except IndexingError as e:
        # 502 Bad Gateway: upstream embedding failure
        raise HTTPException(status_code=502, detail=str(e)) from e


@router.get("/stats", response_model=NotesStats)
async def notes_stats(
    db: AsyncSession = Depends(get_db),
    service: NoteService = Depends(get_note_service),
):
    """Note counts (total, last 7 days) and vector index statistics."""
    return await service.get_notes_stats(db)


@router.get("/{note_id}", response_model=NoteRead)
async def read_note(
    note_id: str,
    db: AsyncSession = Depends(get_db),
    service: NoteService = Depends(get_note_service),
):
    """Retrieve a single note by ID."""
    note = await service.get_note_by_id(db, note_id)
    if note is None:
        raise _not_found()
    return note


@router.put("/{note_id}", response_model=NoteRead)
async def update_note(
    note_id: str,
    note_in: NoteUpdate,
    db: AsyncSession = Depends(get_db),
    service: NoteService = Depends(get_note_service),
):
    """Partially update a note (omitted fields are left unchanged)."""
    note = await service.update_note(db, note_id, note_in)
    if note is None:
        raise _not_found()
    return note


@router.delete("/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_note(
    note_id: str,
    db: AsyncSession = Depends(get_db),
    service: NoteService = Depends(get_note_service),
):
    """Delete a note; its vector index entry is removed in the background."""
    if not await service.delete_note(db, note_id):
        raise _not_found()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
