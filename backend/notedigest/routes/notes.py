"""
NoteDigest Backend: Notes Route Handlers
========================================

What:  REST surface for owner-scoped notes and their summaries.
How:   Each handler resolves the principal, the DB session and (for
       summaries) the summarizer through FastAPI dependencies, then
       delegates to NoteService. Errors are rendered by the global handlers.

Routes (all require a bearer token):
    GET    /api/notes                   list (newest first, paginated)
    GET    /api/notes/{id}              detail
    POST   /api/notes                   create (201)
    PUT    /api/notes/{id}              full replace of title + content
    DELETE /api/notes/{id}              delete
    POST   /api/notes/{id}/summarize    AI summary of the note content
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from notedigest.database import get_db_session
from notedigest.schemas.note import (
    ErrorResponse,
    MessageResponse,
    NoteListResponse,
    NoteResponse,
    NoteWrite,
    SummaryResponse,
)
from notedigest.security import Principal, get_current_principal
from notedigest.services.gemini_summarizer import get_summarizer
from notedigest.services.note_service import note_service
from notedigest.services.summarizer_base import Summarizer

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/notes",
    tags=["Notes"],
    responses={
        401: {"description": "Missing or invalid bearer token", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
)

_NOT_FOUND = {404: {"description": "Note not found", "model": ErrorResponse}}


@router.get(
    "",
    response_model=NoteListResponse,
    summary="List the caller's notes",
)
async def list_notes(
    response: Response,
    limit: int = Query(default=50, ge=1, le=100, description="Items per page (max 100)"),
    cursor: str | None = Query(
        default=None,
        description="next_cursor from the previous page. Omit for the first page.",
    ),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> NoteListResponse:
    result = await note_service.list_notes(
        db=db, owner_id=principal.uid, limit=limit, cursor=cursor
    )
    response.headers["X-Total-Count"] = str(result.total_count)
    return result


@router.get(
    "/{note_id}",
    response_model=NoteResponse,
    responses=_NOT_FOUND,
    summary="Get one of the caller's notes",
)
async def get_note(
    note_id: UUID,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> NoteResponse:
    return await note_service.get_note(db=db, owner_id=principal.uid, note_id=note_id)


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=NoteResponse,
    summary="Create a note",
)
async def create_note(
    payload: NoteWrite,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> NoteResponse:
    return await note_service.create_note(db=db, owner_id=principal.uid, data=payload)


@router.put(
    "/{note_id}",
    response_model=NoteResponse,
    responses=_NOT_FOUND,
    summary="Replace a note's title and content",
)
async def update_note(
    note_id: UUID,
    payload: NoteWrite,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> NoteResponse:
    return await note_service.update_note(
        db=db, owner_id=principal.uid, note_id=note_id, data=payload
    )


@router.delete(
    "/{note_id}",
    response_model=MessageResponse,
    responses=_NOT_FOUND,
    summary="Delete a note",
)
async def delete_note(
    note_id: UUID,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await note_service.delete_note(db=db, owner_id=principal.uid, note_id=note_id)
    return MessageResponse(message="Note deleted successfully")


@router.post(
    "/{note_id}/summarize",
    response_model=SummaryResponse,
    responses={
        **_NOT_FOUND,
        400: {"description": "Note content is empty", "model": ErrorResponse},
        429: {"description": "Summarizer rate limit exhausted", "model": ErrorResponse},
        503: {"description": "Summarizer unreachable", "model": ErrorResponse},
        504: {"description": "Summarizer timed out", "model": ErrorResponse},
    },
    summary="Summarize a note with Gemini",
    description=(
        "Sends the note content to Google Gemini and returns the generated summary. "
        "Rate-limited calls are retried with exponential backoff before failing."
    ),
)
async def summarize_note(
    note_id: UUID,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db_session),
    summarizer: Summarizer = Depends(get_summarizer),
) -> SummaryResponse:
    return await note_service.summarize_note(
        db=db, owner_id=principal.uid, note_id=note_id, summarizer=summarizer
    )
