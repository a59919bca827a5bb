"""
NoteDigest Backend: Note Service (Business Logic)
=================================================

What:  Owner-scoped note CRUD plus the summarize workflow.
How:   Every query carries `Note.owner_id == owner_id`. A note owned by
       someone else is indistinguishable from a missing one: both raise
       the same NotFoundError.
Who:   Called by the route handlers in routes/notes.py.

Summarize flow:
    ┌──────────────┐    ┌──────────────┐    ┌──────────────────┐
    │  Load note   │───▶│ Check content│───▶│ Summarizer       │
    │  (owner-     │    │ non-empty    │    │ (retry/backoff   │
    │   scoped)    │    │  else 400    │    │  inside)         │
    └──────────────┘    └──────────────┘    └──────────────────┘

NoteService is stateless: the session and summarizer come in per call.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy import desc, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from notedigest.exceptions import DatabaseError, NotFoundError, ValidationError
from notedigest.models.note import Note
from notedigest.schemas.note import (
    NoteListResponse,
    NoteResponse,
    NoteWrite,
    SummaryResponse,
)
from notedigest.services.summarizer_base import Summarizer

logger = logging.getLogger(__name__)


class NoteService:
    """
    Business logic layer for note operations.

    Database failures are wrapped in DatabaseError with a generic message;
    NotFoundError, ValidationError and UpstreamServiceError propagate as-is.
    """

    async def _get_owned(self, db: AsyncSession, owner_id: str, note_id: UUID) -> Note:
        result = await db.execute(
            select(Note).where(Note.id == note_id, Note.owner_id == owner_id)
        )
        note = result.scalar_one_or_none()
        if note is None:
            raise NotFoundError(resource="note", resource_id=str(note_id))
        return note

    async def list_notes(
        self,
        db: AsyncSession,
        owner_id: str,
        limit: int = 50,
        cursor: Optional[str] = None,
    ) -> NoteListResponse:
        """
        List the owner's notes, newest first, with cursor-based pagination.

        Args:
            db:        Async database session
            owner_id:  Principal id of the requester
            limit:     Maximum items per page (1-100)
            cursor:    ISO datetime from the previous page's next_cursor;
                       an unparseable cursor is ignored (first page)

        Query plan:
            SELECT * FROM notes WHERE owner_id = :owner [AND created_at < :cursor]
            ORDER BY created_at DESC LIMIT :limit + 1
            → idx_notes_owner_created_at
        """
        try:
            query = select(Note).where(Note.owner_id == owner_id)

            if cursor:
                try:
                    cursor_dt = datetime.fromisoformat(cursor)
                except ValueError:
                    logger.info("Ignoring invalid notes cursor %r", cursor)
                    cursor_dt = None
                if cursor_dt:
                    query = query.where(Note.created_at < cursor_dt)

            # One extra row tells us whether another page exists
            query = query.order_by(desc(Note.created_at)).limit(limit + 1)

            result = await db.execute(query)
            notes = list(result.scalars().all())

            count_result = await db.execute(
                select(func.count(Note.id)).where(Note.owner_id == owner_id)
            )
            total_count = count_result.scalar() or 0

        except SQLAlchemyError as e:
            logger.error("Database error listing notes: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Failed to fetch notes",
                context={"error_type": type(e).__name__},
            )

        has_more = len(notes) > limit
        if has_more:
            notes = notes[:limit]

        next_cursor = notes[-1].created_at.isoformat() if has_more and notes else None

        return NoteListResponse(
            notes=[NoteResponse.model_validate(note) for note in notes],
            total_count=total_count,
            next_cursor=next_cursor,
            has_more=has_more,
        )

    async def get_note(self, db: AsyncSession, owner_id: str, note_id: UUID) -> NoteResponse:
        """
        Retrieve one of the owner's notes.

        Raises:
            NotFoundError: no such note for this owner (→ 404)
            DatabaseError: query execution failed (→ 500)
        """
        try:
            note = await self._get_owned(db, owner_id, note_id)
        except SQLAlchemyError as e:
            logger.error("Database error fetching note %s: %s", note_id, str(e))
            raise DatabaseError(
                message="Failed to fetch note",
                context={"note_id": str(note_id)},
            )
        return NoteResponse.model_validate(note)

    async def create_note(self, db: AsyncSession, owner_id: str, data: NoteWrite) -> NoteResponse:
        """Insert a new note owned by `owner_id`."""
        now = datetime.now(timezone.utc)
        note = Note(
            id=uuid.uuid4(),
            owner_id=owner_id,
            title=data.title,
            content=data.content,
            created_at=now,
            updated_at=now,
        )
        try:
            db.add(note)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error creating note: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Failed to create note",
                context={"error_type": type(e).__name__},
            )

        logger.info("Note %s created (%d chars)", note.id, len(note.content))
        return NoteResponse.model_validate(note)

    async def update_note(
        self,
        db: AsyncSession,
        owner_id: str,
        note_id: UUID,
        data: NoteWrite,
    ) -> NoteResponse:
        """Replace title and content of one of the owner's notes."""
        try:
            note = await self._get_owned(db, owner_id, note_id)
            note.title = data.title
            note.content = data.content
            note.updated_at = datetime.now(timezone.utc)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error updating note %s: %s", note_id, str(e))
            raise DatabaseError(
                message="Failed to update note",
                context={"note_id": str(note_id)},
            )

        logger.info("Note %s updated", note.id)
        return NoteResponse.model_validate(note)

    async def delete_note(self, db: AsyncSession, owner_id: str, note_id: UUID) -> None:
        """Hard-delete one of the owner's notes."""
        try:
            note = await self._get_owned(db, owner_id, note_id)
            await db.delete(note)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error deleting note %s: %s", note_id, str(e))
            raise DatabaseError(
                message="Failed to delete note",
                context={"note_id": str(note_id)},
            )

        logger.info("Note %s deleted", note_id)

    async def summarize_note(
        self,
        db: AsyncSession,
        owner_id: str,
        note_id: UUID,
        summarizer: Summarizer,
    ) -> SummaryResponse:
        """
        Summarize one of the owner's notes.

        Raises:
            NotFoundError:        no such note for this owner
            ValidationError:      the stored content is blank
            UpstreamServiceError: the summarizer failed (kind decides the status)
        """
        try:
            note = await self._get_owned(db, owner_id, note_id)
        except SQLAlchemyError as e:
            logger.error("Database error loading note %s for summary: %s", note_id, str(e))
            raise DatabaseError(
                message="Failed to fetch note",
                context={"note_id": str(note_id)},
            )

        if not note.content or not note.content.strip():
            raise ValidationError(message="Note content is empty", field="content")

        logger.info(
            "Summarizing note %s (%d chars)", note.id, len(note.content)
        )
        summary = await summarizer.summarize(note.content)
        logger.info("Summarized note %s: %d chars", note.id, len(summary))

        return SummaryResponse(summary=summary)


note_service = NoteService()
