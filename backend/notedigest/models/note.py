"""
NoteDigest Backend: Note SQLAlchemy Model
=========================================

What:  ORM model for the `notes` table.
Who:   NoteService for owner-scoped CRUD; Alembic for schema management.

Table design:
    - id:          UUID primary key, generated in Python at creation
    - owner_id:    principal id from the verified bearer token; never updated
    - title:       trimmed, at most 100 characters
    - content:     trimmed, unbounded TEXT
    - created_at / updated_at: UTC, timezone-aware

    Index (owner_id, created_at) serves the only list query:
    "this principal's notes, newest first".
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Index, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from notedigest.database import Base

TITLE_MAX_LENGTH = 100


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Note(Base):
    """
    A short text note owned by one principal.

    Lifecycle:
        1. Created on explicit user action
        2. Updated only by full replacement of title and content
        3. Deleted explicitly (hard delete, no history kept)
    """

    __tablename__ = "notes"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        comment="Unique note identifier",
    )

    owner_id: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        index=True,
        comment="Principal id (token subject) of the note's creator",
    )

    title: Mapped[str] = mapped_column(
        String(TITLE_MAX_LENGTH),
        nullable=False,
        comment="Trimmed note title",
    )

    content: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Note body",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
        comment="When this note was created (UTC)",
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
        comment="When this note was last modified (UTC)",
    )

    __table_args__ = (
        Index("idx_notes_owner_created_at", "owner_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Note(id={self.id}, owner_id='{self.owner_id}', title='{self.title}')>"
