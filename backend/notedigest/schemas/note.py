"""
NoteDigest Backend: Pydantic Request/Response Schemas
=====================================================

What:  The API contract between the single-page frontend and the backend.
How:   FastAPI validates request bodies against these models (422 on
       failure), serializes responses, and generates the OpenAPI docs.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from notedigest.models.note import TITLE_MAX_LENGTH


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class NoteWrite(BaseModel):
    """
    Body of POST /api/notes and PUT /api/notes/{id}.

    Both fields are trimmed before validation; an update replaces both.
    """

    title: str = Field(description=f"Note title (1-{TITLE_MAX_LENGTH} characters)")
    content: str = Field(description="Note body")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Title is required")
        if len(v) > TITLE_MAX_LENGTH:
            raise ValueError(f"Title must be less than {TITLE_MAX_LENGTH} characters")
        return v

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Content is required")
        return v


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class NoteResponse(BaseModel):
    """A single note as returned to its owner."""

    id: uuid.UUID = Field(description="Unique note identifier (UUID)")
    title: str
    content: str
    created_at: datetime = Field(description="When the note was created (UTC ISO 8601)")
    updated_at: datetime = Field(description="When the note was last modified (UTC ISO 8601)")

    model_config = {"from_attributes": True}


class NoteListResponse(BaseModel):
    """
    Paginated list of the requester's notes, newest first.

    next_cursor is the created_at of the last item; pass it back as
    `cursor` to fetch the following page.
    """

    notes: List[NoteResponse] = Field(description="Notes on this page")
    total_count: int = Field(description="Total number of notes owned by the requester")
    next_cursor: Optional[str] = Field(
        default=None,
        description="Cursor for next page (ISO datetime). Null if no more pages.",
    )
    has_more: bool = Field(description="Whether more pages are available")


class SummaryResponse(BaseModel):
    """Returned by POST /api/notes/{id}/summarize."""

    summary: str = Field(description="AI-generated summary of the note content")


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    """
    Standardized error body for every non-422 error.

    Example:
        {
            "error": "rate_limited",
            "message": "Too many summarization requests. Please try again later.",
            "request_id": "a1b2c3d4"
        }
    """

    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Service and dependency status reported by GET /api/health."""

    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    summarizer: str = Field(description="Summarizer status: configured, not_configured")
    timestamp: datetime = Field(description="Server time (UTC)")
    uptime_seconds: float = Field(description="Seconds since service started")
