"""
NoteDigest Backend: Health Check Route
======================================

What:  GET /api/health for load balancers and uptime monitors.
How:   Runs SELECT 1 against the database and reports whether the
       summarizer has a credential. No Gemini quota is spent.

Status levels:
    - healthy:   database reachable, summarizer configured
    - degraded:  database reachable, summarizer not configured
    - unhealthy: database unreachable
"""

import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from notedigest import __version__
from notedigest.database import engine
from notedigest.schemas.note import HealthResponse
from notedigest.services.gemini_summarizer import get_summarizer
from notedigest.services.summarizer_base import Summarizer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(
    summarizer: Summarizer = Depends(get_summarizer),
) -> HealthResponse:
    db_status = "connected"
    overall = "healthy"

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    summarizer_status = "configured" if summarizer.is_configured else "not_configured"
    if summarizer_status == "not_configured" and overall == "healthy":
        overall = "degraded"

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        summarizer=summarizer_status,
        timestamp=datetime.now(timezone.utc),
        uptime_seconds=round(time.time() - _start_time, 2),
    )
