"""
NoteDigest Backend: Request ID Middleware
=========================================

What:  Gives every request a correlation id, exposes it to log records,
       and echoes it back in the X-Request-ID response header.
How:   A well-formed client-supplied X-Request-ID is reused; anything else
       is replaced with a fresh short UUID. The id lives in a ContextVar so
       every coroutine serving the request sees the same value, and
       RequestIDLogFilter copies it onto each LogRecord.
"""

import logging
import re
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# Client ids end up in logs; only accept short, plain tokens
_VALID_REQUEST_ID = re.compile(r"[A-Za-z0-9._-]{1,64}")


def new_request_id() -> str:
    return uuid.uuid4().hex[:8]


def resolve_request_id(header_value: str | None) -> str:
    """Reuse the client's id when it is well-formed, otherwise mint one."""
    if header_value and _VALID_REQUEST_ID.fullmatch(header_value):
        return header_value
    return new_request_id()


class RequestIDLogFilter(logging.Filter):
    """Adds `request_id` to every record ("-" outside a request)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get("") or "-"
        return True


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = resolve_request_id(request.headers.get("X-Request-ID"))
        token = request_id_var.set(rid)
        request.state.request_id = rid
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        response.headers["X-Request-ID"] = rid
        return response
