"""
NoteDigest Backend: Rate Limiting Middleware
============================================

What:  Per-client sliding-window request limit.
How:   SlidingWindowLimiter keeps a deque of request timestamps per key
       (client IP). Timestamps older than the window are dropped on each
       hit; a full window raises RateLimitExceededError, which the
       middleware renders as 429 with Retry-After.

The limiter lives in process memory. With several worker processes
each worker enforces its own window.
"""

import logging
import time
from collections import deque
from typing import Callable, Deque, Dict

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from notedigest.config import settings
from notedigest.exceptions import RateLimitExceededError
from notedigest.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)


class SlidingWindowLimiter:
    """
    Allows at most `limit` hits per key within any `window` seconds.

    Args:
        limit:   Maximum hits inside the window.
        window:  Window length in seconds.
        clock:   Time source (injected in tests).
    """

    # Sweep idle keys every this many hits
    SWEEP_EVERY = 1000

    def __init__(
        self,
        limit: int,
        window: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.limit = limit
        self.window = window
        self._clock = clock
        self._hits: Dict[str, Deque[float]] = {}
        self._since_sweep = 0

    def hit(self, key: str) -> None:
        """
        Record one request for `key`.

        Raises:
            RateLimitExceededError: the window is already full; the rejected
                request is not recorded.
        """
        now = self._clock()
        window_start = now - self.window
        hits = self._hits.setdefault(key, deque())

        while hits and hits[0] <= window_start:
            hits.popleft()

        if len(hits) >= self.limit:
            retry_after = int(hits[0] + self.window - now) + 1
            raise RateLimitExceededError(
                retry_after=retry_after,
                context={"client": key, "requests_in_window": len(hits)},
            )

        hits.append(now)

        self._since_sweep += 1
        if self._since_sweep >= self.SWEEP_EVERY:
            self._sweep(window_start)

    def _sweep(self, window_start: float) -> None:
        idle = [key for key, hits in self._hits.items() if not hits or hits[-1] <= window_start]
        for key in idle:
            del self._hits[key]
        self._since_sweep = 0
        if idle:
            logger.debug("Dropped %d idle rate-limit keys", len(idle))


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Applies a SlidingWindowLimiter keyed by client IP."""

    EXCLUDED_PATHS = {"/api/health", "/docs", "/openapi.json", "/redoc"}

    def __init__(self, app, limiter: SlidingWindowLimiter | None = None, **kwargs):
        super().__init__(app, **kwargs)
        self.limiter = limiter or SlidingWindowLimiter(
            limit=settings.rate_limit_requests,
            window=settings.rate_limit_window,
        )

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.EXCLUDED_PATHS or request.method == "OPTIONS":
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"

        try:
            self.limiter.hit(client_ip)
        except RateLimitExceededError as exc:
            logger.warning(
                "Rate limit exceeded for %s: %s",
                client_ip,
                exc.context.get("requests_in_window"),
            )
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limit_exceeded",
                    "message": exc.message,
                    "details": {"retry_after": exc.retry_after},
                    "request_id": request_id_var.get(""),
                },
                headers={"Retry-After": str(exc.retry_after)},
            )

        return await call_next(request)
