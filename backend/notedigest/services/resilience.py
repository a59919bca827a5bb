"""
NoteDigest Backend: Resilient Outbound Calls
============================================

What:  Performs one outbound HTTP operation with a fixed per-attempt timeout,
       classifies failures into ErrorKinds and retries the retryable ones a
       bounded number of times.
How:   Each attempt is a single httpx request. Raw failures are converted to
       UpstreamServiceError right away; tenacity decides from the kind
       whether to try again and how long to wait.
Who:   Used by GeminiSummarizer. Usable by any future outbound dependency.

Retry policy (two independent dimensions):

    kind            retried?   wait before next attempt
    ─────────────   ────────   ───────────────────────────────
    RATE_LIMITED    yes        2**attempt * backoff_base  (attempt is 0-based)
    TIMEOUT         yes        none
    UNREACHABLE     yes        none
    UNKNOWN         yes        none
    AUTH_FAILED     no         -
    MALFORMED       no         -

    At most max_retries + 1 attempts. When they run out, the last
    classified error is raised unchanged, with `attempts` filled in.

State machine per call: Attempting → (Backoff → Attempting)* → Succeeded | Failed.
The executor keeps no state between calls; the attempt counter lives in
`call()`, so concurrent calls never interfere.
"""

import asyncio
import logging
import re
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, TypeVar

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
)

from notedigest.exceptions import ErrorKind, UpstreamServiceError

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_KINDS = frozenset(
    {ErrorKind.RATE_LIMITED, ErrorKind.TIMEOUT, ErrorKind.UNREACHABLE, ErrorKind.UNKNOWN}
)
BACKOFF_KINDS = frozenset({ErrorKind.RATE_LIMITED})


class MalformedResponseError(ValueError):
    """Raised by response extractors when the payload lacks the expected field."""


def classify_exception(exc: BaseException) -> ErrorKind:
    """Maps a raw failure from one attempt to its ErrorKind."""
    if isinstance(exc, MalformedResponseError):
        return ErrorKind.MALFORMED
    # TimeoutException subclasses TransportError, so it must be checked first
    if isinstance(exc, httpx.TimeoutException):
        return ErrorKind.TIMEOUT
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        if status == 401:
            return ErrorKind.AUTH_FAILED
        if status == 429:
            return ErrorKind.RATE_LIMITED
        return ErrorKind.UNKNOWN
    if isinstance(exc, httpx.TransportError):
        return ErrorKind.UNREACHABLE
    return ErrorKind.UNKNOWN


# Query parameters that carry credentials (Gemini takes its API key as ?key=)
_CREDENTIAL_PARAM = re.compile(r"([?&](?:key|api_key|access_token)=)[^&\s'\"]+", re.IGNORECASE)


def redact_credentials(text: str) -> str:
    """Masks credential query parameters in any URL embedded in `text`."""
    return _CREDENTIAL_PARAM.sub(r"\1[REDACTED]", text)


def upstream_message(exc: BaseException) -> str:
    """
    Best available diagnostic for a failure.

    Google APIs report errors as {"error": {"code": ..., "message": ...}};
    that message is preferred. Without it an HTTP failure is described by
    status line only: httpx's own text embeds the request URL, and with it
    the API key.
    """
    if isinstance(exc, httpx.HTTPStatusError):
        try:
            message = exc.response.json()["error"]["message"]
        except (ValueError, KeyError, TypeError):
            message = None
        if isinstance(message, str) and message:
            return redact_credentials(message)
        return f"HTTP {exc.response.status_code} {exc.response.reason_phrase}".rstrip()
    return redact_credentials(str(exc) or type(exc).__name__)


def _summary_for(kind: ErrorKind, service: str) -> str:
    messages = {
        ErrorKind.AUTH_FAILED: f"Invalid API key for {service}.",
        ErrorKind.RATE_LIMITED: f"{service} rate limit exceeded. Please try again later.",
        ErrorKind.MALFORMED: f"Invalid response format from {service}.",
        ErrorKind.TIMEOUT: f"Request timeout: {service} is not responding.",
        ErrorKind.UNREACHABLE: f"Network error: could not reach {service}.",
    }
    return messages.get(kind, f"Call to {service} failed.")


class ResilientCallExecutor:
    """
    Executes a single HTTP operation with timeout, classification and retry.

    Args:
        timeout:       Seconds allowed for each attempt (connect + read).
        max_retries:   Extra attempts after the first one.
        backoff_base:  Seconds multiplied by 2**attempt before a rate-limited retry.
        client:        Optional shared httpx.AsyncClient (tests inject one built
                       on httpx.MockTransport). Without it, each attempt opens
                       and closes its own client.
        sleep:         Awaitable used for backoff waits (injected in tests).
        service_name:  Human-readable dependency name for logs and messages.
    """

    def __init__(
        self,
        *,
        timeout: float = 30.0,
        max_retries: int = 2,
        backoff_base: float = 1.0,
        client: Optional[httpx.AsyncClient] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        service_name: str = "upstream service",
    ):
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self.service_name = service_name
        self._client = client
        self._sleep = sleep

    async def call(
        self,
        method: str,
        url: str,
        *,
        extract: Callable[[Any], T],
        **request_kwargs: Any,
    ) -> T:
        """
        Performs the request, retrying per the module-level policy.

        Args:
            method, url:     HTTP method and URL (without credentials in the path).
            extract:         Turns the decoded JSON body into the result. Must raise
                             MalformedResponseError when the payload is unusable.
            request_kwargs:  Passed through to httpx (params, json, headers...).

        Returns:
            Whatever `extract` returns for the first successful attempt.

        Raises:
            UpstreamServiceError: classified terminal failure.
        """
        attempts = 0

        async def attempt_once() -> T:
            nonlocal attempts
            attempts += 1
            return await self._attempt(attempts, method, url, extract, request_kwargs)

        retrying = AsyncRetrying(
            retry=retry_if_exception(self._is_retryable),
            stop=stop_after_attempt(self.max_retries + 1),
            wait=self._backoff,
            sleep=self._sleep,
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

        try:
            return await retrying(attempt_once)
        except UpstreamServiceError as exc:
            exc.attempts = attempts
            exc.context["attempts"] = attempts
            logger.error(
                "%s call failed after %d attempt(s): kind=%s diagnostic=%s",
                self.service_name,
                attempts,
                exc.kind.value,
                exc.diagnostic,
            )
            raise

    async def _attempt(
        self,
        number: int,
        method: str,
        url: str,
        extract: Callable[[Any], T],
        request_kwargs: dict,
    ) -> T:
        start_time = time.perf_counter()
        logger.info("Attempt %d calling %s", number, self.service_name)

        try:
            async with self._client_scope() as client:
                response = await client.request(
                    method, url, timeout=self.timeout, **request_kwargs
                )
                response.raise_for_status()
                try:
                    payload = response.json()
                except ValueError as exc:
                    raise MalformedResponseError("Response body is not valid JSON") from exc
                result = extract(payload)
        except Exception as exc:
            kind = classify_exception(exc)
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.warning(
                "Attempt %d to %s failed after %.0fms: kind=%s",
                number,
                self.service_name,
                duration_ms,
                kind.value,
            )
            raise UpstreamServiceError(
                kind=kind,
                message=_summary_for(kind, self.service_name),
                diagnostic=upstream_message(exc),
            ) from exc

        logger.info(
            "%s responded in %.0fms on attempt %d",
            self.service_name,
            (time.perf_counter() - start_time) * 1000,
            number,
        )
        return result

    @asynccontextmanager
    async def _client_scope(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            yield client

    @staticmethod
    def _is_retryable(exc: BaseException) -> bool:
        return isinstance(exc, UpstreamServiceError) and exc.kind in RETRYABLE_KINDS

    def _backoff(self, retry_state: RetryCallState) -> float:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        if isinstance(exc, UpstreamServiceError) and exc.kind in BACKOFF_KINDS:
            # attempt_number is 1-based: first retry waits base, then 2*base
            return (2 ** (retry_state.attempt_number - 1)) * self.backoff_base
        return 0.0
