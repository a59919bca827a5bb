"""
NoteDigest Backend: Google Gemini Summarizer
============================================

What:  Summarizer backed by the Gemini `generateContent` REST endpoint.
How:   Wraps the note in a summarization prompt, POSTs it with generation
       parameters and safety thresholds, and extracts
       `candidates[0].content.parts[0].text` from the response. Timeout,
       classification and retries are delegated to ResilientCallExecutor.
Who:   Created once at import (`gemini_summarizer`); injected into routes via
       the `get_summarizer` dependency so tests can override it.

Request shape:
    POST {gemini_api_url}?key={GEMINI_API_KEY}
    {
        "contents": [{"parts": [{"text": PROMPT + note}]}],
        "generationConfig": {"temperature", "topK", "topP", "maxOutputTokens"},
        "safetySettings": [{"category", "threshold"}, ...]
    }
"""

import logging
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from notedigest.config import Settings, settings
from notedigest.exceptions import ErrorKind, UpstreamServiceError
from notedigest.services.resilience import MalformedResponseError, ResilientCallExecutor
from notedigest.services.summarizer_base import Summarizer

logger = logging.getLogger(__name__)

SUMMARY_PROMPT = (
    "Please provide a concise summary of the following text, focusing on the key "
    "points and main ideas. Keep the summary clear and informative:\n\n"
)

SAFETY_CATEGORIES = ("HARM_CATEGORY_HARASSMENT", "HARM_CATEGORY_HATE_SPEECH")


class SummarizerConfig(BaseModel):
    """Explicit configuration for GeminiSummarizer (no reads of global settings at call time)."""

    api_key: str = ""
    api_url: str
    timeout_seconds: float = 30.0
    max_retries: int = 2
    backoff_base_seconds: float = 1.0
    temperature: float = 0.7
    top_k: int = 40
    top_p: float = 0.95
    max_output_tokens: int = 1024
    safety_threshold: str = "BLOCK_MEDIUM_AND_ABOVE"
    safety_categories: List[str] = Field(default_factory=lambda: list(SAFETY_CATEGORIES))

    @classmethod
    def from_settings(cls, source: Settings) -> "SummarizerConfig":
        return cls(
            api_key=source.gemini_api_key,
            api_url=source.gemini_api_url,
            timeout_seconds=source.summarize_timeout_seconds,
            max_retries=source.summarize_max_retries,
            backoff_base_seconds=source.summarize_backoff_base_seconds,
            temperature=source.gemini_temperature,
            top_k=source.gemini_top_k,
            top_p=source.gemini_top_p,
            max_output_tokens=source.gemini_max_output_tokens,
        )


def extract_generated_text(payload: Any) -> str:
    """
    Pulls the first generated text out of a generateContent response.

    Raises:
        MalformedResponseError: the path is missing, empty, or not a string.
    """
    try:
        text = payload["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError) as exc:
        raise MalformedResponseError("Invalid response format from Gemini API") from exc
    if not isinstance(text, str) or not text:
        raise MalformedResponseError("Invalid response format from Gemini API")
    return text


class GeminiSummarizer(Summarizer):
    """
    Gemini-backed Summarizer.

    The executor is built from the config unless one is supplied; tests
    supply an executor wired to httpx.MockTransport and a recording sleep.
    """

    def __init__(
        self,
        config: SummarizerConfig,
        executor: Optional[ResilientCallExecutor] = None,
    ):
        self.config = config
        self.executor = executor or ResilientCallExecutor(
            timeout=config.timeout_seconds,
            max_retries=config.max_retries,
            backoff_base=config.backoff_base_seconds,
            service_name="Gemini API",
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.config.api_key)

    def build_payload(self, text: str) -> dict:
        return {
            "contents": [{"parts": [{"text": f"{SUMMARY_PROMPT}{text}"}]}],
            "generationConfig": {
                "temperature": self.config.temperature,
                "topK": self.config.top_k,
                "topP": self.config.top_p,
                "maxOutputTokens": self.config.max_output_tokens,
            },
            "safetySettings": [
                {"category": category, "threshold": self.config.safety_threshold}
                for category in self.config.safety_categories
            ],
        }

    async def summarize(self, text: str) -> str:
        if not self.config.api_key:
            logger.error("Gemini API key is not configured")
            raise UpstreamServiceError(
                kind=ErrorKind.CONFIGURATION_MISSING,
                message="GEMINI_API_KEY is not configured",
            )

        if not text or not text.strip():
            raise UpstreamServiceError(
                kind=ErrorKind.EMPTY_INPUT,
                message="Input text is empty",
            )

        logger.info("Summarizing %d characters with Gemini", len(text))

        summary = await self.executor.call(
            "POST",
            self.config.api_url,
            params={"key": self.config.api_key},
            json=self.build_payload(text),
            headers={"Content-Type": "application/json"},
            extract=extract_generated_text,
        )
        summary = summary.strip()

        logger.info("Generated summary of %d characters", len(summary))
        return summary


gemini_summarizer = GeminiSummarizer(SummarizerConfig.from_settings(settings))


def get_summarizer() -> Summarizer:
    """FastAPI dependency returning the process-wide summarizer."""
    return gemini_summarizer
