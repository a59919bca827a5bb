"""
NoteDigest Backend: Abstract Summarizer Interface
=================================================

What:  Contract for services that turn note text into a short summary.
How:   Concrete implementations inherit from Summarizer and implement
       summarize(). NoteService depends only on this interface, and tests
       pass an AsyncMock in its place.
"""

from abc import ABC, abstractmethod


class Summarizer(ABC):
    """
    Abstract interface for text summarization providers.

    Contract:
        - summarize() returns the summary text, trimmed
        - every failure is raised as UpstreamServiceError with an ErrorKind
        - implementations own their retry policy
    """

    @abstractmethod
    async def summarize(self, text: str) -> str:
        """
        Summarize a piece of note text.

        Args:
            text: The note content. Must contain non-whitespace characters.

        Returns:
            str: The generated summary, stripped of surrounding whitespace.

        Raises:
            UpstreamServiceError: kind CONFIGURATION_MISSING or EMPTY_INPUT before
                any network call; otherwise the classified terminal failure.
        """
        ...

    @property
    @abstractmethod
    def is_configured(self) -> bool:
        """True when the provider credential is present. Used by /api/health."""
        ...
