"""Base class for transcript providers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from castdigest.transcription.models import AcquiredTranscript, Episode


class TranscriptionError(Exception):
    """A mandatory provider call failed."""


class Outcome(str, Enum):
    """Three-way provider result."""

    HIT = "hit"
    MISS = "miss"
    FAILURE = "failure"


@dataclass
class ProviderResult:
    """Tagged result from a transcript provider.

    Attributes:
        outcome: HIT with a transcript, MISS when the source has no data,
            FAILURE when the provider's call errored.
        transcript: The acquired transcript on HIT.
        reason: Human-readable explanation for MISS/FAILURE.
    """

    outcome: Outcome
    transcript: Optional[AcquiredTranscript] = None
    reason: Optional[str] = None

    @classmethod
    def hit(cls, transcript: AcquiredTranscript) -> "ProviderResult":
        return cls(Outcome.HIT, transcript=transcript)

    @classmethod
    def miss(cls, reason: str) -> "ProviderResult":
        return cls(Outcome.MISS, reason=reason)

    @classmethod
    def failure(cls, reason: str) -> "ProviderResult":
        return cls(Outcome.FAILURE, reason=reason)


class TranscriptProvider(ABC):
    """Base class for transcript sources.

    Providers are tried in priority order (cheapest first) until one hits.
    Expected negative outcomes (no URL, no credentials, no match, 404) are
    returned as misses, never raised.
    """

    @property
    @abstractmethod
    def source_id(self) -> str:
        """Return the provider identifier (e.g., 'transcript_url', 'apple')."""
        ...

    @abstractmethod
    def can_provide(self, episode: Episode) -> bool:
        """Cheap pre-check: does this provider have what it needs for this episode?"""
        ...

    @abstractmethod
    async def acquire(self, episode: Episode, language: str) -> ProviderResult:
        """Fetch the transcript for an episode.

        Args:
            episode: Episode to fetch transcript for.
            language: Transcript language.

        Returns:
            ProviderResult tagged hit, miss or failure.
        """
        ...
