"""Transcript provider registry.

Providers are tried strictly in order, cheapest first: a pre-supplied
transcript URL, then Apple Podcasts TTML, then paid Deepgram transcription.
The first hit wins, so a free source succeeding means the paid one is never
called.
"""

import logging

from castdigest.transcription.models import Episode
from castdigest.transcription.providers.apple import AppleTranscriptProvider
from castdigest.transcription.providers.base import (
    Outcome,
    ProviderResult,
    TranscriptionError,
    TranscriptProvider,
)
from castdigest.transcription.providers.deepgram import DeepgramProvider
from castdigest.transcription.providers.transcript_url import TranscriptUrlProvider

logger = logging.getLogger(__name__)


def default_providers() -> list[TranscriptProvider]:
    """Providers in priority order."""
    return [
        TranscriptUrlProvider(),
        AppleTranscriptProvider(),
        DeepgramProvider(),
    ]


async def acquire_transcript(
    providers: list[TranscriptProvider],
    episode: Episode,
    language: str,
) -> ProviderResult:
    """Try providers in order, return the first hit.

    Misses fall through to the next provider. A failure is only reported if
    it comes from the last provider; earlier failures are treated as misses.

    Returns:
        A HIT result, or a FAILURE result with a human-readable reason.
    """
    last = len(providers) - 1
    reasons: list[str] = []

    for index, provider in enumerate(providers):
        if not provider.can_provide(episode):
            logger.debug(f"Provider {provider.source_id} cannot provide episode {episode.id}")
            reasons.append(f"{provider.source_id}: not applicable")
            continue

        logger.debug(f"Trying provider {provider.source_id} for episode: {episode.title}")

        try:
            result = await provider.acquire(episode, language)
        except Exception as e:
            logger.warning(f"Provider {provider.source_id} failed for episode {episode.title}: {e}")
            result = ProviderResult.failure(str(e))

        if result.outcome == Outcome.HIT:
            logger.info(f"Provider {provider.source_id} succeeded for episode: {episode.title}")
            return result

        if result.outcome == Outcome.FAILURE and index == last:
            logger.error(f"Last provider {provider.source_id} failed: {result.reason}")
            return result

        logger.info(f"Provider {provider.source_id} missed for episode {episode.title}: {result.reason}")
        reasons.append(f"{provider.source_id}: {result.reason}")

    return ProviderResult.failure("No transcript source available (" + "; ".join(reasons) + ")")


def get_available_providers() -> list[str]:
    """Get list of registered provider IDs."""
    return [p.source_id for p in default_providers()]


__all__ = [
    "Outcome",
    "ProviderResult",
    "TranscriptProvider",
    "TranscriptionError",
    "acquire_transcript",
    "default_providers",
    "get_available_providers",
]
