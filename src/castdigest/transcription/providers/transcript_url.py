"""Provider for transcripts at a pre-supplied URL (e.g. Podcast 2.0 <podcast:transcript>)."""

import logging

import httpx

from castdigest.config.settings import get_settings
from castdigest.transcription.formats import parse_payload
from castdigest.transcription.models import AcquiredTranscript, Episode
from castdigest.transcription.providers.base import ProviderResult, TranscriptProvider

logger = logging.getLogger(__name__)


class TranscriptUrlProvider(TranscriptProvider):
    """Fetches the episode's transcript URL. Free and authoritative when present."""

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None):
        self._transport = transport

    @property
    def source_id(self) -> str:
        return "transcript_url"

    def can_provide(self, episode: Episode) -> bool:
        return bool(episode.transcript_url)

    async def acquire(self, episode: Episode, language: str) -> ProviderResult:
        if not episode.transcript_url:
            return ProviderResult.miss("No transcript URL")

        settings = get_settings()
        try:
            async with httpx.AsyncClient(
                timeout=settings.transcript_url_timeout, transport=self._transport
            ) as client:
                response = await client.get(
                    episode.transcript_url,
                    follow_redirects=True,
                    headers={"User-Agent": settings.user_agent},
                )
        except httpx.HTTPError as e:
            logger.info(f"Transcript URL fetch failed for episode {episode.id}: {e}")
            return ProviderResult.miss(f"Fetch failed: {e}")

        if not response.is_success:
            logger.info(f"Transcript URL returned {response.status_code} for episode {episode.id}")
            return ProviderResult.miss(f"HTTP {response.status_code}")

        parsed = parse_payload(
            response.text,
            content_type=response.headers.get("content-type"),
            url=episode.transcript_url,
            split_chars=settings.long_utterance_chars,
        )
        if not parsed.text:
            return ProviderResult.miss(f"Empty {parsed.format} transcript")

        logger.info(
            f"Fetched {parsed.format} transcript for episode {episode.id} "
            f"({len(parsed.text)} chars, {len(parsed.utterances)} utterances)"
        )
        return ProviderResult.hit(
            AcquiredTranscript(
                text=parsed.text,
                provider=f"{self.source_id}:{parsed.format}",
                utterances=parsed.utterances,
            )
        )
