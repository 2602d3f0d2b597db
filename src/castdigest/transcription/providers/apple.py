"""Provider for Apple Podcasts TTML transcripts.

Requires a bearer token. The episode is located through the iTunes Search API,
then the transcripts endpoint returns a signed CDN URL for the TTML file:

    GET /v1/catalog/us/podcast-episodes/{id}/transcripts
    -> {"data": [{"attributes": {"ttmlAssetUrls": {"ttml": "https://..."}}}]}
"""

import logging
from typing import Optional

import httpx

from castdigest.config.settings import get_settings
from castdigest.transcription.matcher import EpisodeMatcher
from castdigest.transcription.models import AcquiredTranscript, Episode
from castdigest.transcription.providers.base import ProviderResult, TranscriptProvider
from castdigest.transcription.ttml import ttml_to_text

logger = logging.getLogger(__name__)

BROWSER_USER_AGENT = "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36"


def extract_ttml_url(payload: dict) -> Optional[str]:
    """Pull the signed TTML asset URL out of a transcripts response."""
    try:
        attrs = payload["data"][0]["attributes"]
    except (KeyError, IndexError, TypeError):
        return None
    urls = attrs.get("ttmlAssetUrls") if isinstance(attrs, dict) else None
    if not isinstance(urls, dict):
        return None
    return urls.get("ttml")


class AppleTranscriptProvider(TranscriptProvider):
    """Fetches and parses Apple Podcasts TTML transcripts."""

    def __init__(
        self,
        matcher: EpisodeMatcher | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._matcher = matcher or EpisodeMatcher(transport=transport)
        self._transport = transport

    @property
    def source_id(self) -> str:
        return "apple"

    def can_provide(self, episode: Episode) -> bool:
        return bool(get_settings().apple_bearer_token and episode.podcast_title and episode.title)

    async def acquire(self, episode: Episode, language: str) -> ProviderResult:
        settings = get_settings()
        if not settings.apple_bearer_token:
            return ProviderResult.miss("No Apple bearer token configured")
        if not episode.podcast_title:
            return ProviderResult.miss("No podcast title to match on")

        candidate = await self._matcher.search(episode.podcast_title, episode.title)
        if candidate is None:
            return ProviderResult.miss("No matching Apple episode")

        try:
            ttml_url = await self._fetch_ttml_url(candidate.track_id)
            if isinstance(ttml_url, ProviderResult):
                return ttml_url

            async with httpx.AsyncClient(
                timeout=settings.ttml_fetch_timeout, transport=self._transport
            ) as client:
                response = await client.get(ttml_url, headers={"User-Agent": BROWSER_USER_AGENT})
        except httpx.HTTPError as e:
            logger.info(f"Apple transcript fetch error for episode {episode.id}: {e}")
            return ProviderResult.miss(f"Fetch failed: {e}")

        if not response.is_success:
            logger.info(f"Failed to fetch TTML file: HTTP {response.status_code}")
            return ProviderResult.miss(f"TTML fetch returned HTTP {response.status_code}")

        # Utterances come back empty when no paragraphs parsed and tags were stripped
        text, utterances = ttml_to_text(response.text, settings.long_utterance_chars)
        if len(text) < settings.min_transcript_chars:
            logger.info(f"Parsed Apple transcript too short ({len(text)} chars)")
            return ProviderResult.miss("Parsed transcript too short")

        if utterances:
            logger.info(f"Apple transcript parsed for episode {episode.id}: {len(utterances)} utterances")
        else:
            logger.info(f"Apple transcript for episode {episode.id} had no paragraphs, using stripped text")
        return ProviderResult.hit(
            AcquiredTranscript(text=text, provider=self.source_id, utterances=utterances)
        )

    async def _fetch_ttml_url(self, track_id: int) -> str | ProviderResult:
        """Request transcript metadata and return the signed TTML URL, or a miss."""
        settings = get_settings()
        url = settings.apple_transcripts_url.format(episode_id=track_id)

        async with httpx.AsyncClient(
            timeout=settings.metadata_timeout, transport=self._transport
        ) as client:
            response = await client.get(
                url,
                params={"fields": "ttmlToken,ttmlAssetUrls", "l": "en-US", "with": "entitlements"},
                headers={
                    "Authorization": f"Bearer {settings.apple_bearer_token}",
                    "Origin": "https://podcasts.apple.com",
                    "User-Agent": BROWSER_USER_AGENT,
                },
            )

        if response.status_code in (401, 403):
            logger.warning(f"Apple bearer token rejected (HTTP {response.status_code})")
            return ProviderResult.miss("Apple bearer token expired or invalid")
        if response.status_code == 404:
            logger.info(f"No transcript available for Apple episode {track_id}")
            return ProviderResult.miss("No transcript available")
        if not response.is_success:
            logger.info(f"Apple transcript API error: HTTP {response.status_code}")
            return ProviderResult.miss(f"Transcript API returned HTTP {response.status_code}")

        try:
            ttml_url = extract_ttml_url(response.json())
        except ValueError:
            ttml_url = None
        if not ttml_url:
            logger.info(f"No TTML URL in Apple response for episode {track_id}")
            return ProviderResult.miss("No TTML URL in response")
        return ttml_url
