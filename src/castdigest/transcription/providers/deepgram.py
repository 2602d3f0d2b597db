"""Paid audio transcription through the Deepgram pre-recorded API.

Last provider in the chain: it is only reached when no free transcript exists,
and its errors are hard failures rather than misses.
"""

import logging
import time
from urllib.parse import urljoin, urlparse

import httpx
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from castdigest.config.settings import get_settings
from castdigest.transcription.models import AcquiredTranscript, DiarizedTranscript, Episode, Utterance
from castdigest.transcription.providers.base import (
    ProviderResult,
    TranscriptionError,
    TranscriptProvider,
)
from castdigest.transcription.utterances import build_diarized

logger = logging.getLogger(__name__)

# Audio file extensions that indicate direct URLs (no redirects needed)
DIRECT_AUDIO_EXTENSIONS = (".mp3", ".m4a", ".wav", ".ogg", ".flac", ".aac", ".opus")
MAX_REDIRECTS = 5


def is_direct_audio_url(url: str) -> bool:
    """Check if the URL path ends in an audio file extension."""
    return urlparse(url).path.lower().endswith(DIRECT_AUDIO_EXTENSIONS)


def _is_retryable(exc: BaseException) -> bool:
    """Retry transport errors and 5xx; never 4xx."""
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return isinstance(exc, httpx.TransportError)


def parse_deepgram_response(data: dict) -> DiarizedTranscript:
    """Convert a Deepgram response to a diarized transcript.

    Prefers the utterances list. Without it, channel words are grouped by
    speaker; without word timing, the whole transcript becomes one utterance.
    """
    results = data.get("results") or {}
    duration = float((data.get("metadata") or {}).get("duration") or 0.0)
    utterances: list[Utterance] = []

    for utt in results.get("utterances") or []:
        text = (utt.get("transcript") or "").strip()
        if text:
            utterances.append(
                Utterance(
                    start=float(utt.get("start", 0.0)),
                    end=float(utt.get("end", 0.0)),
                    speaker=int(utt.get("speaker") or 0),
                    text=text,
                    confidence=float(utt.get("confidence", 0.0)),
                )
            )

    if not utterances:
        channels = results.get("channels") or [{}]
        alternatives = channels[0].get("alternatives") or [{}]
        alternative = alternatives[0]
        words = alternative.get("words") or []
        transcript_text = (alternative.get("transcript") or "").strip()

        if words:
            current_speaker = words[0].get("speaker") or 0
            current_start = words[0].get("start", 0.0)
            current_text: list[str] = []
            for word in words:
                speaker = word.get("speaker") or 0
                if speaker != current_speaker and current_text:
                    utterances.append(
                        Utterance(current_start, word.get("start", 0.0), current_speaker,
                                  " ".join(current_text), 0.9)
                    )
                    current_text = []
                    current_start = word.get("start", 0.0)
                    current_speaker = speaker
                current_text.append(word.get("punctuated_word") or word.get("word") or "")
            if current_text:
                utterances.append(
                    Utterance(current_start, words[-1].get("end", 0.0), current_speaker,
                              " ".join(current_text), 0.9)
                )
        elif transcript_text:
            utterances.append(Utterance(0.0, duration, 0, transcript_text, 0.9))

    diarized = build_diarized(utterances)
    if duration:
        diarized.duration = duration
    return diarized


class DeepgramProvider(TranscriptProvider):
    """Sends the episode's audio URL to Deepgram for diarized transcription."""

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None):
        self._transport = transport

    @property
    def source_id(self) -> str:
        return "deepgram"

    def can_provide(self, episode: Episode) -> bool:
        return bool(get_settings().deepgram_api_key and episode.audio_url)

    async def acquire(self, episode: Episode, language: str) -> ProviderResult:
        try:
            transcript = await self.transcribe(episode.audio_url, language)
        except TranscriptionError as e:
            return ProviderResult.failure(str(e))

        if not transcript.full_text:
            return ProviderResult.failure("Deepgram returned an empty transcript")
        return ProviderResult.hit(AcquiredTranscript.from_diarized(transcript, self.source_id))

    async def resolve_audio_url(self, url: str) -> str:
        """Follow tracking redirects to the final audio URL.

        Deepgram cannot fetch through some podcast analytics prefixes. Errors
        and timeouts keep the last URL reached.
        """
        if is_direct_audio_url(url):
            return url

        settings = get_settings()
        current = url
        async with httpx.AsyncClient(
            timeout=settings.redirect_timeout, transport=self._transport
        ) as client:
            for hop in range(MAX_REDIRECTS):
                try:
                    response = await client.head(
                        current,
                        follow_redirects=False,
                        headers={"User-Agent": settings.user_agent},
                    )
                except httpx.HTTPError as e:
                    logger.debug(f"Redirect resolution stopped at hop {hop}: {e}")
                    break

                location = response.headers.get("location")
                if not response.is_redirect or not location:
                    break
                current = urljoin(current, location)
                if is_direct_audio_url(current):
                    break

        if current != url:
            logger.info(f"Resolved audio URL {url[:60]} -> {current[:60]}")
        return current

    async def transcribe(self, audio_url: str, language: str) -> DiarizedTranscript:
        """Transcribe an audio URL.

        Raises:
            TranscriptionError: If the API call fails after retries.
        """
        settings = get_settings()
        start_time = time.monotonic()
        resolved = await self.resolve_audio_url(audio_url)

        params = {
            "model": settings.deepgram_model,
            "language": language or settings.default_language,
            "diarize": "true",
            "utterances": "true",
            "smart_format": "true",
            "punctuate": "true",
        }

        try:
            async with httpx.AsyncClient(
                timeout=settings.deepgram_timeout, transport=self._transport
            ) as client:
                async for attempt in AsyncRetrying(
                    stop=stop_after_attempt(settings.deepgram_max_attempts),
                    wait=wait_exponential(
                        multiplier=settings.deepgram_retry_wait,
                        min=settings.deepgram_retry_wait,
                        max=settings.deepgram_max_retry_wait,
                    ),
                    retry=retry_if_exception(_is_retryable),
                    reraise=True,
                ):
                    with attempt:
                        response = await client.post(
                            settings.deepgram_url,
                            params=params,
                            json={"url": resolved},
                            headers={"Authorization": f"Token {settings.deepgram_api_key}"},
                        )
                        response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Deepgram transcription failed: HTTP {e.response.status_code}")
            raise TranscriptionError(
                f"Deepgram transcription failed: HTTP {e.response.status_code}"
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Deepgram transcription failed: {e}")
            raise TranscriptionError(f"Deepgram transcription failed: {e}") from e

        transcript = parse_deepgram_response(data)
        logger.info(
            f"Deepgram transcription completed in {time.monotonic() - start_time:.1f}s: "
            f"{len(transcript.utterances)} utterances, {transcript.speaker_count} speakers"
        )
        return transcript
