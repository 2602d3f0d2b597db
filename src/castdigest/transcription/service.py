"""Transcript acquisition engine.

Owns the Transcript lifecycle: not_ready -> queued -> transcribing -> ready | failed.
At most one acquisition runs per (episode, language); the database uniqueness
constraint arbitrates between concurrent callers, including other processes.
"""

import asyncio
import logging
from typing import Optional

from castdigest.config.settings import get_settings
from castdigest.db.connection import get_db
from castdigest.db.models import Transcript, TranscriptStatus
from castdigest.db.repository import TranscriptRepository
from castdigest.transcription.models import Episode
from castdigest.transcription.providers import (
    Outcome,
    TranscriptProvider,
    acquire_transcript,
    default_providers,
)

logger = logging.getLogger(__name__)


class TranscriptAcquisitionEngine:
    """Ensures a ready transcript exists, running providers at most once per key."""

    def __init__(self, providers: Optional[list[TranscriptProvider]] = None):
        self.providers = providers if providers is not None else default_providers()

    def get_transcript(self, episode_id: str, language: str) -> Optional[Transcript]:
        """Read the persisted transcript without side effects."""
        with get_db() as conn:
            return TranscriptRepository(conn).get(episode_id, language)

    async def ensure_transcript(self, episode: Episode, language: str) -> Transcript:
        """Return a ready transcript, start acquisition, or report work in progress.

        - ready: returned unchanged.
        - queued/transcribing: returned as-is, no new work started.
        - absent/failed/not_ready: claimed, providers run in order, and the
          record is returned in its terminal state.
        """
        with get_db() as conn:
            repo = TranscriptRepository(conn)
            existing = repo.get(episode.id, language)

            if existing and existing.status == TranscriptStatus.READY:
                return existing
            if existing and existing.status.is_processing:
                logger.debug(f"Transcript for {episode.id}/{language} already {existing.status.value}")
                return existing

            claimed = repo.claim(episode.id, language)
            if claimed is None:
                # Lost the race: someone else owns this key now
                current = repo.get(episode.id, language)
                logger.debug(f"Transcript claim conflict for {episode.id}/{language}")
                return current

            repo.update_status(claimed.id, TranscriptStatus.TRANSCRIBING)

        logger.info(f"Acquiring transcript for episode {episode.id} ({language})")
        return await self._acquire(claimed.id, episode, language)

    async def _acquire(self, transcript_id: int, episode: Episode, language: str) -> Transcript:
        try:
            result = await acquire_transcript(self.providers, episode, language)
        except Exception as e:
            logger.error(f"Transcript acquisition crashed for episode {episode.id}: {e}")
            with get_db() as conn:
                repo = TranscriptRepository(conn)
                repo.mark_failed(transcript_id, f"Transcription failed: {e}")
            raise

        with get_db() as conn:
            repo = TranscriptRepository(conn)
            if result.outcome == Outcome.HIT:
                acquired = result.transcript
                repo.mark_ready(
                    transcript_id,
                    full_text=acquired.text,
                    utterances=[u.to_dict() for u in acquired.utterances] or None,
                    provider=acquired.provider,
                )
                logger.info(
                    f"Transcript ready for episode {episode.id} via {acquired.provider} "
                    f"({len(acquired.text)} chars)"
                )
            else:
                repo.mark_failed(transcript_id, result.reason or "Transcription failed")
                logger.error(f"Transcript failed for episode {episode.id}: {result.reason}")
            return repo.get_by_id(transcript_id)

    async def wait_for_transcript(
        self,
        episode: Episode,
        language: str,
        timeout: float | None = None,
        poll_interval: float | None = None,
    ) -> Transcript:
        """Ensure the transcript and, if another caller is acquiring it, poll until terminal.

        Returns the last observed record; it is still processing only if the
        timeout elapsed.
        """
        settings = get_settings()
        timeout = settings.transcript_wait_timeout_seconds if timeout is None else timeout
        poll_interval = (
            settings.transcript_poll_interval_seconds if poll_interval is None else poll_interval
        )

        transcript = await self.ensure_transcript(episode, language)
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout

        while transcript.status.is_processing:
            if loop.time() >= deadline:
                logger.warning(f"Timed out waiting for transcript of episode {episode.id}")
                break
            await asyncio.sleep(poll_interval)
            transcript = self.get_transcript(episode.id, language) or transcript

        return transcript
