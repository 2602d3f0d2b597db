"""Generation status coordinator.

Summary lifecycle, one attempt:

    not_ready -> queued -> transcribing -> summarizing -> ready | failed

A summary never leaves transcribing until its transcript is ready. Retrying a
failed summary claims it again from queued; partial work is never resumed.
Status reads never trigger generation.
"""

import logging
from typing import Optional

from castdigest.config.settings import get_settings
from castdigest.db.connection import get_db
from castdigest.db.models import Summary, SummaryLevel, SummaryStatus, TranscriptStatus
from castdigest.db.repository import SummaryRepository, TranscriptRepository
from castdigest.notifications.ntfy import notify_summary_ready
from castdigest.summary.generators import GenerationError, get_generator
from castdigest.summary.summarizer import AnthropicSummarizer, Summarizer
from castdigest.transcription.models import Episode
from castdigest.transcription.service import TranscriptAcquisitionEngine

logger = logging.getLogger(__name__)


def summary_response(summary: Optional[Summary]) -> dict:
    """Shape a summary record as a request response."""
    if summary is None:
        return {"status": SummaryStatus.NOT_READY.value, "content": None}

    response = {
        "status": summary.status.value,
        "content": summary.content_data if summary.status == SummaryStatus.READY else None,
    }
    if summary.status == SummaryStatus.FAILED and summary.error_message:
        response["error"] = summary.error_message
    return response


class SummaryCoordinator:
    """Coordinates transcript acquisition and summary generation per key."""

    def __init__(
        self,
        engine: TranscriptAcquisitionEngine | None = None,
        summarizer: Summarizer | None = None,
        notify: bool = True,
    ):
        self.engine = engine or TranscriptAcquisitionEngine()
        self._summarizer = summarizer
        self.notify = notify

    @property
    def summarizer(self) -> Summarizer:
        if self._summarizer is None:
            self._summarizer = AnthropicSummarizer()
        return self._summarizer

    def resolve_language(self, episode: Episode, language: str | None) -> str:
        return language or episode.language or get_settings().default_language

    def submit(
        self, episode: Episode, level: SummaryLevel, language: str
    ) -> tuple[Summary, bool]:
        """Return the existing summary, or claim the key for a new attempt.

        Returns:
            (summary, claimed). When claimed is True the caller must call run().
        """
        with get_db() as conn:
            repo = SummaryRepository(conn)
            existing = repo.get(episode.id, level, language)

            if existing and existing.status == SummaryStatus.READY:
                return existing, False
            if existing and existing.status.is_processing:
                return existing, False

            claimed = repo.claim(episode.id, level, language)
            if claimed is None:
                # Someone else claimed it between our read and insert
                return repo.get(episode.id, level, language), False

        logger.info(f"Queued {level.value} summary for episode {episode.id} ({language})")
        return claimed, True

    async def run(self, summary: Summary, episode: Episode) -> Summary:
        """Drive a claimed summary to a terminal status.

        Never raises: every error ends as a failed summary with a message.
        """
        level = summary.level
        language = summary.language

        try:
            self._set_status(summary.id, SummaryStatus.TRANSCRIBING)
            transcript = await self.engine.wait_for_transcript(episode, language)

            if transcript.status == TranscriptStatus.FAILED:
                raise GenerationError(
                    f"Transcript failed: {transcript.error_message or 'unknown error'}"
                )
            if transcript.status != TranscriptStatus.READY:
                raise GenerationError("Timed out waiting for transcript")
            if not transcript.full_text:
                raise GenerationError("Transcript is empty")

            self._set_status(summary.id, SummaryStatus.SUMMARIZING)
            generator = get_generator(level, self.summarizer)
            content = await generator.generate(transcript.full_text)
        except GenerationError as e:
            logger.error(f"{level.value} summary failed for episode {episode.id}: {e}")
            return self._fail(summary.id, str(e))
        except Exception as e:
            logger.error(f"{level.value} summary crashed for episode {episode.id}: {e}")
            return self._fail(summary.id, f"Summary generation failed: {e}")

        with get_db() as conn:
            repo = SummaryRepository(conn)
            stored = repo.mark_ready(summary.id, content)
            result = repo.get_by_id(summary.id)

        if not stored:
            logger.warning(f"Summary {summary.id} was no longer processing, result discarded")
            return result

        logger.info(f"{level.value} summary ready for episode {episode.id} ({language})")
        if self.notify:
            await notify_summary_ready(episode.id, level.value, language)
        return result

    async def request_summary(
        self, episode: Episode, level: SummaryLevel, language: str | None = None
    ) -> dict:
        """Request a summary and run the work inline if this call claimed it.

        Returns:
            {"status", "content", "error"?} for the summary after the call.
        """
        language = self.resolve_language(episode, language)
        summary, claimed = self.submit(episode, level, language)
        if claimed:
            summary = await self.run(summary, episode)
        return summary_response(summary)

    def get_status(self, episode_id: str, language: str) -> dict:
        """Read transcript and summary statuses for an episode. No side effects."""
        with get_db() as conn:
            transcript = TranscriptRepository(conn).get(episode_id, language)
            summaries = {
                s.level: s for s in SummaryRepository(conn).get_by_episode(episode_id, language)
            }

        def level_status(level: SummaryLevel) -> dict:
            summary = summaries.get(level)
            if summary is None:
                return {"status": SummaryStatus.NOT_READY.value, "content": None, "updated_at": None}
            return {
                "status": summary.status.value,
                "content": summary.content_data if summary.status == SummaryStatus.READY else None,
                "updated_at": summary.updated_at.isoformat(),
            }

        return {
            "episode_id": episode_id,
            "transcript": {
                "status": transcript.status.value if transcript else TranscriptStatus.NOT_READY.value,
                "language": language,
            },
            "summaries": {
                SummaryLevel.QUICK.value: level_status(SummaryLevel.QUICK),
                SummaryLevel.DEEP.value: level_status(SummaryLevel.DEEP),
            },
        }

    def _set_status(self, summary_id: int, status: SummaryStatus) -> None:
        with get_db() as conn:
            SummaryRepository(conn).update_status(summary_id, status)

    def _fail(self, summary_id: int, message: str) -> Summary:
        with get_db() as conn:
            repo = SummaryRepository(conn)
            repo.mark_failed(summary_id, message)
            return repo.get_by_id(summary_id)
