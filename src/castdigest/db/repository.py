"""Repository classes for database operations."""

import json
import logging
import sqlite3
from datetime import datetime, timedelta
from typing import Optional

from castdigest.db.models import (
    Summary,
    SummaryLevel,
    SummaryStatus,
    Transcript,
    TranscriptStatus,
)

logger = logging.getLogger(__name__)

# Statuses a record may be re-claimed from (a fresh attempt restarts at queued)
_RETRYABLE = (TranscriptStatus.FAILED.value, TranscriptStatus.NOT_READY.value)


class TranscriptRepository:
    """Repository for Transcript records."""

    # Columns in the order expected by Transcript.from_row
    TRANSCRIPT_COLUMNS = """id, episode_id, language, status, full_text, utterances,
                            provider, error_message, created_at, updated_at"""

    _PROCESSING = (TranscriptStatus.QUEUED.value, TranscriptStatus.TRANSCRIBING.value)

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def get_by_id(self, transcript_id: int) -> Optional[Transcript]:
        """Get transcript by ID."""
        cursor = self.conn.execute(
            f"SELECT {self.TRANSCRIPT_COLUMNS} FROM transcript WHERE id = ?",
            (transcript_id,),
        )
        row = cursor.fetchone()
        return Transcript.from_row(row) if row else None

    def get(self, episode_id: str, language: str) -> Optional[Transcript]:
        """Get the transcript for an episode and language."""
        cursor = self.conn.execute(
            f"""
            SELECT {self.TRANSCRIPT_COLUMNS} FROM transcript
            WHERE episode_id = ? AND language = ?
            """,
            (episode_id, language),
        )
        row = cursor.fetchone()
        return Transcript.from_row(row) if row else None

    def claim(self, episode_id: str, language: str) -> Optional[Transcript]:
        """Claim the (episode, language) key for a new acquisition attempt.

        Inserts a queued record. If one already exists, it is only taken over
        when it is failed or not_ready. The uniqueness constraint decides the
        winner between concurrent callers, including callers in other processes.

        Returns:
            The claimed transcript, or None if another caller owns the key.
        """
        now = datetime.utcnow().isoformat()
        try:
            cursor = self.conn.execute(
                """
                INSERT INTO transcript (episode_id, language, status, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (episode_id, language, TranscriptStatus.QUEUED.value, now, now),
            )
            self.conn.commit()
            return self.get_by_id(cursor.lastrowid)
        except sqlite3.IntegrityError:
            self.conn.rollback()

        cursor = self.conn.execute(
            f"""
            UPDATE transcript
            SET status = ?, full_text = NULL, utterances = NULL, provider = NULL,
                error_message = NULL, updated_at = ?
            WHERE episode_id = ? AND language = ? AND status IN ({", ".join("?" * len(_RETRYABLE))})
            """,
            (TranscriptStatus.QUEUED.value, now, episode_id, language, *_RETRYABLE),
        )
        self.conn.commit()
        if cursor.rowcount != 1:
            return None
        return self.get(episode_id, language)

    def update_status(self, transcript_id: int, status: TranscriptStatus) -> None:
        """Update transcript status."""
        now = datetime.utcnow().isoformat()
        self.conn.execute(
            "UPDATE transcript SET status = ?, updated_at = ? WHERE id = ?",
            (status.value, now, transcript_id),
        )
        self.conn.commit()

    def mark_ready(
        self,
        transcript_id: int,
        full_text: str,
        utterances: list[dict] | None,
        provider: str,
    ) -> bool:
        """Persist acquired text and set status ready.

        Returns:
            False if the record was no longer processing (e.g. reaped as stale).
        """
        now = datetime.utcnow().isoformat()
        cursor = self.conn.execute(
            """
            UPDATE transcript
            SET status = ?, full_text = ?, utterances = ?, provider = ?,
                error_message = NULL, updated_at = ?
            WHERE id = ? AND status IN (?, ?)
            """,
            (
                TranscriptStatus.READY.value,
                full_text,
                json.dumps(utterances) if utterances else None,
                provider,
                now,
                transcript_id,
                *self._PROCESSING,
            ),
        )
        self.conn.commit()
        return cursor.rowcount > 0

    def mark_failed(self, transcript_id: int, error_message: str) -> None:
        """Set status failed with a human-readable message."""
        now = datetime.utcnow().isoformat()
        self.conn.execute(
            """
            UPDATE transcript
            SET status = ?, error_message = ?, updated_at = ?
            WHERE id = ? AND status IN (?, ?)
            """,
            (TranscriptStatus.FAILED.value, error_message, now, transcript_id, *self._PROCESSING),
        )
        self.conn.commit()

    def count_by_status(self) -> dict[str, int]:
        """Count transcripts by status."""
        cursor = self.conn.execute("SELECT status, COUNT(*) FROM transcript GROUP BY status")
        return dict(cursor.fetchall())

    def fail_stale(self, threshold_minutes: int) -> int:
        """Fail transcripts stuck in a processing status.

        Returns:
            Number of transcripts marked failed.
        """
        threshold = (datetime.utcnow() - timedelta(minutes=threshold_minutes)).isoformat()
        now = datetime.utcnow().isoformat()
        cursor = self.conn.execute(
            """
            UPDATE transcript
            SET status = ?, error_message = 'Transcription timed out', updated_at = ?
            WHERE status IN (?, ?) AND updated_at < ?
            """,
            (TranscriptStatus.FAILED.value, now, *self._PROCESSING, threshold),
        )
        self.conn.commit()
        return cursor.rowcount


class SummaryRepository:
    """Repository for Summary records."""

    # Columns in the order expected by Summary.from_row
    SUMMARY_COLUMNS = """id, episode_id, level, language, status, content,
                         error_message, created_at, updated_at"""

    _PROCESSING = (
        SummaryStatus.QUEUED.value,
        SummaryStatus.TRANSCRIBING.value,
        SummaryStatus.SUMMARIZING.value,
    )

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def get_by_id(self, summary_id: int) -> Optional[Summary]:
        """Get summary by ID."""
        cursor = self.conn.execute(
            f"SELECT {self.SUMMARY_COLUMNS} FROM summary WHERE id = ?",
            (summary_id,),
        )
        row = cursor.fetchone()
        return Summary.from_row(row) if row else None

    def get(self, episode_id: str, level: SummaryLevel, language: str) -> Optional[Summary]:
        """Get the summary for an episode, level and language."""
        cursor = self.conn.execute(
            f"""
            SELECT {self.SUMMARY_COLUMNS} FROM summary
            WHERE episode_id = ? AND level = ? AND language = ?
            """,
            (episode_id, level.value, language),
        )
        row = cursor.fetchone()
        return Summary.from_row(row) if row else None

    def get_by_episode(self, episode_id: str, language: str) -> list[Summary]:
        """Get all summary levels for an episode."""
        cursor = self.conn.execute(
            f"""
            SELECT {self.SUMMARY_COLUMNS} FROM summary
            WHERE episode_id = ? AND language = ?
            ORDER BY level
            """,
            (episode_id, language),
        )
        return [Summary.from_row(row) for row in cursor.fetchall()]

    def claim(self, episode_id: str, level: SummaryLevel, language: str) -> Optional[Summary]:
        """Claim the (episode, level, language) key for a new generation attempt.

        Same contract as TranscriptRepository.claim.
        """
        now = datetime.utcnow().isoformat()
        try:
            cursor = self.conn.execute(
                """
                INSERT INTO summary (episode_id, level, language, status, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (episode_id, level.value, language, SummaryStatus.QUEUED.value, now, now),
            )
            self.conn.commit()
            return self.get_by_id(cursor.lastrowid)
        except sqlite3.IntegrityError:
            self.conn.rollback()

        cursor = self.conn.execute(
            f"""
            UPDATE summary
            SET status = ?, content = NULL, error_message = NULL, updated_at = ?
            WHERE episode_id = ? AND level = ? AND language = ?
              AND status IN ({", ".join("?" * len(_RETRYABLE))})
            """,
            (SummaryStatus.QUEUED.value, now, episode_id, level.value, language, *_RETRYABLE),
        )
        self.conn.commit()
        if cursor.rowcount != 1:
            return None
        return self.get(episode_id, level, language)

    def update_status(self, summary_id: int, status: SummaryStatus) -> None:
        """Advance a processing summary to another processing status."""
        now = datetime.utcnow().isoformat()
        self.conn.execute(
            """
            UPDATE summary SET status = ?, updated_at = ?
            WHERE id = ? AND status IN (?, ?, ?)
            """,
            (status.value, now, summary_id, *self._PROCESSING),
        )
        self.conn.commit()

    def mark_ready(self, summary_id: int, content: dict) -> bool:
        """Persist structured content and set status ready.

        Returns:
            False if the record was no longer processing.
        """
        now = datetime.utcnow().isoformat()
        cursor = self.conn.execute(
            """
            UPDATE summary
            SET status = ?, content = ?, error_message = NULL, updated_at = ?
            WHERE id = ? AND status IN (?, ?, ?)
            """,
            (SummaryStatus.READY.value, json.dumps(content), now, summary_id, *self._PROCESSING),
        )
        self.conn.commit()
        return cursor.rowcount > 0

    def mark_failed(self, summary_id: int, error_message: str) -> None:
        """Set status failed with a human-readable message."""
        now = datetime.utcnow().isoformat()
        self.conn.execute(
            """
            UPDATE summary
            SET status = ?, error_message = ?, updated_at = ?
            WHERE id = ? AND status IN (?, ?, ?)
            """,
            (SummaryStatus.FAILED.value, error_message, now, summary_id, *self._PROCESSING),
        )
        self.conn.commit()

    def count_by_status(self) -> dict[str, int]:
        """Count summaries by status."""
        cursor = self.conn.execute("SELECT status, COUNT(*) FROM summary GROUP BY status")
        return dict(cursor.fetchall())

    def fail_stale(self, threshold_minutes: int) -> int:
        """Fail summaries stuck in a processing status.

        Returns:
            Number of summaries marked failed.
        """
        threshold = (datetime.utcnow() - timedelta(minutes=threshold_minutes)).isoformat()
        now = datetime.utcnow().isoformat()
        cursor = self.conn.execute(
            """
            UPDATE summary
            SET status = ?, error_message = 'Summary generation timed out', updated_at = ?
            WHERE status IN (?, ?, ?) AND updated_at < ?
            """,
            (SummaryStatus.FAILED.value, now, *self._PROCESSING, threshold),
        )
        self.conn.commit()
        return cursor.rowcount


class SettingsRepository:
    """Repository for runtime settings overrides."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def get(self, key: str) -> Optional[str]:
        """Get a setting value by key."""
        cursor = self.conn.execute(
            "SELECT value FROM settings WHERE key = ?",
            (key,),
        )
        row = cursor.fetchone()
        return row[0] if row else None

    def get_all(self) -> dict[str, str]:
        """Get all settings as a dictionary."""
        cursor = self.conn.execute("SELECT key, value FROM settings")
        return dict(cursor.fetchall())

    def set(self, key: str, value: str) -> None:
        """Set a setting value (insert or update)."""
        now = datetime.utcnow().isoformat()
        self.conn.execute(
            """
            INSERT INTO settings (key, value, updated_at)
            VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET value = ?, updated_at = ?
            """,
            (key, value, now, value, now),
        )
        self.conn.commit()

    def delete(self, key: str) -> bool:
        """Delete a setting (revert to default)."""
        cursor = self.conn.execute("DELETE FROM settings WHERE key = ?", (key,))
        self.conn.commit()
        return cursor.rowcount > 0
