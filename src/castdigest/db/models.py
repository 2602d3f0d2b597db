"""Data models for the database layer."""

import json
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class TranscriptStatus(str, Enum):
    """Transcript acquisition status."""

    NOT_READY = "not_ready"
    QUEUED = "queued"
    TRANSCRIBING = "transcribing"
    READY = "ready"
    FAILED = "failed"

    @property
    def is_processing(self) -> bool:
        return self in (TranscriptStatus.QUEUED, TranscriptStatus.TRANSCRIBING)


class SummaryStatus(str, Enum):
    """Summary generation status."""

    NOT_READY = "not_ready"
    QUEUED = "queued"
    TRANSCRIBING = "transcribing"
    SUMMARIZING = "summarizing"
    READY = "ready"
    FAILED = "failed"

    @property
    def is_processing(self) -> bool:
        return self in (
            SummaryStatus.QUEUED,
            SummaryStatus.TRANSCRIBING,
            SummaryStatus.SUMMARIZING,
        )


class SummaryLevel(str, Enum):
    """Summary depth."""

    QUICK = "quick"
    DEEP = "deep"


def _parse_json(value: Optional[str]):
    if not value:
        return None
    try:
        return json.loads(value)
    except (json.JSONDecodeError, TypeError):
        return None


@dataclass
class Transcript:
    """Transcript record, one per (episode, language)."""

    id: Optional[int]
    episode_id: str
    language: str
    status: TranscriptStatus
    full_text: Optional[str]
    utterances: Optional[str]  # JSON string
    provider: Optional[str]
    error_message: Optional[str]
    created_at: datetime
    updated_at: datetime

    @property
    def utterance_list(self) -> list[dict]:
        """Parse the diarized payload JSON to a list."""
        return _parse_json(self.utterances) or []

    @classmethod
    def from_row(cls, row: tuple) -> "Transcript":
        """Create Transcript from database row."""
        return cls(
            id=row[0],
            episode_id=row[1],
            language=row[2],
            status=TranscriptStatus(row[3]),
            full_text=row[4],
            utterances=row[5],
            provider=row[6],
            error_message=row[7],
            created_at=datetime.fromisoformat(row[8]),
            updated_at=datetime.fromisoformat(row[9]),
        )


@dataclass
class Summary:
    """Summary record, one per (episode, level, language)."""

    id: Optional[int]
    episode_id: str
    level: SummaryLevel
    language: str
    status: SummaryStatus
    content: Optional[str]  # JSON string
    error_message: Optional[str]
    created_at: datetime
    updated_at: datetime

    @property
    def content_data(self) -> Optional[dict]:
        """Parse content JSON; only meaningful once ready."""
        return _parse_json(self.content)

    @classmethod
    def from_row(cls, row: tuple) -> "Summary":
        """Create Summary from database row."""
        return cls(
            id=row[0],
            episode_id=row[1],
            level=SummaryLevel(row[2]),
            language=row[3],
            status=SummaryStatus(row[4]),
            content=row[5],
            error_message=row[6],
            created_at=datetime.fromisoformat(row[7]),
            updated_at=datetime.fromisoformat(row[8]),
        )
