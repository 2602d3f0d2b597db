"""Database module."""

from castdigest.db.connection import get_connection, get_db, init_db
from castdigest.db.models import (
    Summary,
    SummaryLevel,
    SummaryStatus,
    Transcript,
    TranscriptStatus,
)
from castdigest.db.repository import SummaryRepository, TranscriptRepository

__all__ = [
    "get_connection",
    "get_db",
    "init_db",
    "Transcript",
    "TranscriptStatus",
    "Summary",
    "SummaryLevel",
    "SummaryStatus",
    "TranscriptRepository",
    "SummaryRepository",
]
