"""System API endpoints."""

from typing import Literal

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from castdigest.db.config import get_db_config
from castdigest.db.connection import get_db
from castdigest.db.models import SummaryStatus, TranscriptStatus
from castdigest.db.repository import SummaryRepository, TranscriptRepository
from castdigest.transcription.providers import get_available_providers

router = APIRouter(prefix="/api", tags=["system"])


class TranscriptCounts(BaseModel):
    """Transcript counts by status."""

    not_ready: int = 0
    queued: int = 0
    transcribing: int = 0
    ready: int = 0
    failed: int = 0
    total: int = 0


class SummaryCounts(BaseModel):
    """Summary counts by status."""

    not_ready: int = 0
    queued: int = 0
    transcribing: int = 0
    summarizing: int = 0
    ready: int = 0
    failed: int = 0
    total: int = 0


class SystemStatus(BaseModel):
    """System status response."""

    transcript_counts: TranscriptCounts
    summary_counts: SummaryCounts
    providers: list[str]
    database_path: str


@router.get("/status", response_model=SystemStatus)
def get_status():
    """Get system status."""
    with get_db() as conn:
        transcript_counts = TranscriptRepository(conn).count_by_status()
        summary_counts = SummaryRepository(conn).count_by_status()

    transcripts = TranscriptCounts(
        **{status.value: transcript_counts.get(status.value, 0) for status in TranscriptStatus}
    )
    transcripts.total = sum(transcript_counts.values())

    summaries = SummaryCounts(
        **{status.value: summary_counts.get(status.value, 0) for status in SummaryStatus}
    )
    summaries.total = sum(summary_counts.values())

    return SystemStatus(
        transcript_counts=transcripts,
        summary_counts=summaries,
        providers=get_available_providers(),
        database_path=str(get_db_config().database_path),
    )


class HealthCheck(BaseModel):
    """Health check response."""

    status: Literal["healthy", "unhealthy"]
    database: bool
    message: str | None = None


@router.get("/health", response_model=HealthCheck)
def health_check():
    """Health check endpoint for load balancers and monitoring.

    Returns 200 if healthy, 503 if unhealthy.
    """
    try:
        with get_db() as conn:
            conn.execute("SELECT 1")
    except Exception as e:
        response = HealthCheck(status="unhealthy", database=False, message=f"Database: {e}")
        return JSONResponse(content=response.model_dump(), status_code=503)

    return HealthCheck(status="healthy", database=True)
