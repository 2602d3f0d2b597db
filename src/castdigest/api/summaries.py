"""Summary and transcript API endpoints."""

from typing import Any, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from pydantic import BaseModel

from castdigest.config.settings import get_settings
from castdigest.db.connection import get_db
from castdigest.db.models import SummaryLevel
from castdigest.db.repository import TranscriptRepository
from castdigest.summary.coordinator import SummaryCoordinator, summary_response
from castdigest.transcription.models import Episode

router = APIRouter(prefix="/api", tags=["summaries"])

_coordinator: SummaryCoordinator | None = None


def get_coordinator() -> SummaryCoordinator:
    """Shared coordinator instance (overridable in tests)."""
    global _coordinator
    if _coordinator is None:
        _coordinator = SummaryCoordinator()
    return _coordinator


class TranscriptState(BaseModel):
    status: str
    language: str


class LevelState(BaseModel):
    status: str
    content: Optional[dict[str, Any]] = None
    updated_at: Optional[str] = None


class SummariesStatusResponse(BaseModel):
    """Transcript and summary statuses for an episode."""

    episode_id: str
    transcript: TranscriptState
    summaries: dict[str, LevelState]


class SummaryRequest(BaseModel):
    """Request body for a summary.

    Episode fields come from the catalog; podcast and episode titles enable
    matching against external transcript sources.
    """

    level: str
    language: Optional[str] = None
    audio_url: str
    transcript_url: Optional[str] = None
    podcast_title: Optional[str] = None
    episode_title: Optional[str] = None


class SummaryRequestResponse(BaseModel):
    status: str
    content: Optional[dict[str, Any]] = None
    error: Optional[str] = None


class TranscriptResponse(BaseModel):
    """Persisted transcript for an episode."""

    episode_id: str
    language: str
    status: str
    provider: Optional[str]
    full_text: Optional[str]
    utterances: list[dict[str, Any]]
    error_message: Optional[str]
    updated_at: str


def _parse_level(level: str) -> SummaryLevel:
    try:
        return SummaryLevel(level)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid summary level: {level}")


@router.get("/episodes/{episode_id}/summaries", response_model=SummariesStatusResponse)
def get_summaries_status(
    episode_id: str,
    language: Optional[str] = None,
    coordinator: SummaryCoordinator = Depends(get_coordinator),
):
    """Get transcript and summary statuses. Never starts work."""
    language = language or get_settings().default_language
    return coordinator.get_status(episode_id, language)


@router.post("/episodes/{episode_id}/summaries", response_model=SummaryRequestResponse)
def request_summary(
    episode_id: str,
    request: SummaryRequest,
    background_tasks: BackgroundTasks,
    coordinator: SummaryCoordinator = Depends(get_coordinator),
):
    """Request a summary level for an episode.

    Returns the current state immediately; claimed work runs in the background
    and progress is polled through the status endpoint.
    """
    level = _parse_level(request.level)
    episode = Episode(
        id=episode_id,
        title=request.episode_title or "",
        audio_url=request.audio_url,
        transcript_url=request.transcript_url,
        podcast_title=request.podcast_title,
        language=request.language,
    )
    language = coordinator.resolve_language(episode, request.language)

    summary, claimed = coordinator.submit(episode, level, language)
    if claimed:
        background_tasks.add_task(coordinator.run, summary, episode)

    return summary_response(summary)


@router.get("/episodes/{episode_id}/transcript", response_model=TranscriptResponse)
def get_transcript(episode_id: str, language: Optional[str] = None):
    """Get the persisted transcript for an episode."""
    language = language or get_settings().default_language

    with get_db() as conn:
        transcript = TranscriptRepository(conn).get(episode_id, language)

    if not transcript:
        raise HTTPException(status_code=404, detail="Transcript not found")

    return TranscriptResponse(
        episode_id=transcript.episode_id,
        language=transcript.language,
        status=transcript.status.value,
        provider=transcript.provider,
        full_text=transcript.full_text,
        utterances=transcript.utterance_list,
        error_message=transcript.error_message,
        updated_at=transcript.updated_at.isoformat(),
    )
