"""Pytest fixtures for castdigest tests."""

import asyncio
import json

import pytest

from castdigest.config.settings import reload_settings
from castdigest.db.config import reload_db_config
from castdigest.db.connection import get_connection, init_db
from castdigest.db.repository import SettingsRepository, SummaryRepository, TranscriptRepository
from castdigest.transcription.models import AcquiredTranscript, Episode, Utterance
from castdigest.transcription.providers.base import ProviderResult, TranscriptProvider

QUICK_CONTENT = {
    "hook_headline": "Why small teams ship faster",
    "executive_brief": "Two founders compare notes on shipping. They agree scope is the enemy.",
    "golden_nugget": "Cut scope before you cut quality.",
    "perfect_for": "Engineering leads at early-stage startups.",
    "tags": ["startups", "shipping", "teams"],
}

DEEP_CONTENT = {
    "comprehensive_overview": "A long conversation about how small teams ship software.",
    "core_concepts": [
        {
            "concept": "Scope control",
            "explanation": "Deciding what not to build.",
            "quote_reference": "Every feature is a liability.",
        },
        {"concept": "Feedback loops", "explanation": "Shorter loops mean faster learning."},
    ],
    "chronological_breakdown": [
        {"timestamp_description": "Opening", "content": "Introductions and background."},
        {"timestamp_description": "Middle", "content": "War stories about missed deadlines."},
    ],
    "contrarian_views": ["Estimates are mostly useless."],
    "actionable_takeaways": ["Ship weekly", {"text": "Write down what you will not build"}],
}

TRANSCRIPT_TEXT = "[00:00] [Speaker 1] Welcome to the show. Today we talk about shipping software."


@pytest.fixture(autouse=True)
def db_path(tmp_path, monkeypatch):
    """Point every test at a fresh SQLite database with fast, credential-free settings."""
    path = tmp_path / "castdigest.db"
    monkeypatch.setenv("DATABASE_PATH", str(path))
    monkeypatch.setenv("APPLE_BEARER_TOKEN", "")
    monkeypatch.setenv("DEEPGRAM_API_KEY", "")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "")
    monkeypatch.setenv("NTFY_ENABLED", "false")
    monkeypatch.setenv("TRANSCRIPT_POLL_INTERVAL_SECONDS", "0.01")
    monkeypatch.setenv("DEEPGRAM_RETRY_WAIT", "0")

    reload_db_config()
    init_db()
    reload_settings()

    yield path


@pytest.fixture
def db_conn(db_path):
    """Raw connection to the test database."""
    conn = get_connection()
    yield conn
    conn.close()


@pytest.fixture
def transcript_repo(db_conn):
    """Create a TranscriptRepository instance."""
    return TranscriptRepository(db_conn)


@pytest.fixture
def summary_repo(db_conn):
    """Create a SummaryRepository instance."""
    return SummaryRepository(db_conn)


@pytest.fixture
def settings_repo(db_conn):
    """Create a SettingsRepository instance."""
    return SettingsRepository(db_conn)


@pytest.fixture
def episode():
    """A catalog episode with no pre-supplied transcript."""
    return Episode(
        id="ep-123",
        title="How Small Teams Ship",
        audio_url="https://cdn.example.com/episodes/ep-123.mp3",
        podcast_title="Builders Weekly",
    )


def hit(text: str = TRANSCRIPT_TEXT, provider: str = "fake") -> ProviderResult:
    """Build a HIT result with one utterance."""
    return ProviderResult.hit(
        AcquiredTranscript(
            text=text,
            provider=provider,
            utterances=[Utterance(start=0.0, end=4.5, speaker=1, text=text)],
        )
    )


class FakeProvider(TranscriptProvider):
    """Provider returning a canned result and counting calls."""

    def __init__(self, source_id="fake", result=None, delay=0.0, applicable=True, on_acquire=None):
        self._source_id = source_id
        self.result = result if result is not None else hit(provider=source_id)
        self.delay = delay
        self.applicable = applicable
        self.on_acquire = on_acquire
        self.calls = 0

    @property
    def source_id(self) -> str:
        return self._source_id

    def can_provide(self, episode: Episode) -> bool:
        return self.applicable

    async def acquire(self, episode: Episode, language: str) -> ProviderResult:
        self.calls += 1
        if self.on_acquire:
            self.on_acquire()
        if self.delay:
            await asyncio.sleep(self.delay)
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


class FakeSummarizer:
    """Summarizer returning canned JSON per level.

    Levels listed in fail_levels raise instead of answering.
    """

    def __init__(self, fail_levels=(), replies=None, on_complete=None):
        self.fail_levels = set(fail_levels)
        self.replies = replies or {}
        self.on_complete = on_complete
        self.calls: list[tuple[str, int]] = []

    async def complete(self, prompt: str, max_tokens: int) -> str:
        level = "quick" if '"hook_headline"' in prompt else "deep"
        self.calls.append((level, max_tokens))
        if self.on_complete:
            self.on_complete()
        if level in self.fail_levels:
            raise RuntimeError(f"{level} summarizer unavailable")
        if level in self.replies:
            return self.replies[level]
        return json.dumps(QUICK_CONTENT if level == "quick" else DEEP_CONTENT)
