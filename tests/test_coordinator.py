"""Tests for the generation status coordinator."""

import asyncio
import json

import pytest
from conftest import DEEP_CONTENT, QUICK_CONTENT, FakeProvider, FakeSummarizer

from castdigest.db.connection import get_db
from castdigest.db.models import SummaryLevel, SummaryStatus, TranscriptStatus
from castdigest.db.repository import SummaryRepository
from castdigest.summary.coordinator import SummaryCoordinator
from castdigest.transcription.providers import ProviderResult
from castdigest.transcription.service import TranscriptAcquisitionEngine

ORDER = ["not_ready", "queued", "transcribing", "summarizing", "ready"]


def make_coordinator(provider=None, summarizer=None):
    provider = provider or FakeProvider("transcript_url")
    summarizer = summarizer or FakeSummarizer()
    engine = TranscriptAcquisitionEngine([provider])
    return SummaryCoordinator(engine=engine, summarizer=summarizer, notify=False), provider, summarizer


def summary_status(episode_id: str, level: SummaryLevel, language: str = "en") -> str | None:
    with get_db() as conn:
        summary = SummaryRepository(conn).get(episode_id, level, language)
    return summary.status.value if summary else None


class TestRequestSummary:
    """Tests for request_summary."""

    @pytest.mark.asyncio
    async def test_generates_quick_summary(self, episode):
        coordinator, provider, summarizer = make_coordinator()

        result = await coordinator.request_summary(episode, SummaryLevel.QUICK, "en")

        assert result["status"] == "ready"
        assert result["content"] == QUICK_CONTENT
        assert summarizer.calls == [("quick", 1500)]

    @pytest.mark.asyncio
    async def test_generates_deep_summary(self, episode):
        coordinator, _, summarizer = make_coordinator()

        result = await coordinator.request_summary(episode, SummaryLevel.DEEP, "en")

        assert result["status"] == "ready"
        assert result["content"] == DEEP_CONTENT
        assert summarizer.calls == [("deep", 4000)]

    @pytest.mark.asyncio
    async def test_idempotent_when_ready(self, episode):
        coordinator, provider, summarizer = make_coordinator()

        first = await coordinator.request_summary(episode, SummaryLevel.QUICK, "en")
        second = await coordinator.request_summary(episode, SummaryLevel.QUICK, "en")

        assert second == first
        assert len(summarizer.calls) == 1
        assert provider.calls == 1

    @pytest.mark.asyncio
    async def test_levels_share_one_transcript(self, episode):
        coordinator, provider, summarizer = make_coordinator()

        await coordinator.request_summary(episode, SummaryLevel.QUICK, "en")
        await coordinator.request_summary(episode, SummaryLevel.DEEP, "en")

        assert provider.calls == 1
        assert [level for level, _ in summarizer.calls] == ["quick", "deep"]

    @pytest.mark.asyncio
    async def test_in_flight_returns_current_status(self, episode):
        coordinator, provider, summarizer = make_coordinator()
        coordinator.submit(episode, SummaryLevel.QUICK, "en")

        result = await coordinator.request_summary(episode, SummaryLevel.QUICK, "en")

        assert result == {"status": "queued", "content": None}
        assert provider.calls == 0
        assert summarizer.calls == []

    @pytest.mark.asyncio
    async def test_concurrent_requests_generate_once(self, episode):
        coordinator, provider, summarizer = make_coordinator(
            provider=FakeProvider("transcript_url", delay=0.05)
        )

        first, second = await asyncio.gather(
            coordinator.request_summary(episode, SummaryLevel.QUICK, "en"),
            coordinator.request_summary(episode, SummaryLevel.QUICK, "en"),
        )

        assert len(summarizer.calls) == 1
        assert provider.calls == 1
        assert {first["status"], second["status"]} == {"ready", "transcribing"}

    @pytest.mark.asyncio
    async def test_independent_summaries(self, episode):
        summarizer = FakeSummarizer()
        coordinator, _, _ = make_coordinator(summarizer=summarizer)

        await coordinator.request_summary(episode, SummaryLevel.QUICK, "en")
        with get_db() as conn:
            quick_before = SummaryRepository(conn).get(episode.id, SummaryLevel.QUICK, "en")

        summarizer.fail_levels = {"deep"}
        deep = await coordinator.request_summary(episode, SummaryLevel.DEEP, "en")

        with get_db() as conn:
            quick_after = SummaryRepository(conn).get(episode.id, SummaryLevel.QUICK, "en")

        assert deep["status"] == "failed"
        assert "deep summarizer unavailable" in deep["error"]
        assert quick_after.status == SummaryStatus.READY
        assert quick_after.content == quick_before.content
        assert quick_after.updated_at == quick_before.updated_at

    @pytest.mark.asyncio
    async def test_transcript_failure_propagates(self, episode):
        provider = FakeProvider("deepgram", result=ProviderResult.failure("Deepgram transcription failed: HTTP 500"))
        coordinator, _, summarizer = make_coordinator(provider=provider)

        result = await coordinator.request_summary(episode, SummaryLevel.QUICK, "en")

        assert result["status"] == "failed"
        assert result["error"] == "Transcript failed: Deepgram transcription failed: HTTP 500"
        assert summarizer.calls == []

    @pytest.mark.asyncio
    async def test_retry_after_failure_starts_fresh(self, episode):
        provider = FakeProvider("deepgram", result=ProviderResult.failure("HTTP 500"))
        coordinator, _, _ = make_coordinator(provider=provider)

        failed = await coordinator.request_summary(episode, SummaryLevel.QUICK, "en")
        provider.result = FakeProvider("deepgram").result
        retried = await coordinator.request_summary(episode, SummaryLevel.QUICK, "en")

        assert failed["status"] == "failed"
        assert retried["status"] == "ready"
        assert "error" not in retried
        assert provider.calls == 2

    @pytest.mark.asyncio
    async def test_invalid_content_is_failure(self, episode):
        summarizer = FakeSummarizer(replies={"quick": json.dumps({"hook_headline": "Only this"})})
        coordinator, _, _ = make_coordinator(summarizer=summarizer)

        result = await coordinator.request_summary(episode, SummaryLevel.QUICK, "en")

        assert result["status"] == "failed"
        assert "executive_brief" in result["error"]
        assert result["content"] is None

    @pytest.mark.asyncio
    async def test_language_defaults(self, episode):
        coordinator, _, _ = make_coordinator()

        await coordinator.request_summary(episode, SummaryLevel.QUICK)

        assert summary_status(episode.id, SummaryLevel.QUICK, "en") == "ready"


class TestStatusMonotonicity:
    """Status observed during one attempt only moves forward."""

    @pytest.mark.asyncio
    async def test_status_sequence(self, episode):
        observed = []

        def record():
            observed.append(summary_status(episode.id, SummaryLevel.QUICK))

        provider = FakeProvider("transcript_url", on_acquire=record)
        summarizer = FakeSummarizer(on_complete=record)
        coordinator, _, _ = make_coordinator(provider=provider, summarizer=summarizer)

        record()
        summary, claimed = coordinator.submit(episode, SummaryLevel.QUICK, "en")
        record()
        await coordinator.run(summary, episode)
        record()

        assert claimed is True
        assert observed == [None, "queued", "transcribing", "summarizing", "ready"]

    @pytest.mark.asyncio
    async def test_failed_sequence_is_prefix_then_failed(self, episode):
        observed = []

        def record():
            observed.append(summary_status(episode.id, SummaryLevel.DEEP))

        provider = FakeProvider("transcript_url", on_acquire=record)
        summarizer = FakeSummarizer(fail_levels={"deep"}, on_complete=record)
        coordinator, _, _ = make_coordinator(provider=provider, summarizer=summarizer)

        summary, _ = coordinator.submit(episode, SummaryLevel.DEEP, "en")
        record()
        await coordinator.run(summary, episode)
        record()

        assert observed[-1] == "failed"
        progress = observed[:-1]
        assert progress == ORDER[1 : 1 + len(progress)]


class TestGetStatus:
    """Tests for the side-effect-free status query."""

    def test_nothing_requested(self, episode):
        coordinator, provider, summarizer = make_coordinator()

        status = coordinator.get_status(episode.id, "en")

        assert status["transcript"] == {"status": "not_ready", "language": "en"}
        assert status["summaries"]["quick"] == {"status": "not_ready", "content": None, "updated_at": None}
        assert status["summaries"]["deep"]["status"] == "not_ready"
        assert provider.calls == 0
        assert summarizer.calls == []

    @pytest.mark.asyncio
    async def test_after_quick_ready(self, episode):
        coordinator, _, _ = make_coordinator()
        await coordinator.request_summary(episode, SummaryLevel.QUICK, "en")

        status = coordinator.get_status(episode.id, "en")

        assert status["transcript"]["status"] == TranscriptStatus.READY.value
        assert status["summaries"]["quick"]["status"] == "ready"
        assert status["summaries"]["quick"]["content"] == QUICK_CONTENT
        assert status["summaries"]["quick"]["updated_at"]
        assert status["summaries"]["deep"]["status"] == "not_ready"

    def test_processing_has_no_content(self, episode):
        coordinator, _, _ = make_coordinator()
        coordinator.submit(episode, SummaryLevel.DEEP, "en")

        status = coordinator.get_status(episode.id, "en")

        assert status["summaries"]["deep"]["status"] == "queued"
        assert status["summaries"]["deep"]["content"] is None
