"""Tests for the HTTP API."""

import pytest
from conftest import QUICK_CONTENT, FakeProvider, FakeSummarizer
from fastapi.testclient import TestClient

from castdigest.api.summaries import get_coordinator
from castdigest.main import app
from castdigest.summary.coordinator import SummaryCoordinator
from castdigest.transcription.service import TranscriptAcquisitionEngine


@pytest.fixture
def provider():
    return FakeProvider("transcript_url")


@pytest.fixture
def client(provider):
    coordinator = SummaryCoordinator(
        engine=TranscriptAcquisitionEngine([provider]),
        summarizer=FakeSummarizer(),
        notify=False,
    )
    app.dependency_overrides[get_coordinator] = lambda: coordinator
    yield TestClient(app)
    app.dependency_overrides.clear()


REQUEST = {
    "level": "quick",
    "language": "en",
    "audio_url": "https://cdn.example.com/ep-1.mp3",
    "transcript_url": "https://host.example.com/ep-1.vtt",
    "podcast_title": "Builders Weekly",
    "episode_title": "How Small Teams Ship",
}


class TestSummariesApi:
    """Tests for the summary endpoints."""

    def test_status_before_any_request(self, client):
        response = client.get("/api/episodes/ep-1/summaries")

        assert response.status_code == 200
        data = response.json()
        assert data["episode_id"] == "ep-1"
        assert data["transcript"] == {"status": "not_ready", "language": "en"}
        assert data["summaries"]["quick"]["status"] == "not_ready"
        assert data["summaries"]["deep"]["content"] is None

    def test_request_then_poll(self, client, provider):
        response = client.post("/api/episodes/ep-1/summaries", json=REQUEST)

        assert response.status_code == 200
        assert response.json()["status"] == "queued"

        # Background work has completed once TestClient returns
        data = client.get("/api/episodes/ep-1/summaries?language=en").json()
        assert data["transcript"]["status"] == "ready"
        assert data["summaries"]["quick"]["status"] == "ready"
        assert data["summaries"]["quick"]["content"] == QUICK_CONTENT
        assert data["summaries"]["deep"]["status"] == "not_ready"
        assert provider.calls == 1

    def test_repeat_request_returns_ready_content(self, client, provider):
        client.post("/api/episodes/ep-1/summaries", json=REQUEST)
        response = client.post("/api/episodes/ep-1/summaries", json=REQUEST)

        assert response.json() == {"status": "ready", "content": QUICK_CONTENT, "error": None}
        assert provider.calls == 1

    def test_invalid_level(self, client):
        response = client.post("/api/episodes/ep-1/summaries", json={**REQUEST, "level": "medium"})

        assert response.status_code == 400

    def test_failed_summary_reports_error(self, client, provider):
        from castdigest.transcription.providers import ProviderResult

        provider.result = ProviderResult.failure("No transcript source available")
        client.post("/api/episodes/ep-1/summaries", json=REQUEST)

        response = client.post("/api/episodes/ep-1/summaries", json=REQUEST)
        # Failed summaries are retried on request; the retry fails again in the background
        assert response.json()["status"] == "queued"

        data = client.get("/api/episodes/ep-1/summaries").json()
        assert data["summaries"]["quick"]["status"] == "failed"
        assert data["transcript"]["status"] == "failed"


class TestTranscriptApi:
    """Tests for the transcript endpoint."""

    def test_not_found(self, client):
        assert client.get("/api/episodes/ep-1/transcript").status_code == 404

    def test_ready_transcript(self, client):
        client.post("/api/episodes/ep-1/summaries", json=REQUEST)

        response = client.get("/api/episodes/ep-1/transcript")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ready"
        assert data["provider"] == "transcript_url"
        assert data["utterances"][0]["speaker"] == 1


class TestSystemApi:
    """Tests for system endpoints."""

    def test_status_counts(self, client):
        client.post("/api/episodes/ep-1/summaries", json=REQUEST)
        client.post("/api/episodes/ep-1/summaries", json={**REQUEST, "level": "deep"})

        data = client.get("/api/status").json()

        assert data["transcript_counts"]["ready"] == 1
        assert data["transcript_counts"]["total"] == 1
        assert data["summary_counts"]["ready"] == 2
        assert data["providers"] == ["transcript_url", "apple", "deepgram"]

    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json()["database"] is True
