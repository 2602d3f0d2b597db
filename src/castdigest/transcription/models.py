"""Value objects passed between the transcript providers and the engine."""

from dataclasses import asdict, dataclass, field
from typing import Optional


@dataclass
class Episode:
    """Episode as supplied by the catalog (read-only here)."""

    id: str
    title: str
    audio_url: str
    transcript_url: Optional[str] = None
    podcast_title: Optional[str] = None
    language: Optional[str] = None


@dataclass
class Utterance:
    """One timestamped, speaker-attributed span of transcript text."""

    start: float
    end: float
    speaker: int
    text: str
    confidence: float = 1.0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class DiarizedTranscript:
    """Speaker-attributed transcript."""

    utterances: list[Utterance]
    full_text: str
    duration: float
    speaker_count: int


@dataclass
class AcquiredTranscript:
    """Normalized result returned by a transcript provider.

    Attributes:
        text: Plain transcript text.
        provider: Source identifier (e.g., 'transcript_url:vtt', 'apple', 'deepgram').
        utterances: Diarized utterances, when the source carries timing.
    """

    text: str
    provider: str
    utterances: list[Utterance] = field(default_factory=list)

    @classmethod
    def from_diarized(cls, transcript: DiarizedTranscript, provider: str) -> "AcquiredTranscript":
        return cls(text=transcript.full_text, provider=provider, utterances=transcript.utterances)
