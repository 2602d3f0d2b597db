"""Helpers shared by the transcript parsers: timestamps, speakers, splitting and rendering."""

import re

from castdigest.transcription.models import DiarizedTranscript, Utterance

_SENTENCE_BREAK_RE = re.compile(r"(?<=[.!?])\s+")
_TRAILING_DIGITS_RE = re.compile(r"(\d+)\s*$")


def parse_timestamp(value: str | None) -> float:
    """Parse a caption timestamp to seconds.

    Handles formats:
    - "HH:MM:SS.mmm" (also "HH:MM:SS,mmm" as used by SRT)
    - "MM:SS.mmm"
    - "SS.mmm", optionally suffixed with "s" or "ms"

    Returns 0.0 for anything unparseable.
    """
    if not value:
        return 0.0

    value = value.strip().replace(",", ".")
    try:
        if value.endswith("ms"):
            return float(value[:-2]) / 1000
        if value.endswith("s"):
            return float(value[:-1])

        parts = value.split(":")
        if len(parts) == 3:
            hours, minutes, seconds = int(parts[0]), int(parts[1]), float(parts[2])
            return hours * 3600 + minutes * 60 + seconds
        if len(parts) == 2:
            minutes, seconds = int(parts[0]), float(parts[1])
            return minutes * 60 + seconds
        if len(parts) == 1:
            return float(parts[0])
    except ValueError:
        pass
    return 0.0


def format_timestamp(seconds: float) -> str:
    """Format seconds as MM:SS, with minutes running past 59."""
    total = int(seconds)
    return f"{total // 60:02d}:{total % 60:02d}"


class SpeakerMap:
    """Map speaker labels to integer ids.

    Labels ending in a number ("SPEAKER_2", "Speaker 2") keep that number
    unless a named label already holds it. Named labels take the lowest id
    from 1 not used by any other label. A missing label is speaker 0.
    """

    def __init__(self):
        self._names: dict[str, int] = {}
        self._numbered: set[int] = set()

    def speaker_id(self, label: str | None) -> int:
        if not label or not label.strip():
            return 0
        label = label.strip()
        if label in self._names:
            return self._names[label]

        match = _TRAILING_DIGITS_RE.search(label)
        if match:
            number = int(match.group(1))
            if number not in self._names.values():
                self._numbered.add(number)
                return number

        taken = self._numbered | set(self._names.values())
        speaker = 1
        while speaker in taken:
            speaker += 1
        self._names[label] = speaker
        return speaker


def split_long_utterance(utterance: Utterance, max_chars: int) -> list[Utterance]:
    """Split an over-long utterance on sentence boundaries.

    Each fragment's times are interpolated from its character offset within
    the original span. Speaker is preserved; confidence is 1.0.
    """
    text = utterance.text
    total = len(text)
    if total <= max_chars:
        return [utterance]

    spans = []
    pos = 0
    for match in _SENTENCE_BREAK_RE.finditer(text):
        spans.append((pos, match.start()))
        pos = match.end()
    spans.append((pos, total))
    spans = [(s, e) for s, e in spans if text[s:e].strip()]

    if len(spans) <= 1:
        return [utterance]

    span = utterance.end - utterance.start
    fragments = []
    for s, e in spans:
        fragments.append(
            Utterance(
                start=round(utterance.start + (s / total) * span, 3),
                end=round(utterance.start + (e / total) * span, 3),
                speaker=utterance.speaker,
                text=text[s:e].strip(),
                confidence=1.0,
            )
        )
    return fragments


def render_blocks(utterances: list[Utterance]) -> str:
    """Render utterances as plain text.

    Consecutive utterances from the same speaker are merged into one block,
    prefixed with the block's start time and speaker.
    """
    blocks: list[tuple[float, int, list[str]]] = []
    for u in utterances:
        if blocks and blocks[-1][1] == u.speaker:
            blocks[-1][2].append(u.text)
        else:
            blocks.append((u.start, u.speaker, [u.text]))

    return "\n".join(
        f"[{format_timestamp(start)}] [Speaker {speaker}] {' '.join(texts)}"
        for start, speaker, texts in blocks
    )


def build_diarized(utterances: list[Utterance], max_chars: int | None = None) -> DiarizedTranscript:
    """Assemble a DiarizedTranscript, splitting long utterances if a limit is given."""
    if max_chars:
        split: list[Utterance] = []
        for u in utterances:
            split.extend(split_long_utterance(u, max_chars))
        utterances = split

    return DiarizedTranscript(
        utterances=utterances,
        full_text=render_blocks(utterances),
        duration=max((u.end for u in utterances), default=0.0),
        speaker_count=len({u.speaker for u in utterances}) or 1,
    )
