"""Transcript payload formats served at pre-supplied transcript URLs.

Podcast 2.0 feeds may point at WebVTT, SRT, JSON or HTML transcripts; some
hosts serve TTML or bare text. Everything is normalized to utterances where
timing is available, and to plain text otherwise.
"""

import html
import json
import logging
import re
from dataclasses import dataclass, field

from castdigest.transcription.models import Utterance
from castdigest.transcription.ttml import parse_ttml, strip_markup
from castdigest.transcription.utterances import SpeakerMap, build_diarized, parse_timestamp

logger = logging.getLogger(__name__)

_CUE_TIMING_RE = re.compile(r"^\s*([\d:.,]+)\s*-->\s*([\d:.,]+)")
_VTT_VOICE_RE = re.compile(r"<v(?:\.[^\s>]+)?\s+([^>]+)>")
_TAG_RE = re.compile(r"<[^>]+>")
_SRT_SPEAKER_RE = re.compile(r"^([A-Z][\w .'-]{0,40}):\s+(.*)$")


@dataclass
class ParsedPayload:
    """A transcript payload converted to text."""

    format: str
    text: str
    utterances: list[Utterance] = field(default_factory=list)


def detect_format(content: str, content_type: str | None = None, url: str | None = None) -> str:
    """Guess the payload format from content type, URL extension and content.

    Returns:
        One of 'vtt', 'srt', 'json', 'ttml', 'html', 'text'.
    """
    content_type = (content_type or "").lower()
    path = (url or "").lower().split("?")[0]
    head = content.lstrip()[:200].lower()

    if "vtt" in content_type or path.endswith(".vtt") or head.startswith("webvtt"):
        return "vtt"
    if "srt" in content_type or "subrip" in content_type or path.endswith(".srt"):
        return "srt"
    if "json" in content_type or path.endswith(".json") or head.startswith("{"):
        return "json"
    if "ttml" in content_type or path.endswith(".ttml") or "<tt" in head:
        return "ttml"
    if "html" in content_type or path.endswith((".html", ".htm")) or head.startswith(("<!doctype", "<html")):
        return "html"
    if "-->" in content[:1000]:
        return "srt"
    return "text"


def _cue_blocks(content: str) -> list[list[str]]:
    return [block.splitlines() for block in re.split(r"\n\s*\n", content.replace("\r\n", "\n"))]


def parse_vtt(content: str) -> list[Utterance]:
    """Parse WebVTT cues; `<v Name>` voice tags become speakers."""
    speakers = SpeakerMap()
    utterances = []

    for lines in _cue_blocks(content):
        for i, line in enumerate(lines):
            timing = _CUE_TIMING_RE.match(line)
            if not timing:
                continue
            raw = " ".join(lines[i + 1 :])
            voice = _VTT_VOICE_RE.search(raw)
            text = html.unescape(_TAG_RE.sub("", raw)).strip()
            if text:
                utterances.append(
                    Utterance(
                        start=parse_timestamp(timing.group(1)),
                        end=parse_timestamp(timing.group(2)),
                        speaker=speakers.speaker_id(voice.group(1) if voice else None),
                        text=text,
                    )
                )
            break

    return utterances


def parse_srt(content: str) -> list[Utterance]:
    """Parse SRT cues; a leading "Name:" becomes the speaker."""
    speakers = SpeakerMap()
    utterances = []

    for lines in _cue_blocks(content):
        for i, line in enumerate(lines):
            timing = _CUE_TIMING_RE.match(line)
            if not timing:
                continue
            text = html.unescape(_TAG_RE.sub("", " ".join(lines[i + 1 :]))).strip()
            label = None
            named = _SRT_SPEAKER_RE.match(text)
            if named:
                label, text = named.group(1), named.group(2)
            if text:
                utterances.append(
                    Utterance(
                        start=parse_timestamp(timing.group(1)),
                        end=parse_timestamp(timing.group(2)),
                        speaker=speakers.speaker_id(label),
                        text=text,
                    )
                )
            break

    return utterances


def parse_json_transcript(content: str) -> list[Utterance]:
    """Parse the Podcast 2.0 JSON transcript format.

    Expected shape::

        {"version": "1.0.0",
         "segments": [{"speaker": "Alice", "startTime": 0.5, "endTime": 3.2, "body": "Hi"}]}
    """
    try:
        data = json.loads(content)
    except json.JSONDecodeError:
        return []

    segments = data.get("segments") if isinstance(data, dict) else None
    if not isinstance(segments, list):
        return []

    speakers = SpeakerMap()
    utterances = []
    for seg in segments:
        if not isinstance(seg, dict):
            continue
        text = str(seg.get("body") or "").strip()
        if not text:
            continue
        try:
            start = float(seg.get("startTime") or 0)
            end = float(seg.get("endTime") or start)
        except (TypeError, ValueError):
            start = end = 0.0
        utterances.append(
            Utterance(
                start=start,
                end=end,
                speaker=speakers.speaker_id(seg.get("speaker")),
                text=text,
            )
        )
    return utterances


def parse_payload(
    content: str,
    content_type: str | None = None,
    url: str | None = None,
    split_chars: int | None = None,
) -> ParsedPayload:
    """Convert any recognizable transcript payload to text and utterances."""
    fmt = detect_format(content, content_type, url)

    if fmt == "ttml":
        parsed = parse_ttml(content, split_chars)
        if parsed is None:
            return ParsedPayload(format=fmt, text=strip_markup(content))
        return ParsedPayload(format=fmt, text=parsed.full_text, utterances=parsed.utterances)

    if fmt in ("vtt", "srt", "json"):
        parser = {"vtt": parse_vtt, "srt": parse_srt, "json": parse_json_transcript}[fmt]
        utterances = parser(content)
        if utterances:
            diarized = build_diarized(utterances, split_chars)
            return ParsedPayload(format=fmt, text=diarized.full_text, utterances=diarized.utterances)
        logger.debug(f"No cues recovered from {fmt} payload, treating as text")
        if fmt == "json":
            return ParsedPayload(format=fmt, text="")

    if fmt == "html":
        return ParsedPayload(format=fmt, text=strip_markup(content))

    return ParsedPayload(format=fmt, text=content.strip())
