"""Parse TTML (Timed Text Markup Language) transcripts into speaker-attributed utterances.

Apple Podcasts serves transcripts in this shape::

    <p begin="1.980" end="3.960" ttm:agent="SPEAKER_1">
      <span podcasts:unit="sentence">
        <span podcasts:unit="word">Joe</span>
        <span podcasts:unit="word">Rogan</span>
      </span>
    </p>

Parsing is regex based rather than XML based so that truncated or otherwise
malformed payloads still yield whatever paragraphs are intact.
"""

import html
import logging
import re

from castdigest.transcription.models import DiarizedTranscript, Utterance
from castdigest.transcription.utterances import SpeakerMap, build_diarized, parse_timestamp

logger = logging.getLogger(__name__)

DEFAULT_SPLIT_CHARS = 500

_TAG_RE = re.compile(r"<[^>]+>")
_MULTI_SPACE_RE = re.compile(r"\s+")
_P_RE = re.compile(r"<p\b([^>]*)>(.*?)</p>", re.IGNORECASE | re.DOTALL)
_WORD_SPAN_RE = re.compile(
    r"<span[^>]*podcasts:unit=[\"']word[\"'][^>]*>(.*?)</span>", re.IGNORECASE | re.DOTALL
)
_SPAN_RE = re.compile(r"<span[^>]*>(.*?)</span>", re.IGNORECASE | re.DOTALL)
_BEGIN_RE = re.compile(r"\bbegin=[\"']([^\"']+)[\"']")
_END_RE = re.compile(r"\bend=[\"']([^\"']+)[\"']")
_AGENT_RE = re.compile(r"ttm:agent=[\"']([^\"']+)[\"']")


def _clean(fragment: str) -> str:
    return html.unescape(_MULTI_SPACE_RE.sub(" ", _TAG_RE.sub("", fragment))).strip()


def _paragraph_text(content: str) -> str:
    """Concatenate word-level tokens, falling back to any span, then to stripped text."""
    words = [w for w in (_clean(m) for m in _WORD_SPAN_RE.findall(content)) if w]
    if words:
        return " ".join(words)

    spans = [s for s in (_clean(m) for m in _SPAN_RE.findall(content)) if s]
    if spans:
        return " ".join(spans)

    return _clean(content)


def parse_ttml(ttml: str, split_chars: int | None = DEFAULT_SPLIT_CHARS) -> DiarizedTranscript | None:
    """Parse TTML markup into a diarized transcript.

    Args:
        ttml: Raw markup.
        split_chars: Paragraphs longer than this are split on sentence
            boundaries. None disables splitting.

    Returns:
        DiarizedTranscript, or None if no utterances could be recovered.
    """
    speakers = SpeakerMap()
    utterances: list[Utterance] = []

    for attrs, content in _P_RE.findall(ttml or ""):
        text = _paragraph_text(content)
        if not text:
            continue

        begin_match = _BEGIN_RE.search(attrs)
        end_match = _END_RE.search(attrs)
        agent_match = _AGENT_RE.search(attrs)

        start = parse_timestamp(begin_match.group(1) if begin_match else None)
        end = parse_timestamp(end_match.group(1)) if end_match else start

        utterances.append(
            Utterance(
                start=start,
                end=max(end, start),
                speaker=speakers.speaker_id(agent_match.group(1) if agent_match else None),
                text=text,
                confidence=1.0,
            )
        )

    if not utterances:
        logger.debug("No paragraphs recovered from TTML")
        return None

    return build_diarized(utterances, split_chars)


def strip_markup(markup: str) -> str:
    """Naive fallback: drop all tags and collapse whitespace."""
    return html.unescape(_MULTI_SPACE_RE.sub(" ", _TAG_RE.sub(" ", markup or ""))).strip()


def ttml_to_text(ttml: str, split_chars: int | None = DEFAULT_SPLIT_CHARS) -> tuple[str, list[Utterance]]:
    """Convert TTML to plain text, degrading to tag stripping if parsing finds nothing.

    Returns:
        Tuple of (text, utterances). Utterances are empty on fallback.
    """
    parsed = parse_ttml(ttml, split_chars)
    if parsed is None:
        return strip_markup(ttml), []
    return parsed.full_text, parsed.utterances
