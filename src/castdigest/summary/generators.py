"""Quick and deep summary generators.

Each generator reads the transcript text directly; neither derives from the
other's output. A reply that does not validate against the level's schema is
a failure, never a partial success.
"""

import json
import logging
import re
from abc import ABC, abstractmethod

from pydantic import BaseModel, ValidationError

from castdigest.config.settings import get_settings
from castdigest.db.models import SummaryLevel
from castdigest.summary.schemas import DeepSummaryContent, QuickSummaryContent
from castdigest.summary.summarizer import Summarizer

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)


class GenerationError(Exception):
    """The summarizer returned no usable content."""


QUICK_PROMPT = """Analyze this podcast transcript and return a JSON object with this exact structure (no markdown, just valid JSON):

{
  "hook_headline": "One punchy line that makes someone want to listen",
  "executive_brief": "2-3 sentences summarizing the main point",
  "golden_nugget": "The single most valuable insight from the episode",
  "perfect_for": "1 sentence describing the ideal listener",
  "tags": ["tag1", "tag2", "tag3"]
}

Rules:
- No markdown in the JSON values
- If unsure about something, omit it rather than guess
- Tags should be 1-2 words each, 3-5 tags

Transcript:
"""

DEEP_PROMPT = """Analyze this podcast transcript thoroughly and return a JSON object with this exact structure (no markdown, just valid JSON):

{
  "comprehensive_overview": "A multi-paragraph overview of the whole conversation",
  "core_concepts": [
    {"concept": "Name", "explanation": "What it means and why it matters", "quote_reference": "Optional short quote"}
  ],
  "chronological_breakdown": [
    {"timestamp_description": "Opening / early discussion / ...", "content": "What was covered"}
  ],
  "contrarian_views": ["Opinions that go against common wisdom"],
  "actionable_takeaways": ["Concrete things the listener can do"]
}

Rules:
- Create 3-6 chronological sections following the content flow
- Only include concepts and quotes that were actually discussed
- No markdown in any JSON values

Transcript:
"""


def extract_json(text: str) -> dict:
    """Pull the JSON object out of a model reply.

    Accepts bare JSON, fenced code blocks, or prose around a single object.

    Raises:
        GenerationError: If no JSON object can be decoded.
    """
    candidate = text.strip()
    fenced = _FENCE_RE.search(candidate)
    if fenced:
        candidate = fenced.group(1).strip()

    if not candidate.startswith("{"):
        start = candidate.find("{")
        end = candidate.rfind("}")
        if start == -1 or end <= start:
            raise GenerationError("Summarizer reply contained no JSON object")
        candidate = candidate[start : end + 1]

    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as e:
        raise GenerationError(f"Summarizer reply was not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise GenerationError("Summarizer reply was not a JSON object")
    return data


class SummaryGenerator(ABC):
    """Runs one prompt through the summarizer and validates the result."""

    level: SummaryLevel
    prompt: str
    schema: type[BaseModel]

    def __init__(self, summarizer: Summarizer):
        self.summarizer = summarizer

    @property
    @abstractmethod
    def max_tokens(self) -> int:
        """Reply token limit for this level."""
        ...

    async def generate(self, transcript_text: str) -> dict:
        """Generate structured content for a transcript.

        Args:
            transcript_text: Finalized transcript plain text.

        Returns:
            Content dict conforming to the level's schema.

        Raises:
            GenerationError: On summarizer errors, undecodable or invalid content.
        """
        if not transcript_text or not transcript_text.strip():
            raise GenerationError("Transcript is empty")

        limit = get_settings().summary_max_transcript_chars
        prompt = self.prompt + transcript_text[:limit]

        try:
            reply = await self.summarizer.complete(prompt, self.max_tokens)
        except GenerationError:
            raise
        except Exception as e:
            logger.error(f"Summarizer call failed for {self.level.value} summary: {e}")
            raise GenerationError(f"Summary generation failed: {e}") from e

        data = extract_json(reply)
        try:
            content = self.schema.model_validate(data)
        except ValidationError as e:
            missing = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
            raise GenerationError(f"Summary missing or invalid fields: {missing}") from e

        return content.model_dump(exclude_none=True)


class QuickSummaryGenerator(SummaryGenerator):
    level = SummaryLevel.QUICK
    prompt = QUICK_PROMPT
    schema = QuickSummaryContent

    @property
    def max_tokens(self) -> int:
        return get_settings().quick_max_tokens


class DeepSummaryGenerator(SummaryGenerator):
    level = SummaryLevel.DEEP
    prompt = DEEP_PROMPT
    schema = DeepSummaryContent

    @property
    def max_tokens(self) -> int:
        return get_settings().deep_max_tokens


def get_generator(level: SummaryLevel, summarizer: Summarizer) -> SummaryGenerator:
    """Get the generator for a summary level."""
    if level == SummaryLevel.QUICK:
        return QuickSummaryGenerator(summarizer)
    return DeepSummaryGenerator(summarizer)
