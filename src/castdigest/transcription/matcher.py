"""Match a catalog episode to its Apple Podcasts episode via the iTunes Search API.

The iTunes Search API is free and needs no credentials. Candidates are scored
by word overlap of the episode titles (70%) and show names (30%).
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional

import httpx

from castdigest.config.settings import get_settings

logger = logging.getLogger(__name__)

EPISODE_WEIGHT = 0.7
SHOW_WEIGHT = 0.3
DEFAULT_THRESHOLD = 0.30

_NON_WORD_RE = re.compile(r"[^\w\s]")
_MULTI_SPACE_RE = re.compile(r"\s+")


@dataclass
class SearchCandidate:
    """One episode returned by the search index."""

    track_id: int
    track_name: str
    collection_name: str

    @classmethod
    def from_result(cls, result: dict) -> Optional["SearchCandidate"]:
        track_id = result.get("trackId")
        if track_id is None:
            return None
        return cls(
            track_id=int(track_id),
            track_name=result.get("trackName") or "",
            collection_name=result.get("collectionName") or result.get("artistName") or "",
        )


@dataclass
class MatchResult:
    """Accepted candidate and its combined score."""

    candidate: SearchCandidate
    score: float


def normalize(text: str) -> str:
    """Lowercase, replace punctuation with spaces and collapse whitespace."""
    text = _NON_WORD_RE.sub(" ", (text or "").lower())
    return _MULTI_SPACE_RE.sub(" ", text).strip()


def word_overlap_score(a: str, b: str) -> float:
    """Jaccard overlap of the words (longer than one character) in two normalized strings."""
    words_a = {w for w in a.split(" ") if len(w) > 1}
    words_b = {w for w in b.split(" ") if len(w) > 1}
    if not words_a or not words_b:
        return 0.0
    return len(words_a & words_b) / len(words_a | words_b)


def score_candidate(candidate: SearchCandidate, podcast_title: str, episode_title: str) -> float:
    """Combined match score for one candidate."""
    episode_score = word_overlap_score(normalize(episode_title), normalize(candidate.track_name))
    show_score = word_overlap_score(normalize(podcast_title), normalize(candidate.collection_name))
    return EPISODE_WEIGHT * episode_score + SHOW_WEIGHT * show_score


def find_best_match(
    candidates: list[SearchCandidate],
    podcast_title: str,
    episode_title: str,
    threshold: float = DEFAULT_THRESHOLD,
) -> Optional[MatchResult]:
    """Pick the highest-scoring candidate, if it reaches the threshold.

    Ties keep the earlier candidate, so the result only depends on the inputs.
    """
    best: Optional[MatchResult] = None
    for candidate in candidates:
        score = score_candidate(candidate, podcast_title, episode_title)
        if best is None or score > best.score:
            best = MatchResult(candidate=candidate, score=score)

    if best is None or best.score < threshold:
        return None
    return best


class EpisodeMatcher:
    """Finds the Apple episode ID for a podcast/episode title pair."""

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None):
        self._transport = transport

    async def search(self, podcast_title: str, episode_title: str) -> Optional[SearchCandidate]:
        """Search the index and return the matching episode, or None if nothing scores high enough.

        Network errors and non-200 responses are reported as no match.
        """
        settings = get_settings()
        term = f"{podcast_title} {episode_title}"[: settings.match_term_max_chars]

        logger.debug(f"Searching iTunes for episode: {episode_title[:50]}")

        try:
            async with httpx.AsyncClient(
                timeout=settings.metadata_timeout, transport=self._transport
            ) as client:
                response = await client.get(
                    settings.itunes_search_url,
                    params={
                        "term": term,
                        "entity": "podcastEpisode",
                        "limit": settings.match_search_limit,
                    },
                    headers={"User-Agent": settings.user_agent},
                )
        except httpx.HTTPError as e:
            logger.info(f"iTunes search error: {e}")
            return None

        if response.status_code != 200:
            logger.info(f"iTunes search failed with status {response.status_code}")
            return None

        try:
            results = response.json().get("results") or []
        except ValueError:
            logger.info("iTunes search returned invalid JSON")
            return None

        candidates = [c for c in (SearchCandidate.from_result(r) for r in results) if c]
        if not candidates:
            logger.info("No iTunes results found")
            return None

        match = find_best_match(candidates, podcast_title, episode_title, settings.match_threshold)
        if match is None:
            logger.info(f"No suitable iTunes match for episode: {episode_title[:60]}")
            return None

        logger.info(
            f"Matched Apple episode {match.candidate.track_id} "
            f"'{match.candidate.track_name[:60]}' (score {match.score:.2f})"
        )
        return match.candidate
