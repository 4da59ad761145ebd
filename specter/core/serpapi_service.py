"""SerpApi search for candidate class-action matches."""

import re
from typing import Any
from urllib.parse import urlparse

import httpx

from specter.core.config import get_settings
from specter.core.exceptions import SearchError
from specter.core.logging import get_logger
from specter.core.schemas_draft import Fact
from specter.core.schemas_matches import CandidateMatch
from specter.core.text_similarity import COMMON_WORDS, text_similarity

logger = get_logger(__name__)

DEFAULT_QUERY = "class action lawsuit settlement"
QUERY_SUFFIX = "class action lawsuit"

MAX_CONFIDENCE = 0.9
BASE_CONFIDENCE = 0.5
KEYWORD_BONUS = 0.4
RANK_PENALTY = 0.05
SIMILARITY_WEIGHT = 0.3

MEMBER_COUNT_RE = re.compile(r"(\d{1,3}(?:,\d{3})+|\d+)\s*(?:members?|plaintiffs?|claimants?)", re.I)
DATE_RE = re.compile(r"(\d{1,2}/\d{1,2}/\d{2,4})|([A-Z][a-z]+ \d{1,2},? \d{4})")
WHITESPACE_RE = re.compile(r"\s+")


def build_search_query(facts: list[Fact] | None) -> str:
    """
    Derive a search query from reviewed facts.

    Uses up to three short fact values, most confident first.
    """
    if not facts:
        return DEFAULT_QUERY

    values = [
        f.value.strip()
        for f in sorted(facts, key=lambda f: f.confidence, reverse=True)
        if f.value.strip() and len(f.value.strip()) <= 60
    ]
    if not values:
        return DEFAULT_QUERY
    return f"{' '.join(values[:3])} {QUERY_SUFFIX}"


def _query_keywords(query: str) -> list[str]:
    terms = re.findall(r"[\w$]+", query.lower())
    seen: list[str] = []
    for term in terms:
        if len(term) > 2 and term not in COMMON_WORDS and term not in seen:
            seen.append(term)
    return seen


def score_result(
    text: str,
    keywords: list[str],
    rank: int,
    facts_text: str = "",
) -> float:
    """Keyword-overlap confidence, optionally blended with facts similarity."""
    lowered = text.lower()
    if keywords:
        matched = sum(1 for k in keywords if k in lowered)
        score = min(MAX_CONFIDENCE, BASE_CONFIDENCE + (matched / len(keywords)) * KEYWORD_BONUS)
    else:
        score = BASE_CONFIDENCE
    score -= rank * RANK_PENALTY

    if facts_text:
        similarity = text_similarity(text, facts_text)
        score = (1 - SIMILARITY_WEIGHT) * score + SIMILARITY_WEIGHT * similarity

    return max(0.0, min(1.0, score))


def _clean(text: str | None) -> str:
    return WHITESPACE_RE.sub(" ", text or "").strip()


def _parse_member_count(text: str) -> int | None:
    match = MEMBER_COUNT_RE.search(text)
    if not match:
        return None
    return int(match.group(1).replace(",", ""))


def _parse_date(text: str) -> str | None:
    match = DATE_RE.search(text)
    return match.group(0) if match else None


def _source_domain(result: dict[str, Any]) -> str | None:
    displayed = result.get("displayed_link")
    if isinstance(displayed, str) and displayed:
        return displayed.split("/")[0].split(" ")[0] or None
    link = result.get("link")
    if isinstance(link, str) and link:
        return urlparse(link).netloc or None
    return None


def map_organic_results(
    results: list[dict[str, Any]],
    query: str,
    facts: list[Fact] | None = None,
) -> list[CandidateMatch]:
    """Map SerpApi organic results 1:1 into candidate matches, keeping order."""
    keywords = _query_keywords(query)
    facts_text = " ".join(f"{f.label} {f.value}" for f in facts or [])

    matches: list[CandidateMatch] = []
    for idx, result in enumerate(results):
        title = _clean(result.get("title")) or "Unknown Title"
        snippet = _clean(result.get("snippet") or result.get("description")) or "No description."
        link = result.get("link") if isinstance(result.get("link"), str) else None
        text = f"{title} {snippet}"

        # Link is stable across searches; position is not
        match_id = link or str(result.get("position") or idx)

        matches.append(
            CandidateMatch(
                id=match_id,
                name=title,
                description=snippet,
                confidence_score=score_result(text, keywords, idx, facts_text),
                source_url=link,
                source=_source_domain(result),
                date_posted=_parse_date(text),
                member_count=_parse_member_count(text),
            )
        )
    return matches


async def search_class_actions(
    query: str,
    facts: list[Fact] | None = None,
    limit: int | None = None,
) -> list[CandidateMatch]:
    """
    Search Google via SerpApi for class actions matching the query.

    Args:
        query: Free-text search query
        facts: Optional facts used to refine confidence scores
        limit: Max results (defaults to SEARCH_RESULT_LIMIT)

    Returns:
        Candidate matches in result order

    Raises:
        SearchError: If SerpApi is not configured or the request fails
    """
    settings = get_settings()

    if not settings.SERPAPI_API_KEY:
        raise SearchError("SERPAPI_API_KEY not configured")
    if not query.strip():
        raise SearchError("Missing search query")

    num = limit or settings.SEARCH_RESULT_LIMIT
    params = {
        "engine": "google",
        "q": query,
        "api_key": settings.SERPAPI_API_KEY,
        "num": str(num),
        "gl": "us",
        "hl": "en",
    }

    logger.info(f"Searching class actions: {query!r}")
    try:
        async with httpx.AsyncClient(timeout=settings.SEARCH_TIMEOUT) as client:
            response = await client.get(settings.SERPAPI_URL, params=params)
            response.raise_for_status()
            data = response.json()
    except httpx.HTTPStatusError as e:
        raise SearchError(f"SerpApi HTTP error: {e.response.status_code}") from e
    except httpx.HTTPError as e:
        raise SearchError(f"SerpApi request failed: {e}") from e
    except ValueError as e:
        raise SearchError(f"SerpApi returned invalid JSON: {e}") from e

    organic = data.get("organic_results") if isinstance(data, dict) else None
    results = [r for r in organic if isinstance(r, dict)] if isinstance(organic, list) else []

    matches = map_organic_results(results[:num], query, facts)
    logger.info(f"Search returned {len(matches)} candidate matches")
    return matches
