"""
Oracle adapters: run analysis, score content, request suggestions.

Each adapter takes a plain request, checks what can be checked locally
(keyword present, session active) and only then calls the oracle, so an
invalid request never costs a round-trip. The adapters hold no state;
callers always pass the current session id explicitly.
"""

from typing import Iterable, Optional, Protocol

from .config import DEFAULT_LANGUAGE, DEFAULT_LOCATION
from .errors import PreconditionError, ValidationError
from .models import (
    AnalysisSession,
    ContentAnalysisResponse,
    DocumentState,
    SuggestionBundle,
)


NO_SESSION_MESSAGE = "Run SERP analysis first."
MISSING_KEYWORD_MESSAGE = "Add a primary keyword before running SERP analysis."


class Oracle(Protocol):
    """The three calls the workflow needs from the scoring service."""

    async def run_serp_analysis(
        self,
        keyword: str,
        location: str,
        language: str,
        secondary_keywords: list[str],
    ) -> AnalysisSession: ...

    async def analyze_content(
        self,
        analysis_id: str,
        document: DocumentState,
        base_url: Optional[str] = None,
        blog_post_id: Optional[str] = None,
    ) -> ContentAnalysisResponse: ...

    async def ai_suggest(
        self,
        analysis_id: str,
        document: DocumentState,
        missing_terms: list[str],
    ) -> SuggestionBundle: ...


def normalize_keywords(keywords: Iterable[str]) -> list[str]:
    """Strip keywords, drop blanks and case-insensitive duplicates."""
    seen = set()
    result = []
    for keyword in keywords:
        cleaned = (keyword or "").strip()
        if not cleaned or cleaned.lower() in seen:
            continue
        seen.add(cleaned.lower())
        result.append(cleaned)
    return result


def parse_keyword_list(text: Optional[str]) -> list[str]:
    """Split comma-separated keyword input into a clean list."""
    if not text:
        return []
    return normalize_keywords(text.split(","))


async def run_analysis(
    oracle: Oracle,
    keyword: str,
    location: str = DEFAULT_LOCATION,
    language: str = DEFAULT_LANGUAGE,
    secondary_keywords: Iterable[str] = (),
) -> AnalysisSession:
    """
    Benchmark a keyword and return a fresh analysis session.

    Args:
        oracle: Scoring service.
        keyword: Primary keyword. Must not be blank.
        location: Search location; blank means DEFAULT_LOCATION.
        language: Search language; blank means DEFAULT_LANGUAGE.
        secondary_keywords: Secondary keywords to benchmark.

    Returns:
        AnalysisSession for the request.

    Raises:
        ValidationError: If the keyword is blank. No call is made.
        OracleError: If the service call fails.
    """
    keyword = (keyword or "").strip()
    if not keyword:
        raise ValidationError(MISSING_KEYWORD_MESSAGE)

    return await oracle.run_serp_analysis(
        keyword,
        (location or "").strip() or DEFAULT_LOCATION,
        (language or "").strip() or DEFAULT_LANGUAGE,
        normalize_keywords(secondary_keywords),
    )


async def score_content(
    oracle: Oracle,
    session_id: Optional[str],
    document: DocumentState,
    base_url: Optional[str] = None,
    blog_post_id: Optional[str] = None,
) -> ContentAnalysisResponse:
    """
    Score a document snapshot against the given session.

    Raises:
        PreconditionError: If no session id is given.
        OracleError: If the service call fails.
    """
    if not session_id:
        raise PreconditionError(NO_SESSION_MESSAGE)
    return await oracle.analyze_content(
        session_id,
        document,
        base_url=base_url,
        blog_post_id=blog_post_id,
    )


async def request_suggestions(
    oracle: Oracle,
    session_id: Optional[str],
    document: DocumentState,
    missing_terms: Iterable[str] = (),
) -> SuggestionBundle:
    """
    Ask for AI-authored fixes. Never modifies the document.

    Raises:
        PreconditionError: If no session id is given.
        OracleError: If the service call fails.
    """
    if not session_id:
        raise PreconditionError(NO_SESSION_MESSAGE)
    return await oracle.ai_suggest(session_id, document, list(missing_terms))
