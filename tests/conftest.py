"""
Pytest fixtures and configuration for SEO Content Assistant tests.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any

import pytest

from seo_content_assistant.config import WorkflowConfig
from seo_content_assistant.models import (
    AnalysisSession,
    ContentAnalysisResponse,
    DocumentState,
    SuggestionBundle,
)


@dataclass
class Held:
    """A scripted reply that is only delivered once `release` is set."""
    value: Any
    release: asyncio.Event = field(default_factory=asyncio.Event)


class ScriptedOracle:
    """
    In-memory stand-in for the scoring service.

    Each call pops the next scripted reply for its endpoint. A reply can be
    a value, an exception to raise, or a Held wrapping either one. When a
    queue runs dry a default reply is used.
    """

    def __init__(self):
        self.analyses: list[Any] = []
        self.scores: list[Any] = []
        self.suggestions: list[Any] = []
        self.analysis_calls: list[dict] = []
        self.score_calls: list[dict] = []
        self.suggest_calls: list[dict] = []
        self._session_counter = 0

    async def run_serp_analysis(self, keyword, location, language, secondary_keywords):
        self.analysis_calls.append({
            "keyword": keyword,
            "location": location,
            "language": language,
            "secondary_keywords": list(secondary_keywords),
        })
        if self.analyses:
            return await _deliver(self.analyses.pop(0))
        self._session_counter += 1
        return build_session(f"analysis-{self._session_counter}", keyword=keyword)

    async def analyze_content(self, analysis_id, document, base_url=None, blog_post_id=None):
        self.score_calls.append({
            "analysis_id": analysis_id,
            "document": document,
            "base_url": base_url,
            "blog_post_id": blog_post_id,
        })
        if self.scores:
            return await _deliver(self.scores.pop(0))
        return build_score(50)

    async def ai_suggest(self, analysis_id, document, missing_terms):
        self.suggest_calls.append({
            "analysis_id": analysis_id,
            "document": document,
            "missing_terms": list(missing_terms),
        })
        if self.suggestions:
            return await _deliver(self.suggestions.pop(0))
        return SuggestionBundle()


async def _deliver(reply: Any) -> Any:
    if isinstance(reply, Held):
        await reply.release.wait()
        reply = reply.value
    if isinstance(reply, Exception):
        raise reply
    return reply


def build_session(session_id: str = "s1", keyword: str = "content marketing", **payload) -> AnalysisSession:
    """Build an AnalysisSession from a minimal oracle payload."""
    data = {
        "id": session_id,
        "benchmarks": {
            "wordCount": {"min": 900, "max": 1800, "avg": 1300},
            "headingTargets": {"h1": 1, "h2": 6, "h3": 4},
            "links": {"internal": {"min": 2, "max": 6, "avg": 4},
                      "external": {"min": 1, "max": 4, "avg": 2}},
        },
        "competitors": [],
        "nlpTerms": {
            "topTerms": [
                {"term": "strategy", "score": 0.9},
                {"term": "nbsp", "score": 0.8},
                {"term": "audience", "score": 0.7},
                {"term": "42", "score": 0.6},
                {"term": "funnel", "score": 0.5},
            ],
            "semanticPhrases": [],
            "questions": ["What is content marketing?"],
        },
    }
    data.update(payload)
    return AnalysisSession.from_dict(data, keyword, "United States", "en")


def build_score(total: float, missing_terms=(), **breakdown) -> ContentAnalysisResponse:
    """Build a scoring response with the given total."""
    data = {
        "total": total,
        "categories": [
            {"id": "keywords", "label": "Keyword usage", "score": total, "weight": 0.3},
            {"id": "structure", "label": "Structure", "score": total, "weight": 0.2},
        ],
        "missingTerms": list(missing_terms),
        "overOptimized": [],
        "actionable": ["Add an H2 with the keyword", "Link to two related posts"],
        "metrics": {"wordCount": 420, "headingCounts": {"h1": 1, "h2": 2, "h3": 0}},
    }
    data.update(breakdown)
    return ContentAnalysisResponse.from_dict({"seoScore": total, "breakdown": data})


@pytest.fixture
def oracle() -> ScriptedOracle:
    """A scripted oracle with empty queues."""
    return ScriptedOracle()


@pytest.fixture
def fast_config() -> WorkflowConfig:
    """Config with a short debounce so timer tests run quickly."""
    return WorkflowConfig(rescore_delay_seconds=0.05, post_id="post-7", base_url="https://example.com")


@pytest.fixture
def draft() -> DocumentState:
    """A draft with a primary keyword and a short body."""
    return DocumentState(
        content_html="<h1>Content marketing</h1><p>Intro paragraph.</p>",
        meta_title="Our blog",
        meta_description="A short description.",
        primary_keyword="content marketing",
        secondary_keywords=("blog seo", "editorial calendar"),
    )


@pytest.fixture
def serp_payload() -> dict:
    """A realistic SERP analysis response body."""
    return {
        "analysis": {
            "id": "a-123",
            "keyword": "content marketing",
            "benchmarks": {
                "wordCount": {"min": 900, "max": 1800, "avg": 1320.5},
                "headingTargets": {"h1": 1, "h2": 6, "h3": 3},
                "keyword": {
                    "primary": {"min": 3, "max": 9, "avg": 5},
                    "secondary": [{"term": "blog seo", "recommended": 2, "min": 1, "max": 4, "avg": 2}],
                },
                "nlpTerms": [{"term": "strategy", "recommended": 4, "min": 2, "max": 8, "avg": 4}],
                "links": {"internal": {"min": 2, "max": 8, "avg": 4},
                          "external": {"min": 1, "max": 5, "avg": 2}},
                "media": {"images": {"min": 1, "max": 6, "avg": 3}},
                "readability": {"avgSentenceLength": 17.2,
                                "targetSentenceLength": {"min": 12, "max": 20, "avg": 16}},
            },
            "competitors": [
                {
                    "url": "https://rival.example/guide",
                    "title": "The Content Marketing Guide",
                    "position": 1,
                    "wordCount": 2100,
                    "headings": {"h1": ["Guide"], "h2": ["Why it matters", " "], "h3": []},
                    "internalLinks": 12,
                    "externalLinks": 3,
                    "imageCount": 5,
                    "schema": {"faq": True, "article": False, "rawTypes": ["FAQPage"]},
                },
            ],
            "nlpTerms": {
                "topTerms": [{"term": "strategy", "score": 0.92}],
                "semanticPhrases": [{"term": "content strategy", "score": 0.7}],
                "questions": ["What is content marketing?"],
            },
        },
        "cached": True,
    }


@pytest.fixture
def make_session():
    """Factory for analysis sessions."""
    return build_session


@pytest.fixture
def make_score():
    """Factory for scoring responses."""
    return build_score


@pytest.fixture
def held():
    """Factory for replies delivered only once released."""
    return Held
