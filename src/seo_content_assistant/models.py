"""
Data models for the SEO content assistant.

This module defines the analysis session, score breakdown, suggestion and
document structures shared by the oracle client, the patch applier and the
workflow controller. Oracle payloads use camelCase keys; the from_dict
constructors translate them and raise KeyError, TypeError or ValueError
when a payload does not have the expected shape.
"""

import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Optional


def _require_mapping(data: Any, name: str) -> dict:
    """Ensure a payload section is a JSON object."""
    if not isinstance(data, dict):
        raise TypeError(f"{name} must be an object, got {type(data).__name__}")
    return data


def _number(data: dict, key: str, default: float = 0.0) -> float:
    """Read a numeric field, treating null/missing as the default."""
    value = data.get(key)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"'{key}' must be a number, got {value!r}")
    if not math.isfinite(value):
        raise ValueError(f"'{key}' must be finite, got {value!r}")
    return float(value)


def _integer(data: dict, key: str, default: int = 0) -> int:
    """Read an integer count field."""
    return int(round(_number(data, key, float(default))))


def _string_list(value: Any, name: str) -> list[str]:
    """Read a list of strings, dropping blanks and surrounding whitespace."""
    if value is None:
        return []
    if not isinstance(value, list):
        raise TypeError(f"{name} must be a list, got {type(value).__name__}")
    items = []
    for item in value:
        if item is None:
            continue
        text = str(item).strip()
        if text:
            items.append(text)
    return items


def _unique_lower(terms: list[str]) -> list[str]:
    """Lower-case terms and drop duplicates, keeping first-seen order."""
    seen = set()
    result = []
    for term in terms:
        lowered = term.lower()
        if lowered not in seen:
            seen.add(lowered)
            result.append(lowered)
    return result


def clamp_score(value: float) -> float:
    """Clamp a score into the 0-100 range."""
    return min(100.0, max(0.0, value))


# =============================================================================
# Benchmarks and SERP analysis
# =============================================================================


@dataclass(frozen=True)
class BenchmarkRange:
    """Target range observed across competing pages."""
    min: float = 0.0
    max: float = 0.0
    avg: float = 0.0

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "BenchmarkRange":
        if data is None:
            return cls()
        data = _require_mapping(data, "range")
        return cls(
            min=_number(data, "min"),
            max=_number(data, "max"),
            avg=_number(data, "avg"),
        )

    def contains(self, value: float) -> bool:
        """Check if a value falls inside the range."""
        return self.min <= value <= self.max


@dataclass(frozen=True)
class TermTarget:
    """Recommended usage of one keyword or NLP term."""
    term: str
    recommended: float = 0.0
    min: float = 0.0
    max: float = 0.0
    avg: float = 0.0

    @classmethod
    def from_dict(cls, data: dict) -> "TermTarget":
        data = _require_mapping(data, "term target")
        return cls(
            term=str(data["term"]),
            recommended=_number(data, "recommended"),
            min=_number(data, "min"),
            max=_number(data, "max"),
            avg=_number(data, "avg"),
        )


@dataclass(frozen=True)
class HeadingTargets:
    """Recommended heading counts per level."""
    h1: int = 0
    h2: int = 0
    h3: int = 0

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "HeadingTargets":
        if data is None:
            return cls()
        data = _require_mapping(data, "headingTargets")
        return cls(
            h1=_integer(data, "h1"),
            h2=_integer(data, "h2"),
            h3=_integer(data, "h3"),
        )


@dataclass(frozen=True)
class Benchmarks:
    """Target ranges derived from the top-ranking competitors."""
    word_count: BenchmarkRange = field(default_factory=BenchmarkRange)
    heading_targets: HeadingTargets = field(default_factory=HeadingTargets)
    primary_keyword: BenchmarkRange = field(default_factory=BenchmarkRange)
    secondary_keywords: tuple[TermTarget, ...] = ()
    nlp_terms: tuple[TermTarget, ...] = ()
    internal_links: BenchmarkRange = field(default_factory=BenchmarkRange)
    external_links: BenchmarkRange = field(default_factory=BenchmarkRange)
    images: BenchmarkRange = field(default_factory=BenchmarkRange)
    avg_sentence_length: float = 0.0
    target_sentence_length: BenchmarkRange = field(default_factory=BenchmarkRange)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "Benchmarks":
        """Build benchmarks from the oracle payload; missing sections are zero."""
        if data is None:
            return cls()
        data = _require_mapping(data, "benchmarks")

        keyword = _require_mapping(data.get("keyword") or {}, "keyword")
        links = _require_mapping(data.get("links") or {}, "links")
        media = _require_mapping(data.get("media") or {}, "media")
        readability = _require_mapping(data.get("readability") or {}, "readability")

        return cls(
            word_count=BenchmarkRange.from_dict(data.get("wordCount")),
            heading_targets=HeadingTargets.from_dict(data.get("headingTargets")),
            primary_keyword=BenchmarkRange.from_dict(keyword.get("primary")),
            secondary_keywords=tuple(
                TermTarget.from_dict(item) for item in keyword.get("secondary") or []
            ),
            nlp_terms=tuple(
                TermTarget.from_dict(item) for item in data.get("nlpTerms") or []
            ),
            internal_links=BenchmarkRange.from_dict(links.get("internal")),
            external_links=BenchmarkRange.from_dict(links.get("external")),
            images=BenchmarkRange.from_dict(media.get("images")),
            avg_sentence_length=_number(readability, "avgSentenceLength"),
            target_sentence_length=BenchmarkRange.from_dict(
                readability.get("targetSentenceLength")
            ),
        )


@dataclass(frozen=True)
class SerpCompetitor:
    """Snapshot of one competing search result."""
    url: str
    title: str
    position: int
    snippet: Optional[str] = None
    word_count: int = 0
    title_length: int = 0
    meta_description_length: int = 0
    headings: dict = field(default_factory=dict)  # level -> list of heading texts
    internal_links: int = 0
    external_links: int = 0
    image_count: int = 0
    has_faq_schema: bool = False
    has_article_schema: bool = False
    schema_types: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict) -> "SerpCompetitor":
        data = _require_mapping(data, "competitor")
        headings_raw = _require_mapping(data.get("headings") or {}, "headings")
        schema = _require_mapping(data.get("schema") or {}, "schema")
        return cls(
            url=str(data["url"]),
            title=str(data.get("title") or ""),
            position=_integer(data, "position"),
            snippet=data.get("snippet"),
            word_count=_integer(data, "wordCount"),
            title_length=_integer(data, "titleLength"),
            meta_description_length=_integer(data, "metaDescriptionLength"),
            headings={
                level: _string_list(headings_raw.get(level), f"headings.{level}")
                for level in ("h1", "h2", "h3")
            },
            internal_links=_integer(data, "internalLinks"),
            external_links=_integer(data, "externalLinks"),
            image_count=_integer(data, "imageCount"),
            has_faq_schema=bool(schema.get("faq")),
            has_article_schema=bool(schema.get("article")),
            schema_types=tuple(_string_list(schema.get("rawTypes"), "schema.rawTypes")),
        )


@dataclass(frozen=True)
class TermStat:
    """A term extracted from competitor pages with its weight."""
    term: str
    score: float = 0.0

    @classmethod
    def from_dict(cls, data: dict) -> "TermStat":
        data = _require_mapping(data, "term")
        return cls(term=str(data["term"]), score=_number(data, "score"))


@dataclass(frozen=True)
class NlpTerms:
    """Terms, phrases and questions mined from the SERP."""
    top_terms: tuple[TermStat, ...] = ()
    semantic_phrases: tuple[TermStat, ...] = ()
    questions: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "NlpTerms":
        if data is None:
            return cls()
        data = _require_mapping(data, "nlpTerms")
        return cls(
            top_terms=tuple(TermStat.from_dict(t) for t in data.get("topTerms") or []),
            semantic_phrases=tuple(
                TermStat.from_dict(t) for t in data.get("semanticPhrases") or []
            ),
            questions=tuple(_string_list(data.get("questions"), "questions")),
        )


@dataclass(frozen=True)
class AnalysisSession:
    """
    Benchmark context returned by a SERP lookup.

    Scopes every later scoring and suggestion call. Never mutated: a new
    analysis replaces it wholesale.
    """
    id: str
    keyword: str
    location: str
    language: str
    secondary_keywords: tuple[str, ...] = ()
    benchmarks: Benchmarks = field(default_factory=Benchmarks)
    competitors: tuple[SerpCompetitor, ...] = ()
    nlp_terms: NlpTerms = field(default_factory=NlpTerms)
    cached: bool = False

    @classmethod
    def from_dict(
        cls,
        data: dict,
        keyword: str,
        location: str,
        language: str,
        secondary_keywords: tuple[str, ...] = (),
        cached: bool = False,
    ) -> "AnalysisSession":
        """
        Build a session from an analysis payload.

        The request fields are taken from the caller so the session always
        reflects what was asked for, whatever the oracle echoes back.
        """
        data = _require_mapping(data, "analysis")
        session_id = data.get("id") or data.get("analysisId")
        if not session_id:
            raise KeyError("analysis id")
        return cls(
            id=str(session_id),
            keyword=keyword,
            location=location,
            language=language,
            secondary_keywords=tuple(secondary_keywords),
            benchmarks=Benchmarks.from_dict(data.get("benchmarks")),
            competitors=tuple(
                SerpCompetitor.from_dict(c) for c in data.get("competitors") or []
            ),
            nlp_terms=NlpTerms.from_dict(data.get("nlpTerms")),
            cached=cached,
        )


# =============================================================================
# Content scoring
# =============================================================================


@dataclass(frozen=True)
class ScoreCategory:
    """One weighted scoring category. The id is stable across rescoring."""
    id: str
    label: str
    score: float
    weight: float = 1.0
    reasons: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict) -> "ScoreCategory":
        data = _require_mapping(data, "category")
        category_id = str(data["id"])
        return cls(
            id=category_id,
            label=str(data.get("label") or category_id),
            score=clamp_score(_number(data, "score")),
            weight=_number(data, "weight", 1.0),
            reasons=tuple(_string_list(data.get("reasons"), "reasons")),
        )


@dataclass(frozen=True)
class ContentMetrics:
    """Raw counts derived from the scored document."""
    word_count: int = 0
    heading_counts: dict = field(default_factory=dict)  # h1/h2/h3 -> count
    keyword_counts: dict = field(default_factory=dict)  # term -> occurrences
    image_count: int = 0
    internal_links: int = 0
    external_links: int = 0
    avg_sentence_length: float = 0.0

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "ContentMetrics":
        if data is None:
            return cls()
        data = _require_mapping(data, "metrics")
        headings = _require_mapping(data.get("headingCounts") or {}, "headingCounts")
        keyword_counts = _require_mapping(data.get("keywordCounts") or {}, "keywordCounts")
        return cls(
            word_count=_integer(data, "wordCount"),
            heading_counts={level: _integer(headings, level) for level in ("h1", "h2", "h3")},
            keyword_counts={
                str(term): _integer(keyword_counts, term) for term in keyword_counts
            },
            image_count=_integer(data, "imageCount"),
            internal_links=_integer(data, "internalLinks"),
            external_links=_integer(data, "externalLinks"),
            avg_sentence_length=_number(data, "avgSentenceLength"),
        )


@dataclass(frozen=True)
class ContentBreakdown:
    """Categorized score report for a document against one analysis session."""
    total: float
    categories: tuple[ScoreCategory, ...] = ()
    missing_terms: tuple[str, ...] = ()
    over_optimized: tuple[str, ...] = ()
    actionable: tuple[str, ...] = ()
    metrics: ContentMetrics = field(default_factory=ContentMetrics)

    @classmethod
    def from_dict(cls, data: dict) -> "ContentBreakdown":
        data = _require_mapping(data, "breakdown")
        if "total" not in data:
            raise KeyError("breakdown total")
        return cls(
            total=clamp_score(_number(data, "total")),
            categories=tuple(
                ScoreCategory.from_dict(c) for c in data.get("categories") or []
            ),
            missing_terms=tuple(
                _unique_lower(_string_list(data.get("missingTerms"), "missingTerms"))
            ),
            over_optimized=tuple(
                _unique_lower(_string_list(data.get("overOptimized"), "overOptimized"))
            ),
            actionable=tuple(_string_list(data.get("actionable"), "actionable")),
            metrics=ContentMetrics.from_dict(data.get("metrics")),
        )

    def top_actionable(self, limit: int = 4) -> list[str]:
        """Get the first actionable items for display. Storage keeps them all."""
        return list(self.actionable[:limit])

    def category(self, category_id: str) -> Optional[ScoreCategory]:
        """Look up a category by its stable id."""
        for category in self.categories:
            if category.id == category_id:
                return category
        return None


@dataclass(frozen=True)
class ContentAnalysisResponse:
    """Full response of a content scoring call."""
    seo_score: float
    breakdown: ContentBreakdown
    benchmarks: Benchmarks = field(default_factory=Benchmarks)
    nlp: NlpTerms = field(default_factory=NlpTerms)

    @classmethod
    def from_dict(cls, data: dict) -> "ContentAnalysisResponse":
        data = _require_mapping(data, "content analysis")
        breakdown = ContentBreakdown.from_dict(data["breakdown"])
        return cls(
            seo_score=clamp_score(_number(data, "seoScore", breakdown.total)),
            breakdown=breakdown,
            benchmarks=Benchmarks.from_dict(data.get("benchmarks")),
            nlp=NlpTerms.from_dict(data.get("nlp")),
        )


# =============================================================================
# Suggestions and document state
# =============================================================================


@dataclass(frozen=True)
class SuggestionBundle:
    """AI-authored fixes for the current draft. Consumed or discarded, never stored."""
    headings: tuple[str, ...] = ()
    faqs: tuple[str, ...] = ()
    paragraph_suggestions: tuple[str, ...] = ()
    missing_terms: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict) -> "SuggestionBundle":
        data = _require_mapping(data, "suggestions")
        return cls(
            headings=tuple(_string_list(data.get("headings"), "headings")),
            faqs=tuple(_string_list(data.get("faqs"), "faqs")),
            paragraph_suggestions=tuple(
                _string_list(data.get("paragraphSuggestions"), "paragraphSuggestions")
            ),
            missing_terms=tuple(_string_list(data.get("missingTerms"), "missingTerms")),
        )

    @property
    def is_empty(self) -> bool:
        """Check if the bundle has nothing to apply."""
        return not (
            self.headings or self.faqs or self.paragraph_suggestions or self.missing_terms
        )


# Fields whose change triggers an automatic rescore
OBSERVED_FIELDS = (
    "content_html",
    "meta_title",
    "meta_description",
    "primary_keyword",
    "secondary_keywords",
)


@dataclass(frozen=True)
class DocumentState:
    """
    The draft being edited.

    Immutable: every write produces a new instance, so a reference captured
    when an oracle call starts stays a consistent snapshot.
    """
    content_html: str = "<p></p>"
    meta_title: str = ""
    meta_description: str = ""
    primary_keyword: str = ""
    secondary_keywords: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        """Normalize keyword list input."""
        if not isinstance(self.secondary_keywords, tuple):
            object.__setattr__(self, "secondary_keywords", tuple(self.secondary_keywords))

    def with_changes(self, **changes) -> "DocumentState":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def to_payload(self) -> dict:
        """Serialize the scoring-relevant fields in oracle (camelCase) form."""
        return {
            "contentHtml": self.content_html,
            "metaTitle": self.meta_title,
            "metaDescription": self.meta_description,
            "primaryKeyword": self.primary_keyword,
            "secondaryKeywords": list(self.secondary_keywords),
        }


@dataclass(frozen=True)
class UndoSnapshot:
    """The single reversible step: document fields captured before a patch."""
    content_html: str
    meta_title: str
    meta_description: str

    @classmethod
    def from_document(cls, document: DocumentState) -> "UndoSnapshot":
        return cls(
            content_html=document.content_html,
            meta_title=document.meta_title,
            meta_description=document.meta_description,
        )

    def restore_onto(self, document: DocumentState) -> DocumentState:
        """Return the document with the captured fields put back."""
        return document.with_changes(
            content_html=self.content_html,
            meta_title=self.meta_title,
            meta_description=self.meta_description,
        )


class WorkflowState(Enum):
    """States of the workflow controller."""
    IDLE = "idle"  # No analysis session
    ANALYZING = "analyzing"
    BENCHMARKED = "benchmarked"  # Session installed, no breakdown yet
    SCORED = "scored"
    SUGGESTING = "suggesting"
    APPLYING = "applying"
