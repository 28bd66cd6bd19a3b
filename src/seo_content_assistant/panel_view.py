"""
Display-ready view of the workflow for the assistant panel.

The panel itself (rendering, styling) lives outside this package. This
module derives the values it shows from the controller's observables so
every front end (CLI, HTTP wrapper, UI) labels things the same way.
"""

from dataclasses import dataclass, field
from typing import Optional

from .controller import WorkflowController
from .models import ContentBreakdown, SerpCompetitor
from .patch_applier import is_meaningful_term


MAX_ACTIONABLE = 4
MAX_MISSING_PREVIEW = 10
MAX_NLP_TERMS = 16
MAX_COMPETITORS = 6


def score_tone(score: float) -> str:
    """Color band for a score: good, mid or low."""
    if score >= 85:
        return "good"
    if score >= 65:
        return "mid"
    return "low"


def score_verdict(score: float) -> str:
    """Short verdict shown under the score gauge."""
    if score >= 85:
        return "Excellent"
    if score >= 70:
        return "Good"
    if score >= 50:
        return "Fair"
    return "Needs work"


@dataclass
class CategoryRow:
    id: str
    label: str
    score: int
    tone: str
    width_percent: float


@dataclass
class TermChip:
    term: str
    covered: bool


@dataclass
class CompetitorRow:
    url: str
    title: str
    position: int
    word_count: int
    links: str
    has_faq_schema: bool
    has_article_schema: bool


@dataclass
class StructureStat:
    label: str
    value: str
    target: Optional[str] = None


@dataclass
class PanelView:
    """Everything the assistant panel renders, already formatted."""
    status_label: str
    badge: str
    run_button_label: str
    can_run_analysis: bool
    can_request_fixes: bool
    can_undo: bool
    total: int
    tone: str
    verdict: str
    primary_keyword: str
    secondary_keywords: list[str] = field(default_factory=list)
    categories: list[CategoryRow] = field(default_factory=list)
    actionable: list[str] = field(default_factory=list)
    missing_terms_preview: str = ""
    missing_count: int = 0
    nlp_terms: list[TermChip] = field(default_factory=list)
    competitors: list[CompetitorRow] = field(default_factory=list)
    structure: list[StructureStat] = field(default_factory=list)
    error: Optional[str] = None


def _missing_preview(missing_terms: tuple[str, ...]) -> str:
    preview = ", ".join(missing_terms[:MAX_MISSING_PREVIEW])
    if len(missing_terms) > MAX_MISSING_PREVIEW:
        preview += "…"
    return preview


def _category_rows(breakdown: Optional[ContentBreakdown]) -> list[CategoryRow]:
    if breakdown is None:
        return []
    return [
        CategoryRow(
            id=category.id,
            label=category.label,
            score=round(category.score),
            tone=score_tone(category.score),
            width_percent=min(100.0, max(0.0, category.score)),
        )
        for category in breakdown.categories
    ]


def _competitor_row(competitor: SerpCompetitor) -> CompetitorRow:
    return CompetitorRow(
        url=competitor.url,
        title=competitor.title,
        position=competitor.position,
        word_count=competitor.word_count,
        links=f"{competitor.internal_links}/{competitor.external_links}",
        has_faq_schema=competitor.has_faq_schema,
        has_article_schema=competitor.has_article_schema,
    )


def _structure_stats(controller: WorkflowController) -> list[StructureStat]:
    breakdown = controller.breakdown
    session = controller.session
    metrics = breakdown.metrics if breakdown else None
    benchmarks = session.benchmarks if session else None

    headings = metrics.heading_counts if metrics else {}
    stats = [
        StructureStat(
            label="Words",
            value=str(metrics.word_count if metrics else 0),
            target=(
                f"Target {round(benchmarks.word_count.min)}–{round(benchmarks.word_count.max)}"
                if benchmarks else None
            ),
        ),
        StructureStat(
            label="Headings",
            value=(
                f"H1 {headings.get('h1', 0)} · H2 {headings.get('h2', 0)} · "
                f"H3 {headings.get('h3', 0)}"
            ),
            target=(
                f"Targets: H2 {benchmarks.heading_targets.h2}, H3 {benchmarks.heading_targets.h3}"
                if benchmarks else None
            ),
        ),
        StructureStat(
            label="Links",
            value=(
                f"In {metrics.internal_links if metrics else 0} · "
                f"Out {metrics.external_links if metrics else 0}"
            ),
            target=(
                f"Aim In {round(benchmarks.internal_links.min)}-{round(benchmarks.internal_links.max)}, "
                f"Out {round(benchmarks.external_links.min)}-{round(benchmarks.external_links.max)}"
                if benchmarks else None
            ),
        ),
        StructureStat(
            label="Media",
            value=f"Images {metrics.image_count if metrics else 0}",
            target=f"Avg sentence {round(metrics.avg_sentence_length if metrics else 0)} words",
        ),
    ]
    return stats


def build_panel_view(controller: WorkflowController) -> PanelView:
    """Derive the panel's display values from the controller."""
    session = controller.session
    breakdown = controller.breakdown
    document = controller.document

    total = breakdown.total if breakdown else 0.0
    missing = breakdown.missing_terms if breakdown else ()

    if controller.is_analyzing:
        run_label = "Analyzing…"
    elif session is not None:
        run_label = "Refresh Score"
    else:
        run_label = "Run analysis"

    nlp_terms = []
    if session is not None:
        meaningful = [t for t in session.nlp_terms.top_terms if is_meaningful_term(t.term)]
        nlp_terms = [
            TermChip(term=t.term, covered=t.term.lower() not in missing)
            for t in meaningful[:MAX_NLP_TERMS]
        ]

    competitors = (
        [_competitor_row(c) for c in session.competitors[:MAX_COMPETITORS]]
        if session is not None else []
    )

    return PanelView(
        status_label="Benchmarked" if session else "Not benchmarked",
        badge="Ready" if session else "Setup",
        run_button_label=run_label,
        can_run_analysis=(
            not controller.is_analyzing and bool(document.primary_keyword.strip())
        ),
        can_request_fixes=(
            not controller.is_scoring
            and not controller.is_applying
            and session is not None
        ),
        can_undo=controller.can_undo,
        total=round(total),
        tone=score_tone(total),
        verdict=score_verdict(total),
        primary_keyword=document.primary_keyword,
        secondary_keywords=list(document.secondary_keywords),
        categories=_category_rows(breakdown),
        actionable=breakdown.top_actionable(MAX_ACTIONABLE) if breakdown else [],
        missing_terms_preview=_missing_preview(missing),
        missing_count=len(missing),
        nlp_terms=nlp_terms,
        competitors=competitors,
        structure=_structure_stats(controller),
        error=controller.last_error,
    )
