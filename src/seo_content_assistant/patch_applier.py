"""
Apply AI-authored suggestions to the draft.

Turns a SuggestionBundle into document changes deterministically:

- Content: one new block appended to the end of the HTML. Existing
  content is never rewritten.
- Meta title: replaced only when it does not mention the primary keyword.
- Meta description: regenerated when short or missing the keyword.

The pre-patch fields are captured in an UndoSnapshot so the change can be
reversed once. Everything here is pure; the controller decides when the
result is written back.
"""

import html
from dataclasses import dataclass, field
from typing import Iterable, Optional

from .adapters import normalize_keywords
from .config import WorkflowConfig
from .models import DocumentState, SuggestionBundle, TermStat, UndoSnapshot


AI_BLOCK_OPEN = '<section data-seo-ai="true">'
AI_BLOCK_CLOSE = "</section>"

HEADING_PROMPT = "Expand on this subtopic with details, examples, and benchmarks."
FAQ_PROMPT = "Write a concise, helpful answer that uses supporting terms."
FAQ_HEADING = "Frequently Asked Questions"
DESCRIPTION_TAIL = "Actionable guide on headings, links, and media to rank."
TITLE_SEPARATOR = " | "

# Tokens that leak from HTML entity extraction into term lists
GENERIC_TERM_ARTIFACTS = frozenset({"nbsp", "amp", "quot", "lt", "gt"})


@dataclass
class PatchResult:
    """Outcome of applying a suggestion bundle."""
    document: DocumentState
    snapshot: Optional[UndoSnapshot] = None
    changed_fields: list[str] = field(default_factory=list)

    @property
    def applied(self) -> bool:
        """Check if the document was changed."""
        return self.snapshot is not None


def _escape(text: str) -> str:
    return html.escape(text, quote=False)


def is_meaningful_term(term: str) -> bool:
    """
    Check if an extracted term is worth showing or using.

    Filters out very short tokens, bare numbers and markup artifacts such
    as "nbsp".
    """
    cleaned = (term or "").strip().lower()
    return (
        len(cleaned) > 2
        and not cleaned.isdigit()
        and cleaned not in GENERIC_TERM_ARTIFACTS
    )


def top_benchmark_terms(top_terms: Iterable[TermStat], limit: int = 3) -> list[str]:
    """Get the first meaningful terms from the benchmark's top term list."""
    terms = [t.term for t in top_terms if is_meaningful_term(t.term)]
    return normalize_keywords(terms)[:limit]


def rank_supplementary_terms(
    bundle: SuggestionBundle,
    document: DocumentState,
    top_terms: Iterable[TermStat] = (),
    max_top_terms: int = 3,
) -> list[str]:
    """
    Order the terms used to enrich metadata.

    Oracle-reported missing terms come first, then top benchmark terms,
    then the document's secondary keywords.
    """
    return normalize_keywords([
        *bundle.missing_terms,
        *top_benchmark_terms(top_terms, max_top_terms),
        *document.secondary_keywords,
    ])


def build_keyword_guidance(
    primary_keyword: str,
    missing_terms: Iterable[str],
    secondary_keywords: Iterable[str],
    limit: int = 4,
) -> str:
    """Build the guidance line that opens the AI block, or "" without a keyword."""
    keyword = primary_keyword.strip()
    if not keyword:
        return ""

    related = normalize_keywords([*missing_terms, *secondary_keywords])[:limit]
    if related:
        terms = ", ".join(_escape(t) for t in related)
        return (
            f"<p><strong>{_escape(keyword)}</strong>: include it in early headings "
            f"with related terms like {terms}.</p>"
        )
    return f"<p><strong>{_escape(keyword)}</strong>: include it in early headings.</p>"


def build_suggestion_blocks(
    bundle: SuggestionBundle,
    config: Optional[WorkflowConfig] = None,
) -> list[str]:
    """
    Render the bundle's sections in order: headings, paragraphs, FAQs, terms.

    Sections whose source list is empty are left out. Paragraph suggestions
    are inserted verbatim, markup included; headings, questions and terms
    are plain text and get escaped.
    """
    config = config or WorkflowConfig()
    blocks = []

    headings = bundle.headings[:config.max_headings]
    if headings:
        inner = "".join(
            f"<h2>{_escape(h)}</h2><p>{HEADING_PROMPT}</p>" for h in headings
        )
        blocks.append(f'<div class="seo-ai-heading-block">{inner}</div>')

    paragraphs = bundle.paragraph_suggestions[:config.max_paragraphs]
    if paragraphs:
        inner = "".join(f"<p>{p}</p>" for p in paragraphs)
        blocks.append(f'<div class="seo-ai-paragraphs">{inner}</div>')

    faqs = bundle.faqs[:config.max_faqs]
    if faqs:
        inner = "".join(f"<h3>{_escape(q)}</h3><p>{FAQ_PROMPT}</p>" for q in faqs)
        blocks.append(f'<section class="seo-ai-faq"><h2>{FAQ_HEADING}</h2>{inner}</section>')

    missing = bundle.missing_terms[:config.max_missing_terms]
    if missing:
        terms = ", ".join(_escape(t) for t in missing)
        blocks.append(f'<p class="seo-ai-missing">Include these terms naturally: {terms}</p>')

    return blocks


def build_meta_title(document: DocumentState, supplementary_terms: list[str]) -> str:
    """Return the meta title, rebuilt around the keyword only if it lacks it."""
    keyword = document.primary_keyword.strip()
    if not keyword or keyword.lower() in document.meta_title.lower():
        return document.meta_title
    if supplementary_terms:
        return f"{keyword}{TITLE_SEPARATOR}{supplementary_terms[0]}"
    return keyword


def build_meta_description(
    document: DocumentState,
    supplementary_terms: list[str],
    config: Optional[WorkflowConfig] = None,
) -> str:
    """
    Return the meta description, regenerated if too short or missing the keyword.

    The regenerated sentence is cut to meta_description_max_length.
    """
    config = config or WorkflowConfig()
    keyword = document.primary_keyword.strip()
    description = document.meta_description
    if not keyword:
        return description

    too_short = len(description) < config.meta_description_min_length
    if not too_short and keyword.lower() in description.lower():
        return description

    terms = ", ".join(supplementary_terms[:config.max_description_terms])
    if terms:
        draft = f"Discover {keyword} with {terms}. {DESCRIPTION_TAIL}"
    else:
        draft = f"Discover {keyword}. {DESCRIPTION_TAIL}"
    return draft[:config.meta_description_max_length]


def apply_suggestions(
    document: DocumentState,
    bundle: SuggestionBundle,
    top_terms: Iterable[TermStat] = (),
    config: Optional[WorkflowConfig] = None,
) -> PatchResult:
    """
    Merge a suggestion bundle into the document.

    Args:
        document: Current document.
        bundle: Suggestions to apply.
        top_terms: Top terms from the active analysis session's benchmark.
        config: Limits for the inserted sections and the meta description.

    Returns:
        PatchResult with the new document and the undo snapshot. When the
        bundle has nothing to insert, the document comes back unchanged
        and no snapshot is taken.
    """
    config = config or WorkflowConfig()

    blocks = build_suggestion_blocks(bundle, config)
    if not blocks:
        return PatchResult(document=document)

    snapshot = UndoSnapshot.from_document(document)

    guidance = build_keyword_guidance(
        document.primary_keyword,
        bundle.missing_terms,
        document.secondary_keywords,
        limit=config.max_guidance_terms,
    )
    section = f"{AI_BLOCK_OPEN}{guidance}{''.join(blocks)}{AI_BLOCK_CLOSE}"
    content_html = f"{document.content_html}\n{section}"

    terms = rank_supplementary_terms(bundle, document, top_terms, config.max_top_terms)
    meta_title = build_meta_title(document, terms)
    meta_description = build_meta_description(document, terms, config)

    changed = ["content_html"]
    if meta_title != document.meta_title:
        changed.append("meta_title")
    if meta_description != document.meta_description:
        changed.append("meta_description")

    patched = document.with_changes(
        content_html=content_html,
        meta_title=meta_title,
        meta_description=meta_description,
    )
    return PatchResult(document=patched, snapshot=snapshot, changed_fields=changed)
