"""Tests for applying AI suggestions to the draft."""

from seo_content_assistant.adapters import normalize_keywords
from seo_content_assistant.config import WorkflowConfig
from seo_content_assistant.models import DocumentState, SuggestionBundle, TermStat
from seo_content_assistant.patch_applier import (
    AI_BLOCK_OPEN,
    DESCRIPTION_TAIL,
    FAQ_HEADING,
    FAQ_PROMPT,
    HEADING_PROMPT,
    apply_suggestions,
    build_keyword_guidance,
    build_meta_description,
    build_meta_title,
    build_suggestion_blocks,
    is_meaningful_term,
    rank_supplementary_terms,
    top_benchmark_terms,
)


class TestApplySuggestions:
    """Tests for apply_suggestions."""

    def test_existing_content_is_kept_as_prefix(self, draft):
        """Test the patch only appends to the existing HTML."""
        bundle = SuggestionBundle(headings=("Measuring results",))

        result = apply_suggestions(draft, bundle)

        assert result.applied
        assert result.document.content_html.startswith(draft.content_html + "\n")
        assert result.document.content_html.endswith("</section>")
        assert result.document.content_html.count(AI_BLOCK_OPEN) == 1

    def test_snapshot_holds_pre_patch_fields(self, draft):
        result = apply_suggestions(draft, SuggestionBundle(faqs=("Is it worth it?",)))

        assert result.snapshot.content_html == draft.content_html
        assert result.snapshot.meta_title == draft.meta_title
        assert result.snapshot.meta_description == draft.meta_description

    def test_empty_bundle_is_a_no_op(self, draft):
        """Test an empty bundle changes nothing, metadata included."""
        result = apply_suggestions(draft, SuggestionBundle())

        assert not result.applied
        assert result.document is draft
        assert result.changed_fields == []

    def test_block_format(self):
        """Test the exact HTML of the appended block."""
        document = DocumentState(
            content_html="<p>Body</p>",
            meta_title="content marketing tips",
            meta_description="content marketing " * 8,
            primary_keyword="content marketing",
        )
        bundle = SuggestionBundle(
            headings=("Why it works",),
            paragraph_suggestions=("Start with goals.",),
            faqs=("How long does it take?",),
            missing_terms=("funnel", "audience"),
        )

        result = apply_suggestions(document, bundle)

        expected = (
            "<p>Body</p>\n"
            '<section data-seo-ai="true">'
            "<p><strong>content marketing</strong>: include it in early headings "
            "with related terms like funnel, audience.</p>"
            f'<div class="seo-ai-heading-block"><h2>Why it works</h2><p>{HEADING_PROMPT}</p></div>'
            '<div class="seo-ai-paragraphs"><p>Start with goals.</p></div>'
            f'<section class="seo-ai-faq"><h2>{FAQ_HEADING}</h2>'
            f"<h3>How long does it take?</h3><p>{FAQ_PROMPT}</p></section>"
            '<p class="seo-ai-missing">Include these terms naturally: funnel, audience</p>'
            "</section>"
        )
        assert result.document.content_html == expected
        assert result.changed_fields == ["content_html"]

    def test_heading_text_is_escaped(self, draft):
        bundle = SuggestionBundle(headings=("Tips & <tricks>",))

        result = apply_suggestions(draft, bundle)

        assert "<h2>Tips &amp; &lt;tricks&gt;</h2>" in result.document.content_html

    def test_paragraphs_inserted_verbatim(self, draft):
        """Test paragraph suggestions keep their markup."""
        paragraph = 'See <a href="/guide">our guide</a> & more.'
        bundle = SuggestionBundle(paragraph_suggestions=(paragraph,))

        result = apply_suggestions(draft, bundle)

        assert f"<p>{paragraph}</p>" in result.document.content_html
        assert "&lt;a" not in result.document.content_html

    def test_limits_from_config(self, draft):
        config = WorkflowConfig(max_headings=1, max_faqs=2)
        bundle = SuggestionBundle(
            headings=("One", "Two", "Three"),
            faqs=("Q1?", "Q2?", "Q3?"),
        )

        result = apply_suggestions(draft, bundle, config=config)

        html = result.document.content_html
        assert "<h2>One</h2>" in html and "<h2>Two</h2>" not in html
        assert "<h3>Q2?</h3>" in html and "<h3>Q3?</h3>" not in html

    def test_metadata_updated_alongside_content(self, draft):
        result = apply_suggestions(
            draft,
            SuggestionBundle(missing_terms=("funnel",)),
            top_terms=(TermStat("strategy", 0.9),),
        )

        assert result.document.meta_title == "content marketing | funnel"
        assert result.document.meta_description.startswith(
            "Discover content marketing with funnel, strategy, blog seo."
        )
        assert result.changed_fields == ["content_html", "meta_title", "meta_description"]

    def test_undo_snapshot_round_trip(self, draft):
        result = apply_suggestions(draft, SuggestionBundle(headings=("H",)))

        restored = result.snapshot.restore_onto(result.document)

        assert restored == draft


class TestKeywordGuidance:

    def test_with_related_terms(self):
        line = build_keyword_guidance("seo", ["a", "b", "A"], ["c", "d", "e"], limit=4)
        assert line == (
            "<p><strong>seo</strong>: include it in early headings "
            "with related terms like a, b, c, d.</p>"
        )

    def test_without_related_terms(self):
        line = build_keyword_guidance("seo", [], [])
        assert line == "<p><strong>seo</strong>: include it in early headings.</p>"

    def test_no_keyword(self):
        assert build_keyword_guidance("  ", ["a"], []) == ""


class TestSuggestionBlocks:

    def test_empty_sections_left_out(self):
        blocks = build_suggestion_blocks(SuggestionBundle(faqs=("Q?",)))
        assert len(blocks) == 1
        assert blocks[0].startswith('<section class="seo-ai-faq">')

    def test_order(self):
        blocks = build_suggestion_blocks(SuggestionBundle(
            headings=("H",), faqs=("Q?",), paragraph_suggestions=("P",), missing_terms=("t",),
        ))
        assert [b.split(">")[0] for b in blocks] == [
            '<div class="seo-ai-heading-block"',
            '<div class="seo-ai-paragraphs"',
            '<section class="seo-ai-faq"',
            '<p class="seo-ai-missing"',
        ]


class TestMetaTitle:

    def test_unchanged_when_keyword_present(self):
        document = DocumentState(meta_title="Content Marketing 101", primary_keyword="content marketing")
        assert build_meta_title(document, ["funnel"]) == "Content Marketing 101"

    def test_rebuilt_without_terms(self):
        document = DocumentState(meta_title="Blog", primary_keyword="seo")
        assert build_meta_title(document, []) == "seo"

    def test_unchanged_without_keyword(self):
        document = DocumentState(meta_title="Blog")
        assert build_meta_title(document, ["funnel"]) == "Blog"


class TestMetaDescription:

    def test_long_description_with_keyword_kept(self):
        description = "A complete content marketing playbook " + "x" * 100
        document = DocumentState(meta_description=description, primary_keyword="content marketing")
        assert build_meta_description(document, ["funnel"]) == description

    def test_short_description_regenerated(self):
        document = DocumentState(meta_description="content marketing", primary_keyword="content marketing")
        assert build_meta_description(document, []) == (
            f"Discover content marketing. {DESCRIPTION_TAIL}"
        )

    def test_regenerated_description_truncated(self):
        config = WorkflowConfig(meta_description_min_length=10, meta_description_max_length=40)
        document = DocumentState(primary_keyword="content marketing")
        description = build_meta_description(document, ["funnel", "audience"], config)
        assert len(description) == 40
        assert description.startswith("Discover content marketing with funnel")


class TestTermRanking:

    def test_meaningful_term_filter(self):
        assert is_meaningful_term("strategy")
        assert not is_meaningful_term("nbsp")
        assert not is_meaningful_term("42")
        assert not is_meaningful_term("ok")

    def test_top_benchmark_terms_skip_artifacts(self):
        terms = [TermStat("nbsp"), TermStat("strategy"), TermStat("123"), TermStat("funnel"),
                 TermStat("audience"), TermStat("reach")]
        assert top_benchmark_terms(terms, 3) == ["strategy", "funnel", "audience"]

    def test_rank_order(self, draft):
        bundle = SuggestionBundle(missing_terms=("funnel", "Blog SEO"))
        ranked = rank_supplementary_terms(bundle, draft, [TermStat("strategy")])
        assert ranked == ["funnel", "Blog SEO", "strategy", "editorial calendar"]

    def test_terms_cleaned_like_keywords(self, draft):
        bundle = SuggestionBundle(missing_terms=(" Funnel ", "funnel", ""))
        ranked = rank_supplementary_terms(bundle, draft)
        assert ranked == normalize_keywords([*bundle.missing_terms, *draft.secondary_keywords])
        assert ranked[0] == "Funnel"
