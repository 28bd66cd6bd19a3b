"""
Command-line interface for the SEO content assistant.

Runs the workflow once against the scoring service: benchmark a keyword,
score a draft, optionally apply AI fixes, and print the report.
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from .adapters import parse_keyword_list
from .config import DEFAULT_API_BASE, WorkflowConfig
from .controller import WorkflowController
from .models import DocumentState
from .oracle_client import OracleClient
from .panel_view import PanelView, build_panel_view

console = Console()

TONE_STYLES = {"good": "green", "mid": "yellow", "low": "red"}


@click.command()
@click.option(
    "--keyword",
    "-k",
    type=str,
    required=True,
    help="Primary keyword to benchmark against.",
)
@click.option(
    "--secondary",
    type=str,
    default="",
    help="Comma-separated secondary keywords.",
)
@click.option(
    "--location",
    type=str,
    default="United States",
    help="Search location (default: United States).",
)
@click.option(
    "--language",
    type=str,
    default="en",
    help="Search language (default: en).",
)
@click.option(
    "--content",
    "-c",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="Path to the draft HTML.",
)
@click.option("--meta-title", type=str, default="", help="Current meta title.")
@click.option("--meta-description", type=str, default="", help="Current meta description.")
@click.option(
    "--apply-fixes",
    is_flag=True,
    default=False,
    help="Request AI fixes and apply them to the draft.",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Where to write the (possibly fixed) draft HTML.",
)
@click.option(
    "--api-base",
    type=str,
    envvar="SEO_ASSISTANT_API_BASE",
    default=DEFAULT_API_BASE,
    help="Scoring service base URL. Can also be set via SEO_ASSISTANT_API_BASE.",
)
@click.option(
    "--site-id",
    type=str,
    envvar="SEO_ASSISTANT_SITE_ID",
    help="Active site id. Can also be set via SEO_ASSISTANT_SITE_ID.",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    default=False,
    help="Enable verbose output.",
)
def main(
    keyword: str,
    secondary: str,
    location: str,
    language: str,
    content: Path,
    meta_title: str,
    meta_description: str,
    apply_fixes: bool,
    output: Optional[Path],
    api_base: str,
    site_id: Optional[str],
    verbose: bool,
) -> None:
    """
    SEO Content Assistant - Score a draft against the search results.

    Benchmarks the keyword, scores the draft HTML, and optionally applies
    AI-authored fixes, writing the result to --output.

    Examples:

        seo-assist -k "content marketing" -c draft.html

        seo-assist -k "content marketing" --secondary "blog seo" -c draft.html --apply-fixes -o fixed.html
    """
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
        )

    console.print(Panel.fit(
        "[bold blue]SEO Content Assistant[/bold blue]\n"
        "Benchmarking your draft against the search results",
        border_style="blue",
    ))

    try:
        config = WorkflowConfig.from_env(api_base_url=api_base, site_id=site_id)
    except ValueError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        sys.exit(1)

    document = DocumentState(
        content_html=content.read_text(encoding="utf-8"),
        meta_title=meta_title,
        meta_description=meta_description,
        primary_keyword=keyword,
        secondary_keywords=tuple(parse_keyword_list(secondary)),
    )

    view, final_document = asyncio.run(
        _run_workflow(config, document, location, language, apply_fixes)
    )

    _display_report(view, verbose)

    if view.error:
        console.print(f"\n[red]Error:[/red] {view.error}")
        sys.exit(1)

    if output:
        output.write_text(final_document.content_html, encoding="utf-8")
        console.print(f"\n[bold green]Success![/bold green] Draft saved to: {output}")


async def _run_workflow(
    config: WorkflowConfig,
    document: DocumentState,
    location: str,
    language: str,
    apply_fixes: bool,
) -> tuple[PanelView, DocumentState]:
    """Run analysis, score and (optionally) apply fixes; return the final view."""
    async with OracleClient(config) as oracle:
        controller = WorkflowController(oracle, config, document)
        try:
            with console.status("[bold green]Running SERP analysis..."):
                session = await controller.run_analysis(location, language)

            if session is not None and apply_fixes:
                with console.status("[bold green]Applying AI fixes..."):
                    if await controller.apply_fixes():
                        await controller.rescore()

            return build_panel_view(controller), controller.document
        finally:
            controller.close()


def _display_report(view: PanelView, verbose: bool) -> None:
    """Display the score report."""
    style = TONE_STYLES.get(view.tone, "white")
    console.print(
        f"\n[bold]SEO score:[/bold] [{style}]{view.total}/100[/{style}] ({view.verdict})"
    )

    if view.categories:
        table = Table(title="Score Breakdown", show_header=True)
        table.add_column("Category", style="cyan")
        table.add_column("Score", justify="right")
        for row in view.categories:
            row_style = TONE_STYLES.get(row.tone, "white")
            table.add_row(row.label, f"[{row_style}]{row.score}/100[/{row_style}]")
        console.print(table)

    if view.actionable:
        console.print("\n[bold]Top fixes[/bold]")
        for index, item in enumerate(view.actionable, start=1):
            console.print(f"  {index}. {item}")

    if view.missing_count:
        console.print(f"\n[yellow]Missing terms ({view.missing_count}):[/yellow] {view.missing_terms_preview}")

    stats = Table(title="Structure", show_header=True)
    stats.add_column("Metric", style="cyan")
    stats.add_column("Value")
    stats.add_column("Target", style="dim")
    for stat in view.structure:
        stats.add_row(stat.label, stat.value, stat.target or "")
    console.print(stats)

    if verbose and view.competitors:
        competitors = Table(title="SERP Competitors", show_header=True)
        competitors.add_column("#", justify="right")
        competitors.add_column("Title", style="green")
        competitors.add_column("Words", justify="right")
        competitors.add_column("Links")
        for row in view.competitors:
            competitors.add_row(str(row.position), row.title, str(row.word_count), row.links)
        console.print(competitors)


def run_cli() -> None:
    """Entry point for the CLI."""
    main()


if __name__ == "__main__":
    run_cli()
