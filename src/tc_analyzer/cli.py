"""Command-line interface for the terms-and-conditions analyzer.

Provides ``profile``, ``analyze`` and ``clause`` commands with rich
terminal output using the ``click`` and ``rich`` libraries.

Usage::

    tc-analyzer profile questionnaire.json
    tc-analyzer analyze terms.html --profile questionnaire.json --multi-pass
    tc-analyzer clause "We may terminate your account at any time."
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .analyzer import TermsAnalyzer
from .cache import PostgresAnalysisCache
from .config import Settings
from .documents import load_document
from .errors import ProfileValidationError
from .llm import FixtureClient, build_llm_client
from .models import AnalysisOptions
from .personalization import PersonalizationService
from .profile import compute, insights
from .schemas import validate_profile
from .store import PostgresProfileStore
from .synthesizer import PassProgress

console = Console()
err_console = Console(stderr=True)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


def _get_risk_style(level: str) -> str:
    return {"high": "bold red", "medium": "bold yellow", "low": "dim green"}.get(level, "")


def _get_risk_icon(level: str) -> str:
    return {"high": "🔴", "medium": "🟡", "low": "🟢"}.get(level, "")


def _read_questionnaire(path: Path) -> dict:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"{path} is not valid JSON: {e}") from e


def _fail(message: str) -> None:
    err_console.print(f"[bold red]Error:[/] {message}")
    sys.exit(1)


@click.group()
@click.version_option(package_name="tc-analyzer")
@click.option("--log-level", type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]), default=None,
              help="Logging level (defaults to LOG_LEVEL or INFO).")
@click.pass_context
def main(ctx: click.Context, log_level: str | None) -> None:
    """Personalized risk analysis for terms and conditions."""
    settings = Settings.from_env()
    _configure_logging(log_level or settings.log_level)
    ctx.obj = settings


@main.command()
@click.argument("questionnaire", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--output", "-o", type=click.Choice(["rich", "json"]), default="rich",
              help="Output format.")
@click.option("--store", is_flag=True, help="Persist the profile to DATABASE_URL.")
@click.pass_obj
def profile(settings: Settings, questionnaire: Path, output: str, store: bool) -> None:
    """Validate a questionnaire and show the computed profile.

    Example: tc-analyzer profile questionnaire.json
    """
    raw = _read_questionnaire(questionnaire)
    try:
        validated = validate_profile(raw)
    except ProfileValidationError as e:
        _render_validation_errors(e)
        sys.exit(1)

    computed = compute(validated)
    summary = insights(validated, computed)

    if store:
        if not settings.database_url:
            _fail("DATABASE_URL is not set")
        profile_store = PostgresProfileStore(settings.database_url)
        try:
            profile_store.init_schema()
            asyncio.run(PersonalizationService(profile_store).save_profile(raw))
        finally:
            profile_store.close()
        err_console.print(f"[green]Saved profile for {validated.user_id}[/]")

    if output == "json":
        click.echo(json.dumps({"computed_profile": computed.to_dict(), "insights": summary}, indent=2))
        return

    tolerance = computed.risk_tolerance
    thresholds = computed.alert_thresholds
    table = Table(title=f"Profile: {validated.user_id}")
    table.add_column("Category", style="cyan")
    table.add_column("Tolerance", justify="right")
    table.add_column("Alert threshold", justify="right")
    table.add_row("Privacy", f"{tolerance.privacy:.1f}", f"{thresholds.privacy:.1f}")
    table.add_row("Financial / payment", f"{tolerance.financial:.1f}", f"{thresholds.payment:.1f}")
    table.add_row("Legal / liability", f"{tolerance.legal:.1f}", f"{thresholds.liability:.1f}")
    table.add_row("Termination", "-", f"{thresholds.termination:.1f}")
    table.add_row("Overall", f"{tolerance.overall:.1f}", f"{thresholds.overall:.1f}")
    console.print(table)
    overview = "\n".join(
        f"{name.title()}: {entry['level']} ({entry['score']:.1f})"
        for name, entry in summary["risk_profile_summary"].items()
    )
    console.print(Panel(overview, title="Risk Profile", border_style="blue"))
    console.print(f"Explanation style: [bold]{summary['explanation_style']['description']}[/]")
    if computed.profile_tags:
        console.print(f"Tags: {', '.join(computed.profile_tags)}")
    for recommendation in summary["recommendations"]:
        console.print(f"  💡 {recommendation['message']}")


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--profile", "profile_path", type=click.Path(exists=True, dir_okay=False, path_type=Path),
              default=None, help="Questionnaire JSON used to personalize the analysis.")
@click.option("--multi-pass", is_flag=True, help="Run the five-pass analysis.")
@click.option("--mock", is_flag=True, help="Use the offline fixture client instead of Gemini.")
@click.option("--language", default="en", show_default=True, help="Response language.")
@click.option("--detail-level", type=click.Choice(["brief", "standard", "detailed"]), default="standard",
              show_default=True)
@click.option("--output", "-o", type=click.Choice(["rich", "json"]), default="rich",
              help="Output format.")
@click.option("--save", "-s", type=click.Path(path_type=Path), default=None,
              help="Save results to a JSON file.")
@click.option("--shared-cache", is_flag=True, help="Cache results in the DATABASE_URL database.")
@click.pass_obj
def analyze(
    settings: Settings,
    file: Path,
    profile_path: Path | None,
    multi_pass: bool,
    mock: bool,
    language: str,
    detail_level: str,
    output: str,
    save: Path | None,
    shared_cache: bool,
) -> None:
    """Analyze a terms-and-conditions document.

    Example: tc-analyzer analyze terms.html --profile questionnaire.json
    """
    try:
        text = load_document(file).full_text
    except (ValueError, FileNotFoundError) as e:
        _fail(str(e))

    validated = computed = None
    if profile_path is not None:
        try:
            validated = validate_profile(_read_questionnaire(profile_path))
        except ProfileValidationError as e:
            _render_validation_errors(e)
            sys.exit(1)
        computed = compute(validated)

    cache = None
    if shared_cache:
        if not settings.database_url:
            _fail("DATABASE_URL is not set")
        cache = PostgresAnalysisCache(settings.database_url, default_ttl=settings.cache_ttl)
        cache.init_schema()

    client = FixtureClient() if mock else build_llm_client(settings)
    analyzer = TermsAnalyzer(client, cache=cache, settings=settings)
    options = AnalysisOptions(language=language, detail_level=detail_level, multi_pass=multi_pass)

    def on_progress(progress: PassProgress) -> None:
        err_console.print(
            f"  Pass {progress.pass_number}/{progress.max_passes} done "
            f"(score {progress.result.risk_score:.1f}, {progress.progress:.0f}%)"
        )

    with err_console.status("[bold blue]Analyzing document...", spinner="dots"):
        try:
            result = asyncio.run(
                analyzer.analyze_document(
                    text, options, computed_profile=computed, profile=validated, on_progress=on_progress
                )
            )
        except ValueError as e:
            _fail(str(e))
        finally:
            if cache is not None:
                cache.close()

    if save:
        save.write_text(json.dumps(result, indent=2), encoding="utf-8")
        err_console.print(f"[green]Results saved to {save}[/]")

    if output == "json":
        click.echo(json.dumps(result, indent=2))
    else:
        _render_analysis(result, file.name)


@main.command()
@click.argument("text")
@click.option("--mock", is_flag=True, help="Use the offline fixture client instead of Gemini.")
@click.option("--output", "-o", type=click.Choice(["rich", "json"]), default="rich",
              help="Output format.")
@click.pass_obj
def clause(settings: Settings, text: str, mock: bool, output: str) -> None:
    """Analyze a single clause.

    Example: tc-analyzer clause "We may share your data with third parties."
    """
    client = FixtureClient() if mock else build_llm_client(settings)
    analyzer = TermsAnalyzer(client, settings=settings)
    try:
        result = asyncio.run(analyzer.analyze_selected_text(text))
    except ValueError as e:
        _fail(str(e))

    if output == "json":
        click.echo(json.dumps(result, indent=2))
        return

    level = result["risk_level"]
    console.print(Panel(
        f"{result['summary']}\n\n"
        f"Type: {result.get('clause_type', 'general')} | Impact: {result.get('user_impact', '-')}",
        title=f"{_get_risk_icon(level)} Clause risk {result['risk_score']:.1f} ({level.upper()})",
        border_style=_get_risk_style(level) or "blue",
    ))
    for implication in result.get("legal_implications", []):
        console.print(f"  ⚖️  {implication}")
    for recommendation in result.get("recommendations", []):
        console.print(f"  💡 {recommendation}")


# ------------------------------------------------------------------
# Rich rendering helpers
# ------------------------------------------------------------------

def _render_validation_errors(error: ProfileValidationError) -> None:
    table = Table(title="Profile validation failed", title_style="bold red")
    table.add_column("Field", style="cyan")
    table.add_column("Problem")
    for field_error in error.errors:
        table.add_row(field_error.loc, field_error.message)
    err_console.print(table)


def _render_analysis(result: dict[str, Any], filename: str) -> None:
    level = result["risk_level"]
    style = _get_risk_style(level)
    console.print()

    flags = []
    if result.get("fallback"):
        flags.append("[yellow]fallback[/]")
    if result.get("multi_pass_analysis"):
        flags.append(f"{result['passes_completed']} passes")
    console.print(Panel(
        f"[bold]{filename}[/]\n"
        f"Words: {result.get('word_count', '?')} | "
        f"Confidence: {result['confidence']:.0%}"
        + (f" | {' | '.join(flags)}" if flags else ""),
        title="📄 Terms & Conditions Analysis",
        border_style="blue",
    ))
    console.print(Panel(result["summary"], title="Summary", border_style="dim"))

    table = Table(title="Categories", show_lines=True)
    table.add_column("Category", style="cyan", width=14)
    table.add_column("Score", justify="center", width=7)
    table.add_column("Concerns", style="white", max_width=70)
    table.add_column("Alert", justify="center", width=7)
    for name, category in result["categories"].items():
        score = category["score"]
        score_style = "bold red" if score >= 7 else "bold yellow" if score >= 4 else "dim green"
        table.add_row(
            name.title(),
            Text(f"{score:.1f}", style=score_style),
            "\n".join(category["concerns"]),
            "⚠️" if category.get("personalized_alert") else "",
        )
    console.print(table)

    if result["key_points"]:
        console.print("[bold]Key Points[/]")
        for point in result["key_points"]:
            console.print(f"  • {point}")
        console.print()

    for recommendation in result.get("personalized_recommendations", []):
        rec_style = "bold red" if recommendation["priority"] == "high" else "bold yellow"
        console.print(f"  [{rec_style}]{recommendation['priority'].upper()}[/]: {recommendation['message']}")
    for recommendation in result.get("insights", {}).get("recommendations", []):
        console.print(f"  💡 {recommendation}")
    console.print()

    console.print(
        f"Overall Risk Score: [{style}]{result['risk_score']:.1f}/10 "
        f"{_get_risk_icon(level)} {level.upper()}[/]"
    )
    personalized = result.get("personalized_risk_level")
    if personalized and personalized != level:
        console.print(f"For your profile: [{_get_risk_style(personalized)}]{personalized.upper()}[/]")
    console.print()


if __name__ == "__main__":
    main()
