"""
CLI interface for Claude Usage.

Provides command-line access to usage statistics.
"""

import json
import logging
import sys
from dataclasses import asdict, replace
from datetime import datetime
from typing import Optional

import typer
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from claude_usage.config.loader import load_config
from claude_usage.core.analytics import abbreviate, cost_breakdown
from claude_usage.core.errors import UsageRepositoryError
from claude_usage.storage.models import SortOrder, UsageStats
from claude_usage.storage.repository import UsageRepository, get_repository

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1

DATE_FORMATS = ["%Y-%m-%d"]


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to YAML configuration file"
    ),
    base_path: Optional[str] = typer.Option(
        None,
        "--base-path",
        "-p",
        help="Claude data directory (default ~/.claude)"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show debug logging"
    )
):
    """Claude Code usage statistics."""
    _configure_logging(verbose)
    ctx.obj = {"config": config, "base_path": base_path}
    if ctx.invoked_subcommand is None:
        console.print("Claude Usage - Use --help to see available commands")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _repository(ctx: typer.Context) -> UsageRepository:
    """Build the repository from the global options, exiting on bad config."""
    options = ctx.obj or {}
    try:
        config = load_config(options.get("config"))
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Configuration error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    if options.get("base_path"):
        try:
            config = replace(config, base_path=options["base_path"])
        except ValueError as e:
            console.print(f"[red]Configuration error:[/] {str(e)}")
            sys.exit(EXIT_CODE_FAIL)
    return get_repository(config)


def _fail(error: Exception) -> None:
    console.print(f"[red]Error:[/] {str(error)}")
    if isinstance(error, UsageRepositoryError) and error.recovery_suggestion:
        console.print(f"[dim]{error.recovery_suggestion}[/]")
    sys.exit(EXIT_CODE_FAIL)


def _no_data(stats: UsageStats) -> bool:
    return stats.total_tokens == 0 and not stats.by_model


def _print_no_data(repository: UsageRepository) -> None:
    console.print("\n[bold yellow]No usage data found[/]")
    console.print(f"\nLooked in: {repository.projects_path}")
    console.print("Run Claude Code at least once, or pass --base-path.\n")


@app.command()
def stats(
    ctx: typer.Context,
    since: Optional[datetime] = typer.Option(
        None,
        "--since",
        formats=DATE_FORMATS,
        help="First day to include (YYYY-MM-DD)"
    ),
    until: Optional[datetime] = typer.Option(
        None,
        "--until",
        formats=DATE_FORMATS,
        help="Last day to include (YYYY-MM-DD)"
    ),
    as_json: bool = typer.Option(
        False,
        "--json",
        help="Print statistics as JSON"
    ),
    show_errors: bool = typer.Option(
        False,
        "--show-errors",
        help="Print a summary of skipped files and lines"
    )
):
    """
    Show total cost and token usage.

    With --since and --until, total cost and tokens cover only the days in
    the range; the model breakdown still covers the full history.
    """
    repository = _repository(ctx)
    try:
        if since is not None or until is not None:
            result = repository.get_usage_by_date_range(
                since or datetime(1970, 1, 1),
                until or datetime.now(),
            )
        else:
            result = repository.get_usage_stats()
    except UsageRepositoryError as e:
        _fail(e)

    if as_json:
        console.print_json(json.dumps(asdict(result), default=_json_default))
    elif _no_data(result):
        _print_no_data(repository)
    else:
        _display_stats(result)

    if show_errors:
        console.print(f"\n{repository.get_error_summary().summary()}")
    sys.exit(EXIT_CODE_PASS)


@app.command()
def daily(ctx: typer.Context):
    """Show cost and tokens per day."""
    repository = _repository(ctx)
    try:
        result = repository.get_usage_stats()
    except UsageRepositoryError as e:
        _fail(e)

    if not result.by_date:
        _print_no_data(repository)
        sys.exit(EXIT_CODE_PASS)

    table = Table(title="Daily Usage")
    table.add_column("Date")
    table.add_column("Cost", justify="right")
    table.add_column("Tokens", justify="right")
    table.add_column("Models", justify="right")
    for day in result.by_date:
        table.add_row(
            day.date,
            _format_currency(day.total_cost),
            abbreviate(day.total_tokens),
            str(day.model_count),
        )
    console.print(table)
    sys.exit(EXIT_CODE_PASS)


@app.command()
def models(ctx: typer.Context):
    """Show cost per model, most expensive first."""
    repository = _repository(ctx)
    try:
        result = repository.get_usage_stats()
    except UsageRepositoryError as e:
        _fail(e)

    if _no_data(result):
        _print_no_data(repository)
        sys.exit(EXIT_CODE_PASS)

    tokens_by_model = {m.model: m.total_tokens for m in result.by_model}
    table = Table(title="Usage by Model")
    table.add_column("Model")
    table.add_column("Cost", justify="right")
    table.add_column("Share", justify="right")
    table.add_column("Tokens", justify="right")
    for share in cost_breakdown(result):
        table.add_row(
            share.model,
            _format_currency(share.cost),
            f"{share.percentage:.1f}%",
            abbreviate(tokens_by_model.get(share.model, 0)),
        )
    console.print(table)
    sys.exit(EXIT_CODE_PASS)


@app.command()
def projects(
    ctx: typer.Context,
    since: Optional[datetime] = typer.Option(
        None,
        "--since",
        formats=DATE_FORMATS,
        help="Only projects last used on or after this day"
    ),
    until: Optional[datetime] = typer.Option(
        None,
        "--until",
        formats=DATE_FORMATS,
        help="Only projects last used before the end of this day"
    ),
    order: Optional[SortOrder] = typer.Option(
        SortOrder.DESCENDING,
        "--order",
        "-o",
        case_sensitive=False,
        help="Sort by cost"
    )
):
    """
    Show cost per project.

    A range given with only --since runs until now; one given with only
    --until starts at 1970-01-01.
    """
    repository = _repository(ctx)
    if until is not None:
        until = until.replace(hour=23, minute=59, second=59)
    if since is not None or until is not None:
        since = since or datetime(1970, 1, 1)
        until = until or datetime.now()
    try:
        result = repository.get_session_stats(since=since, until=until, order=order)
    except UsageRepositoryError as e:
        _fail(e)

    if not result:
        _print_no_data(repository)
        sys.exit(EXIT_CODE_PASS)

    table = Table(title="Usage by Project")
    table.add_column("Project")
    table.add_column("Path", style="dim")
    table.add_column("Cost", justify="right")
    table.add_column("Tokens", justify="right")
    table.add_column("Last used")
    for project in result:
        table.add_row(
            project.project_name,
            project.project_path,
            _format_currency(project.total_cost),
            abbreviate(project.total_tokens),
            project.last_used,
        )
    console.print(table)
    sys.exit(EXIT_CODE_PASS)


@app.command()
def entries(
    ctx: typer.Context,
    limit: Optional[int] = typer.Option(
        20,
        "--limit",
        "-n",
        min=1,
        help="Number of entries to show"
    )
):
    """Show the most recent usage entries."""
    repository = _repository(ctx)
    try:
        result = repository.get_usage_details(limit=limit)
    except UsageRepositoryError as e:
        _fail(e)

    if not result:
        _print_no_data(repository)
        sys.exit(EXIT_CODE_PASS)

    table = Table(title="Recent Usage")
    table.add_column("Timestamp")
    table.add_column("Model")
    table.add_column("Input", justify="right")
    table.add_column("Output", justify="right")
    table.add_column("Cache W", justify="right")
    table.add_column("Cache R", justify="right")
    table.add_column("Cost", justify="right")
    for entry in result:
        table.add_row(
            entry.timestamp,
            entry.model,
            f"{entry.input_tokens:,}",
            f"{entry.output_tokens:,}",
            f"{entry.cache_write_tokens:,}",
            f"{entry.cache_read_tokens:,}",
            _format_currency(entry.cost),
        )
    console.print(table)
    sys.exit(EXIT_CODE_PASS)


@app.command()
def today(ctx: typer.Context):
    """Show today's cost and token usage."""
    repository = _repository(ctx)
    try:
        result = repository.get_today_usage_stats()
    except UsageRepositoryError as e:
        _fail(e)

    if _no_data(result):
        console.print("\n[dim]No usage today.[/]")
        sys.exit(EXIT_CODE_PASS)

    _display_stats(result, title="Today's Usage")
    sys.exit(EXIT_CODE_PASS)


def _format_currency(amount: float) -> str:
    """Format currency with proper symbols and formatting."""
    return f"${abs(amount):,.2f}"


def _json_default(value):
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _display_stats(result: UsageStats, title: str = "Claude Code Usage"):
    """Display statistics in a clean, financial format."""
    console.print(f"\n[bold]{title}[/bold]")
    console.print("-" * 40)
    console.print(f"Total cost: {_format_currency(result.total_cost)}")
    console.print(f"Total tokens: {result.total_tokens:,}")
    console.print(f"  Input: {result.total_input_tokens:,}")
    console.print(f"  Output: {result.total_output_tokens:,}")
    console.print(f"  Cache write: {result.total_cache_creation_tokens:,}")
    console.print(f"  Cache read: {result.total_cache_read_tokens:,}")
    console.print(f"Sessions: {result.total_sessions:,}")
    if result.total_sessions:
        console.print(f"Average cost/session: {_format_currency(result.average_cost_per_session)}")
    if result.by_date:
        console.print(f"Days active: {len(result.by_date)} "
                      f"({result.by_date[0].date} to {result.by_date[-1].date})")
    print()


if __name__ == "__main__":
    app()
