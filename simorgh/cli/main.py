"""
Typer CLI for the Simorgh review scheduler.

Commands:
    simorgh db init                              - Create review tables
    simorgh review LEARNER ITEM --quality 4      - Submit a graded review
    simorgh review LEARNER ITEM --correct        - Submit a boolean review
    simorgh due LEARNER --candidates items.json  - Show due items
    simorgh reset LEARNER ITEM                   - Reset an item's schedule
    simorgh summary LEARNER                      - Show streak, points and level
    simorgh stats LEARNER                        - Show item statistics and weak items
    simorgh clear-history LEARNER                - Start progress over
    simorgh serve                                - Run the HTTP API

Usage:
    simorgh --help
    simorgh review alice haus --type vocabulary --quality 5
    simorgh --policy boolean review alice hallo --type phrase --incorrect
"""

from __future__ import annotations

import json
from pathlib import Path

import typer
from loguru import logger
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from config import Settings, get_settings
from simorgh.core.errors import SimorghError, StorageError, ValidationError
from simorgh.log_setup import configure_logging

app = typer.Typer(
    help="Simorgh review scheduler: spaced repetition, due queue and learner progress",
    no_args_is_help=True,
)
db_app = typer.Typer(help="Database operations")
app.add_typer(db_app, name="db")

console = Console()


# ========================================
# Context Builder (Dependency Injection)
# ========================================


class CLIContext:
    """
    Dependency injection container for CLI commands.

    Builds the review service lazily so --help never touches the database.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self._service = None

    @property
    def service(self):
        """Lazy load ReviewService."""
        if self._service is None:
            from simorgh.service import build_service

            self._service = build_service(self.settings)
        return self._service


def _ctx(ctx: typer.Context) -> CLIContext:
    return ctx.obj


def _fail(exc: SimorghError) -> None:
    if isinstance(exc, ValidationError):
        rprint(f"[red]✗ Invalid input:[/red] {exc}")
        raise typer.Exit(code=2)
    if isinstance(exc, StorageError):
        rprint(f"[red]✗ Storage error:[/red] {exc}")
        raise typer.Exit(code=3)
    rprint(f"[red]✗[/red] {exc}")
    raise typer.Exit(code=1)


@app.callback()
def main_callback(
    ctx: typer.Context,
    database_url: str | None = typer.Option(
        None, "--database-url", help="Override SIMORGH_DATABASE_URL"
    ),
    policy: str | None = typer.Option(
        None, "--policy", help="Scheduling policy: graded or boolean"
    ),
    log_level: str | None = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING or ERROR"),
):
    """Simorgh review scheduler."""
    settings = get_settings()
    overrides = {}
    if database_url:
        overrides["database_url"] = database_url
    if policy:
        if policy not in ("graded", "boolean"):
            rprint(f"[red]✗ Unknown policy:[/red] {policy}")
            raise typer.Exit(code=2)
        overrides["scheduling_policy"] = policy
    if log_level:
        overrides["log_level"] = log_level.upper()
    if overrides:
        settings = settings.model_copy(update=overrides)

    configure_logging("WARNING" if settings.log_level == "INFO" else settings.log_level, settings.log_file)
    ctx.obj = CLIContext(settings)


# ========================================
# DB COMMANDS
# ========================================


@db_app.command("init")
def db_init(ctx: typer.Context) -> None:
    """
    Create the review record and progress summary tables.

    Safe to run multiple times (idempotent).
    """
    from simorgh.persistence.sql import SqlAlchemyAdapter

    adapter = SqlAlchemyAdapter(_ctx(ctx).settings.database_url)
    try:
        adapter.init_db()
    except StorageError as e:
        _fail(e)
    finally:
        adapter.close()
    rprint("[green]✓[/green] Database initialized!")


# ========================================
# REVIEW COMMANDS
# ========================================


@app.command("review")
def review(
    ctx: typer.Context,
    learner_id: str = typer.Argument(..., help="Learner identifier"),
    content_id: str = typer.Argument(..., help="Content item identifier"),
    content_type: str = typer.Option("flashcard", "--type", "-t", help="vocabulary, phrase or flashcard"),
    quality: int | None = typer.Option(None, "--quality", "-q", help="Recall quality 0-5"),
    correct: bool | None = typer.Option(None, "--correct/--incorrect", help="Boolean outcome"),
) -> None:
    """Submit one review and show the new schedule."""
    if quality is None and correct is None:
        rprint("[red]✗[/red] Pass --quality or --correct/--incorrect")
        raise typer.Exit(code=2)
    outcome = quality if quality is not None else correct

    try:
        result = _ctx(ctx).service.submit_review(learner_id, content_id, content_type, outcome)
    except SimorghError as e:
        _fail(e)

    record, summary = result.record, result.summary
    rprint(
        f"[green]✓[/green] {record.content_type.value}:{record.content_id} "
        f"next review in [cyan]{record.interval_days}d[/cyan] "
        f"({record.due_at:%Y-%m-%d %H:%M} UTC), ease {record.ease_factor:.2f}"
    )
    rprint(
        f"  points [yellow]{summary.points}[/yellow]  level {summary.level}  "
        f"streak {summary.streak_days}d"
    )


@app.command("due")
def due(
    ctx: typer.Context,
    learner_id: str = typer.Argument(..., help="Learner identifier"),
    candidates_file: Path = typer.Option(
        ..., "--candidates", "-c", exists=True, readable=True,
        help='JSON file with [{"id": ..., "type": ...}, ...]',
    ),
    limit: int | None = typer.Option(None, "--limit", "-n", help="Maximum items"),
) -> None:
    """Show which candidates are due, earliest first."""
    try:
        candidates = json.loads(candidates_file.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        rprint(f"[red]✗ Invalid candidates file:[/red] {e}")
        raise typer.Exit(code=2)

    try:
        items = _ctx(ctx).service.get_due_items(learner_id, candidates, limit=limit)
    except SimorghError as e:
        _fail(e)

    if not items:
        rprint("[dim]Nothing due right now.[/dim]")
        return

    table = Table(title=f"Due for {learner_id}")
    table.add_column("#", justify="right")
    table.add_column("ID")
    table.add_column("Type")
    for i, item in enumerate(items, start=1):
        table.add_row(str(i), item.id, item.type.value)
    console.print(table)


@app.command("reset")
def reset(
    ctx: typer.Context,
    learner_id: str = typer.Argument(..., help="Learner identifier"),
    content_id: str = typer.Argument(..., help="Content item identifier"),
    content_type: str = typer.Option("flashcard", "--type", "-t", help="vocabulary, phrase or flashcard"),
) -> None:
    """Reset an item to its initial schedule (due tomorrow)."""
    try:
        record = _ctx(ctx).service.reset_item(learner_id, content_id, content_type)
    except SimorghError as e:
        _fail(e)
    rprint(
        f"[green]✓[/green] Reset {record.content_type.value}:{record.content_id}, "
        f"due {record.due_at:%Y-%m-%d}"
    )


# ========================================
# PROGRESS COMMANDS
# ========================================


@app.command("summary")
def summary(
    ctx: typer.Context,
    learner_id: str = typer.Argument(..., help="Learner identifier"),
) -> None:
    """Show a learner's streak, points and level."""
    try:
        s = _ctx(ctx).service.get_summary(learner_id)
    except SimorghError as e:
        _fail(e)

    table = Table(title=f"Progress: {learner_id}", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Level", str(s.level))
    table.add_row("Points", str(s.points))
    table.add_row("Streak", f"{s.streak_days} day(s)")
    table.add_row("Reviews", str(s.total_reviews))
    table.add_row("Accuracy", f"{s.accuracy:.0%}")
    table.add_row("Last study", s.last_study_date.isoformat() if s.last_study_date else "-")
    console.print(table)


@app.command("stats")
def stats(
    ctx: typer.Context,
    learner_id: str = typer.Argument(..., help="Learner identifier"),
) -> None:
    """Show item counts, success rate, today's reviews and weak items."""
    service = _ctx(ctx).service
    try:
        st = service.get_study_stats(learner_id)
        weak = service.get_weak_items(learner_id)
    except SimorghError as e:
        _fail(e)

    table = Table(title=f"Items: {learner_id}", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Items", str(st.total_items))
    table.add_row("Due now", str(st.due_items))
    table.add_row("Learned", str(st.learned_items))
    table.add_row("Success rate", f"{st.average_success_rate:.0%}")
    table.add_row("Weak", str(st.weak_items))
    table.add_row("Reviewed today", f"{st.reviewed_today} ({st.correct_today} correct)")
    console.print(table)

    if weak:
        weak_table = Table(title="Weak items")
        weak_table.add_column("ID")
        weak_table.add_column("Type")
        weak_table.add_column("Reviews", justify="right")
        weak_table.add_column("Success", justify="right")
        for record in weak[:10]:
            weak_table.add_row(
                record.content_id,
                record.content_type.value,
                str(record.review_count),
                f"{record.success_rate:.0%}",
            )
        console.print(weak_table)


@app.command("clear-history")
def clear_history(
    ctx: typer.Context,
    learner_id: str = typer.Argument(..., help="Learner identifier"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Reset a learner's points, level and streak. Item schedules are kept."""
    if not yes:
        typer.confirm(f"Clear all progress for {learner_id}?", abort=True)
    try:
        _ctx(ctx).service.clear_history(learner_id)
    except SimorghError as e:
        _fail(e)
    rprint(f"[green]✓[/green] Progress cleared for {learner_id}")


# ========================================
# SERVER
# ========================================


@app.command("serve")
def serve(
    ctx: typer.Context,
    host: str | None = typer.Option(None, "--host", help="Bind host (settings default)"),
    port: int | None = typer.Option(None, "--port", help="Bind port (settings default)"),
) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    from simorgh.api.main import create_app

    settings = _ctx(ctx).settings
    logger.info(f"Serving review API with {settings.scheduling_policy} policy")
    uvicorn.run(
        create_app(settings=settings),
        host=host or settings.api_host,
        port=port or settings.api_port,
        log_level=settings.log_level.lower(),
    )


def run() -> None:
    """Console script entry point."""
    app()


if __name__ == "__main__":
    run()
