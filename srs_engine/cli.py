"""Command line interface: migrations, statistics and progress backups."""

import asyncio
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Annotated, NoReturn, Optional

import typer
from sqlalchemy.exc import SQLAlchemyError

from srs_engine.app import AppSettings, bootstrap
from srs_engine.db import run_migrations
from srs_engine.errors import ImportFormatInvalid, StoreUnavailable
from srs_engine.review import ReviewService
from srs_engine.snapshot import STATES_FIELD, loads
from srs_engine.srs.models import Rating
from srs_engine.srs.stats import ReviewStats


# Migration failures during bootstrap surface as raw SQLAlchemy errors.
_SERVICE_ERRORS = (RuntimeError, StoreUnavailable, SQLAlchemyError)

app = typer.Typer(
    help="srs-engine: spaced-repetition scheduling and review statistics.",
    no_args_is_help=True,
)


def _build_service() -> ReviewService:
    return bootstrap(AppSettings.from_env())


def _fail(message: str) -> NoReturn:
    typer.echo(message, err=True)
    raise typer.Exit(code=1)


def _stats_payload(stats: ReviewStats) -> dict:
    return {
        "reviewsToday": stats.reviews_today,
        "reviewsPast7Days": stats.reviews_past_7_days,
        "reviewsPast30Days": stats.reviews_past_30_days,
        "lifetimeReviews": stats.lifetime_reviews,
        "correctRate": round(stats.correct_rate, 1),
        "answerCounts": {rating.value: stats.answer_counts[rating] for rating in Rating},
        "activityMap": dict(sorted(stats.activity_map.items())),
        "newCount": stats.new_count,
        "learningCount": stats.learning_count,
        "matureCount": stats.mature_count,
        "totalCards": stats.total_cards,
        "matureRatio": round(stats.mature_ratio, 1),
    }


@app.command()
def migrate(
    target: Annotated[str, typer.Argument(help="Alembic revision to upgrade to.")] = "head",
):
    """Apply database migrations."""
    try:
        run_migrations(target)
    except (RuntimeError, SQLAlchemyError) as exc:
        _fail(str(exc))
    typer.echo(f"Database upgraded to {target}.")


@app.command()
def stats(
    as_json: Annotated[bool, typer.Option("--json", help="Print machine-readable JSON.")] = False,
):
    """Show review counts and the card maturity breakdown."""
    try:
        service = _build_service()
        summary = asyncio.run(service.summarize(datetime.now(timezone.utc)))
    except _SERVICE_ERRORS as exc:
        _fail(str(exc))

    if as_json:
        typer.echo(json.dumps(_stats_payload(summary), indent=2))
        return

    typer.echo(f"Reviews today:          {summary.reviews_today}")
    typer.echo(f"Reviews past 7 days:    {summary.reviews_past_7_days}")
    typer.echo(f"Reviews past 30 days:   {summary.reviews_past_30_days}")
    typer.echo(f"Lifetime reviews:       {summary.lifetime_reviews}")
    typer.echo(f"Correct answer rate:    {summary.correct_rate:.1f}%")
    typer.echo(
        f"Cards: {summary.total_cards} total, {summary.new_count} new, "
        f"{summary.learning_count} learning, {summary.mature_count} mature "
        f"({summary.mature_ratio:.1f}%)"
    )


@app.command()
def due(
    collection: Annotated[
        Optional[str], typer.Option("--collection", "-c", help="Only show this collection.")
    ] = None,
):
    """Show new, learning and due card counts per collection."""
    try:
        service = _build_service()
        overview = asyncio.run(service.collection_overview(datetime.now(timezone.utc)))
    except _SERVICE_ERRORS as exc:
        _fail(str(exc))

    if collection is not None:
        overview = {name: counts for name, counts in overview.items() if name == collection}
    if not overview:
        typer.echo("No cards with scheduling data yet.")
        return

    for name, counts in overview.items():
        typer.echo(
            f"{name}: {counts.due_count} due, {counts.learning_count} learning, {counts.new_count} new"
        )


@app.command("export")
def export_progress(
    path: Annotated[Path, typer.Argument(help="File to write the JSON backup to.")],
):
    """Write all item states and the review history to a JSON backup."""
    try:
        service = _build_service()
        bundle = asyncio.run(service.export_progress())
    except _SERVICE_ERRORS as exc:
        _fail(str(exc))

    path.write_text(json.dumps(bundle, ensure_ascii=False, indent=2), encoding="utf-8")
    typer.echo(f"Exported {len(bundle[STATES_FIELD])} card state(s) to {path}.")


@app.command("import")
def import_progress(
    path: Annotated[Path, typer.Argument(help="JSON backup to restore.", exists=True, dir_okay=False)],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Do not ask for confirmation.")] = False,
):
    """Replace stored progress with the contents of a JSON backup."""
    try:
        snapshot = loads(path.read_text(encoding="utf-8"))
    except ImportFormatInvalid as exc:
        _fail(f"Invalid backup file: {exc}")

    if not yes:
        typer.confirm("This will overwrite all stored progress. Continue?", abort=True)

    try:
        service = _build_service()
        asyncio.run(service.restore(snapshot))
    except _SERVICE_ERRORS as exc:
        _fail(str(exc))

    typer.echo(
        f"Imported {len(snapshot.states)} card state(s) and {len(snapshot.history)} review(s)."
    )
