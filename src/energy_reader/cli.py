"""CLI entry point for energy-reader."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import click

from energy_reader.adapters.base import BillRepository, RepositoryError
from energy_reader.analytics import (
    PERIOD_MONTHS,
    admin_metrics,
    filter_by_period,
    flag_distribution,
    monthly_growth,
    monthly_trends,
    regional_insights,
)
from energy_reader.config import (
    get_backend,
    get_database_url,
    get_store_path,
    get_supabase_config,
)
from energy_reader.export import (
    export_analytics_csv,
    export_bills_csv,
    export_users_csv,
    report_filename,
)
from energy_reader.ingest import ingest_bill
from energy_reader.insights import generate_insights, sort_most_recent_first
from energy_reader.models import FEEDBACK_STATUSES
from energy_reader.store import FileStore, LocalFileStore

if TYPE_CHECKING:
    from energy_reader.models import BillRecord, User

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass
class AppContext:
    """Backends shared by every command, built once per invocation."""

    repository: BillRepository
    file_store: FileStore


def build_context() -> AppContext:
    """Construct the configured repository and document store."""
    if get_backend() == "supabase":
        from energy_reader.adapters.supabase_store import (
            SupabaseBillRepository,
            SupabaseFileStore,
            create_supabase_client,
        )

        config = get_supabase_config()
        client = create_supabase_client(config)
        return AppContext(
            repository=SupabaseBillRepository(client, config.bills_table),
            file_store=SupabaseFileStore(client, config.bucket),
        )

    from energy_reader.adapters.postgres import PostgresBillRepository

    return AppContext(
        repository=PostgresBillRepository.from_url(get_database_url()),
        file_store=LocalFileStore(get_store_path()),
    )


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """EnergyReader: electricity bill analytics."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING, format=LOG_FORMAT
    )
    if ctx.obj is None:
        try:
            ctx.obj = build_context()
        except ValueError as exc:
            raise click.UsageError(str(exc)) from exc


period_option = click.option(
    "--period",
    type=click.Choice(list(PERIOD_MONTHS)),
    default="6m",
    show_default=True,
    help="How far back to look.",
)


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--user-id", required=True, help="Owner of the bill.")
@click.pass_obj
def ingest(app: AppContext, path: Path, user_id: str) -> None:
    """Upload a bill document and store its extracted fields."""
    try:
        record = ingest_bill(
            path, user_id, repository=app.repository, file_store=app.file_store
        )
    except RepositoryError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(
        f"Saved bill {record.id}: {record.consumption_kwh} kWh, "
        f"R$ {record.total_value:.2f}, {record.tariff_flag.value} flag"
    )


@cli.command()
@click.option("--user-id", required=True, help="Whose bills to analyse.")
@click.pass_obj
def insights(app: AppContext, user_id: str) -> None:
    """Show advisory insights for a user's latest bills."""
    bills = sort_most_recent_first(_load_bills(app, user_id))
    found = generate_insights(bills)
    if not found:
        click.echo("Not enough bills for insights (need at least 2).")
        return
    for insight in found:
        click.echo(f"[{insight.type}] {insight.title}")
        click.echo(f"    {insight.description}")


@cli.command()
@period_option
@click.pass_obj
def analytics(app: AppContext, period: str) -> None:
    """Show monthly trends, growth, regions and tariff flags."""
    bills = filter_by_period(_load_bills(app), period)
    click.echo(f"{len(bills)} bills (period: {period})")

    trends = monthly_trends(bills)
    click.echo("\nMonthly trends")
    for trend in trends:
        click.echo(
            f"  {trend.month}  {trend.avg_consumption:>6} kWh  "
            f"R$ {trend.avg_value:>9.2f}  ({trend.count} bills)"
        )
    growth = monthly_growth(trends)
    click.echo(f"  Growth: {growth if growth is not None else 'N/A'}")

    click.echo("\nRegions")
    for summary in regional_insights(bills):
        click.echo(
            f"  {summary.region:<20} {summary.avg_consumption:>6} kWh  "
            f"R$ {summary.avg_value:>9.2f}  {summary.dominant_flag.value}  "
            f"({summary.count} bills)"
        )

    click.echo("\nTariff flags")
    for share in flag_distribution(bills):
        click.echo(f"  {share.flag.value:<7} {share.count:>5}  {share.percentage:.1f}%")


@cli.command()
@click.pass_obj
def metrics(app: AppContext) -> None:
    """Show admin dashboard totals."""
    result = admin_metrics(_load_bills(app), users=_load_users(app))
    click.echo(f"Bills processed:     {result.total_bills}")
    click.echo(f"Bills this month:    {result.bills_this_month}")
    click.echo(f"Users:               {result.total_users}")
    click.echo(f"Average consumption: {result.average_consumption} kWh")
    click.echo(f"Average value:       R$ {result.average_value:.2f}")
    for region, kwh in result.consumption_by_region.items():
        click.echo(f"  {region}: {kwh} kWh")


@cli.command()
@click.argument("kind", type=click.Choice(["bills", "analytics", "users"]))
@period_option
@click.option("--user-id", default=None, help="Only this user's bills.")
@click.option(
    "-o",
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Destination file (default: <kind>_energyreader_<date>.csv).",
)
@click.pass_obj
def export(
    app: AppContext,
    kind: str,
    period: str,
    user_id: str | None,
    output: Path | None,
) -> None:
    """Write a CSV report."""
    if kind == "users":
        content = export_users_csv(_load_users(app))
    elif kind == "analytics":
        content = export_analytics_csv(_load_bills(app, user_id), period)
    else:
        content = export_bills_csv(_load_bills(app, user_id))

    output = output or Path(report_filename(kind))
    output.write_text(content + "\n", encoding="utf-8")
    logger.info("Wrote %s report to %s", kind, output)
    click.echo(f"Report written to {output}")


@cli.group()
def feedback() -> None:
    """Submit and review corrections to extracted bill fields."""


@feedback.command("submit")
@click.argument("bill_id")
@click.argument("field")
@click.argument("value")
@click.option("--user-id", required=True, help="User submitting the correction.")
@click.pass_obj
def submit_feedback(
    app: AppContext, bill_id: str, field: str, value: str, user_id: str
) -> None:
    """Submit a correction for an extracted bill field."""
    try:
        app.repository.submit_feedback(bill_id, field, value, user_id)
    except RepositoryError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Feedback recorded for bill {bill_id}.")


@feedback.command("list")
@click.option(
    "--status",
    type=click.Choice(FEEDBACK_STATUSES),
    default=None,
    help="Only show corrections with this status.",
)
@click.pass_obj
def list_feedback(app: AppContext, status: str | None) -> None:
    """List submitted corrections with counts per status."""
    try:
        items = app.repository.list_feedback()
    except RepositoryError as exc:
        raise click.ClickException(str(exc)) from exc

    counts = Counter(item.status for item in items)
    click.echo("  ".join(f"{s}: {counts[s]}" for s in FEEDBACK_STATUSES))
    for item in items:
        if status is not None and item.status != status:
            continue
        click.echo(
            f"  {item.created_at:%Y-%m-%d}  {item.status:<8}  bill {item.bill_id}  "
            f"{item.field_corrected} -> {item.correct_value}"
        )


def _load_bills(app: AppContext, user_id: str | None = None) -> list[BillRecord]:
    try:
        return app.repository.list_bills(user_id)
    except RepositoryError as exc:
        raise click.ClickException(str(exc)) from exc


def _load_users(app: AppContext) -> list[User]:
    try:
        return app.repository.list_users()
    except RepositoryError as exc:
        raise click.ClickException(str(exc)) from exc
