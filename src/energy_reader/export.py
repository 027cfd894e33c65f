"""CSV report building for bills, analytics and users."""

from __future__ import annotations

import csv
import io
from datetime import UTC, date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Any

from energy_reader.analytics import (
    as_utc,
    derive_region,
    filter_by_period,
    monthly_trends,
    regional_insights,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from energy_reader.models import AggregatedPeriod, BillRecord, RegionSummary, User

REPORT_TITLE = "ENERGYREADER REPORT"
ANALYTICS_TITLE = "ENERGYREADER ANALYTICS REPORT"
USERS_TITLE = "ENERGYREADER USERS REPORT"

BILL_COLUMNS = (
    "Processed At",
    "Customer",
    "Address",
    "Installation Number",
    "Consumption (kWh)",
    "Total Value (R$)",
    "Due Date",
    "Tariff Flag",
    "Distributor",
    "Reference Month",
    "Region",
)
TREND_COLUMNS = (
    "Month",
    "Average Consumption (kWh)",
    "Average Value (R$)",
    "Total Bills",
)
REGION_COLUMNS = (
    "Region",
    "Average Consumption (kWh)",
    "Average Value (R$)",
    "Total Bills",
    "Dominant Flag",
)
USER_COLUMNS = ("Name", "Email", "Role", "Registered At", "Status")

_CENTS = Decimal("0.01")


def money(value: Decimal) -> Decimal:
    """Quantize a currency amount to exactly two decimals."""
    return Decimal(value).quantize(_CENTS, rounding=ROUND_HALF_UP)


def report_filename(kind: str, on: date | None = None) -> str:
    """Return the download name for a report, e.g. ``bills_energyreader_2025-06-15.csv``."""
    on = on or datetime.now(tz=UTC).date()
    return f"{kind}_energyreader_{on.isoformat()}.csv"


def _preamble(title: str, generated_on: date, period: str | None = None) -> list[str]:
    meta = f"Date: {generated_on.isoformat()}"
    if period is not None:
        meta = f"Period: {period.upper()} | {meta}"
    return [title, meta]


def _render(
    preamble: Sequence[str],
    sections: Iterable[tuple[str, Sequence[str], Iterable[list[Any]]]],
) -> str:
    """Write the preamble, then a blank line, label, header and rows per section.

    Data rows quote every non-numeric field; ints and Decimals stay bare.
    """
    out = io.StringIO()
    plain = csv.writer(out, lineterminator="\n")
    data = csv.writer(out, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")

    for line in preamble:
        plain.writerow([line])
    for label, columns, rows in sections:
        plain.writerow([])
        plain.writerow([label])
        plain.writerow(columns)
        data.writerows(rows)
    return out.getvalue().removesuffix("\n")


def bill_row(bill: BillRecord) -> list[Any]:
    """One bill as CSV fields."""
    return [
        as_utc(bill.processed_at).date().isoformat(),
        bill.customer_name,
        bill.address,
        bill.installation_number,
        bill.consumption_kwh,
        money(bill.total_value),
        bill.due_date.isoformat(),
        bill.tariff_flag.value,
        bill.distributor,
        bill.reference_month,
        derive_region(bill.address),
    ]


def trend_row(trend: AggregatedPeriod) -> list[Any]:
    return [trend.month, trend.avg_consumption, money(trend.avg_value), trend.count]


def region_row(summary: RegionSummary) -> list[Any]:
    return [
        summary.region,
        summary.avg_consumption,
        money(summary.avg_value),
        summary.count,
        summary.dominant_flag.value,
    ]


def user_row(user: User) -> list[Any]:
    return [
        user.name or "",
        user.email,
        "Administrator" if user.role == "admin" else "User",
        as_utc(user.created_at).date().isoformat(),
        "Active",
    ]


def export_bills_csv(
    bills: Iterable[BillRecord], *, generated_on: date | None = None
) -> str:
    """Raw bill listing, one row per bill."""
    generated_on = generated_on or datetime.now(tz=UTC).date()
    return _render(
        _preamble(REPORT_TITLE, generated_on),
        [("BILLS", BILL_COLUMNS, (bill_row(b) for b in bills))],
    )


def export_analytics_csv(
    bills: Iterable[BillRecord], period: str, *, now: datetime | None = None
) -> str:
    """Monthly trends and regional analysis for the bills in ``period``."""
    now = now or datetime.now(tz=UTC)
    selected = filter_by_period(bills, period, now=now)

    return _render(
        _preamble(ANALYTICS_TITLE, as_utc(now).date(), period),
        [
            (
                "MONTHLY TRENDS",
                TREND_COLUMNS,
                (trend_row(t) for t in monthly_trends(selected)),
            ),
            (
                "REGIONAL ANALYSIS",
                REGION_COLUMNS,
                (region_row(r) for r in regional_insights(selected)),
            ),
        ],
    )


def export_users_csv(
    users: Iterable[User], *, generated_on: date | None = None
) -> str:
    """User listing for the admin view."""
    generated_on = generated_on or datetime.now(tz=UTC).date()
    return _render(
        _preamble(USERS_TITLE, generated_on),
        [("USERS", USER_COLUMNS, (user_row(u) for u in users))],
    )
