"""Aggregations over bill collections: trends, regions, tariff flags."""

from __future__ import annotations

import functools
import logging
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Literal

from dateutil.relativedelta import relativedelta

from energy_reader.models import (
    AdminMetrics,
    AggregatedPeriod,
    BillRecord,
    FlagShare,
    Growth,
    RegionSummary,
    TariffFlag,
    User,
)

logger = logging.getLogger(__name__)

Period = Literal["1m", "3m", "6m", "12m", "all"]

PERIOD_MONTHS: dict[str, int | None] = {
    "1m": 1,
    "3m": 3,
    "6m": 6,
    "12m": 12,
    "all": None,
}

OTHER_REGION = "Other"

# Checked in order against the raw address; first match wins.
REGION_CODES: tuple[tuple[str, str], ...] = (
    ("SP", "São Paulo"),
    ("RJ", "Rio de Janeiro"),
    ("MG", "Minas Gerais"),
    ("PR", "Paraná"),
    ("RS", "Rio Grande do Sul"),
)

_WHOLE = Decimal("1")
_CENTS = Decimal("0.01")


def as_utc(moment: datetime) -> datetime:
    """Return ``moment`` in UTC, treating naive datetimes as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC)


def month_key(moment: datetime) -> str:
    """Return the ``YYYY-MM`` bucket for a timestamp."""
    return as_utc(moment).strftime("%Y-%m")


def average_kwh(total: int, count: int) -> int:
    """Average consumption rounded half-up to a whole kWh."""
    return int((Decimal(total) / count).quantize(_WHOLE, rounding=ROUND_HALF_UP))


def average_value(total: Decimal, count: int) -> Decimal:
    """Average currency value rounded half-up to the cent."""
    return (Decimal(total) / count).quantize(_CENTS, rounding=ROUND_HALF_UP)


def period_cutoff(period: str, now: datetime | None = None) -> datetime | None:
    """Return the earliest ``processed_at`` included by ``period``.

    The cutoff is the start of the same calendar day ``N`` months back.
    Days past the end of the target month are clamped to its last day.
    Returns None for ``all``.
    """
    if period not in PERIOD_MONTHS:
        msg = f"Unknown period {period!r}; expected one of {', '.join(PERIOD_MONTHS)}"
        raise ValueError(msg)
    months = PERIOD_MONTHS[period]
    if months is None:
        return None
    now = as_utc(now or datetime.now(tz=UTC))
    cutoff = now - relativedelta(months=months)
    return cutoff.replace(hour=0, minute=0, second=0, microsecond=0)


def filter_by_period(
    bills: Iterable[BillRecord], period: str, *, now: datetime | None = None
) -> list[BillRecord]:
    """Keep the bills processed on or after the period cutoff."""
    cutoff = period_cutoff(period, now)
    if cutoff is None:
        return list(bills)
    return [bill for bill in bills if as_utc(bill.processed_at) >= cutoff]


def monthly_trends(bills: Iterable[BillRecord]) -> list[AggregatedPeriod]:
    """Group bills by processing month, ascending by month key."""
    groups: dict[str, list[BillRecord]] = {}
    for bill in bills:
        groups.setdefault(month_key(bill.processed_at), []).append(bill)

    trends = []
    for key in sorted(groups):
        group = groups[key]
        count = len(group)
        trends.append(
            AggregatedPeriod(
                month=key,
                avg_consumption=average_kwh(
                    sum(b.consumption_kwh for b in group), count
                ),
                avg_value=average_value(
                    sum((b.total_value for b in group), Decimal(0)), count
                ),
                count=count,
            )
        )
    return trends


def derive_region(address: str) -> str:
    """Guess the region from state codes appearing in a free-text address."""
    for code, region in REGION_CODES:
        if code in address:
            return region
    return OTHER_REGION


def dominant_flag(tally: dict[TariffFlag, int]) -> TariffFlag:
    """Return the most frequent flag.

    Flags are compared in enum order and the running candidate is kept only
    when strictly greater, so a tie goes to the later flag.
    """
    return functools.reduce(
        lambda a, b: a if tally.get(a, 0) > tally.get(b, 0) else b, TariffFlag
    )


def regional_insights(bills: Iterable[BillRecord]) -> list[RegionSummary]:
    """Summarise bills per region, in order of first appearance."""
    consumption: dict[str, int] = {}
    value: dict[str, Decimal] = {}
    count: dict[str, int] = {}
    flags: dict[str, dict[TariffFlag, int]] = {}

    for bill in bills:
        region = derive_region(bill.address)
        if region not in count:
            consumption[region] = 0
            value[region] = Decimal(0)
            count[region] = 0
            flags[region] = dict.fromkeys(TariffFlag, 0)
        consumption[region] += bill.consumption_kwh
        value[region] += bill.total_value
        count[region] += 1
        flags[region][bill.tariff_flag] += 1

    return [
        RegionSummary(
            region=region,
            avg_consumption=average_kwh(consumption[region], n),
            avg_value=average_value(value[region], n),
            count=n,
            dominant_flag=dominant_flag(flags[region]),
        )
        for region, n in count.items()
    ]


def monthly_growth(trends: Sequence[AggregatedPeriod]) -> Growth | None:
    """Percentage change of average consumption over the last two months.

    Returns None with fewer than two months, or when the earlier month
    averaged zero kWh and there is nothing to compare against.
    """
    if len(trends) < 2:
        return None
    previous, last = trends[-2], trends[-1]
    if previous.avg_consumption == 0:
        logger.debug("No growth for %s: %s averaged 0 kWh", last.month, previous.month)
        return None
    change = (last.avg_consumption - previous.avg_consumption) / previous.avg_consumption
    change *= 100
    return Growth(percentage=round(change, 1), is_positive=change >= 0)


def flag_distribution(bills: Sequence[BillRecord]) -> list[FlagShare]:
    """Count and share of each tariff flag, always in enum order."""
    tally = dict.fromkeys(TariffFlag, 0)
    for bill in bills:
        tally[bill.tariff_flag] += 1
    total = len(bills)
    return [
        FlagShare(
            flag=flag,
            count=n,
            percentage=(n / total) * 100 if total else 0.0,
        )
        for flag, n in tally.items()
    ]


def admin_metrics(
    bills: Sequence[BillRecord],
    *,
    users: Sequence[User] = (),
    now: datetime | None = None,
) -> AdminMetrics:
    """Headline totals across every user's bills."""
    total = len(bills)
    this_month = month_key(now or datetime.now(tz=UTC))

    if total:
        avg_consumption = average_kwh(sum(b.consumption_kwh for b in bills), total)
        avg_value = average_value(sum((b.total_value for b in bills), Decimal(0)), total)
    else:
        avg_consumption = 0
        avg_value = Decimal("0.00")

    return AdminMetrics(
        total_bills=total,
        average_consumption=avg_consumption,
        average_value=avg_value,
        total_users=len(users),
        bills_this_month=sum(
            1 for b in bills if month_key(b.processed_at) == this_month
        ),
        consumption_by_region={
            summary.region: summary.avg_consumption
            for summary in regional_insights(bills)
        },
    )
