"""Chart-ready data points, one explicit point type per chart kind."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Literal

from energy_reader.analytics import (
    as_utc,
    derive_region,
    flag_distribution,
    regional_insights,
)
from energy_reader.models import Growth, TariffFlag

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from energy_reader.models import BillRecord

ChartKind = Literal["consumption", "value", "region", "flags"]
ChartWindow = Literal["6m", "12m", "all"]

# Windows count bills, not calendar months.
WINDOW_SIZES: dict[str, int | None] = {"6m": 6, "12m": 12, "all": None}


@dataclass(frozen=True)
class TimeSeriesPoint:
    """One bill on a consumption or value timeline."""

    label: str
    value: float
    consumption: int
    total_value: Decimal
    flag: TariffFlag
    date: datetime
    kind: Literal["timeseries"] = field(default="timeseries", init=False)


@dataclass(frozen=True)
class RegionPoint:
    label: str
    value: int
    count: int
    total_value: Decimal
    avg_value: Decimal
    kind: Literal["region"] = field(default="region", init=False)


@dataclass(frozen=True)
class FlagPoint:
    label: str
    value: int
    percentage: float
    kind: Literal["flags"] = field(default="flags", init=False)


ChartPoint = TimeSeriesPoint | RegionPoint | FlagPoint


def select_window(bills: Iterable[BillRecord], window: str) -> list[BillRecord]:
    """Sort bills oldest first and keep the last N for the window."""
    if window not in WINDOW_SIZES:
        msg = f"Unknown chart window {window!r}; expected one of {', '.join(WINDOW_SIZES)}"
        raise ValueError(msg)
    ordered = sorted(bills, key=lambda b: as_utc(b.processed_at))
    size = WINDOW_SIZES[window]
    return ordered if size is None else ordered[-size:]


def build_chart(
    bills: Iterable[BillRecord], kind: ChartKind, window: ChartWindow = "12m"
) -> list[ChartPoint]:
    """Build the data points for one chart."""
    selected = select_window(bills, window)

    if kind == "region":
        return [
            RegionPoint(
                label=summary.region,
                value=summary.avg_consumption,
                count=summary.count,
                total_value=sum(
                    (
                        b.total_value
                        for b in selected
                        if derive_region(b.address) == summary.region
                    ),
                    Decimal(0),
                ),
                avg_value=summary.avg_value,
            )
            for summary in regional_insights(selected)
        ]

    if kind == "flags":
        return [
            FlagPoint(label=share.flag.value, value=share.count, percentage=share.percentage)
            for share in flag_distribution(selected)
        ]

    if kind not in ("consumption", "value"):
        msg = f"Unknown chart kind {kind!r}"
        raise ValueError(msg)

    return [
        TimeSeriesPoint(
            label=as_utc(b.processed_at).strftime("%b/%y"),
            value=float(b.consumption_kwh if kind == "consumption" else b.total_value),
            consumption=b.consumption_kwh,
            total_value=b.total_value,
            flag=b.tariff_flag,
            date=b.processed_at,
        )
        for b in selected
    ]


def series_trend(points: Sequence[TimeSeriesPoint]) -> Growth | None:
    """Compare the mean of the last two points with the two before them.

    Returns None with fewer than four points or when the earlier mean is zero.
    """
    if len(points) < 4:
        return None
    recent = [p.value for p in points[-2:]]
    previous = [p.value for p in points[-4:-2]]
    previous_mean = sum(previous) / 2
    if previous_mean == 0:
        return None
    change = (sum(recent) / 2 - previous_mean) / previous_mean * 100
    return Growth(percentage=round(change, 1), is_positive=change > 0)
