"""Rule-based advisory insights from a user's bill history."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from decimal import Decimal

from energy_reader.analytics import as_utc
from energy_reader.models import BillRecord, Insight, TariffFlag

logger = logging.getLogger(__name__)

MAX_INSIGHTS = 4

CONSUMPTION_CHANGE_THRESHOLD = 15.0
VALUE_INCREASE_THRESHOLD = Decimal(50)
ABOVE_AVERAGE_FACTOR = 1.2

# Solar offsets roughly 15% of consumption; 80% of that turns into savings.
SOLAR_OFFSET = 0.15
SOLAR_SAVINGS_RATIO = 0.8


def sort_most_recent_first(bills: Iterable[BillRecord]) -> list[BillRecord]:
    """Order bills by ``processed_at``, newest first."""
    return sorted(bills, key=lambda b: as_utc(b.processed_at), reverse=True)


def generate_insights(bills: Sequence[BillRecord]) -> list[Insight]:
    """Build at most four insights from bills ordered most-recent-first.

    Each rule runs independently and adds zero or one insight. Rules are
    applied in a fixed order and the result is cut to ``MAX_INSIGHTS``, so
    later rules are dropped when earlier ones fill the list.
    """
    if len(bills) < 2:
        return []

    latest, previous = bills[0], bills[1]
    candidates = [
        _consumption_change(latest, previous),
        _tariff_flag(latest, previous),
        _value_increase(latest, previous),
        _above_average(latest, bills),
        _solar_savings(bills),
    ]
    insights = [insight for insight in candidates if insight is not None]
    logger.debug("Generated %d insights from %d bills", len(insights), len(bills))
    return insights[:MAX_INSIGHTS]


def _consumption_change(latest: BillRecord, previous: BillRecord) -> Insight | None:
    if previous.consumption_kwh == 0:
        return None
    delta = latest.consumption_kwh - previous.consumption_kwh
    percent = delta / previous.consumption_kwh * 100
    if abs(percent) <= CONSUMPTION_CHANGE_THRESHOLD:
        return None

    if percent > 0:
        return Insight(
            type="warning",
            title=f"Consumption increased {abs(percent):.1f}%",
            description=(
                f"Up {abs(delta)} kWh. Check air conditioner and heater usage."
            ),
            value=round(percent, 1),
        )
    return Insight(
        type="success",
        title=f"Consumption decreased {abs(percent):.1f}%",
        description=f"Down {abs(delta)} kWh. Congratulations on saving energy!",
        value=round(percent, 1),
    )


def _tariff_flag(latest: BillRecord, previous: BillRecord) -> Insight | None:
    if latest.tariff_flag is TariffFlag.RED:
        return Insight(
            type="warning",
            title="Red tariff flag active",
            description=(
                "Avoid high-consumption appliances between 6pm and 9pm to save "
                "up to R$ 50 on your next bill."
            ),
        )
    if latest.tariff_flag is TariffFlag.GREEN and previous.tariff_flag is not TariffFlag.GREEN:
        return Insight(
            type="success",
            title="Green tariff flag active",
            description="Good time to run appliances: energy is cheaper this month.",
        )
    return None


def _value_increase(latest: BillRecord, previous: BillRecord) -> Insight | None:
    delta = latest.total_value - previous.total_value
    if delta <= VALUE_INCREASE_THRESHOLD:
        return None
    return Insight(
        type="warning",
        title=f"Bill R$ {delta:.2f} higher",
        description=(
            "Consider reviewing electric shower and air conditioner use to "
            "lower costs."
        ),
        value=float(delta),
    )


def _above_average(latest: BillRecord, bills: Sequence[BillRecord]) -> Insight | None:
    average = sum(b.consumption_kwh for b in bills) / len(bills)
    if latest.consumption_kwh <= average * ABOVE_AVERAGE_FACTOR:
        return None
    above = (latest.consumption_kwh / average - 1) * 100
    return Insight(
        type="tip",
        title="Consumption above your average",
        description=(
            f"{above:.1f}% above normal. How about setting a savings goal for "
            "next month?"
        ),
        value=round(above, 1),
    )


def _solar_savings(bills: Sequence[BillRecord]) -> Insight | None:
    if len(bills) < 3:
        return None
    recent = bills[:3]
    average = sum(b.consumption_kwh for b in recent) / 3
    savings = average * SOLAR_OFFSET * SOLAR_SAVINGS_RATIO
    return Insight(
        type="tip",
        title="Solar energy savings potential",
        description=(
            f"Based on your consumption, you could save up to R$ {savings:.2f} "
            "per month with solar energy."
        ),
        value=round(savings, 2),
    )
