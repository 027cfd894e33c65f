"""Bill field extraction.

There is no OCR engine behind this module: ``simulate_extraction`` stands in
for one by generating plausible values, and ``extract_from_text`` pulls the
key fields out of text that has already been recognised.
"""

from __future__ import annotations

import logging
import random
import re
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal

from energy_reader.models import ExtractedBill, TariffFlag

logger = logging.getLogger(__name__)

_CONSUMPTION = re.compile(r"(\d+)\s*kWh", re.IGNORECASE)
_VALUE = re.compile(r"R\$\s*(\d+[,.]?\d*)")
_INSTALLATION = re.compile(r"(\d{10,})")
_DUE_DATE = re.compile(r"vencimento[:\s]*(\d{2}/\d{2}/\d{4})", re.IGNORECASE)

DUE_IN_DAYS = 30


def _today() -> date:
    return datetime.now(tz=UTC).date()


def extract_from_text(text: str, *, today: date | None = None) -> ExtractedBill | None:
    """Extract bill fields from recognised text.

    Consumption and total value are required; returns None without them.
    Installation number and due date fall back to ``N/A`` and today.
    """
    today = today or _today()

    consumption = _CONSUMPTION.search(text)
    value = _VALUE.search(text)
    if consumption is None or value is None:
        logger.debug("No consumption/value found in %d chars of text", len(text))
        return None

    installation = _INSTALLATION.search(text)
    due = _DUE_DATE.search(text)
    try:
        due_date = (
            datetime.strptime(due.group(1), "%d/%m/%Y").date() if due else today
        )
    except ValueError:
        logger.warning("Unparseable due date %r", due.group(1) if due else None)
        return None

    return ExtractedBill(
        customer_name="Extracted Customer",
        address="Address extracted by OCR",
        installation_number=installation.group(1) if installation else "N/A",
        consumption_kwh=int(consumption.group(1)),
        total_value=Decimal(value.group(1).replace(",", ".")),
        due_date=due_date,
        tariff_flag=TariffFlag.GREEN,
        distributor="Detected Distributor",
        reference_month=today.strftime("%Y-%m"),
    )


def simulate_extraction(
    file_name: str,
    *,
    rng: random.Random | None = None,
    today: date | None = None,
) -> ExtractedBill:
    """Return made-up bill fields for an uploaded document.

    Pass a seeded ``random.Random`` for repeatable output.
    """
    rng = rng or random.Random()
    today = today or _today()
    logger.info("Simulating OCR for %s", file_name)

    return ExtractedBill(
        customer_name="João Silva Santos",
        address="Rua das Flores, 123 - Centro - São Paulo/SP",
        installation_number="12345678901",
        consumption_kwh=rng.randint(100, 399),
        total_value=Decimal(f"{rng.uniform(80, 280):.2f}"),
        due_date=today + timedelta(days=DUE_IN_DAYS),
        tariff_flag=rng.choice(list(TariffFlag)),
        distributor="Enel São Paulo",
        reference_month=today.strftime("%Y-%m"),
    )
