"""Shared test fixtures."""

from __future__ import annotations

from datetime import UTC, date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

import pytest

from energy_reader.config import SupabaseConfig
from energy_reader.models import BillRecord, TariffFlag

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path


def build_bill(**overrides: Any) -> BillRecord:
    """Build a BillRecord with sensible defaults."""
    fields: dict[str, Any] = {
        "id": "bill-1",
        "user_id": "user-1",
        "processed_at": datetime(2025, 6, 15, 10, 30, tzinfo=UTC),
        "consumption_kwh": 200,
        "total_value": Decimal("150.00"),
        "due_date": date(2025, 7, 10),
        "customer_name": "Maria Oliveira",
        "address": "Rua das Flores, 123 - Centro - São Paulo/SP",
        "distributor": "Enel São Paulo",
        "installation_number": "12345678901",
        "reference_month": "2025-06",
        "tariff_flag": TariffFlag.GREEN,
    }
    fields.update(overrides)
    return BillRecord(**fields)


@pytest.fixture
def make_bill() -> Callable[..., BillRecord]:
    """Provide the BillRecord factory."""
    return build_bill


@pytest.fixture
def store_root(tmp_path: Path) -> Path:
    """Provide a temporary directory as the document store root."""
    root = tmp_path / "bills"
    root.mkdir()
    return root


@pytest.fixture
def supabase_config() -> SupabaseConfig:
    """Provide a test Supabase configuration."""
    return SupabaseConfig(
        url="https://project.supabase.co",
        key="service-key",  # pragma: allowlist secret
    )


@pytest.fixture
def bill_row() -> dict[str, Any]:
    """A bills table row as a backend returns it."""
    return {
        "id": "0b7d7a52-3f0c-4c57-9a63-5c1f5f3e2a10",
        "user_id": "user-1",
        "file_name": "conta.pdf",
        "file_url": "https://project.supabase.co/storage/v1/object/public/conta.pdf",
        "processed_at": "2025-06-15T10:30:00+00:00",
        "consumption_kwh": 245,
        "total_value": 189.9,
        "due_date": "2025-07-10",
        "installation_number": "12345678901",
        "customer_name": "João Silva Santos",
        "address": "Rua das Flores, 123 - Centro - São Paulo/SP",
        "distributor": "Enel São Paulo",
        "tariff_flag": "vermelha",
        "reference_month": "2025-06",
        "raw_data": {"source": "ocr"},
    }
