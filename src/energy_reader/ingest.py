"""Upload pipeline: store the document, extract its fields, save the bill."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from energy_reader.extraction import simulate_extraction

if TYPE_CHECKING:
    import random
    from datetime import date
    from pathlib import Path

    from energy_reader.adapters.base import BillRepository
    from energy_reader.models import BillRecord
    from energy_reader.store import FileStore

logger = logging.getLogger(__name__)


def ingest_bill(
    path: Path,
    user_id: str,
    *,
    repository: BillRepository,
    file_store: FileStore,
    rng: random.Random | None = None,
    today: date | None = None,
) -> BillRecord:
    """Upload one bill document for ``user_id`` and return the stored record."""
    data = path.read_bytes()
    stored_path = file_store.save(user_id, path.name, data)
    file_url = file_store.get_url(stored_path)

    extracted = simulate_extraction(path.name, rng=rng, today=today)
    record = repository.save_bill(user_id, extracted, path.name, file_url)
    logger.info(
        "Ingested %s for user %s as bill %s (%d kWh)",
        path.name,
        user_id,
        record.id,
        record.consumption_kwh,
    )
    return record
