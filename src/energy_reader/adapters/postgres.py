"""Postgres bill repository (the Supabase database accessed directly)."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from energy_reader.adapters.base import RepositoryError
from energy_reader.models import BillRecord, Feedback, User

if TYPE_CHECKING:
    from energy_reader.models import ExtractedBill

logger = logging.getLogger(__name__)

_BILL_COLUMNS = (
    "user_id",
    "file_name",
    "file_url",
    "processed_at",
    "consumption_kwh",
    "total_value",
    "due_date",
    "installation_number",
    "customer_name",
    "address",
    "distributor",
    "tariff_flag",
    "reference_month",
    "raw_data",
)

_INSERT_BILL = (
    f"INSERT INTO energy_bills ({', '.join(_BILL_COLUMNS)}) "
    f"VALUES ({', '.join(['%s'] * len(_BILL_COLUMNS))}) RETURNING *"
)


def connect(url: str) -> psycopg.Connection[dict[str, Any]]:
    """Open an autocommit connection returning rows as dicts.

    Writes run inside ``conn.transaction()`` blocks, which commit on exit.
    """
    return psycopg.connect(url, autocommit=True, row_factory=dict_row)


def _stringify_ids(row: dict[str, Any], *keys: str) -> dict[str, Any]:
    """Return a copy of ``row`` with UUID columns converted to str."""
    converted = dict(row)
    for key in keys:
        if converted.get(key) is not None:
            converted[key] = str(converted[key])
    return converted


class PostgresBillRepository:
    """Read and write bills with plain SQL over a psycopg connection."""

    def __init__(self, conn: psycopg.Connection[dict[str, Any]]) -> None:
        self.conn = conn

    @classmethod
    def from_url(cls, url: str) -> PostgresBillRepository:
        return cls(connect(url))

    def list_bills(self, user_id: str | None = None) -> list[BillRecord]:
        """Fetch bills newest first, optionally for one user only."""
        if user_id is None:
            rows = self._fetch("SELECT * FROM energy_bills ORDER BY processed_at DESC")
        else:
            rows = self._fetch(
                "SELECT * FROM energy_bills WHERE user_id = %s "
                "ORDER BY processed_at DESC",
                (user_id,),
            )
        logger.debug("Fetched %d bills (user=%s)", len(rows), user_id or "all")
        return [
            BillRecord.model_validate(_stringify_ids(row, "id", "user_id"))
            for row in rows
        ]

    def save_bill(
        self, user_id: str, bill: ExtractedBill, file_name: str, file_url: str
    ) -> BillRecord:
        """Insert a bill, stamping ``processed_at`` with the current time."""
        fields = bill.model_dump()
        params = (
            user_id,
            file_name,
            file_url,
            datetime.now(tz=UTC),
            fields["consumption_kwh"],
            fields["total_value"],
            fields["due_date"],
            fields["installation_number"],
            fields["customer_name"],
            fields["address"],
            fields["distributor"],
            bill.tariff_flag.value,
            fields["reference_month"],
            Jsonb(bill.model_dump(mode="json")),
        )
        try:
            with self.conn.transaction(), self.conn.cursor() as cur:
                cur.execute(_INSERT_BILL, params)
                row = cur.fetchone()
        except psycopg.Error as exc:
            msg = f"Failed to save bill for user {user_id}"
            raise RepositoryError(msg) from exc

        if row is None:
            msg = f"Insert returned no row for user {user_id}"
            raise RepositoryError(msg)
        return BillRecord.model_validate(_stringify_ids(row, "id", "user_id"))

    def list_users(self) -> list[User]:
        rows = self._fetch("SELECT * FROM users ORDER BY created_at DESC")
        return [User.model_validate(_stringify_ids(row, "id")) for row in rows]

    def submit_feedback(
        self, bill_id: str, field_corrected: str, correct_value: str, user_id: str
    ) -> None:
        """Record a correction to one extracted field."""
        try:
            with self.conn.transaction(), self.conn.cursor() as cur:
                cur.execute(
                    "INSERT INTO feedback "
                    "(bill_id, field_corrected, correct_value, user_id) "
                    "VALUES (%s, %s, %s, %s)",
                    (bill_id, field_corrected, correct_value, user_id),
                )
        except psycopg.Error as exc:
            msg = f"Failed to submit feedback for bill {bill_id}"
            raise RepositoryError(msg) from exc

    def list_feedback(self) -> list[Feedback]:
        rows = self._fetch("SELECT * FROM feedback ORDER BY created_at DESC")
        return [
            Feedback.model_validate(_stringify_ids(row, "id", "bill_id", "user_id"))
            for row in rows
        ]

    def _fetch(
        self, query: str, params: tuple[object, ...] | None = None
    ) -> list[dict[str, Any]]:
        try:
            with self.conn.cursor() as cur:
                cur.execute(query, params)
                return cur.fetchall()
        except psycopg.Error as exc:
            msg = f"Query failed: {query}"
            raise RepositoryError(msg) from exc
