"""Supabase bill repository and document store."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from postgrest.exceptions import APIError
from supabase import Client, create_client

from energy_reader.adapters.base import RepositoryError
from energy_reader.models import BillRecord, Feedback, User

if TYPE_CHECKING:
    from energy_reader.config import SupabaseConfig
    from energy_reader.models import ExtractedBill

logger = logging.getLogger(__name__)


def create_supabase_client(config: SupabaseConfig) -> Client:
    """Create a Supabase client from configuration."""
    return create_client(config.url, config.key)


class SupabaseBillRepository:
    """Read and write bills through the Supabase REST API."""

    def __init__(self, client: Client, bills_table: str = "energy_bills") -> None:
        self.client = client
        self.bills_table = bills_table

    def list_bills(self, user_id: str | None = None) -> list[BillRecord]:
        """Fetch bills newest first, optionally for one user only."""
        query = self.client.table(self.bills_table).select("*")
        if user_id is not None:
            query = query.eq("user_id", user_id)
        rows = self._execute(
            query.order("processed_at", desc=True), f"list bills (user={user_id})"
        )
        return [BillRecord.model_validate(row) for row in rows]

    def save_bill(
        self, user_id: str, bill: ExtractedBill, file_name: str, file_url: str
    ) -> BillRecord:
        """Insert a bill, stamping ``processed_at`` with the current time."""
        fields = bill.model_dump(mode="json")
        row = {
            **fields,
            "user_id": user_id,
            "file_name": file_name,
            "file_url": file_url,
            "processed_at": datetime.now(tz=UTC).isoformat(),
            "raw_data": fields,
        }
        rows = self._execute(
            self.client.table(self.bills_table).insert(row), f"save bill for {user_id}"
        )
        if not rows:
            msg = f"Insert returned no row for user {user_id}"
            raise RepositoryError(msg)
        return BillRecord.model_validate(rows[0])

    def list_users(self) -> list[User]:
        rows = self._execute(
            self.client.table("users").select("*").order("created_at", desc=True),
            "list users",
        )
        return [User.model_validate(row) for row in rows]

    def submit_feedback(
        self, bill_id: str, field_corrected: str, correct_value: str, user_id: str
    ) -> None:
        self._execute(
            self.client.table("feedback").insert(
                {
                    "bill_id": bill_id,
                    "field_corrected": field_corrected,
                    "correct_value": correct_value,
                    "user_id": user_id,
                }
            ),
            f"submit feedback for bill {bill_id}",
        )

    def list_feedback(self) -> list[Feedback]:
        rows = self._execute(
            self.client.table("feedback").select("*").order("created_at", desc=True),
            "list feedback",
        )
        return [Feedback.model_validate(row) for row in rows]

    @staticmethod
    def _execute(query: Any, action: str) -> list[dict[str, Any]]:
        try:
            response = query.execute()
        except APIError as exc:
            msg = f"Supabase request failed: {action}"
            raise RepositoryError(msg) from exc
        return list(getattr(response, "data", None) or [])


class SupabaseFileStore:
    """Keep uploaded bill documents in a Supabase storage bucket.

    Object layout: {user_id}/{timestamp}_{file_name}
    """

    def __init__(self, client: Client, bucket: str = "energy-bills") -> None:
        self.client = client
        self.bucket = bucket

    def save(self, user_id: str, file_name: str, data: bytes) -> str:
        """Upload the document and return its object path."""
        stamp = int(datetime.now(tz=UTC).timestamp() * 1000)
        path = f"{user_id}/{stamp}_{file_name}"
        try:
            self.client.storage.from_(self.bucket).upload(path, data)
        except Exception as exc:
            msg = f"Failed to upload {file_name} to bucket {self.bucket}"
            raise RepositoryError(msg) from exc
        logger.info("Uploaded %s to %s/%s", file_name, self.bucket, path)
        return path

    def get_url(self, path: str) -> str:
        """Return the public URL of a stored document."""
        return str(self.client.storage.from_(self.bucket).get_public_url(path))
