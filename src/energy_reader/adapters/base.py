"""Bill repository protocol."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from energy_reader.models import BillRecord, ExtractedBill, Feedback, User


class RepositoryError(Exception):
    """A bill store backend failed to read or write."""


@runtime_checkable
class BillRepository(Protocol):
    """Protocol for bill store backends.

    ``list_bills`` returns bills most-recent-first; all bills when
    ``user_id`` is None.
    """

    def list_bills(self, user_id: str | None = None) -> list[BillRecord]: ...

    def save_bill(
        self, user_id: str, bill: ExtractedBill, file_name: str, file_url: str
    ) -> BillRecord: ...

    def list_users(self) -> list[User]: ...

    def submit_feedback(
        self, bill_id: str, field_corrected: str, correct_value: str, user_id: str
    ) -> None: ...

    def list_feedback(self) -> list[Feedback]: ...
