"""Domain and derived models for energy bill analytics."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Literal, get_args

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class TariffFlag(str, Enum):
    """Brazilian tariff flag signalling the energy price level."""

    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"


# Legacy Portuguese values still found in older bills rows; new rows are
# written with the English enum values.
_FLAG_ALIASES = {
    "verde": TariffFlag.GREEN,
    "amarela": TariffFlag.YELLOW,
    "vermelha": TariffFlag.RED,
}


def _normalize_flag(value: object) -> object:
    if isinstance(value, str):
        return _FLAG_ALIASES.get(value.strip().lower(), value.strip().lower())
    return value


class ExtractedBill(BaseModel):
    """Fields read off a bill document by the extraction step."""

    customer_name: str
    address: str
    installation_number: str
    consumption_kwh: int = Field(ge=0)
    total_value: Decimal = Field(ge=0)
    due_date: date
    tariff_flag: TariffFlag
    distributor: str
    reference_month: str

    @field_validator("tariff_flag", mode="before")
    @classmethod
    def _accept_flag_aliases(cls, value: object) -> object:
        return _normalize_flag(value)


class BillRecord(ExtractedBill):
    """A stored bill. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    processed_at: datetime
    file_name: str = ""
    file_url: str = ""
    raw_data: Any = None


class User(BaseModel):
    """Dashboard user, as returned by the auth backend."""

    id: str
    email: str
    name: str | None = None
    role: Literal["user", "admin"] = "user"
    created_at: datetime

    @model_validator(mode="before")
    @classmethod
    def _lift_user_metadata(cls, data: Any) -> Any:
        """Take name and role from ``user_metadata`` when not set directly."""
        if not isinstance(data, dict):
            return data
        metadata = data.get("user_metadata") or {}
        merged = dict(data)
        for key in ("name", "role"):
            if merged.get(key) is None and metadata.get(key) is not None:
                merged[key] = metadata[key]
        if merged.get("role") is None:
            merged.pop("role", None)
        return merged


FeedbackStatus = Literal["pending", "approved", "rejected"]
FEEDBACK_STATUSES: tuple[str, ...] = get_args(FeedbackStatus)


class Feedback(BaseModel):
    """A user correction to an extracted bill field."""

    id: str
    bill_id: str
    field_corrected: str
    correct_value: str
    user_id: str
    created_at: datetime
    status: FeedbackStatus = "pending"


@dataclass(frozen=True)
class AggregatedPeriod:
    """Average consumption and value of the bills processed in one month."""

    month: str
    avg_consumption: int
    avg_value: Decimal
    count: int


@dataclass(frozen=True)
class RegionSummary:
    """Averages and dominant tariff flag for one region."""

    region: str
    avg_consumption: int
    avg_value: Decimal
    count: int
    dominant_flag: TariffFlag


@dataclass(frozen=True)
class FlagShare:
    """How many bills carry a tariff flag, and their share of the total."""

    flag: TariffFlag
    count: int
    percentage: float


@dataclass(frozen=True)
class Growth:
    """Signed percentage change between two periods."""

    percentage: float
    is_positive: bool

    def __str__(self) -> str:
        sign = "+" if self.is_positive else ""
        return f"{sign}{self.percentage:.1f}%"


@dataclass(frozen=True)
class AdminMetrics:
    """Headline numbers for the admin dashboard."""

    total_bills: int
    average_consumption: int
    average_value: Decimal
    total_users: int
    bills_this_month: int
    consumption_by_region: dict[str, int]


InsightType = Literal["warning", "success", "tip", "info"]


@dataclass(frozen=True)
class Insight:
    """An advisory message derived from a user's bill history."""

    type: InsightType
    title: str
    description: str
    value: float | None = None
