"""Configuration via environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

BACKENDS = ("postgres", "supabase")


@dataclass(frozen=True)
class SupabaseConfig:
    """Supabase project connection configuration."""

    url: str
    key: str
    bills_table: str = "energy_bills"
    bucket: str = "energy-bills"


def get_backend() -> str:
    """Return the bill store backend, ``postgres`` or ``supabase``.

    Defaults to postgres.
    """
    backend = os.environ.get("ENERGY_READER_BACKEND", "postgres").strip().lower()
    if backend not in BACKENDS:
        msg = (
            f"ENERGY_READER_BACKEND must be one of {', '.join(BACKENDS)}, "
            f"got {backend!r}"
        )
        raise ValueError(msg)
    return backend


def get_database_url() -> str:
    """Return the DATABASE_URL from the environment."""
    url = os.environ.get("DATABASE_URL")
    if not url:
        msg = "DATABASE_URL environment variable is required"
        raise ValueError(msg)
    return url


def get_store_path() -> Path:
    """Return the BILL_STORE_PATH, defaulting to ./data/bills.

    Resolved to an absolute path.
    """
    return Path(os.environ.get("BILL_STORE_PATH", "./data/bills")).resolve()


def get_supabase_config() -> SupabaseConfig:
    """Build Supabase configuration from environment variables.

    Required: SUPABASE_URL, SUPABASE_KEY
    Optional: SUPABASE_BILLS_TABLE (default energy_bills),
    SUPABASE_BUCKET (default energy-bills)
    """
    url = os.environ.get("SUPABASE_URL")
    key = os.environ.get("SUPABASE_KEY")

    missing = []
    if not url:
        missing.append("SUPABASE_URL")
    if not key:
        missing.append("SUPABASE_KEY")

    if missing:
        msg = f"Required environment variables not set: {', '.join(missing)}"
        raise ValueError(msg)

    return SupabaseConfig(
        url=url,  # type: ignore[arg-type]
        key=key,  # type: ignore[arg-type]
        bills_table=os.environ.get("SUPABASE_BILLS_TABLE", "energy_bills"),
        bucket=os.environ.get("SUPABASE_BUCKET", "energy-bills"),
    )
