"""Environment-driven configuration for the reporting service."""

from __future__ import annotations

import os
from typing import Optional, Tuple

from dotenv import load_dotenv

load_dotenv()


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _float_env(name: str, default: Optional[float]) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _list_env(name: str, default: str) -> Tuple[str, ...]:
    raw = os.getenv(name, default)
    return tuple(entry.strip().lower() for entry in raw.split(",") if entry.strip())


SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY")
SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

REPORT_TIMEZONE = os.getenv("REPORT_TIMEZONE", "UTC")
# Restaurant-specific; not derived from live table data.
REPORT_TABLE_COUNT = _int_env("REPORT_TABLE_COUNT", 20)
REPORT_USAGE_LOOKBACK_DAYS = _int_env("REPORT_USAGE_LOOKBACK_DAYS", 30)
REPORT_EXPIRY_HORIZON_DAYS = _int_env("REPORT_EXPIRY_HORIZON_DAYS", 7)
REPORT_DEFAULT_MENU_RATING = _float_env("REPORT_DEFAULT_MENU_RATING", 4.0)
REPORT_TIMEOUT_SECONDS = _float_env("REPORT_TIMEOUT_SECONDS", 30.0)
REPORT_ALLOWED_ROLES = _list_env("REPORT_ALLOWED_ROLES", "manager")


__all__ = [
    "LOG_LEVEL",
    "REPORT_ALLOWED_ROLES",
    "REPORT_DEFAULT_MENU_RATING",
    "REPORT_EXPIRY_HORIZON_DAYS",
    "REPORT_TABLE_COUNT",
    "REPORT_TIMEOUT_SECONDS",
    "REPORT_TIMEZONE",
    "REPORT_USAGE_LOOKBACK_DAYS",
    "SUPABASE_ANON_KEY",
    "SUPABASE_SERVICE_ROLE_KEY",
    "SUPABASE_URL",
]
