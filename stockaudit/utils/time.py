"""Time helpers."""

from __future__ import annotations

from datetime import date, datetime, timezone


def utc_now() -> datetime:
    """Return the current UTC timestamp.

    All audit timestamps are stored timezone-aware in UTC.
    """
    return datetime.now(timezone.utc)


def audit_code_date(value: datetime) -> str:
    return value.strftime("%Y%m%d")


def is_well_ordered(start: date, end: date) -> bool:
    return start <= end
