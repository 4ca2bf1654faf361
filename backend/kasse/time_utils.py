from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional, Union


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def coerce_date(value: Union[date, datetime, str]) -> date:
    """
    Reduce a date-ish value to a calendar day.

    Strings may be plain dates ("2024-03-01") or full ISO datetimes; anything
    unparsable raises ValueError. The day is taken as written: an offset is
    not converted to UTC first.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Cannot interpret {value!r} as a date")
    s = value.strip()
    if not s:
        raise ValueError("Date value is empty")
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    return datetime.fromisoformat(s).date()


def format_day(value: Optional[datetime]) -> str:
    if value is None:
        return ""
    return value.strftime("%Y-%m-%d")


def format_timestamp(value: Optional[datetime]) -> str:
    """YYYY-MM-DDTHH:MM:SS without a zone suffix."""
    if value is None:
        return ""
    return value.strftime("%Y-%m-%dT%H:%M:%S")


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")
