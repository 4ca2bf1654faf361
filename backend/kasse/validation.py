from __future__ import annotations

from datetime import date
from typing import Any, Optional

from kasse.time_utils import coerce_date


class ValidationError(ValueError):
    """400-level input problem."""


def require_int(value: Any, field: str) -> int:
    """
    Strict positive integer coercion for ids coming from JSON bodies or query strings.

    Booleans, floats and decimal strings are rejected.
    """
    if value is None or value == "":
        raise ValidationError(f"{field} is required")
    if isinstance(value, bool) or isinstance(value, float):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped.isdigit():
            raise ValidationError(f"{field} must be an integer")
        result = int(stripped)
    else:
        raise ValidationError(f"{field} must be an integer")

    if result <= 0:
        raise ValidationError(f"{field} must be positive")
    return result


def parse_date(value: Any, field: str) -> date:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{field} is required")
    try:
        return coerce_date(value)
    except ValueError:
        raise ValidationError(f"{field} must be an ISO date (YYYY-MM-DD)")


def parse_date_range(from_value: Any, to_value: Any) -> tuple[date, date]:
    """Both bounds required; to_date may equal from_date but not precede it."""
    from_day = parse_date(from_value, "from_date")
    to_day = parse_date(to_value, "to_date")
    if to_day < from_day:
        raise ValidationError("to_date must be on or after from_date")
    return from_day, to_day


def parse_optional_date(value: Any, field: str) -> Optional[date]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return parse_date(value, field)
