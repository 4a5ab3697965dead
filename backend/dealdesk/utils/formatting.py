"""Input normalisation shared by validation and payload mapping.

Provides helpers for the loosely-typed values an operator types in:
- Calendar dates (date of birth)
- Dollar amounts
- Phone numbers
- Identifiers returned by the deal API
"""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

# Accepted date of birth layouts, tried in order after ISO
DATE_FORMATS = ("%m/%d/%Y", "%d.%m.%Y", "%Y/%m/%d")


def clean(value: Any) -> str:
    """Return the value as a trimmed string ("" for None)."""
    if value is None:
        return ""
    return str(value).strip()


def parse_calendar_date(value: Any) -> date:
    """Read a calendar date from a date, datetime or string.

    Strings may be an ISO date or datetime (``1990-04-07``,
    ``1990-04-07T00:00:00Z``) or one of ``DATE_FORMATS``; trailing text after
    the date is rejected. The calendar day is taken as written; no
    timezone conversion is applied.

    Raises:
        ValueError: If the value cannot be read as a date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = clean(value)
    if not text:
        raise ValueError("Date is required")

    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        pass

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"Not a calendar date: {text}")


def format_iso_date(value: Any) -> str:
    """Zero-padded ``YYYY-MM-DD`` for any value parse_calendar_date reads."""
    day = parse_calendar_date(value)
    return f"{day.year:04d}-{day.month:02d}-{day.day:02d}"


def parse_amount(value: Any) -> Decimal:
    """Parse a dollar amount; blank counts as zero.

    Accepts thousands separators and a leading ``$``.

    Raises:
        ValueError: If the value is not a finite number
    """
    text = clean(value).replace(",", "").lstrip("$").strip()
    if not text:
        return Decimal(0)
    try:
        amount = Decimal(text)
    except InvalidOperation:
        raise ValueError(f"Not a number: {text}") from None
    if not amount.is_finite():
        raise ValueError(f"Not a number: {text}")
    return amount


def strip_hyphens(phone: Any) -> str:
    return clean(phone).replace("-", "")


def coerce_identifier(value: Any) -> int | str:
    """Send numeric-looking identifiers as numbers, others unchanged."""
    if isinstance(value, bool):
        raise ValueError("Identifier cannot be a boolean")
    if isinstance(value, int):
        return value
    text = clean(value)
    if text.isdigit():
        return int(text)
    return text
