"""Date and currency helpers shared across devedores."""

from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

CENT = Decimal("0.01")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_datetime(value: str | datetime | date) -> datetime:
    """Parse an ISO 8601 timestamp into an aware UTC datetime.

    Accepts the ``Z`` suffix written by JavaScript's ``toISOString`` and
    date-only values, which are read as UTC midnight. Naive datetimes are
    taken to be UTC.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def to_decimal(value: Any) -> Decimal:
    """Convert a JSON number or string to Decimal without float noise."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_currency(value: Decimal) -> Decimal:
    """Round a currency amount to cents, half up."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)
