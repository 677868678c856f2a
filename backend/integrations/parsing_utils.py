"""Shared parsing utilities for provider clients.

Centralises the timestamp and number parsing every provider needs:
Unix timestamps, decimal strings, timezone normalisation.
"""

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation


def parse_unix_timestamp(value) -> datetime | None:
    """Parse a Unix epoch timestamp to a UTC-aware datetime.

    Args:
        value: An int, float, string-encoded number, or None.

    Returns:
        A timezone-aware UTC datetime, or None if the value cannot be parsed.
    """
    if value is None:
        return None
    try:
        return datetime.fromtimestamp(int(value), tz=timezone.utc)
    except (ValueError, TypeError, OSError, OverflowError):
        return None


def parse_decimal(value) -> Decimal | None:
    """Parse a decimal string or number without going through float.

    Args:
        value: A string such as ``"1234.56"``, an int/float, or None.

    Returns:
        A Decimal, or None if the value is missing or not numeric.
    """
    if value is None or value == "":
        return None
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return None
    if not result.is_finite():
        return None
    return result


def ensure_utc(dt: datetime) -> datetime:
    """Ensure a datetime is timezone-aware (UTC).

    SQLite hands back naive datetimes; those are treated as UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_naive_utc(dt: datetime) -> datetime:
    """UTC wall-clock time without tzinfo, matching how DateTime columns are stored."""
    return ensure_utc(dt).replace(tzinfo=None)


def to_json_number(value: Decimal | None) -> float | None:
    """Convert a Decimal to a float for JSON metadata columns."""
    if value is None:
        return None
    return float(value)
