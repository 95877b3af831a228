"""Timestamp text format exchanged with the remote service.

RFC 3339 with an explicit offset, ``Z`` for UTC:
``2024-01-02T03:04:05Z`` or ``2024-01-02T05:04:05+02:00``.
"""
from datetime import datetime, timedelta


class TimestampError(ValueError):
    """Timestamp text is malformed or lacks a timezone."""
    pass


def format_timestamp(value: datetime) -> str:
    """Format an aware datetime as RFC 3339 text (second precision)."""
    offset = value.utcoffset()
    if offset is None:
        raise TimestampError(f"Timestamp has no timezone: {value!r}")

    base = value.strftime("%Y-%m-%dT%H:%M:%S")
    if offset == timedelta(0):
        return base + "Z"

    total = int(offset.total_seconds())
    sign = "+" if total >= 0 else "-"
    hours, minutes = divmod(abs(total) // 60, 60)
    return f"{base}{sign}{hours:02d}:{minutes:02d}"


def parse_timestamp(text: str) -> datetime:
    """Parse RFC 3339 text into an aware datetime."""
    if not isinstance(text, str) or not text:
        raise TimestampError(f"Invalid timestamp: {text!r}")

    normalized = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError as e:
        raise TimestampError(f"Invalid timestamp: {text!r}") from e

    if parsed.utcoffset() is None:
        raise TimestampError(f"Timestamp has no timezone: {text!r}")
    return parsed


def normalize_timestamp(value) -> str:
    """Accept a datetime or RFC 3339 text and return canonical text."""
    if isinstance(value, datetime):
        return format_timestamp(value)
    return format_timestamp(parse_timestamp(value))
