"""Centralised timestamp and number handling.

All timestamp parsing and conversion goes through this module.
Internal representation: timezone-aware ``datetime`` (UTC unless the input
carries its own offset). Money and lot quantities are ``Decimal``.
"""

from datetime import date, datetime, time, timezone
from decimal import Decimal, InvalidOperation


__all__ = [
    "ZERO",
    "end_of_day",
    "parse_timestamp",
    "start_of_day",
    "to_decimal",
    "utc_now",
]


ZERO = Decimal("0")


# ---------------------------------------------------------------------------
# Timestamps
# ---------------------------------------------------------------------------


def parse_timestamp(ts: str | int | float | date | datetime) -> datetime:
    """Parse any timestamp representation to a timezone-aware datetime.

    Accepted inputs:
      * ``datetime`` (naive values are taken to be UTC)
      * ``date`` (midnight UTC of that day)
      * ISO 8601 string (``T`` or space separator, with or without ``Z``)
      * ``YYYY/MM/DD`` date prefix (normalised to dashes)
      * Integer or float milliseconds since epoch
      * String containing a numeric value (e.g. ``"1640995200000"``)

    Empty strings raise ``ValueError``: a record without a timestamp cannot
    be placed in a window.
    """
    if isinstance(ts, datetime):
        return ts if ts.tzinfo is not None else ts.replace(tzinfo=timezone.utc)
    if isinstance(ts, date):
        return datetime.combine(ts, time.min, tzinfo=timezone.utc)
    if isinstance(ts, (int, float)):
        return datetime.fromtimestamp(ts / 1000, tz=timezone.utc)

    s = (ts or "").strip()
    if not s:
        raise ValueError("timestamp is empty")

    # String that looks like a number → treat as milliseconds
    if s.replace(".", "", 1).lstrip("-").isdigit():
        return datetime.fromtimestamp(int(float(s)) / 1000, tz=timezone.utc)

    # Normalise YYYY/MM/DD → YYYY-MM-DD
    if len(s) >= 10 and s[4] == "/" and s[7] == "/":
        s = f"{s[:4]}-{s[5:7]}-{s[8:]}"

    s = s.replace("Z", "+00:00")
    s = s.replace(" ", "T", 1)

    dt = datetime.fromisoformat(s)
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=timezone.utc)


def utc_now() -> datetime:
    """Current time as a UTC-aware datetime."""
    return datetime.now(timezone.utc)


def start_of_day(day: date, tz=timezone.utc) -> datetime:
    """First instant of *day* in *tz*."""
    return datetime.combine(day, time.min, tzinfo=tz)


def end_of_day(day: date, tz=timezone.utc) -> datetime:
    """Last representable instant of *day* in *tz*."""
    return datetime.combine(day, time.max, tzinfo=tz)


# ---------------------------------------------------------------------------
# Numbers
# ---------------------------------------------------------------------------


def to_decimal(value: Decimal | int | float | str) -> Decimal:
    """Convert a numeric input to ``Decimal`` without binary float artefacts.

    Floats go through ``str`` so ``0.1`` becomes ``Decimal("0.1")`` rather than
    its exact binary expansion.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"not a number: {value!r}")
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value))
    try:
        return Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValueError(f"not a number: {value!r}") from exc
