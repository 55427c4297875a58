"""Date-window selection and membership tests."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, Iterable, TypeVar

from payoutdesk.errors import ConfigurationError
from payoutdesk.time_utils import end_of_day, parse_timestamp, start_of_day, utc_now
from payoutdesk.types import WindowKind


log = logging.getLogger(__name__)


__all__ = [
    "TimeWindow",
    "filter_by_window",
    "includes",
]


T = TypeVar("T")

_ROLLING = {
    WindowKind.LAST_7D: timedelta(days=7),
    WindowKind.LAST_30D: timedelta(days=30),
}


@dataclass(frozen=True)
class TimeWindow:
    """A date-filter selection.

    ``start``/``end`` are only meaningful for ``CUSTOM``. A ``date`` bound
    covers its whole calendar day; a ``datetime`` bound is used as given.

    Usage:
        TimeWindow.last_7d().includes(trade.event_time, now)
        TimeWindow.custom(date(2024, 6, 1), date(2024, 6, 30))
    """
    kind: WindowKind = WindowKind.ALL
    start: date | datetime | None = None
    end: date | datetime | None = None

    def __post_init__(self):
        # Reject unknown kinds here, even if the window never sees a record.
        object.__setattr__(self, "kind", WindowKind.parse(self.kind))

    @classmethod
    def all(cls) -> TimeWindow:
        return cls(WindowKind.ALL)

    @classmethod
    def today(cls) -> TimeWindow:
        return cls(WindowKind.TODAY)

    @classmethod
    def last_7d(cls) -> TimeWindow:
        return cls(WindowKind.LAST_7D)

    @classmethod
    def last_30d(cls) -> TimeWindow:
        return cls(WindowKind.LAST_30D)

    @classmethod
    def month_to_date(cls) -> TimeWindow:
        return cls(WindowKind.MONTH_TO_DATE)

    @classmethod
    def custom(cls, start: date | datetime | None, end: date | datetime | None) -> TimeWindow:
        return cls(WindowKind.CUSTOM, start, end)

    @classmethod
    def parse(cls, kind: str | WindowKind, start=None, end=None) -> TimeWindow:
        """Build a window from selector input.

        Raises:
            ConfigurationError: if *kind* is not a known window kind.
        """
        wk = WindowKind.parse(kind)
        if wk != WindowKind.CUSTOM:
            return cls(wk)
        return cls.custom(_parse_bound(start), _parse_bound(end))

    @property
    def is_open_ended(self) -> bool:
        """True when a CUSTOM window is missing a bound and so matches everything."""
        return self.kind == WindowKind.CUSTOM and (self.start is None or self.end is None)

    def bounds(self, tz=None) -> tuple[datetime, datetime] | None:
        """Resolved inclusive CUSTOM bounds, or ``None`` when not applicable."""
        if self.kind != WindowKind.CUSTOM or self.is_open_ended:
            return None
        lo = self.start if isinstance(self.start, datetime) else start_of_day(self.start, *_tz_args(tz))
        hi = self.end if isinstance(self.end, datetime) else end_of_day(self.end, *_tz_args(tz))
        return parse_timestamp(lo), parse_timestamp(hi)

    def includes(self, timestamp: datetime, now: datetime | None = None) -> bool:
        return includes(timestamp, self, now)


def _tz_args(tz):
    return () if tz is None else (tz,)


def _parse_bound(raw) -> date | datetime | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, (date, datetime)):
        return raw
    s = str(raw).strip()
    # Bare calendar dates stay dates so they cover the whole day.
    if len(s) == 10:
        try:
            return date.fromisoformat(s.replace("/", "-"))
        except ValueError:
            pass
    try:
        return parse_timestamp(s)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid custom window bound: {raw!r}") from exc


def includes(timestamp: datetime, window: TimeWindow, now: datetime | None = None) -> bool:
    """Return True if *timestamp* falls inside *window*.

    ``TODAY`` and ``MONTH_TO_DATE`` use the calendar of ``now``'s timezone.
    Rolling windows are strict: an event exactly 7 (or 30) days before
    ``now`` is outside. ``CUSTOM`` is inclusive at both ends; if either bound
    is missing the window matches everything.

    Raises:
        ConfigurationError: if ``window.kind`` is not a known window kind.
    """
    kind = window.kind

    if kind == WindowKind.ALL:
        return True

    timestamp = parse_timestamp(timestamp)
    now = parse_timestamp(now) if now is not None else utc_now()

    if kind == WindowKind.CUSTOM:
        bounds = window.bounds(now.tzinfo)
        if bounds is None:
            log.debug("CUSTOM window missing a bound; matching everything")
            return True
        lo, hi = bounds
        return lo <= timestamp <= hi

    local = timestamp.astimezone(now.tzinfo)

    if kind == WindowKind.TODAY:
        return local.date() == now.date()

    if kind in _ROLLING:
        return timestamp > now - _ROLLING[kind]

    if kind == WindowKind.MONTH_TO_DATE:
        return local.year == now.year and local.month == now.month

    raise ConfigurationError(f"Unknown window kind: {kind!r}")


def filter_by_window(
    records: Iterable[T],
    window: TimeWindow,
    now: datetime | None,
    timestamp_of: Callable[[T], datetime],
) -> list[T]:
    """Return the records whose timestamp falls inside *window*, in input order."""
    if window.is_open_ended:
        log.warning("CUSTOM window missing a bound (start=%s end=%s); matching all records", window.start, window.end)
        return list(records)
    now = now if now is not None else utc_now()
    return [r for r in records if includes(timestamp_of(r), window, now)]
