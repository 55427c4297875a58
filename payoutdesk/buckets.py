"""Bucket-key derivation for daily/weekly/monthly rollups."""

from dataclasses import dataclass, field
from datetime import date, datetime

from payoutdesk.errors import ConfigurationError
from payoutdesk.types import Granularity


__all__ = [
    "BucketKey",
    "derive_key",
    "week_of_year",
]


_MONTH_ABBR = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
_MONTH_NAME = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


@dataclass(frozen=True, order=True)
class BucketKey:
    """Identity of a time bucket.

    Ordering and equality use ``sort_key`` only, so two timestamps that land
    in the same day/week/month compare equal and hash together.
    """
    sort_key: tuple[int, ...]
    granularity: Granularity = field(compare=False)
    key: str = field(compare=False)
    label: str = field(compare=False)
    start: date = field(compare=False)


def week_of_year(day: date) -> int:
    """1-based week number, weeks starting on Sunday.

    ``ceil((days_since_jan1 + jan1_weekday + 1) / 7)`` where ``jan1_weekday``
    counts from Sunday = 0. Only the calendar day matters, never the time.
    """
    jan1 = date(day.year, 1, 1)
    offset = jan1.isoweekday() % 7
    days = (day - jan1).days
    return (days + offset + 1 + 6) // 7


def derive_key(timestamp: datetime | date, granularity: Granularity) -> BucketKey:
    """Map a timestamp to its bucket.

    Uses the calendar of the timestamp as given; callers wanting a local
    calendar convert with ``astimezone`` first.

    Raises:
        ConfigurationError: if *granularity* is not DAILY, WEEKLY or MONTHLY.
    """
    day = timestamp.date() if isinstance(timestamp, datetime) else timestamp

    if granularity == Granularity.DAILY:
        return BucketKey(
            sort_key=(day.year, day.month, day.day),
            granularity=Granularity.DAILY,
            key=day.isoformat(),
            label=f"{_MONTH_ABBR[day.month - 1]} {day.day}",
            start=day,
        )

    if granularity == Granularity.WEEKLY:
        week = week_of_year(day)
        return BucketKey(
            sort_key=(day.year, week),
            granularity=Granularity.WEEKLY,
            key=f"{day.year}-W{week:02d}",
            label=f"W{week} {day.year}",
            start=_week_start(day),
        )

    if granularity == Granularity.MONTHLY:
        return BucketKey(
            sort_key=(day.year, day.month),
            granularity=Granularity.MONTHLY,
            key=f"{day.year}-{day.month:02d}",
            label=f"{_MONTH_NAME[day.month - 1]} {day.year}",
            start=date(day.year, day.month, 1),
        )

    raise ConfigurationError(f"Unknown granularity: {granularity!r}")


def _week_start(day: date) -> date:
    # Sunday of the same week, clamped to Jan 1 since weeks never span years.
    back = day.isoweekday() % 7
    start = date.fromordinal(day.toordinal() - back)
    return start if start.year == day.year else date(day.year, 1, 1)
