"""Calendar period helpers for summaries and reports.

Every function returns an inclusive (start, end) pair of aware UTC datetimes,
with end at the last microsecond of the period.
"""

import calendar
from datetime import date, datetime, time, timedelta, timezone

from src.mt_common.datetime_utils import ensure_utc
from src.mt_common.errors import InvalidRangeError

_END_OF_DAY = time(23, 59, 59, 999999, tzinfo=timezone.utc)
_START_OF_DAY = time(0, 0, tzinfo=timezone.utc)


def month_range(year: int, month: int) -> tuple[datetime, datetime]:
    if not 1 <= month <= 12:
        raise InvalidRangeError(f"month must be 1-12, got {month}")
    last_day = calendar.monthrange(year, month)[1]
    return (
        datetime.combine(date(year, month, 1), _START_OF_DAY),
        datetime.combine(date(year, month, last_day), _END_OF_DAY),
    )


def year_range(year: int) -> tuple[datetime, datetime]:
    return (
        datetime.combine(date(year, 1, 1), _START_OF_DAY),
        datetime.combine(date(year, 12, 31), _END_OF_DAY),
    )


def week_range(day: date) -> tuple[datetime, datetime]:
    """Monday 00:00 through Sunday 23:59:59.999999 of the week containing `day`."""
    monday = day - timedelta(days=day.weekday())
    sunday = monday + timedelta(days=6)
    return (
        datetime.combine(monday, _START_OF_DAY),
        datetime.combine(sunday, _END_OF_DAY),
    )


def validate_range(start: datetime | None, end: datetime | None) -> None:
    if start is not None and end is not None and start > end:
        raise InvalidRangeError(f"start {start.isoformat()} is after end {end.isoformat()}")


def resolve_period(
    start: datetime | None,
    end: datetime | None,
    year: int | None,
    month: int | None,
) -> tuple[datetime | None, datetime | None]:
    """Pick explicit bounds, or a calendar year/month, never both."""
    if year is None:
        if month is not None:
            raise InvalidRangeError("month requires year")
        # Naive bounds (no offset in the query string) are read as UTC
        start = ensure_utc(start) if start else None
        end = ensure_utc(end) if end else None
        validate_range(start, end)
        return start, end
    if start is not None or end is not None:
        raise InvalidRangeError("use either start/end or year/month, not both")
    if month is None:
        return year_range(year)
    return month_range(year, month)
