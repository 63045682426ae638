"""Resolve a named time period into a concrete ``[start, end)`` range."""

from __future__ import annotations

import calendar
from datetime import datetime, timedelta

from stepboard.domains.steps.domain_logic.step_models import TimePeriod

# Number of whole days before today's midnight that each rolling period starts
_DAYS_BACK = {
    TimePeriod.TODAY: 0,
    TimePeriod.YESTERDAY: 1,
    TimePeriod.LAST_3_DAYS: 2,
    TimePeriod.LAST_7_DAYS: 6,
}


def start_of_day(moment: datetime) -> datetime:
    """Midnight of ``moment``'s calendar date, in ``moment``'s time zone."""
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def earliest_instant(moment: datetime) -> datetime:
    """The minimum representable datetime, in ``moment``'s time zone."""
    return datetime.min.replace(tzinfo=moment.tzinfo)


def is_unbounded_start(moment: datetime) -> bool:
    """True for the ``all_time`` lower bound."""
    return moment.replace(tzinfo=None) == datetime.min


def align_to(moment: datetime, anchor: datetime) -> datetime:
    """Express ``moment`` in ``anchor``'s time zone so differences are wall-clock.

    Naive datetimes are read as local wall-clock time.
    """
    tz = anchor.tzinfo
    if tz is None:
        if moment.tzinfo is None:
            return moment
        return moment.astimezone().replace(tzinfo=None)
    if moment.tzinfo is None:
        return moment.replace(tzinfo=tz)
    return moment.astimezone(tz)


def starts_within(moment: datetime, start: datetime, end: datetime) -> bool:
    """True when ``moment`` lies in ``[start, end)``."""
    return start <= align_to(moment, start) < align_to(end, start)


def subtract_month(moment: datetime) -> datetime:
    """Same wall-clock time one calendar month earlier, clamping the day."""
    year, month = moment.year, moment.month - 1
    if month == 0:
        year, month = year - 1, 12
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def resolve_range(period: TimePeriod, now: datetime) -> tuple[datetime, datetime]:
    """Return ``(start, end)`` for ``period`` as seen at ``now``.

    The end is always ``now``. For ``yesterday`` that means the range also
    covers today so far.
    """
    period = TimePeriod(period)
    midnight = start_of_day(now)

    if period in _DAYS_BACK:
        start = midnight - timedelta(days=_DAYS_BACK[period])
    elif period is TimePeriod.LAST_MONTH:
        start = subtract_month(midnight)
    else:
        start = earliest_instant(now)

    return start, now
