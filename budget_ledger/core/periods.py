"""Calendar helpers shared by the daily engine, the rollover jobs and the dashboard.

Weeks run Monday through Sunday; Sunday belongs to the week that started on the
previous Monday.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, time, timedelta, tzinfo

WEEK_END_TIME = time(23, 59, 59, 999000)


def week_start(day: date) -> date:
    return day - timedelta(days=day.weekday())


def week_end(day: date) -> date:
    return week_start(day) + timedelta(days=6)


def days_into_week(day: date) -> int:
    return day.weekday() + 1


def week_bounds(day: date, tz: tzinfo | None = None) -> tuple[datetime, datetime]:
    """Return Monday 00:00 and Sunday 23:59:59.999 of the week containing ``day``."""

    start = datetime.combine(week_start(day), time.min, tzinfo=tz)
    end = datetime.combine(week_end(day), WEEK_END_TIME, tzinfo=tz)
    return start, end


def day_bounds(day: date, tz: tzinfo | None = None) -> tuple[datetime, datetime]:
    """Half-open ``[start, end)`` window of a calendar day."""

    start = datetime.combine(day, time.min, tzinfo=tz)
    return start, start + timedelta(days=1)


def month_bounds(year: int, month: int, tz: tzinfo | None = None) -> tuple[datetime, datetime]:
    """Half-open ``[start, end)`` window of a calendar month."""

    start = datetime(year, month, 1, tzinfo=tz)
    last_day = calendar.monthrange(year, month)[1]
    return start, start + timedelta(days=last_day)
