"""Date ranges for the period statistics of the summary.

A period is a half-open range ``[since, until)`` of UTC datetimes; either
bound may be None (open). Weeks start on Monday.
"""

from datetime import datetime, timedelta, timezone

Period = tuple[datetime | None, datetime | None]


def as_utc(value: datetime | None) -> datetime | None:
    """Convert to UTC; naive datetimes are taken as UTC already."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def _previous_month(first_of_month: datetime) -> datetime:
    return (first_of_month - timedelta(days=1)).replace(day=1)


def summary_periods(now: datetime) -> dict[str, dict[str, Period]]:
    """Calendar periods around ``now``, grouped as current, history and rolling."""
    now = as_utc(now)
    today = _start_of_day(now)
    week = today - timedelta(days=today.weekday())
    month = today.replace(day=1)
    year = today.replace(month=1, day=1)

    return {
        "current": {
            "this_year": (year, None),
            "this_month": (month, None),
            "this_week": (week, None),
            "today": (today, None),
        },
        "history": {
            "last_year": (year.replace(year=year.year - 1), year),
            "last_month": (_previous_month(month), month),
            "last_week": (week - timedelta(days=7), week),
            "yesterday": (today - timedelta(days=1), today),
        },
        "rolling": {
            "last_365_days": (now - timedelta(days=365), None),
            "last_30_days": (now - timedelta(days=30), None),
            "last_7_days": (now - timedelta(days=7), None),
            "last_24_hours": (now - timedelta(days=1), None),
        },
    }
