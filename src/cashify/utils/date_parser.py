"""Date parsing utilities."""

import re
from datetime import date, timedelta
from typing import Optional

from dateutil import parser as date_parser
from dateutil.relativedelta import MO, relativedelta

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

PERIODS = ("today", "this-week", "this-month", "this-year", "last-week", "last-month", "last-year")

_AGO = re.compile(r"^(\d+)\s+(day|week|month|year)s?\s+ago$")


def _start_of(period: str, anchor: date) -> date:
    if period == "week":
        return anchor + relativedelta(weekday=MO(-1))
    if period == "month":
        return anchor.replace(day=1)
    if period == "year":
        return anchor.replace(month=1, day=1)
    raise ValueError(f"Unknown period '{period}'")


def _shift(period: str, count: int) -> relativedelta:
    return relativedelta(**{f"{period}s": count})


def parse_date(date_str: str, today: Optional[date] = None) -> date:
    """Parse an entry date.

    Accepts ISO and free-form dates ("2024-01-15", "15 Jan 2024") as well as
    relative forms: "today", "yesterday", "tomorrow", "3 days ago",
    "last monday", and "last/this/next week|month|year" (which resolve to
    the first day of that period).

    Args:
        date_str: Date string
        today: Reference date for relative forms (defaults to the current date)

    Raises:
        ValueError: If date string cannot be parsed
    """
    text = date_str.strip().lower()
    today = today or date.today()

    fixed = {"today": 0, "yesterday": -1, "tomorrow": 1}
    if text in fixed:
        return today + timedelta(days=fixed[text])

    match = _AGO.match(text)
    if match:
        return today - _shift(match.group(2), int(match.group(1)))

    words = text.split()
    if len(words) == 2 and words[0] in ("last", "this", "next"):
        direction, period = words
        if period in WEEKDAYS and direction == "last":
            days_ago = (today.weekday() - WEEKDAYS.index(period)) % 7 or 7
            return today - timedelta(days=days_ago)
        if period in ("week", "month", "year"):
            offset = {"last": -1, "this": 0, "next": 1}[direction]
            return _start_of(period, today + _shift(period, offset))

    try:
        return date_parser.parse(date_str.strip()).date()
    except (ValueError, OverflowError, TypeError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")


def get_date_range(period: str, today: Optional[date] = None) -> tuple[date, date]:
    """Return the (start, end) dates of a named reporting period.

    Current periods end today; past periods end on their last day.

    Raises:
        ValueError: If period string is not recognized
    """
    period = period.strip().lower()
    today = today or date.today()

    if period == "today":
        return today, today

    direction, _, unit = period.partition("-")
    if direction == "this" and unit in ("week", "month", "year"):
        return _start_of(unit, today), today
    if direction == "last" and unit in ("week", "month", "year"):
        start = _start_of(unit, today - _shift(unit, 1))
        return start, start + _shift(unit, 1) - timedelta(days=1)

    raise ValueError(
        f"Unknown period: '{period}'. Supported periods: {', '.join(PERIODS)}"
    )
