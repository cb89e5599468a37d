"""Tests for date parser with relative dates."""

import pytest
from datetime import date, timedelta

from cashify.utils.date_parser import get_date_range, parse_date

# Friday
TODAY = date(2024, 3, 15)


def test_parse_absolute_date():
    """Test parsing absolute dates."""
    assert parse_date("2024-01-15") == date(2024, 1, 15)
    assert parse_date("15 Jan 2024") == date(2024, 1, 15)


def test_parse_today_uses_current_date():
    assert parse_date("today") == date.today()


@pytest.mark.parametrize(
    "text,expected",
    [
        ("today", date(2024, 3, 15)),
        ("Yesterday", date(2024, 3, 14)),
        ("tomorrow", date(2024, 3, 16)),
        ("3 days ago", date(2024, 3, 12)),
        ("1 day ago", date(2024, 3, 14)),
        ("2 weeks ago", date(2024, 3, 1)),
        ("1 month ago", date(2024, 2, 15)),
        ("1 year ago", date(2023, 3, 15)),
    ],
)
def test_parse_relative(text, expected):
    assert parse_date(text, today=TODAY) == expected


@pytest.mark.parametrize(
    "text,expected",
    [
        ("last week", date(2024, 3, 4)),
        ("this week", date(2024, 3, 11)),
        ("next week", date(2024, 3, 18)),
        ("last month", date(2024, 2, 1)),
        ("this month", date(2024, 3, 1)),
        ("next month", date(2024, 4, 1)),
        ("last year", date(2023, 1, 1)),
        ("this year", date(2024, 1, 1)),
    ],
)
def test_parse_period_starts(text, expected):
    assert parse_date(text, today=TODAY) == expected


def test_parse_last_weekday():
    """'last <weekday>' is strictly before today."""
    assert parse_date("last monday", today=TODAY) == date(2024, 3, 11)
    assert parse_date("last friday", today=TODAY) == TODAY - timedelta(days=7)
    assert parse_date("last saturday", today=TODAY) == date(2024, 3, 9)


def test_parse_last_month_in_january():
    assert parse_date("last month", today=date(2024, 1, 20)) == date(2023, 12, 1)


def test_parse_invalid_date():
    with pytest.raises(ValueError, match="Could not parse date"):
        parse_date("not-a-date")


@pytest.mark.parametrize(
    "period,expected",
    [
        ("today", (date(2024, 3, 15), date(2024, 3, 15))),
        ("this-week", (date(2024, 3, 11), date(2024, 3, 15))),
        ("this-month", (date(2024, 3, 1), date(2024, 3, 15))),
        ("this-year", (date(2024, 1, 1), date(2024, 3, 15))),
        ("last-week", (date(2024, 3, 4), date(2024, 3, 10))),
        ("last-month", (date(2024, 2, 1), date(2024, 2, 29))),
        ("last-year", (date(2023, 1, 1), date(2023, 12, 31))),
    ],
)
def test_get_date_range(period, expected):
    assert get_date_range(period, today=TODAY) == expected


def test_get_date_range_invalid():
    with pytest.raises(ValueError, match="Unknown period"):
        get_date_range("next-decade")
