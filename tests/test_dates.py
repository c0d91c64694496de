"""Tests for date helpers: week/month boundaries, labels and parsing."""

from __future__ import annotations

from datetime import date

import pytest

from habitsync.dates import (
    format_weekdays,
    month_range,
    parse_day,
    parse_weekday_spec,
    relative_label,
    start_of_week,
    week_days,
    weekday_of,
)
from habitsync.models import Weekday

MONDAY = date(2026, 10, 19)
WEDNESDAY = date(2026, 10, 21)
SUNDAY = date(2026, 10, 18)


# ---- weekday / week ----


def test_weekday_of_counts_from_sunday():
    assert weekday_of(SUNDAY) is Weekday.SUNDAY
    assert weekday_of(MONDAY) is Weekday.MONDAY
    assert weekday_of(date(2026, 10, 24)) is Weekday.SATURDAY


def test_start_of_week_monday():
    assert start_of_week(WEDNESDAY, Weekday.MONDAY) == MONDAY
    assert start_of_week(MONDAY, Weekday.MONDAY) == MONDAY
    assert start_of_week(SUNDAY, Weekday.MONDAY) == date(2026, 10, 12)


def test_start_of_week_sunday():
    assert start_of_week(WEDNESDAY, Weekday.SUNDAY) == SUNDAY
    assert start_of_week(SUNDAY, Weekday.SUNDAY) == SUNDAY


def test_week_days_has_seven_consecutive_days():
    days = week_days(WEDNESDAY, Weekday.SUNDAY)
    assert len(days) == 7
    assert days[0] == SUNDAY
    assert days[-1] == date(2026, 10, 24)


# ---- month ----


def test_month_range_mid_year():
    assert month_range(date(2026, 2, 14)) == (date(2026, 2, 1), date(2026, 2, 28))


def test_month_range_leap_february():
    assert month_range(date(2028, 2, 3)) == (date(2028, 2, 1), date(2028, 2, 29))


def test_month_range_december():
    assert month_range(date(2026, 12, 31)) == (date(2026, 12, 1), date(2026, 12, 31))


# ---- labels ----


def test_relative_label_today_and_yesterday():
    assert relative_label(MONDAY, MONDAY) == "Today"
    assert relative_label(SUNDAY, MONDAY) == "Yesterday"


def test_relative_label_other_day():
    assert relative_label(date(2026, 10, 5), MONDAY) == "October 5"


# ---- parse_day ----


def test_parse_day_blank_is_ref():
    assert parse_day(None, MONDAY) == MONDAY
    assert parse_day("  ", MONDAY) == MONDAY


def test_parse_day_iso():
    assert parse_day("2026-02-25", MONDAY) == date(2026, 2, 25)


def test_parse_day_keywords():
    assert parse_day("today", MONDAY) == MONDAY
    assert parse_day("Yesterday", MONDAY) == SUNDAY
    assert parse_day("tomorrow", MONDAY) == date(2026, 10, 20)


def test_parse_day_relative():
    assert parse_day("3 days ago", MONDAY) == date(2026, 10, 16)
    assert parse_day("1 week ago", MONDAY) == date(2026, 10, 12)
    assert parse_day("in 2 days", MONDAY) == WEDNESDAY


def test_parse_day_weekday_name_in_current_week():
    assert parse_day("wed", MONDAY) == WEDNESDAY
    assert parse_day("sunday", MONDAY) == date(2026, 10, 25)


def test_parse_day_weekday_name_follows_week_start():
    # Sunday-start week of Wed 2026-10-21 runs 10-18 .. 10-24
    assert parse_day("sun", WEDNESDAY, Weekday.SUNDAY) == SUNDAY
    assert parse_day("sat", WEDNESDAY, Weekday.SUNDAY) == date(2026, 10, 24)
    assert parse_day("sun", SUNDAY, Weekday.SUNDAY) == SUNDAY
    assert parse_day("sun", SUNDAY, Weekday.MONDAY) == SUNDAY
    assert parse_day("mon", SUNDAY, Weekday.SUNDAY) == MONDAY


def test_parse_day_invalid_raises():
    with pytest.raises(ValueError):
        parse_day("not a date at all", MONDAY)


def test_parse_day_impossible_iso_raises():
    with pytest.raises(ValueError):
        parse_day("2026-13-40", MONDAY)


# ---- weekday specs ----


def test_parse_weekday_spec_keywords():
    assert parse_weekday_spec("daily") == frozenset(Weekday)
    assert parse_weekday_spec("weekdays") == frozenset(
        {Weekday.MONDAY, Weekday.TUESDAY, Weekday.WEDNESDAY, Weekday.THURSDAY, Weekday.FRIDAY}
    )
    assert parse_weekday_spec("weekends") == frozenset({Weekday.SATURDAY, Weekday.SUNDAY})
    assert parse_weekday_spec("none") == frozenset()


def test_parse_weekday_spec_names_and_numbers():
    assert parse_weekday_spec("mon, wed fri") == frozenset({Weekday.MONDAY, Weekday.WEDNESDAY, Weekday.FRIDAY})
    assert parse_weekday_spec("0,6") == frozenset({Weekday.SUNDAY, Weekday.SATURDAY})
    assert parse_weekday_spec("Tuesday") == frozenset({Weekday.TUESDAY})


def test_parse_weekday_spec_rejects_unknown():
    with pytest.raises(ValueError):
        parse_weekday_spec("funday")
    with pytest.raises(ValueError):
        parse_weekday_spec("7")


def test_format_weekdays_orders_from_week_start():
    days = frozenset({Weekday.SUNDAY, Weekday.MONDAY})
    assert format_weekdays(days, Weekday.MONDAY) == "Mon, Sun"
    assert format_weekdays(days, Weekday.SUNDAY) == "Sun, Mon"
    assert format_weekdays(frozenset(Weekday)) == "daily"
    assert format_weekdays(frozenset()) == "never"
