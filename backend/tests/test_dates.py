"""
Tests for dates.py - free-text date resolution.
All tests anchor on Saturday 2026-10-17 (see conftest.TODAY).
"""
import pytest
import sys
import os
from datetime import date, timedelta

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dates import WEEKDAYS, resolve_date


class TestDefaults:
    """Anything unrecognised resolves to today."""

    def test_empty_and_gibberish_are_today(self, today):
        assert resolve_date("", today) == "2026-10-17"
        assert resolve_date("gibberish text", today) == "2026-10-17"
        assert resolve_date(None, today) == "2026-10-17"

    def test_defaults_to_real_today(self):
        assert resolve_date("no date here") == date.today().isoformat()


class TestAbsoluteDates:
    """Explicit calendar dates."""

    def test_iso(self, today):
        assert resolve_date("dentist on 2027-01-05", today) == "2027-01-05"

    def test_day_month_year(self, today):
        assert resolve_date("Schedule meeting on 15th June 2025 at 2 PM", today) == "2025-06-15"
        assert resolve_date("party 3 of dec 2026", today) == "2026-12-03"

    def test_month_day_year(self, today):
        assert resolve_date("Schedule meeting on June 15th, 2025 at 2 PM", today) == "2025-06-15"
        assert resolve_date("sept. 9 2027", today) == "2027-09-09"

    def test_numeric_is_month_first(self, today):
        assert resolve_date("3/4/2027", today) == "2027-03-04"
        assert resolve_date("6/15/2026", today) == "2026-06-15"

    def test_numeric_day_first_only_when_month_impossible(self, today):
        assert resolve_date("15/6/2026", today) == "2026-06-15"

    def test_invalid_dates_fall_through(self, today):
        assert resolve_date("13/13/2026", today) == "2026-10-17"
        assert resolve_date("February 30, 2026", today) == "2026-10-17"
        assert resolve_date("2026-02-30 or tomorrow", today) == "2026-10-18"

    def test_explicit_year_in_past_is_kept(self, today):
        assert resolve_date("January 2, 2020", today) == "2020-01-02"


class TestYearlessDates:
    """Dates without a year roll forward once they have passed."""

    def test_future_this_year(self, today):
        assert resolve_date("12/25", today) == "2026-12-25"
        assert resolve_date("25 december", today) == "2026-12-25"
        assert resolve_date("November 2nd", today) == "2026-11-02"

    def test_past_rolls_to_next_year(self, today):
        assert resolve_date("6/15", today) == "2027-06-15"
        assert resolve_date("march 3", today) == "2027-03-03"

    def test_today_does_not_roll(self, today):
        assert resolve_date("10/17", today) == "2026-10-17"

    def test_month_followed_by_time_is_not_a_day(self, today):
        # "3pm" is a time, so "march" alone gives no date
        assert resolve_date("march 3pm", today) == "2026-10-17"


class TestWeekdays:
    """Weekday phrases and their three tiers."""

    def test_bare_weekday(self, today):
        assert resolve_date("Schedule workout on Friday at 6am", today) == "2026-10-23"
        assert resolve_date("monday", today) == "2026-10-19"

    def test_bare_weekday_matching_today_is_today(self, today):
        assert resolve_date("on saturday", today) == "2026-10-17"
        assert resolve_date("today, saturday", today) == "2026-10-17"

    def test_next_and_coming_skip_today(self, today):
        assert resolve_date("next saturday", today) == "2026-10-24"
        assert resolve_date("coming saturday", today) == "2026-10-24"
        assert resolve_date("this coming sunday", today) == "2026-10-18"
        assert resolve_date("next monday", today) == "2026-10-19"

    def test_weekday_next_week(self, today):
        assert resolve_date("monday next week", today) == "2026-10-19"
        assert resolve_date("next week friday", today) == "2026-10-23"
        assert resolve_date("next week on sunday", today) == "2026-10-25"

    def test_weekday_beats_relative_words(self, today):
        assert resolve_date("tomorrow or friday", today) == "2026-10-23"

    @pytest.mark.parametrize("anchor_offset", range(7))
    @pytest.mark.parametrize("weekday", WEEKDAYS)
    def test_on_weekday_lands_on_that_weekday_within_a_week(self, today, anchor_offset, weekday):
        anchor = today + timedelta(days=anchor_offset)
        resolved = date.fromisoformat(resolve_date(f"on {weekday}", anchor))
        assert resolved.weekday() == WEEKDAYS.index(weekday)
        assert 0 <= (resolved - anchor).days <= 7


class TestRelative:
    """Relative days and spans."""

    def test_relative_days(self, today):
        assert resolve_date("today", today) == "2026-10-17"
        assert resolve_date("tonight", today) == "2026-10-17"
        assert resolve_date("tomorrow", today) == "2026-10-18"
        assert resolve_date("the day after tomorrow", today) == "2026-10-19"

    def test_spans(self, today):
        assert resolve_date("next week", today) == "2026-10-24"
        assert resolve_date("in 3 days", today) == "2026-10-20"
        assert resolve_date("in 1 day", today) == "2026-10-18"
        assert resolve_date("in two weeks", today) == "2026-10-31"
        assert resolve_date("in a week", today) == "2026-10-24"

    def test_month_rollover(self):
        assert resolve_date("tomorrow", date(2026, 12, 31)) == "2027-01-01"
