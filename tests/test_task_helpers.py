"""
Test: date and class helpers - natural-language due dates, fuzzy class
lookup, school-week arithmetic.
"""
from datetime import date, timedelta

import pytest

from teacherdash.services.task_helpers import (
    resolve_date, resolve_class, match_class_name, parse_iso_date,
    format_short_date, monday_of, upcoming_school_monday, week_dates,
    week_day_map, next_school_day,
)

# Wednesday
TODAY = date(2026, 3, 11)

CLASSES = [
    {"id": 1, "name": "English-1"},
    {"id": 2, "name": "English-2"},
    {"id": 3, "name": "French-1"},
]


class TestResolveDate:
    def test_iso_passthrough(self):
        assert resolve_date("2026-04-01", TODAY) == "2026-04-01"

    def test_today(self):
        assert resolve_date("today", TODAY) == "2026-03-11"
        assert resolve_date("tod", TODAY) == "2026-03-11"

    def test_tomorrow_variants(self):
        for text in ("tomorrow", "tmrw", "tmr", "  TMRW "):
            assert resolve_date(text, TODAY) == "2026-03-12"

    def test_bare_weekday_later_this_week(self):
        assert resolve_date("fri", TODAY) == "2026-03-13"

    def test_bare_weekday_already_passed(self):
        assert resolve_date("mon", TODAY) == "2026-03-16"

    def test_bare_same_weekday_is_today(self):
        assert resolve_date("wednesday", TODAY) == "2026-03-11"

    def test_next_weekday_skips_a_week(self):
        assert resolve_date("next fri", TODAY) == "2026-03-20"

    def test_next_same_weekday_is_one_week_out(self):
        assert resolve_date("next wed", TODAY) == "2026-03-18"

    @pytest.mark.parametrize("day", ["sun", "mon", "tue", "wed", "thu", "fri", "sat"])
    def test_next_is_exactly_a_week_after_bare(self, day):
        for offset in range(7):
            today = TODAY + timedelta(days=offset)
            bare = date.fromisoformat(resolve_date(day, today))
            nxt = date.fromisoformat(resolve_date("next " + day, today))
            assert nxt - bare == timedelta(days=7)

    def test_month_day_this_year(self):
        assert resolve_date("3/14", TODAY) == "2026-03-14"
        assert resolve_date("3-14", TODAY) == "2026-03-14"

    def test_month_day_rolls_to_next_year(self):
        assert resolve_date("1/5", TODAY) == "2027-01-05"

    def test_invalid_month_day(self):
        assert resolve_date("2/30", TODAY) is None
        assert resolve_date("13/1", TODAY) is None

    def test_unrecognised(self):
        assert resolve_date("someday", TODAY) is None
        assert resolve_date("next blursday", TODAY) is None

    def test_empty(self):
        assert resolve_date("", TODAY) is None
        assert resolve_date(None, TODAY) is None


class TestResolveClass:
    def test_exact_name(self):
        assert resolve_class("english-2", CLASSES) == 2

    def test_prefix_picks_first(self):
        assert resolve_class("eng", CLASSES) == 1

    def test_letter_digit_abbreviation(self):
        assert resolve_class("e2", CLASSES) == 2
        assert resolve_class("f1", CLASSES) == 3

    def test_substring(self):
        assert resolve_class("ench", CLASSES) == 3

    def test_general_means_none(self):
        for text in ("", "general", "gen", "G", None):
            assert resolve_class(text, CLASSES) is None

    def test_no_match(self):
        assert resolve_class("chemistry", CLASSES) is None


class TestMatchClassName:
    def test_exact(self):
        assert match_class_name("French-1", CLASSES)["id"] == 3

    def test_loose_english_number(self):
        assert match_class_name("Eng 2", CLASSES)["id"] == 2

    def test_french_alias(self):
        assert match_class_name("Français", CLASSES)["id"] == 3

    def test_period_reference(self):
        assert match_class_name("4th hour", CLASSES)["id"] == 1
        assert match_class_name("3rd period", CLASSES)["id"] == 2

    def test_none(self):
        assert match_class_name("", CLASSES) is None
        assert match_class_name("Biology", CLASSES) is None


class TestIsoDates:
    def test_parse_valid(self):
        assert parse_iso_date("2026-03-11") == TODAY

    def test_parse_invalid(self):
        assert parse_iso_date("2026-02-30") is None
        assert parse_iso_date("03/11/2026") is None
        assert parse_iso_date(None) is None

    def test_short_date_within_week(self):
        assert format_short_date("2026-03-13", TODAY) == "Fri 3/13"

    def test_short_date_same_year(self):
        assert format_short_date("2026-06-01", TODAY) == "Jun 1"

    def test_short_date_other_year(self):
        assert format_short_date("2027-01-05", TODAY) == "Jan 5, 2027"


class TestSchoolWeek:
    def test_monday_of_sunday_is_previous_week(self):
        assert monday_of(date(2026, 3, 15)) == date(2026, 3, 9)

    def test_upcoming_monday_midweek(self):
        assert upcoming_school_monday(TODAY) == date(2026, 3, 9)

    def test_upcoming_monday_weekend_rolls_forward(self):
        assert upcoming_school_monday(date(2026, 3, 14)) == date(2026, 3, 16)
        assert upcoming_school_monday(date(2026, 3, 15)) == date(2026, 3, 16)

    def test_week_dates(self):
        assert week_dates(date(2026, 3, 9)) == [
            "2026-03-09", "2026-03-10", "2026-03-11", "2026-03-12", "2026-03-13",
        ]

    def test_week_day_map(self):
        days = week_day_map("2026-03-11")
        assert days[0] == ("Monday", "2026-03-09")
        assert days[-1] == ("Friday", "2026-03-13")

    def test_week_day_map_invalid(self):
        assert week_day_map("nope") == []

    def test_next_school_day_skips_weekend(self):
        assert next_school_day(date(2026, 3, 13)) == date(2026, 3, 16)
        assert next_school_day(TODAY) == date(2026, 3, 12)
