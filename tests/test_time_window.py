"""Tests for day-of-week parsing, HH:mm handling and interval overlap."""

from datetime import datetime, time, timedelta, timezone

import pytest

from provider_scheduling.scheduling.time_window import (
    DayOfWeek,
    Interval,
    TimeRange,
    format_hhmm,
    intervals_overlap,
    occupied_interval,
    parse_hhmm,
)
from tests.conftest import MONDAY, at


class TestDayOfWeek:
    def test_numeric_day(self):
        assert DayOfWeek.parse(1) == DayOfWeek.MONDAY
        assert DayOfWeek.parse(0) == DayOfWeek.SUNDAY

    def test_symbolic_day_is_case_insensitive(self):
        assert DayOfWeek.parse("monday") == DayOfWeek.MONDAY
        assert DayOfWeek.parse(" Friday ") == DayOfWeek.FRIDAY

    @pytest.mark.parametrize("value", [7, -1, "Funday", True, None, 1.5])
    def test_invalid_days_rejected(self, value):
        with pytest.raises(ValueError):
            DayOfWeek.parse(value)

    def test_label(self):
        assert DayOfWeek.SATURDAY.label == "Saturday"

    def test_from_date(self):
        assert DayOfWeek.from_date(MONDAY) == DayOfWeek.MONDAY

    def test_from_instant_uses_utc_day(self):
        # 23:30 in New York on Monday is already Tuesday in UTC.
        evening = datetime(2026, 1, 5, 23, 30, tzinfo=timezone(timedelta(hours=-5)))
        assert DayOfWeek.from_date(evening) == DayOfWeek.TUESDAY


class TestHHMM:
    def test_parse(self):
        assert parse_hhmm("09:05") == time(9, 5)
        assert parse_hhmm("23:59") == time(23, 59)

    @pytest.mark.parametrize("value", ["9:05", "24:00", "12:60", "noon", "", None])
    def test_parse_rejects_malformed(self, value):
        with pytest.raises(ValueError):
            parse_hhmm(value)

    def test_format_instant_in_utc(self):
        instant = datetime(2026, 1, 5, 11, 30, tzinfo=timezone(timedelta(hours=2)))
        assert format_hhmm(instant) == "09:30"


class TestTimeRange:
    def test_from_strings(self):
        window = TimeRange.from_strings("09:00", "12:00")
        assert window.to_dict() == {"start": "09:00", "end": "12:00"}
        assert str(window) == "09:00-12:00"

    @pytest.mark.parametrize("start,end", [("12:00", "09:00"), ("10:00", "10:00")])
    def test_start_must_precede_end(self, start, end):
        with pytest.raises(ValueError, match="start must be before end"):
            TimeRange.from_strings(start, end)

    def test_anchored_on_utc_day(self):
        interval = TimeRange.from_strings("09:00", "12:00").anchored_on(MONDAY)
        assert interval == Interval(at(9), at(12))
        assert interval.minutes == 180


class TestOverlap:
    def test_overlap_is_symmetric(self):
        a = Interval(at(9), at(10))
        b = Interval(at(9, 30), at(11))
        c = Interval(at(10), at(11))
        for x, y in [(a, b), (a, c), (b, c)]:
            assert intervals_overlap(x, y) == intervals_overlap(y, x)

    def test_touching_intervals_do_not_overlap(self):
        assert not intervals_overlap(Interval(at(9), at(10)), Interval(at(10), at(11)))

    def test_contained_interval_overlaps(self):
        assert intervals_overlap(Interval(at(9), at(12)), Interval(at(10), at(10, 30)))

    def test_occupied_interval_adds_buffer_to_end(self):
        interval = occupied_interval(at(10), 60, 15)
        assert interval.start == at(10)
        assert interval.end == at(11, 15)

    def test_naive_start_treated_as_utc(self):
        interval = occupied_interval(datetime(2026, 1, 5, 10, 0), 30)
        assert interval.start == at(10)

    def test_candidate_exactly_buffer_after_existing_is_free(self):
        existing = occupied_interval(at(10), 60, 15)
        assert not intervals_overlap(existing, occupied_interval(at(11, 15), 30, 15))

    def test_candidate_inside_buffer_conflicts(self):
        existing = occupied_interval(at(10), 60, 15)
        assert intervals_overlap(existing, occupied_interval(at(11), 30, 15))

    def test_buffer_applies_before_existing_too(self):
        # Candidate 09:00-09:50 plus 15 min buffer reaches 10:05.
        existing = occupied_interval(at(10), 60, 15)
        assert intervals_overlap(existing, occupied_interval(at(9), 50, 15))
        assert not intervals_overlap(existing, occupied_interval(at(9), 45, 15))
