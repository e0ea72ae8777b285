"""Tests for cycle expansion."""

from datetime import date, datetime, timedelta

import pytest

from bidline.analysis.expander import CycleExpander, parse_start_date
from bidline.domain.errors import ConfigurationError
from bidline.domain.models import CycleTemplate, ScheduleInstance


class TestCycleTemplate:
    """Tests for template normalization."""

    def test_off_markers_normalized(self):
        """All off markers become None, codes are stripped."""
        template = CycleTemplate.from_codes(["07D8", "----", "", "off", None, " 15A8 "])
        assert template.codes == ("07D8", None, None, None, None, "15A8")

    def test_worked_days_and_distinct_codes(self):
        """Worked days and distinct codes in first-seen order."""
        template = CycleTemplate.from_codes(["B", "A", None, "B", "C"])
        assert template.length == 5
        assert template.worked_days == 4
        assert template.distinct_codes() == ["B", "A", "C"]
        assert template.code_at(1) == "B"
        assert template.code_at(3) is None


class TestCycleExpander:
    """Tests for CycleExpander."""

    @pytest.fixture
    def expander(self):
        """Create an expander."""
        return CycleExpander()

    def test_length_and_positions(self, expander):
        """Output has L*C days with 1-based positions and 0-based cycles."""
        template = CycleTemplate.from_codes(["A", None, "B"])
        shifts = expander.expand(template, date(2024, 2, 27), 2)

        assert len(shifts) == 6
        assert [s.position for s in shifts] == [1, 2, 3, 1, 2, 3]
        assert [s.cycle for s in shifts] == [0, 0, 0, 1, 1, 1]
        assert [s.code for s in shifts] == ["A", None, "B", "A", None, "B"]

    def test_leap_day_included(self, expander):
        """February 29 appears in a leap year expansion."""
        template = CycleTemplate.from_codes(["A", None, "B"])
        shifts = expander.expand(template, date(2024, 2, 27), 2)

        assert [s.shift_date for s in shifts] == [
            date(2024, 2, 27),
            date(2024, 2, 28),
            date(2024, 2, 29),
            date(2024, 3, 1),
            date(2024, 3, 2),
            date(2024, 3, 3),
        ]

    @pytest.mark.parametrize("length,cycles", [(1, 1), (7, 8), (14, 3), (56, 3), (10, 5)])
    def test_contiguous_dates(self, expander, length, cycles):
        """Dates increase by exactly one day with no gaps or duplicates."""
        template = CycleTemplate.from_codes(["A" if i % 3 else None for i in range(length)])
        start = date(2025, 12, 20)
        shifts = expander.expand(template, start, cycles)

        assert len(shifts) == length * cycles
        assert shifts[0].shift_date == start
        for prev, curr in zip(shifts, shifts[1:]):
            assert curr.shift_date - prev.shift_date == timedelta(days=1)

    def test_year_boundary(self, expander):
        """Expansion continues across a year boundary."""
        template = CycleTemplate.from_codes(["A", "A", "A", "A"])
        shifts = expander.expand(template, date(2025, 12, 30), 1)
        assert shifts[-1].shift_date == date(2026, 1, 2)

    def test_iso_string_with_offset(self, expander):
        """Time and offset components of an ISO start date are ignored."""
        template = CycleTemplate.from_codes(["A"])
        shifts = expander.expand(template, "2025-12-25T00:00:00-05:00", 1)
        assert shifts[0].shift_date == date(2025, 12, 25)

    def test_datetime_start(self, expander):
        """A datetime start uses its date part."""
        template = CycleTemplate.from_codes(["A"])
        shifts = expander.expand(template, datetime(2025, 3, 9, 23, 30), 1)
        assert shifts[0].shift_date == date(2025, 3, 9)

    def test_empty_template_rejected(self, expander):
        """A zero-length template raises ConfigurationError."""
        with pytest.raises(ConfigurationError):
            expander.expand(CycleTemplate(codes=()), date(2025, 1, 1), 1)

    @pytest.mark.parametrize("cycles", [0, -1, 1.5, "2", True, None])
    def test_bad_cycle_count_rejected(self, expander, cycles):
        """Cycle counts below one or non-integers raise ConfigurationError."""
        template = CycleTemplate.from_codes(["A"])
        with pytest.raises(ConfigurationError):
            expander.expand(template, date(2025, 1, 1), cycles)

    @pytest.mark.parametrize("start", [None, "", "   ", "not-a-date", "2025-13-01", 20250101])
    def test_bad_start_date_rejected(self, expander, start):
        """Missing or unparseable start dates raise ConfigurationError."""
        template = CycleTemplate.from_codes(["A"])
        with pytest.raises(ConfigurationError):
            expander.expand(template, start, 1)

    def test_expand_schedule(self, expander):
        """A schedule expands over its full period."""
        schedule = ScheduleInstance(
            id="s1",
            template=CycleTemplate.from_codes(["A", None]),
            start_date="2025-01-06",
            cycle_count=3,
        )
        shifts = expander.expand_schedule(schedule)
        assert len(shifts) == 6
        assert shifts[-1].shift_date == date(2025, 1, 11)

    def test_day_of_week_monday_first(self, expander):
        """day_of_week runs Monday=0 through Sunday=6."""
        template = CycleTemplate.from_codes(["A"] * 7)
        shifts = expander.expand(template, date(2024, 1, 1), 1)  # a Monday
        assert [s.day_of_week for s in shifts] == [0, 1, 2, 3, 4, 5, 6]


class TestParseStartDate:
    """Tests for parse_start_date."""

    def test_plain_iso(self):
        assert parse_start_date("2025-10-09") == date(2025, 10, 9)

    def test_date_passthrough(self):
        assert parse_start_date(date(2025, 10, 9)) == date(2025, 10, 9)
