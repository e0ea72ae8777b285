"""Domain models for schedule analysis and preference scoring.

This module contains all core data structures used throughout the engine,
including shift codes, cycle templates, schedule instances, dated shifts,
holidays, metrics bundles, and the criteria and score records used to rank
schedules.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Iterable, Iterator, Optional, Union

from bidline.domain.errors import ConfigurationError, DataIntegrityError

# Values that mark a day off in a cycle template
OFF_MARKERS = ("", "----", "OFF")

WEEKDAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
SATURDAY = 5
SUNDAY = 6

# Histogram buckets: 1..6 exact, 7 means "7 or more"
BLOCK_BUCKETS = (1, 2, 3, 4, 5, 6, 7)
OPEN_ENDED_BUCKET = 7


def is_off_marker(value, off_markers: Iterable[str] = OFF_MARKERS) -> bool:
    """Check if a raw template value means "off"."""
    if value is None:
        return True
    markers = {m.strip().upper() for m in off_markers}
    return str(value).strip().upper() in markers


def coerce_date(value: Union[date, datetime, str]) -> date:
    """Convert a date, datetime, or ISO string to a calendar date.

    Any time or UTC offset component is ignored, so "2025-12-25T00:00:00-05:00"
    and "2025-12-25" both give date(2025, 12, 25).

    Raises:
        ValueError: If the value cannot be read as a calendar date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if len(text) < 10:
            raise ValueError(f"Not an ISO date: {value!r}")
        return date.fromisoformat(text[:10])
    raise ValueError(f"Not a date: {value!r}")


def bucket_for(length: int) -> int:
    """Histogram bucket for a run of the given length."""
    return min(length, OPEN_ENDED_BUCKET)


def _parse_time(value) -> Optional[time]:
    if value is None or value == "":
        return None
    if isinstance(value, time):
        return value
    text = str(value).strip()
    if len(text) == 4 and text.isdigit():
        hours, mins = int(text[:2]) % 24, int(text[2:])
        return time(hour=hours, minute=mins)
    return time.fromisoformat(text)


@dataclass(frozen=True)
class ShiftCode:
    """Reference data for one shift code.

    Attributes:
        code: Unique shift code (e.g., "07D8").
        category: Category label (e.g., "Days", "Afternoons", "Midnights").
        length: Shift length label (e.g., "8h", "10h").
        begin_time: Shift start time, if known.
        end_time: Shift end time, if known.
    """

    code: str
    category: str = ""
    length: str = ""
    begin_time: Optional[time] = None
    end_time: Optional[time] = None

    @property
    def hours(self) -> float:
        """Shift duration in hours (overnight shifts wrap past midnight)."""
        if self.begin_time is None or self.end_time is None:
            return 0.0
        start = self.begin_time.hour * 60 + self.begin_time.minute
        end = self.end_time.hour * 60 + self.end_time.minute
        if end <= start:
            end += 24 * 60
        return (end - start) / 60.0

    @classmethod
    def from_dict(cls, data: dict) -> "ShiftCode":
        """Create a shift code from a JSON-style record."""
        return cls(
            code=str(data["code"]).strip(),
            category=str(data.get("category", "") or "").strip(),
            length=str(
                data.get("length", data.get("shiftLength", data.get("hoursLength", ""))) or ""
            ).strip(),
            begin_time=_parse_time(data.get("begin_time", data.get("beginTime"))),
            end_time=_parse_time(data.get("end_time", data.get("endTime"))),
        )


class ShiftCodeTable:
    """Lookup over the shift-code reference table.

    Category and length lookups are case-insensitive and ignore surrounding
    whitespace, since the labels come from hand-maintained spreadsheets.
    """

    def __init__(self, shift_codes: Iterable[ShiftCode] = ()):
        self._codes: dict[str, ShiftCode] = {}
        for shift_code in shift_codes:
            self._codes[shift_code.code] = shift_code

    @classmethod
    def coerce(
        cls, value: Union["ShiftCodeTable", Iterable[ShiftCode], None]
    ) -> "ShiftCodeTable":
        """Return value as a table, wrapping plain iterables of ShiftCode."""
        if isinstance(value, cls):
            return value
        return cls(value or ())

    def __len__(self) -> int:
        return len(self._codes)

    def __contains__(self, code: str) -> bool:
        return code in self._codes

    def __iter__(self) -> Iterator[ShiftCode]:
        return iter(self._codes.values())

    def get(self, code: str) -> Optional[ShiftCode]:
        """Get a shift code, or None if unknown."""
        return self._codes.get(code)

    def require(self, code: str) -> ShiftCode:
        """Get a shift code, raising DataIntegrityError if unknown."""
        shift_code = self._codes.get(code)
        if shift_code is None:
            raise DataIntegrityError(code)
        return shift_code

    def codes_in_category(self, category: str) -> set[str]:
        """All codes whose category matches."""
        wanted = category.strip().lower()
        return {c.code for c in self._codes.values() if c.category.lower() == wanted}

    def codes_with_length(self, length: str) -> set[str]:
        """All codes whose length label matches."""
        wanted = length.strip().lower()
        return {c.code for c in self._codes.values() if c.length.lower() == wanted}

    def categories(self) -> set[str]:
        return {c.category for c in self._codes.values() if c.category}


@dataclass(frozen=True)
class CycleTemplate:
    """Fixed-length repeating sequence of shift codes.

    Attributes:
        codes: One entry per day of the cycle; None marks a day off.
    """

    codes: tuple[Optional[str], ...]

    @classmethod
    def from_codes(
        cls,
        codes: Iterable[Optional[str]],
        off_markers: Iterable[str] = OFF_MARKERS,
    ) -> "CycleTemplate":
        """Create a template from raw values, normalizing off markers to None."""
        markers = tuple(off_markers)
        return cls(
            codes=tuple(
                None if is_off_marker(c, markers) else str(c).strip() for c in codes
            )
        )

    @property
    def length(self) -> int:
        """Number of days in one cycle."""
        return len(self.codes)

    @property
    def worked_days(self) -> int:
        """Number of worked days in one cycle."""
        return sum(1 for c in self.codes if c is not None)

    def code_at(self, position: int) -> Optional[str]:
        """Get the code at a 1-based position in the cycle."""
        return self.codes[position - 1]

    def distinct_codes(self) -> list[str]:
        """Distinct worked codes in first-seen order."""
        seen: list[str] = []
        for code in self.codes:
            if code is not None and code not in seen:
                seen.append(code)
        return seen


@dataclass(frozen=True)
class DatedShift:
    """One calendar day of an expanded schedule.

    Attributes:
        shift_date: Calendar date of the day.
        code: Shift code worked, or None for a day off.
        position: 1-based position of the day within its cycle.
        cycle: 0-based index of the cycle the day belongs to.
    """

    shift_date: date
    code: Optional[str]
    position: int
    cycle: int = 0

    @property
    def day_of_week(self) -> int:
        """Day of week, Monday=0 through Sunday=6."""
        return self.shift_date.weekday()

    @property
    def is_worked(self) -> bool:
        return self.code is not None

    @property
    def weekend_key(self) -> Optional[date]:
        """Saturday that anchors this day's weekend pair, or None on weekdays."""
        if self.day_of_week == SATURDAY:
            return self.shift_date
        if self.day_of_week == SUNDAY:
            return self.shift_date - timedelta(days=1)
        return None


@dataclass(frozen=True)
class Holiday:
    """A holiday in one jurisdiction.

    Attributes:
        jurisdiction: Jurisdiction code the table was fetched for.
        holiday_date: Calendar date of the holiday.
        name: Display name.
        types: Holiday types (e.g., "Public", "Optional", "Observance").
        is_global: True for nationwide holidays.
        subdivisions: Subdivision codes (e.g., "CA-ON") for regional ones.
    """

    jurisdiction: str
    holiday_date: date
    name: str
    types: tuple[str, ...] = ("Public",)
    is_global: bool = True
    subdivisions: tuple[str, ...] = ()

    @property
    def year(self) -> int:
        return self.holiday_date.year


def _folded(values: Iterable[str]) -> frozenset[str]:
    return frozenset(v.strip().casefold() for v in values)


@dataclass(frozen=True)
class HolidayFilter:
    """Selects which holidays count toward holiday overlap.

    Empty include lists place no restriction. Name, type and subdivision
    matching ignores case.

    Attributes:
        only_global: Keep nationwide holidays only.
        exclude_subdivisions: Drop holidays tied to any of these subdivisions.
        include_subdivisions: Keep regional holidays only for these
            subdivisions; nationwide holidays always pass.
        exclude_types: Drop holidays having any of these types.
        include_types: Keep holidays having at least one of these types.
        exclude_names: Drop holidays with these names.
        include_names: Keep only holidays with these names.
    """

    only_global: bool = False
    exclude_subdivisions: tuple[str, ...] = ()
    include_subdivisions: tuple[str, ...] = ()
    exclude_types: tuple[str, ...] = ()
    include_types: tuple[str, ...] = ()
    exclude_names: tuple[str, ...] = ()
    include_names: tuple[str, ...] = ()

    def allows(self, holiday: Holiday) -> bool:
        if self.only_global and not holiday.is_global:
            return False

        subdivisions = _folded(holiday.subdivisions)
        if subdivisions & _folded(self.exclude_subdivisions):
            return False
        if self.include_subdivisions and not holiday.is_global:
            if not subdivisions & _folded(self.include_subdivisions):
                return False

        types = _folded(holiday.types)
        if types & _folded(self.exclude_types):
            return False
        if self.include_types and not types & _folded(self.include_types):
            return False

        name = holiday.name.strip().casefold()
        if name in _folded(self.exclude_names):
            return False
        if self.include_names and name not in _folded(self.include_names):
            return False
        return True

    def apply(self, holidays: Iterable[Holiday]) -> list[Holiday]:
        return [h for h in holidays if self.allows(h)]

    @classmethod
    def preset(cls, name: str) -> "HolidayFilter":
        """Get a named preset filter.

        Raises:
            ConfigurationError: If no preset has that name.
        """
        key = name.strip().lower().replace("-", "_")
        try:
            return HOLIDAY_FILTER_PRESETS[key]
        except KeyError:
            raise ConfigurationError(
                f"Unknown holiday filter {name!r}; "
                f"choose from {', '.join(sorted(HOLIDAY_FILTER_PRESETS))}"
            )


HOLIDAY_FILTER_PRESETS = {
    # Major holidays everyone recognizes, plus the two common eves
    "common_only": HolidayFilter(
        include_names=(
            "New Year's Day", "Good Friday", "Easter Monday", "Victoria Day",
            "Canada Day", "Civic Holiday", "Labour Day", "Thanksgiving",
            "Thanksgiving Day", "Christmas Day", "Boxing Day",
            "Christmas Eve", "New Year's Eve",
        ),
    ),
    # Regional days and obscure observances removed
    "no_obscure": HolidayFilter(
        exclude_names=(
            "Islander Day", "Heritage Day", "Louis Riel Day", "Discovery Day",
            "Orangemen's Day", "St. George's Day", "Memorial Day",
            "Saint Patrick's Day", "St-Jean-Baptiste Day",
            "Saint-Jean-Baptiste Day", "Armistice Day",
        ),
    ),
    # Nationwide public holidays, what most workplaces observe
    "workplace_standard": HolidayFilter(
        only_global=True,
        include_types=("Public",),
        exclude_names=("Halloween", "Valentine's Day", "St. Patrick's Day", "Groundhog Day"),
    ),
    # Just the big ones
    "essential_only": HolidayFilter(
        include_names=(
            "New Year's Day", "Good Friday", "Victoria Day", "Canada Day",
            "Labour Day", "Thanksgiving", "Thanksgiving Day", "Christmas Day",
            "Boxing Day",
        ),
    ),
}


@dataclass(frozen=True)
class HolidayWorked:
    """A holiday that falls on a worked day, for reporting."""

    holiday_date: date
    name: str
    code: str


@dataclass
class HolidayOverlap:
    """Holiday overlap for a dated shift sequence.

    Attributes:
        worked: Holidays falling on worked days.
        off: Holidays falling on days off.
        details: One entry per worked holiday, in date order.
    """

    worked: int = 0
    off: int = 0
    details: list[HolidayWorked] = field(default_factory=list)


@dataclass(frozen=True)
class WeekdayTotal:
    """Worked count versus total occurrences of one weekday."""

    worked: int = 0
    total: int = 0

    def scaled(self, factor: int) -> "WeekdayTotal":
        return WeekdayTotal(worked=self.worked * factor, total=self.total * factor)

    def __str__(self) -> str:
        return f"{self.worked} of {self.total}"


def _empty_histogram() -> dict[int, int]:
    return {bucket: 0 for bucket in BLOCK_BUCKETS}


def _empty_weekdays() -> dict[int, WeekdayTotal]:
    return {day: WeekdayTotal() for day in range(7)}


# Flat keys used by previously stored metric records
_LEGACY_SCALAR_KEYS = {
    "weekendsOn": "weekends_on",
    "saturdaysOn": "saturdays_on",
    "sundaysOn": "sundays_on",
    "weekendsOff": "weekends_off",
    "longestStretch": "longest_stretch",
    "fridayWeekendBlocks": "friday_weekend_blocks",
    "weekdayBlocks": "weekday_blocks",
    "longestOffStretch": "longest_off_stretch",
    "shortestOffStretch": "shortest_off_stretch",
    "totalDaysWorked": "total_days_worked",
    "totalDaysInPeriod": "total_days_in_period",
    "holidaysWorking": "holidays_worked",
    "holidaysOff": "holidays_off",
    "shiftPattern": "shift_pattern",
}
_LEGACY_BLOCK_KEYS = {
    "singleDays": 1,
    "blocks2day": 2,
    "blocks3day": 3,
    "blocks4day": 4,
    "blocks5day": 5,
    "blocks6day": 6,
}
_LEGACY_OFF_BLOCK_KEYS = {
    "offBlocks2day": 2,
    "offBlocks3day": 3,
    "offBlocks4day": 4,
    "offBlocks5day": 5,
    "offBlocks6day": 6,
    "offBlocks7dayPlus": 7,
}
_LEGACY_WEEKDAY_NAMES = (
    "Mondays", "Tuesdays", "Wednesdays", "Thursdays", "Fridays", "Saturdays", "Sundays",
)


def _histogram_key(bucket: int) -> str:
    return f"{bucket}+" if bucket == OPEN_ENDED_BUCKET else str(bucket)


def _histogram_from_dict(data: dict) -> dict[int, int]:
    histogram = _empty_histogram()
    for key, value in data.items():
        bucket = int(str(key).rstrip("+"))
        histogram[bucket_for(bucket)] += int(value)
    return histogram


@dataclass
class MetricsBundle:
    """Aggregate workload metrics for one schedule across its full period.

    Period totals are projected over all cycles. longest_stretch,
    longest_off_stretch and shortest_off_stretch describe single runs and are
    never multiplied by the cycle count.

    Attributes:
        weekends_on: Weekend pairs with both Saturday and Sunday worked.
        saturdays_on: Orphan Saturdays (Saturday worked, Sunday off).
        sundays_on: Orphan Sundays (Sunday worked, Saturday off).
        weekends_off: Weekend pairs with neither day worked.
        block_histogram: Work block counts by length (7 = 7 or more).
        longest_stretch: Longest single run of worked days.
        friday_weekend_blocks: Heuristic count of 3-day blocks touching a weekend.
        weekday_blocks: Heuristic count of 5-day blocks.
        off_block_histogram: Off block counts by length (7 = 7 or more).
        longest_off_stretch: Longest single run of days off.
        shortest_off_stretch: Shortest single run of days off.
        weekday_totals: Worked/total pairs keyed by weekday (Monday=0).
        total_days_worked: Worked days in the period.
        total_days_in_period: All days in the period.
        holidays_worked: Holidays falling on worked days.
        holidays_off: Holidays falling on days off.
        holiday_details: One entry per worked holiday.
        shift_counts: Worked days per shift code.
        shift_pattern: Display label for the codes used.
        cycle_count: Number of cycles the metrics cover.
        validated: True once the bundle is known to be sane (computed here
            or passed through the metrics validator).
    """

    weekends_on: int = 0
    saturdays_on: int = 0
    sundays_on: int = 0
    weekends_off: int = 0
    block_histogram: dict[int, int] = field(default_factory=_empty_histogram)
    longest_stretch: int = 0
    friday_weekend_blocks: int = 0
    weekday_blocks: int = 0
    off_block_histogram: dict[int, int] = field(default_factory=_empty_histogram)
    longest_off_stretch: int = 0
    shortest_off_stretch: int = 0
    weekday_totals: dict[int, WeekdayTotal] = field(default_factory=_empty_weekdays)
    total_days_worked: int = 0
    total_days_in_period: int = 0
    holidays_worked: int = 0
    holidays_off: int = 0
    holiday_details: list[HolidayWorked] = field(default_factory=list)
    shift_counts: dict[str, int] = field(default_factory=dict)
    shift_pattern: str = "No shifts"
    cycle_count: int = 1
    validated: bool = False

    # Scalar count fields, in display order
    COUNT_FIELDS = (
        "weekends_on",
        "saturdays_on",
        "sundays_on",
        "weekends_off",
        "longest_stretch",
        "friday_weekend_blocks",
        "weekday_blocks",
        "longest_off_stretch",
        "shortest_off_stretch",
        "total_days_worked",
        "total_days_in_period",
        "holidays_worked",
        "holidays_off",
    )

    @property
    def weekend_pairs(self) -> int:
        """Total weekend pairs classified in the period."""
        return self.weekends_on + self.saturdays_on + self.sundays_on + self.weekends_off

    def block_count(self, length: int) -> int:
        """Number of work blocks of the given length (7 means 7 or more)."""
        return self.block_histogram.get(bucket_for(length), 0)

    @property
    def single_days(self) -> int:
        return self.block_count(1)

    @property
    def blocks_4day(self) -> int:
        return self.block_count(4)

    @property
    def blocks_5day(self) -> int:
        return self.block_count(5)

    @property
    def total_saturdays(self) -> int:
        """Saturdays worked, whether orphaned or part of a full weekend."""
        return self.weekday_totals[SATURDAY].worked

    @property
    def total_sundays(self) -> int:
        return self.weekday_totals[SUNDAY].worked

    @property
    def total_days_off(self) -> int:
        return self.total_days_in_period - self.total_days_worked

    def to_dict(self) -> dict:
        """Serialize to a JSON-friendly dict."""
        data = {name: getattr(self, name) for name in self.COUNT_FIELDS}
        data.update(
            {
                "block_histogram": {
                    _histogram_key(b): n for b, n in sorted(self.block_histogram.items())
                },
                "off_block_histogram": {
                    _histogram_key(b): n for b, n in sorted(self.off_block_histogram.items())
                },
                "weekday_totals": {
                    WEEKDAY_NAMES[d]: {"worked": t.worked, "total": t.total}
                    for d, t in sorted(self.weekday_totals.items())
                },
                "holiday_details": [
                    {"date": h.holiday_date.isoformat(), "name": h.name, "code": h.code}
                    for h in self.holiday_details
                ],
                "shift_counts": dict(sorted(self.shift_counts.items())),
                "shift_pattern": self.shift_pattern,
                "cycle_count": self.cycle_count,
            }
        )
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "MetricsBundle":
        """Load a stored bundle.

        Accepts the layout written by to_dict as well as the flat camelCase
        keys of older stored records. Loaded bundles are never marked
        validated.
        """
        bundle = cls()
        for name in cls.COUNT_FIELDS:
            if name in data:
                setattr(bundle, name, int(data[name]))
        for legacy, name in _LEGACY_SCALAR_KEYS.items():
            if legacy in data:
                value = data[legacy]
                setattr(bundle, name, value if name == "shift_pattern" else int(value))

        if "block_histogram" in data:
            bundle.block_histogram = _histogram_from_dict(data["block_histogram"])
        for legacy, bucket in _LEGACY_BLOCK_KEYS.items():
            if legacy in data:
                bundle.block_histogram[bucket] = int(data[legacy])

        if "off_block_histogram" in data:
            bundle.off_block_histogram = _histogram_from_dict(data["off_block_histogram"])
        for legacy, bucket in _LEGACY_OFF_BLOCK_KEYS.items():
            if legacy in data:
                bundle.off_block_histogram[bucket] = int(data[legacy])

        weekdays = data.get("weekday_totals", {})
        for day, name in enumerate(WEEKDAY_NAMES):
            if name in weekdays:
                entry = weekdays[name]
                bundle.weekday_totals[day] = WeekdayTotal(
                    worked=int(entry.get("worked", 0)), total=int(entry.get("total", 0))
                )
        for day, name in enumerate(_LEGACY_WEEKDAY_NAMES):
            worked_key, total_key = f"total{name}", f"total{name}InPeriod"
            if worked_key in data or total_key in data:
                bundle.weekday_totals[day] = WeekdayTotal(
                    worked=int(data.get(worked_key, 0)), total=int(data.get(total_key, 0))
                )

        bundle.holiday_details = [
            HolidayWorked(
                holiday_date=coerce_date(h["date"]), name=h.get("name", ""), code=h.get("code", "")
            )
            for h in data.get("holiday_details", [])
        ]
        bundle.shift_counts = {k: int(v) for k, v in data.get("shift_counts", {}).items()}
        if "shift_pattern" in data:
            bundle.shift_pattern = data["shift_pattern"]
        bundle.cycle_count = int(data.get("cycle_count", data.get("numCycles", 1)))
        bundle.validated = False
        return bundle


@dataclass
class ScheduleInstance:
    """A schedule line: a cycle template placed on the calendar.

    Attributes:
        id: Opaque identifier.
        template: The repeating cycle of shift codes.
        start_date: First day of the first cycle (date or ISO string).
        cycle_count: Number of times the cycle repeats in the period.
        line_number: Display line number (often numeric, kept as text).
        group: Group/operation the line belongs to.
        jurisdiction: Holiday jurisdiction override for this line.
        metrics: Attached metrics, computed or loaded from storage.
    """

    id: str
    template: CycleTemplate
    start_date: Union[date, str, None]
    cycle_count: int = 1
    line_number: str = ""
    group: str = ""
    jurisdiction: Optional[str] = None
    metrics: Optional[MetricsBundle] = None

    @property
    def version(self) -> tuple:
        """Key that changes whenever the inputs to the metrics change."""
        return (self.template.codes, str(self.start_date), self.cycle_count)

    @property
    def cycle_length(self) -> int:
        return self.template.length

    @property
    def line_number_value(self) -> Optional[int]:
        """Line number as an integer, or None when it is not numeric."""
        text = str(self.line_number).strip()
        if text.isdigit():
            return int(text)
        return None

    @classmethod
    def from_dict(
        cls, data: dict, off_markers: Iterable[str] = OFF_MARKERS
    ) -> "ScheduleInstance":
        """Create a schedule from a JSON-style record.

        The template is read from "template" (a list), or failing that from
        spreadsheet-style "DAY_001", "DAY_002", ... columns.
        """
        if "template" in data:
            raw_codes = data["template"]
        else:
            day_keys = sorted(
                (k for k in data if str(k).startswith("DAY_")),
                key=lambda k: int(str(k)[4:]),
            )
            raw_codes = [data[k] for k in day_keys]

        line_number = data.get("line_number", data.get("lineNumber", data.get("LINE", "")))
        metrics = data.get("metrics")
        return cls(
            id=str(data.get("id", line_number)),
            template=CycleTemplate.from_codes(raw_codes, off_markers),
            start_date=data.get("start_date", data.get("startDate")),
            cycle_count=data.get("cycle_count", data.get("numCycles", 1)),
            line_number=str(line_number),
            group=str(data.get("group", data.get("GROUP", "")) or ""),
            jurisdiction=data.get("jurisdiction"),
            metrics=MetricsBundle.from_dict(metrics) if metrics else None,
        )


@dataclass
class CriteriaWeights:
    """Per-factor weights for preference scoring.

    Each weight defaults to 1.0. The scoring policy clamps them to its
    allowed range (0-5 by default); 0 removes the factor entirely.
    """

    group: float = 1.0
    days_off: float = 1.0
    shift: float = 1.0
    blocks_5day: float = 1.0
    blocks_4day: float = 1.0
    weekend: float = 1.0
    saturday: float = 1.0
    sunday: float = 1.0

    _ALIASES = {
        "groupWeight": "group",
        "daysWeight": "days_off",
        "shiftWeight": "shift",
        "blocks5dayWeight": "blocks_5day",
        "blocks4dayWeight": "blocks_4day",
        "weekendWeight": "weekend",
        "saturdayWeight": "saturday",
        "sundayWeight": "sunday",
    }

    @classmethod
    def from_dict(cls, data: dict) -> "CriteriaWeights":
        weights = cls()
        for key, value in data.items():
            name = cls._ALIASES.get(key, key)
            if name in weights.__dataclass_fields__:
                setattr(weights, name, float(value))
        return weights

    def as_dict(self) -> dict[str, float]:
        return {name: getattr(self, name) for name in self.__dataclass_fields__}


class CategoryIntent(Enum):
    """How selected shift categories should be read."""

    ANY = "any"  # Any of the selected categories is fine
    MIX = "mix"  # Want a mix of at least two selected categories


@dataclass
class Criteria:
    """A user's weighted schedule preferences.

    Attributes:
        selected_groups: Groups the user will accept (empty = any).
        shift_categories: Shift categories wanted; expanded to codes.
        shift_lengths: Shift length labels wanted; expanded to codes.
        shift_codes: Explicit shift codes wanted.
        day_off_dates: Dates the user wants off.
        weights: Per-factor weights.
        category_intent: Whether categories mean "any" or "a mix".
        desired_blocks_5day: Preferred number of 5-day blocks.
        desired_blocks_4day: Preferred number of 4-day blocks.
    """

    selected_groups: list[str] = field(default_factory=list)
    shift_categories: list[str] = field(default_factory=list)
    shift_lengths: list[str] = field(default_factory=list)
    shift_codes: list[str] = field(default_factory=list)
    day_off_dates: list[date] = field(default_factory=list)
    weights: CriteriaWeights = field(default_factory=CriteriaWeights)
    category_intent: CategoryIntent = CategoryIntent.ANY
    desired_blocks_5day: int = 0
    desired_blocks_4day: int = 0

    @property
    def is_empty(self) -> bool:
        """True when the criteria express no preference at all."""
        return not (
            self.selected_groups
            or self.shift_categories
            or self.shift_lengths
            or self.shift_codes
            or self.day_off_dates
            or self.desired_blocks_5day
            or self.desired_blocks_4day
            or self.category_intent != CategoryIntent.ANY
            or self.weights != CriteriaWeights()
        )

    @classmethod
    def from_dict(cls, data: dict) -> "Criteria":
        """Create criteria from snake_case or camelCase keys."""

        def pick(*keys, default=None):
            for key in keys:
                if key in data and data[key] is not None:
                    return data[key]
            return default

        intent = pick("category_intent", "shiftCategoryIntent", default="any")
        return cls(
            selected_groups=list(pick("selected_groups", "selectedGroups", default=[])),
            shift_categories=list(
                pick("shift_categories", "selectedShiftCategories", default=[])
            ),
            shift_lengths=list(pick("shift_lengths", "selectedShiftLengths", default=[])),
            shift_codes=list(pick("shift_codes", "selectedShiftCodes", default=[])),
            day_off_dates=[
                coerce_date(d) for d in pick("day_off_dates", "dayOffDates", default=[])
            ],
            weights=CriteriaWeights.from_dict(pick("weights", default={})),
            category_intent=CategoryIntent(str(intent).lower()),
            desired_blocks_5day=int(pick("desired_blocks_5day", default=0)),
            desired_blocks_4day=int(pick("desired_blocks_4day", default=0)),
        )


@dataclass(frozen=True)
class FactorScore:
    """One factor's contribution to a score.

    Attributes:
        name: Factor name (e.g., "weekend").
        score: Normalized sub-score, 0-100.
        weight: Weight the sub-score was averaged with.
        detail: Human-readable description of the factor result.
    """

    name: str
    score: float
    weight: float
    detail: str = ""

    @property
    def contribution(self) -> float:
        return self.score * self.weight


@dataclass
class ScoreResult:
    """Result of scoring one schedule against one set of criteria."""

    score: float
    breakdown: list[FactorScore] = field(default_factory=list)
    explanation: str = ""
    notes: list[str] = field(default_factory=list)
    weekends_on: str = "0 of 0"
    saturdays_on: str = "0 of 0"
    sundays_on: str = "0 of 0"

    def factor(self, name: str) -> Optional[FactorScore]:
        """Get a factor from the breakdown by name."""
        for factor in self.breakdown:
            if factor.name == name:
                return factor
        return None
