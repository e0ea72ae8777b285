"""Mirrored-line search.

A mirrored line works on (nearly) the same days as a given line but on
different shifts, which makes the two good candidates for trading shifts.
Lines are compared day by day over the given line's period:

- pattern score: share of days where both lines are on, or both off
- work-day pattern score: share of the given line's worked days the other
  line also works
- shift difference score: share of commonly worked days on different codes
- trade score: pattern match combined with how far apart the shift times are
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import date, time
from typing import Iterable, Optional, Union

from bidline.analysis.analyzer import ScheduleAnalyzer
from bidline.domain.errors import ConfigurationError
from bidline.domain.models import ScheduleInstance, ShiftCode, ShiftCodeTable

logger = logging.getLogger(__name__)

PATTERN_MINIMUM = 50.0
MIN_TRADE_SCORE = 15.0
CLONE_PATTERN_SCORE = 99.0

# Time difference bands, in minutes
MINOR_DIFF = 30
MODERATE_DIFF = 120
MAJOR_DIFF = 240
SMALL_DIFF = 90

# Significance thresholds, in minutes
START_SIGNIFICANCE = 60
END_SIGNIFICANCE = 75
TOTAL_SIGNIFICANCE = 120
CLOSE_TIME = 15


def _round2(value: float) -> float:
    return math.floor(value * 100 + 0.5) / 100


def pattern_score(own: list[bool], other: list[bool]) -> float:
    """Percentage of days where both lines are worked or both are off."""
    if not own:
        return 0.0
    matches = sum(1 for a, b in zip(own, other) if a == b)
    return 100.0 * matches / len(own)


def work_day_pattern_score(own: list[bool], other: list[bool]) -> float:
    """Percentage of own worked days the other line also works."""
    worked = [b for a, b in zip(own, other) if a]
    if not worked:
        return 0.0
    return 100.0 * sum(worked) / len(worked)


def shift_difference_score(own: list[Optional[str]], other: list[Optional[str]]) -> float:
    """Percentage of commonly worked days on different codes."""
    common = [(a, b) for a, b in zip(own, other) if a is not None and b is not None]
    if not common:
        return 0.0
    return 100.0 * sum(1 for a, b in common if a != b) / len(common)


def combine_mirror_scores(pattern: float, shift_difference: float) -> float:
    """Weighted mirror score: pattern 70%, shift difference 30%."""
    return _round2(pattern * 0.7 + shift_difference * 0.3)


def time_difference_minutes(first: time, second: time) -> int:
    """Minutes between two clock times, the short way around midnight."""
    minutes = abs((first.hour * 60 + first.minute) - (second.hour * 60 + second.minute))
    if minutes > 12 * 60:
        minutes = 24 * 60 - minutes
    return minutes


def _band_score(minutes: int) -> float:
    if minutes < MINOR_DIFF:
        return minutes / MINOR_DIFF * 25
    if minutes < MODERATE_DIFF:
        return 25 + (minutes - MINOR_DIFF) / (MODERATE_DIFF - MINOR_DIFF) * 25
    if minutes < MAJOR_DIFF:
        return 50 + (minutes - MODERATE_DIFF) / (MAJOR_DIFF - MODERATE_DIFF) * 25
    return 75 + (min(minutes, MAJOR_DIFF * 2) - MAJOR_DIFF) / MAJOR_DIFF * 25


def time_difference_score(start_minutes: int, end_minutes: int) -> float:
    """How different two shifts' times are, 0-100.

    Shifts whose start and end both move by less than 90 minutes are minor
    variants and score 5-15. Otherwise start and end are scored by band and
    weighted 60/40.
    """
    if start_minutes < SMALL_DIFF and end_minutes < SMALL_DIFF:
        return 5 + min(start_minutes, end_minutes) / SMALL_DIFF * 10
    return _band_score(start_minutes) * 0.6 + _band_score(end_minutes) * 0.4


def is_significant_difference(start_minutes: int, end_minutes: int) -> bool:
    """Whether a time difference is worth a trade."""
    close_start = start_minutes <= CLOSE_TIME and end_minutes <= SMALL_DIFF
    close_end = end_minutes <= CLOSE_TIME and start_minutes <= SMALL_DIFF
    if close_start or close_end:
        return False
    return (
        start_minutes >= START_SIGNIFICANCE
        or end_minutes >= END_SIGNIFICANCE
        or start_minutes + end_minutes >= TOTAL_SIGNIFICANCE
    )


def trade_score(
    pattern: float,
    average_time_difference: float,
    significant_count: int,
    work_days: int,
) -> float:
    """Trade value of a mirrored line, 0-100.

    Near-identical lines (same days, nearly the same times) score 10, and
    lines differing only by small time variations score 25 plus 1.5 per
    significant difference. Otherwise the score weights pattern 40%, time
    difference 30% and the share of significantly different days 30%.
    """
    if pattern > 95 and average_time_difference < 10 and significant_count < 2:
        return 10.0
    if pattern > 75 and average_time_difference < 20 and significant_count < 5:
        return 25.0 + significant_count * 1.5

    significant_ratio = 100.0 * significant_count / work_days if work_days > 0 else 0.0
    return _round2(pattern * 0.4 + average_time_difference * 0.3 + significant_ratio * 0.3)


@dataclass(frozen=True)
class DayComparison:
    """One day of two lines side by side.

    Attributes:
        shift_date: Calendar date.
        own_code: Code on the given line, or None if off.
        other_code: Code on the compared line, or None if off.
        is_different: Both work, on different codes (or, for the same code,
            at significantly different times).
        is_work_day_mismatch: One line works while the other is off.
        start_diff_minutes: Start time difference, when both times are known.
        end_diff_minutes: End time difference, when both times are known.
        time_difference_score: Time difference score, when both times are known.
        is_significant: The time difference is worth a trade.
    """

    shift_date: date
    own_code: Optional[str]
    other_code: Optional[str]
    is_different: bool = False
    is_work_day_mismatch: bool = False
    start_diff_minutes: Optional[int] = None
    end_diff_minutes: Optional[int] = None
    time_difference_score: Optional[float] = None
    is_significant: bool = False


@dataclass
class MirrorScore:
    """How well one line mirrors another."""

    schedule: ScheduleInstance
    pattern_score: float
    work_day_pattern_score: float
    shift_difference_score: float
    total_score: float
    trade_score: float
    same_shift_count: int = 0
    different_shift_count: int = 0
    significant_difference_count: int = 0
    work_day_mismatch_count: int = 0
    average_time_difference_score: float = 0.0
    comparison: list[DayComparison] = field(default_factory=list)

    @property
    def ranking_score(self) -> float:
        """Significant differences count triple next to the work-day match."""
        return self.significant_difference_count * 3 + self.work_day_pattern_score


class MirrorLineFinder:
    """Finds lines that mirror a given line.

    Usage:
        finder = MirrorLineFinder()
        for mirror in finder.find(my_line, all_lines, shift_codes):
            print(mirror.schedule.line_number, mirror.trade_score)
    """

    def __init__(self, analyzer: Optional[ScheduleAnalyzer] = None):
        """Initialize the finder.

        Args:
            analyzer: Used to expand lines onto the calendar. A default
                analyzer over the given shift codes is used if None.
        """
        self.analyzer = analyzer

    def find(
        self,
        own: ScheduleInstance,
        candidates: Iterable[ScheduleInstance],
        shift_codes: Union[ShiftCodeTable, Iterable[ShiftCode], None] = None,
        groups: Optional[Iterable[str]] = None,
    ) -> list[MirrorScore]:
        """Rank candidate lines by how well they mirror own.

        Lines with a pattern score below 50, a trade score below 15, or an
        exact pattern match with no significant time difference (clones)
        are dropped. Lines with significant differences rank first, then by
        ranking_score. Candidates that cannot be expanded are logged and
        skipped.

        Args:
            own: The line to find mirrors for.
            candidates: Lines to compare; own itself is skipped.
            shift_codes: Reference table with shift times.
            groups: If given, only candidates in these groups are compared.

        Raises:
            ConfigurationError: If own cannot be expanded.
        """
        table = ShiftCodeTable.coerce(shift_codes)
        analyzer = self.analyzer or ScheduleAnalyzer(shift_codes=table)
        wanted = {g.strip() for g in groups} if groups else None
        own_days = [(s.shift_date, s.code) for s in analyzer.expand(own)]

        scores = []
        for other in candidates:
            if other.id == own.id:
                continue
            if wanted is not None and other.group.strip() not in wanted:
                continue
            try:
                other_codes = {s.shift_date: s.code for s in analyzer.expand(other)}
            except ConfigurationError as e:
                logger.warning("Skipping line %s in mirror search: %s", other.id, e)
                continue
            score = self._score(own_days, other, other_codes, table)
            if score.pattern_score < PATTERN_MINIMUM:
                continue
            if score.trade_score < MIN_TRADE_SCORE:
                continue
            if score.pattern_score > CLONE_PATTERN_SCORE and score.significant_difference_count == 0:
                continue
            scores.append(score)

        scores.sort(key=lambda s: (s.significant_difference_count == 0, -s.ranking_score))
        logger.debug("Found %d mirrored lines for line %s", len(scores), own.id)
        return scores

    def score_pair(
        self,
        own: ScheduleInstance,
        other: ScheduleInstance,
        shift_codes: Union[ShiftCodeTable, Iterable[ShiftCode], None] = None,
    ) -> MirrorScore:
        """Compare two lines over own's period, without any filtering.

        Raises:
            ConfigurationError: If either line cannot be expanded.
        """
        table = ShiftCodeTable.coerce(shift_codes)
        analyzer = self.analyzer or ScheduleAnalyzer(shift_codes=table)
        own_days = [(s.shift_date, s.code) for s in analyzer.expand(own)]
        other_codes = {s.shift_date: s.code for s in analyzer.expand(other)}
        return self._score(own_days, other, other_codes, table)

    def _score(
        self,
        own_days: list[tuple[date, Optional[str]]],
        other: ScheduleInstance,
        other_codes: dict[date, Optional[str]],
        table: ShiftCodeTable,
    ) -> MirrorScore:
        own_seq = [code for _, code in own_days]
        other_seq = [other_codes.get(day) for day, _ in own_days]
        own_on = [code is not None for code in own_seq]
        other_on = [code is not None for code in other_seq]

        pattern = pattern_score(own_on, other_on)
        difference = shift_difference_score(own_seq, other_seq)
        comparison = [
            self._compare_day(day, own_code, other_code, table)
            for (day, own_code), other_code in zip(own_days, other_seq)
        ]

        score = MirrorScore(
            schedule=other,
            pattern_score=pattern,
            work_day_pattern_score=work_day_pattern_score(own_on, other_on),
            shift_difference_score=difference,
            total_score=combine_mirror_scores(pattern, difference),
            trade_score=0.0,
            comparison=comparison,
        )

        time_scores = []
        for day in comparison:
            if day.is_work_day_mismatch:
                score.work_day_mismatch_count += 1
                continue
            if day.own_code is None:
                continue
            if day.is_different:
                score.different_shift_count += 1
            else:
                score.same_shift_count += 1
            if day.is_significant:
                score.significant_difference_count += 1
            if day.time_difference_score is not None:
                time_scores.append(day.time_difference_score)

        if time_scores:
            score.average_time_difference_score = sum(time_scores) / len(time_scores)
        score.trade_score = trade_score(
            pattern,
            score.average_time_difference_score,
            score.significant_difference_count,
            score.same_shift_count + score.different_shift_count,
        )
        return score

    @staticmethod
    def _compare_day(
        day: date,
        own_code: Optional[str],
        other_code: Optional[str],
        table: ShiftCodeTable,
    ) -> DayComparison:
        own_off = own_code is None
        other_off = other_code is None
        if own_off or other_off:
            return DayComparison(day, own_code, other_code, is_work_day_mismatch=own_off != other_off)

        own_shift = table.get(own_code)
        other_shift = table.get(other_code)
        times_known = (
            own_shift is not None
            and other_shift is not None
            and None not in (own_shift.begin_time, own_shift.end_time)
            and None not in (other_shift.begin_time, other_shift.end_time)
        )
        if not times_known:
            return DayComparison(day, own_code, other_code, is_different=own_code != other_code)

        start = time_difference_minutes(own_shift.begin_time, other_shift.begin_time)
        end = time_difference_minutes(own_shift.end_time, other_shift.end_time)
        significant = is_significant_difference(start, end)
        return DayComparison(
            day,
            own_code,
            other_code,
            # The same code only differs when its times moved significantly
            is_different=significant if own_code == other_code else True,
            start_diff_minutes=start,
            end_diff_minutes=end,
            time_difference_score=time_difference_score(start, end),
            is_significant=significant,
        )
