"""Pattern analysis.

Single-pass scan over a dated shift sequence that derives weekend
classifications, work and off block histograms, per-weekday totals, and
shift usage.

Two paths are provided:
- analyze(): scans one cycle and multiplies period totals by the cycle count.
  Blocks never span the cycle boundary.
- analyze_full_span(): scans every day of every cycle with no scaling, so
  blocks that straddle a cycle seam are seen whole.

The two agree whenever no work or off block crosses a seam and the cycle
length is a whole number of weeks.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from bidline.domain.models import (
    SATURDAY,
    MetricsBundle,
    DatedShift,
    WeekdayTotal,
    bucket_for,
)

logger = logging.getLogger(__name__)

# Shift pattern labels
NO_SHIFTS_LABEL = "No shifts"
MIXED_LABEL = "Mixed"
MAX_LISTED_CODES = 3

# Heuristic block lengths
FRIDAY_WEEKEND_BLOCK_DAYS = 3
WEEKDAY_BLOCK_DAYS = 5


def shift_pattern_label(codes: list[str]) -> str:
    """Display label for the distinct codes a schedule uses.

    Args:
        codes: Distinct codes in first-seen order.
    """
    if not codes:
        return NO_SHIFTS_LABEL
    if len(codes) <= MAX_LISTED_CODES:
        return "/".join(codes)
    return MIXED_LABEL


@dataclass
class _WeekendPair:
    saturday: bool = False
    sunday: bool = False


@dataclass
class _ScanState:
    """Mutable state of one pass over a sequence."""

    streak: int = 0
    streak_touches_weekend: bool = False
    off_streak: int = 0
    work_blocks: list[int] = field(default_factory=list)
    off_blocks: list[int] = field(default_factory=list)
    friday_weekend_blocks: int = 0
    weekday_worked: list[int] = field(default_factory=lambda: [0] * 7)
    weekday_total: list[int] = field(default_factory=lambda: [0] * 7)
    pairs: dict[date, _WeekendPair] = field(default_factory=dict)
    shift_counts: dict[str, int] = field(default_factory=dict)
    codes_seen: list[str] = field(default_factory=list)

    def close_work_block(self) -> None:
        if self.streak == 0:
            return
        self.work_blocks.append(self.streak)
        if self.streak == FRIDAY_WEEKEND_BLOCK_DAYS and self.streak_touches_weekend:
            self.friday_weekend_blocks += 1
        self.streak = 0
        self.streak_touches_weekend = False

    def close_off_block(self) -> None:
        if self.off_streak == 0:
            return
        self.off_blocks.append(self.off_streak)
        self.off_streak = 0


class PatternAnalyzer:
    """Derives a MetricsBundle from dated shifts.

    The analyzer only reads the sequence; holiday counts are filled in by
    the caller from the holiday overlay.
    """

    def analyze(self, cycle_shifts: list[DatedShift], cycle_count: int = 1) -> MetricsBundle:
        """Analyze one cycle and project the totals over cycle_count cycles.

        Args:
            cycle_shifts: The dated days of a single cycle, in date order.
            cycle_count: Number of cycles in the period.

        Returns:
            Metrics for the whole period. longest_stretch and the off
            stretch extremes describe single runs and are not scaled.
        """
        metrics = self._scan(cycle_shifts)
        metrics.cycle_count = cycle_count
        if cycle_count != 1:
            self._scale(metrics, cycle_count)
        return metrics

    def analyze_full_span(self, all_shifts: list[DatedShift], cycle_count: int = 1) -> MetricsBundle:
        """Analyze every day of the period exactly, with no scaling.

        Args:
            all_shifts: All dated days of the period, in date order.
            cycle_count: Number of cycles the sequence covers (recorded only).
        """
        metrics = self._scan(all_shifts)
        metrics.cycle_count = cycle_count
        return metrics

    def _scan(self, shifts: list[DatedShift]) -> MetricsBundle:
        state = _ScanState()

        for shift in shifts:
            day = shift.day_of_week
            state.weekday_total[day] += 1

            pair: Optional[_WeekendPair] = None
            weekend_key = shift.weekend_key
            if weekend_key is not None:
                pair = state.pairs.setdefault(weekend_key, _WeekendPair())

            if shift.is_worked:
                state.close_off_block()
                state.streak += 1
                state.weekday_worked[day] += 1
                state.shift_counts[shift.code] = state.shift_counts.get(shift.code, 0) + 1
                if shift.code not in state.codes_seen:
                    state.codes_seen.append(shift.code)
                if pair is not None:
                    state.streak_touches_weekend = True
                    if day == SATURDAY:
                        pair.saturday = True
                    else:
                        pair.sunday = True
            else:
                state.close_work_block()
                state.off_streak += 1

        state.close_work_block()
        state.close_off_block()

        return self._build_metrics(state, len(shifts))

    def _build_metrics(self, state: _ScanState, total_days: int) -> MetricsBundle:
        metrics = MetricsBundle()

        # Each pair lands in exactly one class
        for pair in state.pairs.values():
            if pair.saturday and pair.sunday:
                metrics.weekends_on += 1
            elif pair.saturday:
                metrics.saturdays_on += 1
            elif pair.sunday:
                metrics.sundays_on += 1
            else:
                metrics.weekends_off += 1

        for length in state.work_blocks:
            metrics.block_histogram[bucket_for(length)] += 1
        for length in state.off_blocks:
            metrics.off_block_histogram[bucket_for(length)] += 1

        metrics.longest_stretch = max(state.work_blocks, default=0)
        metrics.longest_off_stretch = max(state.off_blocks, default=0)
        metrics.shortest_off_stretch = min(state.off_blocks, default=0)

        # Approximate: block composition is not checked day by day
        metrics.friday_weekend_blocks = state.friday_weekend_blocks
        metrics.weekday_blocks = metrics.block_histogram[WEEKDAY_BLOCK_DAYS]

        metrics.weekday_totals = {
            day: WeekdayTotal(worked=state.weekday_worked[day], total=state.weekday_total[day])
            for day in range(7)
        }
        metrics.total_days_worked = sum(state.weekday_worked)
        metrics.total_days_in_period = total_days
        metrics.shift_counts = state.shift_counts
        metrics.shift_pattern = shift_pattern_label(state.codes_seen)
        metrics.validated = True
        return metrics

    def _scale(self, metrics: MetricsBundle, factor: int) -> None:
        """Multiply period totals by factor in place."""
        metrics.weekends_on *= factor
        metrics.saturdays_on *= factor
        metrics.sundays_on *= factor
        metrics.weekends_off *= factor
        metrics.block_histogram = {b: n * factor for b, n in metrics.block_histogram.items()}
        metrics.off_block_histogram = {
            b: n * factor for b, n in metrics.off_block_histogram.items()
        }
        metrics.friday_weekend_blocks *= factor
        metrics.weekday_blocks *= factor
        metrics.weekday_totals = {
            day: total.scaled(factor) for day, total in metrics.weekday_totals.items()
        }
        metrics.total_days_worked *= factor
        metrics.total_days_in_period *= factor
        metrics.shift_counts = {code: n * factor for code, n in metrics.shift_counts.items()}
