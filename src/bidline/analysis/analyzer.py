"""Schedule analysis orchestration.

Wires the cycle expander, pattern analyzer, and holiday overlay together and
caches the resulting metrics per schedule version.
"""

import logging
import threading
from typing import Optional

from bidline.analysis.expander import CycleExpander
from bidline.analysis.holidays import HolidayOverlay
from bidline.analysis.pattern_analyzer import PatternAnalyzer
from bidline.config import EngineConfig
from bidline.domain.errors import DataIntegrityError
from bidline.domain.models import (
    CycleTemplate,
    DatedShift,
    MetricsBundle,
    ScheduleInstance,
    ShiftCodeTable,
)

logger = logging.getLogger(__name__)


class MetricsCache:
    """Thread-safe metrics cache keyed by schedule id, version, and jurisdiction.

    A change to a schedule's template, start date, or cycle count changes its
    version, so stale entries are never returned.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._entries: dict[tuple, MetricsBundle] = {}

    @staticmethod
    def _key(schedule: ScheduleInstance, jurisdiction: str) -> tuple:
        return (schedule.id, schedule.version, jurisdiction)

    def get(self, schedule: ScheduleInstance, jurisdiction: str) -> Optional[MetricsBundle]:
        with self._lock:
            return self._entries.get(self._key(schedule, jurisdiction))

    def put(self, schedule: ScheduleInstance, jurisdiction: str, metrics: MetricsBundle) -> None:
        with self._lock:
            self._entries[self._key(schedule, jurisdiction)] = metrics

    def invalidate(self, schedule_id: Optional[str] = None) -> None:
        """Drop entries for one schedule id, or all entries."""
        with self._lock:
            if schedule_id is None:
                self._entries.clear()
                return
            for key in [k for k in self._entries if k[0] == schedule_id]:
                del self._entries[key]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class ScheduleAnalyzer:
    """Computes metrics for schedules.

    Usage:
        analyzer = ScheduleAnalyzer(shift_codes=table)
        metrics = analyzer.analyze(schedule)
    """

    def __init__(
        self,
        shift_codes: Optional[ShiftCodeTable] = None,
        holiday_overlay: Optional[HolidayOverlay] = None,
        config: Optional[EngineConfig] = None,
        metrics_cache: Optional[MetricsCache] = None,
    ):
        """Initialize the analyzer.

        Args:
            shift_codes: Reference table used to check template codes. When
                empty or None, every non-off code is accepted.
            holiday_overlay: Holiday overlay. Uses static tables if None.
            config: Engine configuration. Uses defaults if None.
            metrics_cache: Metrics cache. A private cache is created if None.
        """
        self.shift_codes = ShiftCodeTable.coerce(shift_codes)
        self.holiday_overlay = holiday_overlay or HolidayOverlay()
        self.config = config or EngineConfig()
        self.metrics_cache = metrics_cache if metrics_cache is not None else MetricsCache()

        self.expander = CycleExpander()
        self.pattern_analyzer = PatternAnalyzer()

    def resolve_jurisdiction(
        self, schedule: ScheduleInstance, jurisdiction: Optional[str] = None
    ) -> str:
        """Explicit jurisdiction, then the schedule's, then the default."""
        return (jurisdiction or schedule.jurisdiction or self.config.default_jurisdiction).upper()

    def resolve_template(self, schedule: ScheduleInstance) -> CycleTemplate:
        """Replace codes missing from the reference table with days off.

        Each unknown code is logged once per schedule.
        """
        if len(self.shift_codes) == 0:
            return schedule.template

        resolved = []
        reported: set[str] = set()
        for code in schedule.template.codes:
            if code is not None and code not in self.shift_codes:
                if code not in reported:
                    error = DataIntegrityError(code)
                    logger.warning("Schedule %s: %s; treating as day off", schedule.id, error)
                    reported.add(code)
                resolved.append(None)
            else:
                resolved.append(code)
        return CycleTemplate(codes=tuple(resolved))

    def expand(self, schedule: ScheduleInstance) -> list[DatedShift]:
        """Expand a schedule over its period, unknown codes resolved to off.

        Raises:
            ConfigurationError: If the schedule cannot be expanded.
        """
        template = self.resolve_template(schedule)
        return self.expander.expand(template, schedule.start_date, schedule.cycle_count)

    def analyze(
        self,
        schedule: ScheduleInstance,
        jurisdiction: Optional[str] = None,
        use_cache: bool = True,
    ) -> MetricsBundle:
        """Compute the metrics of a schedule.

        Args:
            schedule: Schedule to analyze.
            jurisdiction: Holiday jurisdiction override.
            use_cache: If False, always recompute.

        Returns:
            A validated MetricsBundle.

        Raises:
            ConfigurationError: If the schedule cannot be expanded.
        """
        region = self.resolve_jurisdiction(schedule, jurisdiction)
        if use_cache:
            cached = self.metrics_cache.get(schedule, region)
            if cached is not None:
                logger.debug("Metrics cache hit for schedule %s", schedule.id)
                return cached

        all_shifts = self.expand(schedule)

        if self.config.full_span:
            metrics = self.pattern_analyzer.analyze_full_span(all_shifts, schedule.cycle_count)
        else:
            cycle_shifts = all_shifts[: schedule.cycle_length]
            metrics = self.pattern_analyzer.analyze(cycle_shifts, schedule.cycle_count)

        # Holidays always come from the full span; they do not repeat per cycle
        overlap = self.holiday_overlay.overlay(all_shifts, region)
        metrics.holidays_worked = overlap.worked
        metrics.holidays_off = overlap.off
        metrics.holiday_details = overlap.details

        self.metrics_cache.put(schedule, region, metrics)
        logger.debug(
            "Analyzed schedule %s: %d of %d days worked, %d holidays worked",
            schedule.id,
            metrics.total_days_worked,
            metrics.total_days_in_period,
            metrics.holidays_worked,
        )
        return metrics

    def attach(self, schedule: ScheduleInstance, jurisdiction: Optional[str] = None) -> ScheduleInstance:
        """Compute metrics and attach them to the schedule."""
        schedule.metrics = self.analyze(schedule, jurisdiction)
        return schedule
