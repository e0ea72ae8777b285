"""Validation module for stored schedule metrics.

This module is the single place where implausible metric values are
detected and repaired. Stored bundles pass through it once, at the boundary
between storage and scoring; freshly computed bundles are already trusted.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from bidline.analysis.expander import CycleExpander
from bidline.config import EngineConfig
from bidline.domain.errors import ConfigurationError
from bidline.domain.models import BLOCK_BUCKETS, MetricsBundle, ScheduleInstance

logger = logging.getLogger(__name__)

# Counts that upstream storage has been seen to overwrite with the line number
LINE_NUMBER_SUSPECT_FIELDS = (
    "weekends_on",
    "saturdays_on",
    "sundays_on",
    "weekends_off",
    "friday_weekend_blocks",
    "weekday_blocks",
    "holidays_worked",
    "holidays_off",
)

WEEKEND_CLASS_FIELDS = ("weekends_on", "saturdays_on", "sundays_on", "weekends_off")


class ValidationErrorType(Enum):
    """Types of metric problems."""

    MISSING_METRICS = "missing_metrics"
    NEGATIVE_COUNT = "negative_count"
    NON_NUMERIC_COUNT = "non_numeric_count"
    EQUALS_LINE_NUMBER = "equals_line_number"
    EXCEEDS_WEEKEND_PAIRS = "exceeds_weekend_pairs"
    EXCEEDS_PERIOD = "exceeds_period"


@dataclass
class ValidationError:
    """A single metric problem."""

    error_type: ValidationErrorType
    message: str
    schedule_id: Optional[str] = None
    metric: Optional[str] = None
    value: object = None

    def __str__(self) -> str:
        parts = [f"[{self.error_type.value}]"]
        if self.schedule_id:
            parts.append(f"Schedule {self.schedule_id}:")
        parts.append(self.message)
        return " ".join(parts)


@dataclass
class ValidationResult:
    """Result of validating a metrics bundle."""

    is_valid: bool
    errors: list[ValidationError] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def add_error(self, error: ValidationError) -> None:
        """Add an error and mark as invalid."""
        self.errors.append(error)
        self.is_valid = False

    def add_warning(self, warning: str) -> None:
        """Add a warning (doesn't affect validity)."""
        self.warnings.append(warning)


class MetricsValidator:
    """Checks and repairs stored metric bundles.

    Rules, each resetting the offending value to 0:
    - Negative or non-numeric counts
    - A count equal to the schedule's numeric line number
    - A weekend classification above the weekend pairs in the period,
      counted the way the configured scan mode counts them
    - longest_stretch above the days in the period

    Example:
        >>> validator = MetricsValidator()
        >>> result = validator.sanitize(schedule)
        >>> for error in result.errors:
        ...     print(error)
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        """Initialize the validator.

        Args:
            config: Engine configuration; its scan mode sets how weekend
                pairs are counted. Uses defaults if None.
        """
        self.config = config or EngineConfig()
        self.expander = CycleExpander()

    def validate(self, schedule: ScheduleInstance) -> ValidationResult:
        """Report problems in a schedule's metrics without changing them."""
        return self._check(schedule, repair=False)

    def sanitize(self, schedule: ScheduleInstance) -> ValidationResult:
        """Repair a schedule's metrics in place and mark them validated.

        Args:
            schedule: Schedule whose attached metrics should be checked.

        Returns:
            ValidationResult listing every value that was reset.
        """
        result = self._check(schedule, repair=True)
        if schedule.metrics is not None:
            schedule.metrics.validated = True
        for error in result.errors:
            logger.warning("Sanitized metric: %s", error)
        return result

    def period_shape(self, schedule: ScheduleInstance) -> tuple[int, int]:
        """Days and weekend pairs in the schedule's period.

        In scale mode the pairs are those of the first cycle times the cycle
        count, matching how analyze() builds period totals. In full-span
        mode they are the distinct pairs of the whole period. Falls back to
        the stored day count when the schedule itself cannot be expanded.
        """
        try:
            shifts = self.expander.expand(schedule.template, schedule.start_date, schedule.cycle_count)
        except ConfigurationError:
            days = 0
            if schedule.metrics is not None:
                days = _as_count(schedule.metrics.total_days_in_period) or 0
            return days, days // 7 + 1
        if self.config.full_span:
            pairs = {s.weekend_key for s in shifts if s.weekend_key is not None}
            return len(shifts), len(pairs)
        cycle = shifts[: schedule.cycle_length]
        pairs = {s.weekend_key for s in cycle if s.weekend_key is not None}
        return len(shifts), len(pairs) * schedule.cycle_count

    def _check(self, schedule: ScheduleInstance, repair: bool) -> ValidationResult:
        result = ValidationResult(is_valid=True)
        metrics = schedule.metrics
        if metrics is None:
            result.add_warning(f"Schedule {schedule.id} has no metrics")
            return result

        def flag(error_type, name, value, message, reset=None):
            result.add_error(
                ValidationError(
                    error_type=error_type,
                    message=message,
                    schedule_id=schedule.id,
                    metric=name,
                    value=value,
                )
            )
            if repair:
                (reset or (lambda: setattr(metrics, name, 0)))()

        # Scalar counts must be non-negative integers
        for name in MetricsBundle.COUNT_FIELDS:
            value = getattr(metrics, name)
            count = _as_count(value)
            if count is None:
                flag(ValidationErrorType.NON_NUMERIC_COUNT, name, value, f"{name} is not a count: {value!r}")
            elif count < 0:
                flag(ValidationErrorType.NEGATIVE_COUNT, name, value, f"{name} is negative: {value}")

        for hist_name in ("block_histogram", "off_block_histogram"):
            histogram = getattr(metrics, hist_name)
            for bucket in BLOCK_BUCKETS:
                value = histogram.get(bucket, 0)
                count = _as_count(value)
                if count is None or count < 0:
                    flag(
                        ValidationErrorType.NEGATIVE_COUNT,
                        f"{hist_name}[{bucket}]",
                        value,
                        f"{hist_name}[{bucket}] is not a valid count: {value!r}",
                        reset=lambda h=histogram, b=bucket: h.__setitem__(b, 0),
                    )

        line_number = schedule.line_number_value
        if line_number:
            for name in LINE_NUMBER_SUSPECT_FIELDS:
                value = getattr(metrics, name)
                if value == line_number:
                    flag(
                        ValidationErrorType.EQUALS_LINE_NUMBER,
                        name,
                        value,
                        f"{name} equals the line number ({line_number})",
                    )
            for bucket in BLOCK_BUCKETS:
                value = metrics.block_histogram.get(bucket, 0)
                if value == line_number:
                    flag(
                        ValidationErrorType.EQUALS_LINE_NUMBER,
                        f"block_histogram[{bucket}]",
                        value,
                        f"block_histogram[{bucket}] equals the line number ({line_number})",
                        reset=lambda b=bucket: metrics.block_histogram.__setitem__(b, 0),
                    )

        days, pairs = self.period_shape(schedule)
        for name in WEEKEND_CLASS_FIELDS:
            value = getattr(metrics, name)
            if isinstance(value, int) and value > pairs:
                flag(
                    ValidationErrorType.EXCEEDS_WEEKEND_PAIRS,
                    name,
                    value,
                    f"{name} ({value}) exceeds the {pairs} weekend pairs in the period",
                )

        if isinstance(metrics.longest_stretch, int) and metrics.longest_stretch > days:
            flag(
                ValidationErrorType.EXCEEDS_PERIOD,
                "longest_stretch",
                metrics.longest_stretch,
                f"longest_stretch ({metrics.longest_stretch}) exceeds the {days} days in the period",
            )

        return result


def _as_count(value) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None
