"""Cycle expansion.

Turns a compact cycle template into a calendar-dated shift sequence by
repeating the template cycle_count times from the start date.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Union

from bidline.domain.errors import ConfigurationError
from bidline.domain.models import CycleTemplate, DatedShift, ScheduleInstance, coerce_date

logger = logging.getLogger(__name__)


def parse_start_date(value: Union[date, datetime, str, None]) -> date:
    """Parse a schedule start date.

    Args:
        value: A date, a datetime (date part used), or an ISO string.
            Any time or offset in the string is ignored.

    Returns:
        The calendar start date.

    Raises:
        ConfigurationError: If the value is missing or unparseable.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ConfigurationError("Schedule start date is missing")
    try:
        return coerce_date(value)
    except ValueError as e:
        raise ConfigurationError(f"Invalid schedule start date {value!r}: {e}") from e


def _validate_cycle_count(cycle_count) -> int:
    # bool is an int subclass
    if isinstance(cycle_count, bool) or not isinstance(cycle_count, int):
        raise ConfigurationError(f"Cycle count must be an integer, got {cycle_count!r}")
    if cycle_count < 1:
        raise ConfigurationError(f"Cycle count must be at least 1, got {cycle_count}")
    return cycle_count


class CycleExpander:
    """Expands cycle templates into dated shift sequences.

    Day i of the output (0-based) falls on start_date + i, takes the
    template code at position (i mod L) + 1, and belongs to cycle i // L.
    """

    def expand(
        self,
        template: CycleTemplate,
        start_date: Union[date, datetime, str, None],
        cycle_count: int = 1,
    ) -> list[DatedShift]:
        """Expand a template across cycle_count repeated cycles.

        Args:
            template: Cycle template of length L.
            start_date: First day of the first cycle.
            cycle_count: Number of repetitions C.

        Returns:
            C * L dated shifts at consecutive calendar dates.

        Raises:
            ConfigurationError: If L <= 0, C < 1, or the start date is invalid.
        """
        length = template.length
        if length <= 0:
            raise ConfigurationError("Cycle template is empty")
        count = _validate_cycle_count(cycle_count)
        first_day = parse_start_date(start_date)

        shifts = []
        for i in range(length * count):
            shifts.append(
                DatedShift(
                    shift_date=first_day + timedelta(days=i),
                    code=template.codes[i % length],
                    position=(i % length) + 1,
                    cycle=i // length,
                )
            )
        return shifts

    def expand_schedule(self, schedule: ScheduleInstance) -> list[DatedShift]:
        """Expand a schedule over its full period."""
        logger.debug(
            "Expanding schedule %s: %d days x %s cycles",
            schedule.id,
            schedule.cycle_length,
            schedule.cycle_count,
        )
        return self.expand(schedule.template, schedule.start_date, schedule.cycle_count)
