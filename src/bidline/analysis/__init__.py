"""Cycle expansion, holiday overlay, and pattern analysis."""

from bidline.analysis.analyzer import MetricsCache, ScheduleAnalyzer
from bidline.analysis.expander import CycleExpander, parse_start_date
from bidline.analysis.holidays import (
    HolidayCache,
    HolidayOverlay,
    HolidayProvider,
    StaticHolidayProvider,
    TableHolidayProvider,
)
from bidline.analysis.pattern_analyzer import PatternAnalyzer, shift_pattern_label

__all__ = [
    "CycleExpander",
    "HolidayCache",
    "HolidayOverlay",
    "HolidayProvider",
    "MetricsCache",
    "PatternAnalyzer",
    "ScheduleAnalyzer",
    "StaticHolidayProvider",
    "TableHolidayProvider",
    "parse_start_date",
    "shift_pattern_label",
]
