"""Preference scoring of schedules against weighted criteria."""

from bidline.scoring.mirror import DayComparison, MirrorLineFinder, MirrorScore
from bidline.scoring.scorer import FACTOR_ORDER, PreferenceScorer, expand_selected_codes

__all__ = [
    "DayComparison",
    "FACTOR_ORDER",
    "MirrorLineFinder",
    "MirrorScore",
    "PreferenceScorer",
    "expand_selected_codes",
]
