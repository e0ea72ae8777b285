"""Domain models, errors, and scoring policies."""

from bidline.domain.errors import (
    BidlineError,
    ConfigurationError,
    DataIntegrityError,
    ProviderError,
)
from bidline.domain.models import (
    CategoryIntent,
    Criteria,
    CriteriaWeights,
    CycleTemplate,
    DatedShift,
    FactorScore,
    Holiday,
    HolidayFilter,
    HolidayOverlap,
    HolidayWorked,
    MetricsBundle,
    ScheduleInstance,
    ScoreResult,
    ShiftCode,
    ShiftCodeTable,
    WeekdayTotal,
)
from bidline.domain.policies import DefaultScoringPolicy, ScoringPolicy

__all__ = [
    # Models
    "CategoryIntent",
    "Criteria",
    "CriteriaWeights",
    "CycleTemplate",
    "DatedShift",
    "FactorScore",
    "Holiday",
    "HolidayFilter",
    "HolidayOverlap",
    "HolidayWorked",
    "MetricsBundle",
    "ScheduleInstance",
    "ScoreResult",
    "ShiftCode",
    "ShiftCodeTable",
    "WeekdayTotal",
    # Errors
    "BidlineError",
    "ConfigurationError",
    "DataIntegrityError",
    "ProviderError",
    # Policies
    "DefaultScoringPolicy",
    "ScoringPolicy",
]
