"""Batch recompute of schedule metrics."""

from bidline.batch.recompute import (
    BatchFailure,
    BatchRecomputer,
    BatchSummary,
    InMemoryMetricsStore,
    InMemoryScheduleRepository,
    MetricsStore,
    ScheduleRepository,
)

__all__ = [
    "BatchFailure",
    "BatchRecomputer",
    "BatchSummary",
    "InMemoryMetricsStore",
    "InMemoryScheduleRepository",
    "MetricsStore",
    "ScheduleRepository",
]
