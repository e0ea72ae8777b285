"""Tests for batch metrics recompute."""

from datetime import date

import pytest

from bidline.analysis.analyzer import ScheduleAnalyzer
from bidline.analysis.holidays import HolidayOverlay, TableHolidayProvider
from bidline.batch.recompute import (
    BatchRecomputer,
    InMemoryMetricsStore,
    InMemoryScheduleRepository,
    MetricsStore,
)
from bidline.domain.models import CycleTemplate, ScheduleInstance


def make_schedule(schedule_id, start_date=date(2024, 1, 1)):
    return ScheduleInstance(
        id=schedule_id,
        line_number=schedule_id,
        template=CycleTemplate.from_codes(["A"] * 5 + [None, None]),
        start_date=start_date,
        cycle_count=4,
    )


class FlakyStore(MetricsStore):
    """Store that refuses one schedule id."""

    def __init__(self, bad_id):
        self.bad_id = bad_id
        self.inner = InMemoryMetricsStore()

    def save_metrics(self, schedule, metrics):
        if schedule.id == self.bad_id:
            raise IOError("disk full")
        self.inner.save_metrics(schedule, metrics)


class TestBatchRecomputer:
    """Tests for BatchRecomputer."""

    @pytest.fixture
    def analyzer(self):
        return ScheduleAnalyzer(holiday_overlay=HolidayOverlay(TableHolidayProvider({})))

    def test_all_succeed(self, analyzer):
        schedules = [make_schedule(str(i)) for i in range(1, 6)]
        store = InMemoryMetricsStore()
        recomputer = BatchRecomputer(InMemoryScheduleRepository(schedules), analyzer, store, max_workers=3)

        summary = recomputer.recompute_all()

        assert (summary.processed, summary.succeeded, summary.failed) == (5, 5, 0)
        assert len(store) == 5
        assert store.get("3").total_days_worked == 20
        assert all(s.metrics is not None for s in schedules)

    def test_bad_schedule_isolated(self, analyzer):
        """One unexpandable schedule fails without stopping the batch."""
        schedules = [
            make_schedule("1"),
            make_schedule("2", start_date="not-a-date"),
            make_schedule("3"),
        ]
        store = InMemoryMetricsStore()
        recomputer = BatchRecomputer(InMemoryScheduleRepository(schedules), analyzer, store)

        summary = recomputer.recompute_all()

        assert summary.processed == 3
        assert summary.succeeded == 2
        assert summary.failed == 1
        assert summary.failures[0].schedule_id == "2"
        assert "ConfigurationError" in summary.failures[0].reason
        assert set(store.all()) == {"1", "3"}

    def test_store_failure_isolated(self, analyzer):
        schedules = [make_schedule("1"), make_schedule("2")]
        store = FlakyStore(bad_id="1")
        recomputer = BatchRecomputer(InMemoryScheduleRepository(schedules), analyzer, store)

        summary = recomputer.recompute_all()

        assert summary.failed == 1
        assert "disk full" in summary.failures[0].reason
        assert set(store.inner.all()) == {"2"}

    def test_bypasses_metrics_cache(self, analyzer):
        """Recompute always reanalyzes, even when a cached bundle exists."""
        schedule = make_schedule("1")
        cached = analyzer.analyze(schedule)
        recomputer = BatchRecomputer(
            InMemoryScheduleRepository([schedule]), analyzer, InMemoryMetricsStore()
        )

        recomputer.recompute_all()

        assert schedule.metrics is not cached
        assert schedule.metrics.to_dict() == cached.to_dict()

    def test_failures_sorted(self, analyzer):
        schedules = [make_schedule(sid, start_date=None) for sid in ("c", "a", "b")]
        recomputer = BatchRecomputer(
            InMemoryScheduleRepository(schedules), analyzer, InMemoryMetricsStore()
        )

        summary = recomputer.recompute_all()

        assert [f.schedule_id for f in summary.failures] == ["a", "b", "c"]
        assert summary.to_dict()["failed"] == 3

    def test_empty_repository(self, analyzer):
        recomputer = BatchRecomputer(InMemoryScheduleRepository(), analyzer, InMemoryMetricsStore())
        summary = recomputer.recompute_all()
        assert summary.processed == 0
