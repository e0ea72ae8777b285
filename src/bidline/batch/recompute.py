"""Batch metrics recompute.

Recomputes and stores metrics for every schedule in a repository, fanning
out over a bounded thread pool. A failing schedule is recorded against its
id and the batch carries on.
"""

import logging
import threading
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Iterable, Optional

from bidline.analysis.analyzer import ScheduleAnalyzer
from bidline.domain.models import MetricsBundle, ScheduleInstance

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 4


class ScheduleRepository(ABC):
    """Source of schedules to recompute."""

    @abstractmethod
    def list_schedules(self) -> list[ScheduleInstance]:
        """Get every schedule."""
        pass


class MetricsStore(ABC):
    """Destination for recomputed metrics."""

    @abstractmethod
    def save_metrics(self, schedule: ScheduleInstance, metrics: MetricsBundle) -> None:
        """Persist the metrics of one schedule."""
        pass


class InMemoryScheduleRepository(ScheduleRepository):
    """Schedule repository backed by a list."""

    def __init__(self, schedules: Iterable[ScheduleInstance] = ()):
        self._schedules = list(schedules)

    def add(self, schedule: ScheduleInstance) -> None:
        self._schedules.append(schedule)

    def list_schedules(self) -> list[ScheduleInstance]:
        return list(self._schedules)


class InMemoryMetricsStore(MetricsStore):
    """Thread-safe metrics store backed by a dict keyed by schedule id."""

    def __init__(self):
        self._lock = threading.Lock()
        self._metrics: dict[str, MetricsBundle] = {}

    def save_metrics(self, schedule: ScheduleInstance, metrics: MetricsBundle) -> None:
        with self._lock:
            self._metrics[schedule.id] = metrics

    def get(self, schedule_id: str) -> Optional[MetricsBundle]:
        with self._lock:
            return self._metrics.get(schedule_id)

    def all(self) -> dict[str, MetricsBundle]:
        with self._lock:
            return dict(self._metrics)

    def __len__(self) -> int:
        with self._lock:
            return len(self._metrics)


@dataclass
class BatchFailure:
    """One schedule that could not be recomputed."""

    schedule_id: str
    reason: str


@dataclass
class BatchSummary:
    """Outcome of a batch recompute.

    Attributes:
        processed: Schedules attempted.
        succeeded: Schedules recomputed and stored.
        failed: Schedules that failed.
        failures: One entry per failed schedule, sorted by schedule id.
    """

    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    failures: list[BatchFailure] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "processed": self.processed,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "failures": [{"schedule_id": f.schedule_id, "reason": f.reason} for f in self.failures],
        }


class BatchRecomputer:
    """Recomputes metrics for all schedules in a repository.

    Usage:
        recomputer = BatchRecomputer(repository, analyzer, store)
        summary = recomputer.recompute_all()
    """

    def __init__(
        self,
        repository: ScheduleRepository,
        analyzer: ScheduleAnalyzer,
        store: MetricsStore,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ):
        self.repository = repository
        self.analyzer = analyzer
        self.store = store
        self.max_workers = max(1, max_workers)

    def recompute_one(self, schedule: ScheduleInstance, jurisdiction: Optional[str] = None) -> MetricsBundle:
        """Recompute, attach, and store one schedule's metrics.

        Raises:
            Exception: Whatever the analyzer or store raised.
        """
        metrics = self.analyzer.analyze(schedule, jurisdiction, use_cache=False)
        self.store.save_metrics(schedule, metrics)
        schedule.metrics = metrics
        return metrics

    def recompute_all(self, jurisdiction: Optional[str] = None) -> BatchSummary:
        """Recompute every schedule in the repository.

        Args:
            jurisdiction: Holiday jurisdiction override for all schedules.

        Returns:
            BatchSummary with per-schedule failures.
        """
        schedules = self.repository.list_schedules()
        summary = BatchSummary()
        logger.info("Recomputing metrics for %d schedules (%d workers)", len(schedules), self.max_workers)

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {
                executor.submit(self.recompute_one, schedule, jurisdiction): schedule
                for schedule in schedules
            }
            for future in as_completed(futures):
                schedule = futures[future]
                summary.processed += 1
                try:
                    future.result()
                except Exception as e:
                    logger.exception("Recompute failed for schedule %s", schedule.id)
                    summary.failed += 1
                    summary.failures.append(
                        BatchFailure(schedule_id=schedule.id, reason=f"{type(e).__name__}: {e}")
                    )
                else:
                    summary.succeeded += 1
                    logger.debug("Recomputed schedule %s", schedule.id)

        summary.failures.sort(key=lambda f: f.schedule_id)
        logger.info(
            "Recompute finished: %d processed, %d succeeded, %d failed",
            summary.processed,
            summary.succeeded,
            summary.failed,
        )
        return summary
