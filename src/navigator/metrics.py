"""Metrics collection for the navigator layer."""

from dataclasses import dataclass, field
from typing import ClassVar

from src.navigator.models import FetchErrorKind


@dataclass
class NavigatorMetrics:
    """Metrics for fetches, deferred tasks and navigations.

    Singleton class shared by the fetch service, scheduler, executor
    and backend.
    """

    fetch_requests_total: dict[str, int] = field(default_factory=dict)
    fetch_failures_total: dict[str, int] = field(default_factory=dict)
    fetch_bytes_total: int = 0
    tasks_spawned_total: int = 0
    tasks_abandoned_total: int = 0
    tasks_completed_total: int = 0
    tasks_failed_total: int = 0
    navigations_opened_total: int = 0
    navigations_refused_total: int = 0

    _instance: ClassVar["NavigatorMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "NavigatorMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def record_fetch(self, scheme: str) -> None:
        """Record a fetch dispatched for a URL scheme.

        Args:
            scheme: Scheme of the resolved URL.
        """
        self.fetch_requests_total[scheme] = self.fetch_requests_total.get(scheme, 0) + 1

    def record_fetch_bytes(self, size: int) -> None:
        """Record the size of a successfully fetched body."""
        self.fetch_bytes_total += size

    def record_fetch_failure(self, kind: FetchErrorKind) -> None:
        """Record a fetch failure.

        Args:
            kind: Classification of the failure.
        """
        key = kind.value
        self.fetch_failures_total[key] = self.fetch_failures_total.get(key, 0) + 1

    def record_task_spawned(self) -> None:
        """Record a task handed to the scheduler."""
        self.tasks_spawned_total += 1

    def record_tasks_abandoned(self, count: int = 1) -> None:
        """Record tasks that will never be driven."""
        self.tasks_abandoned_total += count

    def record_task_completed(self) -> None:
        """Record a task driven to completion."""
        self.tasks_completed_total += 1

    def record_task_failed(self) -> None:
        """Record a task that finished with an error."""
        self.tasks_failed_total += 1

    def record_navigation(self, opened: bool) -> None:
        """Record the outcome of a navigation request."""
        if opened:
            self.navigations_opened_total += 1
        else:
            self.navigations_refused_total += 1

    def to_dict(self) -> dict[str, int | dict[str, int]]:
        """Convert metrics to dictionary.

        Returns:
            Dictionary of metric name to value.
        """
        return {
            "fetch_requests_total": dict(self.fetch_requests_total),
            "fetch_failures_total": dict(self.fetch_failures_total),
            "fetch_bytes_total": self.fetch_bytes_total,
            "tasks_spawned_total": self.tasks_spawned_total,
            "tasks_abandoned_total": self.tasks_abandoned_total,
            "tasks_completed_total": self.tasks_completed_total,
            "tasks_failed_total": self.tasks_failed_total,
            "navigations_opened_total": self.navigations_opened_total,
            "navigations_refused_total": self.navigations_refused_total,
        }
