"""Metrics collection for error report delivery."""

from dataclasses import dataclass
from typing import ClassVar


@dataclass
class TelemetryMetrics:
    """Metrics for the error report queue.

    Singleton class that tracks enqueued, delivered, dropped and flushed
    reports.
    """

    reports_enqueued_total: int = 0
    reports_delivered_total: int = 0
    reports_dropped_total: int = 0
    reports_flushed_total: int = 0
    delivery_attempts_total: int = 0
    flush_failures_total: int = 0

    _instance: ClassVar["TelemetryMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "TelemetryMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def record_enqueued(self) -> None:
        """Record a report added to the queue."""
        self.reports_enqueued_total += 1

    def record_attempt(self) -> None:
        """Record one delivery attempt."""
        self.delivery_attempts_total += 1

    def record_delivered(self) -> None:
        """Record a delivered report."""
        self.reports_delivered_total += 1

    def record_dropped(self, count: int = 1) -> None:
        """Record reports dropped after exhaustion or overflow."""
        self.reports_dropped_total += count

    def record_flushed(self, count: int) -> None:
        """Record reports handed to the beacon sender."""
        self.reports_flushed_total += count

    def record_flush_failure(self) -> None:
        """Record a failed final flush."""
        self.flush_failures_total += 1

    def to_dict(self) -> dict[str, int]:
        """Convert metrics to dictionary.

        Returns:
            Dictionary of metric name to value.
        """
        return {
            "reports_enqueued_total": self.reports_enqueued_total,
            "reports_delivered_total": self.reports_delivered_total,
            "reports_dropped_total": self.reports_dropped_total,
            "reports_flushed_total": self.reports_flushed_total,
            "delivery_attempts_total": self.delivery_attempts_total,
            "flush_failures_total": self.flush_failures_total,
        }
