"""Metrics collection for the transport layer."""

from dataclasses import dataclass, field
from typing import ClassVar

from src.transport.models import FailureClassification


@dataclass
class TransportMetrics:
    """Metrics for outbound API requests.

    Singleton class that tracks request counts, failure classifications,
    CSRF retries, and session terminations.
    """

    requests_total: dict[int, int] = field(default_factory=dict)
    failures_total: dict[str, int] = field(default_factory=dict)
    csrf_retry_total: int = 0
    csrf_retry_success_total: int = 0
    csrf_token_fetch_failures_total: int = 0
    session_terminations_total: int = 0
    request_count: int = 0

    _instance: ClassVar["TransportMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "TransportMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def record_request(self, status_code: int) -> None:
        """Record a request that got a response.

        Args:
            status_code: HTTP status code.
        """
        self.requests_total[status_code] = self.requests_total.get(status_code, 0) + 1
        self.request_count += 1

    def record_failure(self, classification: FailureClassification) -> None:
        """Record a classified failure.

        Args:
            classification: Classification of the failure.
        """
        key = classification.value
        self.failures_total[key] = self.failures_total.get(key, 0) + 1

    def record_csrf_retry(self) -> None:
        """Record a CSRF retry attempt."""
        self.csrf_retry_total += 1

    def record_csrf_retry_success(self) -> None:
        """Record a CSRF retry that succeeded."""
        self.csrf_retry_success_total += 1

    def record_token_fetch_failure(self) -> None:
        """Record a failure to obtain a CSRF token."""
        self.csrf_token_fetch_failures_total += 1

    def record_session_termination(self) -> None:
        """Record a forced logout."""
        self.session_terminations_total += 1

    def to_dict(self) -> dict[str, int | dict[str, int] | dict[int, int]]:
        """Convert metrics to dictionary.

        Returns:
            Dictionary of metric name to value.
        """
        return {
            "requests_total": dict(self.requests_total),
            "failures_total": dict(self.failures_total),
            "csrf_retry_total": self.csrf_retry_total,
            "csrf_retry_success_total": self.csrf_retry_success_total,
            "csrf_token_fetch_failures_total": self.csrf_token_fetch_failures_total,
            "session_terminations_total": self.session_terminations_total,
            "request_count": self.request_count,
        }
