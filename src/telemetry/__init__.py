"""Client-side error reporting with queued, retried delivery.

This module captures errors and ships them to a remote collector:
- Error reports with session, user and context details
- Console output through the structured log
- In-memory queue drained with exponential backoff
- Final flush through a fire-and-forget beacon on teardown
"""

from src.telemetry.delivery import (
    BeaconSender,
    HttpBeaconSender,
    HttpReportSender,
    ReportSender,
)
from src.telemetry.errors import TelemetryDeliveryError, TelemetryNotConfiguredError
from src.telemetry.lifecycle import ClientLifecycle
from src.telemetry.metrics import TelemetryMetrics
from src.telemetry.models import (
    ErrorDetails,
    ErrorLoggingConfig,
    ErrorReport,
    generate_session_id,
)
from src.telemetry.queue import TelemetryQueue
from src.telemetry.sanitize import is_sensitive_field, sanitize_form_data
from src.telemetry.service import ErrorLoggingService, create_error_logging_service


__all__ = [
    # Service
    "ErrorLoggingService",
    "create_error_logging_service",
    "TelemetryQueue",
    "ClientLifecycle",
    # Delivery
    "ReportSender",
    "BeaconSender",
    "HttpReportSender",
    "HttpBeaconSender",
    # Models
    "ErrorReport",
    "ErrorDetails",
    "ErrorLoggingConfig",
    "generate_session_id",
    # Sanitization
    "is_sensitive_field",
    "sanitize_form_data",
    # Errors
    "TelemetryDeliveryError",
    "TelemetryNotConfiguredError",
    # Metrics
    "TelemetryMetrics",
]
