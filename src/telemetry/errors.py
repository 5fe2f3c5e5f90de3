"""Domain-specific error types for the telemetry module."""


class TelemetryDeliveryError(Exception):
    """Error report could not be delivered to the collector.

    Attributes:
        status_code: HTTP status code from the collector, 0 if none.
    """

    def __init__(self, message: str, status_code: int = 0) -> None:
        super().__init__(message)
        self.status_code = status_code


class TelemetryNotConfiguredError(TelemetryDeliveryError):
    """Remote delivery is disabled or has no endpoint."""
