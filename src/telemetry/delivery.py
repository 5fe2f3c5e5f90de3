"""Senders delivering error reports to the collector."""

import json
from typing import Protocol, runtime_checkable

import httpx
import structlog

from src.telemetry.constants import (
    BEACON_TIMEOUT_SECONDS,
    COMPONENT_TELEMETRY,
    DEFAULT_DELIVERY_TIMEOUT_SECONDS,
)
from src.telemetry.errors import TelemetryDeliveryError
from src.telemetry.models import ErrorReport


logger = structlog.get_logger()


@runtime_checkable
class ReportSender(Protocol):
    """Single delivery attempt of one report (no retries)."""

    async def send(
        self,
        endpoint: str,
        report: ErrorReport,
        api_key: str | None = None,
    ) -> None:
        """Deliver a report.

        Raises:
            TelemetryDeliveryError: If the collector did not accept it.
        """
        ...


@runtime_checkable
class BeaconSender(Protocol):
    """Fire-and-forget sender usable while the client is shutting down."""

    def send(self, url: str, payload: str) -> bool:
        """Hand a payload off for delivery without awaiting.

        Returns:
            True if the payload was accepted for delivery.
        """
        ...


class HttpReportSender:
    """POSTs error reports as JSON with ``httpx.AsyncClient``."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout_seconds: float = DEFAULT_DELIVERY_TIMEOUT_SECONDS,
    ) -> None:
        """Initialize the sender.

        Args:
            client: Async client to use; one is created if omitted.
            timeout_seconds: Deadline per delivery attempt.
        """
        self._client = client or httpx.AsyncClient()
        self._owns_client = client is None
        self._timeout = timeout_seconds

    async def send(
        self,
        endpoint: str,
        report: ErrorReport,
        api_key: str | None = None,
    ) -> None:
        """Deliver a report.

        Args:
            endpoint: Collector URL.
            report: Report to deliver.
            api_key: Optional bearer key.

        Raises:
            TelemetryDeliveryError: On a network error or non-2xx answer.
        """
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"

        try:
            response = await self._client.post(
                endpoint,
                headers=headers,
                content=json.dumps(report.to_wire()),
                timeout=self._timeout,
            )
        except httpx.HTTPError as e:
            msg = f"Error report delivery failed: {e}"
            raise TelemetryDeliveryError(msg) from e

        if not response.is_success:
            msg = f"HTTP {response.status_code}: {response.reason_phrase}"
            raise TelemetryDeliveryError(msg, status_code=response.status_code)

    async def aclose(self) -> None:
        """Close the HTTP client if this sender created it."""
        if self._owns_client:
            await self._client.aclose()


class HttpBeaconSender:
    """Best-effort synchronous POST with a short deadline.

    Used only for the final flush, where nothing can be awaited.
    """

    def __init__(self, timeout_seconds: float = BEACON_TIMEOUT_SECONDS) -> None:
        self._timeout = timeout_seconds
        self._log = logger.bind(component=COMPONENT_TELEMETRY)

    def send(self, url: str, payload: str) -> bool:
        """POST a payload, reporting whether the collector accepted it.

        Args:
            url: Collector URL.
            payload: Serialized JSON body.

        Returns:
            True if the collector answered with a 2xx status.
        """
        try:
            response = httpx.post(
                url,
                content=payload,
                headers={"Content-Type": "application/json"},
                timeout=self._timeout,
            )
        except httpx.HTTPError as e:
            self._log.warning("beacon_send_failed", error=str(e))
            return False
        return response.is_success
