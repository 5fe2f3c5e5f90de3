"""In-memory error report queue with single-flight drain and final flush.

Runs on one asyncio event loop. The ``is_processing`` guard is read and set
with no ``await`` in between, so no other task can observe it half-updated;
a multi-threaded caller would need a lock around ``drain``.
"""

import asyncio
import json
from collections import deque
from collections.abc import Awaitable, Callable
from typing import Any

import structlog

from src.telemetry.constants import COMPONENT_TELEMETRY
from src.telemetry.delivery import BeaconSender, ReportSender
from src.telemetry.errors import TelemetryNotConfiguredError
from src.telemetry.metrics import TelemetryMetrics
from src.telemetry.models import ErrorLoggingConfig, ErrorReport


logger = structlog.get_logger()


class TelemetryQueue:
    """FIFO of pending error reports drained by one worker at a time.

    A report leaves the head only after it was delivered or its retry
    budget ran out, in which case it is dropped rather than requeued.
    Only the head is ever in flight.
    """

    def __init__(
        self,
        config: ErrorLoggingConfig,
        sender: ReportSender,
        session_id: str,
        beacon: BeaconSender | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the queue.

        Args:
            config: Error logging configuration.
            sender: Sender used for each delivery attempt.
            session_id: Session identifier included in flush payloads.
            beacon: Optional fire-and-forget sender for the final flush.
            sleep: Awaitable sleep used for backoff delays.
        """
        self.config = config
        self._sender = sender
        self._session_id = session_id
        self._beacon = beacon
        self._sleep = sleep
        self._pending: deque[ErrorReport] = deque()
        self._is_processing = False
        self._drain_tasks: set[asyncio.Task[None]] = set()
        self._metrics = TelemetryMetrics.get_instance()
        self._log = logger.bind(component=COMPONENT_TELEMETRY, session_id=session_id)

    def __len__(self) -> int:
        return len(self._pending)

    @property
    def is_processing(self) -> bool:
        """Check if a drain loop is running."""
        return self._is_processing

    def snapshot(self) -> list[ErrorReport]:
        """Get the pending reports in delivery order."""
        return list(self._pending)

    def enqueue(self, report: ErrorReport) -> None:
        """Append a report and schedule a drain.

        When the queue is full the oldest pending report is dropped.

        Args:
            report: Report to deliver.
        """
        if len(self._pending) >= self.config.max_queue_size:
            dropped = self._pending.popleft()
            self._metrics.record_dropped()
            self._log.warning(
                "error_report_queue_full",
                max_queue_size=self.config.max_queue_size,
                dropped_context=dropped.context,
            )

        self._pending.append(report)
        self._metrics.record_enqueued()
        self.schedule_drain()

    def schedule_drain(self) -> None:
        """Start a drain on the running event loop, if there is one.

        Without a running loop the reports stay queued until the next drain
        or the final flush.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._log.debug("drain_deferred_no_event_loop", pending=len(self._pending))
            return

        task = loop.create_task(self.drain())
        self._drain_tasks.add(task)
        task.add_done_callback(self._drain_tasks.discard)

    async def wait_for_drain(self) -> None:
        """Wait until every scheduled drain has finished."""
        while True:
            pending = [task for task in self._drain_tasks if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending)

    async def drain(self) -> None:
        """Deliver pending reports in order.

        No-op while another drain runs or when nothing is pending. Clears
        the queue when remote delivery is not configured. Stops at the first
        report that could not be delivered; the next enqueue or visibility
        change restarts it.
        """
        if not self.config.is_remote_ready:
            if self._pending:
                self._log.debug(
                    "error_queue_cleared_remote_disabled", count=len(self._pending)
                )
                self._pending.clear()
            return

        if self._is_processing or not self._pending:
            return

        self._is_processing = True
        try:
            while self._pending:
                report = self._pending[0]
                try:
                    delivered = await self._deliver(report)
                except TelemetryNotConfiguredError:
                    # Stays at the head for the next drain
                    break
                self._remove_head(report)
                if not delivered:
                    self._metrics.record_dropped()
                    break
        finally:
            self._is_processing = False

    def _remove_head(self, report: ErrorReport) -> None:
        # A flush or overflow during delivery may already have removed it
        if self._pending and self._pending[0] is report:
            self._pending.popleft()

    async def _deliver(self, report: ErrorReport) -> bool:
        """Deliver one report, retrying with exponential backoff.

        Args:
            report: Report to deliver.

        Returns:
            True if delivered, False once the retry budget is exhausted.

        Raises:
            TelemetryNotConfiguredError: If remote delivery was disabled.
        """
        config = self.config
        if not config.is_remote_ready or config.endpoint is None:
            msg = "No remote logging endpoint configured"
            raise TelemetryNotConfiguredError(msg)

        last_error: Exception | None = None
        for attempt in range(config.max_retries + 1):
            if attempt > 0:
                delay_ms = config.get_delay_ms(attempt - 1)
                self._log.debug(
                    "error_report_retry",
                    attempt=attempt,
                    delay_ms=delay_ms,
                    max_retries=config.max_retries,
                )
                await self._sleep(delay_ms / 1000.0)

            self._metrics.record_attempt()
            try:
                await self._sender.send(config.endpoint, report, config.api_key)
            except Exception as e:  # noqa: BLE001
                last_error = e
                continue

            self._metrics.record_delivered()
            return True

        self._log.error(
            "error_report_delivery_failed",
            attempts=config.max_retries + 1,
            context=report.context,
            error=str(last_error),
        )
        return False

    def flush(self) -> None:
        """Hand every pending report to the beacon sender in one payload.

        Synchronous and never raises: called while the client is going
        away, when no async work can be awaited. Without a beacon sender or
        endpoint the reports are left in place and lost with the process.
        """
        if not self._pending:
            return

        endpoint = self.config.endpoint
        if self._beacon is None or not endpoint:
            self._log.debug("flush_skipped", pending=len(self._pending))
            return

        reports = list(self._pending)
        self._pending.clear()
        # Encoded one by one so a bad entry only loses itself
        errors: list[dict[str, Any]] = []
        for report in reports:
            try:
                errors.append(report.to_wire())
            except (TypeError, ValueError) as e:
                self._log.error(
                    "flush_report_unserializable", context=report.context, error=str(e)
                )
        if not errors:
            self._metrics.record_flush_failure()
            return

        try:
            payload = json.dumps({"sessionId": self._session_id, "errors": errors})
            accepted = self._beacon.send(endpoint, payload)
        except Exception as e:  # noqa: BLE001
            self._metrics.record_flush_failure()
            self._log.error("flush_failed", count=len(errors), error=str(e))
            return

        if not accepted:
            self._metrics.record_flush_failure()
            self._log.warning("flush_not_accepted", count=len(errors))
            return

        self._metrics.record_flushed(len(reports))
        self._log.debug("flush_complete", count=len(errors))
