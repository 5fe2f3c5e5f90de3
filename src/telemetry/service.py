"""Error logging service: capture, console output, and remote delivery."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import structlog

from src.observability.logging import bind_session_context
from src.settings.app import AppSettings
from src.telemetry.constants import (
    COMPONENT_TELEMETRY,
    CONTEXT_API_ERROR,
    CONTEXT_NETWORK_ERROR,
    CONTEXT_UNHANDLED_ASYNC_ERROR,
    CONTEXT_UNKNOWN,
    CONTEXT_VALIDATION_ERROR,
)
from src.telemetry.delivery import (
    BeaconSender,
    HttpBeaconSender,
    HttpReportSender,
    ReportSender,
)
from src.telemetry.lifecycle import ClientLifecycle
from src.telemetry.models import ErrorLoggingConfig, ErrorReport, generate_session_id
from src.telemetry.queue import TelemetryQueue
from src.telemetry.sanitize import sanitize_form_data


logger = structlog.get_logger()


class ErrorLoggingService:
    """Captures application errors and delivers them to a collector.

    Reports are written to the structured log when console logging is on
    and queued for remote delivery when remote logging is enabled with an
    endpoint. The queue drains in the background, again whenever the
    client becomes visible, and is flushed once on teardown.
    """

    def __init__(
        self,
        config: ErrorLoggingConfig | None = None,
        sender: ReportSender | None = None,
        beacon: BeaconSender | None = None,
        lifecycle: ClientLifecycle | None = None,
        user_id_provider: Callable[[], str | None] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the service.

        Args:
            config: Error logging configuration.
            sender: Sender for remote delivery attempts.
            beacon: Fire-and-forget sender for the final flush.
            lifecycle: Lifecycle signals to subscribe to.
            user_id_provider: Optional callable returning the current user.
            sleep: Awaitable sleep used for delivery backoff.
        """
        self._config = config or ErrorLoggingConfig()
        self._session_id = generate_session_id()
        self._user_id_provider = user_id_provider
        self._current_url = self._config.app_url
        self._report_tasks: set[asyncio.Task[None]] = set()
        self._queue = TelemetryQueue(
            config=self._config,
            sender=sender or HttpReportSender(),
            session_id=self._session_id,
            beacon=beacon,
            sleep=sleep,
        )
        self._log = logger.bind(
            component=COMPONENT_TELEMETRY,
            session_id=self._session_id,
        )

        self._lifecycle = lifecycle or ClientLifecycle()
        self._lifecycle.on_visible(self._queue.schedule_drain)
        self._lifecycle.on_before_unload(self._queue.flush)

    @property
    def session_id(self) -> str:
        """Get the session identifier."""
        return self._session_id

    @property
    def config(self) -> ErrorLoggingConfig:
        """Get the current configuration."""
        return self._config

    @property
    def queue(self) -> TelemetryQueue:
        """Get the pending report queue."""
        return self._queue

    @property
    def lifecycle(self) -> ClientLifecycle:
        """Get the lifecycle the service listens to."""
        return self._lifecycle

    def set_current_url(self, url: str) -> None:
        """Update the location attached to new reports."""
        self._current_url = url

    async def log_error(
        self,
        error: BaseException,
        context: str = CONTEXT_UNKNOWN,
        additional_info: dict[str, Any] | None = None,
    ) -> None:
        """Capture an error report.

        Never raises: telemetry must not break the caller.

        Args:
            error: The exception to report.
            context: Free-text context label.
            additional_info: Optional structured details.
        """
        try:
            report = ErrorReport.capture(
                error,
                context=context,
                session_id=self._session_id,
                url=self._current_url,
                user_agent=self._config.user_agent,
                additional_info=additional_info,
                user_id=self._current_user_id(),
            )
        except Exception as e:  # noqa: BLE001
            self._log.error("error_report_capture_failed", error=str(e))
            return

        if self._config.enable_console_logging:
            self._log_to_console(report)

        if self._config.is_remote_ready:
            self._queue.enqueue(report)

    async def log_network_error(
        self,
        error: BaseException,
        url: str,
        method: str = "GET",
    ) -> None:
        """Capture a network failure with the request that caused it."""
        await self.log_error(
            error,
            CONTEXT_NETWORK_ERROR,
            {"url": url, "method": method},
        )

    async def log_validation_error(
        self,
        error: BaseException,
        form_data: dict[str, Any],
    ) -> None:
        """Capture a validation failure with redacted form data."""
        await self.log_error(
            error,
            CONTEXT_VALIDATION_ERROR,
            {"formData": sanitize_form_data(form_data)},
        )

    async def log_api_error(
        self,
        error: BaseException,
        endpoint: str,
        status_code: int | None = None,
    ) -> None:
        """Capture an API failure with its endpoint and status code."""
        await self.log_error(
            error,
            CONTEXT_API_ERROR,
            {"endpoint": endpoint, "statusCode": status_code},
        )

    def update_config(self, **changes: Any) -> ErrorLoggingConfig:
        """Apply a partial configuration update.

        Args:
            **changes: ErrorLoggingConfig fields to change.

        Returns:
            The new, validated configuration.
        """
        merged = {**self._config.model_dump(), **changes}
        self._config = ErrorLoggingConfig.model_validate(merged)
        self._queue.config = self._config
        self._log.info(
            "error_logging_config_updated",
            fields=sorted(changes),
            remote_enabled=self._config.enable_remote_logging,
        )
        return self._config

    def enable_remote_logging(self, endpoint: str, api_key: str | None = None) -> None:
        """Turn on remote delivery to an endpoint."""
        self.update_config(
            endpoint=endpoint,
            api_key=api_key,
            enable_remote_logging=True,
        )

    def disable_remote_logging(self) -> None:
        """Turn off remote delivery."""
        self.update_config(enable_remote_logging=False)

    def install_loop_exception_handler(
        self, loop: asyncio.AbstractEventLoop | None = None
    ) -> None:
        """Report exceptions that escape tasks on an event loop.

        Args:
            loop: Loop to install on (defaults to the running loop).
        """
        target = loop or asyncio.get_running_loop()

        def _handler(
            handler_loop: asyncio.AbstractEventLoop, context: dict[str, Any]
        ) -> None:
            exception = context.get("exception")
            if exception is None:
                exception = RuntimeError(context.get("message", "Unhandled error"))
            task = handler_loop.create_task(
                self.log_error(
                    exception,
                    CONTEXT_UNHANDLED_ASYNC_ERROR,
                    {"message": context.get("message")},
                )
            )
            self._report_tasks.add(task)
            task.add_done_callback(self._report_tasks.discard)

        target.set_exception_handler(_handler)

    def _current_user_id(self) -> str | None:
        if self._user_id_provider is None:
            return None
        try:
            return self._user_id_provider()
        except Exception as e:  # noqa: BLE001
            self._log.debug("user_id_lookup_failed", error=str(e))
            return None

    def _log_to_console(self, report: ErrorReport) -> None:
        self._log.error(
            "error_report",
            timestamp=report.timestamp,
            context=report.context,
            error_name=report.error.name,
            error_message=report.error.message,
            url=report.url,
            additional_info=report.additional_info,
            stack=report.error.stack,
        )


def create_error_logging_service(
    settings: AppSettings,
    lifecycle: ClientLifecycle | None = None,
) -> ErrorLoggingService:
    """Build the service from environment settings.

    Installs the beacon sender for the final flush, hooks the flush into
    interpreter exit and binds the session id to all log events.

    Args:
        settings: Application settings.
        lifecycle: Lifecycle to subscribe to (a new one if omitted).

    Returns:
        Configured ErrorLoggingService.
    """
    lifecycle = lifecycle or ClientLifecycle()
    service = ErrorLoggingService(
        config=ErrorLoggingConfig.from_settings(settings),
        beacon=HttpBeaconSender(),
        lifecycle=lifecycle,
    )
    lifecycle.install_exit_hook()
    bind_session_context(service.session_id)
    return service
