"""Unit tests for the error logging service."""

import asyncio
import json
from collections.abc import Generator

import pytest
import structlog
from structlog.testing import capture_logs

from src.observability.logging import clear_session_context
from src.settings.app import AppSettings
from src.telemetry.delivery import HttpBeaconSender
from src.telemetry.lifecycle import ClientLifecycle
from src.telemetry.metrics import TelemetryMetrics
from src.telemetry.models import ErrorLoggingConfig
from src.telemetry.service import ErrorLoggingService, create_error_logging_service
from tests.helpers.fakes import RecordingBeacon, RecordingSender, RecordingSleep


ENDPOINT = "https://collector.test/errors"


@pytest.fixture(autouse=True)
def reset_metrics() -> Generator[None]:
    """Reset singleton before and after each test."""
    TelemetryMetrics.reset()
    yield
    TelemetryMetrics.reset()


def make_service(
    config: ErrorLoggingConfig | None = None,
    beacon: RecordingBeacon | None = None,
    user_id: str | None = None,
) -> tuple[ErrorLoggingService, RecordingSender, ClientLifecycle]:
    """Create a service with recording collaborators."""
    sender = RecordingSender()
    lifecycle = ClientLifecycle()
    service = ErrorLoggingService(
        config=config
        or ErrorLoggingConfig(endpoint=ENDPOINT, enable_remote_logging=True),
        sender=sender,
        beacon=beacon,
        lifecycle=lifecycle,
        user_id_provider=lambda: user_id,
        sleep=RecordingSleep(),
    )
    return service, sender, lifecycle


class TestLogError:
    """Tests for error capture."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_console_and_remote(self) -> None:
        """Test that a report is logged and delivered."""
        with capture_logs() as logs:
            service, sender, _ = make_service(user_id="u-7")
            await service.log_error(ValueError("bad"), "Checkout", {"step": 2})
            await service.queue.wait_for_drain()

        console = [entry for entry in logs if entry["event"] == "error_report"]
        assert len(console) == 1
        assert console[0]["context"] == "Checkout"
        assert console[0]["error_message"] == "bad"

        report = sender.delivered[0]
        assert report.session_id == service.session_id
        assert report.user_id == "u-7"
        assert report.additional_info == {"step": 2}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_default_context(self) -> None:
        """Test the default context label."""
        service, sender, _ = make_service()

        await service.log_error(RuntimeError("x"))
        await service.queue.wait_for_drain()

        assert sender.delivered[0].context == "Unknown"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_remote_disabled_only_logs(self) -> None:
        """Test that nothing is queued while remote delivery is off."""
        service, sender, _ = make_service(config=ErrorLoggingConfig())

        await service.log_error(RuntimeError("x"))

        assert len(service.queue) == 0
        assert sender.calls == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_console_disabled(self) -> None:
        """Test that console output can be turned off."""
        config = ErrorLoggingConfig(enable_console_logging=False)

        with capture_logs() as logs:
            service, _, _ = make_service(config=config)
            await service.log_error(RuntimeError("x"))

        assert not any(entry["event"] == "error_report" for entry in logs)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_user_lookup_failure_is_tolerated(self) -> None:
        """Test that a failing user lookup leaves userId unset."""

        def broken() -> str | None:
            msg = "no user store"
            raise RuntimeError(msg)

        sender = RecordingSender()
        service = ErrorLoggingService(
            config=ErrorLoggingConfig(endpoint=ENDPOINT, enable_remote_logging=True),
            sender=sender,
            user_id_provider=broken,
        )

        await service.log_error(RuntimeError("x"))
        await service.queue.wait_for_drain()

        assert sender.delivered[0].user_id is None


class TestConvenienceWrappers:
    """Tests for the context-specific logging helpers."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_network_error(self) -> None:
        """Test the network error context and details."""
        service, sender, _ = make_service()

        await service.log_network_error(ConnectionError("down"), "/receipts", "POST")
        await service.queue.wait_for_drain()

        report = sender.delivered[0]
        assert report.context == "Network Error"
        assert report.additional_info == {"url": "/receipts", "method": "POST"}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_validation_error_redacts_form(self) -> None:
        """Test that sensitive form fields never leave the client."""
        service, sender, _ = make_service()

        await service.log_validation_error(
            ValueError("invalid"), {"email": "a@b.test", "password": "hunter2"}
        )
        await service.queue.wait_for_drain()

        report = sender.delivered[0]
        assert report.context == "Validation Error"
        assert report.additional_info == {
            "formData": {"email": "a@b.test", "password": "[REDACTED]"}
        }

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_api_error(self) -> None:
        """Test the API error context and details."""
        service, sender, _ = make_service()

        await service.log_api_error(RuntimeError("fail"), "/receipts", 500)
        await service.queue.wait_for_drain()

        report = sender.delivered[0]
        assert report.context == "API Error"
        assert report.additional_info == {"endpoint": "/receipts", "statusCode": 500}


class TestConfiguration:
    """Tests for runtime configuration changes."""

    @pytest.mark.unit
    def test_enable_remote_logging(self) -> None:
        """Test enabling remote delivery with an endpoint and key."""
        service, _, _ = make_service(config=ErrorLoggingConfig())

        service.enable_remote_logging(ENDPOINT, api_key="key")

        assert service.config.is_remote_ready is True
        assert service.config.api_key == "key"
        assert service.queue.config is service.config

    @pytest.mark.unit
    def test_disable_remote_logging(self) -> None:
        """Test turning remote delivery off."""
        service, _, _ = make_service()

        service.disable_remote_logging()

        assert service.config.enable_remote_logging is False
        assert service.queue.config.is_remote_ready is False

    @pytest.mark.unit
    def test_update_config_merges(self) -> None:
        """Test that partial updates keep the other fields."""
        service, _, _ = make_service()

        service.update_config(max_retries=1)

        assert service.config.max_retries == 1
        assert service.config.endpoint == ENDPOINT

    @pytest.mark.unit
    def test_update_config_validates(self) -> None:
        """Test that invalid updates are rejected and the old config kept."""
        service, _, _ = make_service()
        before = service.config

        with pytest.raises(ValueError):
            service.update_config(max_retries=-5)

        assert service.config is before


class TestLifecycleWiring:
    """Tests for visibility and teardown handling."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_before_unload_flushes(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that teardown flushes pending reports through the beacon."""
        beacon = RecordingBeacon()
        service, sender, lifecycle = make_service(beacon=beacon)
        monkeypatch.setattr(service.queue, "schedule_drain", lambda: None)
        await service.log_error(RuntimeError("first"))
        await service.log_error(RuntimeError("second"))

        lifecycle.before_unload()

        url, payload = beacon.payloads[0]
        body = json.loads(payload)
        assert url == ENDPOINT
        assert body["sessionId"] == service.session_id
        assert [e["error"]["message"] for e in body["errors"]] == ["first", "second"]
        assert len(service.queue) == 0
        assert sender.calls == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_visible_restarts_drain(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test that becoming visible schedules a drain."""
        service, sender, lifecycle = make_service()
        monkeypatch.setattr(service.queue, "schedule_drain", lambda: None)
        await service.log_error(RuntimeError("x"))
        assert sender.calls == []

        lifecycle.visibility_changed(hidden=False)
        await service.queue.wait_for_drain()

        assert len(sender.delivered) == 1


class TestLoopExceptionHandler:
    """Tests for reporting exceptions escaping asyncio tasks."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unhandled_task_exception_reported(self) -> None:
        """Test that the loop handler captures unhandled task errors."""
        service, sender, _ = make_service()
        loop = asyncio.get_running_loop()
        previous = loop.get_exception_handler()
        service.install_loop_exception_handler(loop)
        try:
            loop.call_exception_handler(
                {
                    "message": "Task exception was never retrieved",
                    "exception": KeyError("k"),
                }
            )
            assert len(service._report_tasks) == 1
            await asyncio.sleep(0)
            await service.queue.wait_for_drain()
        finally:
            loop.set_exception_handler(previous)
        await asyncio.sleep(0)
        assert service._report_tasks == set()

        report = sender.delivered[0]
        assert report.context == "Unhandled Async Error"
        assert report.error.name == "KeyError"


class TestFactory:
    """Tests for building the service from settings."""

    @pytest.mark.unit
    def test_create_from_settings(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that settings configure remote delivery and teardown flush."""
        monkeypatch.setattr("atexit.register", lambda fn: fn)
        settings = AppSettings.model_validate({"ERROR_LOGGING_ENDPOINT": ENDPOINT})

        service = create_error_logging_service(settings)

        assert service.config.is_remote_ready is True
        assert isinstance(service.queue._beacon, HttpBeaconSender)
        assert (
            structlog.contextvars.get_contextvars()["session_id"] == service.session_id
        )
        clear_session_context()
