"""Unit tests for the session termination trigger."""

from collections.abc import Generator
from unittest.mock import AsyncMock, MagicMock

import pytest
from structlog.testing import capture_logs

from src.transport.metrics import TransportMetrics
from src.transport.session import SessionTerminationTrigger
from tests.helpers.fakes import FakeSession, UnavailableSession


@pytest.fixture(autouse=True)
def reset_metrics() -> Generator[None]:
    """Reset singleton before and after each test."""
    TransportMetrics.reset()
    yield
    TransportMetrics.reset()


class TestSessionTerminationTrigger:
    """Tests for SessionTerminationTrigger."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_logs_out_authenticated_session(self) -> None:
        """Test that an authenticated session is ended."""
        session = FakeSession(authenticated=True)
        trigger = SessionTerminationTrigger(session)

        assert await trigger.maybe_terminate_session() is True
        assert session.logout_calls == 1
        assert session.authenticated is False
        assert TransportMetrics.get_instance().session_terminations_total == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_skips_when_already_logged_out(self) -> None:
        """Test that logout is not invoked twice."""
        session = FakeSession(authenticated=False)
        trigger = SessionTerminationTrigger(session)

        assert await trigger.maybe_terminate_session() is False
        assert session.logout_calls == 0

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_logout_failure_is_logged_not_raised(self) -> None:
        """Test that a failing logout does not propagate."""
        session = FakeSession(authenticated=True, fail_logout=True)

        with capture_logs() as logs:
            trigger = SessionTerminationTrigger(session)
            result = await trigger.maybe_terminate_session()

        assert result is True
        events = [entry["event"] for entry in logs]
        assert "session_expired_logging_out" in events
        assert "session_logout_failed" in events

    @pytest.mark.unit
    def test_reads_live_flag(self) -> None:
        """Test that the authenticated flag is read on every call."""
        session = FakeSession(authenticated=True)
        trigger = SessionTerminationTrigger(session)

        assert trigger.is_authenticated() is True
        session.authenticated = False
        assert trigger.is_authenticated() is False

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_logout_awaited_once(self) -> None:
        """Test the terminator protocol calls."""
        terminator = MagicMock()
        terminator.is_authenticated.return_value = True
        terminator.logout = AsyncMock()
        trigger = SessionTerminationTrigger(terminator)

        await trigger.maybe_terminate_session()

        terminator.logout.assert_awaited_once_with()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unreadable_session_skips_logout(self) -> None:
        """Test that a failing state lookup reads as logged out."""
        session = UnavailableSession()

        with capture_logs() as logs:
            trigger = SessionTerminationTrigger(session)
            result = await trigger.maybe_terminate_session()

        assert result is False
        assert session.logout_calls == 0
        assert [entry["event"] for entry in logs][0] == "session_state_lookup_failed"
