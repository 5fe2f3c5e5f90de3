"""Unit tests for failure classification and retry decisions."""

import pytest

from src.transport.classifier import classify_failure, decide
from src.transport.config import TransportConfig
from src.transport.models import FailureClassification


@pytest.fixture
def config() -> TransportConfig:
    """Create a transport config with the default allow-list."""
    return TransportConfig()


class TestClassifyFailure:
    """Tests for classify_failure."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "url",
        [
            "/auth/login",
            "/auth/me",
            "/auth/refresh-token",
            "/auth/passkey/options",
            "/passkey/register",
            "/auth/oauth/google/callback",
            "/categories",
            "https://api.example.com/api/auth/verify?code=1",
        ],
    )
    def test_allow_listed_401_is_expected(
        self, config: TransportConfig, url: str
    ) -> None:
        """Test that 401 on allow-listed endpoints is expected."""
        result = classify_failure(401, url, is_authenticated=True, config=config)
        assert result == FailureClassification.EXPECTED_AUTH_PROBE

    @pytest.mark.unit
    def test_protected_401_while_authenticated_expires_session(
        self, config: TransportConfig
    ) -> None:
        """Test that a protected 401 while logged in ends the session."""
        result = classify_failure(
            401, "/receipts", is_authenticated=True, config=config
        )
        assert result == FailureClassification.SESSION_EXPIRED

    @pytest.mark.unit
    def test_protected_401_while_anonymous_is_unclassified(
        self, config: TransportConfig
    ) -> None:
        """Test that a 401 with no session has nothing to terminate."""
        result = classify_failure(
            401, "/receipts", is_authenticated=False, config=config
        )
        assert result == FailureClassification.UNCLASSIFIED

    @pytest.mark.unit
    def test_skip_auth_logout_marks_probe(self, config: TransportConfig) -> None:
        """Test that an opted-out request is treated as an auth probe."""
        result = classify_failure(
            401,
            "/receipts",
            is_authenticated=True,
            config=config,
            skip_auth_logout=True,
        )
        assert result == FailureClassification.EXPECTED_AUTH_PROBE

    @pytest.mark.unit
    @pytest.mark.parametrize("status", [403, 419])
    @pytest.mark.parametrize("authenticated", [True, False])
    def test_forgery_statuses(
        self, config: TransportConfig, status: int, authenticated: bool
    ) -> None:
        """Test that 403 and 419 mean the CSRF token was rejected."""
        result = classify_failure(
            status, "/receipts", is_authenticated=authenticated, config=config
        )
        assert result == FailureClassification.FORGERY_TOKEN_REJECTED

    @pytest.mark.unit
    @pytest.mark.parametrize("status", [500, 502, 503, 599])
    def test_server_fault(self, config: TransportConfig, status: int) -> None:
        """Test that 5xx statuses are server faults."""
        result = classify_failure(status, "/x", is_authenticated=True, config=config)
        assert result == FailureClassification.SERVER_FAULT

    @pytest.mark.unit
    @pytest.mark.parametrize("status", [None, 400, 404, 409, 422, 429])
    def test_unclassified(self, config: TransportConfig, status: int | None) -> None:
        """Test that other outcomes are unclassified."""
        result = classify_failure(status, "/x", is_authenticated=True, config=config)
        assert result == FailureClassification.UNCLASSIFIED

    @pytest.mark.unit
    def test_custom_allow_list(self) -> None:
        """Test that the allow-list is configurable."""
        config = TransportConfig(auth_probe_paths=("/session/check",))

        assert (
            classify_failure(401, "/session/check", True, config)
            == FailureClassification.EXPECTED_AUTH_PROBE
        )
        assert (
            classify_failure(401, "/categories", True, config)
            == FailureClassification.SESSION_EXPIRED
        )


class TestDecide:
    """Tests for turning classifications into actions."""

    @pytest.mark.unit
    def test_forgery_first_attempt_retries(self) -> None:
        """Test that a first CSRF rejection invalidates and retries."""
        decision = decide(FailureClassification.FORGERY_TOKEN_REJECTED, retried=False)

        assert decision.should_invalidate_token is True
        assert decision.should_retry is True
        assert decision.should_terminate_session is False

    @pytest.mark.unit
    def test_forgery_after_retry_does_not_retry(self) -> None:
        """Test that the retry budget is one."""
        decision = decide(FailureClassification.FORGERY_TOKEN_REJECTED, retried=True)

        assert decision.should_invalidate_token is True
        assert decision.should_retry is False

    @pytest.mark.unit
    def test_session_expired_terminates(self) -> None:
        """Test that an expired session is terminated without retry."""
        decision = decide(FailureClassification.SESSION_EXPIRED, retried=False)

        assert decision.should_terminate_session is True
        assert decision.should_retry is False
        assert decision.should_invalidate_token is False

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "classification",
        [
            FailureClassification.EXPECTED_AUTH_PROBE,
            FailureClassification.SERVER_FAULT,
            FailureClassification.UNCLASSIFIED,
        ],
    )
    def test_passthrough_classifications(
        self, classification: FailureClassification
    ) -> None:
        """Test that other classifications take no side effects."""
        decision = decide(classification, retried=False)

        assert decision.classification == classification
        assert decision.should_retry is False
        assert decision.should_invalidate_token is False
        assert decision.should_terminate_session is False
