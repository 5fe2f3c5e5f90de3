"""Unit tests for transport configuration and base URL resolution."""

import pytest
from pydantic import ValidationError

from src.settings.app import AppSettings
from src.transport.config import TransportConfig, resolve_api_base_url


def make_settings(**values: str) -> AppSettings:
    """Build settings from explicit values.

    model_validate skips the environment and .env sources.
    """
    return AppSettings.model_validate(values)


class TestResolveApiBaseUrl:
    """Tests for API base URL resolution order."""

    @pytest.mark.unit
    def test_development_uses_proxy_path(self) -> None:
        """Test that development builds go through the local proxy."""
        settings = make_settings(MODE="development", API_URL="https://x.test/api")
        assert resolve_api_base_url(settings) == "/api"

    @pytest.mark.unit
    def test_explicit_api_url(self) -> None:
        """Test that an explicit API URL wins outside development."""
        settings = make_settings(API_URL="https://staging.example.com/api")
        assert resolve_api_base_url(settings) == "https://staging.example.com/api"

    @pytest.mark.unit
    def test_platform_hostname(self) -> None:
        """Test the hosted platform special case."""
        settings = make_settings(APP_HOSTNAME="platform.shoptrack.app")
        assert resolve_api_base_url(settings) == "https://api.shoptrack.app/api"

    @pytest.mark.unit
    def test_components_with_custom_port(self) -> None:
        """Test building the URL from protocol, host and port."""
        settings = make_settings(
            API_PROTOCOL="http", API_HOST="localhost", API_PORT="8080"
        )
        assert resolve_api_base_url(settings) == "http://localhost:8080/api"

    @pytest.mark.unit
    @pytest.mark.parametrize("port", ["80", "443"])
    def test_components_omit_standard_port(self, port: str) -> None:
        """Test that standard ports are left out of the URL."""
        settings = make_settings(API_HOST="api.example.com", API_PORT=port)
        assert resolve_api_base_url(settings) == "https://api.example.com/api"

    @pytest.mark.unit
    def test_defaults(self) -> None:
        """Test the fallback when nothing is configured."""
        assert resolve_api_base_url(make_settings()) == "https://api.shoptrack.app/api"


class TestTransportConfig:
    """Tests for TransportConfig."""

    @pytest.mark.unit
    def test_defaults(self) -> None:
        """Test default header names and allow-list."""
        config = TransportConfig()

        assert config.csrf_header == "X-CSRF-TOKEN"
        assert config.csrf_form_field == "_token"
        assert "/auth/login" in config.auth_probe_paths
        assert "/categories" in config.auth_probe_paths
        assert config.timeouts.fast_ms == 5000

    @pytest.mark.unit
    def test_is_auth_probe_substring_match(self) -> None:
        """Test that allow-list entries match anywhere in the URL."""
        config = TransportConfig()

        assert config.is_auth_probe("/api/auth/me") is True
        assert config.is_auth_probe("/receipts/12") is False

    @pytest.mark.unit
    def test_rejects_relative_probe_path(self) -> None:
        """Test validation of allow-list entries."""
        with pytest.raises(ValidationError, match="must start with"):
            TransportConfig(auth_probe_paths=("auth/login",))

    @pytest.mark.unit
    def test_from_settings(self) -> None:
        """Test building the config from settings."""
        config = TransportConfig.from_settings(make_settings(MODE="development"))
        assert config.base_url == "/api"
