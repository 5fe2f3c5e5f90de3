"""Configuration models for the transport layer."""

from typing import Annotated

import structlog
from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.settings.app import AppSettings
from src.transport.constants import (
    COMPONENT_TRANSPORT,
    CSRF_FORM_FIELD,
    DEFAULT_API_HOST,
    DEFAULT_API_PROTOCOL,
    DEFAULT_AUTH_PROBE_PATHS,
    DEVELOPMENT_BASE_URL,
    DEVELOPMENT_MODE,
    HEADER_CSRF_TOKEN,
    MUTATING_METHODS,
    PLATFORM_API_URL,
    PLATFORM_HOSTNAME,
    STANDARD_PORTS,
)
from src.transport.timeouts import TimeoutPolicy


logger = structlog.get_logger()


def resolve_api_base_url(settings: AppSettings) -> str:
    """Build the API base URL from environment settings.

    Resolution order: development mode uses the local proxy path, then an
    explicit API_URL, then the platform hostname, then protocol/host/port
    components.

    Args:
        settings: Application settings.

    Returns:
        Base URL for API requests.
    """
    log = logger.bind(component=COMPONENT_TRANSPORT)

    if settings.mode == DEVELOPMENT_MODE:
        log.debug("api_base_url_resolved", source="development")
        return DEVELOPMENT_BASE_URL

    if settings.api_url:
        log.debug("api_base_url_resolved", source="api_url")
        return settings.api_url

    if settings.app_hostname == PLATFORM_HOSTNAME:
        log.debug("api_base_url_resolved", source="platform_hostname")
        return PLATFORM_API_URL

    protocol = settings.api_protocol or DEFAULT_API_PROTOCOL
    host = settings.api_host or DEFAULT_API_HOST
    port = settings.api_port

    if port and port not in STANDARD_PORTS:
        url = f"{protocol}://{host}:{port}/api"
    else:
        url = f"{protocol}://{host}/api"

    log.debug("api_base_url_resolved", source="components", url=url)
    return url


class TransportConfig(BaseModel):
    """Configuration for the interceptor pipeline.

    Central configuration for base URL, deadlines, CSRF placement, the verbs
    that need a token, and the allow-list of endpoints whose 401 answers are
    expected.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    base_url: str = Field(default="", description="Prefix for relative URLs")
    timeouts: TimeoutPolicy = Field(default_factory=TimeoutPolicy)
    csrf_header: Annotated[str, Field(min_length=1)] = HEADER_CSRF_TOKEN
    csrf_form_field: Annotated[str, Field(min_length=1)] = CSRF_FORM_FIELD
    auth_probe_paths: tuple[str, ...] = Field(
        default=DEFAULT_AUTH_PROBE_PATHS,
        description="URL fragments whose 401 responses are expected",
    )
    mutating_methods: frozenset[str] = Field(
        default=MUTATING_METHODS,
        description="Verbs that carry a CSRF token",
    )

    @field_validator("auth_probe_paths")
    @classmethod
    def validate_probe_paths(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        """Ensure allow-list entries are non-empty path fragments."""
        for path in v:
            if not path.startswith("/"):
                msg = f"Auth probe path must start with '/': {path!r}"
                raise ValueError(msg)
        return v

    @field_validator("mutating_methods")
    @classmethod
    def normalize_methods(cls, v: frozenset[str]) -> frozenset[str]:
        """Upper-case the configured verbs."""
        return frozenset(method.upper() for method in v)

    @classmethod
    def from_settings(cls, settings: AppSettings) -> "TransportConfig":
        """Build transport configuration from environment settings.

        Args:
            settings: Application settings.

        Returns:
            TransportConfig with the resolved base URL.
        """
        return cls(base_url=resolve_api_base_url(settings))

    def is_auth_probe(self, url: str) -> bool:
        """Check if a URL targets an endpoint expected to answer 401.

        Args:
            url: Request URL or path.

        Returns:
            True if any allow-listed fragment appears in the URL.
        """
        return any(path in url for path in self.auth_probe_paths)
