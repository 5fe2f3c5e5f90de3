"""Data models for error reports and telemetry configuration."""

import secrets
import time
import traceback
from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from pydantic_core import to_jsonable_python

from src.settings.app import AppSettings
from src.telemetry.constants import (
    DEFAULT_MAX_QUEUE_SIZE,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_DELAY_MS,
    DEFAULT_USER_AGENT,
    SESSION_ID_ALPHABET,
    SESSION_ID_PREFIX,
    SESSION_ID_RANDOM_LENGTH,
)


def generate_session_id() -> str:
    """Generate a session identifier stable for one client lifetime.

    Returns:
        Identifier of the form ``session_<epoch-ms>_<9 random chars>``.
    """
    epoch_ms = int(time.time() * 1000)
    suffix = "".join(
        secrets.choice(SESSION_ID_ALPHABET) for _ in range(SESSION_ID_RANDOM_LENGTH)
    )
    return f"{SESSION_ID_PREFIX}_{epoch_ms}_{suffix}"


class ErrorDetails(BaseModel):
    """Name, message and stack of a captured exception."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: Annotated[str, Field(min_length=1)]
    message: str
    stack: str | None = None

    @classmethod
    def from_exception(cls, error: BaseException) -> "ErrorDetails":
        """Build error details from an exception.

        Args:
            error: The exception to describe.

        Returns:
            ErrorDetails with the formatted traceback when one exists.
        """
        stack = None
        if error.__traceback__ is not None:
            stack = "".join(
                traceback.format_exception(type(error), error, error.__traceback__)
            )
        return cls(name=type(error).__name__, message=str(error), stack=stack)


class ErrorReport(BaseModel):
    """Immutable error report queued for delivery to the collector."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    timestamp: str = Field(description="ISO-8601 UTC capture time")
    url: str = Field(default="", description="Location the error came from")
    user_agent: str = Field(default=DEFAULT_USER_AGENT)
    context: str = Field(description="Free-text context label")
    error: ErrorDetails
    session_id: Annotated[str, Field(min_length=1)]
    user_id: str | None = None
    additional_info: dict[str, Any] | None = None

    @classmethod
    def capture(
        cls,
        error: BaseException,
        context: str,
        session_id: str,
        url: str = "",
        user_agent: str = DEFAULT_USER_AGENT,
        additional_info: dict[str, Any] | None = None,
        user_id: str | None = None,
        now: datetime | None = None,
    ) -> "ErrorReport":
        """Build a report for an exception.

        Args:
            error: The exception to report.
            context: Free-text context label.
            session_id: Session identifier.
            url: Location the error came from.
            user_agent: Client identification string.
            additional_info: Optional structured details.
            user_id: Current user, when known.
            now: Capture time (defaults to the current UTC time).

        Returns:
            ErrorReport instance.
        """
        captured_at = (now or datetime.now(UTC)).astimezone(UTC)
        timestamp = captured_at.isoformat(timespec="milliseconds")
        return cls(
            timestamp=timestamp.replace("+00:00", "Z"),
            url=url,
            user_agent=user_agent,
            context=context,
            error=ErrorDetails.from_exception(error),
            session_id=session_id,
            user_id=user_id,
            additional_info=additional_info,
        )

    def to_wire(self) -> dict[str, Any]:
        """Convert the report to the collector's JSON shape.

        Values in ``additional_info`` that JSON cannot carry (datetimes,
        UUIDs, decimals) are converted by pydantic; anything else unknown
        becomes its string form.

        Returns:
            Dictionary with camelCase keys; optional keys only when set.
        """
        payload = self.model_dump(by_alias=True)
        if payload["error"]["stack"] is None:
            del payload["error"]["stack"]
        payload = {key: value for key, value in payload.items() if value is not None}
        wire: dict[str, Any] = to_jsonable_python(payload, fallback=str)
        return wire


class ErrorLoggingConfig(BaseModel):
    """Configuration for error reporting.

    Remote delivery only happens when it is enabled and an endpoint is set.
    Backoff between delivery attempts: retry_delay_ms * 2 ** attempt.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    endpoint: str | None = Field(default=None, description="Collector URL")
    api_key: str | None = Field(default=None, description="Bearer key")
    enable_console_logging: bool = True
    enable_remote_logging: bool = False
    max_retries: Annotated[int, Field(ge=0, le=10)] = DEFAULT_MAX_RETRIES
    retry_delay_ms: Annotated[int, Field(ge=0, le=60000)] = DEFAULT_RETRY_DELAY_MS
    max_queue_size: Annotated[int, Field(ge=1, le=100_000)] = DEFAULT_MAX_QUEUE_SIZE
    app_url: str = Field(default="", description="Location attached to reports")
    user_agent: Annotated[str, Field(min_length=1, max_length=500)] = (
        DEFAULT_USER_AGENT
    )

    @property
    def is_remote_ready(self) -> bool:
        """Check if reports can be sent to a collector."""
        return self.enable_remote_logging and bool(self.endpoint)

    def get_delay_ms(self, attempt: int) -> int:
        """Calculate delay before the next delivery attempt.

        Args:
            attempt: Failed attempt number (0-indexed).

        Returns:
            Delay in milliseconds.
        """
        return int(self.retry_delay_ms * (2**attempt))

    @classmethod
    def from_settings(cls, settings: AppSettings) -> "ErrorLoggingConfig":
        """Build configuration from environment settings.

        Remote delivery is enabled only when an endpoint is configured;
        console output follows the DEV flag.

        Args:
            settings: Application settings.

        Returns:
            ErrorLoggingConfig instance.
        """
        return cls(
            endpoint=settings.error_logging_endpoint,
            api_key=settings.error_logging_api_key,
            enable_console_logging=settings.dev,
            enable_remote_logging=bool(settings.error_logging_endpoint),
        )
