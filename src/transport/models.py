"""Data models for the transport layer."""

from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.transport.constants import (
    HEADER_SKIP_AUTH_LOGOUT,
    MUTATING_METHODS,
    TIMEOUT_DEFAULT_MS,
)
from src.transport.errors import RetryExhaustedError


class FailureClassification(str, Enum):
    """Classification of a failed response.

    - EXPECTED_AUTH_PROBE: 401 on an allow-listed auth endpoint
    - SESSION_EXPIRED: 401 elsewhere while the session is authenticated
    - FORGERY_TOKEN_REJECTED: 403/419, the CSRF token was refused
    - SERVER_FAULT: 5xx server error
    - UNCLASSIFIED: Anything else (network error, unmapped status)
    """

    EXPECTED_AUTH_PROBE = "EXPECTED_AUTH_PROBE"
    SESSION_EXPIRED = "SESSION_EXPIRED"
    FORGERY_TOKEN_REJECTED = "FORGERY_TOKEN_REJECTED"
    SERVER_FAULT = "SERVER_FAULT"
    UNCLASSIFIED = "UNCLASSIFIED"


class RequestContext(BaseModel):
    """One outbound call in flight.

    Immutable: decoration and retry produce copies. The ``retried`` flag
    starts False and a context that already carries ``retried=True`` can
    never produce another retry copy.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    method: Annotated[str, Field(min_length=1, description="HTTP method")]
    url: Annotated[str, Field(min_length=1, description="Target URL or path")]
    headers: dict[str, str] = Field(
        default_factory=dict, description="Request headers"
    )
    params: dict[str, Any] | None = Field(default=None, description="Query params")
    json_body: Any = Field(default=None, description="JSON-serializable body")
    form_data: dict[str, Any] | None = Field(
        default=None, description="Form fields (urlencoded or multipart)"
    )
    files: Any = Field(default=None, description="Multipart file parts")
    content: bytes | str | None = Field(default=None, description="Raw body")
    timeout_ms: Annotated[int, Field(gt=0, le=600_000)] = TIMEOUT_DEFAULT_MS
    operation_class: str = Field(default="default", description="Timeout tier")
    retried: bool = Field(default=False, description="Already retried once")

    @field_validator("method")
    @classmethod
    def normalize_method(cls, v: str) -> str:
        """Normalize the HTTP method to upper case."""
        return v.upper()

    @property
    def is_mutating(self) -> bool:
        """Check if the method changes server state."""
        return self.method in MUTATING_METHODS

    @property
    def is_multipart(self) -> bool:
        """Check if the body is a multipart form."""
        return self.files is not None

    @property
    def skip_auth_logout(self) -> bool:
        """Check if a 401 on this request must not end the session."""
        return self.get_header(HEADER_SKIP_AUTH_LOGOUT) == "true"

    @property
    def timeout_seconds(self) -> float:
        """Get the deadline in seconds."""
        return self.timeout_ms / 1000.0

    def get_header(self, name: str) -> str | None:
        """Look up a header case-insensitively.

        Args:
            name: Header name.

        Returns:
            Header value, or None if absent.
        """
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return None

    def with_header(self, name: str, value: str) -> "RequestContext":
        """Return a copy with one header set.

        Args:
            name: Header name.
            value: Header value.

        Returns:
            New context with the header replaced or added.
        """
        lowered = name.lower()
        headers = {k: v for k, v in self.headers.items() if k.lower() != lowered}
        headers[name] = value
        return self.model_copy(update={"headers": headers})

    def with_form_field(self, name: str, value: str) -> "RequestContext":
        """Return a copy with one form field set, replacing any stale value.

        Args:
            name: Form field name.
            value: Form field value.

        Returns:
            New context with the form field replaced or added.
        """
        form_data = {k: v for k, v in (self.form_data or {}).items() if k != name}
        form_data[name] = value
        return self.model_copy(update={"form_data": form_data})

    def for_retry(self) -> "RequestContext":
        """Return the copy used for the single retry attempt.

        The copy keeps the same body and deadline and is marked retried.

        Returns:
            New context with ``retried=True``.

        Raises:
            RetryExhaustedError: If this context was already retried.
        """
        if self.retried:
            msg = f"Request already retried: {self.method} {self.url}"
            raise RetryExhaustedError(msg)
        return self.model_copy(update={"retried": True})


class RetryDecision(BaseModel):
    """What the response interceptor does with a classified failure."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    classification: FailureClassification
    should_retry: bool = False
    should_invalidate_token: bool = False
    should_terminate_session: bool = False
    reason: str = ""
