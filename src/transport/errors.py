"""Error types for the transport layer."""

from enum import Enum
from typing import TYPE_CHECKING

import httpx


if TYPE_CHECKING:
    from src.transport.models import RequestContext


class RequestErrorClass(str, Enum):
    """Classification of transport failures.

    - HTTP_4XX: Server answered with a 4xx status
    - HTTP_5XX: Server answered with a 5xx status
    - NETWORK_TIMEOUT: Deadline expired before a response arrived
    - CONNECTION_ERROR: Could not establish connection
    - UNKNOWN: Unclassified error (no response)
    """

    HTTP_4XX = "HTTP_4XX"
    HTTP_5XX = "HTTP_5XX"
    NETWORK_TIMEOUT = "NETWORK_TIMEOUT"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    UNKNOWN = "UNKNOWN"


class TransportError(Exception):
    """Base exception for transport errors."""


class RequestFailedError(TransportError):
    """A dispatched request failed, with or without a response.

    Carries the request context that produced the failure so the response
    interceptor can classify it and, where allowed, retry it.

    Attributes:
        context: Request context that was dispatched.
        status_code: HTTP status code, or None when no response arrived.
        error_class: Classification of the failure.
        response: The failed response, when one arrived.
    """

    def __init__(
        self,
        message: str,
        context: "RequestContext",
        status_code: int | None = None,
        error_class: RequestErrorClass = RequestErrorClass.UNKNOWN,
        response: httpx.Response | None = None,
    ) -> None:
        """Initialize the request failure.

        Args:
            message: Human-readable error message.
            context: Request context that was dispatched.
            status_code: HTTP status code if a response arrived.
            error_class: Classification of the failure.
            response: The failed response if one arrived.
        """
        super().__init__(message)
        self.message = message
        self.context = context
        self.status_code = status_code
        self.error_class = error_class
        self.response = response

    @property
    def has_response(self) -> bool:
        """Check if the server answered at all."""
        return self.status_code is not None

    def to_dict(self) -> dict[str, str | int | bool | None]:
        """Convert error to dictionary for logging.

        Returns:
            Dictionary representation of the error.
        """
        return {
            "error_class": self.error_class.value,
            "message": self.message,
            "status_code": self.status_code,
            "method": self.context.method,
            "url": self.context.url,
            "retried": self.context.retried,
        }


class RetryExhaustedError(TransportError):
    """Raised when a retry copy is requested for an already-retried request."""
