"""Protocol interfaces for collaborators of the transport layer."""

from typing import Protocol, runtime_checkable

import httpx

from src.transport.models import RequestContext


@runtime_checkable
class TokenManager(Protocol):
    """Issuer and cache of anti-forgery (CSRF) tokens.

    Owned outside this layer; only these three operations are used.
    """

    async def get_token(self) -> str:
        """Return the current CSRF token, fetching one if needed."""
        ...

    def invalidate_token(self) -> None:
        """Drop the cached token so the next fetch gets a fresh one."""
        ...

    async def initialize(self) -> None:
        """Re-initialize the manager (fetch a new token from the server)."""
        ...


@runtime_checkable
class SessionTerminator(Protocol):
    """Narrow view of the session store used to end expired sessions."""

    def is_authenticated(self) -> bool:
        """Return whether the session store believes the user is logged in."""
        ...

    async def logout(self) -> None:
        """Log the user out."""
        ...


@runtime_checkable
class AccessTokenProvider(Protocol):
    """Source of bearer access tokens for cross-origin deployments."""

    def get_access_token(self) -> str | None:
        """Return a non-expired access token, or None."""
        ...


@runtime_checkable
class Transport(Protocol):
    """Request/response primitive the interceptor pipeline wraps."""

    async def dispatch(self, context: RequestContext) -> httpx.Response:
        """Execute one request.

        Args:
            context: Fully decorated request context.

        Returns:
            Successful (2xx/3xx) response.

        Raises:
            RequestFailedError: On a non-success status, timeout, or
                connection failure.
        """
        ...
