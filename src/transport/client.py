"""API client layering the interceptor pipeline over the transport."""

from types import TracebackType
from typing import Any

import httpx
import structlog

from src.transport.config import TransportConfig
from src.transport.constants import COMPONENT_TRANSPORT, HEADER_SKIP_AUTH_LOGOUT
from src.transport.errors import RequestFailedError
from src.transport.interceptors import RequestInterceptor, ResponseInterceptor
from src.transport.models import RequestContext
from src.transport.protocols import (
    AccessTokenProvider,
    SessionTerminator,
    TokenManager,
    Transport,
)
from src.transport.session import SessionTerminationTrigger
from src.transport.state_machine import RequestAttemptStateMachine
from src.transport.timeouts import OperationClass
from src.transport.transport import HttpxTransport


logger = structlog.get_logger()


class ApiClient:
    """Outbound API client used by every domain service.

    Each request is decorated by the request interceptor, executed by the
    transport, and on failure handed to the response interceptor, which
    may retry it once (CSRF rejection), end the session (unexpected 401),
    or re-raise it.
    """

    def __init__(
        self,
        config: TransportConfig,
        token_manager: TokenManager,
        session_terminator: SessionTerminator,
        transport: Transport | None = None,
        access_token_provider: AccessTokenProvider | None = None,
    ) -> None:
        """Initialize the API client.

        Args:
            config: Transport configuration.
            token_manager: CSRF token issuer.
            session_terminator: Session store view used on expired sessions.
            transport: Transport to use. Defaults to an httpx transport on a
                client owned by this instance.
            access_token_provider: Optional source of bearer tokens.
        """
        self._config = config
        self._owned_http_client: httpx.AsyncClient | None = None
        if transport is None:
            self._owned_http_client = httpx.AsyncClient(base_url=config.base_url)
            transport = HttpxTransport(self._owned_http_client)
        self._transport = transport
        self._request_interceptor = RequestInterceptor(
            token_manager=token_manager,
            config=config,
            access_token_provider=access_token_provider,
        )
        self._response_interceptor = ResponseInterceptor(
            transport=transport,
            token_manager=token_manager,
            session_trigger=SessionTerminationTrigger(session_terminator),
            config=config,
        )
        self._log = logger.bind(component=COMPONENT_TRANSPORT)

    @property
    def config(self) -> TransportConfig:
        """Get the transport configuration."""
        return self._config

    async def request(
        self,
        method: str,
        url: str,
        *,
        operation_class: str | OperationClass = OperationClass.DEFAULT,
        timeout_ms: int | None = None,
        params: dict[str, Any] | None = None,
        json: Any = None,
        data: dict[str, Any] | None = None,
        files: Any = None,
        content: bytes | str | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Send a request through the interceptor pipeline.

        Args:
            method: HTTP method.
            url: URL or path relative to the base URL.
            operation_class: Timeout tier for the request.
            timeout_ms: Explicit deadline overriding the tier.
            params: Query parameters.
            json: JSON body.
            data: Form fields.
            files: Multipart file parts.
            content: Raw body.
            headers: Extra request headers.

        Returns:
            Response of the first attempt, or of the single CSRF retry.

        Raises:
            RequestFailedError: If the request failed and was not recovered.
        """
        resolved_timeout = timeout_ms or self._config.timeouts.timeout_for(
            operation_class
        )
        context = RequestContext(
            method=method,
            url=url,
            headers=dict(headers or {}),
            params=params,
            json_body=json,
            form_data=data,
            files=files,
            content=content,
            timeout_ms=resolved_timeout,
            operation_class=str(getattr(operation_class, "value", operation_class)),
        )
        state_machine = RequestAttemptStateMachine(context.method, context.url)

        decorated = await self._request_interceptor.decorate(context)
        state_machine.to_dispatched()

        try:
            response = await self._transport.dispatch(decorated)
        except RequestFailedError as e:
            try:
                response = await self._response_interceptor.handle_failure(
                    e, state_machine
                )
            except RequestFailedError:
                state_machine.to_failed()
                raise

        state_machine.to_succeeded()
        return response

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        """Send a GET request."""
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, json: Any = None, **kwargs: Any) -> httpx.Response:
        """Send a POST request."""
        return await self.request("POST", url, json=json, **kwargs)

    async def put(self, url: str, json: Any = None, **kwargs: Any) -> httpx.Response:
        """Send a PUT request."""
        return await self.request("PUT", url, json=json, **kwargs)

    async def patch(self, url: str, json: Any = None, **kwargs: Any) -> httpx.Response:
        """Send a PATCH request."""
        return await self.request("PATCH", url, json=json, **kwargs)

    async def delete(self, url: str, **kwargs: Any) -> httpx.Response:
        """Send a DELETE request."""
        return await self.request("DELETE", url, **kwargs)

    @property
    def fast(self) -> "RequestTier":
        """Requests with the fast deadline (metadata, lists)."""
        return RequestTier(self, operation_class=OperationClass.FAST)

    @property
    def default(self) -> "RequestTier":
        """Requests with the default deadline (standard CRUD)."""
        return RequestTier(self, operation_class=OperationClass.DEFAULT)

    @property
    def upload_ai(self) -> "RequestTier":
        """Requests with the AI-assisted upload deadline."""
        return RequestTier(self, operation_class=OperationClass.UPLOAD_AI)

    @property
    def upload_standard(self) -> "RequestTier":
        """Requests with the plain file upload deadline."""
        return RequestTier(self, operation_class=OperationClass.UPLOAD_STANDARD)

    def with_timeout(self, timeout_ms: int) -> "RequestTier":
        """Requests with a custom deadline.

        Args:
            timeout_ms: Deadline in milliseconds.

        Returns:
            Tier view sending every request with this deadline.
        """
        return RequestTier(self, timeout_ms=timeout_ms)

    def without_auto_logout(self) -> "RequestTier":
        """Requests whose 401 answers never end the session.

        Used for auth status checks where a 401 is an expected outcome.
        """
        return RequestTier(self, headers={HEADER_SKIP_AUTH_LOGOUT: "true"})

    async def aclose(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owned_http_client is not None:
            await self._owned_http_client.aclose()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()


class RequestTier:
    """Per-verb request functions bound to a deadline and extra headers."""

    def __init__(
        self,
        client: ApiClient,
        operation_class: OperationClass = OperationClass.DEFAULT,
        timeout_ms: int | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self._client = client
        self._operation_class = operation_class
        self._timeout_ms = timeout_ms
        self._headers = dict(headers or {})

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send a request with this tier's deadline and headers."""
        headers = {**self._headers, **(kwargs.pop("headers", None) or {})}
        kwargs.setdefault("operation_class", self._operation_class)
        kwargs.setdefault("timeout_ms", self._timeout_ms)
        return await self._client.request(method, url, headers=headers, **kwargs)

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        """Send a GET request."""
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, json: Any = None, **kwargs: Any) -> httpx.Response:
        """Send a POST request."""
        return await self.request("POST", url, json=json, **kwargs)

    async def put(self, url: str, json: Any = None, **kwargs: Any) -> httpx.Response:
        """Send a PUT request."""
        return await self.request("PUT", url, json=json, **kwargs)

    async def patch(self, url: str, json: Any = None, **kwargs: Any) -> httpx.Response:
        """Send a PATCH request."""
        return await self.request("PATCH", url, json=json, **kwargs)

    async def delete(self, url: str, **kwargs: Any) -> httpx.Response:
        """Send a DELETE request."""
        return await self.request("DELETE", url, **kwargs)
