"""httpx-backed transport executing decorated request contexts."""

import time

import httpx
import structlog

from src.transport.constants import (
    COMPONENT_TRANSPORT,
    HTTP_STATUS_BAD_REQUEST,
    HTTP_STATUS_SERVER_ERROR_MAX,
    HTTP_STATUS_SERVER_ERROR_MIN,
)
from src.transport.errors import RequestErrorClass, RequestFailedError
from src.transport.metrics import TransportMetrics
from src.transport.models import RequestContext
from src.transport.redact import redact_headers, redact_url_credentials


logger = structlog.get_logger()


class HttpxTransport:
    """Executes one request per call on a shared ``httpx.AsyncClient``.

    Responses with a status below 400 are returned; everything else,
    including timeouts and connection failures, is raised as
    ``RequestFailedError`` carrying the context that produced it.
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        """Initialize the transport.

        Args:
            client: Async client (base URL, cookies, connection pool).
        """
        self._client = client
        self._metrics = TransportMetrics.get_instance()
        self._log = logger.bind(component=COMPONENT_TRANSPORT)

    async def dispatch(self, context: RequestContext) -> httpx.Response:
        """Execute a request.

        Args:
            context: Decorated request context.

        Returns:
            Response with a non-error status.

        Raises:
            RequestFailedError: On 4xx/5xx, timeout, or connection failure.
        """
        log = self._log.bind(
            method=context.method,
            url=redact_url_credentials(context.url),
            retried=context.retried,
        )
        log.debug(
            "request_dispatch",
            headers=redact_headers(context.headers),
            timeout_ms=context.timeout_ms,
        )
        start_time_ns = time.perf_counter_ns()

        try:
            response = await self._client.request(
                context.method,
                context.url,
                headers=context.headers,
                params=context.params,
                json=context.json_body,
                data=context.form_data,
                files=context.files,
                content=context.content,
                timeout=httpx.Timeout(context.timeout_seconds),
            )
        except httpx.TimeoutException as e:
            msg = f"Request timed out after {context.timeout_ms}ms: {e}"
            raise RequestFailedError(
                msg, context, error_class=RequestErrorClass.NETWORK_TIMEOUT
            ) from e
        except httpx.ConnectError as e:
            msg = f"Connection failed: {e}"
            raise RequestFailedError(
                msg, context, error_class=RequestErrorClass.CONNECTION_ERROR
            ) from e
        except httpx.HTTPError as e:
            msg = f"Unexpected transport error: {e}"
            raise RequestFailedError(msg, context) from e

        duration_ms = (time.perf_counter_ns() - start_time_ns) / 1_000_000
        self._metrics.record_request(response.status_code)
        log.debug(
            "request_complete",
            status_code=response.status_code,
            duration_ms=round(duration_ms, 2),
        )

        error_class = _classify_status(response.status_code)
        if error_class is not None:
            msg = f"Request failed with status code {response.status_code}"
            raise RequestFailedError(
                msg,
                context,
                status_code=response.status_code,
                error_class=error_class,
                response=response,
            )

        return response


def _classify_status(status_code: int) -> RequestErrorClass | None:
    """Map an HTTP status to an error class, None for success."""
    if status_code < HTTP_STATUS_BAD_REQUEST:
        return None
    if HTTP_STATUS_SERVER_ERROR_MIN <= status_code < HTTP_STATUS_SERVER_ERROR_MAX:
        return RequestErrorClass.HTTP_5XX
    if status_code < HTTP_STATUS_SERVER_ERROR_MIN:
        return RequestErrorClass.HTTP_4XX
    return RequestErrorClass.UNKNOWN
