"""Request and response interceptors wrapping the transport.

The request interceptor decorates outbound contexts with security headers
and a fresh CSRF token. The response interceptor classifies failures and
drives the one-shot CSRF retry and the session termination trigger.
"""

import httpx
import structlog

from src.transport.classifier import classify_failure, decide
from src.transport.config import TransportConfig
from src.transport.constants import (
    COMPONENT_TRANSPORT,
    HEADER_AUTHORIZATION,
    HEADER_REQUESTED_WITH,
    HEADER_REQUESTED_WITH_VALUE,
    HTTP_STATUS_UNAUTHORIZED,
)
from src.transport.errors import RequestFailedError
from src.transport.metrics import TransportMetrics
from src.transport.models import FailureClassification, RequestContext
from src.transport.protocols import AccessTokenProvider, TokenManager, Transport
from src.transport.redact import redact_url_credentials
from src.transport.session import SessionTerminationTrigger
from src.transport.state_machine import RequestAttemptStateMachine


logger = structlog.get_logger()


def apply_csrf_token(
    context: RequestContext,
    token: str,
    config: TransportConfig,
) -> RequestContext:
    """Attach a CSRF token to a request context.

    Sets the CSRF header and, for multipart bodies, the form field as well,
    replacing any stale value.

    Args:
        context: Request context to decorate.
        token: CSRF token.
        config: Transport configuration (header and field names).

    Returns:
        Decorated copy of the context.
    """
    decorated = context.with_header(config.csrf_header, token)
    if decorated.is_multipart:
        decorated = decorated.with_form_field(config.csrf_form_field, token)
    return decorated


class RequestInterceptor:
    """Decorates outbound requests before dispatch.

    Never aborts a request because of its own errors: a missing CSRF token
    produces a 403 downstream, which the response interceptor handles.
    """

    def __init__(
        self,
        token_manager: TokenManager,
        config: TransportConfig,
        access_token_provider: AccessTokenProvider | None = None,
    ) -> None:
        """Initialize the request interceptor.

        Args:
            token_manager: CSRF token issuer.
            config: Transport configuration.
            access_token_provider: Optional source of bearer tokens.
        """
        self._token_manager = token_manager
        self._config = config
        self._access_token_provider = access_token_provider
        self._metrics = TransportMetrics.get_instance()
        self._log = logger.bind(component=COMPONENT_TRANSPORT)

    async def decorate(self, context: RequestContext) -> RequestContext:
        """Attach security headers and, for mutating verbs, a CSRF token.

        Args:
            context: Outbound request context.

        Returns:
            Decorated context, or the context unchanged on internal failure.
        """
        try:
            return await self._decorate(context)
        except Exception as e:  # noqa: BLE001
            self._log.error(
                "request_decoration_failed",
                method=context.method,
                url=redact_url_credentials(context.url),
                error=str(e),
            )
            return context

    async def _decorate(self, context: RequestContext) -> RequestContext:
        decorated = context.with_header(
            HEADER_REQUESTED_WITH, HEADER_REQUESTED_WITH_VALUE
        )

        if self._access_token_provider is not None:
            access_token = self._access_token_provider.get_access_token()
            if access_token:
                decorated = decorated.with_header(
                    HEADER_AUTHORIZATION, f"Bearer {access_token}"
                )

        if decorated.method not in self._config.mutating_methods:
            return decorated

        log = self._log.bind(
            method=decorated.method,
            url=redact_url_credentials(decorated.url),
        )
        try:
            token = await self._token_manager.get_token()
        except Exception as e:  # noqa: BLE001
            self._metrics.record_token_fetch_failure()
            log.error("csrf_token_fetch_failed", error=str(e))
            return decorated

        if not token:
            self._metrics.record_token_fetch_failure()
            log.error("csrf_token_empty")
            return decorated

        log.debug("csrf_token_attached", multipart=decorated.is_multipart)
        return apply_csrf_token(decorated, token, self._config)


class ResponseInterceptor:
    """Classifies failed requests and applies the failure policy.

    Either returns the response of a successful one-shot retry or re-raises
    a failure; it never silently swallows one.
    """

    def __init__(
        self,
        transport: Transport,
        token_manager: TokenManager,
        session_trigger: SessionTerminationTrigger,
        config: TransportConfig,
    ) -> None:
        """Initialize the response interceptor.

        Args:
            transport: Transport used to re-dispatch the retry.
            token_manager: CSRF token issuer.
            session_trigger: Trigger ending expired sessions.
            config: Transport configuration.
        """
        self._transport = transport
        self._token_manager = token_manager
        self._session_trigger = session_trigger
        self._config = config
        self._metrics = TransportMetrics.get_instance()
        self._log = logger.bind(component=COMPONENT_TRANSPORT)

    def classify(self, error: RequestFailedError) -> FailureClassification:
        """Classify a failure against the live session state.

        Args:
            error: Failure raised by the transport.

        Returns:
            Classification of the failure.
        """
        # Only a protected 401 depends on the session flag
        is_authenticated = False
        if (
            error.status_code == HTTP_STATUS_UNAUTHORIZED
            and not error.context.skip_auth_logout
            and not self._config.is_auth_probe(error.context.url)
        ):
            is_authenticated = self._session_trigger.is_authenticated()

        return classify_failure(
            status_code=error.status_code,
            url=error.context.url,
            is_authenticated=is_authenticated,
            config=self._config,
            skip_auth_logout=error.context.skip_auth_logout,
        )

    async def handle_failure(
        self,
        error: RequestFailedError,
        state_machine: RequestAttemptStateMachine | None = None,
    ) -> httpx.Response:
        """Apply the failure policy to a failed request.

        Args:
            error: Failure raised by the transport.
            state_machine: Optional lifecycle tracker for the request.

        Returns:
            Response of the CSRF retry, when one was made and succeeded.

        Raises:
            RequestFailedError: The original failure, or the failure of the
                retry attempt.
        """
        context = error.context
        classification = self.classify(error)
        decision = decide(classification, retried=context.retried)
        self._metrics.record_failure(classification)

        log = self._log.bind(
            method=context.method,
            url=redact_url_credentials(context.url),
            status_code=error.status_code,
            classification=classification.value,
            retried=context.retried,
        )

        if classification == FailureClassification.EXPECTED_AUTH_PROBE:
            log.debug("expected_auth_probe_unauthorized")
            raise error

        log.error("api_error", error=error.message, error_class=error.error_class.value)

        if error.status_code == HTTP_STATUS_UNAUTHORIZED:
            log.warning("unauthorized_request_detected")

        if decision.should_terminate_session:
            await self._session_trigger.maybe_terminate_session()
            raise error

        if decision.should_invalidate_token:
            log.warning("csrf_token_rejected")
            self._token_manager.invalidate_token()
            if not decision.should_retry:
                log.warning("csrf_retry_exhausted", reason=decision.reason)
                raise error
            return await self._retry_with_fresh_token(error, log, state_machine)

        if classification == FailureClassification.SERVER_FAULT:
            log.error("server_error")

        raise error

    async def _retry_with_fresh_token(
        self,
        error: RequestFailedError,
        log: structlog.stdlib.BoundLogger,
        state_machine: RequestAttemptStateMachine | None,
    ) -> httpx.Response:
        """Refresh the CSRF token and re-dispatch the request exactly once.

        Args:
            error: The 403/419 failure of the first attempt.
            log: Bound logger.
            state_machine: Optional lifecycle tracker for the request.

        Returns:
            Response of the retry.

        Raises:
            RequestFailedError: The original failure if no fresh token could
                be obtained, otherwise the retry's own failure.
        """
        retry_context = error.context.for_retry()

        try:
            await self._token_manager.initialize()
            token = await self._token_manager.get_token()
        except Exception as e:  # noqa: BLE001
            log.error("csrf_retry_failed", error=str(e))
            raise error from e

        retry_context = apply_csrf_token(retry_context, token, self._config)

        if state_machine is not None:
            state_machine.to_retrying()
        self._metrics.record_csrf_retry()
        log.info("csrf_retry_dispatch", timeout_ms=retry_context.timeout_ms)

        try:
            response = await self._transport.dispatch(retry_context)
        except RequestFailedError as retry_error:
            log.error(
                "csrf_retry_request_failed",
                status_code=retry_error.status_code,
                error=retry_error.message,
            )
            raise

        self._metrics.record_csrf_retry_success()
        log.info("csrf_retry_succeeded", status_code=response.status_code)
        return response
