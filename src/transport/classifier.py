"""Failure classification for the response interceptor.

Classification is pure: it depends only on the status code, the request
URL, whether the session store believes the user is authenticated, and
whether the request opted out of automatic logout. It never looks at time
or at earlier failures.
"""

from src.transport.config import TransportConfig
from src.transport.constants import (
    CSRF_REJECTION_STATUSES,
    HTTP_STATUS_SERVER_ERROR_MAX,
    HTTP_STATUS_SERVER_ERROR_MIN,
    HTTP_STATUS_UNAUTHORIZED,
)
from src.transport.models import FailureClassification, RetryDecision


def classify_failure(
    status_code: int | None,
    url: str,
    is_authenticated: bool,
    config: TransportConfig,
    skip_auth_logout: bool = False,
) -> FailureClassification:
    """Classify a failed request.

    Args:
        status_code: HTTP status code, or None when no response arrived.
        url: Request URL or path.
        is_authenticated: Current session-authenticated flag.
        config: Transport configuration holding the auth-probe allow-list.
        skip_auth_logout: Whether the request opted out of automatic logout.

    Returns:
        Exactly one classification.
    """
    if status_code is None:
        return FailureClassification.UNCLASSIFIED

    if status_code == HTTP_STATUS_UNAUTHORIZED:
        if skip_auth_logout or config.is_auth_probe(url):
            return FailureClassification.EXPECTED_AUTH_PROBE
        if is_authenticated:
            return FailureClassification.SESSION_EXPIRED
        return FailureClassification.UNCLASSIFIED

    if status_code in CSRF_REJECTION_STATUSES:
        return FailureClassification.FORGERY_TOKEN_REJECTED

    if HTTP_STATUS_SERVER_ERROR_MIN <= status_code < HTTP_STATUS_SERVER_ERROR_MAX:
        return FailureClassification.SERVER_FAULT

    return FailureClassification.UNCLASSIFIED


def decide(classification: FailureClassification, retried: bool) -> RetryDecision:
    """Turn a classification into the action the interceptor takes.

    Args:
        classification: Classification of the failure.
        retried: Whether the failed request was already the retry attempt.

    Returns:
        RetryDecision describing side effects and whether to retry.
    """
    if classification == FailureClassification.SESSION_EXPIRED:
        return RetryDecision(
            classification=classification,
            should_terminate_session=True,
            reason="unauthorized outside auth endpoints while authenticated",
        )

    if classification == FailureClassification.FORGERY_TOKEN_REJECTED:
        return RetryDecision(
            classification=classification,
            should_invalidate_token=True,
            should_retry=not retried,
            reason="retry already used" if retried else "csrf token rejected",
        )

    if classification == FailureClassification.EXPECTED_AUTH_PROBE:
        return RetryDecision(
            classification=classification,
            reason="expected unauthorized answer",
        )

    if classification == FailureClassification.SERVER_FAULT:
        return RetryDecision(classification=classification, reason="server fault")

    return RetryDecision(classification=classification, reason="unclassified")
