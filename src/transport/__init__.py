"""Outbound API transport with CSRF handling and failure classification.

This module provides the network boundary every domain service calls:
- Timeout tiers per operation class
- Request decoration with security headers and CSRF tokens
- One-shot retry when the server rejects the CSRF token (403/419)
- Session termination on unexpected 401 responses
- Header redaction and metrics for observability
"""

from src.transport.classifier import classify_failure, decide
from src.transport.client import ApiClient, RequestTier
from src.transport.config import TransportConfig, resolve_api_base_url
from src.transport.errors import (
    RequestErrorClass,
    RequestFailedError,
    RetryExhaustedError,
    TransportError,
)
from src.transport.interceptors import RequestInterceptor, ResponseInterceptor
from src.transport.metrics import TransportMetrics
from src.transport.models import FailureClassification, RequestContext, RetryDecision
from src.transport.protocols import (
    AccessTokenProvider,
    SessionTerminator,
    TokenManager,
    Transport,
)
from src.transport.session import SessionTerminationTrigger
from src.transport.state_machine import (
    RequestAttemptStateMachine,
    RequestState,
    RequestStateTransitionError,
)
from src.transport.timeouts import OperationClass, TimeoutPolicy, timeout_for
from src.transport.transport import HttpxTransport


__all__ = [
    # Client
    "ApiClient",
    "RequestTier",
    "HttpxTransport",
    # Interceptors
    "RequestInterceptor",
    "ResponseInterceptor",
    "SessionTerminationTrigger",
    "classify_failure",
    "decide",
    # Config
    "TransportConfig",
    "TimeoutPolicy",
    "OperationClass",
    "resolve_api_base_url",
    "timeout_for",
    # Models
    "RequestContext",
    "RetryDecision",
    "FailureClassification",
    # Errors
    "TransportError",
    "RequestFailedError",
    "RequestErrorClass",
    "RetryExhaustedError",
    # Protocols
    "TokenManager",
    "SessionTerminator",
    "AccessTokenProvider",
    "Transport",
    # State machine
    "RequestAttemptStateMachine",
    "RequestState",
    "RequestStateTransitionError",
    # Metrics
    "TransportMetrics",
]
