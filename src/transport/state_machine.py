"""State machine for a single request's dispatch and retry lifecycle."""

from enum import Enum

import structlog

from src.transport.constants import COMPONENT_TRANSPORT


logger = structlog.get_logger()


class RequestState(str, Enum):
    """State of one logical request.

    - REQUEST_PENDING: Created, not yet decorated or sent
    - REQUEST_DISPATCHED: First attempt sent
    - REQUEST_RETRYING: The single CSRF retry is in progress
    - REQUEST_SUCCEEDED: A response was returned to the caller
    - REQUEST_FAILED: A failure was raised to the caller
    """

    REQUEST_PENDING = "REQUEST_PENDING"
    REQUEST_DISPATCHED = "REQUEST_DISPATCHED"
    REQUEST_RETRYING = "REQUEST_RETRYING"
    REQUEST_SUCCEEDED = "REQUEST_SUCCEEDED"
    REQUEST_FAILED = "REQUEST_FAILED"


# Valid state transitions
_VALID_TRANSITIONS: dict[RequestState, set[RequestState]] = {
    RequestState.REQUEST_PENDING: {
        RequestState.REQUEST_DISPATCHED,
        RequestState.REQUEST_FAILED,
    },
    RequestState.REQUEST_DISPATCHED: {
        RequestState.REQUEST_RETRYING,
        RequestState.REQUEST_SUCCEEDED,
        RequestState.REQUEST_FAILED,
    },
    # Retry outcome is final: no path back to RETRYING
    RequestState.REQUEST_RETRYING: {
        RequestState.REQUEST_SUCCEEDED,
        RequestState.REQUEST_FAILED,
    },
    RequestState.REQUEST_SUCCEEDED: set(),  # Terminal state
    RequestState.REQUEST_FAILED: set(),  # Terminal state
}


class RequestStateTransitionError(Exception):
    """Raised when an illegal state transition is attempted."""

    def __init__(
        self,
        request_label: str,
        from_state: RequestState,
        to_state: RequestState,
    ) -> None:
        """Initialize the transition error.

        Args:
            request_label: Method and URL of the request.
            from_state: Current state.
            to_state: Attempted target state.
        """
        self.request_label = request_label
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Illegal state transition for request '{request_label}': "
            f"{from_state.value} -> {to_state.value}"
        )


class RequestAttemptStateMachine:
    """Tracks one request from dispatch through its optional single retry."""

    def __init__(
        self,
        method: str,
        url: str,
        initial_state: RequestState = RequestState.REQUEST_PENDING,
    ) -> None:
        """Initialize the state machine.

        Args:
            method: HTTP method.
            url: Request URL or path.
            initial_state: Starting state.
        """
        self._label = f"{method} {url}"
        self._state = initial_state
        self._retried = False
        self._log = logger.bind(
            component=COMPONENT_TRANSPORT,
            method=method,
            url=url,
        )

    @property
    def state(self) -> RequestState:
        """Get the current state."""
        return self._state

    @property
    def is_terminal(self) -> bool:
        """Check if current state is terminal."""
        return self._state in (
            RequestState.REQUEST_SUCCEEDED,
            RequestState.REQUEST_FAILED,
        )

    @property
    def has_retried(self) -> bool:
        """Check if the retry path was taken."""
        return self._retried

    def can_transition_to(self, target: RequestState) -> bool:
        """Check if a transition to the target state is valid."""
        return target in _VALID_TRANSITIONS.get(self._state, set())

    def transition_to(self, target: RequestState) -> None:
        """Transition to a new state.

        Args:
            target: The target state.

        Raises:
            RequestStateTransitionError: If the transition is invalid.
        """
        if not self.can_transition_to(target):
            self._log.error(
                "illegal_state_transition",
                from_state=self._state.value,
                to_state=target.value,
            )
            raise RequestStateTransitionError(
                request_label=self._label,
                from_state=self._state,
                to_state=target,
            )

        old_state = self._state
        self._state = target
        if target == RequestState.REQUEST_RETRYING:
            self._retried = True

        self._log.debug(
            "state_transition",
            from_state=old_state.value,
            to_state=target.value,
        )

    def to_dispatched(self) -> None:
        """Transition to REQUEST_DISPATCHED state."""
        self.transition_to(RequestState.REQUEST_DISPATCHED)

    def to_retrying(self) -> None:
        """Transition to REQUEST_RETRYING state."""
        self.transition_to(RequestState.REQUEST_RETRYING)

    def to_succeeded(self) -> None:
        """Transition to REQUEST_SUCCEEDED state."""
        self.transition_to(RequestState.REQUEST_SUCCEEDED)

    def to_failed(self) -> None:
        """Transition to REQUEST_FAILED state."""
        self.transition_to(RequestState.REQUEST_FAILED)
