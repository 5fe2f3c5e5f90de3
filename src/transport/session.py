"""Session termination triggered by unexpected 401 responses."""

import structlog

from src.transport.constants import COMPONENT_SESSION
from src.transport.metrics import TransportMetrics
from src.transport.protocols import SessionTerminator


logger = structlog.get_logger()


class SessionTerminationTrigger:
    """Logs the user out when a protected request comes back 401.

    Termination is best-effort: the user is being logged out regardless of
    whether the server acknowledges it, so a failing logout is logged and
    never propagated.
    """

    def __init__(self, terminator: SessionTerminator) -> None:
        """Initialize the trigger.

        Args:
            terminator: Session store view providing the authenticated
                flag and logout.
        """
        self._terminator = terminator
        self._metrics = TransportMetrics.get_instance()
        self._log = logger.bind(component=COMPONENT_SESSION)

    def is_authenticated(self) -> bool:
        """Read the live session-authenticated flag.

        A failing session store reads as not authenticated.
        """
        try:
            return bool(self._terminator.is_authenticated())
        except Exception as e:  # noqa: BLE001
            self._log.error("session_state_lookup_failed", error=str(e))
            return False

    async def maybe_terminate_session(self) -> bool:
        """Log out if the session store still believes the user is logged in.

        Returns:
            True if logout was invoked.
        """
        if not self.is_authenticated():
            self._log.debug("session_already_ended")
            return False

        self._log.warning("session_expired_logging_out")
        self._metrics.record_session_termination()
        try:
            await self._terminator.logout()
        except Exception as e:  # noqa: BLE001
            self._log.error("session_logout_failed", error=str(e))
        return True
