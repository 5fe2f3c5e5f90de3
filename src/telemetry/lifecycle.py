"""Client lifecycle signals driving queue drains and the final flush."""

import atexit
from collections.abc import Callable

import structlog

from src.telemetry.constants import COMPONENT_TELEMETRY


logger = structlog.get_logger()


class ClientLifecycle:
    """Dispatches visibility and teardown signals to listeners.

    Listeners for ``before_unload`` run synchronously; a failing listener
    is logged and the remaining ones still run.
    """

    def __init__(self) -> None:
        self._hidden = False
        self._visible_listeners: list[Callable[[], None]] = []
        self._unload_listeners: list[Callable[[], None]] = []
        self._exit_hook_installed = False
        self._log = logger.bind(component=COMPONENT_TELEMETRY)

    @property
    def is_hidden(self) -> bool:
        """Check if the client is currently backgrounded."""
        return self._hidden

    def on_visible(self, listener: Callable[[], None]) -> None:
        """Register a listener for the client becoming visible again."""
        self._visible_listeners.append(listener)

    def on_before_unload(self, listener: Callable[[], None]) -> None:
        """Register a listener for client teardown."""
        self._unload_listeners.append(listener)

    def visibility_changed(self, hidden: bool) -> None:
        """Record a visibility change, notifying listeners when shown.

        Args:
            hidden: Whether the client is now hidden.
        """
        self._hidden = hidden
        if hidden:
            return
        for listener in list(self._visible_listeners):
            self._run(listener, "visible_listener_failed")

    def before_unload(self) -> None:
        """Signal teardown to every listener."""
        for listener in list(self._unload_listeners):
            self._run(listener, "unload_listener_failed")

    def install_exit_hook(self) -> None:
        """Run ``before_unload`` when the interpreter exits."""
        if self._exit_hook_installed:
            return
        atexit.register(self.before_unload)
        self._exit_hook_installed = True

    def _run(self, listener: Callable[[], None], event: str) -> None:
        try:
            listener()
        except Exception as e:  # noqa: BLE001
            self._log.error(event, error=str(e))
