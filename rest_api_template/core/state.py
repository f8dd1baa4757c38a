"""
Application lifecycle state
"""
import threading
from enum import Enum

from .errors import LifecycleError


class ApplicationState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    RUNNING = "running"
    SHUTTING_DOWN = "shutting_down"
    STOPPED = "stopped"


# Allowed forward transitions; nothing may be skipped
_TRANSITIONS = {
    ApplicationState.UNINITIALIZED: ApplicationState.INITIALIZED,
    ApplicationState.INITIALIZED: ApplicationState.RUNNING,
    ApplicationState.RUNNING: ApplicationState.SHUTTING_DOWN,
    ApplicationState.SHUTTING_DOWN: ApplicationState.STOPPED,
}


class StateTag:
    """
    Thread-safe holder for the current ApplicationState.

    Every change goes through transition(), a compare-and-set against the
    expected current state, so two callers can never both win the same step.
    """

    def __init__(self, initial: ApplicationState = ApplicationState.UNINITIALIZED):
        self._state = initial
        self._lock = threading.Lock()

    @property
    def current(self) -> ApplicationState:
        with self._lock:
            return self._state

    def transition(self, expected: ApplicationState, target: ApplicationState, action: str = "") -> None:
        """
        Move from `expected` to `target`

        Raises:
            LifecycleError: If the current state is not `expected` or the step is not allowed
        """
        if _TRANSITIONS.get(expected) is not target:
            raise LifecycleError(f"invalid transition {expected.value} -> {target.value}")
        with self._lock:
            if self._state is not expected:
                what = action or f"transition to {target.value}"
                raise LifecycleError(
                    f"cannot {what} while {self._state.value} (expected {expected.value})"
                )
            self._state = target

    def __repr__(self) -> str:
        return f"StateTag({self.current.value})"
