"""
Error types raised by the application core

Library code raises these; only the CLI entrypoint turns them into a fatal
log line and a non-zero exit status.
"""
from dataclasses import dataclass
from typing import List


class ApplicationError(Exception):
    """Base class for all application lifecycle errors"""


class LifecycleError(ApplicationError):
    """A lifecycle phase was invoked from the wrong state"""


class InitializationError(ApplicationError):
    """A mandatory component could not be constructed during initialize"""


class SubsystemError(ApplicationError):
    """A subsystem failed to start or exited while the application was running"""

    def __init__(self, subsystem: str, message: str):
        super().__init__(f"{subsystem}: {message}")
        self.subsystem = subsystem


class RuntimeFailure(ApplicationError):
    """An unrecoverable error stopped the application while running"""


@dataclass(frozen=True)
class ShutdownFailure:
    """One subsystem that failed to stop (or did not stop in time)"""
    subsystem: str
    reason: str


class ShutdownError(ApplicationError):
    """One or more subsystems failed to stop cleanly"""

    def __init__(self, failures: List[ShutdownFailure]):
        detail = "; ".join(f"{f.subsystem}: {f.reason}" for f in failures)
        super().__init__(f"shutdown failed for {len(failures)} subsystem(s): {detail}")
        self.failures = list(failures)
