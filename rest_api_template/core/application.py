"""
Application lifecycle controller

Owns the configuration service, the logger and the runtime subsystems, and
drives them through initialize -> run -> shutdown:

    app = Application()
    app.initialize()   # load config, build logger and subsystems
    app.run()          # serve until SIGINT/SIGTERM or a fatal subsystem error

Errors are raised, never turned into a process exit here; the CLI
entrypoint logs them at fatal level and exits non-zero.
"""
import asyncio
import signal
import threading
from typing import List, Optional, Sequence

from .bootstrap import build_container
from .config import ConfigService
from .container import ServiceContainer
from .errors import (
    InitializationError,
    LifecycleError,
    RuntimeFailure,
    ShutdownError,
    ShutdownFailure,
    SubsystemError,
)
from .state import ApplicationState, StateTag
from .subsystem import Subsystem, SubsystemFactory
from ..utils.logger import LoggerConfigError, StructuredLogger, get_logger, setup_logger

# Per-subsystem budget for stop()
DEFAULT_SHUTDOWN_TIMEOUT = 10.0

_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class Application:
    """
    Lifecycle controller for the service

    Args:
        config: Configuration service to own (default: a fresh ConfigService)
        factories: Subsystem factories to build during initialize
            (default: bootstrap.default_factories())
        shutdown_timeout: Seconds each subsystem gets to stop
    """

    def __init__(
        self,
        config: Optional[ConfigService] = None,
        factories: Optional[Sequence[SubsystemFactory]] = None,
        shutdown_timeout: float = DEFAULT_SHUTDOWN_TIMEOUT
    ):
        self.config = config or ConfigService()
        self.shutdown_timeout = shutdown_timeout
        self._factories = factories
        self._state = StateTag()
        self._init_lock = threading.Lock()
        # Usable before initialize so fatal errors can still be reported
        self._logger = get_logger("application")
        self._container: Optional[ServiceContainer] = None
        self._started: List[Subsystem] = []
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._stop_reason: Optional[str] = None
        self._stopped: Optional[asyncio.Event] = None
        self._failures: List[ShutdownFailure] = []

    @property
    def state(self) -> ApplicationState:
        return self._state.current

    @property
    def container(self) -> Optional[ServiceContainer]:
        return self._container

    def get_logger(self) -> StructuredLogger:
        """Logger for the application; valid in every state"""
        return self._logger

    # ------------------------------------------------------------------
    # Initialize
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        """
        Load configuration, construct the logger and build all subsystems

        Raises:
            LifecycleError: If the application was already initialized
            InitializationError: If the logger or a subsystem cannot be built
        """
        with self._init_lock:
            current = self._state.current
            if current is not ApplicationState.UNINITIALIZED:
                raise LifecycleError(f"cannot initialize while {current.value}")

            self.config.load_config()

            try:
                setup_logger(self.config.get_log_config())
            except LoggerConfigError as exc:
                raise InitializationError(f"failed to construct logger: {exc}") from exc

            self._container = build_container(self.config, self._logger, self._factories)
            self._state.transition(
                ApplicationState.UNINITIALIZED, ApplicationState.INITIALIZED, action="initialize"
            )
        self._logger.info("application initialized", service=self.config.name)

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    def run(self) -> None:
        """
        Run the application on a fresh event loop until shutdown completes

        Raises:
            LifecycleError: If not initialized (nothing is started)
            RuntimeFailure: If a subsystem failed to start or died while running
            ShutdownError: If a subsystem failed to stop cleanly
        """
        current = self._state.current
        if current is not ApplicationState.INITIALIZED:
            raise LifecycleError(f"cannot run while {current.value} (expected initialized)")
        asyncio.run(self.run_async())

    async def run_async(self) -> None:
        """Same as run(), for callers that already own an event loop"""
        with self._init_lock:
            current = self._state.current
            if current is not ApplicationState.INITIALIZED:
                raise LifecycleError(f"cannot run while {current.value} (expected initialized)")
            # Set before RUNNING so no shutdown request can fall in between
            self._loop = asyncio.get_running_loop()
            self._stop_event = asyncio.Event()
            self._stopped = asyncio.Event()
            self._state.transition(ApplicationState.INITIALIZED, ApplicationState.RUNNING, action="run")

        installed = self._install_signal_handlers()
        trigger: Optional[BaseException] = None
        try:
            trigger = await self._start_and_wait()
        finally:
            self._remove_signal_handlers(installed)
            try:
                self._failures = await self._stop_subsystems()
            finally:
                self._stopped.set()

        if trigger is not None:
            raise RuntimeFailure(f"application failed: {trigger}") from trigger
        if self._failures:
            raise ShutdownError(self._failures)

    def request_shutdown(self, reason: str = "requested") -> None:
        """
        Ask a running application to shut down

        Safe to call from any thread or from a signal handler. Ignored
        until run() has claimed its event loop, and after that loop closes.
        """
        loop, event = self._loop, self._stop_event
        if loop is None or event is None or loop.is_closed():
            self._logger.debug("shutdown request ignored", state=self.state.value)
            return
        if self._stop_reason is None:
            self._stop_reason = reason
        loop.call_soon_threadsafe(event.set)

    async def _start_and_wait(self) -> Optional[BaseException]:
        """
        Start subsystems in order, then wait for the first of:
        a shutdown request, or a subsystem failing/exiting.

        Returns:
            None for a requested shutdown, otherwise the triggering error
        """
        assert self._container is not None and self._stop_event is not None

        for subsystem in self._container.subsystems:
            if self._stop_event.is_set():
                break
            self._logger.info("starting subsystem", subsystem=subsystem.name)
            try:
                await subsystem.start()
            except Exception as exc:
                self._logger.error("subsystem failed to start", subsystem=subsystem.name, error=str(exc))
                error = SubsystemError(subsystem.name, f"failed to start: {exc}")
                error.__cause__ = exc
                return error
            self._started.append(subsystem)

        stop_waiter = asyncio.ensure_future(self._stop_event.wait())
        watchers = {asyncio.ensure_future(s.wait()): s for s in self._started}
        try:
            done, _ = await asyncio.wait(
                {stop_waiter, *watchers}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for task in (stop_waiter, *watchers):
                task.cancel()
            await asyncio.gather(stop_waiter, *watchers, return_exceptions=True)

        for task, subsystem in watchers.items():
            if task not in done:
                continue
            cause = None if task.cancelled() else task.exception()
            if cause is None and self._stop_event.is_set():
                # Exiting after a shutdown request is not a failure
                continue
            if cause is None:
                error = SubsystemError(subsystem.name, "exited unexpectedly")
            else:
                error = SubsystemError(subsystem.name, f"failed: {cause}")
                error.__cause__ = cause
            self._logger.error("subsystem failed while running", subsystem=subsystem.name, error=str(error))
            return error

        self._logger.info("shutdown requested", reason=self._stop_reason or "requested")
        return None

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def shutdown(self) -> List[ShutdownFailure]:
        """
        Gracefully shut down a running application

        Requests shutdown and waits until run() has stopped every started
        subsystem. Must be awaited on the loop running the application.
        Calling this again once shutdown has begun is a no-op.

        Returns:
            One ShutdownFailure per subsystem that did not stop cleanly

        Raises:
            LifecycleError: If the application never started running
        """
        current = self._state.current
        if current in (ApplicationState.SHUTTING_DOWN, ApplicationState.STOPPED):
            return []
        if current is not ApplicationState.RUNNING or self._stopped is None:
            raise LifecycleError(f"cannot shut down while {current.value} (expected running)")

        self.request_shutdown("shutdown called")
        await self._stopped.wait()
        return list(self._failures)

    async def _stop_subsystems(self) -> List[ShutdownFailure]:
        """
        Stop every started subsystem in reverse start order

        Each stop() is bounded by shutdown_timeout; a subsystem that fails or
        times out is logged and skipped, and the rest are still stopped.
        """
        self._state.transition(
            ApplicationState.RUNNING, ApplicationState.SHUTTING_DOWN, action="shut down"
        )

        self._logger.info("shutting down", subsystems=len(self._started), timeout=self.shutdown_timeout)
        failures: List[ShutdownFailure] = []
        while self._started:
            subsystem = self._started.pop()
            try:
                await asyncio.wait_for(subsystem.stop(), timeout=self.shutdown_timeout)
            except asyncio.TimeoutError:
                self._logger.error(
                    "subsystem did not stop in time, skipping",
                    subsystem=subsystem.name,
                    timeout=self.shutdown_timeout,
                )
                failures.append(
                    ShutdownFailure(subsystem.name, f"did not stop within {self.shutdown_timeout}s")
                )
            except Exception as exc:
                self._logger.error("subsystem failed to stop", subsystem=subsystem.name, error=str(exc))
                failures.append(ShutdownFailure(subsystem.name, str(exc)))
            else:
                self._logger.info("subsystem stopped", subsystem=subsystem.name)

        self._state.transition(ApplicationState.SHUTTING_DOWN, ApplicationState.STOPPED)
        self._logger.info("application stopped", failures=len(failures))
        return failures

    # ------------------------------------------------------------------
    # Signals
    # ------------------------------------------------------------------

    def _on_signal(self, sig: signal.Signals) -> None:
        self._logger.info("received termination signal", signal=sig.name)
        self.request_shutdown(reason=f"signal {sig.name}")

    def _install_signal_handlers(self) -> List[signal.Signals]:
        loop = asyncio.get_running_loop()
        installed = []
        for sig in _SIGNALS:
            try:
                loop.add_signal_handler(sig, self._on_signal, sig)
            except (NotImplementedError, RuntimeError, ValueError):
                # Not on the main thread, or no loop signal support (Windows)
                self._logger.debug("signal handler not installed", signal=sig.name)
                continue
            installed.append(sig)
        return installed

    def _remove_signal_handlers(self, installed: List[signal.Signals]) -> None:
        loop = asyncio.get_running_loop()
        for sig in installed:
            loop.remove_signal_handler(sig)

    def __repr__(self) -> str:
        return f"<Application {self.config.name} state={self.state.value}>"
