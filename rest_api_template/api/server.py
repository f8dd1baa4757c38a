"""
HTTP server for rest-api-template

create_app() builds the FastAPI application; HTTPServer runs it under
uvicorn as a Subsystem so the Application controls startup and shutdown.
uvicorn's own signal handling is disabled for that reason.
"""
import asyncio
import contextlib
from typing import Optional

import uvicorn
from fastapi import FastAPI
from pydantic import BaseModel

from ..core.config import ConfigService
from ..core.errors import SubsystemError
from ..core.subsystem import Subsystem
from ..utils.logger import StructuredLogger
from ..version import __version__

# How often start() polls uvicorn for a bound socket
_STARTUP_POLL_INTERVAL = 0.05


class RootResponse(BaseModel):
    """Root endpoint response"""
    service: str
    version: str
    status: str


class HealthResponse(BaseModel):
    """Health check response"""
    status: str


def create_app(config: ConfigService) -> FastAPI:
    """
    Create the FastAPI application

    Args:
        config: Loaded configuration, exposed to routes via app.state.config
    """
    app = FastAPI(title="REST API Template", version=__version__)
    app.state.config = config

    @app.get("/", response_model=RootResponse)
    async def root():
        """Root endpoint"""
        return RootResponse(service=config.name, version=__version__, status="running")

    @app.get("/health", response_model=HealthResponse)
    async def health():
        """Health check endpoint"""
        return HealthResponse(status="healthy")

    return app


class _Server(uvicorn.Server):
    """uvicorn server that leaves signal handling to the Application"""

    def install_signal_handlers(self) -> None:
        pass

    @contextlib.contextmanager
    def capture_signals(self):
        yield


class HTTPServer(Subsystem):
    """Serves the FastAPI app with uvicorn"""

    name = "http"

    def __init__(self, app: FastAPI, host: str, port: int, logger: StructuredLogger):
        self.app = app
        self.host = host
        self.port = port
        self.logger = logger
        self._server = _Server(
            uvicorn.Config(app, host=host, port=port, log_config=None, access_log=False)
        )
        self._task: Optional[asyncio.Task] = None

    @property
    def started(self) -> bool:
        return self._server.started

    async def start(self) -> None:
        """Start serving; returns once the socket is bound"""
        if self._task is not None:
            raise SubsystemError(self.name, "already started")

        self._task = asyncio.ensure_future(self._serve())
        while not self._server.started:
            if self._task.done():
                # Surfaces the bind/startup error
                self._task.result()
                raise SubsystemError(self.name, "server exited during startup")
            await asyncio.sleep(_STARTUP_POLL_INTERVAL)
        self.logger.info("http server listening", host=self.host, port=self.port)

    async def wait(self) -> None:
        if self._task is None:
            raise SubsystemError(self.name, "not started")
        # Shielded: cancelling the watcher must not cancel the server
        await asyncio.shield(self._task)
        if not self._server.should_exit:
            raise SubsystemError(self.name, "server exited unexpectedly")

    async def stop(self) -> None:
        if self._task is None or self._task.done():
            return
        self._server.should_exit = True
        await self._task
        self.logger.info("http server stopped")

    async def _serve(self) -> None:
        try:
            await self._server.serve()
        except SystemExit as exc:
            # uvicorn exits the process when it cannot bind
            raise SubsystemError(self.name, f"server startup failed (exit code {exc.code})") from exc


def build_http_server(config: ConfigService, logger: StructuredLogger) -> HTTPServer:
    """
    Subsystem factory for the HTTP server

    Raises:
        ValueError: If SERVER_PORT is not a valid TCP port
    """
    server_config = config.get_server_config()
    try:
        port = int(server_config.port)
    except ValueError:
        raise ValueError(f"invalid SERVER_PORT {server_config.port!r}") from None
    if not 0 <= port <= 65535:
        raise ValueError(f"SERVER_PORT out of range: {port}")

    return HTTPServer(create_app(config), host=server_config.host, port=port, logger=logger)
