"""
Base class for runtime subsystems driven by the Application
"""
import asyncio
from abc import ABC, abstractmethod
from typing import Callable, TYPE_CHECKING

if TYPE_CHECKING:
    from .config import ConfigService
    from ..utils.logger import StructuredLogger


class Subsystem(ABC):
    """
    A long-running component started and stopped by the Application.

    - start() returns once the subsystem is up; background work runs in tasks
    - wait() completes (or raises) only when the subsystem stops on its own;
      the Application treats that as a fatal runtime condition
    - stop() releases resources; it is bounded by the shutdown timeout
    """

    name: str = "subsystem"

    @abstractmethod
    async def start(self) -> None:
        ...

    async def wait(self) -> None:
        """Block until the subsystem exits by itself (default: never)"""
        await asyncio.Event().wait()

    @abstractmethod
    async def stop(self) -> None:
        ...

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


# Builds a subsystem from the loaded configuration
SubsystemFactory = Callable[["ConfigService", "StructuredLogger"], Subsystem]
