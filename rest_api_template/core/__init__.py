"""
Core configuration service and application lifecycle
"""
from .application import Application
from .config import ConfigService, DBConfig, JaegerConfig, RedisConfig, ServerConfig
from .container import ServiceContainer
from .errors import (
    ApplicationError,
    InitializationError,
    LifecycleError,
    RuntimeFailure,
    ShutdownError,
    ShutdownFailure,
    SubsystemError,
)
from .state import ApplicationState
from .subsystem import Subsystem

__all__ = [
    "Application",
    "ApplicationError",
    "ApplicationState",
    "ConfigService",
    "DBConfig",
    "InitializationError",
    "JaegerConfig",
    "LifecycleError",
    "RedisConfig",
    "RuntimeFailure",
    "ServerConfig",
    "ServiceContainer",
    "ShutdownError",
    "ShutdownFailure",
    "Subsystem",
    "SubsystemError",
]
