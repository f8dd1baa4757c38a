"""
Bootstrap module for rest-api-template
Builds the runtime subsystems from a loaded ConfigService

Nothing here is cached at module level: every Application gets its own
container, so several configurations can coexist in one process (tests).
"""
from typing import List, Optional, Sequence

from .config import ConfigService
from .container import ServiceContainer
from .errors import InitializationError
from .subsystem import SubsystemFactory
from ..utils.logger import StructuredLogger


def default_factories() -> List[SubsystemFactory]:
    """Subsystems every deployment runs, in start order"""
    from ..api.server import build_http_server
    return [build_http_server]


def build_container(
    config: ConfigService,
    logger: StructuredLogger,
    factories: Optional[Sequence[SubsystemFactory]] = None
) -> ServiceContainer:
    """
    Build a ServiceContainer with every subsystem constructed

    Factories run in order, so a later subsystem may rely on an earlier one
    having been built. Nothing is started here.

    Args:
        config: A ConfigService on which load_config() has completed
        logger: Logger handed to every factory
        factories: Subsystem factories (default: default_factories())

    Returns:
        ServiceContainer holding the config and the built subsystems

    Raises:
        InitializationError: If the config is not loaded or a factory fails
    """
    if not config.loaded:
        raise InitializationError("configuration must be loaded before building subsystems")

    if factories is None:
        factories = default_factories()

    subsystems = []
    for factory in factories:
        factory_name = getattr(factory, "__name__", repr(factory))
        try:
            subsystem = factory(config, logger)
        except Exception as exc:
            raise InitializationError(f"failed to build subsystem via {factory_name}: {exc}") from exc
        if any(existing.name == subsystem.name for existing in subsystems):
            raise InitializationError(f"duplicate subsystem name {subsystem.name!r}")
        subsystems.append(subsystem)
        logger.debug("subsystem built", subsystem=subsystem.name)

    container = ServiceContainer(config=config, subsystems=subsystems)
    logger.info("service container built", subsystems=",".join(s.name for s in subsystems) or "none")
    return container
