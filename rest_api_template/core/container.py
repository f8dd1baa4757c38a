"""
Service Container
Holds the configuration and runtime subsystems in a single, testable container
"""
import time
from dataclasses import dataclass, field
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .config import ConfigService
    from .subsystem import Subsystem


@dataclass
class ServiceContainer:
    """
    Container holding everything the Application built during initialize

    Subsystems are kept in start order; they are stopped in reverse.
    """
    config: 'ConfigService'
    subsystems: List['Subsystem'] = field(default_factory=list)

    # Metadata
    initialized_at: Optional[float] = None

    def __post_init__(self):
        """Set initialization timestamp if not provided"""
        if self.initialized_at is None:
            self.initialized_at = time.time()

    def get(self, name: str) -> Optional['Subsystem']:
        """Look up a subsystem by name"""
        for subsystem in self.subsystems:
            if subsystem.name == name:
                return subsystem
        return None
