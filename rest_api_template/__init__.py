"""
rest-api-template - bootstrap and configuration core for a REST API service
"""
from .version import __version__

__all__ = ["__version__"]
