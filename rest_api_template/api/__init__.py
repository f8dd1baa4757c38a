"""
HTTP API
"""
from .server import HTTPServer, build_http_server, create_app

__all__ = ["HTTPServer", "build_http_server", "create_app"]
