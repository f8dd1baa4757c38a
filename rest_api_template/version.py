"""
Build identification

The defaults below are what a source checkout reports. `make stamp` writes
rest_api_template/_build.py with the real values at build time.
"""

PROJECT_NAME = "rest-api-template"

__version__ = "dev"
COMMIT = "none"
BUILD_DATE = "unknown"

try:
    from ._build import VERSION as __version__, COMMIT, BUILD_DATE  # noqa: F401
except ImportError:
    pass


def version_lines():
    """The three-line identification printed by --version"""
    return [
        f"{PROJECT_NAME} {__version__}",
        f"  commit: {COMMIT}",
        f"  built:  {BUILD_DATE}",
    ]
