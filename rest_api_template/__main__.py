"""
Entry point for running the service directly.

Usage:
    python -m rest_api_template
    python -m rest_api_template --version
"""
from .cli.main import cli

if __name__ == "__main__":
    cli(prog_name="rest-api-template")
