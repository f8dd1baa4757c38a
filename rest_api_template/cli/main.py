"""
CLI interface for rest-api-template
"""
import sys
from typing import Optional

import click

from ..core.application import Application
from ..version import BUILD_DATE, COMMIT, __version__, version_lines


def run_application(app: Optional[Application] = None) -> int:
    """
    Initialize and run the application, logging fatal errors

    This is the only place a failure becomes an exit status.

    Returns:
        Process exit code: 0 on clean shutdown, 1 on any fatal error
    """
    app = app or Application()

    # Initialize all application components (logger is configured here)
    try:
        app.initialize()
    except Exception as exc:
        app.get_logger().fatal("failed to initialize application", error=str(exc))
        return 1

    app.get_logger().info(
        "starting application",
        version=__version__,
        commit=COMMIT,
        built=BUILD_DATE,
    )

    # Run the application (this will handle graceful shutdown)
    try:
        app.run()
    except Exception as exc:
        app.get_logger().fatal("application failed", error=str(exc))
        return 1
    return 0


VERSION_FLAGS = ("--version", "-v")


@click.command(
    add_help_option=False,
    context_settings={"ignore_unknown_options": True, "allow_extra_args": True},
)
@click.pass_context
def cli(ctx):
    """REST API Template - run the API server

    A first argument of --version or -v prints version information and
    exits; any other invocation runs the server.
    """
    if ctx.args and ctx.args[0] in VERSION_FLAGS:
        for line in version_lines():
            click.echo(line)
        return

    exit_code = run_application()
    if exit_code:
        sys.exit(exit_code)


if __name__ == "__main__":
    cli()
