"""Main CLI entry point for testradius."""

import click
from .commands.analyze import analyze
from .commands.query import query
from .commands.version import version as version_command
from .. import __version__
from ..utils.logging import LOG_LEVELS, get_logger, setup_logging

logger = get_logger("cli.main")


@click.group()
@click.version_option(version=__version__, prog_name="testradius", message="%(prog)s version %(version)s")
@click.option(
    '--log-level',
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    help='Logging level (default: TESTRADIUS_LOG_LEVEL, then INFO)',
)
def cli(log_level):
    """testradius - Acceptance-test blast-radius analysis."""
    if log_level:
        setup_logging(log_level)


cli.add_command(analyze)
cli.add_command(query)
cli.add_command(version_command)
