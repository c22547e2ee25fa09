"""Version command - show testradius version."""

import click
from ... import __version__


@click.command()
def version():
    """Show testradius version."""
    click.echo(f"testradius version {__version__}")
