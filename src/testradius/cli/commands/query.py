"""Query command - answer a blast-radius query from saved tables."""

import sys
import click
from ...utils.errors import TestRadiusError
from ...utils.logging import get_logger
from ..utils import emit_json, format_error

logger = get_logger("cli.query")


@click.command()
@click.argument('tables_dir', type=click.Path(exists=False))
@click.argument('entity_name')
@click.option('--owner-group', help='Group that owns the entity (overrides detection)')
@click.option('--output', '-o', type=click.Path(), help='Save output to file')
@click.option('--quiet', is_flag=True, help='Suppress progress messages')
def query(tables_dir, entity_name, owner_group, output, quiet):
    """
    Report ENTITY_NAME's blast radius from tables saved by `analyze --tables-dir`.

    No source file is read.
    """
    from ... import query_tables

    try:
        result = query_tables(tables_dir, entity_name, owner_group=owner_group)
        emit_json(result, output, quiet)
    except TestRadiusError as e:
        click.echo(format_error(str(e), "Create tables with: testradius analyze ROOT ENTITY --tables-dir DIR"), err=True)
        sys.exit(1)
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        click.echo(format_error(f"Query failed: {e}"), err=True)
        sys.exit(1)
