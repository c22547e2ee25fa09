"""Analyze command - scan a source tree and report an entity's blast radius."""

import sys
import click
from ...utils.errors import CorpusError, InvalidEntityNameError, TestRadiusError
from ...utils.logging import get_logger
from ..utils import emit_json, format_error

logger = get_logger("cli.analyze")


@click.command()
@click.argument('root_dir', type=click.Path(exists=False))
@click.argument('entity_name')
@click.option('--config', 'config_path', type=click.Path(), help='YAML file overriding the default settings')
@click.option('--enrichment', 'enrichment_path', type=click.Path(), help='Deep-parser enrichment records (JSON)')
@click.option('--workers', type=click.IntRange(min=1), help='Scanner worker count')
@click.option('--tables-dir', type=click.Path(), help='Also save the entity tables to this directory')
@click.option('--owner-group', help='Group that owns the entity (overrides detection)')
@click.option('--output', '-o', type=click.Path(), help='Save output to file')
@click.option('--quiet', is_flag=True, help='Suppress progress messages')
def analyze(root_dir, entity_name, config_path, enrichment_path, workers, tables_dir, owner_group, output, quiet):
    """
    Find every test impacted by a change to ENTITY_NAME.

    Scans the acceptance tests under ROOT_DIR and prints the blast radius
    as JSON: direct, indirect and sequential references plus the
    deduplicated list of impacted tests.
    """
    from ... import analyze as analyze_core

    try:
        if not quiet:
            click.echo(f"Scanning {root_dir} for {entity_name}", err=True)

        result = analyze_core(
            root_dir,
            entity_name,
            config_path=config_path,
            enrichment_path=enrichment_path,
            workers=workers,
            tables_dir=tables_dir,
            owner_group=owner_group,
        )

        if not quiet:
            counts = result["counts"]
            click.echo(
                f"Analysis complete: {counts['impacted_tests']} impacted tests "
                f"({counts['direct']} direct, {counts['indirect']} indirect, {counts['sequential']} sequential)",
                err=True,
            )

        emit_json(result, output, quiet)

    except InvalidEntityNameError as e:
        click.echo(format_error(str(e), "Entity names look like azurerm_subnet"), err=True)
        sys.exit(1)
    except CorpusError as e:
        click.echo(format_error(str(e), "Point ROOT_DIR at the provider repository root"), err=True)
        sys.exit(1)
    except TestRadiusError as e:
        click.echo(format_error(str(e)), err=True)
        sys.exit(1)
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        click.echo(format_error(f"Analysis failed: {e}"), err=True)
        sys.exit(1)
