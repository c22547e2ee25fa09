"""testradius - Blast-radius analysis for Terraform provider acceptance tests."""

from pathlib import Path
from typing import Dict, Any, Optional
from .analysis.blast_radius import BlastRadiusQuery
from .config import load_analysis_config
from .ingest.enrichment_loader import load_enrichment_records
from .pipeline import build_entity_store, validate_entity_name
from .store.persistence import load_tables, save_tables
from .utils.logging import setup_logging, get_logger
from .utils.errors import TestRadiusError

__version__ = "0.1.0"

__all__ = ["analyze", "query_tables"]

setup_logging()
logger = get_logger("testradius")


def analyze(
    root_dir: str,
    entity_name: str,
    config_path: Optional[str] = None,
    enrichment_path: Optional[str] = None,
    workers: Optional[int] = None,
    tables_dir: Optional[str] = None,
    owner_group: Optional[str] = None,
) -> Dict[str, Any]:
    """Scan a provider source tree and return the blast radius of one entity."""
    try:
        logger.info(f"Starting analysis of {entity_name} under {root_dir}")

        config = load_analysis_config(config_path)
        enrichment = load_enrichment_records(enrichment_path) if enrichment_path else None
        store, diagnostics = build_entity_store(root_dir, entity_name, config, enrichment=enrichment, workers=workers)

        if tables_dir:
            save_tables(store, Path(tables_dir))

        output = BlastRadiusQuery(store, owner_group=owner_group).get_blast_radius(entity_name, diagnostics)
        logger.info(
            f"Analysis complete: {output.counts['impacted_tests']} impacted tests "
            f"({output.counts['high_risk']} high risk)"
        )
        return output.model_dump(mode="json")

    except TestRadiusError:
        raise
    except Exception as e:
        logger.error(f"Unexpected error during analysis: {e}", exc_info=True)
        raise TestRadiusError(f"Analysis failed: {e}") from e


def query_tables(tables_dir: str, entity_name: str, owner_group: Optional[str] = None) -> Dict[str, Any]:
    """Answer a blast-radius query from previously saved tables, without rescanning."""
    try:
        validate_entity_name(entity_name)
        store = load_tables(Path(tables_dir))
        output = BlastRadiusQuery(store, owner_group=owner_group).get_blast_radius(entity_name)
        return output.model_dump(mode="json")

    except TestRadiusError:
        raise
    except Exception as e:
        logger.error(f"Unexpected error during query: {e}", exc_info=True)
        raise TestRadiusError(f"Query failed: {e}") from e
