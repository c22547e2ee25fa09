"""Load optional deep-parser enrichment records."""

import json
from pathlib import Path
from typing import List
from pydantic import ValidationError
from .models import EnrichmentRecord
from ..utils.errors import EnrichmentLoadError
from ..utils.logging import get_logger

logger = get_logger("ingest.enrichment_loader")


def load_enrichment_records(enrichment_path: str) -> List[EnrichmentRecord]:
    """
    Load enrichment records from a JSON file.

    The file holds either a list of records or an object with a "records"
    list. Each record is {file, functionName, isTestFunction, receiverTypeName}.

    Args:
        enrichment_path: Path to the enrichment JSON file

    Returns:
        Parsed records

    Raises:
        EnrichmentLoadError: If the file cannot be read or a record is invalid
    """
    path = Path(enrichment_path)

    if not path.exists():
        raise EnrichmentLoadError(
            f"Enrichment file not found: {enrichment_path}. "
            "Please check the file path or run without enrichment."
        )

    if not path.is_file():
        raise EnrichmentLoadError(f"Path is not a file: {enrichment_path}.")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise EnrichmentLoadError(f"Invalid JSON in enrichment file: {e}.")
    except OSError as e:
        raise EnrichmentLoadError(
            f"Error reading enrichment file: {e}. "
            "Please check file permissions and try again."
        )

    if isinstance(data, dict):
        data = data.get("records")
    if not isinstance(data, list):
        raise EnrichmentLoadError(
            "Enrichment JSON must be a list of records or an object with a 'records' list."
        )

    records = []
    for position, raw in enumerate(data):
        try:
            records.append(EnrichmentRecord.model_validate(raw))
        except ValidationError as e:
            raise EnrichmentLoadError(f"Invalid enrichment record #{position}: {e}")

    logger.info(f"Loaded {len(records)} enrichment records from {enrichment_path}")
    return records
