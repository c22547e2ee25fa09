"""Persist entity store tables as JSON and load them back."""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List
from pydantic import BaseModel, ValidationError
from .entity_store import TABLE_MODELS, EntityStore
from ..utils.errors import PersistenceError
from ..utils.logging import get_logger

logger = get_logger("store.persistence")

# Package version (from pyproject.toml)
PACKAGE_VERSION = "0.1.0"

FORMAT_VERSION = "1"

_TARGET_PREFIX = "target_"


def save_tables(store: EntityStore, output_dir: Path) -> None:
    """
    Write every table of the store to output_dir.

    Creates one <table>.json per table, each a list of flat records, plus
    metadata.json with versions, generation time and row counts.

    Args:
        store: Store to persist
        output_dir: Directory to write tables to

    Raises:
        PersistenceError: If the directory or a file cannot be written
    """
    output_dir = Path(output_dir)
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise PersistenceError(f"Failed to create tables directory: {e}")

    for table in TABLE_MODELS:
        records = [flatten_record(row) for row in store.rows(table)]
        table_path = output_dir / f"{table}.json"
        try:
            with open(table_path, 'w', encoding='utf-8') as f:
                json.dump(records, f, indent=2)
            logger.debug(f"Written {table}.json: {table_path}")
        except (OSError, TypeError) as e:
            raise PersistenceError(f"Failed to write {table}.json: {e}")

    metadata = {
        "testradius_version": PACKAGE_VERSION,
        "format_version": FORMAT_VERSION,
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "row_counts": store.counts(),
    }
    metadata_path = output_dir / "metadata.json"
    try:
        with open(metadata_path, 'w', encoding='utf-8') as f:
            json.dump(metadata, f, indent=2)
    except OSError as e:
        raise PersistenceError(f"Failed to write metadata.json: {e}")

    logger.info(f"Saved {sum(metadata['row_counts'].values())} rows to {output_dir}")


def load_tables(input_dir: Path) -> EntityStore:
    """
    Rebuild a store from tables written by save_tables.

    Args:
        input_dir: Directory holding the table files

    Returns:
        EntityStore with the persisted ids

    Raises:
        PersistenceError: If a file is missing, unreadable or holds invalid records
        StoreIntegrityError: If a record references a missing row
    """
    input_dir = Path(input_dir)
    if not input_dir.is_dir():
        raise PersistenceError(f"Tables directory not found: {input_dir}")

    metadata = _read_json(input_dir / "metadata.json")
    if not isinstance(metadata, dict) or metadata.get("format_version") != FORMAT_VERSION:
        raise PersistenceError(
            f"Unsupported tables format in {input_dir}: "
            f"{metadata.get('format_version') if isinstance(metadata, dict) else metadata!r}"
        )

    tables: Dict[str, List[BaseModel]] = {}
    for table, model in TABLE_MODELS.items():
        records = _read_json(input_dir / f"{table}.json")
        if not isinstance(records, list):
            raise PersistenceError(f"{table}.json must hold a list of records")
        try:
            tables[table] = [model.model_validate(unflatten_record(record)) for record in records]
        except (ValidationError, TypeError, ValueError) as e:
            raise PersistenceError(f"Invalid record in {table}.json: {e}")

    store = EntityStore.restore(tables)
    logger.info(f"Loaded {sum(store.counts().values())} rows from {input_dir}")
    return store


def flatten_record(row: BaseModel) -> Dict[str, Any]:
    """Row as a flat JSON-ready dict; a nested target becomes target_* columns."""
    record = row.model_dump(mode="json")
    target = record.pop("target", None)
    if isinstance(target, dict):
        for key, value in target.items():
            record[f"{_TARGET_PREFIX}{key}"] = value
    return record


def unflatten_record(record: Dict[str, Any]) -> Dict[str, Any]:
    """Inverse of flatten_record."""
    flat = dict(record)
    # Only sequential rows carry a variant; other tables have plain target_* columns.
    if f"{_TARGET_PREFIX}state" not in flat:
        return flat
    target = {
        key[len(_TARGET_PREFIX):]: flat.pop(key)
        for key in list(flat)
        if key.startswith(_TARGET_PREFIX)
    }
    flat["target"] = {key: value for key, value in target.items() if value is not None}
    return flat


def _read_json(path: Path) -> Any:
    if not path.exists():
        raise PersistenceError(f"Missing table file: {path}")
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise PersistenceError(f"Invalid JSON in {path}: {e}")
    except OSError as e:
        raise PersistenceError(f"Error reading {path}: {e}")
