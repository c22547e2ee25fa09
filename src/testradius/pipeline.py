"""Build a fully resolved entity store from a source tree."""

from typing import Any, Dict, Iterable, Optional, Tuple
from .contracts.blast_radius import AnalysisDiagnostics
from .extraction.extractor import LexicalExtractor
from .extraction.patterns import ENTITY_NAME
from .ingest.models import EnrichmentRecord
from .ingest.scanner import scan_sources
from .resolution.join_engine import JoinEngine
from .resolution.sequential import SequentialResolver
from .resolution.struct_resolver import StructResolver
from .store.builder import StoreBuilder
from .store.entity_store import EntityStore
from .utils.errors import ExtractionError, InvalidEntityNameError
from .utils.logging import get_logger

logger = get_logger("pipeline")


def validate_entity_name(entity_name: str) -> None:
    """
    Raises:
        InvalidEntityNameError: Unless the name looks like provider_resource_name
    """
    if not entity_name or not ENTITY_NAME.match(entity_name):
        raise InvalidEntityNameError(
            f"Invalid entity name: {entity_name!r}. "
            "Expected a lower-case resource type such as azurerm_subnet."
        )


def build_entity_store(
    root_dir: str,
    entity_name: str,
    config: Dict[str, Any],
    enrichment: Optional[Iterable[EnrichmentRecord]] = None,
    workers: Optional[int] = None,
) -> Tuple[EntityStore, AnalysisDiagnostics]:
    """
    Scan, extract and resolve a corpus for one entity.

    Args:
        root_dir: Corpus root directory
        entity_name: Entity whose blast radius is wanted
        config: Analysis configuration
        enrichment: Optional deep-parser records for struct binding
        workers: Scanner worker count override

    Returns:
        (resolved store, diagnostics)

    Raises:
        InvalidEntityNameError: If the entity name is malformed
        CorpusError: If the corpus yields no candidate or relevant file
    """
    validate_entity_name(entity_name)

    scan = scan_sources(root_dir, entity_name, config, workers=workers)
    diagnostics = AnalysisDiagnostics(
        candidate_files=len(scan.candidate_files),
        relevant_files=len(scan.relevant_files),
        read_failures=len(scan.read_failures),
        workers=scan.workers,
    )

    store = EntityStore()
    groups = config.get("groups", {})
    builder = StoreBuilder(
        store,
        anchor_segment=groups.get("anchor_segment", "services"),
        fallback_group=groups.get("fallback_group", "root"),
    )
    extractor = LexicalExtractor(config)

    for path in scan.relevant_files:
        try:
            facts = extractor.extract(path, scan.content[path])
        except ExtractionError as e:
            logger.warning(f"Skipping {path}: {e}")
            diagnostics.skipped_constructs += 1
            continue
        diagnostics.skipped_constructs += facts.skipped_constructs
        diagnostics.skipped_sequencing_literals += facts.skipped_sequencing_literals
        builder.add_file_facts(facts)

    builder.add_registrations(scan.registration_content, config["extractor"].get("entity_prefixes", []))

    struct_stats = StructResolver(enrichment=enrichment).run(store)
    join_stats = JoinEngine(store).run()
    sequential_stats = SequentialResolver(store).run(builder.sequential_mappings)

    diagnostics.unbound_template_calls = struct_stats["template_calls_unbound"]
    diagnostics.unresolved_template_calls = join_stats["unresolved_calls"]
    diagnostics.stub_tests = sequential_stats["stubs_created"]

    logger.info(f"Entity store built: {store.counts()}")
    return store, diagnostics
