"""Determine which group owns an entity."""

from collections import Counter
from typing import Iterable, Optional
from ..store.entity_store import EntityStore
from ..store.models import DirectReference, Group, ReferenceKind
from ..utils.logging import get_logger

logger = get_logger("analysis.ownership")


def resolve_owner_group(store: EntityStore, entity_name: str, override: Optional[str] = None) -> Optional[Group]:
    """
    Find the group owning an entity.

    Order: explicit override, the group whose registration file names the
    entity (lexically first when several do), the group with the most
    declaration blocks for it, the group with the most direct references.

    Returns:
        Owning group, or None when nothing identifies one
    """
    if override:
        group = store.group_named(override)
        if group is None:
            logger.warning(f"Owner group override {override} does not match any scanned group")
        return group

    registered = sorted({store.get_group(r.group_id).name for r in store.registrations_for(entity_name)})
    if registered:
        if len(registered) > 1:
            logger.warning(f"{entity_name} is registered by several groups: {registered}; using {registered[0]}")
        return store.group_named(registered[0])

    references = store.direct_references_to(entity_name)
    declarations = [ref for ref in references if ref.kind == ReferenceKind.FULL_DECLARATION]
    for rows in (declarations, references):
        group = _majority_group(store, rows)
        if group is not None:
            return group

    logger.info(f"No owning group found for {entity_name}")
    return None


def _majority_group(store: EntityStore, references: Iterable[DirectReference]) -> Optional[Group]:
    counts = Counter()
    for ref in references:
        helper = store.get_helper_function(ref.helper_function_id)
        counts[store.get_file(helper.file_id).group_id] += 1
    if not counts:
        return None
    # Ties go to the lexically first group name.
    group_id = min(counts, key=lambda gid: (-counts[gid], store.get_group(gid).name))
    return store.get_group(group_id)
