"""Derive indirect references from template calls by key comparisons."""

from typing import Dict
from .struct_resolver import lookup_struct
from ..store.entity_store import EntityStore
from ..store.models import HelperCallKind, ReferenceKind
from ..utils.logging import get_logger

logger = get_logger("resolution.join_engine")


class JoinEngine:
    """
    Joins template calls to helper functions on (method, struct id).

    Never reads source text; everything comes from store keys. Running it
    again over the same store adds nothing.
    """

    def __init__(self, store: EntityStore):
        self.store = store

    def run(self) -> Dict[str, int]:
        stats = {"edges_resolved": self.resolve_edges()}
        stats.update(self.join_template_calls())
        logger.info(
            f"Join: {stats['edges_resolved']} helper edges resolved, "
            f"{stats['rows_added']} indirect rows added, "
            f"{stats['unresolved_calls']} template calls unresolved, "
            f"{stats['unbound_calls']} unbound"
        )
        return stats

    def resolve_edges(self) -> int:
        """Fill target_helper_id on walkable edges; returns the number filled."""
        resolved = 0
        for edge in self.store.rows("helper_call_edges"):
            if edge.target_helper_id is not None or not edge.is_walkable:
                continue
            source = self.store.get_helper_function(edge.helper_function_id)

            if edge.kind == HelperCallKind.CALLS_HELPER:
                if source.struct_id is None:
                    continue
                candidates = self.store.helpers_for(edge.target_name, source.struct_id)
            else:
                struct = lookup_struct(self.store, edge.target_name, source.file_id)
                if struct is None:
                    continue
                candidates = self.store.helpers_for(edge.target_method, struct.id)

            if candidates and self.store.resolve_edge_target(edge.id, min(h.id for h in candidates)):
                resolved += 1
        return resolved

    def join_template_calls(self) -> Dict[str, int]:
        stats = {"rows_added": 0, "unresolved_calls": 0, "unbound_calls": 0}
        before = len(self.store.rows("indirect_references"))

        for call in self.store.rows("template_calls"):
            if call.struct_id is None:
                stats["unbound_calls"] += 1
                continue
            if self.store.indirect_references_for(call.id):
                continue

            test = self.store.get_test_function(call.test_function_id)
            helpers = self.store.helpers_for(call.method_name, call.struct_id)

            if not helpers:
                stats["unresolved_calls"] += 1
                self.store.add_indirect_reference(
                    template_call_id=call.id,
                    test_function_id=test.id,
                    step_index=call.step_index,
                    kind=ReferenceKind.UNRESOLVED_EXTERNAL,
                )
                continue

            for helper in helpers:
                walkable = [edge for edge in self.store.edges_from(helper.id) if edge.is_walkable]
                if not walkable:
                    self.store.add_indirect_reference(
                        template_call_id=call.id,
                        test_function_id=test.id,
                        step_index=call.step_index,
                        kind=_locality(test.file_id, helper.file_id),
                        helper_function_id=helper.id,
                        source_helper_id=helper.id,
                    )
                    continue

                for edge in walkable:
                    if edge.target_helper_id is None:
                        self.store.add_indirect_reference(
                            template_call_id=call.id,
                            test_function_id=test.id,
                            step_index=call.step_index,
                            kind=ReferenceKind.UNRESOLVED_EXTERNAL,
                            helper_function_id=helper.id,
                            source_helper_id=helper.id,
                            via_edge_id=edge.id,
                        )
                        continue
                    target = self.store.get_helper_function(edge.target_helper_id)
                    same_file = test.file_id == helper.file_id == target.file_id
                    self.store.add_indirect_reference(
                        template_call_id=call.id,
                        test_function_id=test.id,
                        step_index=call.step_index,
                        kind=ReferenceKind.SAME_FILE if same_file else ReferenceKind.CROSS_FILE,
                        helper_function_id=helper.id,
                        source_helper_id=target.id,
                        via_edge_id=edge.id,
                    )

        stats["rows_added"] = len(self.store.rows("indirect_references")) - before
        return stats


def _locality(test_file_id: int, helper_file_id: int) -> ReferenceKind:
    return ReferenceKind.SAME_FILE if test_file_id == helper_file_id else ReferenceKind.CROSS_FILE
