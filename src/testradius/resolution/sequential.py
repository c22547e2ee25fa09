"""Link sequencing-map entry points to their member tests."""

from collections import OrderedDict
from typing import Dict, Iterable, List, Optional, Tuple
from ..extraction.models import SequentialMappingFact
from ..store.entity_store import EntityStore
from ..store.models import ReferenceKind, ResolvedTarget, TestFunction, TestFunctionOrigin, UnresolvedTarget
from ..utils.logging import get_logger

logger = get_logger("resolution.sequential")


class SequentialResolver:
    """
    Turns (entry point, group, key, function name) mappings into sequential rows.

    Names that match an extracted test become resolved members; anything else
    gets a stub test function so every group/key pair stays representable.
    """

    def __init__(self, store: EntityStore):
        self.store = store

    def run(self, mappings: Iterable[Tuple[int, SequentialMappingFact]]) -> Dict[str, int]:
        """
        Args:
            mappings: (file id, mapping) pairs from the extractor

        Returns:
            Counts of entry points, resolved members, unresolved members and stubs created
        """
        stats = {"entry_points": 0, "resolved_members": 0, "unresolved_members": 0, "stubs_created": 0}

        by_entry: "OrderedDict[int, List[SequentialMappingFact]]" = OrderedDict()
        for file_id, mapping in mappings:
            entry = self.store.test_in_file(file_id, mapping.entry_function)
            if entry is None:
                logger.warning(
                    f"Sequencing entry point {mapping.entry_function} not found in file {file_id}; skipping"
                )
                continue
            by_entry.setdefault(entry.id, []).append(mapping)

        for entry_id, entry_mappings in by_entry.items():
            entry = self.store.get_test_function(entry_id)
            stats["entry_points"] += 1

            resolved: List[Tuple[SequentialMappingFact, Optional[TestFunction]]] = [
                (mapping, self.find_test(mapping.referenced_name, entry)) for mapping in entry_mappings
            ]
            sibling = next((test for _, test in resolved if test is not None and test.id != entry.id), None)
            owner = sibling or entry

            for mapping, member in resolved:
                if member is not None:
                    if member.id != entry.id:
                        self.store.set_entry_point(member.id, entry.id)
                    target = ResolvedTarget(test_function_id=member.id)
                    stats["resolved_members"] += 1
                else:
                    stub, created = self._stub_for(mapping.referenced_name, owner)
                    stats["stubs_created"] += int(created)
                    self.store.set_entry_point(stub.id, entry.id)
                    target = UnresolvedTarget(name=mapping.referenced_name, stub_test_function_id=stub.id)
                    stats["unresolved_members"] += 1

                self.store.add_sequential_reference(
                    entry_point_id=entry.id,
                    kind=ReferenceKind.SEQUENTIAL_MEMBER,
                    target=target,
                    group=mapping.group,
                    key=mapping.key,
                    declared_index=mapping.declared_index,
                    line=mapping.line,
                )

            self.store.add_sequential_reference(
                entry_point_id=entry.id,
                kind=ReferenceKind.SEQUENTIAL_ENTRY,
                target=ResolvedTarget(test_function_id=entry.id),
                line=entry.line,
            )

        logger.info(
            f"Sequential: {stats['entry_points']} entry points, {stats['resolved_members']} resolved members, "
            f"{stats['unresolved_members']} unresolved ({stats['stubs_created']} stubs created)"
        )
        return stats

    def find_test(self, name: str, entry: TestFunction) -> Optional[TestFunction]:
        """Extracted test named name: same file, then same group, then anywhere."""
        candidates = [test for test in self.store.tests_named(name) if not test.is_stub]
        if not candidates:
            return None

        in_file = [test for test in candidates if test.file_id == entry.file_id]
        if in_file:
            return in_file[0]

        group_id = self.store.get_file(entry.file_id).group_id
        in_group = [test for test in candidates if self.store.get_file(test.file_id).group_id == group_id]
        if in_group:
            return min(in_group, key=lambda test: test.id)

        return min(candidates, key=lambda test: test.id)

    def _stub_for(self, name: str, owner: TestFunction) -> Tuple[TestFunction, bool]:
        existing = self.store.test_in_file(owner.file_id, name)
        if existing is not None:
            return existing, False
        stub = self.store.add_test_function(
            name=name,
            file_id=owner.file_id,
            origin=TestFunctionOrigin.EXTERNAL_STUB,
            struct_id=owner.struct_id,
        )
        logger.debug(f"Synthesized stub test function {name} in file {owner.file_id}")
        return stub, True
