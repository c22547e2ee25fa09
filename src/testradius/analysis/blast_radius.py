"""Query the store for every test impacted by an entity."""

from typing import Dict, List, Optional, Set, Tuple
from .ownership import resolve_owner_group
from ..contracts.blast_radius import (
    RISK_ORDER,
    AnalysisDiagnostics,
    BlastRadius,
    DirectReferenceView,
    ImpactedTest,
    IndirectReferenceView,
    RiskLevel,
    SequentialReferenceView,
)
from ..graph.helper_graph import HelperGraph
from ..store.entity_store import EntityStore
from ..store.models import IndirectReference, ReferenceKind, SequentialReference
from ..utils.logging import get_logger

logger = get_logger("analysis.blast_radius")


class BlastRadiusQuery:
    """
    Read-only query surface over a fully resolved store.

    Risk is computed here, not stored: an indirect test is LOW when its
    group owns the entity and HIGH otherwise; sequential rows are MEDIUM.
    """

    def __init__(self, store: EntityStore, owner_group: Optional[str] = None):
        self.store = store
        self.owner_override = owner_group
        self.graph = HelperGraph()
        self.graph.build_from_store(store)

    def get_direct_references(self, entity_name: str) -> List[DirectReferenceView]:
        """Direct rows for the entity, ordered by file path then absolute line."""
        views = []
        for ref in self.store.direct_references_to(entity_name):
            helper = self.store.get_helper_function(ref.helper_function_id)
            source_file = self.store.get_file(helper.file_id)
            views.append(DirectReferenceView(
                id=ref.id,
                entity_name=ref.entity_name,
                kind=ref.kind.value,
                block_keyword=ref.block_keyword,
                file_path=source_file.path,
                group=self.store.get_group(source_file.group_id).name,
                helper_name=helper.name,
                struct_name=self.store.get_struct(helper.struct_id).name if helper.struct_id else None,
                line=helper.line + ref.line_offset,
                context=ref.context,
            ))
        return sorted(views, key=lambda v: (v.file_path, v.line, v.id))

    def get_indirect_references(self, entity_name: str) -> List[IndirectReferenceView]:
        """Risk-classified indirect rows, one per (test, step, template call)."""
        owner = resolve_owner_group(self.store, entity_name, self.owner_override)
        views = []
        for row in self._indirect_rows(entity_name):
            test = self.store.get_test_function(row.test_function_id)
            call = self.store.get_template_call(row.template_call_id)
            test_file = self.store.get_file(test.file_id)
            helper = self.store.get_helper_function(row.helper_function_id) if row.helper_function_id else None
            source = self.store.get_helper_function(row.source_helper_id) if row.source_helper_id else None
            views.append(IndirectReferenceView(
                id=row.id,
                test_name=test.name,
                file_path=test_file.path,
                group=self.store.get_group(test_file.group_id).name,
                step_index=row.step_index,
                line=call.line,
                expression=call.expression,
                kind=row.kind.value,
                helper_name=helper.name if helper else None,
                helper_file_path=self.store.get_file(helper.file_id).path if helper else None,
                source_helper_name=source.name if source else None,
                source_file_path=self.store.get_file(source.file_id).path if source else None,
                risk=RiskLevel.LOW if owner is not None and test_file.group_id == owner.id else RiskLevel.HIGH,
            ))
        return sorted(views, key=lambda v: (v.file_path, v.line, v.step_index, v.id))

    def get_sequential_references(self, entity_name: str) -> List[SequentialReferenceView]:
        """
        Sequential rows whose member reaches the entity.

        A test qualifies when it has an indirect reference to the entity or
        is the entry point of a qualifying member, repeated until stable.
        For every qualifying entry point, and every entry point with a
        qualifying member, the entry row, the qualifying members and every
        unresolved member are returned.
        """
        qualifying = {row.test_function_id for row in self._indirect_rows(entity_name)}
        rows_by_entry: Dict[int, List[SequentialReference]] = {}
        for row in self.store.rows("sequential_references"):
            rows_by_entry.setdefault(row.entry_point_id, []).append(row)
        active: Set[int] = {entry_id for entry_id in rows_by_entry if entry_id in qualifying}

        changed = True
        while changed:
            changed = False
            for entry_id, rows in rows_by_entry.items():
                if entry_id in active:
                    continue
                if any(
                    row.kind == ReferenceKind.SEQUENTIAL_MEMBER and row.is_resolved
                    and row.referenced_test_function_id in qualifying
                    for row in rows
                ):
                    active.add(entry_id)
                    qualifying.add(entry_id)
                    changed = True

        views = []
        for entry_id in active:
            for row in rows_by_entry[entry_id]:
                if row.kind == ReferenceKind.SEQUENTIAL_MEMBER and row.is_resolved:
                    if row.referenced_test_function_id not in qualifying:
                        continue
                views.append(self._sequential_view(row))

        return sorted(views, key=lambda v: (
            v.entry_file_path, v.group or "", v.key or "", v.declared_index or 0, v.entry_point_name, v.id
        ))

    def get_blast_radius(self, entity_name: str, diagnostics: Optional[AnalysisDiagnostics] = None) -> BlastRadius:
        """Direct, indirect and sequential references plus the deduplicated impacted tests."""
        owner = resolve_owner_group(self.store, entity_name, self.owner_override)
        direct = self.get_direct_references(entity_name)
        indirect = self.get_indirect_references(entity_name)
        sequential = self.get_sequential_references(entity_name)

        impacted: Dict[Tuple[str, str], ImpactedTest] = {}
        for view in indirect:
            _merge_impacted(impacted, view.test_name, view.file_path, view.group, view.risk, view.kind, True)
        for view in sequential:
            test_file = self.store.file_at(view.file_path)
            group = self.store.get_group(test_file.group_id).name
            _merge_impacted(impacted, view.test_name, view.file_path, group, view.risk, view.kind, view.resolved)

        impacted_tests = sorted(impacted.values(), key=lambda t: (t.file_path, t.test_name))
        result = BlastRadius(
            entity_name=entity_name,
            owner_group=owner.name if owner else None,
            direct=direct,
            indirect=indirect,
            sequential=sequential,
            impacted_tests=impacted_tests,
            counts={
                "direct": len(direct),
                "indirect": len(indirect),
                "sequential": len(sequential),
                "impacted_tests": len(impacted_tests),
                "high_risk": sum(1 for t in impacted_tests if t.risk == RiskLevel.HIGH),
            },
            diagnostics=diagnostics,
        )
        logger.info(
            f"Blast radius for {entity_name}: {len(direct)} direct, {len(indirect)} indirect, "
            f"{len(sequential)} sequential, {len(impacted_tests)} impacted tests"
        )
        return result

    def _indirect_rows(self, entity_name: str) -> List[IndirectReference]:
        declaring = {ref.helper_function_id for ref in self.store.direct_references_to(entity_name)}
        reaching = self.graph.helpers_reaching(declaring)

        chosen: Dict[Tuple[int, int, int], Tuple[Tuple[int, int], IndirectReference]] = {}
        for row in self.store.rows("indirect_references"):
            source_reaches = row.source_helper_id in reaching
            if not source_reaches and row.helper_function_id not in reaching:
                continue
            key = (row.test_function_id, row.step_index, row.template_call_id)
            rank = (0 if source_reaches else 1, row.id)
            if key not in chosen or rank < chosen[key][0]:
                chosen[key] = (rank, row)
        return [row for _, row in chosen.values()]

    def _sequential_view(self, row: SequentialReference) -> SequentialReferenceView:
        entry = self.store.get_test_function(row.entry_point_id)
        test = self.store.get_test_function(row.referenced_test_function_id)
        return SequentialReferenceView(
            id=row.id,
            kind=row.kind.value,
            entry_point_name=entry.name,
            entry_file_path=self.store.get_file(entry.file_id).path,
            group=row.group,
            key=row.key,
            declared_index=row.declared_index,
            line=row.line,
            test_name=test.name,
            file_path=self.store.get_file(test.file_id).path,
            resolved=row.is_resolved,
        )


def _merge_impacted(
    impacted: Dict[Tuple[str, str], ImpactedTest],
    test_name: str,
    file_path: str,
    group: str,
    risk: RiskLevel,
    kind: str,
    resolved: bool,
) -> None:
    key = (file_path, test_name)
    existing = impacted.get(key)
    if existing is None:
        impacted[key] = ImpactedTest(
            test_name=test_name, file_path=file_path, group=group,
            risk=risk, reference_kinds=[kind], resolved=resolved,
        )
        return
    if RISK_ORDER[RiskLevel(risk)] > RISK_ORDER[RiskLevel(existing.risk)]:
        existing.risk = risk
    if kind not in existing.reference_kinds:
        existing.reference_kinds = sorted(existing.reference_kinds + [kind])
