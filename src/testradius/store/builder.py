"""Load extracted file facts and registrations into the entity store."""

import re
from typing import Dict, Iterable, List, Tuple
from .entity_store import EntityStore
from ..extraction.models import FileFacts, SequentialMappingFact
from ..ingest.scanner import group_for_path
from ..utils.logging import get_logger

logger = get_logger("store.builder")


class StoreBuilder:
    """Single forward pass from FileFacts to store rows."""

    def __init__(self, store: EntityStore, anchor_segment: str = "services", fallback_group: str = "root"):
        self.store = store
        self.anchor_segment = anchor_segment
        self.fallback_group = fallback_group
        # (file id, mapping) pairs kept for the sequential resolver
        self.sequential_mappings: List[Tuple[int, SequentialMappingFact]] = []

    def add_file_facts(self, facts: FileFacts) -> int:
        """
        Insert one file and everything extracted from it.

        Returns:
            Id of the new file row
        """
        group = self.store.ensure_group(group_for_path(facts.path, self.anchor_segment, self.fallback_group))
        source_file = self.store.add_file(facts.path, group.id, facts.constructor_types)

        for struct in facts.structs:
            self.store.add_struct(struct.name, source_file.id, struct.line)

        for test in facts.test_functions:
            row = self.store.add_test_function(
                name=test.name,
                file_id=source_file.id,
                line=test.line,
                receiver_var=test.receiver_var,
                receiver_type_name=test.receiver_type_name,
                body=test.body,
            )
            for call in test.template_calls:
                self.store.add_template_call(
                    test_function_id=row.id,
                    step_index=call.step_index,
                    method_name=call.method_name,
                    expression=call.expression,
                    line=call.line,
                    receiver_var=call.receiver_var,
                    struct_name=call.struct_name,
                )

        for helper in facts.helpers:
            row = self.store.add_helper_function(
                name=helper.name,
                file_id=source_file.id,
                receiver_type_name=helper.receiver_type_name,
                line=helper.line,
                body=helper.body,
                receiver_var=helper.receiver_var,
            )
            for ref in helper.direct_references:
                self.store.add_direct_reference(
                    helper_function_id=row.id,
                    entity_name=ref.entity_name,
                    kind=ref.kind,
                    line_offset=ref.line_offset,
                    context=ref.context,
                    block_keyword=ref.block_keyword,
                )
            for edge in helper.call_edges:
                self.store.add_helper_call_edge(
                    helper_function_id=row.id,
                    kind=edge.kind,
                    target_name=edge.target_name,
                    line_offset=edge.line_offset,
                    expression=edge.expression,
                    target_method=edge.target_method,
                )

        for mapping in facts.sequential_mappings:
            self.sequential_mappings.append((source_file.id, mapping))

        return source_file.id

    def add_registrations(self, registration_content: Dict[str, str], entity_prefixes: Iterable[str]) -> int:
        """
        Record which group registers which entity.

        Any string literal starting with an entity prefix in a registration
        file counts as a registration by that file's group.

        Returns:
            Number of registration rows present afterwards
        """
        prefixes = "|".join(re.escape(p) for p in entity_prefixes)
        literal = re.compile(rf'"((?:{prefixes})[A-Za-z0-9_]+)"')
        for path in sorted(registration_content):
            group = self.store.ensure_group(group_for_path(path, self.anchor_segment, self.fallback_group))
            entities = sorted(set(literal.findall(registration_content[path])))
            for entity in entities:
                self.store.add_registration(entity, group.id, path)
            logger.debug(f"{path}: {len(entities)} registered entities for group {group.name}")
        return len(self.store.rows("registrations"))

