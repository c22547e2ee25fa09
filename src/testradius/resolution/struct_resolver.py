"""Bind test functions, helpers and template calls to the struct they operate on."""

from typing import Dict, Iterable, List, NamedTuple, Optional, Union
from ..extraction import patterns
from ..extraction.lexer import mask
from ..ingest.models import EnrichmentRecord
from ..store.entity_store import EntityStore
from ..store.models import HelperFunction, Struct, TestFunction
from ..utils.logging import get_logger

logger = get_logger("resolution.struct_resolver")

Function = Union[TestFunction, HelperFunction]


class StructBinding(NamedTuple):
    struct_id: int
    receiver_var: Optional[str]
    strategy: str


def lookup_struct(store: EntityStore, name: str, file_id: int) -> Optional[Struct]:
    """
    Find a struct by name as seen from a file.

    Same file first, then the file's group, then a name that is unique
    across the corpus. Ambiguous names resolve to nothing.
    """
    candidates = store.structs_named(name)
    if not candidates:
        return None

    in_file = [s for s in candidates if s.file_id == file_id]
    if in_file:
        return in_file[0]

    group_id = store.get_file(file_id).group_id
    in_group = [s for s in candidates if store.get_file(s.file_id).group_id == group_id]
    if in_group:
        return min(in_group, key=lambda s: s.id)

    if len(candidates) == 1:
        return candidates[0]
    return None


class ReceiverTypeStrategy:
    """Declared receiver type: `func (r WidgetResource) basic(...)`."""
    name = "receiver_type"

    def resolve(self, store: EntityStore, function: Function) -> Optional[StructBinding]:
        if not function.receiver_type_name:
            return None
        struct = lookup_struct(store, function.receiver_type_name, function.file_id)
        if struct is None:
            return None
        return StructBinding(struct.id, function.receiver_var, self.name)


class LocalInstantiationStrategy:
    """First `v := Type{}`, `var v Type` or `v, err := newType()` in the body naming a known struct."""
    name = "local_instantiation"

    def resolve(self, store: EntityStore, function: Function) -> Optional[StructBinding]:
        if not function.body:
            return None
        constructors = store.get_file(function.file_id).constructor_types
        for variable, type_name in patterns.local_bindings(mask(function.body), constructors).items():
            struct = lookup_struct(store, type_name, function.file_id)
            if struct is not None:
                return StructBinding(struct.id, variable, self.name)
        return None


class EnrichmentStrategy:
    """Receiver types supplied by an external deep parser, keyed by (file, function)."""
    name = "enrichment"

    def __init__(self, records: Iterable[EnrichmentRecord]):
        self._types: Dict[tuple, str] = {}
        for record in records:
            self._types.setdefault((record.file, record.function_name), record.receiver_type_name)

    def resolve(self, store: EntityStore, function: Function) -> Optional[StructBinding]:
        type_name = self._types.get((store.get_file(function.file_id).path, function.name))
        if type_name is None:
            return None
        struct = lookup_struct(store, type_name, function.file_id)
        if struct is None:
            return None
        return StructBinding(struct.id, function.receiver_var, self.name)


class SameFileFallbackStrategy:
    """The only struct declared in the function's file."""
    name = "same_file"

    def resolve(self, store: EntityStore, function: Function) -> Optional[StructBinding]:
        structs = store.structs_in_file(function.file_id)
        if len(structs) != 1:
            return None
        return StructBinding(structs[0].id, function.receiver_var, self.name)


class StructResolver:
    """Fills struct bindings using strategies tried in order."""

    def __init__(self, enrichment: Optional[Iterable[EnrichmentRecord]] = None, strategies: Optional[List] = None):
        if strategies is None:
            strategies = [ReceiverTypeStrategy(), LocalInstantiationStrategy()]
            if enrichment:
                strategies.append(EnrichmentStrategy(enrichment))
            strategies.append(SameFileFallbackStrategy())
        self.strategies = strategies

    def resolve_function(self, store: EntityStore, function: Function) -> Optional[StructBinding]:
        for strategy in self.strategies:
            binding = strategy.resolve(store, function)
            if binding is not None:
                return binding
        return None

    def run(self, store: EntityStore) -> Dict[str, int]:
        """
        Bind every unbound test, helper and template call.

        Existing bindings are never replaced, so running twice changes nothing.

        Returns:
            Counts of bound and unbound rows
        """
        stats = {"tests_bound": 0, "helpers_bound": 0, "template_calls_bound": 0, "template_calls_unbound": 0}

        for test in store.rows("test_functions"):
            if test.struct_id is not None or test.is_stub:
                continue
            binding = self.resolve_function(store, test)
            if binding and store.bind_test_struct(test.id, binding.struct_id, binding.receiver_var):
                stats["tests_bound"] += 1

        for helper in store.rows("helper_functions"):
            if helper.struct_id is not None:
                continue
            binding = self.resolve_function(store, helper)
            if binding and store.bind_helper_struct(helper.id, binding.struct_id, binding.receiver_var):
                stats["helpers_bound"] += 1

        local_cache: Dict[int, Dict[str, str]] = {}
        for call in store.rows("template_calls"):
            if call.struct_id is None:
                struct_id = self._struct_for_call(store, call, local_cache)
                if struct_id is not None and store.bind_template_call_struct(call.id, struct_id):
                    stats["template_calls_bound"] += 1
            if call.struct_id is None:
                stats["template_calls_unbound"] += 1

        logger.info(
            f"Struct resolution: {stats['tests_bound']} tests, {stats['helpers_bound']} helpers, "
            f"{stats['template_calls_bound']} template calls bound; "
            f"{stats['template_calls_unbound']} template calls unbound"
        )
        return stats

    @staticmethod
    def _struct_for_call(store: EntityStore, call, local_cache: Dict[int, Dict[str, str]]) -> Optional[int]:
        test = store.get_test_function(call.test_function_id)

        if call.struct_name:
            struct = lookup_struct(store, call.struct_name, test.file_id)
            return struct.id if struct else None

        if call.receiver_var is None:
            return None

        if test.struct_id is not None and call.receiver_var == test.receiver_var:
            return test.struct_id

        if test.id not in local_cache:
            constructors = store.get_file(test.file_id).constructor_types
            local_cache[test.id] = patterns.local_bindings(mask(test.body), constructors) if test.body else {}
        type_name = local_cache[test.id].get(call.receiver_var)
        if type_name is not None:
            struct = lookup_struct(store, type_name, test.file_id)
            return struct.id if struct else None

        # Enrichment binds a struct without naming the variable that holds it.
        if test.struct_id is not None and test.receiver_var is None:
            return test.struct_id
        return None
