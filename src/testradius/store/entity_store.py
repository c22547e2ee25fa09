"""In-memory relational store for extracted and derived facts."""

from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Tuple, Type
from pydantic import BaseModel
from .models import (
    DirectReference,
    Group,
    HelperCallEdge,
    HelperCallKind,
    HelperFunction,
    IndirectReference,
    ReferenceKind,
    Registration,
    SequentialReference,
    SequentialTarget,
    SourceFile,
    Struct,
    TemplateCallReference,
    TestFunction,
    TestFunctionOrigin,
)
from ..utils.errors import StoreIntegrityError
from ..utils.logging import get_logger

logger = get_logger("store.entity_store")

# Insertion order doubles as foreign-key dependency order.
TABLE_MODELS: Dict[str, Type[BaseModel]] = {
    "groups": Group,
    "files": SourceFile,
    "structs": Struct,
    "test_functions": TestFunction,
    "helper_functions": HelperFunction,
    "direct_references": DirectReference,
    "template_calls": TemplateCallReference,
    "helper_call_edges": HelperCallEdge,
    "indirect_references": IndirectReference,
    "sequential_references": SequentialReference,
    "registrations": Registration,
}

# (table, column) -> referenced table
FOREIGN_KEYS: Dict[str, List[Tuple[str, str]]] = {
    "files": [("group_id", "groups")],
    "structs": [("file_id", "files")],
    "test_functions": [("file_id", "files"), ("struct_id", "structs"), ("entry_point_id", "test_functions")],
    "helper_functions": [("file_id", "files"), ("struct_id", "structs")],
    "direct_references": [("helper_function_id", "helper_functions")],
    "template_calls": [("test_function_id", "test_functions"), ("struct_id", "structs")],
    "helper_call_edges": [("helper_function_id", "helper_functions"), ("target_helper_id", "helper_functions")],
    "indirect_references": [
        ("template_call_id", "template_calls"),
        ("test_function_id", "test_functions"),
        ("helper_function_id", "helper_functions"),
        ("source_helper_id", "helper_functions"),
        ("via_edge_id", "helper_call_edges"),
    ],
    "sequential_references": [("entry_point_id", "test_functions")],
    "registrations": [("group_id", "groups")],
}


class EntityStore:
    """
    Tables of extracted and derived facts keyed by integer surrogate ids.

    Rows are only ever appended or have null columns filled; ids are never
    reused or invalidated. Every append checks foreign keys and uniqueness.
    """

    def __init__(self):
        self._tables: Dict[str, Dict[int, BaseModel]] = {name: {} for name in TABLE_MODELS}
        self._next_id: Dict[str, int] = {name: 1 for name in TABLE_MODELS}

        self._group_by_name: Dict[str, int] = {}
        self._file_by_path: Dict[str, int] = {}
        self._structs_by_name: Dict[str, List[int]] = defaultdict(list)
        self._structs_by_file: Dict[int, List[int]] = defaultdict(list)
        self._tests_by_name: Dict[str, List[int]] = defaultdict(list)
        self._test_by_file_name: Dict[Tuple[int, str], int] = {}
        self._helpers_by_method_struct: Dict[Tuple[str, int], List[int]] = defaultdict(list)
        self._direct_by_entity: Dict[str, List[int]] = defaultdict(list)
        self._edges_by_helper: Dict[int, List[int]] = defaultdict(list)
        self._indirect_by_call: Dict[int, List[int]] = defaultdict(list)
        self._sequential_by_entry: Dict[int, List[int]] = defaultdict(list)
        self._registrations_by_entity: Dict[str, List[int]] = defaultdict(list)

    # ----- appends -----

    def add_group(self, name: str) -> Group:
        return self._append("groups", Group(id=self._next_id["groups"], name=name))

    def ensure_group(self, name: str) -> Group:
        group_id = self._group_by_name.get(name)
        if group_id is not None:
            return self._tables["groups"][group_id]
        return self.add_group(name)

    def add_file(self, path: str, group_id: int, constructor_types: Optional[Dict[str, str]] = None) -> SourceFile:
        return self._append("files", SourceFile(
            id=self._next_id["files"],
            path=path,
            group_id=group_id,
            constructor_types=constructor_types or {},
        ))

    def add_struct(self, name: str, file_id: int, line: int) -> Struct:
        return self._append("structs", Struct(id=self._next_id["structs"], name=name, file_id=file_id, line=line))

    def add_test_function(
        self,
        name: str,
        file_id: int,
        line: Optional[int] = None,
        receiver_var: Optional[str] = None,
        receiver_type_name: Optional[str] = None,
        body: Optional[str] = None,
        origin: TestFunctionOrigin = TestFunctionOrigin.EXTRACTED,
        struct_id: Optional[int] = None,
    ) -> TestFunction:
        return self._append("test_functions", TestFunction(
            id=self._next_id["test_functions"],
            name=name,
            file_id=file_id,
            struct_id=struct_id,
            line=line,
            receiver_var=receiver_var,
            receiver_type_name=receiver_type_name,
            origin=origin,
            body=body,
        ))

    def add_helper_function(
        self,
        name: str,
        file_id: int,
        receiver_type_name: str,
        line: int,
        body: str,
        receiver_var: Optional[str] = None,
        struct_id: Optional[int] = None,
    ) -> HelperFunction:
        return self._append("helper_functions", HelperFunction(
            id=self._next_id["helper_functions"],
            name=name,
            file_id=file_id,
            struct_id=struct_id,
            receiver_var=receiver_var,
            receiver_type_name=receiver_type_name,
            line=line,
            body=body,
        ))

    def add_direct_reference(
        self,
        helper_function_id: int,
        entity_name: str,
        kind: ReferenceKind,
        line_offset: int,
        context: str,
        block_keyword: Optional[str] = None,
    ) -> DirectReference:
        return self._append("direct_references", DirectReference(
            id=self._next_id["direct_references"],
            helper_function_id=helper_function_id,
            entity_name=entity_name,
            kind=kind,
            block_keyword=block_keyword,
            line_offset=line_offset,
            context=context,
        ))

    def add_template_call(
        self,
        test_function_id: int,
        step_index: int,
        method_name: str,
        expression: str,
        line: int,
        receiver_var: Optional[str] = None,
        struct_name: Optional[str] = None,
    ) -> TemplateCallReference:
        return self._append("template_calls", TemplateCallReference(
            id=self._next_id["template_calls"],
            test_function_id=test_function_id,
            step_index=step_index,
            struct_name=struct_name,
            receiver_var=receiver_var,
            method_name=method_name,
            expression=expression,
            line=line,
        ))

    def add_helper_call_edge(
        self,
        helper_function_id: int,
        kind: HelperCallKind,
        target_name: str,
        line_offset: int,
        expression: str,
        target_method: Optional[str] = None,
    ) -> HelperCallEdge:
        return self._append("helper_call_edges", HelperCallEdge(
            id=self._next_id["helper_call_edges"],
            helper_function_id=helper_function_id,
            kind=kind,
            target_name=target_name,
            target_method=target_method,
            line_offset=line_offset,
            expression=expression,
        ))

    def add_indirect_reference(
        self,
        template_call_id: int,
        test_function_id: int,
        step_index: int,
        kind: ReferenceKind,
        helper_function_id: Optional[int] = None,
        source_helper_id: Optional[int] = None,
        via_edge_id: Optional[int] = None,
    ) -> IndirectReference:
        """Append an indirect row, returning the existing one when an identical row exists."""
        for row_id in self._indirect_by_call.get(template_call_id, []):
            row = self._tables["indirect_references"][row_id]
            if (row.helper_function_id, row.source_helper_id, row.via_edge_id, row.kind) == (
                helper_function_id, source_helper_id, via_edge_id, kind
            ):
                return row
        return self._append("indirect_references", IndirectReference(
            id=self._next_id["indirect_references"],
            template_call_id=template_call_id,
            test_function_id=test_function_id,
            step_index=step_index,
            helper_function_id=helper_function_id,
            source_helper_id=source_helper_id,
            via_edge_id=via_edge_id,
            kind=kind,
        ))

    def add_sequential_reference(
        self,
        entry_point_id: int,
        kind: ReferenceKind,
        target: SequentialTarget,
        group: Optional[str] = None,
        key: Optional[str] = None,
        declared_index: Optional[int] = None,
        line: Optional[int] = None,
    ) -> SequentialReference:
        """Append a sequential row, returning the existing one when an identical row exists."""
        for row_id in self._sequential_by_entry.get(entry_point_id, []):
            row = self._tables["sequential_references"][row_id]
            if (row.kind, row.group, row.key, row.target) == (kind, group, key, target):
                return row
        return self._append("sequential_references", SequentialReference(
            id=self._next_id["sequential_references"],
            entry_point_id=entry_point_id,
            kind=kind,
            group=group,
            key=key,
            declared_index=declared_index,
            line=line,
            target=target,
        ))

    def add_registration(self, entity_name: str, group_id: int, source_path: str) -> Registration:
        for row_id in self._registrations_by_entity.get(entity_name, []):
            row = self._tables["registrations"][row_id]
            if row.group_id == group_id and row.source_path == source_path:
                return row
        return self._append("registrations", Registration(
            id=self._next_id["registrations"],
            entity_name=entity_name,
            group_id=group_id,
            source_path=source_path,
        ))

    # ----- fill-only enrichment -----

    def bind_test_struct(self, test_id: int, struct_id: int, receiver_var: Optional[str] = None) -> bool:
        """Bind a test to a struct; returns False when it was already bound."""
        test = self.get_test_function(test_id)
        self._require("structs", struct_id)
        if test.struct_id is not None:
            return False
        test.struct_id = struct_id
        if test.receiver_var is None and receiver_var:
            test.receiver_var = receiver_var
        return True

    def bind_helper_struct(self, helper_id: int, struct_id: int, receiver_var: Optional[str] = None) -> bool:
        """Bind a helper to a struct; returns False when it was already bound."""
        helper = self.get_helper_function(helper_id)
        self._require("structs", struct_id)
        if helper.struct_id is not None:
            return False
        helper.struct_id = struct_id
        if helper.receiver_var is None and receiver_var:
            helper.receiver_var = receiver_var
        self._helpers_by_method_struct[(helper.name, struct_id)].append(helper.id)
        return True

    def bind_template_call_struct(self, call_id: int, struct_id: int) -> bool:
        call = self.get_template_call(call_id)
        self._require("structs", struct_id)
        if call.struct_id is not None:
            return False
        call.struct_id = struct_id
        return True

    def set_entry_point(self, test_id: int, entry_point_id: int) -> bool:
        test = self.get_test_function(test_id)
        self._require("test_functions", entry_point_id)
        if test.entry_point_id is not None:
            return False
        test.entry_point_id = entry_point_id
        return True

    def resolve_edge_target(self, edge_id: int, helper_id: int) -> bool:
        edge = self.get_helper_call_edge(edge_id)
        self._require("helper_functions", helper_id)
        if edge.target_helper_id is not None:
            return False
        edge.target_helper_id = helper_id
        return True

    # ----- reads -----

    def rows(self, table: str) -> List[BaseModel]:
        """All rows of a table in id order."""
        return list(self._tables[table].values())

    def get_group(self, group_id: int) -> Group:
        return self._require("groups", group_id)

    def get_file(self, file_id: int) -> SourceFile:
        return self._require("files", file_id)

    def get_struct(self, struct_id: int) -> Struct:
        return self._require("structs", struct_id)

    def get_test_function(self, test_id: int) -> TestFunction:
        return self._require("test_functions", test_id)

    def get_helper_function(self, helper_id: int) -> HelperFunction:
        return self._require("helper_functions", helper_id)

    def get_template_call(self, call_id: int) -> TemplateCallReference:
        return self._require("template_calls", call_id)

    def get_helper_call_edge(self, edge_id: int) -> HelperCallEdge:
        return self._require("helper_call_edges", edge_id)

    def group_named(self, name: str) -> Optional[Group]:
        group_id = self._group_by_name.get(name)
        return None if group_id is None else self._tables["groups"][group_id]

    def file_at(self, path: str) -> Optional[SourceFile]:
        file_id = self._file_by_path.get(path)
        return None if file_id is None else self._tables["files"][file_id]

    def structs_named(self, name: str) -> List[Struct]:
        return self._lookup("structs", self._structs_by_name.get(name, []))

    def structs_in_file(self, file_id: int) -> List[Struct]:
        return self._lookup("structs", self._structs_by_file.get(file_id, []))

    def tests_named(self, name: str) -> List[TestFunction]:
        return self._lookup("test_functions", self._tests_by_name.get(name, []))

    def test_in_file(self, file_id: int, name: str) -> Optional[TestFunction]:
        test_id = self._test_by_file_name.get((file_id, name))
        return None if test_id is None else self._tables["test_functions"][test_id]

    def helpers_for(self, method: str, struct_id: int) -> List[HelperFunction]:
        """Helpers named method bound to struct_id."""
        return self._lookup("helper_functions", self._helpers_by_method_struct.get((method, struct_id), []))

    def direct_references_to(self, entity_name: str) -> List[DirectReference]:
        return self._lookup("direct_references", self._direct_by_entity.get(entity_name, []))

    def edges_from(self, helper_id: int) -> List[HelperCallEdge]:
        return self._lookup("helper_call_edges", self._edges_by_helper.get(helper_id, []))

    def indirect_references_for(self, call_id: int) -> List[IndirectReference]:
        return self._lookup("indirect_references", self._indirect_by_call.get(call_id, []))

    def sequential_references_from(self, entry_point_id: int) -> List[SequentialReference]:
        return self._lookup("sequential_references", self._sequential_by_entry.get(entry_point_id, []))

    def registrations_for(self, entity_name: str) -> List[Registration]:
        return self._lookup("registrations", self._registrations_by_entity.get(entity_name, []))

    def counts(self) -> Dict[str, int]:
        return {name: len(rows) for name, rows in self._tables.items()}

    # ----- restore -----

    @classmethod
    def restore(cls, tables: Dict[str, Iterable[BaseModel]]) -> "EntityStore":
        """
        Rebuild a store from rows that already carry their ids.

        Raises:
            StoreIntegrityError: On duplicate ids or dangling foreign keys
        """
        store = cls()
        deferred_entry_points: List[Tuple[int, int]] = []
        for table in TABLE_MODELS:
            for row in tables.get(table, []):
                if isinstance(row, TestFunction) and row.entry_point_id is not None:
                    deferred_entry_points.append((row.id, row.entry_point_id))
                    row = row.model_copy(update={"entry_point_id": None})
                store._append(table, row)
        for test_id, entry_point_id in deferred_entry_points:
            store.set_entry_point(test_id, entry_point_id)
        return store

    # ----- internals -----

    def _append(self, table: str, row: BaseModel) -> BaseModel:
        rows = self._tables[table]
        if row.id in rows:
            raise StoreIntegrityError(f"Duplicate id {row.id} in {table}")
        for column, referenced in FOREIGN_KEYS.get(table, []):
            value = getattr(row, column)
            if value is not None and value not in self._tables[referenced]:
                raise StoreIntegrityError(
                    f"{table}.{column}={value} references a missing {referenced} row"
                )
        if table == "sequential_references" and row.referenced_test_function_id not in self._tables["test_functions"]:
            raise StoreIntegrityError(
                f"sequential_references target {row.referenced_test_function_id} references a missing test_functions row"
            )
        self._check_unique(table, row)

        rows[row.id] = row
        self._next_id[table] = max(self._next_id[table], row.id + 1)
        self._index(table, row)
        return row

    def _check_unique(self, table: str, row: BaseModel) -> None:
        if table == "groups" and row.name in self._group_by_name:
            raise StoreIntegrityError(f"Duplicate group: {row.name}")
        if table == "files" and row.path in self._file_by_path:
            raise StoreIntegrityError(f"Duplicate file: {row.path}")
        if table == "test_functions" and (row.file_id, row.name) in self._test_by_file_name:
            raise StoreIntegrityError(f"Duplicate test function {row.name} in file {row.file_id}")

    def _index(self, table: str, row: BaseModel) -> None:
        if table == "groups":
            self._group_by_name[row.name] = row.id
        elif table == "files":
            self._file_by_path[row.path] = row.id
        elif table == "structs":
            self._structs_by_name[row.name].append(row.id)
            self._structs_by_file[row.file_id].append(row.id)
        elif table == "test_functions":
            self._tests_by_name[row.name].append(row.id)
            self._test_by_file_name[(row.file_id, row.name)] = row.id
        elif table == "helper_functions":
            if row.struct_id is not None:
                self._helpers_by_method_struct[(row.name, row.struct_id)].append(row.id)
        elif table == "direct_references":
            self._direct_by_entity[row.entity_name].append(row.id)
        elif table == "helper_call_edges":
            self._edges_by_helper[row.helper_function_id].append(row.id)
        elif table == "indirect_references":
            self._indirect_by_call[row.template_call_id].append(row.id)
        elif table == "sequential_references":
            self._sequential_by_entry[row.entry_point_id].append(row.id)
        elif table == "registrations":
            self._registrations_by_entity[row.entity_name].append(row.id)

    def _require(self, table: str, row_id: int) -> BaseModel:
        row = self._tables[table].get(row_id)
        if row is None:
            raise StoreIntegrityError(f"No {table} row with id {row_id}")
        return row

    def _lookup(self, table: str, ids: List[int]) -> List[BaseModel]:
        rows = self._tables[table]
        return [rows[row_id] for row_id in ids]
