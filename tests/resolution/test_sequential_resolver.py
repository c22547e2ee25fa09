"""Tests for sequential entry point resolution."""

from testradius.extraction.models import SequentialMappingFact
from testradius.resolution.sequential import SequentialResolver
from testradius.store.entity_store import EntityStore
from testradius.store.models import ReferenceKind


def mapping(name, key, index=1, entry="TestAccWidget_sequential"):
    return SequentialMappingFact(
        entry_function=entry, group="widget", key=key, referenced_name=name, declared_index=index, line=5 + index,
    )


def make_store():
    store = EntityStore()
    group = store.add_group("widget")
    tests_file = store.add_file("internal/services/widget/widget_resource_test.go", group.id)
    seq_file = store.add_file("internal/services/widget/widget_sequential_test.go", group.id)
    struct = store.add_struct("WidgetResource", tests_file.id, 3)
    store.add_test_function("TestAccWidget_basic", tests_file.id, line=10, struct_id=struct.id)
    store.add_test_function("TestAccWidget_sequential", seq_file.id, line=3)
    return store


class TestSequentialResolver:
    """Test member resolution and stub synthesis."""

    def test_resolved_and_stub_members(self):
        store = make_store()
        stats = SequentialResolver(store).run([
            (2, mapping("TestAccWidget_basic", "basic", 1)),
            (2, mapping("testAccWidget_elsewhere", "external", 2)),
        ])

        assert stats == {"entry_points": 1, "resolved_members": 1, "unresolved_members": 1, "stubs_created": 1}

        rows = store.sequential_references_from(2)
        assert [r.kind for r in rows] == [
            ReferenceKind.SEQUENTIAL_MEMBER, ReferenceKind.SEQUENTIAL_MEMBER, ReferenceKind.SEQUENTIAL_ENTRY,
        ]
        assert rows[0].referenced_test_function_id == 1
        assert rows[2].referenced_test_function_id == 2

        stub = store.get_test_function(rows[1].referenced_test_function_id)
        assert stub.is_stub
        assert stub.name == "testAccWidget_elsewhere"
        # stub inherits the resolved sibling's file and struct
        assert stub.file_id == 1
        assert stub.struct_id == 1
        assert stub.entry_point_id == 2
        assert store.get_test_function(1).entry_point_id == 2

    def test_rerun_reuses_stub_and_rows(self):
        store = make_store()
        mappings = [(2, mapping("testAccWidget_elsewhere", "external"))]
        SequentialResolver(store).run(mappings)
        counts = store.counts()

        stats = SequentialResolver(store).run(mappings)

        assert stats["stubs_created"] == 0
        assert store.counts() == counts

    def test_stub_without_sibling_lives_with_entry(self):
        store = make_store()
        SequentialResolver(store).run([(2, mapping("testAccWidget_elsewhere", "external"))])
        stub = store.tests_named("testAccWidget_elsewhere")[0]
        assert stub.file_id == 2

    def test_unknown_entry_point_skipped(self):
        store = make_store()
        stats = SequentialResolver(store).run([(2, mapping("TestAccWidget_basic", "basic", entry="TestAccMissing"))])
        assert stats["entry_points"] == 0
        assert store.rows("sequential_references") == []

    def test_find_test_prefers_same_file(self):
        store = make_store()
        store.add_test_function("TestAccWidget_basic", 2, line=30)
        entry = store.tests_named("TestAccWidget_sequential")[0]
        assert SequentialResolver(store).find_test("TestAccWidget_basic", entry).file_id == 2
