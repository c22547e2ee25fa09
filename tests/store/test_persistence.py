"""Tests for saving and loading entity store tables."""

import json
import pytest
from testradius.store.persistence import FORMAT_VERSION, flatten_record, load_tables, save_tables, unflatten_record
from testradius.store.models import HelperCallEdge, HelperCallKind, ReferenceKind, SequentialReference, UnresolvedTarget
from testradius.utils.errors import PersistenceError


class TestSaveAndLoad:
    """Test the JSON table round trip."""

    def test_round_trip_preserves_rows(self, full_corpus, build_store, tmp_path):
        store = build_store(full_corpus, "azurerm_widget")
        tables_dir = tmp_path / "tables"
        save_tables(store, tables_dir)

        metadata = json.loads((tables_dir / "metadata.json").read_text())
        assert metadata["format_version"] == FORMAT_VERSION
        assert metadata["row_counts"] == store.counts()

        loaded = load_tables(tables_dir)
        assert loaded.counts() == store.counts()
        for table in store.counts():
            assert [row.model_dump() for row in loaded.rows(table)] == [row.model_dump() for row in store.rows(table)]

    def test_missing_directory(self, tmp_path):
        with pytest.raises(PersistenceError, match="not found"):
            load_tables(tmp_path / "absent")

    def test_missing_table_file(self, widget_corpus, build_store, tmp_path):
        tables_dir = tmp_path / "tables"
        save_tables(build_store(widget_corpus, "azurerm_widget"), tables_dir)
        (tables_dir / "structs.json").unlink()

        with pytest.raises(PersistenceError, match="structs.json"):
            load_tables(tables_dir)

    def test_unsupported_format(self, widget_corpus, build_store, tmp_path):
        tables_dir = tmp_path / "tables"
        save_tables(build_store(widget_corpus, "azurerm_widget"), tables_dir)
        (tables_dir / "metadata.json").write_text(json.dumps({"format_version": "0"}))

        with pytest.raises(PersistenceError, match="Unsupported"):
            load_tables(tables_dir)

    def test_invalid_record(self, widget_corpus, build_store, tmp_path):
        tables_dir = tmp_path / "tables"
        save_tables(build_store(widget_corpus, "azurerm_widget"), tables_dir)
        (tables_dir / "groups.json").write_text(json.dumps([{"id": "x"}]))

        with pytest.raises(PersistenceError, match="groups.json"):
            load_tables(tables_dir)


class TestFlatRecords:
    """Test flattening of the sequential target variant."""

    def test_sequential_target_flattened(self):
        row = SequentialReference(
            id=3, entry_point_id=1, kind=ReferenceKind.SEQUENTIAL_MEMBER, group="widget", key="external",
            target=UnresolvedTarget(name="testAccWidget_elsewhere", stub_test_function_id=7),
        )
        record = flatten_record(row)

        assert record["target_state"] == "UNRESOLVED"
        assert record["target_stub_test_function_id"] == 7
        assert "target" not in record
        assert SequentialReference.model_validate(unflatten_record(record)) == row

    def test_edge_target_columns_untouched(self):
        edge = HelperCallEdge(
            id=1, helper_function_id=1, kind=HelperCallKind.CALLS_HELPER, target_name="template",
            target_method=None, line_offset=2, expression="r.template(data)", target_helper_id=4,
        )
        record = flatten_record(edge)

        assert unflatten_record(record) == record
        assert HelperCallEdge.model_validate(unflatten_record(record)) == edge
