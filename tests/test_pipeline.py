"""Tests for the end-to-end store build and the package API."""

import json
import pytest
from testradius import analyze, query_tables
from testradius.ingest.models import EnrichmentRecord
from testradius.pipeline import build_entity_store, validate_entity_name
from testradius.utils.errors import CorpusError, InvalidEntityNameError, TestRadiusError


class TestValidateEntityName:
    """Test entity name validation."""

    @pytest.mark.parametrize("name", ["azurerm_subnet", "azurerm_key_vault_key", "google_compute_instance"])
    def test_valid(self, name):
        validate_entity_name(name)

    @pytest.mark.parametrize("name", ["", "subnet", "Azurerm_Subnet", "azurerm-subnet", "azurerm_"])
    def test_invalid(self, name):
        with pytest.raises(InvalidEntityNameError):
            validate_entity_name(name)


class TestBuildEntityStore:
    """Test the pipeline stages together."""

    def test_diagnostics(self, full_corpus, config):
        store, diagnostics = build_entity_store(str(full_corpus), "azurerm_widget", config, workers=2)

        assert diagnostics.candidate_files == 5
        assert diagnostics.relevant_files == 3
        assert diagnostics.read_failures == 0
        assert diagnostics.stub_tests == 1
        assert diagnostics.unbound_template_calls == 0
        assert diagnostics.workers <= 2
        assert store.counts()["files"] == 3

    def test_enrichment_binds_unbound_test(self, tmp_path, config):
        (tmp_path / "internal/services/widget").mkdir(parents=True)
        (tmp_path / "internal/services/widget/widget_test.go").write_text(
            "package widget_test\n\n"
            "type WidgetResource struct{}\n"
            "type OtherResource struct{}\n\n"
            "func TestAccWidget_basic(t *testing.T) {\n"
            "\tdata.ResourceTest(t, r, []acceptance.TestStep{\n"
            "\t\t{\n"
            "\t\t\tConfig: r.basic(data),\n"
            "\t\t},\n"
            "\t})\n"
            "}\n\n"
            "func (r WidgetResource) basic(data acceptance.TestData) string {\n"
            "\treturn `resource \"azurerm_widget\" \"test\" {}`\n"
            "}\n"
        )
        _, plain = build_entity_store(str(tmp_path), "azurerm_widget", config)
        assert plain.unbound_template_calls == 1

        enrichment = [EnrichmentRecord(
            file="internal/services/widget/widget_test.go",
            functionName="TestAccWidget_basic",
            receiverTypeName="WidgetResource",
        )]
        store, enriched = build_entity_store(str(tmp_path), "azurerm_widget", config, enrichment=enrichment)

        assert enriched.unbound_template_calls == 0
        assert len(store.rows("indirect_references")) == 1

    def test_no_relevant_files(self, widget_corpus, config):
        with pytest.raises(CorpusError):
            build_entity_store(str(widget_corpus), "azurerm_gadget", config)


class TestPackageApi:
    """Test analyze and query_tables."""

    def test_analyze_and_query(self, full_corpus, tmp_path):
        tables_dir = tmp_path / "tables"
        result = analyze(str(full_corpus), "azurerm_subnet", tables_dir=str(tables_dir))

        assert result["owner_group"] == "network"
        assert [t["test_name"] for t in result["impacted_tests"]] == ["TestAccHop_basic"]
        json.dumps(result)

        queried = query_tables(str(tables_dir), "azurerm_subnet")
        assert queried["impacted_tests"] == result["impacted_tests"]

    def test_errors_are_package_errors(self, tmp_path):
        with pytest.raises(TestRadiusError):
            query_tables(str(tmp_path), "azurerm_subnet")
