"""Tests for blast radius queries."""

import pytest
from conftest import CONSTRUCTOR_TEST, WIDGET_TEST, write_files
from testradius.analysis.blast_radius import BlastRadiusQuery

CHAIN_TEST = '''package network_test

type ChainResource struct{}

func TestAccChain_basic(t *testing.T) {
	r := ChainResource{}
	data.ResourceTest(t, r, []acceptance.TestStep{
		{
			Config: r.complete(data),
		},
	})
}

func TestAccChain_unrelated(t *testing.T) {
	r := ChainResource{}
	data.ResourceTest(t, r, []acceptance.TestStep{
		{
			Config: r.unrelated(data),
		},
	})
}

func (r ChainResource) complete(data acceptance.TestData) string {
	return fmt.Sprintf(`
%s
`, r.basic(data))
}

func (r ChainResource) basic(data acceptance.TestData) string {
	return fmt.Sprintf(`
%s
`, r.template(data))
}

func (ChainResource) template(data acceptance.TestData) string {
	return `
resource "azurerm_subnet" "test" {
  name = "internal"
}
`
}

func (ChainResource) unrelated(data acceptance.TestData) string {
	return `
resource "azurerm_storage" "test" {}
`
}
'''


TWICE_TEST = '''package network_test

type TwiceResource struct{}

func TestAccTwice_basic(t *testing.T) {
	r := TwiceResource{}
	data.ResourceTest(t, r, []acceptance.TestStep{
		{
			Config: r.basic(data),
		},
	})
}

func (r TwiceResource) basic(data acceptance.TestData) string {
	return fmt.Sprintf(`
%s

%s
`, r.template(data), r.template(data))
}

func (TwiceResource) template(data acceptance.TestData) string {
	return `
resource "azurerm_subnet" "test" {
  name = "internal"
}
`
}
'''

IN_SEQUENCE_TEST = '''package widget_test

func TestAccWidget_inSequence(t *testing.T) {
	acceptance.RunTestsInSequence(t, map[string]map[string]func(t *testing.T){"widget": {"first": testAccWidget_other, "basic": TestAccWidget_basic}})
}
'''

SELF_QUALIFYING_TEST = '''package widget_test

func TestAccWidget_sequentialSelf(t *testing.T) {
	r := WidgetResource{}
	data.ResourceTest(t, r, []acceptance.TestStep{
		{
			Config: r.basic(data),
		},
	})

	testCases := map[string]map[string]func(t *testing.T){
		"widget": {
			"external": testAccWidget_elsewhere,
		},
	}
	for _, m := range testCases {
		for _, tc := range m {
			tc(t)
		}
	}
}
'''

@pytest.fixture
def widget_query(full_corpus, build_store):
    return BlastRadiusQuery(build_store(full_corpus, "azurerm_widget"))


class TestDirectAndIndirect:
    """Test direct references and risk-classified indirect references."""

    def test_direct_reference(self, widget_query):
        direct = widget_query.get_direct_references("azurerm_widget")

        assert len(direct) == 1
        assert direct[0].kind == "FULL_DECLARATION"
        assert direct[0].block_keyword == "resource"
        assert direct[0].helper_name == "basic"
        assert direct[0].struct_name == "WidgetResource"
        assert direct[0].file_path == "internal/services/widget/widget_resource_test.go"
        assert direct[0].line == 35

    def test_same_group_is_low_risk(self, widget_query):
        indirect = widget_query.get_indirect_references("azurerm_widget")
        widget = [v for v in indirect if v.test_name == "TestAccWidget_basic"]

        assert len(widget) == 1
        assert widget[0].kind == "SAME_FILE"
        assert widget[0].risk == "LOW"
        assert widget[0].step_index == 1
        assert widget[0].line == 16
        assert widget[0].expression == "r.basic(data)"

    def test_other_group_is_high_risk(self, widget_query):
        indirect = widget_query.get_indirect_references("azurerm_widget")

        assert [v.test_name for v in indirect] == ["TestAccStorage_withWidget", "TestAccWidget_basic"]
        storage = indirect[0]
        assert storage.kind == "CROSS_FILE"
        assert storage.risk == "HIGH"
        assert storage.helper_name == "withWidget"
        assert storage.source_helper_name == "basic"
        assert storage.source_file_path == "internal/services/widget/widget_resource_test.go"

    def test_owner_override_flips_risk(self, full_corpus, build_store):
        query = BlastRadiusQuery(build_store(full_corpus, "azurerm_widget"), owner_group="storage")
        risks = {v.test_name: v.risk for v in query.get_indirect_references("azurerm_widget")}
        assert risks == {"TestAccStorage_withWidget": "LOW", "TestAccWidget_basic": "HIGH"}

    def test_template_hop(self, full_corpus, build_store):
        query = BlastRadiusQuery(build_store(full_corpus, "azurerm_subnet"))
        result = query.get_blast_radius("azurerm_subnet")

        assert result.owner_group == "network"
        assert [d.line for d in result.direct] == [28]
        assert len(result.indirect) == 1
        hop = result.indirect[0]
        assert (hop.test_name, hop.kind, hop.helper_name, hop.source_helper_name) == (
            "TestAccHop_basic", "SAME_FILE", "basic", "template"
        )
        assert result.sequential == []
        assert result.counts["high_risk"] == 0

    def test_multi_hop_closure(self, tmp_path, build_store):
        write_files(tmp_path, {"internal/services/network/chain_resource_test.go": CHAIN_TEST})
        query = BlastRadiusQuery(build_store(tmp_path, "azurerm_subnet"))
        indirect = query.get_indirect_references("azurerm_subnet")

        assert [(v.test_name, v.helper_name, v.source_helper_name) for v in indirect] == [
            ("TestAccChain_basic", "complete", "basic"),
        ]

    def test_repeated_template_call_yields_one_row(self, tmp_path, build_store):
        write_files(tmp_path, {"internal/services/network/twice_resource_test.go": TWICE_TEST})
        store = build_store(tmp_path, "azurerm_subnet")
        indirect = BlastRadiusQuery(store).get_indirect_references("azurerm_subnet")

        assert len(store.rows("indirect_references")) == 2
        assert [(v.test_name, v.step_index, v.helper_name, v.source_helper_name) for v in indirect] == [
            ("TestAccTwice_basic", 1, "basic", "template"),
        ]

    def test_constructor_bound_receiver(self, tmp_path, build_store):
        write_files(tmp_path, {"internal/services/widget/widget_resource_test.go": CONSTRUCTOR_TEST})
        indirect = BlastRadiusQuery(build_store(tmp_path, "azurerm_widget")).get_indirect_references("azurerm_widget")

        assert [(v.test_name, v.kind, v.helper_name, v.expression) for v in indirect] == [
            ("TestAccWidget_constructed", "SAME_FILE", "basic", "r.basic(data)"),
            ("TestAccWidget_pointer", "SAME_FILE", "basic", "r.basic(data)"),
        ]

    def test_unknown_entity_is_empty(self, widget_query):
        result = widget_query.get_blast_radius("azurerm_gadget")

        assert result.owner_group is None
        assert result.direct == [] and result.indirect == [] and result.sequential == []
        assert result.counts["impacted_tests"] == 0


class TestSequential:
    """Test sequential expansion."""

    def test_entry_and_members(self, widget_query):
        sequential = widget_query.get_sequential_references("azurerm_widget")

        assert [(v.kind, v.key, v.test_name, v.resolved) for v in sequential] == [
            ("SEQUENTIAL_ENTRY", None, "TestAccWidget_sequential", True),
            ("SEQUENTIAL_MEMBER", "basic", "TestAccWidget_basic", True),
            ("SEQUENTIAL_MEMBER", "external", "testAccWidget_elsewhere", False),
        ]
        assert all(v.risk == "MEDIUM" for v in sequential)
        assert sequential[1].group == "widget"
        assert sequential[2].file_path == "internal/services/widget/widget_resource_test.go"

    def test_single_line_sequence_literal(self, tmp_path, build_store):
        write_files(tmp_path, {
            "internal/services/widget/widget_resource_test.go": WIDGET_TEST,
            "internal/services/widget/widget_in_sequence_test.go": IN_SEQUENCE_TEST,
        })
        sequential = BlastRadiusQuery(build_store(tmp_path, "azurerm_widget")).get_sequential_references("azurerm_widget")

        assert [(v.kind, v.key, v.test_name, v.resolved) for v in sequential] == [
            ("SEQUENTIAL_ENTRY", None, "TestAccWidget_inSequence", True),
            ("SEQUENTIAL_MEMBER", "basic", "TestAccWidget_basic", True),
            ("SEQUENTIAL_MEMBER", "first", "testAccWidget_other", False),
        ]

    def test_entry_point_reaching_entity_itself(self, tmp_path, build_store):
        write_files(tmp_path, {
            "internal/services/widget/widget_resource_test.go": WIDGET_TEST,
            "internal/services/widget/widget_sequential_test.go": SELF_QUALIFYING_TEST,
        })
        sequential = BlastRadiusQuery(build_store(tmp_path, "azurerm_widget")).get_sequential_references("azurerm_widget")

        assert [(v.kind, v.key, v.test_name, v.resolved) for v in sequential] == [
            ("SEQUENTIAL_ENTRY", None, "TestAccWidget_sequentialSelf", True),
            ("SEQUENTIAL_MEMBER", "external", "testAccWidget_elsewhere", False),
        ]
        assert sequential[1].file_path == "internal/services/widget/widget_sequential_test.go"


class TestBlastRadius:
    """Test the combined result."""

    def test_impacted_tests(self, widget_query):
        result = widget_query.get_blast_radius("azurerm_widget")

        assert result.owner_group == "widget"
        assert [(t.test_name, t.risk, t.resolved) for t in result.impacted_tests] == [
            ("TestAccStorage_withWidget", "HIGH", True),
            ("TestAccWidget_basic", "MEDIUM", True),
            ("testAccWidget_elsewhere", "MEDIUM", False),
            ("TestAccWidget_sequential", "MEDIUM", True),
        ]
        assert result.impacted_tests[1].reference_kinds == ["SAME_FILE", "SEQUENTIAL_MEMBER"]
        assert result.counts == {
            "direct": 1, "indirect": 2, "sequential": 3, "impacted_tests": 4, "high_risk": 1,
        }

    def test_repeated_queries_are_identical(self, widget_query):
        first = widget_query.get_blast_radius("azurerm_widget").model_dump(mode="json")
        second = widget_query.get_blast_radius("azurerm_widget").model_dump(mode="json")
        assert first == second

    def test_json_output(self, widget_query):
        output = widget_query.get_blast_radius("azurerm_widget").model_dump(mode="json")

        assert output["version"]
        assert output["indirect"][0]["risk"] == "HIGH"
        assert output["diagnostics"] is None
