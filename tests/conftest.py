"""Shared fixtures: small Go acceptance-test corpora written to a temporary tree."""

from pathlib import Path
from typing import Dict
import pytest
from testradius.config import load_analysis_config
from testradius.pipeline import build_entity_store

WIDGET_TEST = '''package widget_test

import (
	"fmt"
	"testing"
)

type WidgetResource struct{}

func TestAccWidget_basic(t *testing.T) {
	data := acceptance.BuildTestData(t, "azurerm_widget", "test")
	r := WidgetResource{}

	data.ResourceTest(t, r, []acceptance.TestStep{
		{
			Config: r.basic(data),
			Check: acceptance.ComposeTestCheckFunc(
				check.That(data.ResourceName).ExistsInAzure(r),
			),
		},
		data.ImportStep(),
	})
}

func (r WidgetResource) Exists(ctx context.Context, clients *clients.Client, state *pluginsdk.InstanceState) (*bool, error) {
	return nil, nil
}

func (r WidgetResource) basic(data acceptance.TestData) string {
	return fmt.Sprintf(`
provider "azurerm" {
  features {}
}

resource "azurerm_widget" "test" {
  name     = "acctest-%d"
  location = "westeurope"
}
`, data.RandomInteger)
}
'''

STORAGE_TEST = '''package storage_test

type StorageResource struct{}

func TestAccStorage_withWidget(t *testing.T) {
	data := acceptance.BuildTestData(t, "azurerm_storage", "test")
	r := StorageResource{}

	data.ResourceTest(t, r, []acceptance.TestStep{
		{
			Config: r.withWidget(data),
		},
	})
}

func (r StorageResource) withWidget(data acceptance.TestData) string {
	return fmt.Sprintf(`
%s

resource "azurerm_storage" "test" {
  name = "acctest"
}
`, WidgetResource{}.basic(data))
}
'''

HOP_TEST = '''package network_test

type HopResource struct{}

func TestAccHop_basic(t *testing.T) {
	data := acceptance.BuildTestData(t, "azurerm_hop", "test")
	r := HopResource{}

	data.ResourceTest(t, r, []acceptance.TestStep{
		{
			Config: r.basic(data),
		},
	})
}

func (r HopResource) basic(data acceptance.TestData) string {
	return fmt.Sprintf(`
%s

resource "azurerm_hop" "test" {
  name = "hop"
}
`, r.template(data))
}

func (HopResource) template(data acceptance.TestData) string {
	return `
resource "azurerm_subnet" "test" {
  name = "internal"
}
`
}
'''

SEQUENTIAL_TEST = '''package widget_test

func TestAccWidget_sequential(t *testing.T) {
	testCases := map[string]map[string]func(t *testing.T){
		"widget": {
			"basic":    TestAccWidget_basic,
			"external": testAccWidget_elsewhere,
		},
	}

	for group, m := range testCases {
		for name, tc := range m {
			t.Run(group+name, tc)
		}
	}
}
'''

CONSTRUCTOR_TEST = '''package widget_test

type WidgetResource struct{}

type WidgetClient struct{}

func newWidgetResource(t *testing.T) (*WidgetResource, error) {
	return &WidgetResource{}, nil
}

func newWidget() *WidgetResource {
	return &WidgetResource{}
}

func TestAccWidget_constructed(t *testing.T) {
	data := acceptance.BuildTestData(t, "azurerm_widget", "test")
	r, err := newWidgetResource(t)
	if err != nil {
		t.Fatal(err)
	}

	data.ResourceTest(t, r, []acceptance.TestStep{
		{
			Config: r.basic(data),
		},
	})
}

func TestAccWidget_pointer(t *testing.T) {
	data := acceptance.BuildTestData(t, "azurerm_widget", "test")
	r := newWidget()

	data.ResourceTest(t, r, []acceptance.TestStep{
		{
			Config: r.basic(data),
		},
	})
}

func (r WidgetResource) basic(data acceptance.TestData) string {
	return `
resource "azurerm_widget" "test" {
  name = "acctest"
}
`
}
'''

ROUTE_TABLE_TEST = '''package network_test

type RouteTableResource struct{}

func (RouteTableResource) basic(data acceptance.TestData) string {
	return `
resource "azurerm_subnet_route_table" "test" {
  name = "rt"
}
`
}
'''


def write_files(root: Path, files: Dict[str, str]) -> Path:
    for relative, text in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    return root


@pytest.fixture
def config():
    """Packaged defaults only, ignoring user and project config files."""
    return load_analysis_config(use_user_config=False)


@pytest.fixture
def widget_corpus(tmp_path):
    """Widget service only: one test, one helper declaring azurerm_widget."""
    return write_files(tmp_path, {
        "internal/services/widget/widget_resource_test.go": WIDGET_TEST,
    })


@pytest.fixture
def full_corpus(tmp_path):
    """Widget, storage (calls into widget) and network services plus a sequencing map."""
    return write_files(tmp_path, {
        "internal/services/widget/widget_resource_test.go": WIDGET_TEST,
        "internal/services/widget/widget_sequential_test.go": SEQUENTIAL_TEST,
        "internal/services/storage/storage_resource_test.go": STORAGE_TEST,
        "internal/services/network/hop_resource_test.go": HOP_TEST,
        "internal/services/network/route_table_resource_test.go": ROUTE_TABLE_TEST,
    })


@pytest.fixture
def build_store(config):
    """Run the full pipeline over a corpus root for one entity."""
    def _build(root, entity_name, **kwargs):
        store, _ = build_entity_store(str(root), entity_name, config, **kwargs)
        return store
    return _build


@pytest.fixture
def widget_text():
    return WIDGET_TEST


@pytest.fixture
def storage_text():
    return STORAGE_TEST


@pytest.fixture
def hop_text():
    return HOP_TEST


@pytest.fixture
def sequential_text():
    return SEQUENTIAL_TEST
