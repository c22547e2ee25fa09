"""Tests for owner group resolution."""

from testradius.analysis.ownership import resolve_owner_group
from testradius.store.entity_store import EntityStore
from testradius.store.models import ReferenceKind


def make_store():
    store = EntityStore()
    for name in ["storage", "network", "widget"]:
        group = store.add_group(name)
        source_file = store.add_file(f"internal/services/{name}/{name}_test.go", group.id)
        store.add_helper_function("basic", source_file.id, "Resource", 10, "{}")
    return store


def reference(store, helper_id, kind=ReferenceKind.FULL_DECLARATION):
    store.add_direct_reference(helper_id, "azurerm_widget", kind, 3, 'resource "azurerm_widget" "test" {')


class TestResolveOwnerGroup:
    """Test each ownership source in order."""

    def test_override(self):
        store = make_store()
        assert resolve_owner_group(store, "azurerm_widget", override="network").name == "network"

    def test_unknown_override(self):
        store = make_store()
        assert resolve_owner_group(store, "azurerm_widget", override="compute") is None

    def test_registration_wins(self):
        store = make_store()
        reference(store, 1)
        reference(store, 1)
        store.add_registration("azurerm_widget", 3, "internal/services/widget/registration.go")
        assert resolve_owner_group(store, "azurerm_widget").name == "widget"

    def test_several_registrations_lexically_first(self):
        store = make_store()
        store.add_registration("azurerm_widget", 3, "internal/services/widget/registration.go")
        store.add_registration("azurerm_widget", 2, "internal/services/network/registration.go")
        assert resolve_owner_group(store, "azurerm_widget").name == "network"

    def test_declaration_majority(self):
        store = make_store()
        reference(store, 1)
        reference(store, 3)
        reference(store, 3)
        reference(store, 1, ReferenceKind.ATTRIBUTE_MENTION)
        reference(store, 1, ReferenceKind.ATTRIBUTE_MENTION)
        assert resolve_owner_group(store, "azurerm_widget").name == "widget"

    def test_tie_goes_to_first_name(self):
        store = make_store()
        reference(store, 3)
        reference(store, 1)
        assert resolve_owner_group(store, "azurerm_widget").name == "storage"

    def test_mentions_only(self):
        store = make_store()
        reference(store, 2, ReferenceKind.ATTRIBUTE_MENTION)
        assert resolve_owner_group(store, "azurerm_widget").name == "network"

    def test_no_owner(self):
        assert resolve_owner_group(make_store(), "azurerm_widget") is None
