"""Tests for vault catalog operations."""

from uuid import uuid4

import pytest

from grocery_cart.models import GroceryCategory
from grocery_cart.vault_manager import DuplicateNameError, ItemNotFoundError


class TestCategories:
    """Tests for category handling."""

    def test_add_category(self, vault_manager):
        """Categories get increasing sort orders."""
        produce = vault_manager.add_category("Produce")
        bakery = vault_manager.add_category("Bakery")
        assert produce.sort_order == 0
        assert bakery.sort_order == 1
        assert vault_manager.get_categories() == [produce, bakery]

    def test_duplicate_category(self, vault_manager):
        """Category names are unique ignoring case."""
        vault_manager.add_category("Produce")
        with pytest.raises(DuplicateNameError):
            vault_manager.add_category("  produce ")

    def test_ensure_category_reuses(self, vault_manager):
        """ensure_category returns the existing category."""
        produce = vault_manager.add_category("Produce")
        assert vault_manager.ensure_category("PRODUCE") is produce

    def test_default_categories_seeded(self, vault_manager):
        """An empty vault gets every built-in category in order."""
        assert vault_manager.ensure_default_categories() is True

        names = [c.name for c in vault_manager.get_categories()]
        assert names == [c.value for c in GroceryCategory]
        assert vault_manager.ensure_default_categories() is False

    def test_default_categories_keep_custom(self, vault_manager, milk):
        """Existing built-ins are reordered and custom ones follow."""
        vault_manager.add_category("Snacks")
        vault_manager.vault.find_category("Dairy & Eggs").name = "dairy & eggs"

        vault_manager.ensure_default_categories()
        categories = vault_manager.get_categories()

        dairy = categories[2]
        assert dairy.name == "Dairy & Eggs"
        assert milk in dairy.items
        assert categories[-1].name == "Snacks"
        assert categories[-1].sort_order == len(GroceryCategory)


class TestItems:
    """Tests for item handling."""

    def test_add_item(self, vault_manager, milk):
        """Adding an item creates its category and store."""
        assert milk.name == "Milk"
        assert vault_manager.get_category_name(milk.id) == "Dairy & Eggs"
        assert vault_manager.lookup_price(milk.id, "Giant").price_value == 50.0
        assert "Giant" in vault_manager.list_stores()

    def test_duplicate_at_same_store(self, vault_manager, milk):
        """Same name at the same store is rejected."""
        with pytest.raises(DuplicateNameError) as exc_info:
            vault_manager.add_item("milk", "Dairy & Eggs", "Giant", 4.0, "gallon")
        assert "Giant" in str(exc_info.value)

    def test_same_name_other_store(self, vault_manager, milk):
        """Same name at another store is allowed."""
        other = vault_manager.add_item("Milk", "Dairy & Eggs", "Safeway", 4.0, "gallon")
        assert other.id != milk.id

    def test_empty_name(self, vault_manager):
        """Empty item names are rejected."""
        with pytest.raises(ValueError):
            vault_manager.add_item("  ", "Other", "Giant", 1.0, "pc")

    def test_get_item(self, vault_manager, milk):
        """Items are found by UUID or string id."""
        assert vault_manager.get_item(str(milk.id)) is milk
        with pytest.raises(ItemNotFoundError):
            vault_manager.get_item(uuid4())

    def test_find_items_by_name(self, vault_manager, milk, bread):
        """Name search is a case-insensitive substring match."""
        vault_manager.add_item("Oat Milk", "Dairy & Eggs", "Giant", 5.0, "carton")
        names = sorted(item.name for item in vault_manager.find_items_by_name("MILK"))
        assert names == ["Milk", "Oat Milk"]

    def test_set_price_updates_and_appends(self, vault_manager, milk):
        """set_price edits an existing option or adds a new one."""
        vault_manager.set_price(milk.id, "Giant", 45.0, "gallon")
        vault_manager.set_price(milk.id, "Aldi", 40.0, "gallon")

        assert len(milk.price_options) == 2
        assert vault_manager.lookup_price(milk.id, "Giant").price_value == 45.0
        assert vault_manager.lookup_price(milk.id, "Aldi").price_value == 40.0


class TestUpdateItem:
    """Tests for item edits."""

    def test_update_price_refreshes_planning_carts(self, vault_manager, cart_manager, planning_cart, milk):
        """Planning carts pick up catalog edits."""
        vault_manager.update_item(milk.id, name="Whole Milk", price=60.0)

        cart_item = planning_cart.cart_items[0]
        assert cart_item.planned.price == 60.0
        assert cart_item.name_snapshot == "Whole Milk"
        assert cart_manager.total_spent(planning_cart) == 120.0

    def test_update_leaves_shopping_carts(self, vault_manager, cart_manager, planning_cart, milk):
        """Carts already shopping keep their planned snapshot."""
        cart_manager.start_shopping(planning_cart)
        vault_manager.update_item(milk.id, price=60.0)
        assert planning_cart.cart_items[0].planned.price == 50.0

    def test_update_moves_category(self, vault_manager, milk):
        """Changing the category moves the item."""
        vault_manager.update_item(milk.id, category="Beverages")
        assert vault_manager.get_category_name(milk.id) == "Beverages"
        dairy = vault_manager.vault.find_category("Dairy & Eggs")
        assert milk not in dairy.items

    def test_update_to_duplicate(self, vault_manager, milk, bread):
        """Renaming onto an existing name and store is rejected."""
        with pytest.raises(DuplicateNameError):
            vault_manager.update_item(bread.id, name="Milk", store="Giant")


class TestDeleteItem:
    """Tests for item deletion."""

    def test_delete_removes_from_active_carts(self, vault_manager, cart_manager, planning_cart, milk):
        """Active carts lose the deleted item."""
        vault_manager.delete_item(milk.id)
        assert vault_manager.find_item(milk.id) is None
        assert planning_cart.cart_items == []

    def test_delete_keeps_completed_history(self, vault_manager, cart_manager, planning_cart, milk):
        """Completed carts keep their snapshot of the deleted item."""
        cart_manager.start_shopping(planning_cart)
        cart_manager.complete_shopping(planning_cart)

        vault_manager.delete_item(milk.id)
        assert len(planning_cart.cart_items) == 1
        assert planning_cart.cart_items[0].display_name == "Milk"

    def test_delete_unknown(self, vault_manager):
        """Deleting an unknown item raises."""
        with pytest.raises(ItemNotFoundError):
            vault_manager.delete_item(uuid4())


class TestStores:
    """Tests for store registry handling."""

    def test_add_store_duplicate(self, vault_manager):
        """Store names are unique ignoring case."""
        vault_manager.add_store("Aldi")
        with pytest.raises(DuplicateNameError):
            vault_manager.add_store("ALDI")

    def test_list_stores_newest_first(self, vault_manager):
        """Registered stores are listed newest first."""
        vault_manager.add_store("Aldi")
        vault_manager.add_store("Costco")
        assert vault_manager.list_stores() == ["Costco", "Aldi"]
        assert vault_manager.most_recent_store() == "Costco"

    def test_list_stores_includes_legacy(self, vault_manager, milk):
        """Stores only seen on price options are listed after registered ones."""
        milk.price_options[0].store = "Legacy Mart"
        vault_manager.add_store("Aldi")
        stores = vault_manager.list_stores()
        assert stores[-1] == "Legacy Mart"
        assert stores.index("Aldi") < stores.index("Legacy Mart")

    def test_rename_store_cascades(self, vault_manager, milk, bread):
        """Renaming a store updates its price options."""
        updated = vault_manager.rename_store("Giant", "Giant Food")
        assert updated == 1
        assert milk.price_options[0].store == "Giant Food"
        assert "Giant" not in vault_manager.list_stores()

    def test_rename_store_ignores_case(self, vault_manager, milk):
        """A differently cased old name still reaches every price option."""
        updated = vault_manager.rename_store("giant", "Giant Food")

        assert updated == 1
        assert milk.price_options[0].store == "Giant Food"
        assert vault_manager.lookup_price(milk.id, "Giant Food").price_value == 50.0
        assert vault_manager.list_stores() == ["Giant Food"]

    def test_delete_store_ignores_case(self, vault_manager, milk, bread):
        """A differently cased name deletes the store and its options."""
        removed = vault_manager.delete_store("GIANT")

        assert removed == 1
        assert milk.price_options == []
        assert vault_manager.list_stores() == ["Safeway"]

    def test_rename_store_onto_other(self, vault_manager, milk, bread):
        """Renaming onto another registered store is rejected."""
        with pytest.raises(DuplicateNameError):
            vault_manager.rename_store("Giant", "safeway")

    def test_delete_store_drops_options(self, vault_manager, milk):
        """Deleting a store removes its price options."""
        vault_manager.set_price(milk.id, "Aldi", 40.0, "gallon")
        removed = vault_manager.delete_store("Giant")

        assert removed == 1
        assert milk.stores == ["Aldi"]
        assert "Giant" not in vault_manager.list_stores()

    def test_most_recent_store_empty(self, vault_manager):
        """No stores means no recent store."""
        assert vault_manager.most_recent_store() is None
