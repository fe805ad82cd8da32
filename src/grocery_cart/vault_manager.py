"""Vault catalog operations: categories, items and stores."""

import logging
from uuid import UUID

from .config import DefaultsConfig
from .item_normalizer import clean_name, normalize_name, same_name
from .models import (
    CartStatus,
    Category,
    GroceryCategory,
    Item,
    PriceOption,
    PricePerUnit,
    Store,
    Vault,
)

logger = logging.getLogger(__name__)


class DuplicateNameError(Exception):
    """Raised when a name is already taken in the vault."""

    def __init__(self, name: str, store: str | None = None, kind: str = "item"):
        self.name = name
        self.store = store
        self.kind = kind
        if store is not None:
            message = f"An {kind} with name '{name}' already exists at {store}"
        else:
            message = f"A {kind} named '{name}' already exists"
        super().__init__(message)


class ItemNotFoundError(Exception):
    """Raised when an item is not found in the vault."""

    def __init__(self, item_id: UUID | str):
        self.item_id = item_id
        super().__init__(f"Item with ID '{item_id}' not found")


def _require_name(name: str, kind: str) -> str:
    cleaned = clean_name(name)
    if not cleaned:
        raise ValueError(f"{kind.capitalize()} name cannot be empty")
    return cleaned


class VaultManager:
    """Manages the vault catalog."""

    def __init__(self, vault: Vault | None = None, defaults: DefaultsConfig | None = None):
        """Initialize vault manager.

        Args:
            vault: Vault to operate on. Creates an empty one if not provided.
            defaults: Default values for new entries.
        """
        self.vault = vault if vault is not None else Vault()
        self.defaults = defaults or DefaultsConfig()

    # --- Categories ---

    def add_category(self, name: str) -> Category:
        """Add a category at the end of the sort order.

        Raises:
            DuplicateNameError: If a category with the same name exists
            ValueError: If the name is empty
        """
        cleaned = _require_name(name, "category")
        if self.vault.find_category(cleaned) is not None:
            raise DuplicateNameError(cleaned, kind="category")

        category = Category(name=cleaned, sort_order=len(self.vault.categories))
        self.vault.categories.append(category)
        logger.info("Added category %s", cleaned)
        return category

    def ensure_category(self, name: str) -> Category:
        return self.vault.find_category(name) or self.add_category(name)

    def get_categories(self) -> list[Category]:
        return sorted(self.vault.categories, key=lambda c: c.sort_order)

    def ensure_default_categories(self) -> bool:
        """Make sure every built-in category exists, in its built-in order.

        Existing categories matching a built-in name are renamed to its
        canonical spelling and moved to its position. Custom categories keep
        their relative order after the built-in ones.

        Returns:
            True if the vault was changed
        """
        existing = {normalize_name(c.name): c for c in self.vault.categories}
        builtin_keys = {normalize_name(c.value) for c in GroceryCategory}
        changed = False

        ordered: list[Category] = []
        for index, builtin in enumerate(GroceryCategory):
            category = existing.get(normalize_name(builtin.value))
            if category is None:
                category = Category(name=builtin.value, sort_order=index)
                changed = True
            elif category.name != builtin.value or category.sort_order != index:
                category.name = builtin.value
                category.sort_order = index
                changed = True
            ordered.append(category)

        extras = sorted(
            (c for c in self.vault.categories if normalize_name(c.name) not in builtin_keys),
            key=lambda c: (c.sort_order, normalize_name(c.name)),
        )
        next_order = len(ordered)
        for category in extras:
            if category.sort_order < next_order:
                category.sort_order = next_order
                changed = True
            next_order = category.sort_order + 1

        self.vault.categories = ordered + extras
        if changed:
            logger.info("Default categories updated (%d custom kept)", len(extras))
        return changed

    # --- Items ---

    def is_item_name_duplicate(
        self, name: str, store: str, excluding: UUID | None = None
    ) -> bool:
        """True if another item has the same name and a price option at ``store``."""
        for item in self.vault.all_items():
            if excluding is not None and item.id == excluding:
                continue
            if same_name(item.name, name) and any(
                same_name(option.store, store) for option in item.price_options
            ):
                return True
        return False

    def add_item(
        self,
        name: str,
        category: str,
        store: str,
        price: float,
        unit: str,
    ) -> Item:
        """Add an item to the vault with a single price option.

        Args:
            name: Item name
            category: Category name; created if missing
            store: Store the price is quoted at
            price: Price per unit
            unit: Unit of measurement

        Returns:
            The new Item

        Raises:
            DuplicateNameError: If the name is already used at that store
            ValueError: If the name or store is empty
        """
        cleaned = _require_name(name, "item")
        store = _require_name(store, "store")

        if self.is_item_name_duplicate(cleaned, store):
            raise DuplicateNameError(cleaned, store=store)

        item = Item(
            name=cleaned,
            price_options=[
                PriceOption(store=store, price_per_unit=PricePerUnit(price_value=price, unit=unit))
            ],
        )
        self.ensure_category(category).items.append(item)
        self.ensure_store(store)

        logger.info("Added item %s (%s at %s)", cleaned, item.price_options[0].price_per_unit, store)
        return item

    def find_item(self, item_id: UUID | str) -> Item | None:
        if isinstance(item_id, str):
            item_id = UUID(item_id)
        return self.vault.find_item(item_id)

    def get_item(self, item_id: UUID | str) -> Item:
        """Get an item by ID.

        Raises:
            ItemNotFoundError: If item not found
        """
        item = self.find_item(item_id)
        if item is None:
            raise ItemNotFoundError(item_id)
        return item

    def find_items_by_name(self, name: str) -> list[Item]:
        """Case-insensitive substring search over item names."""
        term = normalize_name(name)
        return [item for item in self.vault.all_items() if term in normalize_name(item.name)]

    def get_category_name(self, item_id: UUID) -> str | None:
        category = self.vault.category_for(item_id)
        return category.name if category else None

    def update_item(
        self,
        item_id: UUID | str,
        name: str | None = None,
        category: str | None = None,
        store: str | None = None,
        price: float | None = None,
        unit: str | None = None,
    ) -> Item:
        """Update an item and refresh planning carts that reference it.

        The first price option carries the item's primary store; a changed
        store, price or unit is written there.

        Raises:
            ItemNotFoundError: If item not found
            DuplicateNameError: If the new name/store pair is taken
        """
        item = self.get_item(item_id)
        primary = item.price_options[0] if item.price_options else None

        new_name = _require_name(name, "item") if name is not None else item.name
        new_store = _require_name(store, "store") if store is not None else (
            primary.store if primary else self.defaults.store
        )

        if self.is_item_name_duplicate(new_name, new_store, excluding=item.id):
            raise DuplicateNameError(new_name, store=new_store)

        item.name = new_name

        if primary is None:
            primary = PriceOption(
                store=new_store,
                price_per_unit=PricePerUnit(price_value=price or 0.0, unit=unit or self.defaults.unit),
            )
            item.price_options.append(primary)
        else:
            primary.store = new_store
            primary.price_per_unit = PricePerUnit(
                price_value=price if price is not None else primary.price_per_unit.price_value,
                unit=unit if unit is not None else primary.price_per_unit.unit,
            )
        self.ensure_store(new_store)

        if category is not None:
            current = self.vault.category_for(item.id)
            target = self.ensure_category(category)
            if current is not None and current is not target:
                current.items = [i for i in current.items if i.id != item.id]
                target.items.append(item)

        self._refresh_planning_carts(item, primary)
        logger.info("Updated item %s", item.name)
        return item

    def set_price(self, item_id: UUID, store: str, price: float, unit: str) -> PriceOption:
        """Update the item's price option at ``store``, appending one if missing.

        Raises:
            ItemNotFoundError: If item not found
        """
        item = self.get_item(item_id)
        price_per_unit = PricePerUnit(price_value=price, unit=unit)

        option = item.price_option_for(store)
        if option is None:
            option = PriceOption(store=store, price_per_unit=price_per_unit)
            item.price_options.append(option)
        else:
            option.price_per_unit = price_per_unit

        self.ensure_store(store)
        return option

    def _refresh_planning_carts(self, item: Item, option: PriceOption) -> None:
        for cart in self.vault.carts:
            if cart.status != CartStatus.PLANNING:
                continue
            for cart_item in cart.cart_items:
                if cart_item.item_id == item.id and not cart_item.is_shopping_only_item:
                    cart_item.planned.store = option.store
                    cart_item.planned.price = option.price_per_unit.price_value
                    cart_item.planned.unit = option.price_per_unit.unit
                    cart_item.name_snapshot = item.name

    def delete_item(self, item_id: UUID | str) -> Item:
        """Remove an item from its category and from every active cart.

        Completed carts keep their cart items; they resolve from their own
        snapshots once the catalog entry is gone.

        Raises:
            ItemNotFoundError: If item not found
        """
        item = self.get_item(item_id)
        category = self.vault.category_for(item.id)
        if category is not None:
            category.items = [i for i in category.items if i.id != item.id]

        for cart in self.vault.carts:
            if not cart.is_active:
                continue
            before = len(cart.cart_items)
            cart.cart_items = [
                ci for ci in cart.cart_items
                if ci.is_shopping_only_item or ci.item_id != item.id
            ]
            if len(cart.cart_items) != before:
                cart.touch()

        logger.info("Deleted item %s", item.name)
        return item

    def lookup_price(self, item_id: UUID, store: str) -> PricePerUnit | None:
        return self.vault.lookup_price(item_id, store)

    # --- Stores ---

    def _find_store(self, name: str) -> Store | None:
        for store in self.vault.stores:
            if same_name(store.name, name):
                return store
        return None

    def add_store(self, name: str) -> Store:
        """Register a store name.

        Raises:
            DuplicateNameError: If the store is already registered
            ValueError: If the name is empty
        """
        cleaned = _require_name(name, "store")
        if self._find_store(cleaned) is not None:
            raise DuplicateNameError(cleaned, kind="store")

        store = Store(name=cleaned)
        self.vault.stores.insert(0, store)
        logger.info("Added store %s", cleaned)
        return store

    def ensure_store(self, name: str) -> Store:
        return self._find_store(name) or self.add_store(name)

    def rename_store(self, old_name: str, new_name: str) -> int:
        """Rename a store everywhere it is referenced by a price option.

        Returns:
            Number of price options updated

        Raises:
            DuplicateNameError: If ``new_name`` belongs to a different store
            ValueError: If the new name is empty
        """
        cleaned = _require_name(new_name, "store")
        existing = self._find_store(cleaned)
        store = self._find_store(old_name)
        if existing is not None and existing is not store:
            raise DuplicateNameError(cleaned, kind="store")

        if store is not None:
            store.name = cleaned

        updated = 0
        for item in self.vault.all_items():
            for option in item.price_options:
                if same_name(option.store, old_name):
                    option.store = cleaned
                    updated += 1

        logger.info("Renamed store %s to %s (%d price options)", old_name, cleaned, updated)
        return updated

    def delete_store(self, name: str) -> int:
        """Unregister a store and drop the price options quoted there.

        Returns:
            Number of price options removed
        """
        self.vault.stores = [s for s in self.vault.stores if not same_name(s.name, name)]

        removed = 0
        for item in self.vault.all_items():
            kept = [option for option in item.price_options if not same_name(option.store, name)]
            removed += len(item.price_options) - len(kept)
            item.price_options = kept

        logger.info("Deleted store %s (%d price options)", name, removed)
        return removed

    def list_stores(self) -> list[str]:
        """Registered stores newest first, then stores only seen on price options."""
        ordered: list[str] = []
        seen: set[str] = set()

        for store in sorted(self.vault.stores, key=lambda s: s.created_at, reverse=True):
            key = normalize_name(store.name)
            if key not in seen:
                ordered.append(store.name)
                seen.add(key)

        legacy = {
            option.store
            for item in self.vault.all_items()
            for option in item.price_options
            if normalize_name(option.store) not in seen
        }
        ordered.extend(sorted(legacy))
        return ordered

    def most_recent_store(self) -> str | None:
        if not self.vault.stores:
            return None
        return max(self.vault.stores, key=lambda s: s.created_at).name
