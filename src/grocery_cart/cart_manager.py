"""Cart lifecycle operations and the cart status state machine."""

import logging
from datetime import datetime
from uuid import UUID, uuid4

from .config import DefaultsConfig
from .item_normalizer import clean_name, same_name
from .models import (
    Cart,
    CartInsights,
    CartItem,
    CartStatus,
    CartSummary,
    PlannedSnapshot,
    ResolvedDisplay,
    ShoppingOnlyDetails,
    Vault,
)
from .resolver import cart_insights, cart_summary, resolved_display, total_spent
from .vault_manager import DuplicateNameError, ItemNotFoundError, VaultManager

logger = logging.getLogger(__name__)


class CartNotFoundError(Exception):
    """Raised when a cart is not found."""

    def __init__(self, cart_id: UUID | str):
        self.cart_id = cart_id
        super().__init__(f"Cart with ID '{cart_id}' not found")


class CartManager:
    """Manages carts, their items and their status transitions.

    Every operation runs its whole side-effect sweep before returning, so a
    caller never observes a half-transitioned cart. Operations requested in
    a status where they make no sense are no-ops that return False (or None).
    """

    def __init__(
        self,
        vault_manager: VaultManager | None = None,
        defaults: DefaultsConfig | None = None,
    ):
        """Initialize cart manager.

        Args:
            vault_manager: VaultManager for catalog access. Creates one over
                an empty vault if not provided.
            defaults: Default values for new cart items.
        """
        self.vault_manager = vault_manager or VaultManager()
        self.defaults = defaults or self.vault_manager.defaults

    @property
    def vault(self) -> Vault:
        return self.vault_manager.vault

    # --- Carts ---

    def is_cart_name_duplicate(self, name: str, excluding: UUID | None = None) -> bool:
        return any(
            same_name(cart.name, name)
            for cart in self.vault.carts
            if excluding is None or cart.id != excluding
        )

    def create_cart(self, name: str, budget: float = 0.0) -> Cart:
        """Create a planning cart.

        Raises:
            DuplicateNameError: If a cart with the same name exists
            ValueError: If the name is empty
        """
        cleaned = clean_name(name)
        if not cleaned:
            raise ValueError("Cart name cannot be empty")
        if self.is_cart_name_duplicate(cleaned):
            raise DuplicateNameError(cleaned, kind="cart")

        cart = Cart(name=cleaned, budget=budget)
        self.vault.carts.append(cart)
        logger.info("Created cart %s (budget %.2f)", cleaned, budget)
        return cart

    def create_cart_with_items(
        self, name: str, budget: float, items: dict[UUID, float]
    ) -> Cart:
        """Create a planning cart pre-filled with ``{item_id: quantity}``.

        Unknown item ids are skipped.
        """
        cart = self.create_cart(name, budget)
        for item_id, quantity in items.items():
            if self.vault.find_item(item_id) is None:
                logger.warning("Skipping unknown item %s for cart %s", item_id, cart.name)
                continue
            self.add_item_to_cart(cart, item_id, quantity)
        return cart

    def get_cart(self, cart_id: UUID | str) -> Cart:
        """Get a cart by ID.

        Raises:
            CartNotFoundError: If cart not found
        """
        if isinstance(cart_id, str):
            cart_id = UUID(cart_id)
        cart = self.vault.find_cart(cart_id)
        if cart is None:
            raise CartNotFoundError(cart_id)
        return cart

    def list_carts(self, status: CartStatus | None = None) -> list[Cart]:
        carts = self.vault.carts
        if status is not None:
            carts = [c for c in carts if c.status == status]
        return sorted(carts, key=lambda c: c.created_at, reverse=True)

    def delete_cart(self, cart_id: UUID | str) -> Cart:
        """Delete a cart together with its items.

        Raises:
            CartNotFoundError: If cart not found
        """
        cart = self.get_cart(cart_id)
        self.vault.carts = [c for c in self.vault.carts if c.id != cart.id]
        logger.info("Deleted cart %s (%d items)", cart.name, len(cart.cart_items))
        return cart

    def rename_cart(self, cart: Cart, name: str) -> Cart:
        cleaned = clean_name(name)
        if not cleaned:
            raise ValueError("Cart name cannot be empty")
        if self.is_cart_name_duplicate(cleaned, excluding=cart.id):
            raise DuplicateNameError(cleaned, kind="cart")
        cart.name = cleaned
        cart.touch()
        return cart

    def update_budget(self, cart: Cart, budget: float) -> Cart:
        if budget < 0:
            raise ValueError("Budget cannot be negative")
        cart.budget = budget
        cart.touch()
        return cart

    # --- Cart items ---

    def add_item_to_cart(
        self,
        cart: Cart,
        item_id: UUID,
        quantity: float = 1.0,
        store: str | None = None,
    ) -> CartItem | None:
        """Add a vault item to a planning or shopping cart.

        If the item is already in the cart its quantity is increased instead.
        Items added while shopping get their actual snapshot immediately and
        are flagged ``added_during_shopping``.

        Returns:
            The affected CartItem, or None for a completed cart

        Raises:
            ItemNotFoundError: If the item is not in the vault
        """
        if cart.is_completed:
            logger.debug("Cannot add items to completed cart %s", cart.name)
            return None
        if quantity < 0:
            raise ValueError("Quantity cannot be negative")

        item = self.vault.find_item(item_id)
        if item is None:
            raise ItemNotFoundError(item_id)

        existing = cart.find_cart_item(item.id)
        if existing is not None and not existing.is_shopping_only_item:
            existing.set_quantity(existing.quantity + quantity, remember_original=cart.is_shopping)
            existing.added_at = datetime.now()
            if cart.is_shopping:
                existing.is_skipped_during_shopping = False
                existing.added_during_shopping = True
            cart.touch()
            logger.info("Increased %s to %s in cart %s", item.name, existing.quantity, cart.name)
            return existing

        store = store or (item.price_options[0].store if item.price_options else self.defaults.store)
        option = item.price_option_for(store)
        price = option.price_per_unit.price_value if option else None
        unit = option.price_per_unit.unit if option else None

        cart_item = CartItem(
            item_id=item.id,
            quantity=quantity,
            planned=PlannedSnapshot(store=store, price=price, unit=unit),
            added_during_shopping=cart.is_shopping,
            name_snapshot=item.name,
            category_snapshot=self.vault_manager.get_category_name(item.id),
        )
        if cart.is_shopping:
            cart_item.capture_actual_data()

        cart.cart_items.append(cart_item)
        cart.touch()
        logger.info("Added %s x%s to cart %s", item.name, quantity, cart.name)
        return cart_item

    def add_shopping_only_item(
        self,
        cart: Cart,
        name: str,
        store: str,
        price: float,
        unit: str = "",
        quantity: float = 1.0,
        category: str | None = None,
    ) -> CartItem | None:
        """Add an ad hoc item that has no vault counterpart.

        Returns:
            The new CartItem, or None for a completed cart
        """
        if cart.is_completed:
            logger.debug("Cannot add items to completed cart %s", cart.name)
            return None
        cleaned = clean_name(name)
        if not cleaned:
            raise ValueError("Item name cannot be empty")

        details = ShoppingOnlyDetails(
            name=cleaned, store=store, price=price, unit=unit, category=category
        )
        cart_item = CartItem(
            item_id=uuid4(),
            quantity=quantity,
            planned=PlannedSnapshot(store=store, price=price, unit=unit),
            shopping_only=details,
            added_during_shopping=cart.is_shopping,
            name_snapshot=cleaned,
            category_snapshot=category,
        )
        cart.cart_items.append(cart_item)
        cart.touch()
        logger.info("Added shopping-only item %s x%s to cart %s", cleaned, quantity, cart.name)
        return cart_item

    def _cart_item(self, cart: Cart, item_id: UUID) -> CartItem | None:
        cart_item = cart.find_cart_item(item_id)
        if cart_item is None:
            logger.debug("Item %s not found in cart %s", item_id, cart.name)
        return cart_item

    def remove_item_from_cart(self, cart: Cart, item_id: UUID) -> bool:
        """Remove an item, or skip it if it is a vault item and shopping is underway.

        Returns:
            True if the item was removed or skipped
        """
        cart_item = self._cart_item(cart, item_id)
        if cart_item is None or cart.is_completed:
            return False

        if cart.is_shopping and not cart_item.is_shopping_only_item:
            cart_item.is_skipped_during_shopping = True
            cart_item.is_fulfilled = False
            logger.info("Skipped %s during shopping", cart_item.display_name)
        else:
            cart.cart_items = [ci for ci in cart.cart_items if ci is not cart_item]
            logger.info("Removed %s from cart %s", cart_item.display_name, cart.name)

        cart.touch()
        return True

    def unskip_item(self, cart: Cart, item_id: UUID) -> bool:
        cart_item = self._cart_item(cart, item_id)
        if cart_item is None or not cart.is_shopping or not cart_item.is_skipped_during_shopping:
            return False
        cart_item.is_skipped_during_shopping = False
        cart.touch()
        return True

    def update_quantity(self, cart: Cart, item_id: UUID, quantity: float) -> bool:
        """Change an item's quantity while planning or shopping.

        A shopping-time edit remembers the quantity that was planned, once.
        """
        cart_item = self._cart_item(cart, item_id)
        if cart_item is None or cart.is_completed:
            return False

        cart_item.set_quantity(quantity, remember_original=cart.is_shopping)
        if cart.is_shopping and not cart_item.is_fulfilled:
            cart_item.was_edited_during_shopping = True
        cart.touch()
        return True

    def update_actual_data(
        self,
        cart: Cart,
        item_id: UUID,
        price: float | None = None,
        quantity: float | None = None,
        unit: str | None = None,
        store: str | None = None,
    ) -> bool:
        """Record what was actually paid for an item while shopping.

        Editing an unfulfilled item marks it as edited so it counts towards
        the running total. A quantity goes to ``quantity`` and is mirrored to
        the actual snapshot.
        """
        cart_item = self._cart_item(cart, item_id)
        if cart_item is None or not cart.is_shopping:
            return False
        if price is not None and price < 0:
            raise ValueError("Price cannot be negative")

        cart_item.capture_actual_data()
        if price is not None:
            cart_item.actual.price = price
        if unit is not None:
            cart_item.actual.unit = unit
        if store is not None:
            cart_item.actual.store = store
        if quantity is not None:
            cart_item.set_quantity(quantity, remember_original=True)
        cart_item.sync_quantity()

        if not cart_item.is_fulfilled:
            cart_item.was_edited_during_shopping = True
        cart.touch()
        logger.info("Updated actual data for %s", cart_item.display_name)
        return True

    def change_store(self, cart: Cart, item_id: UUID, new_store: str) -> bool:
        """Switch the store an item is bought at, re-reading its catalog price.

        Planning rewrites the planned snapshot, shopping rewrites the actual
        snapshot. Prices missing from the catalog keep their old value.
        """
        cart_item = self._cart_item(cart, item_id)
        if cart_item is None or cart.is_completed or cart_item.is_shopping_only_item:
            return False

        option = self.vault.lookup_price(cart_item.item_id, new_store)

        if cart.is_planning:
            cart_item.planned.store = new_store
            if option is not None:
                cart_item.planned.price = option.price_value
                cart_item.planned.unit = option.unit
        else:
            cart_item.capture_actual_data()
            cart_item.actual.store = new_store
            if option is not None:
                cart_item.actual.price = option.price_value
                cart_item.actual.unit = option.unit

        cart.touch()
        logger.info("Changed store of %s to %s", cart_item.display_name, new_store)
        return True

    def toggle_fulfillment(self, cart: Cart, item_id: UUID) -> bool:
        """Flip an item's fulfilled flag while shopping.

        Marking an item fulfilled captures a default actual snapshot from its
        planned data if none exists yet.
        """
        cart_item = self._cart_item(cart, item_id)
        if cart_item is None or not cart.is_shopping:
            return False

        if not cart_item.is_fulfilled:
            cart_item.capture_planned_data(self.vault)
            cart_item.capture_actual_data()
            cart_item.is_skipped_during_shopping = False
        cart_item.is_fulfilled = not cart_item.is_fulfilled
        cart.touch()
        logger.debug(
            "%s %s", "Fulfilled" if cart_item.is_fulfilled else "Unfulfilled", cart_item.display_name
        )
        return True

    def restore_original_planning_quantity(self, cart: Cart, item_id: UUID) -> bool:
        """Put back the quantity planned before a shopping-time edit.

        Returns:
            False if the item is unknown or no original quantity was saved
        """
        cart_item = self._cart_item(cart, item_id)
        if cart_item is None:
            return False
        restored = cart_item.restore_original_planning_quantity()
        if restored:
            cart.touch()
        return restored

    # --- Status transitions ---

    def start_shopping(self, cart: Cart) -> bool:
        """Planning -> Shopping.

        Captures any missing planned snapshot from the catalog. Shopping-only
        items are kept as they are.
        """
        if cart.status != CartStatus.PLANNING:
            logger.debug("start_shopping ignored for %s cart %s", cart.status.value, cart.name)
            return False

        for cart_item in cart.cart_items:
            if not cart_item.capture_planned_data(self.vault) and not cart_item.planned.is_captured:
                logger.warning(
                    "No catalog price for %s at %s", cart_item.display_name, cart_item.planned.store
                )
            cart_item.sync_quantity()

        cart.status = CartStatus.SHOPPING
        cart.started_at = datetime.now()
        cart.touch()
        logger.info("Started shopping for %s", cart.name)
        return True

    def complete_shopping(self, cart: Cart) -> bool:
        """Shopping -> Completed.

        Every unskipped item gets a concrete actual snapshot (defaulting to
        planned data). Fulfilled or edited vault items write their actual
        price back to the catalog.
        """
        if cart.status != CartStatus.SHOPPING:
            logger.debug("complete_shopping ignored for %s cart %s", cart.status.value, cart.name)
            return False

        for cart_item in cart.cart_items:
            if cart_item.is_skipped_during_shopping:
                continue
            cart_item.capture_planned_data(self.vault)
            cart_item.capture_actual_data()
            if not cart_item.is_shopping_only_item:
                if cart_item.name_snapshot is None:
                    item = self.vault.find_item(cart_item.item_id)
                    cart_item.name_snapshot = item.name if item else None
                if cart_item.category_snapshot is None:
                    cart_item.category_snapshot = self.vault_manager.get_category_name(
                        cart_item.item_id
                    )
            if cart_item.is_fulfilled or cart_item.was_edited_during_shopping:
                self._write_back_actual_price(cart_item)

        cart.status = CartStatus.COMPLETED
        cart.completed_at = datetime.now()
        cart.touch()
        logger.info("Completed shopping for %s: %.2f spent", cart.name, total_spent(cart, self.vault))
        return True

    def _write_back_actual_price(self, cart_item: CartItem) -> None:
        if cart_item.is_shopping_only_item:
            return
        actual = cart_item.actual
        if actual.price is None or actual.store is None:
            return
        if self.vault.find_item(cart_item.item_id) is None:
            logger.warning("Item %s no longer in vault, price not saved", cart_item.display_name)
            return
        self.vault_manager.set_price(
            cart_item.item_id, actual.store, actual.price, actual.unit or self.defaults.unit
        )

    def return_to_planning(self, cart: Cart) -> bool:
        """Shopping -> Planning, keeping actual data for a later trip.

        Fulfilled, skipped and edited marks belong to the shopping session
        and are cleared.
        """
        if cart.status != CartStatus.SHOPPING:
            logger.debug("return_to_planning ignored for %s cart %s", cart.status.value, cart.name)
            return False

        for cart_item in cart.cart_items:
            cart_item.is_fulfilled = False
            cart_item.is_skipped_during_shopping = False
            cart_item.was_edited_during_shopping = False

        cart.status = CartStatus.PLANNING
        cart.started_at = None
        cart.touch()
        logger.info("Returned %s to planning", cart.name)
        return True

    def reopen(self, cart: Cart) -> bool:
        """Completed -> Shopping. ``completed_at`` stays until the next completion."""
        if cart.status != CartStatus.COMPLETED:
            logger.debug("reopen ignored for %s cart %s", cart.status.value, cart.name)
            return False

        cart.status = CartStatus.SHOPPING
        cart.touch()
        logger.info("Reopened %s", cart.name)
        return True

    # --- Projections ---

    def total_spent(self, cart: Cart) -> float:
        return total_spent(cart, self.vault)

    def summary(self, cart: Cart) -> CartSummary:
        return cart_summary(cart, self.vault)

    def insights(self, cart: Cart) -> CartInsights:
        return cart_insights(cart, self.vault)

    def display(self, cart: Cart, item_id: UUID) -> ResolvedDisplay | None:
        cart_item = self._cart_item(cart, item_id)
        if cart_item is None:
            return None
        return resolved_display(cart_item, self.vault, cart.status)
