"""Shared test fixtures for Grocery Cart."""

from datetime import datetime, timedelta
from uuid import uuid4

import pytest

from grocery_cart.cart_manager import CartManager
from grocery_cart.models import (
    ActualSnapshot,
    Cart,
    CartItem,
    CartStatus,
    PlannedSnapshot,
    Vault,
)
from grocery_cart.vault_manager import VaultManager


@pytest.fixture
def temp_data_dir(tmp_path):
    """Create a temporary data directory."""
    data_dir = tmp_path / "test_data"
    data_dir.mkdir()
    return data_dir


@pytest.fixture
def vault():
    """Create an empty vault."""
    return Vault()


@pytest.fixture
def vault_manager(vault):
    """Create a VaultManager over the test vault."""
    return VaultManager(vault=vault)


@pytest.fixture
def cart_manager(vault_manager):
    """Create a CartManager sharing the test vault."""
    return CartManager(vault_manager=vault_manager)


@pytest.fixture
def milk(vault_manager):
    """Milk at 50.00/gallon from Giant."""
    return vault_manager.add_item("Milk", "Dairy & Eggs", "Giant", 50.0, "gallon")


@pytest.fixture
def bread(vault_manager):
    """Bread at 3.00/loaf from Safeway."""
    return vault_manager.add_item("Bread", "Bakery", "Safeway", 3.0, "loaf")


@pytest.fixture
def planning_cart(cart_manager, milk):
    """Planning cart holding two units of milk."""
    cart = cart_manager.create_cart("Weekly Shop", budget=200.0)
    cart_manager.add_item_to_cart(cart, milk.id, quantity=2)
    return cart


@pytest.fixture
def make_completed_cart():
    """Factory for completed carts built from (store, price, quantity) lines."""

    def _make(
        lines,
        budget=0.0,
        days_ago=0,
        name=None,
        fulfilled=True,
        now=None,
    ):
        completed_at = (now or datetime.now()) - timedelta(days=days_ago)
        items = []
        for line in lines:
            store, price, quantity = line[:3]
            item_id = line[3] if len(line) > 3 else uuid4()
            items.append(
                CartItem(
                    item_id=item_id,
                    quantity=quantity,
                    planned=PlannedSnapshot(store=store, price=price, unit="pc"),
                    actual=ActualSnapshot(store=store, price=price, quantity=quantity, unit="pc"),
                    is_fulfilled=fulfilled,
                    name_snapshot=f"Item {item_id}",
                )
            )
        return Cart(
            name=name or f"Trip {uuid4()}",
            budget=budget,
            status=CartStatus.COMPLETED,
            created_at=completed_at - timedelta(hours=2),
            started_at=completed_at - timedelta(hours=1),
            completed_at=completed_at,
            cart_items=items,
        )

    return _make
