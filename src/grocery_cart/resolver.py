"""Status-dependent price resolution for cart items and carts."""

from .item_normalizer import round_money
from .models import (
    Cart,
    CartInsights,
    CartItem,
    CartStatus,
    CartSummary,
    PriceChange,
    PricePerUnit,
    ResolvedDisplay,
    Vault,
)


def _catalog(cart_item: CartItem, vault: Vault | None, store: str | None) -> PricePerUnit | None:
    if vault is None:
        return None
    return vault.lookup_price(cart_item.item_id, store)


def _shopping_store(cart_item: CartItem) -> str:
    return cart_item.actual.store or cart_item.planned.store


def resolve_price(cart_item: CartItem, vault: Vault | None, status: CartStatus) -> float:
    """Price per unit that applies to the item for the given cart status."""
    if cart_item.shopping_only is not None:
        return cart_item.shopping_only.price

    planned, actual = cart_item.planned, cart_item.actual

    if status == CartStatus.PLANNING:
        if planned.price is not None:
            return planned.price
        option = _catalog(cart_item, vault, planned.store)
        return option.price_value if option else 0.0

    if status == CartStatus.SHOPPING:
        if actual.price is not None:
            return actual.price
        if planned.price is not None:
            return planned.price
        option = _catalog(cart_item, vault, _shopping_store(cart_item))
        return option.price_value if option else 0.0

    if actual.price is not None:
        return actual.price
    if planned.price is not None:
        return planned.price
    return 0.0


def resolve_unit(cart_item: CartItem, vault: Vault | None, status: CartStatus) -> str:
    """Unit that applies to the item for the given cart status."""
    if cart_item.shopping_only is not None:
        return cart_item.shopping_only.unit

    planned, actual = cart_item.planned, cart_item.actual

    if status == CartStatus.PLANNING:
        if planned.unit is not None:
            return planned.unit
        option = _catalog(cart_item, vault, planned.store)
        return option.unit if option else ""

    if status == CartStatus.SHOPPING:
        if actual.unit is not None:
            return actual.unit
        if planned.unit is not None:
            return planned.unit
        option = _catalog(cart_item, vault, _shopping_store(cart_item))
        return option.unit if option else ""

    return actual.unit if actual.unit is not None else (planned.unit or "")


def resolve_store(cart_item: CartItem, vault: Vault | None, status: CartStatus) -> str:
    """Store that applies to the item for the given cart status."""
    if cart_item.shopping_only is not None:
        return cart_item.shopping_only.store
    if status == CartStatus.PLANNING:
        return cart_item.planned.store
    return cart_item.actual.store or cart_item.planned.store or ""


def resolve_quantity(cart_item: CartItem, vault: Vault | None, status: CartStatus) -> float:
    """Quantity of the item; ``quantity`` is authoritative in every status."""
    return cart_item.quantity


def get_total_price(cart_item: CartItem, vault: Vault | None, status: CartStatus) -> float:
    return resolve_price(cart_item, vault, status) * resolve_quantity(cart_item, vault, status)


def resolved_display(cart_item: CartItem, vault: Vault | None, status: CartStatus) -> ResolvedDisplay:
    price = resolve_price(cart_item, vault, status)
    quantity = resolve_quantity(cart_item, vault, status)
    return ResolvedDisplay(
        price=price,
        store=resolve_store(cart_item, vault, status),
        unit=resolve_unit(cart_item, vault, status),
        quantity=quantity,
        total_price=round_money(price * quantity),
    )


# --- Cart aggregates ---


def line_total(cart_item: CartItem, vault: Vault | None, status: CartStatus) -> float:
    """Contribution of one item to the cart's running total.

    Planning counts every item at its planned price. While shopping an item
    counts at its actual price only once it is fulfilled or explicitly
    edited. Completed carts count actual data, falling back to planned.
    Skipped items count nothing once shopping has started.
    """
    if status == CartStatus.PLANNING:
        return get_total_price(cart_item, vault, CartStatus.PLANNING)

    if cart_item.is_skipped_during_shopping:
        return 0.0

    if status == CartStatus.SHOPPING:
        if cart_item.is_fulfilled or cart_item.was_edited_during_shopping:
            return get_total_price(cart_item, vault, CartStatus.SHOPPING)
        return get_total_price(cart_item, vault, CartStatus.PLANNING)

    return get_total_price(cart_item, vault, CartStatus.COMPLETED)


def total_spent(cart: Cart, vault: Vault | None = None) -> float:
    """Derived total for the cart under its current status."""
    return round_money(sum(line_total(ci, vault, cart.status) for ci in cart.cart_items))


def fulfilled_amount(cart: Cart, vault: Vault | None = None) -> float:
    return round_money(
        sum(line_total(ci, vault, cart.status) for ci in cart.active_items if ci.is_fulfilled)
    )


def fulfillment_status(cart: Cart, vault: Vault | None = None) -> float:
    """Progress ratio in [0, 1] whose meaning depends on the cart status."""
    if cart.status == CartStatus.PLANNING:
        if not cart.has_budget:
            return 0.0
        return min(total_spent(cart, vault) / cart.budget, 1.0)
    if cart.status == CartStatus.SHOPPING:
        total = cart.total_items_count
        return cart.fulfilled_count / total if total else 0.0
    return 1.0


def cart_summary(cart: Cart, vault: Vault | None = None) -> CartSummary:
    spent = total_spent(cart, vault)
    fulfilled_value = fulfilled_amount(cart, vault)
    total_count = cart.total_items_count
    fulfilled_count = cart.fulfilled_count

    percent = round(fulfilled_count / total_count * 100, 1) if total_count else 0.0
    value_percent = round(fulfilled_value / spent * 100, 1) if spent > 0 else 0.0

    return CartSummary(
        total_spent=spent,
        fulfilled_count=fulfilled_count,
        total_count=total_count,
        percent_fulfilled=percent,
        fulfilled_amount=fulfilled_value,
        value_percent_fulfilled=value_percent,
        fulfillment_status=fulfillment_status(cart, vault),
        budget=cart.budget,
        budget_remaining=round_money(cart.budget - spent) if cart.has_budget else None,
    )


def item_name(cart_item: CartItem, vault: Vault | None) -> str:
    """Display name of a cart item, preferring the live catalog name."""
    if cart_item.shopping_only is None and vault is not None:
        item = vault.find_item(cart_item.item_id)
        if item is not None:
            return item.name
    return cart_item.display_name


def cart_insights(cart: Cart, vault: Vault | None = None) -> CartInsights:
    """Compare what was planned with what was actually paid."""
    insights = CartInsights()

    for cart_item in cart.active_items:
        planned_price = cart_item.planned.price or 0.0
        if cart_item.shopping_only is not None:
            planned_price = cart_item.shopping_only.price
        actual_price = cart_item.actual.price if cart_item.actual.price is not None else planned_price

        planned_qty = cart_item.original_planning_quantity
        if planned_qty is None:
            planned_qty = cart_item.quantity
        actual_qty = cart_item.quantity

        planned_total = planned_price * planned_qty
        actual_total = actual_price * actual_qty
        difference = actual_total - planned_total

        insights.planned_total += planned_total
        insights.actual_total += actual_total
        insights.total_difference += difference

        if difference != 0:
            insights.price_changes.append(
                PriceChange(
                    item_name=item_name(cart_item, vault),
                    planned_price=planned_price,
                    actual_price=actual_price,
                    difference=round_money(difference),
                )
            )

    insights.planned_total = round_money(insights.planned_total)
    insights.actual_total = round_money(insights.actual_total)
    insights.total_difference = round_money(insights.total_difference)
    return insights
