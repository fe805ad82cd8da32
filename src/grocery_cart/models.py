"""Core data models for Grocery Cart."""

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from .item_normalizer import normalize_name, parse_price_per_unit


class CartStatus(str, Enum):
    """Cart lifecycle status."""

    PLANNING = "planning"
    SHOPPING = "shopping"
    COMPLETED = "completed"


class GroceryCategory(str, Enum):
    """Built-in vault categories, in display order."""

    FRESH_PRODUCE = "Fresh Produce"
    MEATS_SEAFOOD = "Meats & Seafood"
    DAIRY_EGGS = "Dairy & Eggs"
    FROZEN = "Frozen"
    CONDIMENTS_INGREDIENTS = "Condiments & Ingredients"
    PANTRY = "Pantry"
    BAKERY_BREAD = "Bakery & Bread"
    BEVERAGES = "Beverages"
    READY_MEALS = "Ready Meals"
    PERSONAL_CARE = "Personal Care"
    HEALTH = "Health"
    CLEANING_HOUSEHOLD = "Cleaning & Household"
    PETS = "Pets"
    BABY = "Baby"
    HOME_GARDEN = "Home & Garden"
    ELECTRONICS_HOBBIES = "Electronics & Hobbies"
    STATIONERY = "Stationery"


# --- Price Catalog ---


class PricePerUnit(BaseModel):
    """A price value paired with the unit it is quoted in."""

    price_value: float = Field(ge=0)
    unit: str = ""

    def __str__(self) -> str:
        return f"{self.price_value:.2f}/{self.unit}" if self.unit else f"{self.price_value:.2f}"

    @classmethod
    def parse(cls, text: str) -> "PricePerUnit":
        """Build from a ``"12.50/kg"`` style string."""
        price_value, unit = parse_price_per_unit(text)
        return cls(price_value=price_value, unit=unit)


class PriceOption(BaseModel):
    """Store-specific price for an item."""

    store: str
    price_per_unit: PricePerUnit


class Item(BaseModel):
    """A vault item sold at one or more stores."""

    id: UUID = Field(default_factory=uuid4)
    name: str
    price_options: list[PriceOption] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.now)

    def price_option_for(self, store: str) -> PriceOption | None:
        """First price option quoted at ``store``."""
        for option in self.price_options:
            if option.store == store:
                return option
        return None

    @property
    def stores(self) -> list[str]:
        return [option.store for option in self.price_options]


class Category(BaseModel):
    """A vault category owning its items."""

    id: UUID = Field(default_factory=uuid4)
    name: str
    sort_order: int = 0
    items: list[Item] = Field(default_factory=list)


class Store(BaseModel):
    """A registered store name."""

    name: str
    created_at: datetime = Field(default_factory=datetime.now)


# --- Carts ---


class PlannedSnapshot(BaseModel):
    """Price data captured while planning."""

    store: str
    price: float | None = Field(default=None, ge=0)
    unit: str | None = None

    @property
    def is_captured(self) -> bool:
        return self.price is not None and self.unit is not None


class ActualSnapshot(BaseModel):
    """Price data recorded during or after shopping."""

    store: str | None = None
    price: float | None = Field(default=None, ge=0)
    quantity: float | None = Field(default=None, ge=0)
    unit: str | None = None

    @property
    def is_empty(self) -> bool:
        return (
            self.store is None
            and self.price is None
            and self.quantity is None
            and self.unit is None
        )


class ShoppingOnlyDetails(BaseModel):
    """Inline data for an ad hoc item with no vault counterpart."""

    name: str
    store: str
    price: float = Field(ge=0)
    unit: str = ""
    category: str | None = None


class CartItem(BaseModel):
    """An item placed in a cart, with its planned and actual snapshots."""

    item_id: UUID = Field(default_factory=uuid4)
    quantity: float = Field(default=1.0, ge=0)
    added_at: datetime = Field(default_factory=datetime.now)
    planned: PlannedSnapshot
    actual: ActualSnapshot = Field(default_factory=ActualSnapshot)
    is_fulfilled: bool = False
    is_skipped_during_shopping: bool = False
    was_edited_during_shopping: bool = False
    added_during_shopping: bool = False
    shopping_only: ShoppingOnlyDetails | None = None
    original_planning_quantity: float | None = None
    name_snapshot: str | None = None
    category_snapshot: str | None = None

    @property
    def is_shopping_only_item(self) -> bool:
        return self.shopping_only is not None

    @property
    def has_actual_data(self) -> bool:
        return not self.actual.is_empty

    @property
    def display_name(self) -> str:
        if self.shopping_only is not None:
            return self.shopping_only.name
        return self.name_snapshot or "Unknown Item"

    def capture_planned_data(self, vault: "Vault | None") -> bool:
        """Fill the missing parts of the planned snapshot from the catalog.

        Captured values are never overwritten here; only ``None`` fields are
        filled. Shopping-only items have no catalog entry and are left alone.

        Returns:
            True if any planned field was filled
        """
        if self.is_shopping_only_item or self.planned.is_captured or vault is None:
            return False

        option = vault.lookup_price(self.item_id, self.planned.store)
        if option is None:
            return False

        changed = False
        if self.planned.price is None:
            self.planned.price = option.price_value
            changed = True
        if self.planned.unit is None:
            self.planned.unit = option.unit
            changed = True
        return changed

    def capture_actual_data(self) -> bool:
        """Default the missing actual fields to the planned (or inline) values.

        Returns:
            True if any actual field was filled
        """
        if self.shopping_only is not None:
            defaults = (
                self.shopping_only.store,
                self.shopping_only.price,
                self.shopping_only.unit,
            )
        else:
            defaults = (self.planned.store, self.planned.price, self.planned.unit)

        store, price, unit = defaults
        changed = False
        if self.actual.store is None:
            self.actual.store = store
            changed = True
        if self.actual.price is None and price is not None:
            self.actual.price = price
            changed = True
        if self.actual.unit is None and unit is not None:
            self.actual.unit = unit
            changed = True
        if self.actual.quantity != self.quantity:
            self.actual.quantity = self.quantity
            changed = True
        return changed

    def set_quantity(self, quantity: float, remember_original: bool = False) -> None:
        """Set the authoritative quantity and mirror it to the actual snapshot.

        Args:
            quantity: New quantity
            remember_original: Save the current quantity as the original
                planning quantity if none is saved yet
        """
        if quantity < 0:
            raise ValueError("Quantity cannot be negative")
        if remember_original and self.original_planning_quantity is None:
            self.original_planning_quantity = self.quantity
        self.quantity = quantity
        self.sync_quantity()

    def sync_quantity(self) -> None:
        if self.actual.quantity is not None:
            self.actual.quantity = self.quantity

    def restore_original_planning_quantity(self) -> bool:
        """Restore and consume the saved planning quantity.

        Returns:
            False if no original quantity was saved
        """
        if self.original_planning_quantity is None:
            return False
        self.quantity = self.original_planning_quantity
        self.original_planning_quantity = None
        self.sync_quantity()
        return True


class Cart(BaseModel):
    """One shopping trip."""

    id: UUID = Field(default_factory=uuid4)
    name: str
    budget: float = Field(default=0.0, ge=0)
    status: CartStatus = CartStatus.PLANNING
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)
    started_at: datetime | None = None
    completed_at: datetime | None = None
    cart_items: list[CartItem] = Field(default_factory=list)

    @property
    def is_planning(self) -> bool:
        return self.status == CartStatus.PLANNING

    @property
    def is_shopping(self) -> bool:
        return self.status == CartStatus.SHOPPING

    @property
    def is_completed(self) -> bool:
        return self.status == CartStatus.COMPLETED

    @property
    def is_active(self) -> bool:
        return self.status != CartStatus.COMPLETED

    @property
    def has_budget(self) -> bool:
        return self.budget > 0

    @property
    def active_items(self) -> list[CartItem]:
        """Items that have not been skipped."""
        return [ci for ci in self.cart_items if not ci.is_skipped_during_shopping]

    @property
    def total_items_count(self) -> int:
        return len(self.active_items)

    @property
    def fulfilled_count(self) -> int:
        return sum(1 for ci in self.active_items if ci.is_fulfilled)

    @property
    def history_date(self) -> datetime:
        """Date used to place the cart in history."""
        return self.completed_at or self.updated_at

    def find_cart_item(self, item_id: UUID) -> CartItem | None:
        for cart_item in self.cart_items:
            if cart_item.item_id == item_id:
                return cart_item
        return None

    def touch(self) -> None:
        self.updated_at = datetime.now()


class Vault(BaseModel):
    """A user's catalog of categories, stores and carts."""

    id: UUID = Field(default_factory=uuid4)
    categories: list[Category] = Field(default_factory=list)
    carts: list[Cart] = Field(default_factory=list)
    stores: list[Store] = Field(default_factory=list)

    def all_items(self) -> list[Item]:
        return [item for category in self.categories for item in category.items]

    def find_item(self, item_id: UUID) -> Item | None:
        for category in self.categories:
            for item in category.items:
                if item.id == item_id:
                    return item
        return None

    def category_for(self, item_id: UUID) -> Category | None:
        for category in self.categories:
            if any(item.id == item_id for item in category.items):
                return category
        return None

    def find_category(self, name: str) -> Category | None:
        key = normalize_name(name)
        for category in self.categories:
            if normalize_name(category.name) == key:
                return category
        return None

    def find_cart(self, cart_id: UUID) -> Cart | None:
        for cart in self.carts:
            if cart.id == cart_id:
                return cart
        return None

    def lookup_price(self, item_id: UUID, store: str | None) -> PricePerUnit | None:
        """Catalog price of an item at a store, or None if either is unknown."""
        if store is None:
            return None
        item = self.find_item(item_id)
        if item is None:
            return None
        option = item.price_option_for(store)
        return option.price_per_unit if option else None

    @property
    def completed_carts(self) -> list[Cart]:
        return [cart for cart in self.carts if cart.is_completed]


# --- Read-only projections ---


class ResolvedDisplay(BaseModel):
    """Resolved values for one cart item."""

    price: float
    store: str
    unit: str
    quantity: float
    total_price: float


class CartSummary(BaseModel):
    """Aggregate figures for a cart."""

    total_spent: float
    fulfilled_count: int
    total_count: int
    percent_fulfilled: float
    fulfilled_amount: float = 0.0
    value_percent_fulfilled: float = 0.0
    fulfillment_status: float = 0.0
    budget: float = 0.0
    budget_remaining: float | None = None


class PriceChange(BaseModel):
    """Planned vs actual line total for one item."""

    item_name: str
    planned_price: float
    actual_price: float
    difference: float


class CartInsights(BaseModel):
    """Planned vs actual comparison for a cart."""

    planned_total: float = 0.0
    actual_total: float = 0.0
    total_difference: float = 0.0
    price_changes: list[PriceChange] = Field(default_factory=list)


class PriceHistoryPoint(BaseModel):
    """A price paid for an item on a completed trip."""

    date: datetime
    price: float
    store: str
    unit: str = ""


class TripData(BaseModel):
    """Spend of one trip (or one day of trips)."""

    date: datetime
    amount: float
    cart_id: UUID | None = None


class SpendingOverview(BaseModel):
    """Headline spend figures."""

    total_spent_all_time: float = 0.0
    total_spent_last_30_days: float = 0.0
    avg_spend_per_trip: float = 0.0
    avg_items_per_trip: float = 0.0
    trip_count: int = 0
    recent_trip_count: int = 0


class StoreStat(BaseModel):
    """Spend at one store across trips."""

    name: str
    total_spend: float
    visit_count: int

    @property
    def avg_spend(self) -> float:
        return self.total_spend / max(1, self.visit_count)


class BudgetStats(BaseModel):
    """Budget variance over budgeted trips."""

    has_budget_data: bool = False
    budgeted_trips_count: int = 0
    avg_budget_variance: float = 0.0
    avg_absolute_budget_deviation: float = 0.0
    budget_accuracy: float = 0.0


class BehaviorComparison(BaseModel):
    """Spend on budgeted vs unbudgeted trips."""

    avg_spend_budgeted: float = 0.0
    avg_spend_unbudgeted: float = 0.0
    spend_difference_percentage: float = 0.0


class ItemStat(BaseModel):
    """Purchase frequency and price movement of one item."""

    item_id: UUID
    name: str
    frequency: int
    avg_price: float
    last_price: float
    price_volatility: float


class TrendInsights(BaseModel):
    """Spend in a period compared with the period before it."""

    period: str  # "weekly" or "monthly"
    start: datetime
    end: datetime
    current_total: float = 0.0
    previous_total: float = 0.0
    trend_percentage: float = 0.0
    daily_totals: list[TripData] = Field(default_factory=list)


class InsightsResult(BaseModel):
    """Everything computed from a set of completed carts."""

    overview: SpendingOverview = Field(default_factory=SpendingOverview)
    store_stats: list[StoreStat] = Field(default_factory=list)
    budget: BudgetStats = Field(default_factory=BudgetStats)
    behavior: BehaviorComparison = Field(default_factory=BehaviorComparison)
    frequent_items: list[ItemStat] = Field(default_factory=list)
    all_trips: list[TripData] = Field(default_factory=list)
    recent_trips: list[TripData] = Field(default_factory=list)

    def store(self, name: str) -> StoreStat | None:
        for stat in self.store_stats:
            if stat.name == name:
                return stat
        return None
