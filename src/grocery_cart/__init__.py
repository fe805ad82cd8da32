"""Grocery Cart - cart pricing and lifecycle engine."""

from .cart_manager import CartManager, CartNotFoundError
from .config import ConfigManager
from .data_store import VaultStore, VaultStoreError
from .insights import Insights
from .models import (
    ActualSnapshot,
    BehaviorComparison,
    BudgetStats,
    Cart,
    CartInsights,
    CartItem,
    CartStatus,
    CartSummary,
    Category,
    GroceryCategory,
    InsightsResult,
    Item,
    ItemStat,
    PlannedSnapshot,
    PriceChange,
    PriceHistoryPoint,
    PriceOption,
    PricePerUnit,
    ResolvedDisplay,
    ShoppingOnlyDetails,
    SpendingOverview,
    Store,
    StoreStat,
    TrendInsights,
    TripData,
    Vault,
)
from .resolver import (
    cart_insights,
    cart_summary,
    get_total_price,
    resolve_price,
    resolve_quantity,
    resolve_store,
    resolve_unit,
    resolved_display,
    total_spent,
)
from .vault_manager import DuplicateNameError, ItemNotFoundError, VaultManager

__version__ = "0.1.0"

__all__ = [
    "ActualSnapshot",
    "BehaviorComparison",
    "BudgetStats",
    "Cart",
    "cart_insights",
    "cart_summary",
    "CartInsights",
    "CartItem",
    "CartManager",
    "CartNotFoundError",
    "CartStatus",
    "CartSummary",
    "Category",
    "ConfigManager",
    "DuplicateNameError",
    "get_total_price",
    "GroceryCategory",
    "Insights",
    "InsightsResult",
    "Item",
    "ItemNotFoundError",
    "ItemStat",
    "PlannedSnapshot",
    "PriceChange",
    "PriceHistoryPoint",
    "PriceOption",
    "PricePerUnit",
    "resolve_price",
    "resolve_quantity",
    "resolve_store",
    "resolve_unit",
    "resolved_display",
    "ResolvedDisplay",
    "ShoppingOnlyDetails",
    "SpendingOverview",
    "Store",
    "StoreStat",
    "total_spent",
    "TrendInsights",
    "TripData",
    "Vault",
    "VaultManager",
    "VaultStore",
    "VaultStoreError",
]
