"""Insights computed over completed carts."""

from collections import defaultdict
from datetime import datetime, timedelta
from uuid import UUID

from .config import InsightsConfig
from .item_normalizer import round_money
from .models import (
    BehaviorComparison,
    BudgetStats,
    Cart,
    CartStatus,
    InsightsResult,
    ItemStat,
    PriceHistoryPoint,
    SpendingOverview,
    StoreStat,
    TrendInsights,
    TripData,
    Vault,
)
from .resolver import item_name, line_total, resolve_price, resolve_store, resolve_unit, total_spent


class Insights:
    """Read-only spend statistics over completed carts.

    Nothing is cached: every call recomputes from the carts it is given and
    never mutates them.
    """

    def __init__(self, vault: Vault | None = None, config: InsightsConfig | None = None):
        self.vault = vault
        self.config = config or InsightsConfig()

    def snapshot(self, carts: list[Cart] | None = None, now: datetime | None = None) -> InsightsResult:
        """Compute every insight at once.

        Args:
            carts: Carts to analyse; non-completed carts are ignored.
                Defaults to the vault's carts.
            now: Reference time for the recent window

        Returns:
            InsightsResult
        """
        completed = self._completed(carts)
        if not completed:
            return InsightsResult()

        now = now or datetime.now()
        recent = self._recent(completed, now)

        return InsightsResult(
            overview=self.spending_overview(completed, now),
            store_stats=self.store_stats(completed),
            budget=self.budget_stats(completed),
            behavior=self.behavior_comparison(completed),
            frequent_items=self.frequent_items(completed),
            all_trips=self._trips(completed),
            recent_trips=self._trips(recent),
        )

    def spending_overview(self, carts: list[Cart], now: datetime | None = None) -> SpendingOverview:
        """All-time and recent spend; per-trip averages cover the recent window."""
        completed = self._completed(carts)
        now = now or datetime.now()
        recent = self._recent(completed, now)

        all_time = sum(self._spent(cart) for cart in completed)
        recent_total = sum(self._spent(cart) for cart in recent)

        avg_spend = 0.0
        avg_items = 0.0
        if recent:
            avg_spend = recent_total / len(recent)
            avg_items = sum(cart.total_items_count for cart in recent) / len(recent)

        return SpendingOverview(
            total_spent_all_time=round_money(all_time),
            total_spent_last_30_days=round_money(recent_total),
            avg_spend_per_trip=round_money(avg_spend),
            avg_items_per_trip=round(avg_items, 1),
            trip_count=len(completed),
            recent_trip_count=len(recent),
        )

    def store_stats(self, carts: list[Cart]) -> list[StoreStat]:
        """Spend per store, counting one visit per store touched by a cart."""
        store_spend: dict[str, float] = defaultdict(float)
        store_visits: dict[str, int] = defaultdict(int)

        for cart in self._completed(carts):
            cart_store_totals: dict[str, float] = defaultdict(float)
            for cart_item in cart.active_items:
                store = resolve_store(cart_item, self.vault, CartStatus.COMPLETED)
                cart_store_totals[store] += line_total(cart_item, self.vault, CartStatus.COMPLETED)

            for store, total in cart_store_totals.items():
                store_spend[store] += total
                store_visits[store] += 1

        stats = [
            StoreStat(name=store, total_spend=round_money(total), visit_count=store_visits[store])
            for store, total in store_spend.items()
        ]
        return sorted(stats, key=lambda s: s.total_spend, reverse=True)

    def budget_stats(self, carts: list[Cart]) -> BudgetStats:
        """Variance against budget over carts that had one (positive = overspend)."""
        budgeted = [cart for cart in self._completed(carts) if cart.has_budget]
        if not budgeted:
            return BudgetStats()

        variances = [self._spent(cart) - cart.budget for cart in budgeted]
        count = len(budgeted)

        return BudgetStats(
            has_budget_data=True,
            budgeted_trips_count=count,
            avg_budget_variance=round_money(sum(variances) / count),
            avg_absolute_budget_deviation=round_money(sum(abs(v) for v in variances) / count),
            budget_accuracy=round(sum(1 for v in variances if v <= 0) / count * 100, 1),
        )

    def behavior_comparison(self, carts: list[Cart]) -> BehaviorComparison:
        """Average spend of budgeted vs unbudgeted trips."""
        completed = self._completed(carts)
        budgeted = [self._spent(cart) for cart in completed if cart.has_budget]
        unbudgeted = [self._spent(cart) for cart in completed if not cart.has_budget]

        avg_budgeted = sum(budgeted) / len(budgeted) if budgeted else 0.0
        avg_unbudgeted = sum(unbudgeted) / len(unbudgeted) if unbudgeted else 0.0

        difference = 0.0
        if avg_budgeted > 0:
            difference = (avg_unbudgeted - avg_budgeted) / avg_budgeted

        return BehaviorComparison(
            avg_spend_budgeted=round_money(avg_budgeted),
            avg_spend_unbudgeted=round_money(avg_unbudgeted),
            spend_difference_percentage=round(difference, 4),
        )

    def frequent_items(self, carts: list[Cart], limit: int | None = None) -> list[ItemStat]:
        """Most frequently fulfilled items with their price movement.

        Carts are walked oldest first so the last seen price is the most
        recent one.
        """
        limit = self.config.top_items if limit is None else limit

        counts: dict[UUID, int] = defaultdict(int)
        names: dict[UUID, str] = {}
        prices: dict[UUID, list[float]] = defaultdict(list)
        last_prices: dict[UUID, float] = {}

        for cart in self._sorted(self._completed(carts)):
            for cart_item in cart.cart_items:
                if not cart_item.is_fulfilled:
                    continue
                key = cart_item.item_id
                counts[key] += 1
                names.setdefault(key, item_name(cart_item, self.vault))

                price = resolve_price(cart_item, self.vault, CartStatus.COMPLETED)
                if price > 0:
                    prices[key].append(price)
                    last_prices[key] = price

        stats: list[ItemStat] = []
        for key, count in counts.items():
            history = prices.get(key, [])
            avg_price = sum(history) / max(1, len(history))

            volatility = 0.0
            if history and min(history) > 0:
                volatility = (max(history) - min(history)) / min(history)

            stats.append(
                ItemStat(
                    item_id=key,
                    name=names.get(key, ""),
                    frequency=count,
                    avg_price=round_money(avg_price),
                    last_price=round_money(last_prices.get(key, avg_price)),
                    price_volatility=round(volatility, 4),
                )
            )

        stats.sort(key=lambda s: s.frequency, reverse=True)
        return stats[:limit]

    def item_price_history(self, item_id: UUID, carts: list[Cart] | None = None) -> list[PriceHistoryPoint]:
        """Prices paid for an item on completed trips, oldest first.

        Only fulfilled cart items with a positive price are included.
        """
        history: list[PriceHistoryPoint] = []
        for cart in self._completed(carts):
            for cart_item in cart.cart_items:
                if cart_item.item_id != item_id or not cart_item.is_fulfilled:
                    continue
                price = resolve_price(cart_item, self.vault, CartStatus.COMPLETED)
                if price <= 0:
                    continue
                history.append(
                    PriceHistoryPoint(
                        date=cart.history_date,
                        price=price,
                        store=resolve_store(cart_item, self.vault, CartStatus.COMPLETED),
                        unit=resolve_unit(cart_item, self.vault, CartStatus.COMPLETED),
                    )
                )
                break

        return sorted(history, key=lambda p: p.date)

    def trend(
        self,
        carts: list[Cart] | None = None,
        period: str = "weekly",
        reference: datetime | None = None,
    ) -> TrendInsights:
        """Compare spend in a period with the period just before it.

        Args:
            carts: Carts to analyse (completed ones only)
            period: "weekly" for the last ``trend_days`` days, or "monthly"
                for the calendar month containing ``reference``
            reference: Reference time, defaults to now

        Returns:
            TrendInsights with daily totals for the current period
        """
        completed = self._completed(carts)
        start, end, previous_start = self._period_window(period, reference or datetime.now())

        current = [c for c in completed if start <= c.history_date < end]
        previous = [c for c in completed if previous_start <= c.history_date < start]

        current_total = sum(self._spent(cart) for cart in current)
        previous_total = sum(self._spent(cart) for cart in previous)

        if previous_total > 0:
            trend_pct = (current_total - previous_total) / previous_total
        else:
            trend_pct = 1.0 if current_total > 0 else 0.0

        daily: dict[datetime, float] = defaultdict(float)
        for cart in current:
            day = cart.history_date.replace(hour=0, minute=0, second=0, microsecond=0)
            daily[day] += self._spent(cart)

        return TrendInsights(
            period=period,
            start=start,
            end=end,
            current_total=round_money(current_total),
            previous_total=round_money(previous_total),
            trend_percentage=round(trend_pct, 4),
            daily_totals=[
                TripData(date=day, amount=round_money(amount)) for day, amount in sorted(daily.items())
            ],
        )

    # --- Helpers ---

    def _completed(self, carts: list[Cart] | None) -> list[Cart]:
        if carts is None:
            return self.vault.completed_carts if self.vault is not None else []
        return [cart for cart in carts if cart.status == CartStatus.COMPLETED]

    def _recent(self, carts: list[Cart], now: datetime) -> list[Cart]:
        cutoff = now - timedelta(days=self.config.recent_days)
        return [cart for cart in carts if cart.history_date >= cutoff]

    def _spent(self, cart: Cart) -> float:
        return total_spent(cart, self.vault)

    @staticmethod
    def _sorted(carts: list[Cart]) -> list[Cart]:
        return sorted(carts, key=lambda c: c.history_date)

    def _trips(self, carts: list[Cart]) -> list[TripData]:
        return [
            TripData(date=cart.history_date, amount=self._spent(cart), cart_id=cart.id)
            for cart in self._sorted(carts)
        ]

    def _period_window(self, period: str, reference: datetime) -> tuple[datetime, datetime, datetime]:
        """Return (start, end, previous_start) for supported trend periods."""
        if period == "monthly":
            start = reference.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
            if start.month == 12:
                end = start.replace(year=start.year + 1, month=1)
            else:
                end = start.replace(month=start.month + 1)
            if start.month == 1:
                previous_start = start.replace(year=start.year - 1, month=12)
            else:
                previous_start = start.replace(month=start.month - 1)
            return start, end, previous_start

        if period != "weekly":
            raise ValueError(f"Unsupported period: {period!r}")

        days = timedelta(days=self.config.trend_days)
        end = reference + timedelta(microseconds=1)
        start = reference - days
        return start, end, start - days
