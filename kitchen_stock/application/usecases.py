# kitchen_stock/application/usecases.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Sequence

from kitchen_stock.application.availability import AvailabilityChecker
from kitchen_stock.application.deduction import AtomicDeductor, record_history
from kitchen_stock.application.requirements import RequirementAggregator
from kitchen_stock.core.config import DEFAULT_MAX_STOCK, DEFAULT_MIN_THRESHOLD
from kitchen_stock.core.errors import (
    IngredientInUseError,
    IngredientNotFoundError,
    InsufficientStockError,
    MenuItemNotFoundError,
)
from kitchen_stock.domain.entities import (
    AvailabilityReport,
    CartLine,
    DeductionResult,
    Ingredient,
    LowStockItem,
    MenuItem,
    StockAdjustment,
    StockHistoryRecord,
)
from kitchen_stock.domain.repositories import IngredientRepo, MenuItemRepo, StockHistoryRepo

log = logging.getLogger("app.usecases")

NO_TRACKED_INGREDIENTS = "No ingredients configured for any items in cart"


# ----------------------------
# Checkout
# ----------------------------
@dataclass(frozen=True)
class CheckStockAvailability:
    """Pre-checkout validation. Never writes."""
    aggregator: RequirementAggregator
    checker: AvailabilityChecker

    def __call__(self, cart: Sequence[CartLine]) -> AvailabilityReport:
        requirements, warnings = self.aggregator.aggregate(cart)
        if not requirements:
            return AvailabilityReport(shortages=[], warnings=warnings)
        report = self.checker.check(requirements)
        return AvailabilityReport(shortages=report.shortages, warnings=warnings)


@dataclass(frozen=True)
class DeductStockForOrder:
    aggregator: RequirementAggregator
    checker: AvailabilityChecker
    deductor: AtomicDeductor

    def __call__(self, cart: Sequence[CartLine]) -> DeductionResult:
        if not cart:
            raise ValueError("Cart is empty")

        requirements, warnings = self.aggregator.aggregate(cart)
        if not requirements:
            log.info("Nothing to deduct: %s", NO_TRACKED_INGREDIENTS)
            return DeductionResult(success=True, deducted_items=[], warnings=warnings + [NO_TRACKED_INGREDIENTS])

        report = self.checker.check(requirements)
        if not report.can_fulfill:
            raise InsufficientStockError(report.shortages)

        return self.deductor.deduct(requirements, cart, warnings)


# ----------------------------
# Back-office
# ----------------------------
@dataclass(frozen=True)
class ListIngredients:
    ingredient_repo: IngredientRepo

    def __call__(self) -> List[Ingredient]:
        return self.ingredient_repo.all()


@dataclass(frozen=True)
class RegisterIngredient:
    ingredient_repo: IngredientRepo

    def __call__(
        self,
        name: str,
        unit: str = "pieces",
        current_stock: float = 0.0,
        min_threshold: float = DEFAULT_MIN_THRESHOLD,
        average_usage: float = 0.0,
        max_stock: float = DEFAULT_MAX_STOCK,
    ) -> Ingredient:
        name = (name or "").strip()
        if not name:
            raise ValueError("Ingredient name is required")
        if current_stock < 0:
            raise ValueError("current_stock must be >= 0")
        ing = self.ingredient_repo.add(
            name=name,
            unit=(unit or "pieces").strip(),
            current_stock=current_stock,
            min_threshold=min_threshold,
            average_usage=average_usage,
            max_stock=max_stock,
        )
        log.info("Registered ingredient %s (%s)", ing.name, ing.id)
        return ing


@dataclass(frozen=True)
class AdjustStock:
    """Manual stock edit from the back-office; logged to stock history like a deduction."""
    ingredient_repo: IngredientRepo
    history_repo: StockHistoryRepo

    def __call__(self, ingredient_id: str, new_stock: float) -> StockAdjustment:
        if new_stock < 0:
            raise ValueError("new_stock must be >= 0")
        before = self.ingredient_repo.by_id(ingredient_id)
        if before is None:
            raise IngredientNotFoundError(ingredient_id)

        after = self.ingredient_repo.set_stock(ingredient_id, new_stock)
        warnings: List[str] = []
        record_history(
            self.history_repo,
            StockHistoryRecord(
                type="adjustment",
                source="admin",
                items=[{
                    "ingredientId": after.id,
                    "name": after.name,
                    "previous": before.current_stock,
                    "current": after.current_stock,
                    "delta": after.current_stock - before.current_stock,
                    "unit": after.unit,
                }],
                cart_items=[],
                timestamp=datetime.now(timezone.utc),
            ),
            warnings,
        )
        return StockAdjustment(ingredient=after, warnings=warnings)


@dataclass(frozen=True)
class DeleteIngredient:
    """Refuses while any menu item recipe still references the ingredient."""
    ingredient_repo: IngredientRepo
    menu_repo: MenuItemRepo

    def __call__(self, ingredient_id: str) -> None:
        if self.ingredient_repo.by_id(ingredient_id) is None:
            raise IngredientNotFoundError(ingredient_id)
        users = self.menu_repo.using_ingredient(ingredient_id)
        if users:
            raise IngredientInUseError(ingredient_id, [m.name or m.id for m in users])
        if not self.ingredient_repo.delete(ingredient_id):
            raise IngredientNotFoundError(ingredient_id)
        log.info("Deleted ingredient %s", ingredient_id)


@dataclass(frozen=True)
class GetLowStockIngredients:
    ingredient_repo: IngredientRepo

    def __call__(self) -> List[LowStockItem]:
        return [
            LowStockItem(
                id=i.id,
                name=i.name,
                current_stock=i.current_stock,
                min_threshold=i.min_threshold,
                unit=i.unit,
            )
            for i in self.ingredient_repo.all()
            if i.is_low
        ]


@dataclass(frozen=True)
class ListMenuItems:
    menu_repo: MenuItemRepo

    def __call__(self) -> List[MenuItem]:
        return self.menu_repo.all()


@dataclass(frozen=True)
class SaveMenuItemRecipe:
    menu_repo: MenuItemRepo

    def __call__(self, item: MenuItem) -> MenuItem:
        if not (item.name or "").strip():
            raise ValueError("Menu item name is required")
        if not item.ingredients:
            raise ValueError("Please add at least one ingredient")
        for e in item.ingredients:
            if not e.ingredient_id or e.quantity <= 0:
                raise ValueError("Every ingredient needs an ingredientId and a quantity > 0")
        saved = self.menu_repo.save(item)
        log.info("Saved recipe for %s (%d ingredients)", saved.name, len(saved.ingredients))
        return saved


@dataclass(frozen=True)
class DeleteMenuItem:
    menu_repo: MenuItemRepo

    def __call__(self, menu_item_id: str) -> None:
        if not self.menu_repo.delete(menu_item_id):
            raise MenuItemNotFoundError(menu_item_id)
        log.info("Deleted menu item %s", menu_item_id)


@dataclass(frozen=True)
class GetStockHistory:
    history_repo: StockHistoryRepo

    def __call__(self, limit: int = 50) -> List[StockHistoryRecord]:
        return self.history_repo.recent(limit=limit)
