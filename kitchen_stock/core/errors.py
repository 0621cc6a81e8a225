# kitchen_stock/core/errors.py
from __future__ import annotations

from typing import Any, Dict, List, Sequence


class StockError(Exception):
    """Base class for every error raised by the stock engine."""


class RecipeNotFoundError(StockError, LookupError):
    """A cart line has no ingredient mapping and the unmapped item policy is 'fail'."""

    def __init__(self, item_name: str, reason: str) -> None:
        super().__init__(reason)
        self.item_name = item_name


# Non-fatal counterpart of RecipeNotFoundError: under the 'warn' policy the
# aggregator only records one of these messages and carries on.
def recipe_not_found_warning(item_name: str) -> str:
    return f'Menu item "{item_name}" has no ingredient mapping'


def no_ingredients_warning(item_name: str) -> str:
    return f'No ingredients configured for "{item_name}"'


class IngredientNotFoundError(StockError, LookupError):
    def __init__(self, ingredient_id: str) -> None:
        super().__init__(f"Ingredient not found: {ingredient_id}")
        self.ingredient_id = ingredient_id


class IngredientInUseError(StockError):
    def __init__(self, ingredient_id: str, menu_items: Sequence[str]) -> None:
        self.ingredient_id = ingredient_id
        self.menu_items = list(menu_items)
        super().__init__(
            f"Ingredient {ingredient_id} is used by: " + ", ".join(self.menu_items)
        )


class MenuItemNotFoundError(StockError, LookupError):
    def __init__(self, menu_item_id: str) -> None:
        super().__init__(f"Menu item not found: {menu_item_id}")
        self.menu_item_id = menu_item_id


class InsufficientStockError(StockError):
    """Aggregate requirement exceeds available stock for one or more ingredients."""

    def __init__(self, shortages: Sequence[Any]) -> None:
        self.shortages = list(shortages)
        super().__init__("Insufficient stock - " + "; ".join(self._describe(s) for s in self.shortages))

    @staticmethod
    def _describe(s: Any) -> str:
        if s.available is None:
            return f"{s.name}: {s.reason}"
        return f"{s.name}: need {s.required}{s.unit or ''}, have {s.available}{s.unit or ''}"

    def to_list(self) -> List[Dict[str, Any]]:
        return [s.to_dict() for s in self.shortages]


class StorageUnavailableError(StockError):
    """An underlying read or write against the document store failed."""


class AuditLogWriteError(StockError):
    """Appending a stock history record failed. Never fails the parent operation."""
