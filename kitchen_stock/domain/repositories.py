# kitchen_stock/domain/repositories.py
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from kitchen_stock.domain.entities import Ingredient, MenuItem, Requirement, StockHistoryRecord


class IngredientRepo(ABC):
    @abstractmethod
    def by_id(self, ingredient_id: str) -> Optional[Ingredient]: ...

    @abstractmethod
    def all(self) -> List[Ingredient]: ...

    @abstractmethod
    def add(
        self,
        name: str,
        unit: str,
        current_stock: float,
        min_threshold: float,
        average_usage: float,
        max_stock: float,
    ) -> Ingredient: ...

    @abstractmethod
    def delete(self, ingredient_id: str) -> bool:
        """Remove one ingredient. False when it did not exist."""

    @abstractmethod
    def set_stock(self, ingredient_id: str, new_stock: float) -> Ingredient:
        """Overwrite stock for one ingredient. Raises IngredientNotFoundError."""

    @abstractmethod
    def apply_decrements(self, requirements: Sequence[Requirement], guard: bool = True) -> None:
        """
        Decrement every requirement's ingredient by its total quantity as ONE
        all-or-nothing batch.

        guard=True: re-read stock inside the batch and abort the whole batch
        with InsufficientStockError if any ingredient is missing or would go
        negative.
        guard=False: blind decrement, stock may go negative.
        """


class MenuItemRepo(ABC):
    @abstractmethod
    def by_id(self, menu_item_id: str) -> Optional[MenuItem]: ...

    @abstractmethod
    def find_by_name(self, name: str) -> Optional[MenuItem]: ...

    @abstractmethod
    def all(self) -> List[MenuItem]: ...

    @abstractmethod
    def using_ingredient(self, ingredient_id: str) -> List[MenuItem]:
        """Menu items whose recipe references the ingredient."""

    @abstractmethod
    def save(self, item: MenuItem) -> MenuItem: ...

    @abstractmethod
    def delete(self, menu_item_id: str) -> bool: ...


class StockHistoryRepo(ABC):
    @abstractmethod
    def append(self, record: StockHistoryRecord) -> str:
        """Insert one record, return its id. Raises AuditLogWriteError."""

    @abstractmethod
    def recent(self, limit: int = 50) -> List[StockHistoryRecord]: ...
