# kitchen_stock/infrastructure/memory_repositories.py
from __future__ import annotations

import threading
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence

from kitchen_stock.core.errors import IngredientNotFoundError, InsufficientStockError
from kitchen_stock.domain.entities import (
    SHORTAGE_NOT_FOUND,
    Ingredient,
    MenuItem,
    Requirement,
    Shortage,
    StockHistoryRecord,
)
from kitchen_stock.domain.repositories import IngredientRepo, MenuItemRepo, StockHistoryRepo


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryIngredientRepository(IngredientRepo):
    """
    Process-local ingredient store. Every read-modify-write runs under one
    lock and a batch is staged on a copy, then swapped in whole.
    """

    def __init__(self, items: Iterable[Ingredient] = ()) -> None:
        self._lock = threading.Lock()
        self._items: Dict[str, Ingredient] = {i.id: i for i in items}

    def by_id(self, ingredient_id: str) -> Optional[Ingredient]:
        with self._lock:
            return self._items.get(str(ingredient_id))

    def all(self) -> List[Ingredient]:
        with self._lock:
            return sorted(self._items.values(), key=lambda i: i.name.lower())

    def add(
        self,
        name: str,
        unit: str,
        current_stock: float,
        min_threshold: float,
        average_usage: float,
        max_stock: float,
    ) -> Ingredient:
        ing = Ingredient(
            id=uuid.uuid4().hex,
            name=name,
            unit=unit,
            current_stock=current_stock,
            min_threshold=min_threshold,
            average_usage=average_usage,
            max_stock=max_stock,
            last_updated=_now(),
        )
        with self._lock:
            self._items[ing.id] = ing
        return ing

    def delete(self, ingredient_id: str) -> bool:
        with self._lock:
            return self._items.pop(str(ingredient_id), None) is not None

    def set_stock(self, ingredient_id: str, new_stock: float) -> Ingredient:
        with self._lock:
            cur = self._items.get(str(ingredient_id))
            if cur is None:
                raise IngredientNotFoundError(ingredient_id)
            updated = replace(cur, current_stock=new_stock, last_updated=_now())
            self._items[updated.id] = updated
            return updated

    def apply_decrements(self, requirements: Sequence[Requirement], guard: bool = True) -> None:
        with self._lock:
            staged = dict(self._items)
            shortages: List[Shortage] = []
            for req in requirements:
                cur = staged.get(req.ingredient_id)
                if cur is None:
                    if not guard:
                        raise IngredientNotFoundError(req.ingredient_id)
                    shortages.append(
                        Shortage(req.ingredient_id, req.ingredient_name, req.total_quantity, None, req.unit, SHORTAGE_NOT_FOUND)
                    )
                    continue
                if guard and cur.current_stock < req.total_quantity:
                    shortages.append(
                        Shortage(req.ingredient_id, req.ingredient_name, req.total_quantity, cur.current_stock, req.unit)
                    )
                    continue
                staged[cur.id] = self._stage(cur, req.total_quantity)
            if shortages:
                raise InsufficientStockError(shortages)
            self._items = staged

    def _stage(self, cur: Ingredient, qty: float) -> Ingredient:
        return replace(cur, current_stock=cur.current_stock - qty, last_updated=_now())


class InMemoryMenuItemRepository(MenuItemRepo):
    def __init__(self, items: Iterable[MenuItem] = ()) -> None:
        self._lock = threading.Lock()
        self._items: Dict[str, MenuItem] = {m.id: m for m in items}

    def by_id(self, menu_item_id: str) -> Optional[MenuItem]:
        with self._lock:
            return self._items.get(str(menu_item_id))

    def find_by_name(self, name: str) -> Optional[MenuItem]:
        # exact match, first hit wins
        with self._lock:
            for m in self._items.values():
                if m.name == name:
                    return m
        return None

    def all(self) -> List[MenuItem]:
        with self._lock:
            return sorted(self._items.values(), key=lambda m: m.name.lower())

    def using_ingredient(self, ingredient_id: str) -> List[MenuItem]:
        return [m for m in self.all() if any(e.ingredient_id == ingredient_id for e in m.ingredients)]

    def save(self, item: MenuItem) -> MenuItem:
        with self._lock:
            self._items[item.id] = item
        return item

    def delete(self, menu_item_id: str) -> bool:
        with self._lock:
            return self._items.pop(str(menu_item_id), None) is not None


class InMemoryStockHistoryRepository(StockHistoryRepo):
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: List[StockHistoryRecord] = []

    def append(self, record: StockHistoryRecord) -> str:
        rid = uuid.uuid4().hex
        with self._lock:
            self._records.append(replace(record, id=rid))
        return rid

    def recent(self, limit: int = 50) -> List[StockHistoryRecord]:
        with self._lock:
            return list(reversed(self._records))[: max(0, limit)]
