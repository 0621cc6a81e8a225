# test/conftest.py
from __future__ import annotations

from dataclasses import dataclass
from typing import List

import pytest

from kitchen_stock.application.availability import AvailabilityChecker
from kitchen_stock.application.deduction import AtomicDeductor
from kitchen_stock.application.requirements import RecipeResolver, RequirementAggregator
from kitchen_stock.application.usecases import CheckStockAvailability, DeductStockForOrder
from kitchen_stock.domain.entities import CartLine, Ingredient, MenuItem, RecipeEntry
from kitchen_stock.infrastructure.memory_repositories import (
    InMemoryIngredientRepository,
    InMemoryMenuItemRepository,
    InMemoryStockHistoryRepository,
)


def make_ingredients() -> List[Ingredient]:
    return [
        Ingredient(id="bun", name="Bun", unit="pieces", current_stock=50, min_threshold=20),
        Ingredient(id="cheese", name="Cheese", unit="slices", current_stock=100, min_threshold=20),
        Ingredient(id="patty", name="Veg Patty", unit="pieces", current_stock=40, min_threshold=10),
        Ingredient(id="dough", name="Pizza Dough", unit="kg", current_stock=0, min_threshold=5),
    ]


def make_menu() -> List[MenuItem]:
    return [
        MenuItem(
            id="slider",
            name="Mini Slider",
            ingredients=[RecipeEntry("bun", "Bun", 2, "pieces")],
        ),
        MenuItem(
            id="burger",
            name="Classic Veg Burger",
            ingredients=[
                RecipeEntry("bun", "Bun", 2, "pieces"),
                RecipeEntry("patty", "Veg Patty", 1, "pieces"),
                RecipeEntry("cheese", "Cheese", 2, "slices"),
            ],
        ),
        MenuItem(
            id="cheese-fries",
            name="Cheese Fries",
            ingredients=[RecipeEntry("cheese", "Cheese", 1, "slices")],
        ),
        MenuItem(id="cola", name="Cola", ingredients=[]),
        MenuItem(
            id="ghost",
            name="Ghost Wrap",
            ingredients=[RecipeEntry("tortilla", "Tortilla", 1, "pieces")],
        ),
    ]


@dataclass
class Kitchen:
    ingredients: InMemoryIngredientRepository
    menu: InMemoryMenuItemRepository
    history: InMemoryStockHistoryRepository
    aggregator: RequirementAggregator
    checker: AvailabilityChecker
    deductor: AtomicDeductor
    check: CheckStockAvailability
    deduct: DeductStockForOrder

    def stock(self, ingredient_id: str) -> float:
        return self.ingredients.by_id(ingredient_id).current_stock


def build_kitchen(
    ingredients=None,
    history=None,
    unmapped_policy: str = "warn",
    guard: bool = True,
) -> Kitchen:
    ingredient_repo = ingredients if ingredients is not None else InMemoryIngredientRepository(make_ingredients())
    menu_repo = InMemoryMenuItemRepository(make_menu())
    history_repo = history if history is not None else InMemoryStockHistoryRepository()
    aggregator = RequirementAggregator(RecipeResolver(menu_repo), unmapped_policy=unmapped_policy)
    checker = AvailabilityChecker(ingredient_repo)
    deductor = AtomicDeductor(ingredient_repo, history_repo, guard=guard)
    return Kitchen(
        ingredients=ingredient_repo,
        menu=menu_repo,
        history=history_repo,
        aggregator=aggregator,
        checker=checker,
        deductor=deductor,
        check=CheckStockAvailability(aggregator, checker),
        deduct=DeductStockForOrder(aggregator, checker, deductor),
    )


@pytest.fixture
def kitchen() -> Kitchen:
    return build_kitchen()


def line(menu_item_id, name, qty, price=100.0) -> CartLine:
    return CartLine(name=name, qty=qty, price=price, menu_item_id=menu_item_id)
