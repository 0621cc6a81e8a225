# test/test_deduction.py
from __future__ import annotations

import pytest

from conftest import build_kitchen, line, make_ingredients
from kitchen_stock.application.usecases import NO_TRACKED_INGREDIENTS
from kitchen_stock.core.errors import (
    AuditLogWriteError,
    IngredientNotFoundError,
    InsufficientStockError,
    StorageUnavailableError,
)
from kitchen_stock.domain.entities import Ingredient
from kitchen_stock.infrastructure.memory_repositories import (
    InMemoryIngredientRepository,
    InMemoryStockHistoryRepository,
)


class FaultyIngredientRepository(InMemoryIngredientRepository):
    """Fails while staging one particular ingredient, after others were staged."""

    def __init__(self, items, fail_on: str) -> None:
        super().__init__(items)
        self.fail_on = fail_on

    def _stage(self, cur, qty):
        if cur.id == self.fail_on:
            raise StorageUnavailableError("simulated write fault")
        return super()._stage(cur, qty)


class BrokenHistoryRepository(InMemoryStockHistoryRepository):
    def append(self, record):
        raise AuditLogWriteError("permission denied")


def test_sufficient_stock_scenario():
    k = build_kitchen(ingredients=InMemoryIngredientRepository(
        [Ingredient(id="bun", name="Bun", unit="pieces", current_stock=50)]
    ))

    result = k.deduct([line("slider", "Mini Slider", 10, price=120)])

    assert result.success
    assert k.stock("bun") == 30
    [rec] = k.history.recent()
    assert rec.type == "deduction"
    assert rec.source == "order"
    assert rec.items == [{"ingredientId": "bun", "name": "Bun", "deducted": 20, "unit": "pieces"}]
    assert rec.cart_items == [{"name": "Mini Slider", "quantity": 10, "price": 120}]


def test_insufficient_stock_blocks_deduction():
    k = build_kitchen(ingredients=InMemoryIngredientRepository(
        [Ingredient(id="bun", name="Bun", unit="pieces", current_stock=5)]
    ))

    with pytest.raises(InsufficientStockError) as ei:
        k.deduct([line("slider", "Mini Slider", 10)])

    assert ei.value.to_list()[0]["required"] == 20
    assert ei.value.to_list()[0]["available"] == 5
    assert "Bun: need 20pieces, have 5pieces" in str(ei.value)
    assert k.stock("bun") == 5
    assert k.history.recent() == []


def test_conservation_across_orders(kitchen):
    orders = [
        [line("burger", "Classic Veg Burger", 3), line("cheese-fries", "Cheese Fries", 2)],
        [line("cheese-fries", "Cheese Fries", 5)],
        [line("burger", "Classic Veg Burger", 1)],
    ]
    for cart in orders:
        kitchen.deduct(cart)

    # cheese: 2*3 + 1*2 + 1*5 + 2*1 = 15
    assert kitchen.stock("cheese") == 100 - 15
    # bun: 2*3 + 2*1 = 8
    assert kitchen.stock("bun") == 50 - 8
    deducted_cheese = sum(
        i["deducted"] for rec in kitchen.history.recent() for i in rec.items if i["ingredientId"] == "cheese"
    )
    assert deducted_cheese == 15
    assert len(kitchen.history.recent()) == 3


def test_batch_is_all_or_nothing_on_storage_fault():
    repo = FaultyIngredientRepository(make_ingredients(), fail_on="cheese")
    k = build_kitchen(ingredients=repo)

    with pytest.raises(StorageUnavailableError):
        k.deduct([line("burger", "Classic Veg Burger", 2)])

    assert k.stock("bun") == 50
    assert k.stock("patty") == 40
    assert k.stock("cheese") == 100
    assert k.history.recent() == []


def test_guarded_batch_rejects_stale_availability_check(kitchen):
    cart = [line("slider", "Mini Slider", 20)]  # 40 buns
    reqs, warnings = kitchen.aggregator.aggregate(cart)
    assert kitchen.checker.check(reqs).can_fulfill

    # a concurrent order lands between the check and the write
    kitchen.deduct([line("slider", "Mini Slider", 10)])
    assert kitchen.stock("bun") == 30

    with pytest.raises(InsufficientStockError):
        kitchen.deductor.deduct(reqs, cart, warnings)
    assert kitchen.stock("bun") == 30


def test_unguarded_batch_can_go_negative():
    k = build_kitchen(guard=False)
    cart = [line("slider", "Mini Slider", 20)]
    reqs, warnings = k.aggregator.aggregate(cart)
    assert k.checker.check(reqs).can_fulfill

    k.deduct([line("slider", "Mini Slider", 10)])
    k.deductor.deduct(reqs, cart, warnings)

    assert k.stock("bun") == -10


def test_unguarded_batch_still_rejects_missing_ingredient():
    k = build_kitchen(guard=False)
    reqs, _ = k.aggregator.aggregate([line("ghost", "Ghost Wrap", 1)])
    with pytest.raises(IngredientNotFoundError):
        k.deductor.deduct(reqs, [])


def test_audit_failure_does_not_roll_back():
    k = build_kitchen(history=BrokenHistoryRepository())

    result = k.deduct([line("slider", "Mini Slider", 5)])

    assert result.success
    assert k.stock("bun") == 40
    assert result.warnings == ["stock history not recorded: permission denied"]


def test_aggregation_warnings_are_carried_into_history(kitchen):
    result = kitchen.deduct([line("slider", "Mini Slider", 1), line("cola", "Cola", 1)])
    [rec] = kitchen.history.recent()
    assert rec.warnings == ['No ingredients configured for "Cola"']
    assert result.warnings == rec.warnings


def test_empty_cart_is_rejected(kitchen):
    with pytest.raises(ValueError, match="Cart is empty"):
        kitchen.deduct([])


def test_cart_without_tracked_ingredients(kitchen):
    result = kitchen.deduct([line("cola", "Cola", 2)])
    assert result.success
    assert result.deducted_items == []
    assert result.warnings[-1] == NO_TRACKED_INGREDIENTS
    assert kitchen.history.recent() == []


def test_missing_ingredient_blocks_whole_order(kitchen):
    with pytest.raises(InsufficientStockError):
        kitchen.deduct([line("slider", "Mini Slider", 1), line("ghost", "Ghost Wrap", 1)])
    assert kitchen.stock("bun") == 50
