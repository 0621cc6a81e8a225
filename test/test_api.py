# test/test_api.py
from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from conftest import make_ingredients, make_menu
from kitchen_stock.api.routes import router
from kitchen_stock.core.errors import AuditLogWriteError, StorageUnavailableError
from kitchen_stock.infrastructure.memory_repositories import (
    InMemoryIngredientRepository,
    InMemoryMenuItemRepository,
    InMemoryStockHistoryRepository,
)
from main import wire_services


class ReadOnlyHistoryRepository(InMemoryStockHistoryRepository):
    def append(self, record):
        raise AuditLogWriteError("not authorized on kitchen")


class DownIngredientRepository(InMemoryIngredientRepository):
    def by_id(self, ingredient_id):
        raise StorageUnavailableError("connection refused")


def _client(ingredients=None, history=None, unmapped_policy="warn") -> TestClient:
    app = FastAPI()
    app.include_router(router)
    wire_services(
        app,
        ingredients if ingredients is not None else InMemoryIngredientRepository(make_ingredients()),
        InMemoryMenuItemRepository(make_menu()),
        history if history is not None else InMemoryStockHistoryRepository(),
        unmapped_policy=unmapped_policy,
        guard=True,
    )
    return TestClient(app)


@pytest.fixture
def client() -> TestClient:
    return _client()


def _cart(*lines):
    return {"cart": [{"id": i, "name": n, "qty": q, "price": 99} for i, n, q in lines]}


def test_check_ok(client):
    r = client.post("/stock/check", json=_cart(("slider", "Mini Slider", 10)))
    assert r.status_code == 200
    assert r.json() == {"canFulfill": True, "unavailableItems": [], "warnings": []}


def test_check_shortage(client):
    r = client.post("/stock/check", json=_cart(("slider", "Mini Slider", 30)))
    body = r.json()
    assert r.status_code == 200
    assert body["canFulfill"] is False
    assert body["unavailableItems"][0]["name"] == "Bun"
    assert body["unavailableItems"][0]["required"] == 60
    assert body["unavailableItems"][0]["available"] == 50


def test_check_storage_down():
    c = _client(ingredients=DownIngredientRepository(make_ingredients()))
    r = c.post("/stock/check", json=_cart(("slider", "Mini Slider", 1)))
    assert r.status_code == 503


def test_menu_item_id_field_wins():
    c = _client()
    r = c.post(
        "/stock/deduct",
        json={"cart": [{"id": "line-1", "menuItemId": "slider", "name": "Renamed Slider", "qty": 1}]},
    )
    assert r.status_code == 200
    assert r.json()["deductedItems"][0]["deducted"] == 2


def test_id_only_cart_line(client):
    r = client.post("/stock/check", json={"cart": [{"menuItemId": "slider", "qty": 1}]})
    assert r.status_code == 200
    assert r.json()["canFulfill"] is True

    r = client.post("/stock/deduct", json={"cart": [{"menuItemId": "slider", "qty": 3}]})
    assert r.status_code == 200
    assert r.json()["deductedItems"][0]["deducted"] == 6

    hist = client.get("/stock/history").json()
    assert hist[0]["cartItems"] == [{"name": "slider", "quantity": 3, "price": 0.0}]


def test_cart_line_without_any_key(client):
    r = client.post("/stock/check", json={"cart": [{"qty": 1}]})
    assert r.status_code == 422


def test_unknown_id_only_line_warns(client):
    r = client.post("/stock/check", json={"cart": [{"id": "nachos", "qty": 1}]})
    assert r.status_code == 200
    assert r.json()["warnings"] == ['Menu item "nachos" has no ingredient mapping']


def test_deduct_then_history(client):
    r = client.post("/stock/deduct", json=_cart(("slider", "Mini Slider", 10)))
    assert r.status_code == 200
    assert r.json()["success"] is True
    assert r.json()["deductedItems"] == [{"ingredientId": "bun", "name": "Bun", "deducted": 20, "unit": "pieces"}]

    hist = client.get("/stock/history", params={"limit": 5}).json()
    assert len(hist) == 1
    assert hist[0]["type"] == "deduction"
    assert hist[0]["cartItems"] == [{"name": "Mini Slider", "quantity": 10, "price": 99}]

    bun = [i for i in client.get("/ingredients").json() if i["id"] == "bun"][0]
    assert bun["currentStock"] == 30


def test_deduct_insufficient_is_conflict(client):
    r = client.post("/stock/deduct", json=_cart(("slider", "Mini Slider", 30)))
    assert r.status_code == 409
    detail = r.json()["detail"]
    assert detail["shortages"][0]["shortfall"] == 10
    assert detail["message"].startswith("Insufficient stock")


def test_deduct_empty_cart(client):
    r = client.post("/stock/deduct", json={"cart": []})
    assert r.status_code == 400


def test_fail_policy_is_unprocessable():
    c = _client(unmapped_policy="fail")
    r = c.post("/stock/deduct", json=_cart(("cola", "Cola", 1)))
    assert r.status_code == 422


def test_qty_must_be_positive(client):
    r = client.post("/stock/check", json=_cart(("slider", "Mini Slider", 0)))
    assert r.status_code == 422


def test_ingredient_admin_flow(client):
    r = client.post("/ingredients", json={"name": "Tomato", "unit": "kg", "currentStock": 3})
    assert r.status_code == 201
    tomato_id = r.json()["id"]

    low = {i["id"]: i for i in client.get("/ingredients/low-stock").json()}
    assert low[tomato_id]["status"] == "low-stock"
    assert low["dough"]["status"] == "out-of-stock"

    r = client.patch(f"/ingredients/{tomato_id}/stock", json={"currentStock": 80})
    assert r.status_code == 200
    assert r.json()["currentStock"] == 80
    assert r.json()["warnings"] == []
    assert tomato_id not in {i["id"] for i in client.get("/ingredients/low-stock").json()}

    assert client.patch("/ingredients/nope/stock", json={"currentStock": 1}).status_code == 404
    assert client.patch(f"/ingredients/{tomato_id}/stock", json={"currentStock": -1}).status_code == 422


def test_adjust_reports_history_failure():
    c = _client(history=ReadOnlyHistoryRepository())
    r = c.patch("/ingredients/bun/stock", json={"currentStock": 12})
    assert r.status_code == 200
    body = r.json()
    assert body["currentStock"] == 12
    assert body["status"] == "critical"
    assert body["warnings"] == ["stock history not recorded: not authorized on kitchen"]


def test_delete_ingredient(client):
    r = client.delete("/ingredients/bun")
    assert r.status_code == 409
    assert r.json()["detail"]["menuItems"] == ["Classic Veg Burger", "Mini Slider"]

    r = client.delete("/ingredients/dough")
    assert r.status_code == 200
    assert r.json() == {"deleted": "dough"}
    assert "dough" not in {i["id"] for i in client.get("/ingredients").json()}

    assert client.delete("/ingredients/dough").status_code == 404


def test_menu_items_list_and_delete(client):
    ids = [m["id"] for m in client.get("/menu-items").json()]
    assert ids == ["cheese-fries", "burger", "cola", "ghost", "slider"]

    assert client.delete("/menu-items/ghost").status_code == 200
    assert "ghost" not in {m["id"] for m in client.get("/menu-items").json()}
    assert client.delete("/menu-items/ghost").status_code == 404


def test_save_menu_item_then_deduct(client):
    r = client.put(
        "/menu-items/fries-combo",
        json={
            "name": "Fries Combo",
            "price": 199,
            "ingredients": [{"ingredientId": "cheese", "ingredientName": "Cheese", "quantity": 3, "unit": "slices"}],
        },
    )
    assert r.status_code == 200

    r = client.post("/stock/deduct", json=_cart(("fries-combo", "Fries Combo", 2)))
    assert r.json()["deductedItems"][0]["deducted"] == 6


def test_menu_item_needs_ingredients(client):
    r = client.put("/menu-items/x", json={"name": "Nothing", "ingredients": []})
    assert r.status_code == 422


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}
