from __future__ import annotations

import logging
import uvicorn
from fastapi import FastAPI
from pymongo import MongoClient
from dotenv import load_dotenv
load_dotenv()
from kitchen_stock.api.routes import router
from kitchen_stock.core.config import (
    GUARD_NEGATIVE_STOCK,
    MONGO_DB,
    MONGO_INGREDIENTS_COL,
    MONGO_MENU_ITEMS_COL,
    MONGO_STOCK_HISTORY_COL,
    MONGO_URI,
    STORAGE_BACKEND,
    UNMAPPED_ITEM_POLICY,
)

from kitchen_stock.domain.repositories import IngredientRepo, MenuItemRepo, StockHistoryRepo
from kitchen_stock.infrastructure.mongo_repositories import (
    MongoIngredientRepository,
    MongoMenuItemRepository,
    MongoStockHistoryRepository,
)
from kitchen_stock.infrastructure.memory_repositories import (
    InMemoryIngredientRepository,
    InMemoryMenuItemRepository,
    InMemoryStockHistoryRepository,
)
from kitchen_stock.application.requirements import RecipeResolver, RequirementAggregator
from kitchen_stock.application.availability import AvailabilityChecker
from kitchen_stock.application.deduction import AtomicDeductor
from kitchen_stock.application.usecases import (
    AdjustStock,
    CheckStockAvailability,
    DeductStockForOrder,
    DeleteIngredient,
    DeleteMenuItem,
    GetLowStockIngredients,
    GetStockHistory,
    ListIngredients,
    ListMenuItems,
    RegisterIngredient,
    SaveMenuItemRecipe,
)

log = logging.getLogger("app")
app = FastAPI(title="Kitchen Stock Service")
app.include_router(router)

_mongo_client: MongoClient | None = None


def wire_services(
    app: FastAPI,
    ingredient_repo: IngredientRepo,
    menu_repo: MenuItemRepo,
    history_repo: StockHistoryRepo,
    unmapped_policy: str = UNMAPPED_ITEM_POLICY,
    guard: bool = GUARD_NEGATIVE_STOCK,
) -> None:
    aggregator = RequirementAggregator(RecipeResolver(menu_repo), unmapped_policy=unmapped_policy)
    checker = AvailabilityChecker(ingredient_repo)
    deductor = AtomicDeductor(ingredient_repo, history_repo, guard=guard)

    # DI for routes.py
    app.state.check_stock_uc = CheckStockAvailability(aggregator, checker)
    app.state.deduct_stock_uc = DeductStockForOrder(aggregator, checker, deductor)
    app.state.list_ingredients_uc = ListIngredients(ingredient_repo)
    app.state.register_ingredient_uc = RegisterIngredient(ingredient_repo)
    app.state.adjust_stock_uc = AdjustStock(ingredient_repo, history_repo)
    app.state.delete_ingredient_uc = DeleteIngredient(ingredient_repo, menu_repo)
    app.state.low_stock_uc = GetLowStockIngredients(ingredient_repo)
    app.state.list_menu_items_uc = ListMenuItems(menu_repo)
    app.state.save_menu_item_uc = SaveMenuItemRecipe(menu_repo)
    app.state.delete_menu_item_uc = DeleteMenuItem(menu_repo)
    app.state.stock_history_uc = GetStockHistory(history_repo)


@app.on_event("startup")
def on_startup() -> None:
    global _mongo_client

    if STORAGE_BACKEND == "memory":
        log.warning("STORAGE_BACKEND=memory: stock is not persisted")
        wire_services(
            app,
            InMemoryIngredientRepository(),
            InMemoryMenuItemRepository(),
            InMemoryStockHistoryRepository(),
        )
    else:
        _mongo_client = MongoClient(MONGO_URI, serverSelectionTimeoutMS=3000)
        db = _mongo_client[MONGO_DB]
        wire_services(
            app,
            MongoIngredientRepository(db[MONGO_INGREDIENTS_COL]),
            MongoMenuItemRepository(db[MONGO_MENU_ITEMS_COL]),
            MongoStockHistoryRepository(db[MONGO_STOCK_HISTORY_COL]),
        )

    log.info(
        "Startup complete (backend=%s, unmapped_policy=%s, guard_negative_stock=%s)",
        STORAGE_BACKEND, UNMAPPED_ITEM_POLICY, GUARD_NEGATIVE_STOCK,
    )


@app.on_event("shutdown")
def on_shutdown() -> None:
    global _mongo_client
    if _mongo_client:
        _mongo_client.close()
        _mongo_client = None


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8081, reload=False)
