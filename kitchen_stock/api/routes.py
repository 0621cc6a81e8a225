# kitchen_stock/api/routes.py
from __future__ import annotations

import logging
from functools import partial
from typing import Any, Dict, List

import anyio
from fastapi import APIRouter, Depends, HTTPException, Query, Request

from kitchen_stock.api.schemas import (
    CartRequest,
    DeductionResponse,
    IngredientIn,
    MenuItemIn,
    StockCheckResponse,
    StockUpdateRequest,
)
from kitchen_stock.core.config import HISTORY_DEFAULT_LIMIT
from kitchen_stock.core.errors import (
    IngredientInUseError,
    IngredientNotFoundError,
    InsufficientStockError,
    MenuItemNotFoundError,
    RecipeNotFoundError,
    StorageUnavailableError,
)

log = logging.getLogger("api.routes")
router = APIRouter()


# -------------------------
# Dependencies via app.state (wired in main.wire_services)
# -------------------------
def _state_dep(name: str):
    def dep(request: Request):
        uc = getattr(request.app.state, name, None)
        if uc is None:
            raise RuntimeError(f"{name} not initialized. Check app startup wiring.")
        return uc
    return dep


get_check_uc = _state_dep("check_stock_uc")
get_deduct_uc = _state_dep("deduct_stock_uc")
get_list_ingredients_uc = _state_dep("list_ingredients_uc")
get_register_ingredient_uc = _state_dep("register_ingredient_uc")
get_adjust_stock_uc = _state_dep("adjust_stock_uc")
get_delete_ingredient_uc = _state_dep("delete_ingredient_uc")
get_low_stock_uc = _state_dep("low_stock_uc")
get_list_menu_items_uc = _state_dep("list_menu_items_uc")
get_save_menu_item_uc = _state_dep("save_menu_item_uc")
get_delete_menu_item_uc = _state_dep("delete_menu_item_uc")
get_history_uc = _state_dep("stock_history_uc")


def _storage_error(e: StorageUnavailableError) -> HTTPException:
    log.error("Storage unavailable: %s", e)
    return HTTPException(status_code=503, detail=str(e))


def _internal_error(route: str, e: Exception) -> HTTPException:
    log.exception("Processing %s error", route)
    return HTTPException(status_code=500, detail=str(e))


# -------------------------
# Checkout
# -------------------------
@router.post("/stock/check", response_model=StockCheckResponse)
async def check_stock(req: CartRequest, uc=Depends(get_check_uc)) -> Any:
    try:
        report = await anyio.to_thread.run_sync(uc, req.to_domain())
        return report.to_dict()
    except RecipeNotFoundError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except StorageUnavailableError as e:
        raise _storage_error(e)
    except Exception as e:
        raise _internal_error("/stock/check", e)


@router.post("/stock/deduct", response_model=DeductionResponse)
async def deduct_stock(req: CartRequest, uc=Depends(get_deduct_uc)) -> Any:
    try:
        result = await anyio.to_thread.run_sync(uc, req.to_domain())
        return result.to_dict()
    except InsufficientStockError as e:
        raise HTTPException(status_code=409, detail={"message": str(e), "shortages": e.to_list()})
    except RecipeNotFoundError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StorageUnavailableError as e:
        raise _storage_error(e)
    except Exception as e:
        raise _internal_error("/stock/deduct", e)


@router.get("/stock/history", response_model=List[Dict[str, Any]])
async def stock_history(
    limit: int = Query(default=HISTORY_DEFAULT_LIMIT, ge=1, le=500),
    uc=Depends(get_history_uc),
) -> Any:
    try:
        records = await anyio.to_thread.run_sync(partial(uc, limit=limit))
        return [r.to_dict() for r in records]
    except StorageUnavailableError as e:
        raise _storage_error(e)


# -------------------------
# Back-office
# -------------------------
@router.get("/ingredients", response_model=List[Dict[str, Any]])
async def list_ingredients(uc=Depends(get_list_ingredients_uc)) -> Any:
    try:
        items = await anyio.to_thread.run_sync(uc)
        return [i.to_dict() for i in items]
    except StorageUnavailableError as e:
        raise _storage_error(e)


@router.post("/ingredients", response_model=Dict[str, Any], status_code=201)
async def register_ingredient(req: IngredientIn, uc=Depends(get_register_ingredient_uc)) -> Any:
    try:
        ing = await anyio.to_thread.run_sync(
            partial(
                uc,
                name=req.name,
                unit=req.unit,
                current_stock=req.currentStock,
                min_threshold=req.minThreshold,
                average_usage=req.averageUsage,
                max_stock=req.maxStock,
            )
        )
        return ing.to_dict()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StorageUnavailableError as e:
        raise _storage_error(e)


@router.get("/ingredients/low-stock", response_model=List[Dict[str, Any]])
async def low_stock(uc=Depends(get_low_stock_uc)) -> Any:
    try:
        items = await anyio.to_thread.run_sync(uc)
        return [i.to_dict() for i in items]
    except StorageUnavailableError as e:
        raise _storage_error(e)


@router.patch("/ingredients/{ingredient_id}/stock", response_model=Dict[str, Any])
async def adjust_stock(ingredient_id: str, req: StockUpdateRequest, uc=Depends(get_adjust_stock_uc)) -> Any:
    try:
        adjustment = await anyio.to_thread.run_sync(uc, ingredient_id, req.currentStock)
        return adjustment.to_dict()
    except IngredientNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StorageUnavailableError as e:
        raise _storage_error(e)


@router.delete("/ingredients/{ingredient_id}", response_model=Dict[str, Any])
async def delete_ingredient(ingredient_id: str, uc=Depends(get_delete_ingredient_uc)) -> Any:
    try:
        await anyio.to_thread.run_sync(uc, ingredient_id)
        return {"deleted": ingredient_id}
    except IngredientNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except IngredientInUseError as e:
        raise HTTPException(status_code=409, detail={"message": str(e), "menuItems": e.menu_items})
    except StorageUnavailableError as e:
        raise _storage_error(e)


@router.get("/menu-items", response_model=List[Dict[str, Any]])
async def list_menu_items(uc=Depends(get_list_menu_items_uc)) -> Any:
    try:
        items = await anyio.to_thread.run_sync(uc)
        return [m.to_dict() for m in items]
    except StorageUnavailableError as e:
        raise _storage_error(e)


@router.put("/menu-items/{menu_item_id}", response_model=Dict[str, Any])
async def save_menu_item(menu_item_id: str, req: MenuItemIn, uc=Depends(get_save_menu_item_uc)) -> Any:
    try:
        item = await anyio.to_thread.run_sync(uc, req.to_domain(menu_item_id))
        return item.to_dict()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StorageUnavailableError as e:
        raise _storage_error(e)


@router.delete("/menu-items/{menu_item_id}", response_model=Dict[str, Any])
async def delete_menu_item(menu_item_id: str, uc=Depends(get_delete_menu_item_uc)) -> Any:
    try:
        await anyio.to_thread.run_sync(uc, menu_item_id)
        return {"deleted": menu_item_id}
    except MenuItemNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StorageUnavailableError as e:
        raise _storage_error(e)


@router.get("/health")
async def health() -> Dict[str, str]:
    return {"status": "ok"}
