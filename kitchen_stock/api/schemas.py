# kitchen_stock/api/schemas.py
from __future__ import annotations

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, model_validator

from kitchen_stock.core.config import DEFAULT_MAX_STOCK, DEFAULT_MIN_THRESHOLD
from kitchen_stock.domain.entities import CartLine, MenuItem, RecipeEntry


class CartLineIn(BaseModel):
    id: Optional[str] = None
    menuItemId: Optional[str] = Field(default=None, description="Stable menu item id; falls back to `id`")
    name: Optional[str] = Field(default=None, description="Display name; legacy lookup key", examples=["Classic Veg Burger"])
    qty: int = Field(..., ge=1)
    price: float = Field(default=0.0, ge=0)

    @model_validator(mode="after")
    def _needs_a_key(self) -> "CartLineIn":
        if not ((self.menuItemId or "").strip() or (self.id or "").strip() or (self.name or "").strip()):
            raise ValueError("cart line needs menuItemId, id or name")
        return self

    def to_domain(self) -> CartLine:
        return CartLine(
            name=(self.name or "").strip() or None,
            qty=self.qty,
            price=self.price,
            menu_item_id=self.menuItemId or self.id,
        )


class CartRequest(BaseModel):
    cart: List[CartLineIn] = Field(default_factory=list)

    def to_domain(self) -> List[CartLine]:
        return [line.to_domain() for line in self.cart]


class StockCheckResponse(BaseModel):
    canFulfill: bool
    unavailableItems: List[Dict[str, Any]]
    warnings: List[str]


class DeductionResponse(BaseModel):
    success: bool
    deductedItems: List[Dict[str, Any]]
    warnings: List[str]


class IngredientIn(BaseModel):
    name: str = Field(..., min_length=1)
    unit: str = "pieces"
    currentStock: float = Field(default=0.0, ge=0)
    minThreshold: float = Field(default=DEFAULT_MIN_THRESHOLD, ge=0)
    averageUsage: float = Field(default=0.0, ge=0)
    maxStock: float = Field(default=DEFAULT_MAX_STOCK, ge=0)


class StockUpdateRequest(BaseModel):
    currentStock: float = Field(..., ge=0)


class RecipeEntryIn(BaseModel):
    ingredientId: str = Field(..., min_length=1)
    ingredientName: Optional[str] = None
    quantity: float = Field(..., gt=0)
    unit: str = ""


class MenuItemIn(BaseModel):
    name: str = Field(..., min_length=1)
    restaurant: Optional[str] = None
    category: Optional[str] = None
    price: float = Field(default=0.0, ge=0)
    ingredients: List[RecipeEntryIn] = Field(..., min_length=1)

    def to_domain(self, menu_item_id: str) -> MenuItem:
        return MenuItem(
            id=menu_item_id,
            name=self.name,
            restaurant=self.restaurant,
            category=self.category,
            price=self.price,
            ingredients=[
                RecipeEntry(
                    ingredient_id=e.ingredientId,
                    ingredient_name=e.ingredientName or e.ingredientId,
                    quantity=e.quantity,
                    unit=e.unit,
                )
                for e in self.ingredients
            ],
        )
