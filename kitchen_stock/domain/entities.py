# kitchen_stock/domain/entities.py
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from kitchen_stock.core.config import DEFAULT_MAX_STOCK, DEFAULT_MIN_THRESHOLD

SHORTAGE_INSUFFICIENT = "insufficient stock"
SHORTAGE_NOT_FOUND = "ingredient not found"


@dataclass(frozen=True)
class Ingredient:
    id: str
    name: str
    unit: str
    current_stock: float
    min_threshold: float = DEFAULT_MIN_THRESHOLD
    average_usage: float = 0.0
    max_stock: float = DEFAULT_MAX_STOCK
    last_updated: Optional[datetime] = None

    @property
    def is_low(self) -> bool:
        return self.current_stock < self.min_threshold

    @property
    def stock_status(self) -> str:
        # critical below threshold, warning below average usage
        if self.is_low:
            return "critical"
        if self.current_stock < self.average_usage:
            return "warning"
        return "good"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "unit": self.unit,
            "currentStock": self.current_stock,
            "minThreshold": self.min_threshold,
            "averageUsage": self.average_usage,
            "maxStock": self.max_stock,
            "lastUpdated": self.last_updated,
            "status": self.stock_status,
        }


@dataclass(frozen=True)
class RecipeEntry:
    ingredient_id: str
    ingredient_name: str
    quantity: float  # per one unit of the menu item
    unit: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ingredientId": self.ingredient_id,
            "ingredientName": self.ingredient_name,
            "quantity": self.quantity,
            "unit": self.unit,
        }


@dataclass(frozen=True)
class MenuItem:
    id: str
    name: str
    ingredients: List[RecipeEntry]
    restaurant: Optional[str] = None
    category: Optional[str] = None
    price: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "restaurant": self.restaurant,
            "category": self.category,
            "price": self.price,
            "ingredients": [e.to_dict() for e in self.ingredients],
        }


@dataclass(frozen=True)
class CartLine:
    name: Optional[str]
    qty: int
    price: float = 0.0
    menu_item_id: Optional[str] = None

    def __post_init__(self) -> None:
        if not (self.name or self.menu_item_id):
            raise ValueError("Cart line needs a menu item id or a name")
        if self.qty < 1:
            raise ValueError(f"Cart line {self.label!r} must have qty >= 1, got {self.qty}")

    @property
    def label(self) -> str:
        return self.name or str(self.menu_item_id)

    def to_history(self) -> Dict[str, Any]:
        return {"name": self.label, "quantity": self.qty, "price": self.price}


@dataclass
class Requirement:
    """Summed need of one ingredient across a whole cart. Rebuilt per call."""
    ingredient_id: str
    ingredient_name: str
    total_quantity: float
    unit: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ingredientId": self.ingredient_id,
            "ingredientName": self.ingredient_name,
            "totalQuantity": self.total_quantity,
            "unit": self.unit,
        }


@dataclass(frozen=True)
class Shortage:
    ingredient_id: str
    name: str
    required: float
    available: Optional[float]
    unit: str
    reason: str = SHORTAGE_INSUFFICIENT

    @property
    def shortfall(self) -> Optional[float]:
        if self.available is None:
            return None
        return self.required - self.available

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ingredientId": self.ingredient_id,
            "name": self.name,
            "required": self.required,
            "available": self.available,
            "shortfall": self.shortfall,
            "unit": self.unit,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class AvailabilityReport:
    shortages: List[Shortage]
    warnings: List[str] = field(default_factory=list)

    @property
    def can_fulfill(self) -> bool:
        return not self.shortages

    def to_dict(self) -> Dict[str, Any]:
        return {
            "canFulfill": self.can_fulfill,
            "unavailableItems": [s.to_dict() for s in self.shortages],
            "warnings": list(self.warnings),
        }


@dataclass(frozen=True)
class DeductedItem:
    ingredient_id: str
    name: str
    deducted: float
    unit: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ingredientId": self.ingredient_id,
            "name": self.name,
            "deducted": self.deducted,
            "unit": self.unit,
        }


@dataclass(frozen=True)
class DeductionResult:
    success: bool
    deducted_items: List[DeductedItem]
    warnings: List[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "deductedItems": [d.to_dict() for d in self.deducted_items],
            "warnings": list(self.warnings),
        }


@dataclass(frozen=True)
class StockHistoryRecord:
    type: str  # "deduction" | "adjustment"
    source: str  # "order" | "admin"
    items: List[Dict[str, Any]]
    cart_items: List[Dict[str, Any]]
    timestamp: datetime
    warnings: List[str] = field(default_factory=list)
    id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "type": self.type,
            "source": self.source,
            "items": list(self.items),
            "cartItems": list(self.cart_items),
            "timestamp": self.timestamp,
            "warnings": list(self.warnings),
        }
        if self.id is not None:
            out["id"] = self.id
        return out


@dataclass(frozen=True)
class LowStockItem:
    id: str
    name: str
    current_stock: float
    min_threshold: float
    unit: str

    @property
    def status(self) -> str:
        return "out-of-stock" if self.current_stock <= 0 else "low-stock"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "currentStock": self.current_stock,
            "minThreshold": self.min_threshold,
            "unit": self.unit,
            "status": self.status,
        }


@dataclass(frozen=True)
class StockAdjustment:
    ingredient: Ingredient
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        out = self.ingredient.to_dict()
        out["warnings"] = list(self.warnings)
        return out
