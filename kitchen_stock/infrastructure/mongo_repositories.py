# kitchen_stock/infrastructure/mongo_repositories.py
from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple
import logging
from bson import ObjectId
from pymongo import DESCENDING
from pymongo.client_session import ClientSession
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from kitchen_stock.core.config import DEFAULT_MAX_STOCK, DEFAULT_MIN_THRESHOLD
from kitchen_stock.core.errors import (
    AuditLogWriteError,
    IngredientNotFoundError,
    InsufficientStockError,
    StorageUnavailableError,
)
from kitchen_stock.domain.entities import (
    SHORTAGE_NOT_FOUND,
    Ingredient,
    MenuItem,
    RecipeEntry,
    Requirement,
    Shortage,
    StockHistoryRecord,
)
from kitchen_stock.domain.repositories import IngredientRepo, MenuItemRepo, StockHistoryRepo

log = logging.getLogger("infra.mongo_repo")

CANONICAL_STOCK_FIELD = "currentStock"
LEGACY_STOCK_FIELD = "stock"


def _as_str_id(v: Any) -> str:
    if isinstance(v, ObjectId):
        return str(v)
    return str(v)


def _id_filter(key: str) -> Dict[str, Any]:
    # ids created by insert_one are ObjectIds, imported/seeded ones are plain strings
    if ObjectId.is_valid(key):
        return {"_id": {"$in": [key, ObjectId(key)]}}
    return {"_id": key}


def _num(v: Any, default: float = 0.0) -> float:
    try:
        return float(v) if v is not None else default
    except (TypeError, ValueError):
        return default


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ----------------------------
# Document parsing (storage boundary)
# ----------------------------
def stock_field_of(doc: Dict[str, Any]) -> Tuple[str, float]:
    """Return (field name holding stock, value). currentStock wins over legacy stock."""
    if doc.get(CANONICAL_STOCK_FIELD) is not None:
        return CANONICAL_STOCK_FIELD, _num(doc.get(CANONICAL_STOCK_FIELD))
    if doc.get(LEGACY_STOCK_FIELD) is not None:
        return LEGACY_STOCK_FIELD, _num(doc.get(LEGACY_STOCK_FIELD))
    return CANONICAL_STOCK_FIELD, 0.0


def parse_ingredient(doc: Dict[str, Any]) -> Ingredient:
    _, stock = stock_field_of(doc)
    return Ingredient(
        id=_as_str_id(doc.get("_id") or doc.get("id")),
        name=str(doc.get("name") or "").strip(),
        unit=str(doc.get("unit") or "pieces"),
        current_stock=stock,
        min_threshold=_num(doc.get("minThreshold"), DEFAULT_MIN_THRESHOLD),
        average_usage=_num(doc.get("averageUsage")),
        max_stock=_num(doc.get("maxStock"), DEFAULT_MAX_STOCK),
        last_updated=doc.get("lastUpdated"),
    )


def parse_recipe_entries(raw: Any, item_name: str = "") -> List[RecipeEntry]:
    entries: List[RecipeEntry] = []
    for i in (raw or []):
        ingredient_id = str(i.get("ingredientId") or "").strip()
        quantity = _num(i.get("quantity"))
        if not ingredient_id or quantity <= 0:
            log.warning("Dropping invalid recipe entry on %r: %s", item_name, i)
            continue
        entries.append(
            RecipeEntry(
                ingredient_id=ingredient_id,
                ingredient_name=str(i.get("ingredientName") or ingredient_id).strip(),
                quantity=quantity,
                unit=str(i.get("unit") or ""),
            )
        )
    return entries


def parse_menu_item(doc: Dict[str, Any]) -> MenuItem:
    name = str(doc.get("name") or "").strip()
    return MenuItem(
        id=_as_str_id(doc.get("_id") or doc.get("id")),
        name=name,
        ingredients=parse_recipe_entries(doc.get("ingredients"), name),
        restaurant=doc.get("restaurant"),
        category=doc.get("category"),
        price=max(0.0, _num(doc.get("price"))),
    )


def parse_history(doc: Dict[str, Any]) -> StockHistoryRecord:
    return StockHistoryRecord(
        id=_as_str_id(doc.get("_id")),
        type=str(doc.get("type") or ""),
        source=str(doc.get("source") or ""),
        items=list(doc.get("items") or []),
        cart_items=list(doc.get("cartItems") or []),
        timestamp=doc.get("timestamp"),
        warnings=list(doc.get("warnings") or []),
    )


# ----------------------------
# Repositories
# ----------------------------
class MongoIngredientRepository(IngredientRepo):
    """
    Ingredient store backed by MongoDB.
    Multi-ingredient decrements run inside one transaction, so the server
    must be a replica set (a single-node one is fine).
    """

    def __init__(self, col: Collection) -> None:
        self._col = col
        self._client = col.database.client

    def by_id(self, ingredient_id: str) -> Optional[Ingredient]:
        try:
            doc = self._col.find_one(_id_filter(str(ingredient_id)))
        except PyMongoError as e:
            raise StorageUnavailableError(f"Reading ingredient {ingredient_id} failed: {e}") from e
        return parse_ingredient(doc) if doc else None

    def all(self) -> List[Ingredient]:
        try:
            items = [parse_ingredient(doc) for doc in self._col.find({})]
        except PyMongoError as e:
            raise StorageUnavailableError(f"Listing ingredients failed: {e}") from e
        for i in items:
            if not i.name:
                log.warning("Ingredient %s has no name", i.id)
        items.sort(key=lambda i: i.name.lower())
        return items

    def add(
        self,
        name: str,
        unit: str,
        current_stock: float,
        min_threshold: float,
        average_usage: float,
        max_stock: float,
    ) -> Ingredient:
        doc = {
            "name": name,
            "unit": unit,
            "currentStock": current_stock,
            "minThreshold": min_threshold,
            "averageUsage": average_usage,
            "maxStock": max_stock,
            "lastUpdated": _now(),
        }
        try:
            res = self._col.insert_one(doc)
        except PyMongoError as e:
            raise StorageUnavailableError(f"Adding ingredient {name!r} failed: {e}") from e
        doc["_id"] = res.inserted_id
        return parse_ingredient(doc)

    def delete(self, ingredient_id: str) -> bool:
        try:
            res = self._col.delete_one(_id_filter(str(ingredient_id)))
        except PyMongoError as e:
            raise StorageUnavailableError(f"Deleting ingredient {ingredient_id} failed: {e}") from e
        return res.deleted_count > 0

    def set_stock(self, ingredient_id: str, new_stock: float) -> Ingredient:
        try:
            res = self._col.update_one(
                _id_filter(str(ingredient_id)),
                {
                    "$set": {CANONICAL_STOCK_FIELD: new_stock, "lastUpdated": _now()},
                    "$unset": {LEGACY_STOCK_FIELD: ""},
                },
            )
        except PyMongoError as e:
            raise StorageUnavailableError(f"Updating stock of {ingredient_id} failed: {e}") from e
        if res.matched_count == 0:
            raise IngredientNotFoundError(ingredient_id)
        ing = self.by_id(ingredient_id)
        if ing is None:
            raise IngredientNotFoundError(ingredient_id)
        return ing

    def apply_decrements(self, requirements: Sequence[Requirement], guard: bool = True) -> None:
        reqs = list(requirements)
        if not reqs:
            return
        try:
            with self._client.start_session() as session:
                session.with_transaction(lambda s: self._decrement_in_txn(reqs, guard, s))
        except PyMongoError as e:
            raise StorageUnavailableError(f"Stock deduction batch failed: {e}") from e

    def _decrement_in_txn(self, reqs: List[Requirement], guard: bool, session: ClientSession) -> None:
        shortages: List[Shortage] = []
        writes: List[Tuple[Dict[str, Any], Dict[str, Any]]] = []
        now = _now()

        for req in reqs:
            doc = self._col.find_one(_id_filter(req.ingredient_id), session=session)
            if doc is None:
                if not guard:
                    raise IngredientNotFoundError(req.ingredient_id)
                shortages.append(
                    Shortage(req.ingredient_id, req.ingredient_name, req.total_quantity, None, req.unit, SHORTAGE_NOT_FOUND)
                )
                continue

            field, available = stock_field_of(doc)
            if guard and available < req.total_quantity:
                shortages.append(
                    Shortage(req.ingredient_id, req.ingredient_name, req.total_quantity, available, req.unit)
                )
                continue

            if field == CANONICAL_STOCK_FIELD and not guard:
                writes.append((
                    {"_id": doc["_id"]},
                    {"$inc": {CANONICAL_STOCK_FIELD: -req.total_quantity}, "$set": {"lastUpdated": now}},
                ))
            else:
                # compare-and-set on the value read in this transaction; also moves legacy docs to currentStock
                writes.append((
                    {"_id": doc["_id"], field: doc.get(field)},
                    {
                        "$set": {CANONICAL_STOCK_FIELD: available - req.total_quantity, "lastUpdated": now},
                        "$unset": {LEGACY_STOCK_FIELD: ""},
                    },
                ))

        if shortages:
            raise InsufficientStockError(shortages)

        for flt, update in writes:
            res = self._col.update_one(flt, update, session=session)
            if res.matched_count == 0:
                raise StorageUnavailableError(f"Ingredient {flt['_id']} changed during stock deduction")


class MongoMenuItemRepository(MenuItemRepo):
    def __init__(self, col: Collection) -> None:
        self._col = col

    def by_id(self, menu_item_id: str) -> Optional[MenuItem]:
        try:
            doc = self._col.find_one(_id_filter(str(menu_item_id)))
        except PyMongoError as e:
            raise StorageUnavailableError(f"Reading menu item {menu_item_id} failed: {e}") from e
        return parse_menu_item(doc) if doc else None

    def find_by_name(self, name: str) -> Optional[MenuItem]:
        """Legacy lookup: exact match on the name field, first document wins."""
        try:
            doc = self._col.find_one({"name": name})
        except PyMongoError as e:
            raise StorageUnavailableError(f"Looking up menu item {name!r} failed: {e}") from e
        return parse_menu_item(doc) if doc else None

    def all(self) -> List[MenuItem]:
        return self._find({})

    def using_ingredient(self, ingredient_id: str) -> List[MenuItem]:
        return self._find({"ingredients.ingredientId": ingredient_id})

    def _find(self, query: Dict[str, Any]) -> List[MenuItem]:
        try:
            items = [parse_menu_item(doc) for doc in self._col.find(query)]
        except PyMongoError as e:
            raise StorageUnavailableError(f"Listing menu items failed: {e}") from e
        items.sort(key=lambda m: m.name.lower())
        return items

    def save(self, item: MenuItem) -> MenuItem:
        doc = item.to_dict()
        doc.pop("id", None)
        now = _now()
        doc["updatedAt"] = now
        try:
            self._col.update_one(
                _id_filter(item.id),
                {"$set": doc, "$setOnInsert": {"_id": item.id, "createdAt": now}},
                upsert=True,
            )
        except PyMongoError as e:
            raise StorageUnavailableError(f"Saving menu item {item.name!r} failed: {e}") from e
        return item

    def delete(self, menu_item_id: str) -> bool:
        try:
            res = self._col.delete_one(_id_filter(str(menu_item_id)))
        except PyMongoError as e:
            raise StorageUnavailableError(f"Deleting menu item {menu_item_id} failed: {e}") from e
        return res.deleted_count > 0


class MongoStockHistoryRepository(StockHistoryRepo):
    def __init__(self, col: Collection) -> None:
        self._col = col

    def append(self, record: StockHistoryRecord) -> str:
        doc = record.to_dict()
        doc.pop("id", None)
        try:
            res = self._col.insert_one(doc)
        except PyMongoError as e:
            raise AuditLogWriteError(f"Could not log stock history: {e}") from e
        return _as_str_id(res.inserted_id)

    def recent(self, limit: int = 50) -> List[StockHistoryRecord]:
        try:
            cursor = self._col.find({}).sort("timestamp", DESCENDING).limit(max(0, limit))
            return [parse_history(doc) for doc in cursor]
        except PyMongoError as e:
            raise StorageUnavailableError(f"Reading stock history failed: {e}") from e
