# kitchen_stock/core/config.py
from __future__ import annotations
import os
import logging

# Storage backend: "mongo" for production, "memory" for local runs
STORAGE_BACKEND: str = os.getenv("STORAGE_BACKEND", "mongo").strip().lower()

# Mongo settings
MONGO_URI: str = os.getenv("MONGO_URI", "mongodb://localhost:27017/?replicaSet=rs0")
MONGO_DB: str = os.getenv("MONGO_DB", "kitchen")
MONGO_INGREDIENTS_COL: str = os.getenv("MONGO_INGREDIENTS_COL", "ingredients")
MONGO_MENU_ITEMS_COL: str = os.getenv("MONGO_MENU_ITEMS_COL", "menuItems")
MONGO_STOCK_HISTORY_COL: str = os.getenv("MONGO_STOCK_HISTORY_COL", "stockHistory")

# Stock policy
UNMAPPED_ITEM_POLICIES = ("fail", "warn", "ignore")
UNMAPPED_ITEM_POLICY: str = os.getenv("UNMAPPED_ITEM_POLICY", "warn").strip().lower()
GUARD_NEGATIVE_STOCK: bool = os.getenv("GUARD_NEGATIVE_STOCK", "true").strip().lower() in ("1", "true", "yes", "on")
DEFAULT_MIN_THRESHOLD: float = float(os.getenv("DEFAULT_MIN_THRESHOLD", "20"))
DEFAULT_MAX_STOCK: float = float(os.getenv("DEFAULT_MAX_STOCK", "200"))
HISTORY_DEFAULT_LIMIT: int = int(os.getenv("HISTORY_DEFAULT_LIMIT", "50"))

if UNMAPPED_ITEM_POLICY not in UNMAPPED_ITEM_POLICIES:
    raise ValueError(
        f"UNMAPPED_ITEM_POLICY must be one of {UNMAPPED_ITEM_POLICIES}, got {UNMAPPED_ITEM_POLICY!r}"
    )
if STORAGE_BACKEND not in ("mongo", "memory"):
    raise ValueError(f"STORAGE_BACKEND must be 'mongo' or 'memory', got {STORAGE_BACKEND!r}")

# Global logging (module-level loggers inherit this)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
LOGGER = logging.getLogger("kitchen_stock")
