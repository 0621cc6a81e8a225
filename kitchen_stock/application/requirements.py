# kitchen_stock/application/requirements.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from kitchen_stock.core.config import UNMAPPED_ITEM_POLICIES
from kitchen_stock.core.errors import RecipeNotFoundError, no_ingredients_warning, recipe_not_found_warning
from kitchen_stock.domain.entities import CartLine, MenuItem, Requirement
from kitchen_stock.domain.repositories import MenuItemRepo

log = logging.getLogger("app.requirements")


class RecipeResolver:
    """
    Cart line -> menu item (and so its recipe).
    Stable id first; the name query is only a fallback for carts built before
    menu items carried ids.
    """

    def __init__(self, menu_repo: MenuItemRepo) -> None:
        self.menu_repo = menu_repo

    def resolve(self, line: CartLine) -> Optional[MenuItem]:
        if line.menu_item_id:
            item = self.menu_repo.by_id(line.menu_item_id)
            if item:
                return item
        if not line.name:
            return None
        item = self.menu_repo.find_by_name(line.name)
        if item:
            log.warning(
                "Resolved menu item %r by name (menu_item_id=%r); cart lines should carry a stable id",
                line.name, line.menu_item_id,
            )
        return item


@dataclass(frozen=True)
class RequirementAggregator:
    resolver: RecipeResolver
    unmapped_policy: str = "warn"

    def __post_init__(self) -> None:
        if self.unmapped_policy not in UNMAPPED_ITEM_POLICIES:
            raise ValueError(f"unmapped_policy must be one of {UNMAPPED_ITEM_POLICIES}")

    def aggregate(self, cart: Sequence[CartLine]) -> Tuple[Dict[str, Requirement], List[str]]:
        requirements: Dict[str, Requirement] = {}
        warnings: List[str] = []

        for line in cart:
            log.info("Processing cart line: %s (qty: %s)", line.label, line.qty)
            item = self.resolver.resolve(line)
            if item is None:
                self._unmapped(line.label, recipe_not_found_warning(line.label), warnings)
                continue
            if not item.ingredients:
                label = line.name or item.name or line.label
                self._unmapped(label, no_ingredients_warning(label), warnings)
                continue

            for entry in item.ingredients:
                need = entry.quantity * line.qty
                cur = requirements.get(entry.ingredient_id)
                if cur is None:
                    requirements[entry.ingredient_id] = Requirement(
                        ingredient_id=entry.ingredient_id,
                        ingredient_name=entry.ingredient_name,
                        total_quantity=need,
                        unit=entry.unit,
                    )
                else:
                    cur.total_quantity += need

        log.debug("Aggregated requirements: %s", [r.to_dict() for r in requirements.values()])
        return requirements, warnings

    def _unmapped(self, label: str, message: str, warnings: List[str]) -> None:
        if self.unmapped_policy == "fail":
            raise RecipeNotFoundError(label, message)
        if self.unmapped_policy == "warn":
            log.warning(message)
            warnings.append(message)
        else:
            log.debug("Ignoring unmapped cart line: %s", label)
