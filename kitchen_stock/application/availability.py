# kitchen_stock/application/availability.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Mapping

from kitchen_stock.domain.entities import SHORTAGE_NOT_FOUND, AvailabilityReport, Requirement, Shortage
from kitchen_stock.domain.repositories import IngredientRepo

log = logging.getLogger("app.availability")


@dataclass(frozen=True)
class AvailabilityChecker:
    """
    Read-only: one point read per distinct ingredient, no locks, no
    reservation. A later deduction must re-verify on its own.
    """
    ingredient_repo: IngredientRepo

    def check(self, requirements: Mapping[str, Requirement]) -> AvailabilityReport:
        shortages: List[Shortage] = []
        for ingredient_id, req in requirements.items():
            ing = self.ingredient_repo.by_id(ingredient_id)
            if ing is None:
                log.warning("Ingredient not found: %s (%s)", req.ingredient_name, ingredient_id)
                shortages.append(
                    Shortage(ingredient_id, req.ingredient_name, req.total_quantity, None, req.unit, SHORTAGE_NOT_FOUND)
                )
                continue

            log.info("%s: stock=%s, required=%s", req.ingredient_name, ing.current_stock, req.total_quantity)
            if ing.current_stock < req.total_quantity:
                shortages.append(
                    Shortage(ingredient_id, req.ingredient_name, req.total_quantity, ing.current_stock, req.unit)
                )

        if shortages:
            log.warning("Insufficient stock: %s", [s.to_dict() for s in shortages])
        return AvailabilityReport(shortages=shortages)
