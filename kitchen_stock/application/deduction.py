# kitchen_stock/application/deduction.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Mapping, Sequence

from kitchen_stock.core.errors import AuditLogWriteError
from kitchen_stock.domain.entities import (
    CartLine,
    DeductedItem,
    DeductionResult,
    Requirement,
    StockHistoryRecord,
)
from kitchen_stock.domain.repositories import IngredientRepo, StockHistoryRepo

log = logging.getLogger("app.deduction")


def record_history(history_repo: StockHistoryRepo, record: StockHistoryRecord, warnings: List[str]) -> None:
    """Best-effort audit append. A failure lands in `warnings` and is never raised."""
    try:
        history_repo.append(record)
    except AuditLogWriteError as e:
        log.warning("Could not log stock history: %s", e)
        warnings.append(f"stock history not recorded: {e}")


@dataclass(frozen=True)
class AtomicDeductor:
    ingredient_repo: IngredientRepo
    history_repo: StockHistoryRepo
    guard: bool = True

    def deduct(
        self,
        requirements: Mapping[str, Requirement],
        cart: Sequence[CartLine],
        warnings: Sequence[str] = (),
    ) -> DeductionResult:
        """
        Apply every decrement as one batch, then append one history record.

        With guard=True the batch re-checks stock itself and raises
        InsufficientStockError without touching anything if any ingredient
        would go negative. With guard=False the caller must have run the
        availability check first, and two concurrent orders can still both
        pass it.
        """
        reqs = list(requirements.values())
        self.ingredient_repo.apply_decrements(reqs, guard=self.guard)
        log.info("Stock deducted for %d ingredients", len(reqs))

        deducted = [
            DeductedItem(ingredient_id=r.ingredient_id, name=r.ingredient_name, deducted=r.total_quantity, unit=r.unit)
            for r in reqs
        ]
        out_warnings = list(warnings)
        record = StockHistoryRecord(
            type="deduction",
            source="order",
            items=[d.to_dict() for d in deducted],
            cart_items=[line.to_history() for line in cart],
            timestamp=datetime.now(timezone.utc),
            warnings=list(warnings),
        )
        record_history(self.history_repo, record, out_warnings)
        return DeductionResult(success=True, deducted_items=deducted, warnings=out_warnings)
