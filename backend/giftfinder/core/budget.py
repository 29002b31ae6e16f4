"""
Budget filtering with a fallback cascade.

Prefer imperfect-but-relevant items over an empty page:
  strict -> widened ±20% -> rescue query -> nearest to the bucket floor.
Each stage runs only if the previous one kept nothing.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Sequence

from giftfinder.core.aliexpress import AliExpressError
from giftfinder.core.catalog import BudgetRange
from giftfinder.schemas.recommendations import CanonicalItem

logger = logging.getLogger(__name__)

WIDEN_PCT = 0.2
FLOOR_CUTOFF_RATIO = 0.6
NEAREST_LIMIT = 12

RescueFn = Callable[[], Awaitable[List[CanonicalItem]]]


def _price(item: CanonicalItem) -> Optional[float]:
    v = item.price.value
    return v if math.isfinite(v) else None


def filter_by_budget(items: Sequence[CanonicalItem], budget: BudgetRange) -> List[CanonicalItem]:
    out = []
    for it in items:
        v = _price(it)
        if v is not None and budget.contains(v):
            out.append(it)
    return out


def widen_budget(budget: BudgetRange, pct: float = WIDEN_PCT) -> BudgetRange:
    return budget.widen(pct)


def nearest_to_floor(
    items: Sequence[CanonicalItem],
    floor: float,
    cutoff_ratio: float = FLOOR_CUTOFF_RATIO,
    limit: int = NEAREST_LIMIT,
) -> List[CanonicalItem]:
    """
    Items closest to the bucket's lower bound, skipping the really cheap
    ones (below cutoff_ratio * floor). Ties keep upstream order.
    """
    cutoff = max(0.0, floor * cutoff_ratio)
    priced = [(it, _price(it)) for it in items]
    eligible = [(it, v) for it, v in priced if v is not None and v >= cutoff]
    eligible.sort(key=lambda pair: abs(pair[1] - floor))
    return [it for it, _ in eligible[:limit]]


@dataclass
class BudgetSelection:
    items: List[CanonicalItem] = field(default_factory=list)
    stage: str = "empty"    # strict | widened | rescue | nearest | empty
    rescue_used: bool = False
    errors: List[str] = field(default_factory=list)


async def select_for_budget(
    fetched: Sequence[CanonicalItem],
    budget: BudgetRange,
    rescue: Optional[RescueFn] = None,
) -> BudgetSelection:
    kept = filter_by_budget(fetched, budget)
    if kept:
        return BudgetSelection(items=kept, stage="strict")

    if fetched:
        kept = filter_by_budget(fetched, widen_budget(budget))
        if kept:
            return BudgetSelection(items=kept, stage="widened")

    errors: List[str] = []
    if rescue is not None:
        try:
            rescued = await rescue()
        except AliExpressError as e:
            logger.warning("rescue query failed", extra={"error": e.message})
            errors.append(f"rescue: {e.message}")
            rescued = []
        kept = filter_by_budget(rescued, budget)
        if kept:
            return BudgetSelection(items=kept, stage="rescue", rescue_used=True, errors=errors)

    if fetched:
        kept = nearest_to_floor(fetched, budget.min)
        if kept:
            return BudgetSelection(items=kept, stage="nearest", errors=errors)

    return BudgetSelection(stage="empty", errors=errors)
