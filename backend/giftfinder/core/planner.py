"""
Fallback ladder over aliexpress.affiliate.product.query.

Each step relaxes the previous one (shipping filter, language, price window)
and runs only if everything before it came back empty. Steps are awaited one
after another: whether the next one is needed depends on the last result.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from giftfinder.core.aliexpress import (
    AliExpressClient,
    AliExpressError,
    ConfigurationError,
    ProductQuery,
)
from giftfinder.core.catalog import DEFAULT_CATALOG, Catalog
from giftfinder.core.normalize import normalize_products
from giftfinder.schemas.recommendations import CanonicalItem

logger = logging.getLogger(__name__)

SORT_POPULAR = "LAST_VOLUME_DESC"
SORT_PRICE_ASC = "SALE_PRICE_ASC"

DEFAULT_LANGUAGE = "EN"
LADDER_WIDEN_PCT = 0.25


@dataclass
class QueryContext:
    country: str
    language: str
    budget_bucket: str
    interests: List[str]
    page: int = 1


@dataclass
class LadderStep:
    name: str
    query: ProductQuery


@dataclass
class PlanResult:
    items: List[CanonicalItem] = field(default_factory=list)
    step: Optional[str] = None          # step that produced the items
    attempts: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


def target_language(language: Optional[str]) -> str:
    lang = (language or "").strip().lower()
    if lang.startswith("pt"):
        return "PT"
    if lang.startswith("ru"):
        return "RU"
    if lang.startswith("es"):
        return "ES"
    return DEFAULT_LANGUAGE


class QueryPlanner:
    def __init__(
        self,
        client: AliExpressClient,
        catalog: Catalog = DEFAULT_CATALOG,
        *,
        default_language: str = DEFAULT_LANGUAGE,
        widen_pct: float = LADDER_WIDEN_PCT,
    ):
        self.client = client
        self.catalog = catalog
        self.default_language = default_language
        self.widen_pct = widen_pct

    def keywords(self, ctx: QueryContext) -> str:
        return self.catalog.keywords_for(ctx.interests)

    def ladder(self, ctx: QueryContext) -> List[LadderStep]:
        kw = self.keywords(ctx)
        budget = self.catalog.budget_for(ctx.budget_bucket)
        wide = budget.widen(self.widen_pct)
        lang = target_language(ctx.language)

        return [
            LadderStep("strict", ProductQuery(
                keywords=kw,
                target_language=lang,
                page_no=ctx.page,
                page_size=20,
                sort=SORT_POPULAR,
                min_price=budget.min,
                max_price=budget.max,
                ship_to_country=ctx.country or None,
            )),
            LadderStep("no_shipping", ProductQuery(
                keywords=kw,
                target_language=lang,
                page_no=ctx.page,
                page_size=40,
                sort=SORT_POPULAR,
                min_price=budget.min,
                max_price=budget.max,
            )),
            LadderStep("default_language", ProductQuery(
                keywords=kw,
                target_language=self.default_language,
                page_no=ctx.page,
                page_size=40,
                sort=SORT_POPULAR,
                min_price=budget.min,
                max_price=budget.max,
            )),
            LadderStep("widened_price", ProductQuery(
                keywords=kw,
                target_language=self.default_language,
                page_no=ctx.page,
                page_size=50,
                sort=SORT_POPULAR,
                min_price=wide.min,
                max_price=wide.max,
            )),
        ]

    def rescue_step(self, ctx: QueryContext) -> LadderStep:
        budget = self.catalog.budget_for(ctx.budget_bucket)
        return LadderStep("rescue", ProductQuery(
            keywords=self.keywords(ctx),
            target_language=self.default_language,
            page_no=ctx.page,
            page_size=50,
            sort=SORT_PRICE_ASC,
            min_price=budget.min,
        ))

    async def _run(self, step: LadderStep) -> List[CanonicalItem]:
        raws = await self.client.query_products(step.query)
        items = normalize_products(raws, self.catalog)
        logger.info(
            "ladder step finished",
            extra={"step": step.name, "page": step.query.page_no, "raw": len(raws), "items": len(items)},
        )
        return items

    async def _run_steps(self, steps: List[LadderStep]) -> PlanResult:
        result = PlanResult()
        last_error: Optional[AliExpressError] = None
        completed = 0

        for step in steps:
            result.attempts.append(step.name)
            try:
                items = await self._run(step)
            except ConfigurationError:
                raise
            except AliExpressError as e:
                # A failed step counts as an empty one; move down the ladder
                logger.warning("ladder step failed", extra={"step": step.name, "error": e.message})
                result.errors.append(f"{step.name}: {e.message}")
                last_error = e
                continue

            completed += 1
            if items:
                result.items = items
                result.step = step.name
                return result

        if completed == 0 and last_error is not None:
            raise last_error
        return result

    async def search(self, ctx: QueryContext) -> PlanResult:
        """
        Walk the ladder until a step yields at least one item.
        Empty result is not an error; every step failing is.
        """
        return await self._run_steps(self.ladder(ctx))

    async def rescue(self, ctx: QueryContext) -> PlanResult:
        """Lower bound only, cheapest first, default language."""
        return await self._run_steps([self.rescue_step(ctx)])
