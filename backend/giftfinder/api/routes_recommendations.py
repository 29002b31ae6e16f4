import logging
from dataclasses import replace
from typing import Any, List, Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from giftfinder.core.aliexpress import AliExpressClient, AliExpressError
from giftfinder.core.budget import filter_by_budget, select_for_budget
from giftfinder.core.catalog import DEFAULT_CATALOG
from giftfinder.core.config import settings
from giftfinder.core.planner import QueryContext, QueryPlanner
from giftfinder.schemas.recommendations import (
    CanonicalItem,
    DebugInfo,
    RecommendationRequest,
    RecommendationResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["recommendations"])

PRIMARY_COUNT = 6
DEFAULT_COUNTRY = "BR"
DEFAULT_LANGUAGE = "pt-BR"
NO_RESULTS_NOTE = "no products returned by upstream"


def get_planner() -> QueryPlanner:
    return QueryPlanner(AliExpressClient.from_settings(settings), DEFAULT_CATALOG)


def _build_context(req: RecommendationRequest, page: int, planner: QueryPlanner) -> QueryContext:
    """
    Fill in defaults for anything missing or malformed in the quiz answers.
    """
    catalog = planner.catalog

    country = (req.country or "").strip().upper()
    if len(country) != 2 or not country.isalpha():
        country = DEFAULT_COUNTRY

    language = (req.language or "").strip() or DEFAULT_LANGUAGE

    interests: List[str] = []
    if isinstance(req.interests, list):
        interests = [i.strip() for i in req.interests if isinstance(i, str) and i.strip()]
    if not interests:
        interests = [catalog.default_interest]

    return QueryContext(
        country=country,
        language=language,
        budget_bucket=catalog.resolve_bucket(req.budget_bucket),
        interests=interests,
        page=max(1, page),
    )


def _dedupe(items: List[CanonicalItem]) -> List[CanonicalItem]:
    """
    Keep the first occurrence; an item is a duplicate if its id, affiliate
    URL or (case-insensitive) title was already seen.
    """
    seen_ids, seen_urls, seen_titles = set(), set(), set()
    out: List[CanonicalItem] = []
    for it in items:
        title = it.title.strip().lower()
        if it.id in seen_ids or it.url_aff in seen_urls or title in seen_titles:
            continue
        seen_ids.add(it.id)
        seen_urls.add(it.url_aff)
        seen_titles.add(title)
        out.append(it)
    return out


async def _fetch_pages(
    planner: QueryPlanner,
    ctx: QueryContext,
    max_pages: int,
    target_count: int,
) -> Tuple[List[CanonicalItem], List[str], List[str], int]:
    """
    Run the ladder for consecutive pages until enough budget matches are
    collected or a page comes back empty.
    Returns (fetched, ladder steps used, errors, pages fetched).
    """
    budget = planner.catalog.budget_for(ctx.budget_bucket)
    fetched: List[CanonicalItem] = []
    steps: List[str] = []
    errors: List[str] = []
    pages = 0

    for page in range(ctx.page, ctx.page + max(1, max_pages)):
        try:
            result = await planner.search(replace(ctx, page=page))
        except AliExpressError as e:
            errors.append(e.message)
            break

        pages += 1
        errors.extend(result.errors)
        if not result.items:
            break

        steps.append(result.step)
        fetched = _dedupe(fetched + result.items)
        if len(filter_by_budget(fetched, budget)) >= target_count:
            break

    return fetched, steps, errors, pages


def _join_errors(errors: List[str]) -> Optional[str]:
    uniq: List[str] = []
    for e in errors:
        if e and e not in uniq:
            uniq.append(e)
    return " | ".join(uniq) if uniq else None


async def recommend(
    ctx: QueryContext,
    planner: QueryPlanner,
    *,
    debug: bool = False,
    max_pages: int = 1,
    target_count: int = 12,
) -> RecommendationResponse:
    budget = planner.catalog.budget_for(ctx.budget_bucket)

    # 1) Ladder over one or more pages
    fetched, steps, errors, pages = await _fetch_pages(planner, ctx, max_pages, target_count)

    # 2) Budget filter, rescue, nearest-to-floor
    async def _rescue() -> List[CanonicalItem]:
        r = await planner.rescue(ctx)
        errors.extend(r.errors)
        return r.items

    # Without credentials the rescue query would fail the same way
    rescue = _rescue if planner.client.configured else None
    selection = await select_for_budget(fetched, budget, rescue=rescue)
    errors.extend(selection.errors)
    kept = _dedupe(selection.items)

    # 3) Up to 6 cards, the rest is reported as alternatives
    items = kept[:PRIMARY_COUNT]
    alt_count = max(0, len(kept) - PRIMARY_COUNT)

    logger.info(
        "recommendations served",
        extra={
            "budget_bucket": ctx.budget_bucket,
            "page": ctx.page,
            "fetched": len(fetched),
            "kept": len(kept),
            "stage": selection.stage,
            "rescue_used": selection.rescue_used,
        },
    )

    if not debug:
        return RecommendationResponse(items=items, alt_count=alt_count)

    ae_error = _join_errors(errors)
    if ae_error is None and not fetched and not kept:
        ae_error = NO_RESULTS_NOTE

    info = DebugInfo(
        envOk=planner.client.configured,
        page=ctx.page,
        pages=pages,
        budget_bucket=ctx.budget_bucket,
        keywords=planner.keywords(ctx),
        ladderStep=steps[0] if steps else None,
        stage=selection.stage,
        fetched=len(fetched),
        kept=len(kept),
        rescueUsed=selection.rescue_used,
        fetchedPrices=[x.price.value for x in fetched[:10]],
        keptPrices=[x.price.value for x in kept[:10]],
        aeError=ae_error,
    )
    return RecommendationResponse(items=items, alt_count=alt_count, debug=info)


@router.options("/recommendations")
def recommendations_preflight():
    return Response(status_code=200)


@router.post(
    "/recommendations",
    response_model=RecommendationResponse,
    response_model_exclude_unset=True,
)
async def recommendations(
    request: Request,
    page: int = 1,
    debug: int = 0,
    planner: QueryPlanner = Depends(get_planner),
):
    """
    Gift cards for the quiz answers: up to 6 items plus alt_count.
    Upstream/config failures degrade to fewer (or zero) items, never an error.
    """
    try:
        raw: Any = await request.json() if await request.body() else {}
        req = RecommendationRequest.model_validate(raw)
        ctx = _build_context(req, page, planner)

        return await recommend(
            ctx,
            planner,
            debug=debug == 1,
            max_pages=settings.RECOMMENDATIONS_MAX_PAGES,
            target_count=settings.RECOMMENDATIONS_TARGET_COUNT,
        )

    except Exception:
        logger.exception("recommendations error")
        raise HTTPException(status_code=500, detail="server error")
