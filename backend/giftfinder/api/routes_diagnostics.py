"""
Shape introspection against the live gateway.

Calls the product query with hand-picked params and reports where the arrays
are and what the first record looks like. No secrets, no filtering, no mocks.
Tooling for manual debugging only.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Request

from giftfinder.core.aliexpress import AliExpressClient, AliExpressError, ProductQuery, PRODUCT_QUERY_METHOD
from giftfinder.core.catalog import DEFAULT_CATALOG
from giftfinder.core.config import settings
from giftfinder.core.extract import extract_products, sizes_snapshot
from giftfinder.core.normalize import resolve
from giftfinder.schemas.diagnostics import ShapeMeta, ShapeReport

logger = logging.getLogger(__name__)

router = APIRouter(tags=["diagnostics"])

# Bounds used when priced=1
PRICED_MIN = 11
PRICED_MAX = 99


async def _read_body(request: Request) -> Dict[str, Any]:
    if request.method != "POST" or not await request.body():
        return {}
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


@router.api_route("/ae-test", methods=["GET", "POST"])
async def ae_test(
    request: Request,
    kw: Optional[str] = None,
    lang: Optional[str] = None,
    page: int = 1,
    priced: int = 0,
    ship: str = "",
):
    body = await _read_body(request)
    keywords = kw or body.get("keywords") or DEFAULT_CATALOG.generic_keywords
    lang = lang or body.get("lang") or "en"
    ship = ship.strip().upper()

    client = AliExpressClient.from_settings(settings)
    if not settings.credentials_ok:
        return {
            "error": "Missing AE env",
            "info": {
                "APP_KEY": bool(client.app_key),
                "APP_SECRET": bool(client.app_secret),
                "TRACK_ID": bool(client.tracking_id),
            },
        }

    query = ProductQuery(
        keywords=keywords,
        target_language=lang,
        page_no=page,
        page_size=40,
        sort="LAST_VOLUME_DESC",
        min_price=PRICED_MIN if priced == 1 else None,
        max_price=PRICED_MAX if priced == 1 else None,
        ship_to_country=ship or None,
        target_currency=client.target_currency,
    )

    try:
        data = await client.call(PRODUCT_QUERY_METHOD, query.to_params())
    except AliExpressError as e:
        logger.warning("ae-test call failed", extra={"error": e.message})
        return {"error": e.message}

    products = extract_products(data, PRODUCT_QUERY_METHOD)
    sample = products[0] if products and isinstance(products[0], dict) else None

    return ShapeReport(
        meta=ShapeMeta(lang=lang, page=page, ship=bool(ship), priced=priced == 1, keywords=keywords),
        sizes=sizes_snapshot(data),
        foundCount=len(products),
        sampleKeys=list(sample.keys())[:20] if sample else [],
        sampleTitle=resolve(sample, "title") if sample else None,
    )
