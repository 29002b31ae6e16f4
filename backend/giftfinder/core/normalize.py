"""
Raw AliExpress product record -> CanonicalItem.

Records missing a title, image, affiliate URL or a usable price are dropped
(None). That's routine for this API, not an error.
"""

import math
import re
import uuid
from decimal import ROUND_DOWN, Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional, Tuple

from giftfinder.core.catalog import DEFAULT_CATALOG, Catalog
from giftfinder.schemas.recommendations import CanonicalItem, Price

DEFAULT_CURRENCY = "USD"
MERCHANT = "AliExpress"
SOURCE = "aliexpress"

# Canonical field -> upstream aliases, highest priority first
FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    "id": ("product_id", "item_id"),
    "title": ("product_title", "title", "item_title"),
    "image": ("product_main_image_url", "image_url", "product_image", "product_small_image_urls"),
    "price": (
        "target_sale_price",
        "target_app_sale_price",
        "sale_price",
        "app_sale_price",
        "original_price",
        "target_original_price",
    ),
    "currency": ("target_sale_price_currency", "sale_price_currency", "currency"),
    "url": ("promotion_link", "target_url", "product_detail_url", "detail_url"),
}

_PRICE_NOISE = re.compile(r"[^\d.,]")
_TWO_PLACES = Decimal("0.01")


def _first_of_list(value: Any) -> Any:
    # product_small_image_urls comes as ["..."] or {"string": ["..."]}
    if isinstance(value, dict):
        value = value.get("string")
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    if isinstance(value, (list, tuple, dict)) and not value:
        return True
    return False


def first_present(raw: Dict[str, Any], aliases: Iterable[str]) -> Any:
    """
    Value of the first alias that is present and non-empty.
    List-valued aliases resolve to their first element.
    """
    for key in aliases:
        v = _first_of_list(raw.get(key))
        if not _is_empty(v):
            return v.strip() if isinstance(v, str) else v
    return None


def resolve(raw: Dict[str, Any], field: str) -> Any:
    return first_present(raw, FIELD_ALIASES[field])


def parse_price(value: Any) -> Optional[float]:
    """
    58.9 -> 58.9, "US $58.999" -> 58.99, "1,299.00" -> 1299.0.
    Truncated (not rounded) to 2 places. None if not a finite, non-negative number.
    """
    if value is None or isinstance(value, bool):
        return None

    try:
        if isinstance(value, (int, float)):
            num = float(value)
        else:
            cleaned = _PRICE_NOISE.sub("", str(value)).replace(",", "")
            if not cleaned:
                return None
            num = float(Decimal(cleaned))

        if not math.isfinite(num) or num < 0:
            return None
        # quantize fails past the 28-digit context precision
        return float(Decimal(str(num)).quantize(_TWO_PLACES, rounding=ROUND_DOWN))
    except (InvalidOperation, ValueError, OverflowError):
        return None


def format_price(value: float, currency: str) -> str:
    if currency == DEFAULT_CURRENCY:
        return f"${value:.2f}"
    return f"{value:.2f} {currency}"


def normalize_product(raw: Any, catalog: Catalog = DEFAULT_CATALOG) -> Optional[CanonicalItem]:
    if not isinstance(raw, dict):
        return None

    title = resolve(raw, "title")
    image = resolve(raw, "image")
    url = resolve(raw, "url")
    value = parse_price(resolve(raw, "price"))

    if not isinstance(title, str) or not isinstance(image, str) or not isinstance(url, str):
        return None
    if value is None:
        return None

    currency = resolve(raw, "currency")
    currency = str(currency).upper() if currency else DEFAULT_CURRENCY

    pid = resolve(raw, "id")
    item_id = str(pid) if pid is not None else uuid.uuid4().hex

    return CanonicalItem(
        id=item_id,
        title=title,
        image=image,
        price=Price(value=value, currency=currency, display=format_price(value, currency)),
        merchant=MERCHANT,
        source=SOURCE,
        url_aff=url,
        delivery_estimate=None,
        badges=[],
        why=dict(catalog.why_text),
        tags=[],
        budget_hint=catalog.bucket_for_price(value),
    )


def normalize_products(raws: Iterable[Any], catalog: Catalog = DEFAULT_CATALOG) -> List[CanonicalItem]:
    out: List[CanonicalItem] = []
    for raw in raws or []:
        item = normalize_product(raw, catalog)
        if item is not None:
            out.append(item)
    return out
