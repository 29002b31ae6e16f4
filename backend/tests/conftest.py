"""Shared fakes for the recommendation tests. No network anywhere."""
from typing import Any, Callable, Dict, List, Optional

import pytest

from giftfinder.core.aliexpress import ProductQuery
from giftfinder.core.normalize import format_price
from giftfinder.schemas.recommendations import CanonicalItem, Price


def raw_product(
    pid: Any = "1005001",
    price: Any = "58.99",
    title: Optional[str] = None,
    **overrides: Any,
) -> Dict[str, Any]:
    """A raw product record the way the affiliate API returns it."""
    rec = {
        "product_id": pid,
        "product_title": title or f"Gadget {pid}",
        "product_main_image_url": f"https://ae01.alicdn.com/kf/{pid}.jpg",
        "target_sale_price": price,
        "target_sale_price_currency": "USD",
        "promotion_link": f"https://s.click.aliexpress.com/e/{pid}",
    }
    rec.update(overrides)
    return rec


def make_item(value: float, pid: Optional[str] = None, title: Optional[str] = None) -> CanonicalItem:
    pid = pid or f"p-{value}"
    return CanonicalItem(
        id=pid,
        title=title or f"Item {pid}",
        image=f"https://img.example.com/{pid}.jpg",
        price=Price(value=value, currency="USD", display=format_price(value, "USD")),
        url_aff=f"https://s.click.aliexpress.com/e/{pid}",
    )


class FakeClient:
    """
    Stands in for AliExpressClient. `handler(query)` returns raw products
    or raises; every query is recorded in `calls`.
    """

    def __init__(self, handler: Callable[[ProductQuery], List[dict]], configured: bool = True):
        self.handler = handler
        self.configured = configured
        self.calls: List[ProductQuery] = []

    async def query_products(self, query: ProductQuery) -> List[dict]:
        self.calls.append(query)
        return self.handler(query)


@pytest.fixture
def empty_client() -> FakeClient:
    return FakeClient(lambda q: [])
