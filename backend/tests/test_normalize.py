"""Tests for raw product -> CanonicalItem normalization."""
import math

import pytest

from giftfinder.core.normalize import (
    first_present,
    format_price,
    normalize_product,
    normalize_products,
    parse_price,
)

from conftest import raw_product


def test_full_record_maps_to_canonical_item():
    item = normalize_product(raw_product(pid=1005001, price="58.99"))
    assert item is not None
    assert item.id == "1005001"
    assert item.title == "Gadget 1005001"
    assert item.image == "https://ae01.alicdn.com/kf/1005001.jpg"
    assert item.url_aff == "https://s.click.aliexpress.com/e/1005001"
    assert item.price.value == 58.99
    assert item.price.currency == "USD"
    assert item.price.display == "$58.99"
    assert item.merchant == "AliExpress"
    assert item.source == "aliexpress"
    assert item.budget_hint == "$50-99"
    assert "pt-BR" in item.why


def test_price_noise_is_stripped_and_truncated_to_cents():
    item = normalize_product(raw_product(price="US $58.999"))
    assert item.price.value == 58.99


@pytest.mark.parametrize(
    "raw, expected",
    [
        (12, 12.0),
        (19.999, 19.99),
        ("1,299.00", 1299.0),
        ("R$ 45.5", 45.5),
        ("0", 0.0),
    ],
)
def test_parse_price(raw, expected):
    assert parse_price(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "abc", "1.2.3", True, float("nan"), float("inf"), -5])
def test_parse_price_rejects_garbage(raw):
    assert parse_price(raw) is None


@pytest.mark.parametrize(
    "missing",
    ["product_title", "product_main_image_url", "promotion_link", "target_sale_price"],
)
def test_record_missing_required_field_is_dropped(missing):
    rec = raw_product()
    del rec[missing]
    assert normalize_product(rec) is None


def test_blank_strings_count_as_missing():
    assert normalize_product(raw_product(product_title="   ")) is None
    assert normalize_product(raw_product(target_sale_price="n/a")) is None


def test_alias_fallbacks():
    rec = {
        "item_id": "77",
        "title": "Scarf",
        "product_small_image_urls": {"string": ["https://img/1.jpg", "https://img/2.jpg"]},
        "app_sale_price": "9.5",
        "product_detail_url": "https://aliexpress.com/item/77.html",
    }
    item = normalize_product(rec)
    assert item.id == "77"
    assert item.title == "Scarf"
    assert item.image == "https://img/1.jpg"
    assert item.price.value == 9.5
    assert item.url_aff == "https://aliexpress.com/item/77.html"


def test_first_present_respects_priority_and_skips_empty():
    raw = {"product_title": "", "title": "Second", "item_title": "Third"}
    assert first_present(raw, ("product_title", "title", "item_title")) == "Second"
    assert first_present({"imgs": []}, ("imgs",)) is None


def test_missing_id_gets_random_value():
    rec = raw_product()
    del rec["product_id"]
    a = normalize_product(rec)
    b = normalize_product(rec)
    assert a.id and b.id and a.id != b.id


def test_non_default_currency_display():
    item = normalize_product(raw_product(price="120.5", target_sale_price_currency="brl"))
    assert item.price.currency == "BRL"
    assert item.price.display == "120.50 BRL"
    assert format_price(7, "USD") == "$7.00"


def test_normalize_products_drops_invalid_and_non_dicts():
    raws = [raw_product(pid=1), {"product_id": 2}, "junk", None, raw_product(pid=3)]
    items = normalize_products(raws)
    assert [i.id for i in items] == ["1", "3"]
    assert all(math.isfinite(i.price.value) for i in items)


@pytest.mark.parametrize("raw", ["9" * 30, 10 ** 400, "1" + "0" * 400, 1e308 * 10])
def test_parse_price_out_of_range_values_are_rejected(raw):
    assert parse_price(raw) is None


def test_record_with_absurd_price_is_dropped_not_fatal():
    items = normalize_products([raw_product(pid=1, price=10 ** 400), raw_product(pid=2, price="60")])
    assert [i.id for i in items] == ["2"]
