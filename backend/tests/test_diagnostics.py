from unittest.mock import AsyncMock, patch

from fastapi.testclient import TestClient

from giftfinder.core.aliexpress import PRODUCT_QUERY_METHOD, TransportError
from giftfinder.core.config import Settings
from giftfinder.main import app

CONFIGURED = Settings(AE_APP_KEY="key", AE_APP_SECRET="secret", AE_TRACKING_ID="track")
MISSING = Settings(AE_APP_KEY="key", AE_APP_SECRET="", AE_TRACKING_ID="")

client = TestClient(app)


def test_missing_env_is_reported_without_calling_upstream():
    with patch("giftfinder.api.routes_diagnostics.settings", MISSING), \
         patch("giftfinder.core.aliexpress.AliExpressClient.call", new_callable=AsyncMock) as call:
        r = client.get("/ae-test")

    assert r.status_code == 200
    assert r.json() == {
        "error": "Missing AE env",
        "info": {"APP_KEY": True, "APP_SECRET": False, "TRACK_ID": False},
    }
    call.assert_not_awaited()


def test_shape_report():
    data = {
        "aliexpress_affiliate_product_query_response": {
            "resp_result": {
                "resp_code": 200,
                "result": {
                    "current_record_count": 2,
                    "products": {
                        "product": [
                            {"product_id": 1, "product_title": "Earbuds", "target_sale_price": "12.5"},
                            {"product_id": 2, "product_title": "Lamp", "target_sale_price": "30"},
                        ]
                    },
                },
            }
        }
    }

    with patch("giftfinder.api.routes_diagnostics.settings", CONFIGURED), \
         patch("giftfinder.core.aliexpress.AliExpressClient.call", new_callable=AsyncMock) as call:
        call.return_value = data
        r = client.get("/ae-test", params={"kw": "earbuds", "priced": 1, "ship": "br"})

    assert r.status_code == 200
    body = r.json()
    assert body["meta"] == {"lang": "en", "page": 1, "ship": True, "priced": True, "keywords": "earbuds"}
    assert body["foundCount"] == 2
    assert body["sampleKeys"] == ["product_id", "product_title", "target_sale_price"]
    assert body["sampleTitle"] == "Earbuds"
    assert "aliexpress_affiliate_product_query_response" in body["sizes"]

    method, params = call.await_args.args
    assert method == PRODUCT_QUERY_METHOD
    assert params["keywords"] == "earbuds"
    assert params["min_price"] == "11"
    assert params["max_price"] == "99"
    assert params["ship_to_country"] == "BR"


def test_post_body_supplies_keywords():
    with patch("giftfinder.api.routes_diagnostics.settings", CONFIGURED), \
         patch("giftfinder.core.aliexpress.AliExpressClient.call", new_callable=AsyncMock) as call:
        call.return_value = {}
        r = client.post("/ae-test", json={"keywords": "scarf", "lang": "pt"})

    body = r.json()
    assert body["foundCount"] == 0
    assert body["sampleKeys"] == []
    assert body["meta"]["keywords"] == "scarf"
    assert body["meta"]["priced"] is False
    params = call.await_args.args[1]
    assert "min_price" not in params
    assert "ship_to_country" not in params


def test_upstream_error_is_returned_as_message():
    with patch("giftfinder.api.routes_diagnostics.settings", CONFIGURED), \
         patch(
             "giftfinder.core.aliexpress.AliExpressClient.call",
             new_callable=AsyncMock,
             side_effect=TransportError("AliExpress HTTP 502: bad gateway", status_code=502),
         ):
        r = client.get("/ae-test")

    assert r.status_code == 200
    assert r.json() == {"error": "AliExpress HTTP 502: bad gateway"}


def test_version():
    assert client.get("/version").json()["version"]
