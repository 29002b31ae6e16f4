"""
AliExpress affiliate (TOP protocol) client.

Call flow: merge protocol fields with business params, sign with the app
secret, POST a form body to the gateway, check the error envelope, hand the
body to the extractor.
"""

import hashlib
import json
import logging
import re
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import httpx

from giftfinder.core.config import Settings, settings
from giftfinder.core.extract import DEFAULT_METHOD, extract_products

logger = logging.getLogger(__name__)

GATEWAY = "https://api-sg.aliexpress.com/sync"
PRODUCT_QUERY_METHOD = DEFAULT_METHOD

# TOP timestamps are always China Standard Time
CST = timezone(timedelta(hours=8))

# resp_result codes that are not failures (405 = no results)
OK_RESP_CODES = (None, 200, "200", 405, "405")


class AliExpressError(Exception):
    """Base for everything the client raises."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(AliExpressError):
    """A required credential is missing."""


class TransportError(AliExpressError):
    """Non-2xx status, network failure or an unreadable body."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class UpstreamError(AliExpressError):
    """The gateway answered with an explicit error envelope."""


def top_timestamp(now: Optional[datetime] = None) -> str:
    """
    "YYYY-MM-DD HH:MM:SS" in UTC+8 regardless of server timezone.
    Naive datetimes are taken as UTC.
    """
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(CST).strftime("%Y-%m-%d %H:%M:%S")


def sign_params(params: Dict[str, str], secret: str) -> str:
    """
    TOP md5 signature: keys in byte order, key+value glued together,
    secret on both ends, md5, hex upper.
    """
    keys = sorted(params, key=lambda k: k.encode("utf-8"))
    concatenated = "".join(f"{k}{params[k]}" for k in keys)
    digest = hashlib.md5(f"{secret}{concatenated}{secret}".encode("utf-8"))
    return digest.hexdigest().upper()


def _fmt_price(value: Optional[float]) -> Optional[str]:
    if value is None:
        return None
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.2f}"


@dataclass
class ProductQuery:
    """Business parameters of aliexpress.affiliate.product.query."""

    keywords: str
    target_language: str = "EN"
    page_no: int = 1
    page_size: int = 20
    sort: str = "LAST_VOLUME_DESC"
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    ship_to_country: Optional[str] = None
    target_currency: Optional[str] = None

    def to_params(self) -> Dict[str, str]:
        raw = {
            "keywords": self.keywords,
            "target_language": self.target_language,
            "target_currency": self.target_currency,
            "page_no": str(self.page_no),
            "page_size": str(self.page_size),
            "sort": self.sort,
            "min_price": _fmt_price(self.min_price),
            "max_price": _fmt_price(self.max_price),
            "ship_to_country": self.ship_to_country,
        }
        # Undefined fields are left out, never sent as null/""
        return {k: v for k, v in raw.items() if v not in (None, "")}


class AliExpressClient:
    def __init__(
        self,
        app_key: str,
        app_secret: str,
        tracking_id: str,
        *,
        gateway_url: str = GATEWAY,
        timeout: float = 15.0,
        target_currency: Optional[str] = "USD",
    ):
        self.app_key = (app_key or "").strip()
        self.app_secret = (app_secret or "").strip()
        self.tracking_id = (tracking_id or "").strip()
        self.gateway_url = gateway_url
        self.timeout = timeout
        self.target_currency = target_currency

    @classmethod
    def from_settings(cls, s: Optional[Settings] = None) -> "AliExpressClient":
        s = s or settings
        return cls(
            s.AE_APP_KEY,
            s.AE_APP_SECRET,
            s.AE_TRACKING_ID,
            gateway_url=s.AE_GATEWAY_URL,
            timeout=s.AE_TIMEOUT_SECONDS,
            target_currency=s.AE_TARGET_CURRENCY,
        )

    @property
    def configured(self) -> bool:
        return bool(self.app_key and self.app_secret and self.tracking_id)

    def ensure_configured(self) -> None:
        if not self.configured:
            raise ConfigurationError("AliExpress credentials are not set")

    def _redact(self, s: str) -> str:
        """
        Strip app key, tracking id and signatures from text that may end up
        in logs or debug payloads.
        """
        if not s:
            return s
        for secret in (self.app_secret, self.app_key, self.tracking_id):
            if secret:
                s = s.replace(secret, "REDACTED")
        return re.sub(r"(sign=)([^&\s\"]+)", r"\1REDACTED", s)

    def build_params(
        self,
        method: str,
        biz_params: Dict[str, str],
        now: Optional[datetime] = None,
    ) -> Dict[str, str]:
        params: Dict[str, str] = {
            "method": method,
            "app_key": self.app_key,
            "sign_method": "md5",
            "format": "json",
            "v": "1.0",
            "timestamp": top_timestamp(now),
            "tracking_id": self.tracking_id,
        }
        params.update({k: str(v) for k, v in biz_params.items() if v not in (None, "")})
        params["sign"] = sign_params(params, self.app_secret)
        return params

    def _check_envelope(self, data: Any) -> None:
        if not isinstance(data, dict):
            return

        er = data.get("error_response")
        if er:
            if isinstance(er, dict):
                msg = er.get("sub_msg") or er.get("msg") or json.dumps(er, ensure_ascii=False)
            else:
                msg = str(er)
            raise UpstreamError(self._redact(f"AliExpress error: {msg}"))

        # Newer accounts: {"<method>_response": {"resp_result": {"resp_code": 402, ...}}}
        # 405 is "No results": a valid empty answer, the extractor yields []
        for v in data.values():
            rr = v.get("resp_result") if isinstance(v, dict) else None
            if isinstance(rr, dict) and rr.get("resp_code") not in OK_RESP_CODES:
                msg = rr.get("resp_msg") or json.dumps(rr, ensure_ascii=False)
                raise UpstreamError(self._redact(f"AliExpress error {rr.get('resp_code')}: {msg}"))

    async def call(self, method: str, biz_params: Dict[str, str]) -> Dict[str, Any]:
        """
        Signed POST to the gateway. Returns the parsed JSON body once the
        error envelope has been checked.
        """
        self.ensure_configured()
        params = self.build_params(method, biz_params)

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                r = await client.post(
                    self.gateway_url,
                    data=params,
                    headers={"Content-Type": "application/x-www-form-urlencoded;charset=UTF-8"},
                )
        except httpx.HTTPError as e:
            raise TransportError(self._redact(f"AliExpress request failed: {e!r}"))

        if r.status_code < 200 or r.status_code >= 300:
            raise TransportError(
                self._redact(f"AliExpress HTTP {r.status_code}: {r.text[:2000]}"),
                status_code=r.status_code,
            )

        try:
            data = r.json()
        except ValueError:
            raise TransportError(
                self._redact(f"AliExpress returned non-JSON body: {r.text[:500]}"),
                status_code=r.status_code,
            )

        self._check_envelope(data)
        return data

    async def query_products(self, query: ProductQuery) -> List[dict]:
        if query.target_currency is None and self.target_currency:
            query = replace(query, target_currency=self.target_currency)
        biz = query.to_params()
        logger.debug(
            "aliexpress product query",
            extra={"page_no": query.page_no, "page_size": query.page_size, "sort": query.sort},
        )
        try:
            data = await self.call(PRODUCT_QUERY_METHOD, biz)
        except (TransportError, UpstreamError) as e:
            logger.warning("aliexpress call failed", extra={"error": e.message})
            raise
        return extract_products(data, PRODUCT_QUERY_METHOD)
