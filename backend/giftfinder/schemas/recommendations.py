from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional


class Price(BaseModel):
    value: float = Field(ge=0)  # parsed numeric value, 2 decimals
    currency: str               # e.g. "USD"
    display: str                # e.g. "$58.99"


class CanonicalItem(BaseModel):
    id: str
    title: str
    image: str
    price: Price
    merchant: str = "AliExpress"
    source: str = "aliexpress"
    url_aff: str
    delivery_estimate: Optional[str] = None
    badges: List[str] = Field(default_factory=list)
    why: Dict[str, str] = Field(default_factory=dict)
    tags: List[str] = Field(default_factory=list)
    budget_hint: str = ""   # bucket label the price falls in


class RecommendationRequest(BaseModel):
    """
    Quiz answers. Everything is optional and loosely typed on purpose:
    bad values are replaced with defaults instead of rejected.
    """
    country: Optional[str] = None
    language: Optional[str] = None
    budget_bucket: Optional[str] = None
    interests: Optional[Any] = None


class DebugInfo(BaseModel):
    envOk: bool
    page: int
    pages: int
    budget_bucket: str
    keywords: str
    ladderStep: Optional[str] = None
    stage: str
    fetched: int
    kept: int
    rescueUsed: bool
    fetchedPrices: List[float]
    keptPrices: List[float]
    aeError: Optional[str] = None


class RecommendationResponse(BaseModel):
    items: List[CanonicalItem]
    alt_count: int = 0
    debug: Optional[DebugInfo] = None
