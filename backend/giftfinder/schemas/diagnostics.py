from pydantic import BaseModel
from typing import Any, Dict, List, Optional


class ShapeMeta(BaseModel):
    lang: str
    page: int
    ship: bool
    priced: bool
    keywords: str


class ShapeReport(BaseModel):
    meta: ShapeMeta
    sizes: Optional[Dict[str, Any]] = None
    foundCount: int
    sampleKeys: List[str]
    sampleTitle: Optional[str] = None
