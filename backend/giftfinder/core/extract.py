"""
Find the product list inside an AliExpress affiliate response.

The payload location moves around between API versions and accounts:
  {"aliexpress_affiliate_product_query_response": {"resp_result": {"result": {...}}}}
  {"result": {"result_list": {"products": {"product": [...]}}}}
  {"data": {"result_list": [...]}}
and `result` is sometimes a JSON string instead of an object. The known
paths below are provisional; the recursive search is the safety net.
"""

import json
import logging
from typing import Any, Callable, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

DEFAULT_METHOD = "aliexpress.affiliate.product.query"

# Keys that mark a dict as a product record
PRODUCT_ID_KEYS = ("product_id", "item_id", "productId", "id")
PRODUCT_TITLE_KEYS = ("product_title", "title", "item_title")

LIST_PATHS: Tuple[Tuple[str, ...], ...] = (
    ("result_list", "products", "product"),
    ("result_list", "products"),
    ("result_list", "product"),
    ("result_list",),
    ("products", "product"),
    ("products",),
    ("items",),
)

MAX_SEARCH_DEPTH = 6

_MISSING = object()


def _maybe_json(value: Any) -> Any:
    # Double-encoded payloads: parse once more, keep the string if it isn't JSON
    if isinstance(value, str):
        try:
            return json.loads(value)
        except ValueError:
            return value
    return value


def dig(obj: Any, path: Sequence[str]) -> Any:
    """
    Walk a key path through nested dicts.
    String values met along the way are JSON-decoded before descending.
    Returns _MISSING when the path doesn't exist or hits None.
    """
    node = obj
    for key in path:
        node = _maybe_json(node)
        if not isinstance(node, dict):
            return _MISSING
        node = node.get(key)
        if node is None:
            return _MISSING
    return node


def wrapper_paths(method: str = DEFAULT_METHOD) -> List[Tuple[str, ...]]:
    ns = method.replace(".", "_") + "_response"
    return [
        (ns, "resp_result", "result"),
        (ns, "result"),
        ("resp_result", "result"),
        ("result",),
        ("data",),
    ]


def unwrap_payload(data: Any, method: str = DEFAULT_METHOD) -> Any:
    """
    Return the first defined wrapper value (decoded if it was a JSON string),
    or the body itself when no wrapper matches.
    """
    for path in wrapper_paths(method):
        node = dig(data, path)
        if node is not _MISSING:
            return _maybe_json(node)
    return data


def looks_like_product(obj: Any) -> bool:
    if not isinstance(obj, dict):
        return False
    return any(k in obj for k in PRODUCT_ID_KEYS) or any(k in obj for k in PRODUCT_TITLE_KEYS)


def find_first_array(
    obj: Any,
    predicate: Callable[[Any], bool] = looks_like_product,
    max_depth: int = MAX_SEARCH_DEPTH,
    depth: int = 0,
) -> Optional[list]:
    """
    Depth-first search for the first non-empty list whose first element
    satisfies predicate. Gives up below max_depth levels.
    """
    if depth > max_depth:
        return None
    if isinstance(obj, list):
        if obj and predicate(obj[0]):
            return obj
        children = obj
    elif isinstance(obj, dict):
        children = list(obj.values())
    else:
        return None

    for child in children:
        found = find_first_array(child, predicate, max_depth, depth + 1)
        if found is not None:
            return found
    return None


def extract_products(data: Any, method: str = DEFAULT_METHOD) -> List[dict]:
    """
    Product records from a parsed (already error-checked) response body.
    Never raises: an unrecognized shape yields [].
    """
    node = unwrap_payload(data, method)

    for path in LIST_PATHS:
        found = _maybe_json(dig(node, path))
        if isinstance(found, list):
            return found

    deep = find_first_array(node)
    if deep is not None:
        logger.info("product list found by deep search", extra={"count": len(deep)})
        return deep
    return []


def sizes_snapshot(obj: Any, max_depth: int = 4, depth: int = 0) -> Any:
    """
    Where are the arrays and how long are they. For eyeballing live responses.
    """
    if depth > max_depth or not isinstance(obj, (dict, list)):
        return None
    if isinstance(obj, list):
        return {"__type": "array", "len": len(obj)}

    out = {}
    for k, v in obj.items():
        if isinstance(v, list):
            out[k] = {"__type": "array", "len": len(v)}
        elif isinstance(v, dict):
            out[k] = sizes_snapshot(v, max_depth, depth + 1)
    return out
