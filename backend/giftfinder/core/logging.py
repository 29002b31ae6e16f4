"""
JSON logging for the service.

Usage:
    import logging
    logger = logging.getLogger(__name__)
    logger.info("ladder step done", extra={"step": "strict", "count": 3})
"""

import logging
from typing import Optional

from pythonjsonlogger import jsonlogger

_HANDLER_NAME = "giftfinder-json"


def configure_logging(level: Optional[str] = None) -> None:
    """
    Install a single JSON stream handler on the root logger.
    Safe to call more than once (tests build the app repeatedly).
    """
    root = logging.getLogger()
    root.setLevel((level or "INFO").upper())

    for h in root.handlers:
        if h.get_name() == _HANDLER_NAME:
            return

    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(
        jsonlogger.JsonFormatter("%(asctime)s %(levelname)s %(name)s %(message)s")
    )
    root.addHandler(handler)

    # httpx logs every request URL at INFO; keep it quiet
    logging.getLogger("httpx").setLevel(logging.WARNING)
