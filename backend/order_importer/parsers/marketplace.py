"""Header-based detection of which marketplace produced an export."""

from __future__ import annotations

import re
from enum import Enum
from typing import Iterable

_WHITESPACE = re.compile(r"\s+")


class Marketplace(str, Enum):
    SHOPEE = "shopee"
    MERCADOLIVRE = "mercadolivre"
    SHEIN = "shein"
    UNKNOWN = "unknown"


def normalize_header(header: str) -> str:
    return _WHITESPACE.sub(" ", header.strip().lower())


def detect_marketplace(headers: Iterable[str]) -> Marketplace:
    """Classify the export layout; first matching rule wins."""
    normalized = [normalize_header(h) for h in headers]

    def has(*terms: str) -> bool:
        return any(term in h for term in terms for h in normalized)

    if has("order id") and has("tracking number") and has("model name", "variation"):
        return Marketplace.SHOPEE

    if has("order id") and has("sku") and has("logistics tracking", "tracking no", "tracking number"):
        return Marketplace.MERCADOLIVRE

    if (
        has("order number", "order no")
        and has("variation", "size", "colour")
        and has("tracking", "waybill")
    ):
        return Marketplace.SHEIN

    return Marketplace.UNKNOWN
