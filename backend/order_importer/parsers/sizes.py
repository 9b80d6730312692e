"""Apparel size extraction and the stable fallback SKU.

Sizes are normalized to the Brazilian scale: PP, P, M, G, GG, GGG and UN
(one size). Vendor free text mixes both scales ("XL", "GG", "3XL/GGG"), so
``SIZE_RULES`` is evaluated strictly in order; reordering it changes results.
"""

from __future__ import annotations

import re
import unicodedata

SIZE_RULES: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"\b(3xl|gggg?|xxxl)\b", re.IGNORECASE), "GGG"),
    (re.compile(r"\b(2xl|gg|xxl)\b", re.IGNORECASE), "GG"),
    # XL is GG on the BR table
    (re.compile(r"\b(xl|eg)\b", re.IGNORECASE), "GG"),
    (re.compile(r"\b(g|l)\b", re.IGNORECASE), "G"),
    (re.compile(r"\b(m|md)\b", re.IGNORECASE), "M"),
    (re.compile(r"\b(pp|xxs)\b", re.IGNORECASE), "PP"),
    (re.compile(r"\b(p|s|sm)\b", re.IGNORECASE), "P"),
    (
        re.compile(
            r"\b(un(?:ico|ique|i)?|u\.?n\.?|free\s*size|tamanho\s*[uú]nico)\b",
            re.IGNORECASE,
        ),
        "UN",
    ),
]

_FRAGMENT_SEPARATORS = re.compile(r"[/\-,;|]")
_SLUG_INVALID = re.compile(r"[^a-z0-9]+")
SLUG_MAX_LENGTH = 30
SKU_HASH_LENGTH = 6
_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _match_rules(text: str) -> str | None:
    for pattern, size in SIZE_RULES:
        if pattern.search(text):
            return size
    return None


def extract_size(text: str | None) -> str | None:
    """Return the normalized size found in ``text``, or None."""
    if not text:
        return None

    size = _match_rules(text)
    if size:
        return size

    for part in _FRAGMENT_SEPARATORS.split(text):
        size = _match_rules(part.strip())
        if size:
            return size
    return None


def slugify(value: str) -> str:
    decomposed = unicodedata.normalize("NFD", value.lower())
    stripped = "".join(ch for ch in decomposed if not "\u0300" <= ch <= "\u036f")
    return _SLUG_INVALID.sub("-", stripped).strip("-")[:SLUG_MAX_LENGTH]


def _to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def short_hash(value: str) -> str:
    """31-multiplier rolling hash over UTF-16 code units, base-36, 6 chars.

    Matches the SKUs produced by the browser importer so variants created
    there keep their identity when re-imported through this pipeline.
    """
    encoded = value.encode("utf-16-le")
    h = 0
    for i in range(0, len(encoded), 2):
        code_unit = encoded[i] | (encoded[i + 1] << 8)
        h = (31 * h + code_unit) & 0xFFFFFFFF
    return _to_base36(h)[:SKU_HASH_LENGTH]


def generate_stable_sku(product_name: str, variant_name: str) -> str:
    """Deterministic SKU for vendors that do not export one."""
    product_name = product_name or ""
    variant_name = variant_name or ""
    digest = short_hash(f"{product_name}|{variant_name}")
    return f"{slugify(product_name)}-{slugify(variant_name)}-{digest}"
