"""Turn uploaded bytes into text without ever failing the import on encoding."""

from __future__ import annotations

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

# Tried in order; latin-1 maps every byte value so the chain always ends in a decode
FALLBACK_ENCODINGS = ("cp1252", "latin-1")


@dataclass(frozen=True)
class DecodedText:
    text: str
    encoding: str


def decode_bytes(data: bytes) -> DecodedText:
    """Decode strict UTF-8 first, then a legacy Western single-byte codec.

    Spreadsheet tools on Windows export order reports as Windows-1252; the
    few bytes that codec leaves undefined are read as ISO-8859-1.
    """
    try:
        return DecodedText(data.decode("utf-8-sig"), "utf-8")
    except UnicodeDecodeError as e:
        logger.info(f"Upload is not valid UTF-8 ({e.reason} at byte {e.start}), trying legacy encodings")

    for encoding in FALLBACK_ENCODINGS:
        try:
            return DecodedText(data.decode(encoding), encoding)
        except UnicodeDecodeError:
            continue

    # unreachable: latin-1 accepts any byte sequence
    raise AssertionError("latin-1 decode failed")
