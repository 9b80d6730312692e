"""Tolerant CSV/TSV parsing for marketplace order exports.

Vendor exports vary by locale (comma, semicolon or tab separated), quote
free-text addresses with RFC 4180 rules, and often end with summary lines
whose cells are all empty. The stdlib ``csv`` module is strict about none of
this in the way exports need, so lines are tokenized by hand.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable

DELIMITER_SAMPLE_LINES = 3
_HEADER_EDGES = re.compile(r"^[\"'\s\ufeff]+|[\"'\s\ufeff]+$")
_NON_ALNUM = re.compile(r"[^a-z0-9]")


@dataclass
class ParsedCSV:
    headers: list[str] = field(default_factory=list)
    rows: list[dict[str, str]] = field(default_factory=list)
    raw_headers: list[str] = field(default_factory=list)
    delimiter: str = ","


def detect_delimiter(sample: str) -> str:
    """Pick tab, semicolon or comma by counting occurrences in ``sample``."""
    commas = sample.count(",")
    semicolons = sample.count(";")
    tabs = sample.count("\t")
    if tabs > commas and tabs > semicolons:
        return "\t"
    if semicolons > commas:
        return ";"
    return ","


def parse_line(line: str, delimiter: str) -> list[str]:
    """Split one line into trimmed fields, honouring double-quoted spans."""
    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    i = 0
    length = len(line)

    while i < length:
        ch = line[i]
        if ch == '"':
            if in_quotes and i + 1 < length and line[i + 1] == '"':
                current.append('"')
                i += 1
            else:
                in_quotes = not in_quotes
        elif ch == delimiter and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(ch)
        i += 1

    fields.append("".join(current).strip())
    return fields


def _unique_headers(headers: list[str]) -> list[str]:
    """Suffix repeated names (`Qty`, `Qty_2`) so every column keeps its own key."""
    seen: dict[str, int] = {}
    unique = []
    for header in headers:
        count = seen.get(header, 0) + 1
        seen[header] = count
        name = header if count == 1 else f"{header}_{count}"
        while count > 1 and name in seen:
            count += 1
            name = f"{header}_{count}"
        if name != header:
            seen[name] = 1
        unique.append(name)
    return unique


def _non_blank_lines(text: str) -> list[str]:
    lines = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    return [line for line in lines if line.strip()]


def parse_csv_text(text: str) -> ParsedCSV:
    """Parse a whole export: first non-blank line is the header row."""
    lines = _non_blank_lines(text)
    if not lines:
        return ParsedCSV()

    delimiter = detect_delimiter("\n".join(lines[:DELIMITER_SAMPLE_LINES]))
    raw_headers = parse_line(lines[0], delimiter)
    headers = _unique_headers([_HEADER_EDGES.sub("", h) for h in raw_headers])

    rows: list[dict[str, str]] = []
    for line in lines[1:]:
        values = parse_line(line, delimiter)
        # report footers come through as rows of empty cells
        if all(not v for v in values):
            continue
        row = {}
        for idx, header in enumerate(headers):
            row[header] = values[idx] if idx < len(values) else ""
        rows.append(row)

    return ParsedCSV(headers=headers, rows=rows, raw_headers=raw_headers, delimiter=delimiter)


def _normalize_header(value: str) -> str:
    return _NON_ALNUM.sub("", value.lower())


def find_header(headers: Iterable[str], candidates: Iterable[str]) -> str | None:
    """Return the first header matching any candidate alias, ignoring case and punctuation."""
    wanted = {_normalize_header(c) for c in candidates}
    for header in headers:
        if _normalize_header(header) in wanted:
            return header
    return None
