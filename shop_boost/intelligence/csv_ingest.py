"""Minimal CSV ingestion for shop history exports.

Exports from shop-management systems are messy: BOMs, mixed line endings,
ragged rows. This parser is line-based and forgiving. It never raises on
malformed quoting; an unterminated quote simply runs to end of line.
"""

import re
from typing import Final

BOM: Final[str] = "\ufeff"
LINE_SPLIT = re.compile(r"\r?\n")


def decode_csv_bytes(data: bytes) -> str:
    """Decode a stored export as UTF-8, tolerating a BOM and bad bytes."""
    return data.decode("utf-8-sig", errors="replace")


def split_csv_line(line: str) -> list[str]:
    """Split one line on commas outside double quotes and trim each field."""
    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    i = 0

    while i < len(line):
        ch = line[i]
        if ch == '"':
            if in_quotes and i + 1 < len(line) and line[i + 1] == '"':
                current.append('"')
                i += 2
                continue
            in_quotes = not in_quotes
        elif ch == "," and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(ch)
        i += 1

    fields.append("".join(current).strip())
    return fields


def parse_csv_text(text: str) -> list[dict[str, str]]:
    """Parse CSV text into row dicts keyed by header, in file order."""
    if text.startswith(BOM):
        text = text[len(BOM):]

    lines = [line for line in LINE_SPLIT.split(text) if line.strip()]
    if not lines:
        return []

    headers = split_csv_line(lines[0])
    rows: list[dict[str, str]] = []

    for line in lines[1:]:
        values = split_csv_line(line)
        row = {header: "" for header in headers}
        for idx, value in enumerate(values):
            column = headers[idx] if idx < len(headers) else f"col_{idx}"
            row[column] = value
        rows.append(row)

    return rows
