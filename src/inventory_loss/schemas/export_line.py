"""
Export line format (CRITICAL).

This module defines THE line format written by the export pipeline and read
by the import pipeline.

Canonical (pipe) format, five fields:
    {product_code}|{product_name}|{quantity}|{unit_cost:.2f}|{created_at}

- quantity renders without a trailing ".0" for whole numbers
- unit_cost always has two decimals
- created_at is the stored UTC timestamp (2026-10-19T14:03:22Z)
- pipes and line breaks in the product name are replaced so every line has
  exactly five fields

Legacy (inventory) format, space-delimited, write-only:
    Inventario {product_code} {quantity}
"""

import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from ..errors import FormatError
from ..store.records import Entry, parse_timestamp

LINE_DELIMITER = "|"
FIELD_COUNT = 5
INVENTORY_VERB = "Inventario"


class LineFormat(str, Enum):
    """Supported export line formats."""

    PIPE = "pipe"
    INVENTORY = "inventory"


@dataclass
class ParsedLine:
    """One validated import line."""

    product_code: str
    product_name: str
    quantity: float
    unit_cost: float
    created_at: datetime | None


def format_quantity(quantity: float) -> str:
    """5.0 -> "5", 0.25 -> "0.25"."""
    if float(quantity).is_integer():
        return str(int(quantity))
    return repr(float(quantity))


def _clean_field(value: str) -> str:
    return (
        value.replace(LINE_DELIMITER, "/")
        .replace("\r\n", " ")
        .replace("\n", " ")
        .replace("\r", " ")
        .strip()
    )


def render_line(entry: Entry, line_format: LineFormat = LineFormat.PIPE) -> str:
    """Render one entry, without the line terminator."""
    if line_format == LineFormat.INVENTORY:
        return f"{INVENTORY_VERB} {entry.product_code} {format_quantity(entry.quantity)}"

    fields = [
        _clean_field(entry.product_code),
        _clean_field(entry.product_name),
        format_quantity(entry.quantity),
        f"{entry.unit_cost:.2f}",
        entry.created_at,
    ]
    return LINE_DELIMITER.join(fields)


def render_file(entries: list[Entry], line_format: LineFormat = LineFormat.PIPE) -> str:
    """Render entries in order; every line, the last included, ends with a newline."""
    return "".join(render_line(entry, line_format) + "\n" for entry in entries)


def _parse_number(raw: str, field_name: str, line_number: int | None) -> float:
    try:
        value = float(raw.strip())
    except ValueError:
        raise FormatError(f"{field_name} is not a number: {raw!r}", line_number) from None
    if not math.isfinite(value):
        raise FormatError(f"{field_name} is not a finite number: {raw!r}", line_number)
    return value


def parse_line(line: str, line_number: int | None = None) -> ParsedLine:
    """
    Parse one pipe-delimited line.

    Raises:
        FormatError: wrong field count, empty product code, non-numeric
            quantity or cost, or an unparseable timestamp.
    """
    fields = line.rstrip("\r\n").split(LINE_DELIMITER)
    if len(fields) != FIELD_COUNT:
        raise FormatError(
            f"expected {FIELD_COUNT} fields separated by '{LINE_DELIMITER}', got {len(fields)}",
            line_number,
        )

    code, name, quantity_raw, cost_raw, timestamp_raw = (f.strip() for f in fields)
    if not code:
        raise FormatError("product code is empty", line_number)

    quantity = _parse_number(quantity_raw, "quantity", line_number)
    unit_cost = _parse_number(cost_raw, "unit cost", line_number)

    created_at = None
    if timestamp_raw:
        try:
            created_at = parse_timestamp(timestamp_raw)
        except ValueError:
            raise FormatError(f"invalid timestamp: {timestamp_raw!r}", line_number) from None

    return ParsedLine(
        product_code=code,
        product_name=name,
        quantity=quantity,
        unit_cost=unit_cost,
        created_at=created_at,
    )
