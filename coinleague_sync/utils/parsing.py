"""
Generic, format-agnostic parsing utilities.

Indexer records encode numbers inconsistently (JSON ints, decimal strings,
hex strings, big integers); these helpers accept all of them.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any


def parse_big_int(value: Any) -> int | None:
    """Parse an arbitrary-precision integer.

    Accepts ints, decimal strings, 0x-prefixed hex strings and integral
    Decimals/floats. Returns None for empty or unparsable input.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else None
    text = str(value).strip()
    if not text or text == "-":
        return None
    try:
        if text.lower().startswith(("0x", "-0x")):
            return int(text, 16)
        return int(text)
    except ValueError:
        pass
    try:
        number = Decimal(text)
    except InvalidOperation:
        return None
    if not number.is_finite() or number != number.to_integral_value():
        return None
    return int(number)


def parse_int(value: Any, default: int) -> int:
    """Like parse_big_int, falling back to ``default``."""
    parsed = parse_big_int(value)
    return default if parsed is None else parsed


def normalize_address(value: str | None) -> str | None:
    """Lowercase an address for storage; blanks map to None."""
    if value is None:
        return None
    text = str(value).strip()
    return text.lower() if text else None
