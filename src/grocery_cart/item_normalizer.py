"""Shared name normalization and value helpers."""

import re

_WHITESPACE = re.compile(r"\s+")
_PRICE_PER_UNIT = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(?:/\s*(\S.*?))?\s*$")


def normalize_name(name: str) -> str:
    """Normalize an item, store, cart or category name into a comparison key."""
    return _WHITESPACE.sub(" ", name.strip()).casefold()


def clean_name(name: str) -> str:
    """Trim and collapse whitespace while keeping the user's casing."""
    return _WHITESPACE.sub(" ", name.strip())


def same_name(left: str, right: str) -> bool:
    return normalize_name(left) == normalize_name(right)


def round_money(value: float) -> float:
    return round(value, 2)


def parse_price_per_unit(text: str) -> tuple[float, str]:
    """Parse a ``"12.50/kg"`` style string into ``(12.5, "kg")``.

    Raises:
        ValueError: If the text is not a price optionally followed by a unit
    """
    match = _PRICE_PER_UNIT.match(text)
    if not match:
        raise ValueError(f"Invalid price per unit: {text!r}")
    return float(match.group(1)), (match.group(2) or "")
