# tileprofile/layers/util.py
"""Small value helpers shared by layers: null coalescing and elevation parsing."""

from __future__ import annotations

import math
import re
from typing import Any, Mapping

FEET_TO_METERS: float = 0.3048
METERS_TO_FEET: float = 3.2808399

UNIT_TO_METERS: dict[str, float] = {
    "m": 1.0,
    "km": 1000.0,
    "mi": 1609.344,
    "nmi": 1852.0,
    "ft": FEET_TO_METERS,
    "feet": FEET_TO_METERS,
    "'": FEET_TO_METERS,
    '"': 0.0254,
}

_number_pattern = re.compile(r"([+-]?[0-9]+(?:\.[0-9]+)?)")
_unit_pattern = re.compile(r"^([+-]?[0-9]+(?:\.[0-9]+)?)\s*(nmi|km|mi|m|feet|ft|'|\")$", re.IGNORECASE)
_feet_inches_pattern = re.compile(r"^([0-9]+(?:\.[0-9]+)?)\s*'\s*([0-9]+(?:\.[0-9]+)?)\s*\"$")


def null_if_empty(value: Any) -> str | None:
    if value is None:
        return None
    value = str(value)
    return value if value.strip() else None


def null_if_int(value: int, null_value: int) -> int | None:
    return None if value == null_value else value


def coalesce(*values: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return None


def _to_float(value: str) -> float | None:
    try:
        out = float(value)
    except (TypeError, ValueError):
        return None
    return out if math.isfinite(out) else None


def parse_meters(value: Any) -> float | None:
    """
    Parse a length tag into meters: bare numbers are meters, suffixes m, km, mi,
    nmi, ft, ' and " convert, and 5'6" reads as feet plus inches.
    Returns None when nothing numeric can be read.
    """
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    text = str(value).strip().replace(",", "")
    if not text:
        return None
    as_float = _to_float(text)
    if as_float is not None:
        return as_float
    unit = _unit_pattern.match(text)
    if unit is not None:
        amount = _to_float(unit.group(1))
        if amount is not None:
            return amount * UNIT_TO_METERS[unit.group(2).lower()]
    feet_inches = _feet_inches_pattern.match(text)
    if feet_inches is not None:
        feet, inches = float(feet_inches.group(1)), float(feet_inches.group(2))
        return feet * UNIT_TO_METERS["'"] + inches * UNIT_TO_METERS['"']
    match = _number_pattern.search(text)
    if match is not None:
        return _to_float(match.group(1))
    return None


def elevation_tags(meters: float | None) -> dict[str, int]:
    """{'ele': m, 'ele_ft': ft} rounded, or {} when elevation is unknown."""
    if meters is None:
        return {}
    return {"ele": int(round(meters)), "ele_ft": int(round(meters * METERS_TO_FEET))}


def name_attrs(tags: Mapping[str, Any]) -> dict[str, str]:
    """Raw name tag only; localized names are produced elsewhere."""
    name = null_if_empty(tags.get("name"))
    return {"name": name} if name is not None else {}
