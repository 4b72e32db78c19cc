# api/repositories/_records.py
from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Optional


def record_id(row: dict) -> Optional[str]:
    """API records carry their id under `_id` (some endpoints also send `id`)."""
    val = row.get("_id", row.get("id"))
    return None if val is None else str(val)


def ref_id(value: Any) -> Optional[str]:
    """A reference is either a bare id or an embedded (populated) record."""
    if value is None:
        return None
    if isinstance(value, dict):
        return record_id(value)
    return str(value)


def as_list(data: Any) -> list:
    """Search endpoints return either a bare list or {items|results: [...]}."""
    if data is None:
        return []
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in ("items", "results", "medicines", "customers", "counters", "sales"):
            if isinstance(data.get(key), list):
                return data[key]
    return []


def to_int(value: Any) -> int:
    """Counts arrive as ints, numeric strings or floats ("3", "3.0", 3.0). Bad input is 0."""
    try:
        return max(0, int(Decimal(str(value))))
    except (InvalidOperation, OverflowError, TypeError, ValueError):
        return 0
