# utils/helpers.py
from __future__ import annotations

import logging
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from ..config import CURRENCY_SYMBOL

NumberLike = Union[Decimal, float, int, str, None]

_log = logging.getLogger(__name__)


def to_decimal(v: NumberLike, default: Decimal = Decimal("0")) -> Decimal:
    """
    Coerce API/UI values to Decimal.

    Floats go through str() so 0.1 stays 0.1. Non-finite or unparseable
    input returns `default`.
    """
    if v is None or v == "":
        return default
    if isinstance(v, Decimal):
        return v if v.is_finite() else default
    try:
        d = Decimal(str(v))
    except (InvalidOperation, ValueError):
        _log.debug("to_decimal: failed to parse %r", v)
        return default
    return d if d.is_finite() else default


def fmt_money(v: NumberLike, places: int = 2) -> str:
    """Thousands separators and a fixed number of decimals, no symbol."""
    x = to_decimal(v)
    return f"{x:,.{places}f}"


def format_currency(v: NumberLike, symbol: Optional[str] = None) -> str:
    """
    Render an amount as "<symbol> 1,234.50".

    Non-numeric or non-finite values render as zero rather than raising,
    so a half-filled form never breaks the totals panel.
    """
    sym = CURRENCY_SYMBOL if symbol is None else symbol
    return f"{sym} {fmt_money(v)}"


def _coerce_datetime(value) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def parse_datetime(value) -> Optional[datetime]:
    """ISO-8601 (with or without trailing Z) -> datetime, else None."""
    return _coerce_datetime(value)


def format_date(value) -> str:
    """'05 Mar 2025' style; '--' for missing or invalid values."""
    dt = _coerce_datetime(value)
    if dt is None:
        return "--"
    return dt.strftime("%d %b %Y")


def format_month(value) -> str:
    """'Mar 2025' (used for batch expiry)."""
    dt = _coerce_datetime(value)
    if dt is None:
        return "--"
    return dt.strftime("%b %Y")


def format_timestamp(value) -> str:
    """'Mar 5, 2025 3:07 PM' for receipts."""
    dt = _coerce_datetime(value)
    if dt is None:
        return "--"
    hour = dt.strftime("%I").lstrip("0") or "12"
    return f"{dt.strftime('%b')} {dt.day}, {dt.year} {hour}:{dt.strftime('%M %p')}"


_NON_NUMERIC = re.compile(r"[^\d.-]")


def parse_number_input(value: NumberLike) -> Decimal:
    """
    Lenient parse for typed amounts.

    Strips currency symbols, separators and stray minus signs (only a
    leading minus survives). Anything unparseable becomes 0.
    """
    if isinstance(value, (int, float, Decimal)):
        return to_decimal(value)
    if not value:
        return Decimal("0")
    sanitized = _NON_NUMERIC.sub("", str(value).strip())
    if not sanitized:
        return Decimal("0")
    sanitized = sanitized[0] + sanitized[1:].replace("-", "")
    return to_decimal(sanitized)
