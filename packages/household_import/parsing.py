"""Scalar parsers for CSV cell text.

Money is always :class:`~decimal.Decimal`; floats never appear in amounts.
All helpers return ``None`` for text they cannot parse rather than raising,
so callers decide whether a failure is an error or a warning.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

DATE_FORMATS: tuple[str, ...] = ("%Y-%m-%d", "%m/%d/%Y", "%d/%m/%Y", "%Y/%m/%d")

_CENT = Decimal("0.01")

# Largest value a Numeric(12, 2) money column holds
MAX_AMOUNT = Decimal("9999999999.99")
MAX_PERCENTAGE = Decimal("100")


def to_decimal(raw: str | None, *, strip: str = "$,") -> Decimal | None:
    """Parse ``raw`` after removing ``strip`` characters and whitespace.

    Non-finite values (``NaN``, ``Infinity``) are rejected.
    """

    if raw is None:
        return None
    s = raw
    for ch in strip:
        s = s.replace(ch, "")
    s = s.strip()
    if not s:
        return None
    try:
        d = Decimal(s)
    except (InvalidOperation, ValueError):
        return None
    if not d.is_finite():
        return None
    return d


def to_percentage(raw: str | None) -> Decimal | None:
    return to_decimal(raw, strip="%")


def to_int(raw: str | None) -> int | None:
    if raw is None:
        return None
    s = raw.strip()
    if not s:
        return None
    try:
        return int(s)
    except ValueError:
        return None


def to_date(raw: str | None, formats: tuple[str, ...] = DATE_FORMATS) -> date | None:
    if raw is None:
        return None
    s = raw.strip()
    if not s:
        return None
    for fmt in formats:
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue
    return None


def quantize_2(d: Decimal) -> Decimal:
    return d.quantize(_CENT, rounding=ROUND_HALF_UP)


__all__ = [
    "DATE_FORMATS",
    "MAX_AMOUNT",
    "MAX_PERCENTAGE",
    "quantize_2",
    "to_date",
    "to_decimal",
    "to_int",
    "to_percentage",
]
