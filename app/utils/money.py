# app/utils/money.py
"""
Money codec: decimal currency strings <-> integer cents.

Every monetary computation in the pricing core happens on ints (minor units).
Strings only exist at the edges (documents, API payloads).
"""
from __future__ import annotations
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
import re

from app.core.errors import InvalidMoney

_MONEY_RE = re.compile(r"^[+-]?\d{1,5}(\.\d+)?$")
_ONE = Decimal("1")


def round_half_up(value: Decimal) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(value.quantize(_ONE, rounding=ROUND_HALF_UP))


def to_minor(money: str) -> int:
    """'12.34' -> 1234. Extra fraction digits are rounded to the nearest cent."""
    s = str(money).strip()
    if not _MONEY_RE.match(s):
        raise InvalidMoney(f"Invalid money amount: {money!r}")
    try:
        return round_half_up(Decimal(s) * 100)
    except InvalidOperation as e:
        raise InvalidMoney(f"Invalid money amount: {money!r}") from e


def from_minor(cents: int) -> str:
    """1234 -> '12.34', -5 -> '-0.05'."""
    sign = "-" if cents < 0 else ""
    units, rest = divmod(abs(int(cents)), 100)
    return f"{sign}{units}.{rest:02d}"
