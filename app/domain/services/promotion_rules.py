"""
Discount rules.

One pure function per rule: (unit price in cents, quantity, params) -> discount
in cents for the whole order line. Unit counts use floor division, money uses
round-half-away-from-zero, everything is an int.
"""
from __future__ import annotations
from decimal import Decimal
from typing import AbstractSet, Optional
import logging

from app.domain.models.promotion import (
    BundlePrice,
    BuyXGetYFree,
    BuyXPayY,
    ComboDiscount,
    FirstNUnitsFree,
    FixedPriceBundle,
    FlatAmountOffPerUnit,
    MaxUnitsDiscounted,
    PercentageOff,
    PromotionConditions,
    TimeLimitedDiscount,
)
from app.utils.money import round_half_up, to_minor

logger = logging.getLogger(__name__)


def _percent_of(cents: int, percent: Decimal) -> int:
    return round_half_up(Decimal(cents) * Decimal(percent) / 100)


def buy_x_pay_y(unit_price: int, qty: int, buy_qty: int, pay_qty: int) -> int:
    return (qty // buy_qty) * (buy_qty - pay_qty) * unit_price


def flat_amount_off_per_unit(qty: int, amount_off: int) -> int:
    return amount_off * qty


def bundle_price(unit_price: int, qty: int, units: int, bundle_price_cents: int) -> int:
    return (qty // units) * (unit_price * units - bundle_price_cents)


def percentage_off(unit_price: int, qty: int, percent: Decimal) -> int:
    return _percent_of(unit_price * qty, percent)


def percent_or_amount(unit_price: int, qty: int, percent: Optional[Decimal], amount_off: Optional[int]) -> int:
    """Shared by ComboDiscount and TimeLimitedDiscount; percent wins when both are set."""
    if percent is not None:
        return percentage_off(unit_price, qty, percent)
    if amount_off is not None:
        return flat_amount_off_per_unit(qty, amount_off)
    return 0


def buy_x_get_y_free(unit_price: int, qty: int, buy_qty: int, free_qty: int) -> int:
    free_units = (qty // (buy_qty + free_qty)) * free_qty
    return free_units * unit_price


def max_units_discounted(
    unit_price: int, qty: int, max_units: int, percent: Optional[Decimal], amount_off: Optional[int]
) -> int:
    discounted_units = min(qty, max_units)
    if percent is not None:
        return _percent_of(unit_price, percent) * discounted_units
    if amount_off is not None:
        return amount_off * discounted_units
    return 0


def first_n_units_free(unit_price: int, qty: int, n: int) -> int:
    return min(qty, n) * unit_price


def _cents(money: Optional[str]) -> Optional[int]:
    return None if money is None else to_minor(money)


def evaluate_discount(
    conditions: PromotionConditions,
    unit_price: int,
    qty: int,
    order_product_ids: AbstractSet[str] = frozenset(),
) -> int:
    """
    Discount in cents granted by one promotion on one order line.
    `order_product_ids` holds the products present (qty > 0) in the same order;
    only ComboDiscount looks at it.
    """
    match conditions:
        case BuyXPayY(buy_qty=buy, pay_qty=pay):
            return buy_x_pay_y(unit_price, qty, buy, pay)
        case FlatAmountOffPerUnit(amount_off=amount):
            return flat_amount_off_per_unit(qty, to_minor(amount))
        case BundlePrice(units=units, bundle_price=price):
            return bundle_price(unit_price, qty, units, to_minor(price))
        case PercentageOff(percent=percent):
            return percentage_off(unit_price, qty, percent)
        case ComboDiscount(required_product_ids=required, percent=percent, amount_off=amount):
            if not all(pid in order_product_ids for pid in required):
                return 0
            return percent_or_amount(unit_price, qty, percent, _cents(amount))
        case FixedPriceBundle():
            # TODO: needs order-level aggregation across bundle lines, then per-line distribution
            logger.debug("fixed_price_bundle not evaluated per line products=%s", conditions.product_ids)
            return 0
        case BuyXGetYFree(buy_qty=buy, free_qty=free):
            return buy_x_get_y_free(unit_price, qty, buy, free)
        case MaxUnitsDiscounted(max_units=max_units, percent=percent, amount_off=amount):
            return max_units_discounted(unit_price, qty, max_units, percent, _cents(amount))
        case FirstNUnitsFree(units=n):
            return first_n_units_free(unit_price, qty, n)
        case TimeLimitedDiscount(percent=percent, amount_off=amount):
            return percent_or_amount(unit_price, qty, percent, _cents(amount))
    return 0
