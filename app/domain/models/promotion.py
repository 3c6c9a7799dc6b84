"""
Promotion documents and their rule-specific condition payloads.

`conditions` is a tagged union discriminated by `_rule`. Each variant is a
plain frozen record; evaluation lives in promotion_rules.py and matches on
the variant, so adding a rule means adding a variant and a `case`.
"""
from __future__ import annotations
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union
from pydantic import Field, PositiveInt, model_validator

from app.domain.models.common import CamelModel, IdStr, Money, UtcDatetime, id_field

Percent = Annotated[Decimal, Field(ge=0, le=100)]


class PromotionRule(str, Enum):
    BUY_X_PAY_Y = "XForY"
    FLAT_AMOUNT_OFF_PER_UNIT = "DiscountPerUnit"
    BUNDLE_PRICE = "BulkPrice"
    PERCENTAGE_OFF = "PercentageDiscount"
    COMBO_DISCOUNT = "ComboDiscount"
    FIXED_PRICE_BUNDLE = "FixedPriceBundle"
    BUY_X_GET_Y_FREE = "BuyXGetYFree"
    MAX_UNITS_DISCOUNTED = "MaxUnitsDiscounted"
    FIRST_N_UNITS_FREE = "FirstXUnitsFree"
    TIME_LIMITED_DISCOUNT = "TimeLimitedDiscount"


class _Conditions(CamelModel):
    model_config = {"frozen": True}


class _PercentOrAmount(_Conditions):
    percent: Optional[Percent] = None
    amount_off: Optional[Money] = None


class BuyXPayY(_Conditions):
    """3x2: buy `buy_qty`, pay `pay_qty`."""
    rule: Literal["XForY"] = Field("XForY", alias="_rule")
    buy_qty: PositiveInt
    pay_qty: PositiveInt


class FlatAmountOffPerUnit(_Conditions):
    rule: Literal["DiscountPerUnit"] = Field("DiscountPerUnit", alias="_rule")
    amount_off: Money


class BundlePrice(_Conditions):
    """N units for a fixed price (e.g. 5 for 10.00)."""
    rule: Literal["BulkPrice"] = Field("BulkPrice", alias="_rule")
    units: PositiveInt
    bundle_price: Money


class PercentageOff(_Conditions):
    rule: Literal["PercentageDiscount"] = Field("PercentageDiscount", alias="_rule")
    percent: Percent


class ComboDiscount(_PercentOrAmount):
    """Applies only when every required product is in the same order."""
    rule: Literal["ComboDiscount"] = Field("ComboDiscount", alias="_rule")
    required_product_ids: List[IdStr] = Field(min_length=2)


class FixedPriceBundle(_Conditions):
    rule: Literal["FixedPriceBundle"] = Field("FixedPriceBundle", alias="_rule")
    product_ids: List[IdStr] = Field(min_length=1)
    price: Money


class BuyXGetYFree(_Conditions):
    rule: Literal["BuyXGetYFree"] = Field("BuyXGetYFree", alias="_rule")
    buy_qty: PositiveInt
    free_qty: PositiveInt


class MaxUnitsDiscounted(_PercentOrAmount):
    rule: Literal["MaxUnitsDiscounted"] = Field("MaxUnitsDiscounted", alias="_rule")
    max_units: PositiveInt


class FirstNUnitsFree(_Conditions):
    rule: Literal["FirstXUnitsFree"] = Field("FirstXUnitsFree", alias="_rule")
    units: PositiveInt


class TimeLimitedDiscount(_PercentOrAmount):
    """Window gating is the promotion's own start/end dates."""
    rule: Literal["TimeLimitedDiscount"] = Field("TimeLimitedDiscount", alias="_rule")


PromotionConditions = Annotated[
    Union[
        BuyXPayY,
        FlatAmountOffPerUnit,
        BundlePrice,
        PercentageOff,
        ComboDiscount,
        FixedPriceBundle,
        BuyXGetYFree,
        MaxUnitsDiscounted,
        FirstNUnitsFree,
        TimeLimitedDiscount,
    ],
    Field(discriminator="rule"),
]


class Promotion(CamelModel):
    id: IdStr = id_field()
    name: str = ""
    event_id: Optional[IdStr] = None
    rule: PromotionRule
    conditions: PromotionConditions
    priority: int = 0
    is_cumulative: bool = False
    start_date: UtcDatetime
    end_date: UtcDatetime
    applicables: Optional[List[IdStr]] = None
    is_active: bool = True

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _rule_matches_conditions(self) -> "Promotion":
        if self.conditions.rule != self.rule.value:
            raise ValueError(f"conditions._rule={self.conditions.rule} does not match rule={self.rule.value}")
        return self

    def is_valid_at(self, now: datetime) -> bool:
        return self.is_active and self.start_date <= now < self.end_date

    def applies_to(self, product_id: str) -> bool:
        return not self.applicables or product_id in self.applicables
