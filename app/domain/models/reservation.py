from __future__ import annotations
from typing import Dict, List, Optional
from pydantic import Field, PositiveInt

from app.domain.models.common import CamelModel, IdStr, Money, UtcDatetime, id_field

Order = Dict[str, PositiveInt]


class PromotionApplied(CamelModel):
    promotion_id: IdStr
    promotion_name: str
    rule: str
    discount_per_unit: Money

    model_config = {"frozen": True}


class PromotionLineSnapshot(CamelModel):
    """Per-product pricing breakdown, frozen together with the reservation."""
    product_id: IdStr
    product_name: str
    quantity: PositiveInt
    unit_price_original: Money
    unit_price_final: Money
    subtotal: Money
    promotions_applied: List[PromotionApplied] = Field(default_factory=list)

    model_config = {"frozen": True}


class PricingResult(CamelModel):
    total_amount: Money
    has_promo_applied: bool
    applied_promotions_snapshot: Optional[List[PromotionLineSnapshot]] = None

    model_config = {"frozen": True}


class Reservation(CamelModel):
    id: Optional[IdStr] = id_field(None)
    event_id: IdStr
    reserver: str
    order: Order
    total_amount: Money = "0.00"
    consumption_type_id: IdStr
    has_promo_applied: bool = False
    is_paid: bool = False
    is_delivered: bool = False
    applied_promotions_snapshot: Optional[List[PromotionLineSnapshot]] = None
    linked_reservations: List[IdStr] = Field(default_factory=list)
    deposit: Optional[Money] = None
    salesperson_id: Optional[IdStr] = None
    pickup_point_id: Optional[IdStr] = None
    payment_method_id: Optional[IdStr] = None
    cashier_id: Optional[IdStr] = None
    notes: Optional[str] = None
    is_active: bool = True
    created_at: Optional[UtcDatetime] = None
    updated_at: Optional[UtcDatetime] = None

    @property
    def is_frozen(self) -> bool:
        return self.is_paid or self.is_delivered


class ReservationCreate(CamelModel):
    """Client payload. totalAmount / hasPromoApplied are always recomputed server-side."""
    event_id: IdStr
    reserver: str = Field(min_length=1)
    order: Order = Field(min_length=1)
    consumption_type_id: IdStr
    payment_method_id: IdStr
    salesperson_id: Optional[IdStr] = None
    pickup_point_id: Optional[IdStr] = None
    cashier_id: Optional[IdStr] = None
    linked_reservations: List[IdStr] = Field(default_factory=list)
    deposit: Optional[Money] = None
    notes: Optional[str] = None
    is_paid: bool = False
    is_delivered: bool = False

    @property
    def is_frozen(self) -> bool:
        return self.is_paid or self.is_delivered


class ReservationPatch(CamelModel):
    reserver: Optional[str] = Field(None, min_length=1)
    order: Optional[Order] = Field(None, min_length=1)
    consumption_type_id: Optional[IdStr] = None
    payment_method_id: Optional[IdStr] = None
    salesperson_id: Optional[IdStr] = None
    pickup_point_id: Optional[IdStr] = None
    cashier_id: Optional[IdStr] = None
    linked_reservations: Optional[List[IdStr]] = None
    deposit: Optional[Money] = None
    notes: Optional[str] = None
    is_paid: Optional[bool] = None
    is_delivered: Optional[bool] = None


class QuoteRequest(CamelModel):
    event_id: Optional[IdStr] = None
    order: Order = Field(min_length=1)
    consumption_type_id: IdStr
