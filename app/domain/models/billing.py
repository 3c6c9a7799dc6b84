from __future__ import annotations
from typing import List, Optional
from pydantic import Field

from app.domain.models.common import CamelModel, IdStr, Money, UtcDatetime
from app.domain.models.reservation import PromotionApplied


class VATResult(CamelModel):
    base_price: Money
    vat_pct: int
    vat_amount: Money
    net_price: Money

    model_config = {"frozen": True}


class SupplementApplied(CamelModel):
    concept: str
    amount: Money


class InvoiceProductDetail(CamelModel):
    product_id: IdStr
    product_name: str
    quantity: int
    unit_price_original: Money
    unit_price_final: Money
    subtotal: Money
    promotions_applied: List[PromotionApplied] = Field(default_factory=list)
    supplements_applied: List[SupplementApplied] = Field(default_factory=list)


class InvoiceReservation(CamelModel):
    id: IdStr
    reserver: str
    total_amount: Money
    deposit: Optional[Money] = None
    is_paid: bool
    is_delivered: bool
    has_promo_applied: bool
    salesperson_id: Optional[IdStr] = None
    consumption_type_id: IdStr
    pickup_point_id: Optional[IdStr] = None
    payment_method_id: Optional[IdStr] = None
    cashier_id: Optional[IdStr] = None
    notes: Optional[str] = None
    created_at: Optional[UtcDatetime] = None
    updated_at: Optional[UtcDatetime] = None


class InvoiceLinkedReservation(CamelModel):
    id: IdStr
    reserver: str
    total_amount: Money
    is_paid: bool
    is_delivered: bool
    created_at: Optional[UtcDatetime] = None


class InvoiceData(CamelModel):
    reservation: InvoiceReservation
    products: List[InvoiceProductDetail]
    vat: Optional[VATResult] = None
    linked_reservations: Optional[List[InvoiceLinkedReservation]] = None
    total_final: Money


class VATInput(CamelModel):
    base_price: Optional[Money] = None
    vat_pct: int
    vat_amount: Optional[Money] = None
    net_price: Optional[Money] = None
