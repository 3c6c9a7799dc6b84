"""
Reservation lifecycle: create / update / delete on top of pricing and stock.

totalAmount and hasPromoApplied are never taken from the client. A
reservation that is paid or delivered is frozen: its order and consumption
type can no longer change and its price is never recomputed.
"""
from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import logging

from motor.motor_asyncio import AsyncIOMotorDatabase
from redis.asyncio import Redis

from app.core.errors import MissingReferencedEntity, PriceFrozen
from app.domain.models.reservation import (
    PricingResult,
    QuoteRequest,
    Reservation,
    ReservationCreate,
    ReservationPatch,
)
from app.domain.repositories.reservation_repo import ReservationRepo
from app.domain.services.invoice_svc import invalidate_invoice_cache
from app.domain.services.pricing_svc import calculate_reservation_total, recalculate_if_needed
from app.domain.services.stock_svc import StockController
from app.domain.services.validation_svc import (
    validate_consumption_type,
    validate_linked_reservations,
    validate_products,
)
from app.utils.ids import to_object_id

logger = logging.getLogger(__name__)


def _pricing_fields(pricing: PricingResult) -> Dict[str, Any]:
    fields: Dict[str, Any] = {
        "totalAmount": pricing.total_amount,
        "hasPromoApplied": pricing.has_promo_applied,
    }
    if pricing.applied_promotions_snapshot is not None:
        fields["appliedPromotionsSnapshot"] = [
            line.model_dump(by_alias=True) for line in pricing.applied_promotions_snapshot
        ]
    return fields


async def quote(db: AsyncIOMotorDatabase, data: QuoteRequest, *, now: Optional[datetime] = None) -> PricingResult:
    """Price an order without persisting anything."""
    await validate_consumption_type(db, data.event_id, data.consumption_type_id)
    return await calculate_reservation_total(
        db, data.order, data.consumption_type_id, now=now, want_snapshot=True, event_id=data.event_id,
    )


async def create_reservation(
    db: AsyncIOMotorDatabase,
    stock: StockController,
    data: ReservationCreate,
    *,
    now: Optional[datetime] = None,
) -> Reservation:
    now = now or datetime.now(timezone.utc)
    await validate_products(db, data.event_id, data.order)
    await validate_consumption_type(db, data.event_id, data.consumption_type_id)
    await validate_linked_reservations(db, data.event_id, data.linked_reservations)

    # created already paid/delivered: this is the freeze instant
    pricing = await calculate_reservation_total(
        db,
        data.order,
        data.consumption_type_id,
        now=now,
        want_snapshot=data.is_frozen,
        skip_freeze_check=True,
        event_id=data.event_id,
    )

    doc = data.model_dump(by_alias=True, exclude_none=True)
    doc.update(_pricing_fields(pricing))
    doc.update(eventId=to_object_id(data.event_id), isActive=True, createdAt=now, updatedAt=now)

    await stock.create_with_stock_control(doc)  # sets doc["_id"]
    reservation = Reservation.model_validate(doc)
    logger.info(
        "reservation created id=%s total=%s promo=%s frozen=%s",
        reservation.id, reservation.total_amount, reservation.has_promo_applied, reservation.is_frozen,
    )
    return reservation


async def update_reservation(
    db: AsyncIOMotorDatabase,
    stock: StockController,
    reservation_id: str,
    data: ReservationPatch,
    *,
    now: Optional[datetime] = None,
    redis: Optional[Redis] = None,
) -> Reservation:
    repo = ReservationRepo(db)
    current = await repo.get_active(reservation_id)
    if current is None:
        raise MissingReferencedEntity(f"Reservation {reservation_id} not found")

    updates = data.model_dump(exclude_unset=True, exclude_none=True)
    order_changed = "order" in updates and updates["order"] != current.order
    ct_changed = "consumption_type_id" in updates and updates["consumption_type_id"] != current.consumption_type_id

    if current.is_frozen and (order_changed or ct_changed):
        raise PriceFrozen("Cannot change the order or consumption type of a paid or delivered reservation.")
    # the reservation already holds its current units: only increases need stock
    if order_changed:
        await validate_products(db, current.event_id, updates["order"], held=current.order)
    if ct_changed:
        await validate_consumption_type(db, current.event_id, updates["consumption_type_id"])
    if "linked_reservations" in updates:
        await validate_linked_reservations(db, current.event_id, updates["linked_reservations"])

    fields = data.model_dump(by_alias=True, exclude_unset=True, exclude_none=True)
    pricing = await recalculate_if_needed(db, current, updates, now=now)
    if pricing is not None:
        fields.update(_pricing_fields(pricing))

    if order_changed:
        await stock.update_with_stock_control(reservation_id, current.order, updates["order"], fields)
    elif fields:
        await repo.set_fields(reservation_id, fields)
    await invalidate_invoice_cache(redis, reservation_id)

    updated = await repo.get_active(reservation_id)
    if updated is None:
        raise MissingReferencedEntity(f"Reservation {reservation_id} not found")
    logger.info(
        "reservation updated id=%s fields=%s repriced=%s total=%s",
        reservation_id, sorted(fields), pricing is not None, updated.total_amount,
    )
    return updated


async def delete_reservation(
    stock: StockController,
    reservation_id: str,
    *,
    redis: Optional[Redis] = None,
) -> None:
    await stock.delete_with_stock_restore(reservation_id)
    await invalidate_invoice_cache(redis, reservation_id)
    logger.info("reservation deleted id=%s", reservation_id)
