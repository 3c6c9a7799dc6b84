"""
Invoice projection.

The per-product breakdown comes from the snapshot frozen with the reservation
when there is one; otherwise it is recomputed live from the current catalog
(best effort: promotions or prices may have moved since the reservation was
made). The invoice total is always the stored totalAmount.
"""
from __future__ import annotations
from typing import List, Optional
import logging
import time

from motor.motor_asyncio import AsyncIOMotorDatabase
from redis.asyncio import Redis

from app.core.config import get_settings
from app.core.errors import MissingReferencedEntity
from app.domain.models.billing import (
    InvoiceData,
    InvoiceLinkedReservation,
    InvoiceProductDetail,
    InvoiceReservation,
    SupplementApplied,
)
from app.domain.models.reservation import PromotionLineSnapshot, Reservation
from app.domain.repositories.product_repo import ConsumptionTypeRepo, ProductRepo
from app.domain.repositories.reservation_repo import ReservationRepo
from app.domain.services.constants import INVOICE_CACHE_PREFIX, SUPPLEMENT_CONCEPT, VAT_RATES
from app.domain.services.pricing_svc import calculate_reservation_total
from app.domain.services.vat_svc import from_net
from app.utils.cache import cache_delete, cache_get_model, cache_set_model
from app.utils.money import from_minor, to_minor

logger = logging.getLogger(__name__)


def invoice_cache_key(reservation_id: str, vat_pct: Optional[int]) -> str:
    return f"{INVOICE_CACHE_PREFIX}:{reservation_id}:{'none' if vat_pct is None else vat_pct}"


async def invalidate_invoice_cache(redis: Optional[Redis], reservation_id: str) -> None:
    if redis is None:
        return
    keys = [invoice_cache_key(reservation_id, None)] + [invoice_cache_key(reservation_id, r) for r in VAT_RATES]
    try:
        await cache_delete(redis, *keys)
    except Exception as e:
        logger.warning("invoice cache invalidate error reservation=%s err=%s", reservation_id, e)


async def _product_lines(db: AsyncIOMotorDatabase, reservation: Reservation) -> List[PromotionLineSnapshot]:
    if reservation.applied_promotions_snapshot:
        return list(reservation.applied_promotions_snapshot)
    logger.info("invoice no snapshot reservation=%s, recomputing from catalog", reservation.id)
    result = await calculate_reservation_total(
        db,
        reservation.order,
        reservation.consumption_type_id,
        want_snapshot=True,
        skip_freeze_check=True,
        event_id=reservation.event_id,
        include_inactive=True,
    )
    return result.applied_promotions_snapshot or []


async def _build(db: AsyncIOMotorDatabase, reservation: Reservation, vat_pct: Optional[int]) -> InvoiceData:
    lines = await _product_lines(db, reservation)

    # products may have been deactivated since: supplements still come from them
    products = await ProductRepo(db).get_many([ln.product_id for ln in lines], active_only=False)
    supplements = {p.id: p.supplement_for(reservation.consumption_type_id) for p in products}

    concept = SUPPLEMENT_CONCEPT
    if any(supplements.values()):
        ct = await ConsumptionTypeRepo(db).get_by_id(reservation.consumption_type_id)
        if ct is not None:
            concept = f"{SUPPLEMENT_CONCEPT} {ct.name}"

    details: List[InvoiceProductDetail] = []
    for ln in lines:
        supplement = supplements.get(ln.product_id, 0)
        details.append(
            InvoiceProductDetail(
                product_id=ln.product_id,
                product_name=ln.product_name,
                quantity=ln.quantity,
                unit_price_original=ln.unit_price_original,
                unit_price_final=ln.unit_price_final,
                subtotal=ln.subtotal,
                promotions_applied=list(ln.promotions_applied),
                supplements_applied=(
                    [SupplementApplied(concept=concept, amount=from_minor(supplement))] if supplement else []
                ),
            )
        )

    linked: List[InvoiceLinkedReservation] = []
    if reservation.linked_reservations:
        for other in await ReservationRepo(db).get_many_active(reservation.linked_reservations):
            linked.append(
                InvoiceLinkedReservation(
                    id=other.id,
                    reserver=other.reserver,
                    total_amount=other.total_amount,
                    is_paid=other.is_paid,
                    is_delivered=other.is_delivered,
                    created_at=other.created_at,
                )
            )

    header = InvoiceReservation(
        id=reservation.id,
        reserver=reservation.reserver,
        total_amount=reservation.total_amount,
        deposit=reservation.deposit,
        is_paid=reservation.is_paid,
        is_delivered=reservation.is_delivered,
        has_promo_applied=reservation.has_promo_applied,
        salesperson_id=reservation.salesperson_id,
        consumption_type_id=reservation.consumption_type_id,
        pickup_point_id=reservation.pickup_point_id,
        payment_method_id=reservation.payment_method_id,
        cashier_id=reservation.cashier_id,
        notes=reservation.notes,
        created_at=reservation.created_at,
        updated_at=reservation.updated_at,
    )

    return InvoiceData(
        reservation=header,
        products=details,
        # reservation prices are VAT-inclusive
        vat=from_net(to_minor(reservation.total_amount), vat_pct).to_result() if vat_pct is not None else None,
        linked_reservations=linked or None,
        total_final=reservation.total_amount,
    )


async def generate_invoice_data(
    db: AsyncIOMotorDatabase,
    reservation_id: str,
    *,
    redis: Optional[Redis] = None,
    vat_pct: Optional[int] = None,
) -> InvoiceData:
    t0 = time.perf_counter()
    reservation = await ReservationRepo(db).get_active(reservation_id)
    if reservation is None:
        raise MissingReferencedEntity(f"Reservation {reservation_id} not found")

    # only frozen reservations are cacheable: their breakdown can no longer change
    cacheable = redis is not None and reservation.is_frozen
    key = invoice_cache_key(reservation_id, vat_pct)
    if cacheable:
        try:
            cached = await cache_get_model(redis, key, InvoiceData)
        except Exception as e:
            logger.warning("invoice redis.get error key=%s err=%s", key, e)
            cached = None
        if cached is not None:
            logger.info("invoice cache_hit key=%s", key)
            return cached

    invoice = await _build(db, reservation, vat_pct)

    if cacheable:
        try:
            await cache_set_model(redis, key, invoice, ex=get_settings().invoice_cache_ttl)
        except Exception as e:
            logger.warning("invoice redis.set error key=%s err=%s", key, e)

    logger.info(
        "invoice done reservation=%s lines=%s frozen=%s total_time=%.3fs",
        reservation_id, len(invoice.products), reservation.is_frozen, time.perf_counter() - t0,
    )
    return invoice
