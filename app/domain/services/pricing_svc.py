"""
Reservation pricing.

Per order line:
  1. nominal price (cents)
  2. promotions valid now -> selected set -> total line discount
  3. unit after promo = max(0, nominal - round(discount / qty))
  4. unit final = unit after promo + supplement[consumptionTypeId] (0 when absent)
  5. subtotal = unit final * qty
totalAmount = sum of subtotals. Each line is rounded once; the total is never
re-derived from a rounded figure.
"""
from __future__ import annotations
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional
import logging
import time

from motor.motor_asyncio import AsyncIOMotorDatabase

from app.core.errors import MissingReferencedEntity, PriceFrozen
from app.domain.models.reservation import (
    PricingResult,
    PromotionApplied,
    PromotionLineSnapshot,
    Reservation,
)
from app.domain.repositories.product_repo import ProductRepo
from app.domain.repositories.promotion_repo import PromotionRepo
from app.domain.services.promotion_selector import select_promotions, total_discount
from app.utils.money import from_minor, round_half_up, to_minor

logger = logging.getLogger(__name__)


async def calculate_reservation_total(
    db: AsyncIOMotorDatabase,
    order: Mapping[str, int],
    consumption_type_id: str,
    *,
    now: Optional[datetime] = None,
    is_paid: bool = False,
    is_delivered: bool = False,
    want_snapshot: bool = False,
    skip_freeze_check: bool = False,
    event_id: Optional[str] = None,
    include_inactive: bool = False,
) -> PricingResult:
    """`include_inactive` prices products deactivated since (invoice recomputation)."""
    if not skip_freeze_check and (is_paid or is_delivered):
        raise PriceFrozen("Cannot recalculate the price of a paid or delivered reservation.")

    now = now or datetime.now(timezone.utc)
    t0 = time.perf_counter()
    logger.info("pricing start lines=%s consumption_type=%s snapshot=%s", len(order), consumption_type_id, want_snapshot)

    products = ProductRepo(db)
    promotions = PromotionRepo(db)
    present = frozenset(pid for pid, qty in order.items() if qty > 0)

    total_cents = 0
    has_promo_applied = False
    snapshot: List[PromotionLineSnapshot] = []

    for product_id, qty in order.items():
        product = await products.get_by_id(product_id, event_id, active_only=not include_inactive)
        if product is None:
            raise MissingReferencedEntity(f"Product {product_id} does not exist or is inactive")

        nominal = to_minor(product.nominal_price)
        valid = await promotions.get_valid_for_product(product, now)
        chosen = select_promotions(valid, nominal, qty, present)
        discount, applied = total_discount(chosen, nominal, qty, present)

        unit_after_promo = max(0, nominal - round_half_up(Decimal(discount) / qty))
        unit_final = unit_after_promo + product.supplement_for(consumption_type_id)
        subtotal = unit_final * qty
        total_cents += subtotal

        if applied:
            has_promo_applied = True
        logger.debug(
            "pricing line product=%s qty=%s nominal=%s discount=%s unit_final=%s subtotal=%s promos=%s",
            product_id, qty, nominal, discount, unit_final, subtotal, [a.promotion_id for a in applied],
        )

        if want_snapshot:
            snapshot.append(
                PromotionLineSnapshot(
                    product_id=product_id,
                    product_name=product.name,
                    quantity=qty,
                    unit_price_original=product.nominal_price,
                    unit_price_final=from_minor(unit_final),
                    subtotal=from_minor(subtotal),
                    promotions_applied=[
                        PromotionApplied(
                            promotion_id=a.promotion_id,
                            promotion_name=a.promotion_name,
                            rule=a.rule,
                            discount_per_unit=a.discount_per_unit,
                        )
                        for a in applied
                    ],
                )
            )

    logger.info(
        "pricing done total=%s promo=%s total_time=%.3fs",
        from_minor(total_cents), has_promo_applied, time.perf_counter() - t0,
    )
    return PricingResult(
        total_amount=from_minor(total_cents),
        has_promo_applied=has_promo_applied,
        applied_promotions_snapshot=snapshot if want_snapshot else None,
    )


async def recalculate_if_needed(
    db: AsyncIOMotorDatabase,
    reservation: Reservation,
    updates: Dict[str, Any],
    *,
    now: Optional[datetime] = None,
) -> Optional[PricingResult]:
    """
    Recalculation policy for an update (`updates` uses attribute names:
    order, consumption_type_id, is_paid, is_delivered):
    - already frozen: never recompute
    - the update freezes it: compute once more, with snapshot
    - order or consumption type changed on an unfrozen one: recompute
    Returns None when nothing has to change.
    """
    if reservation.is_frozen:
        return None

    order = updates.get("order", reservation.order)
    consumption_type_id = updates.get("consumption_type_id", reservation.consumption_type_id)
    will_freeze = bool(updates.get("is_paid", reservation.is_paid) or updates.get("is_delivered", reservation.is_delivered))

    if will_freeze:
        logger.info("pricing freeze reservation=%s", reservation.id)
        return await calculate_reservation_total(
            db, order, consumption_type_id,
            now=now, want_snapshot=True, skip_freeze_check=True, event_id=reservation.event_id,
        )

    if order != reservation.order or consumption_type_id != reservation.consumption_type_id:
        return await calculate_reservation_total(
            db, order, consumption_type_id, now=now, event_id=reservation.event_id,
        )
    return None
