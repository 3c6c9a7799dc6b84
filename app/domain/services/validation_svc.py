"""Reference checks run before a reservation is priced or stock is touched."""
from __future__ import annotations
from typing import List, Mapping, Optional, Sequence
import logging

from motor.motor_asyncio import AsyncIOMotorDatabase

from app.core.errors import InsufficientStock, InvalidReservation, MissingReferencedEntity
from app.domain.models.product import Product
from app.domain.repositories.product_repo import ConsumptionTypeRepo, ProductRepo
from app.domain.repositories.reservation_repo import ReservationRepo

logger = logging.getLogger(__name__)


async def validate_products(
    db: AsyncIOMotorDatabase,
    event_id: str,
    order: Mapping[str, int],
    *,
    held: Optional[Mapping[str, int]] = None,
) -> List[Product]:
    """`held`: units the reservation already took from stock (order edits); only the extra is checked."""
    if not order:
        raise InvalidReservation("The order must contain at least one product.")

    products = await ProductRepo(db).get_many(order.keys())
    by_id = {p.id: p for p in products}

    missing = [pid for pid in order if pid not in by_id]
    if missing:
        raise MissingReferencedEntity(f"These products do not exist or are inactive: {', '.join(missing)}")

    wrong_event = [p.id for p in products if p.event_id is not None and p.event_id != event_id]
    if wrong_event:
        raise InvalidReservation(f"These products do not belong to the event: {', '.join(wrong_event)}")

    held = held or {}
    short = [
        f"{by_id[pid].name}: requested {qty - held.get(pid, 0)}, available {by_id[pid].stock}"
        for pid, qty in order.items()
        if by_id[pid].stock < qty - held.get(pid, 0)
    ]
    if short:
        logger.info("validation insufficient_stock event=%s lines=%s", event_id, len(short))
        raise InsufficientStock("Insufficient stock for:\n" + "\n".join(short))

    return [by_id[pid] for pid in order]


async def validate_consumption_type(
    db: AsyncIOMotorDatabase, event_id: Optional[str], consumption_type_id: str
) -> None:
    if await ConsumptionTypeRepo(db).get_by_id(consumption_type_id, event_id) is None:
        raise MissingReferencedEntity(
            f"Consumption type {consumption_type_id} does not exist, is inactive or does not belong to the event."
        )


async def validate_linked_reservations(db: AsyncIOMotorDatabase, event_id: str, ids: Sequence[str]) -> None:
    if not ids:
        return
    found = await ReservationRepo(db).get_many_active(ids)
    found_ids = {r.id for r in found}
    missing = [rid for rid in ids if rid not in found_ids]
    if missing:
        raise MissingReferencedEntity(f"These linked reservations do not exist: {', '.join(missing)}")
    wrong_event = [r.id for r in found if r.event_id != event_id]
    if wrong_event:
        raise InvalidReservation(f"These linked reservations do not belong to the event: {', '.join(wrong_event)}")
