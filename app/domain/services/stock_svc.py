"""
Stock control tied to reservation create, order edits and delete.

"Decrement N stocks + insert one reservation" (the reverse on delete, the
difference between old and new order on an edit) runs inside a
multi-document transaction when the deployment supports it. Support is a
capability resolved once at startup (see app.db.mongo). Without it
the steps run sequentially: concurrent reservations may oversell, and a failure
after the stock update is not rolled back.
"""
from __future__ import annotations
from typing import Awaitable, Callable, Dict, Mapping, Optional, TypeVar
import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorClientSession, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from app.core.errors import MissingReferencedEntity, StockTransactionUnavailable
from app.domain.models.reservation import Reservation
from app.domain.repositories.product_repo import ProductRepo
from app.domain.repositories.reservation_repo import ReservationRepo
from app.domain.services.constants import TRANSACTION_UNSUPPORTED_MARKERS

logger = logging.getLogger(__name__)

T = TypeVar("T")
Steps = Callable[[Optional[AsyncIOMotorClientSession]], Awaitable[T]]


def is_transaction_unsupported(err: Exception) -> bool:
    msg = str(err).lower()
    return any(marker in msg for marker in TRANSACTION_UNSUPPORTED_MARKERS)


def order_delta(old_order: Mapping[str, int], new_order: Mapping[str, int]) -> Dict[str, int]:
    """Units to take from stock per product (negative: units to give back). Zero moves are dropped."""
    delta = {pid: new_order.get(pid, 0) - old_order.get(pid, 0) for pid in {**old_order, **new_order}}
    return {pid: d for pid, d in delta.items() if d}


class StockController:
    def __init__(self, db: AsyncIOMotorDatabase, client: AsyncIOMotorClient, supports_transactions: bool):
        self.client = client
        self.supports_transactions = supports_transactions
        self.products = ProductRepo(db)
        self.reservations = ReservationRepo(db)

    # ----- Raw stock moves --------------------------------------------------

    async def _move(self, order: Mapping[str, int], sign: int, session: Optional[AsyncIOMotorClientSession]) -> None:
        # one session cannot run operations concurrently: sequential on purpose
        for product_id, qty in order.items():
            if not await self.products.inc_stock(product_id, sign * qty, session=session):
                raise MissingReferencedEntity(f"Product {product_id} not found while updating stock")

    async def decrement(self, order: Mapping[str, int], *, session: Optional[AsyncIOMotorClientSession] = None) -> None:
        """No lower-bound check: sufficiency is validated before reaching here."""
        await self._move(order, -1, session)

    async def increment(self, order: Mapping[str, int], *, session: Optional[AsyncIOMotorClientSession] = None) -> None:
        await self._move(order, 1, session)

    # ----- Atomic units -----------------------------------------------------

    async def _in_transaction(self, steps: Steps[T]) -> T:
        try:
            async with await self.client.start_session() as session:
                return await session.with_transaction(steps)
        except PyMongoError as e:
            if is_transaction_unsupported(e):
                raise StockTransactionUnavailable(str(e)) from e
            raise

    async def _run(self, label: str, steps: Steps[T]) -> T:
        if self.supports_transactions:
            try:
                return await self._in_transaction(steps)
            except StockTransactionUnavailable as e:
                # capability was wrong (e.g. forced on against a standalone): stop trying
                self.supports_transactions = False
                logger.warning("%s transactions rejected by server, disabling them: %s", label, e.message)
        logger.warning("%s running WITHOUT atomicity (no transaction support); use a replica set in production", label)
        return await steps(None)

    async def create_with_stock_control(self, reservation_data: dict) -> str:
        """Decrement stock for every order line and insert the reservation. Returns the new id."""
        order = reservation_data["order"]

        async def steps(session: Optional[AsyncIOMotorClientSession]) -> str:
            await self.decrement(order, session=session)
            return await self.reservations.insert(reservation_data, session=session)

        inserted_id = await self._run("stock.create", steps)
        logger.info("stock reserved reservation=%s lines=%s", inserted_id, len(order))
        return inserted_id

    async def delete_with_stock_restore(self, reservation_id: str) -> Reservation:
        """Soft-delete an active reservation and give its units back to stock."""
        reservation = await self.reservations.get_active(reservation_id)
        if reservation is None:
            raise MissingReferencedEntity(f"Reservation {reservation_id} not found")

        async def steps(session: Optional[AsyncIOMotorClientSession]) -> None:
            # another writer may have deactivated it since it was read
            if not await self.reservations.soft_delete(reservation_id, session=session):
                raise MissingReferencedEntity(f"Reservation {reservation_id} not found")
            await self.increment(reservation.order, session=session)

        await self._run("stock.delete", steps)
        logger.info("stock restored reservation=%s lines=%s", reservation_id, len(reservation.order))
        return reservation

    async def update_with_stock_control(
        self,
        reservation_id: str,
        old_order: Mapping[str, int],
        new_order: Mapping[str, int],
        fields: dict,
    ) -> None:
        """Move stock by the per-product difference between both orders and persist `fields`."""
        delta = order_delta(old_order, new_order)

        async def steps(session: Optional[AsyncIOMotorClientSession]) -> None:
            if not await self.reservations.set_fields(reservation_id, fields, session=session):
                raise MissingReferencedEntity(f"Reservation {reservation_id} not found")
            await self.decrement(delta, session=session)

        await self._run("stock.update", steps)
        logger.info("stock adjusted reservation=%s delta=%s", reservation_id, delta)
