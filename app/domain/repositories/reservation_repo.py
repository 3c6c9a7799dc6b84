# app/domain/repositories/reservation_repo.py

from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional
from motor.motor_asyncio import AsyncIOMotorClientSession, AsyncIOMotorDatabase
from app.domain.models.reservation import Reservation
from app.domain.services.constants import COL_RESERVATIONS
from app.utils.ids import to_object_id, to_object_ids

class ReservationRepo:
    """
    Reservation documents. Deletion is always soft (isActive=false).
    """

    def __init__(self, db: AsyncIOMotorDatabase, collection_name: str = COL_RESERVATIONS):
        self.col = db[collection_name]

    async def get_active(self, reservation_id: str) -> Optional[Reservation]:
        doc = await self.col.find_one({"_id": to_object_id(reservation_id), "isActive": True})
        return Reservation.model_validate(doc) if doc else None

    async def get_many_active(self, ids: Iterable[str]) -> List[Reservation]:
        cursor = self.col.find({"_id": {"$in": to_object_ids(ids)}, "isActive": True})
        return [Reservation.model_validate(doc) async for doc in cursor]

    async def insert(self, doc: Dict[str, Any], *, session: Optional[AsyncIOMotorClientSession] = None) -> str:
        res = await self.col.insert_one(doc, session=session)
        return str(res.inserted_id)

    async def set_fields(
        self,
        reservation_id: str,
        fields: Dict[str, Any],
        *,
        session: Optional[AsyncIOMotorClientSession] = None,
    ) -> bool:
        payload = {**fields, "updatedAt": datetime.now(timezone.utc)}
        res = await self.col.update_one(
            {"_id": to_object_id(reservation_id), "isActive": True},
            {"$set": payload},
            session=session,
        )
        return res.matched_count > 0

    async def soft_delete(self, reservation_id: str, *, session: Optional[AsyncIOMotorClientSession] = None) -> bool:
        return await self.set_fields(reservation_id, {"isActive": False}, session=session)
