# app/domain/repositories/product_repo.py

from __future__ import annotations
from typing import Iterable, List, Optional
from datetime import datetime, timezone
from motor.motor_asyncio import AsyncIOMotorClientSession, AsyncIOMotorDatabase
from app.domain.models.product import ConsumptionType, Product
from app.domain.services.constants import COL_CONSUMPTION_TYPES, COL_PRODUCTS
from app.utils.ids import to_object_id, to_object_ids

class ProductRepo:
    """
    Product repository backed by the 'products' collection.
    Stock is the only field written from here (via $inc, never read-modify-write).
    """

    def __init__(self, db: AsyncIOMotorDatabase, collection_name: str = COL_PRODUCTS):
        self.col = db[collection_name]

    async def get_by_id(
        self, product_id: str, event_id: Optional[str] = None, *, active_only: bool = True
    ) -> Optional[Product]:
        query = {"_id": to_object_id(product_id)}
        if active_only:
            query["isActive"] = True
        if event_id is not None:
            query["eventId"] = to_object_id(event_id)
        doc = await self.col.find_one(query)
        return Product.model_validate(doc) if doc else None

    async def get_many(self, ids: Iterable[str], *, active_only: bool = True) -> List[Product]:
        query = {"_id": {"$in": to_object_ids(ids)}}
        if active_only:
            query["isActive"] = True
        cursor = self.col.find(query)
        return [Product.model_validate(doc) async for doc in cursor]

    async def inc_stock(
        self, product_id: str, delta: int, *, session: Optional[AsyncIOMotorClientSession] = None
    ) -> bool:
        """
        Atomically add `delta` (may be negative) to the product stock.
        Returns False when no product matched.
        """
        res = await self.col.update_one(
            {"_id": to_object_id(product_id)},
            {"$inc": {"stock": delta}, "$set": {"updatedAt": datetime.now(timezone.utc)}},
            session=session,
        )
        return res.matched_count > 0


class ConsumptionTypeRepo:
    def __init__(self, db: AsyncIOMotorDatabase, collection_name: str = COL_CONSUMPTION_TYPES):
        self.col = db[collection_name]

    async def get_by_id(self, consumption_type_id: str, event_id: Optional[str] = None) -> Optional[ConsumptionType]:
        query = {"_id": to_object_id(consumption_type_id), "isActive": True}
        if event_id is not None:
            query["eventId"] = to_object_id(event_id)
        doc = await self.col.find_one(query)
        return ConsumptionType.model_validate(doc) if doc else None
