# app/domain/repositories/promotion_repo.py

from __future__ import annotations
from datetime import datetime
from typing import List
import logging
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import ValidationError
from app.domain.models.product import Product
from app.domain.models.promotion import Promotion
from app.domain.services.constants import COL_PROMOTIONS
from app.utils.ids import to_object_id, to_object_ids

logger = logging.getLogger(__name__)

class PromotionRepo:
    """
    Promotions attached to products. Only promotions valid at a given instant
    (active, startDate <= now < endDate) are ever handed to pricing.
    """

    def __init__(self, db: AsyncIOMotorDatabase, collection_name: str = COL_PROMOTIONS):
        self.col = db[collection_name]

    async def get_valid_for_product(self, product: Product, now: datetime) -> List[Promotion]:
        if not product.promotions:
            return []
        query = {
            "_id": {"$in": to_object_ids(product.promotions)},
            "isActive": True,
            "startDate": {"$lte": now},
            "endDate": {"$gt": now},
        }
        if product.event_id is not None:
            query["eventId"] = to_object_id(product.event_id)

        by_id: dict[str, Promotion] = {}
        async for doc in self.col.find(query):
            try:
                promo = Promotion.model_validate(doc)
            except ValidationError as e:
                # a malformed promotion must not block every order on the product
                logger.warning("promotion skipped id=%s err=%s", doc.get("_id"), e.errors()[:3])
                continue
            if promo.is_valid_at(now) and promo.applies_to(product.id):
                by_id[promo.id] = promo

        # keep the order in which the product lists its promotions (selector tie-break)
        return [by_id[pid] for pid in dict.fromkeys(product.promotions) if pid in by_id]
