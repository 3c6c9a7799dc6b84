# app/core/lifespan.py
from contextlib import asynccontextmanager
import logging
from fastapi import FastAPI
from app.db import mongo, redis as r
from app.core.config import get_settings
from app.domain.services.stock_svc import StockController

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()

    # --- Startup ---
    # Mongo is mandatory
    handle = await mongo.connect(settings)
    app.state.mongo = handle
    # one controller per process: it remembers a transaction downgrade
    app.state.stock = StockController(handle.db, handle.client, handle.supports_transactions)

    # Redis optional (invoice cache)
    app.state.redis = await r.connect(settings.REDIS_URL)

    # Application runs
    yield

    # --- Shutdown ---
    try:
        await r.disconnect(app.state.redis)
    finally:
        await mongo.disconnect(handle)
        logger.info("Mongo disconnected")
