# app/db/mongo.py
from __future__ import annotations
from dataclasses import dataclass
import logging
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError
import certifi

from app.core.config import Settings

logger = logging.getLogger(__name__)


@dataclass
class MongoHandle:
    """Connection resources owned by the app lifespan and injected from there."""
    client: AsyncIOMotorClient
    db: AsyncIOMotorDatabase
    supports_transactions: bool


async def detect_transaction_support(client: AsyncIOMotorClient) -> bool:
    """Multi-document transactions need a replica set member or a mongos router."""
    try:
        hello = await client.admin.command("hello")
    except PyMongoError as e:
        logger.warning("Mongo 'hello' failed, assuming no transaction support: %s", e)
        return False
    return bool(hello.get("setName")) or hello.get("msg") == "isdbgrid"


def _new_client(settings: Settings) -> AsyncIOMotorClient:
    opts = dict(
        uuidRepresentation="standard",
        serverSelectionTimeoutMS=settings.mongo_timeout_ms,
        connectTimeoutMS=settings.mongo_timeout_ms,
    )
    if settings.MONGO_TLS:
        opts.update(tls=True, tlsCAFile=certifi.where())  # critical on containers
    return AsyncIOMotorClient(settings.MONGO_URI, **opts)


async def connect(settings: Settings) -> MongoHandle:
    """
    Create the Motor client and resolve the transaction capability once.
    A failed initial ping does not crash the app: the client stays lazy and
    the first real query will try again.
    """
    client = _new_client(settings)
    db = client[settings.MONGO_DB]
    try:
        await client.admin.command("ping")
        logger.info("Mongo connected (ping ok)")
    except PyMongoError as e:
        logger.warning("Mongo ping at startup failed, connection will be attempted lazily: %s", e)

    if settings.MONGO_TRANSACTIONS is not None:
        supports = settings.MONGO_TRANSACTIONS
        logger.info("Mongo transactions forced by config: %s", supports)
    else:
        supports = await detect_transaction_support(client)
        logger.info("Mongo transactions detected: %s", supports)
    if not supports:
        logger.warning("Reservations will update stock WITHOUT atomicity. Use a replica set in production.")

    return MongoHandle(client=client, db=db, supports_transactions=supports)


async def disconnect(handle: MongoHandle | None) -> None:
    if handle is not None:
        handle.client.close()
