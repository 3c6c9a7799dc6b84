# app/api/deps.py
from fastapi import Request
from motor.motor_asyncio import AsyncIOMotorDatabase
from redis.asyncio import Redis
from app.domain.services.stock_svc import StockController

# Dependency for injecting the MongoDB database into endpoints/services
def mongo_db(request: Request) -> AsyncIOMotorDatabase:
    return request.app.state.mongo.db

# Dependency for injecting the Redis client (None when the cache is disabled)
def redis_dep(request: Request) -> Redis | None:
    return getattr(request.app.state, "redis", None)

# Process-wide stock controller built at startup
def stock_dep(request: Request) -> StockController:
    return request.app.state.stock
