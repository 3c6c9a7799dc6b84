from typing import Optional, Type, TypeVar
from pydantic import BaseModel
from redis.asyncio import Redis

M = TypeVar("M", bound=BaseModel)


async def cache_get_model(redis: Redis, key: str, model: Type[M]) -> Optional[M]:
    if raw := await redis.get(key):
        return model.model_validate_json(raw)
    return None


async def cache_set_model(redis: Redis, key: str, value: BaseModel, ex: int) -> None:
    # stored by alias, the same shape the API returns
    await redis.set(key, value.model_dump_json(by_alias=True), ex=ex)


async def cache_delete(redis: Redis, *keys: str) -> int:
    return await redis.delete(*keys) if keys else 0
