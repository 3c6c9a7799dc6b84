from __future__ import annotations
from datetime import datetime, timezone
from typing import Annotated, Any
from pydantic import AfterValidator, AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.utils.money import from_minor, to_minor


def _as_str(v: Any) -> Any:
    # ObjectId and friends come back from Motor; the domain only sees strings
    return v if v is None or isinstance(v, str) else str(v)


def _as_money(v: Any) -> Any:
    return str(v) if isinstance(v, (int, float)) else v


def _as_utc(v: datetime) -> datetime:
    # Mongo hands back naive datetimes that are UTC
    return v.replace(tzinfo=timezone.utc) if v.tzinfo is None else v


IdStr = Annotated[str, BeforeValidator(_as_str)]
Money = Annotated[str, BeforeValidator(_as_money), AfterValidator(lambda s: from_minor(to_minor(s)))]
UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]


def id_field(default: Any = ...) -> Any:
    """Reads `_id` (documents) or `id` (payloads), always serializes as `id`."""
    return Field(default, validation_alias=AliasChoices("_id", "id"), serialization_alias="id")


class CamelModel(BaseModel):
    """Documents are camelCase; attributes stay snake_case."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")
