from typing import Any, Iterable, List
from bson import ObjectId


def to_object_id(value: Any) -> Any:
    """Hex ids become ObjectId; anything else is used as stored (string keys, tests)."""
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return value


def to_object_ids(values: Iterable[Any]) -> List[Any]:
    return [to_object_id(v) for v in values]
