# helpers shared by the repositories: one JSON array per key, records in insertion order
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional, Sequence, TypeVar

from db import database
from db.errors import CorruptRecordError

T = TypeVar("T")


def parse_records(
    key: str, raw: Any, from_dict: Callable[[Dict[str, Any]], T]
) -> List[T]:
    """Turn a decoded JSON array into records, or raise CorruptRecordError."""
    if not isinstance(raw, list):
        raise CorruptRecordError(f"{key!r} does not hold a list of records")
    try:
        return [from_dict(doc) for doc in raw]
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise CorruptRecordError(f"malformed record under {key!r}: {e!r}") from e


async def load(key: str, from_dict: Callable[[Dict[str, Any]], T]) -> List[T]:
    raw = await database.get(key)
    if raw is None:
        return []
    return parse_records(key, raw, from_dict)


def dump(records: Sequence) -> List[Dict[str, Any]]:
    return [r.to_dict() for r in records]


async def store(key: str, records: Sequence) -> None:
    await database.set(key, dump(records))


def find_index(records: Sequence, record_id: str) -> Optional[int]:
    return next((i for i, r in enumerate(records) if r.id == record_id), None)


def merge(record: T, changes: Dict[str, Any]) -> T:
    """Apply a partial patch; the id of a record never changes."""
    changes = {k: v for k, v in changes.items() if k != "id"}
    return replace(record, **changes)
