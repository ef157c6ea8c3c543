"""Keyed record collections for server-backed lists (nodes, config maps, roles).

Records are stored frozen in a read-only mapping keyed by their id. Every
handler reuses existing record objects that did not change and returns the
original mapping when an update has no effect, so receiving the same list
twice does not wake up anything that depends on the collection.
"""

from __future__ import annotations

from functools import lru_cache
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Union

from pydantic import BaseModel

from console.shared.core.actions import ActionTag

from .getters import Getter
from .immutable import EMPTY, dissoc, freeze, same
from .segment import Segment

RecordKey = Union[str, Callable[[Any], Any]]
Records = Mapping[Any, Any]


def _key_of(record: Any, key: RecordKey) -> Any:
    if callable(key):
        return key(record)
    if isinstance(record, Mapping):
        if key not in record:
            raise KeyError(f"Record has no '{key}' field: {record!r}")
        return record[key]
    return getattr(record, key)


def _as_list(records: Any) -> list:
    if records is None:
        return []
    if isinstance(records, (Mapping, BaseModel)) or not isinstance(records, Iterable) or isinstance(records, str):
        return [records]
    return list(records)


def _index(state: Records, records: Any, key: RecordKey) -> Dict[Any, Any]:
    """Freeze incoming records, reusing the stored object when equal."""
    indexed: Dict[Any, Any] = {}
    for record in _as_list(records):
        frozen = freeze(record)
        record_id = _key_of(frozen, key)
        existing = state.get(record_id)
        indexed[record_id] = existing if existing is not None and same(existing, frozen) else frozen
    return indexed


def receive_records(state: Records, records: Any, key: RecordKey = "id") -> Records:
    """Replace the collection with ``records``."""
    indexed = _index(state, records, key)
    if len(indexed) == len(state) and all(state.get(k) is v for k, v in indexed.items()):
        return state
    return MappingProxyType(indexed) if indexed else EMPTY


def upsert_records(state: Records, records: Any, key: RecordKey = "id") -> Records:
    """Insert new records and replace changed ones."""
    changed = {k: v for k, v in _index(state, records, key).items() if state.get(k) is not v}
    if not changed:
        return state
    updated = dict(state)
    updated.update(changed)
    return MappingProxyType(updated)


def remove_records(state: Records, keys: Any) -> Records:
    """Drop records by id; ids may be a single id or an iterable of ids."""
    if isinstance(keys, (str, int)) or not isinstance(keys, Iterable):
        keys = [keys]
    return dissoc(state, *keys)


def clear_records(state: Records, _payload: Any = None) -> Records:
    return state if not state else EMPTY


def create_collection_segment(
    *,
    receive: Optional[ActionTag] = None,
    upsert: Optional[ActionTag] = None,
    remove: Optional[ActionTag] = None,
    clear: Optional[ActionTag] = None,
    key: RecordKey = "id",
) -> Segment[Records]:
    """Build a collection segment reacting to the given action tags.

    Args:
        receive: Tag whose payload (a list of records) replaces the collection
        upsert: Tag whose payload (one record or a list) is merged in
        remove: Tag whose payload (one id or a list of ids) is removed
        clear: Tag that empties the collection
        key: Record field name, or function, giving each record's id
    """
    segment: Segment[Records] = Segment(EMPTY)
    if receive is not None:
        segment.add_handler(receive, lambda state, payload: receive_records(state, payload, key))
    if upsert is not None:
        segment.add_handler(upsert, lambda state, payload: upsert_records(state, payload, key))
    if remove is not None:
        segment.add_handler(remove, remove_records)
    if clear is not None:
        segment.add_handler(clear, clear_records)
    return segment


@lru_cache(maxsize=256)
def collection_getter(
    segment_name: str,
    sort_key: Optional[Callable[[Any], Any]] = None,
    reverse: bool = False,
) -> Getter:
    """Getter producing the records of a collection as an ordered tuple.

    The same arguments return the same getter object, so its memoized value
    is reused across calls. Pass a module-level ``sort_key`` rather than a
    fresh lambda to benefit from this.
    """
    def _records(records: Records) -> tuple:
        values = tuple(records.values())
        if sort_key is None:
            return values
        return tuple(sorted(values, key=sort_key, reverse=reverse))

    return Getter(segment_name, compute=_records, name=f"{segment_name}.records")
