"""Reference-stable helpers for immutable segment state.

Segment states are plain Python values kept read-only: mappings are wrapped in
``MappingProxyType``, sequences are tuples, sets are frozensets and records are
frozen pydantic models. The update helpers here return the *original* object
whenever an update would not change its value, which is what lets getters use
identity checks instead of deep comparison.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Iterable, Mapping, Sequence

from pydantic import BaseModel

EMPTY: Mapping[Any, Any] = MappingProxyType({})


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()


def freeze(value: Any) -> Any:
    """Recursively convert dicts, lists and sets into read-only equivalents."""
    if isinstance(value, Mapping):
        return MappingProxyType({k: freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze(v) for v in value)
    if isinstance(value, (set, frozenset)):
        return frozenset(freeze(v) for v in value)
    return value


def thaw(value: Any) -> Any:
    """Recursively convert frozen state back into plain dicts and lists."""
    if isinstance(value, BaseModel):
        return thaw(value.model_dump())
    if isinstance(value, Mapping):
        return {k: thaw(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [thaw(v) for v in value]
    if isinstance(value, (set, frozenset)):
        return {thaw(v) for v in value}
    return value


def same(a: Any, b: Any) -> bool:
    """Identity first, then value equality between values of the same type.

    ``1``, ``1.0`` and ``True`` compare equal in Python but are different
    values here, also when nested inside containers or model fields.
    """
    if a is b:
        return True
    if type(a) is not type(b):
        return False
    if isinstance(a, BaseModel):
        return all(same(getattr(a, name), getattr(b, name)) for name in type(a).model_fields)
    if isinstance(a, Mapping):
        return len(a) == len(b) and all(k in b and same(v, b[k]) for k, v in a.items())
    if isinstance(a, (list, tuple)):
        return len(a) == len(b) and all(same(x, y) for x, y in zip(a, b))
    try:
        return bool(a == b)
    except Exception:
        return False


def get_in(value: Any, path: Iterable[Any], default: Any = MISSING) -> Any:
    """Walk ``path`` through mappings, sequences and model attributes."""
    current = value
    for key in path:
        if isinstance(current, Mapping):
            if key not in current:
                return default
            current = current[key]
        elif isinstance(current, Sequence) and not isinstance(current, str):
            if not isinstance(key, int) or not -len(current) <= key < len(current):
                return default
            current = current[key]
        elif isinstance(current, BaseModel) and isinstance(key, str) and key in type(current).model_fields:
            current = getattr(current, key)
        else:
            return default
    return current


def assoc(mapping: Mapping[Any, Any], key: Any, value: Any) -> Mapping[Any, Any]:
    """Return ``mapping`` with ``key`` set to ``value``; same object if unchanged."""
    if key in mapping and same(mapping[key], value):
        return mapping
    updated = dict(mapping)
    updated[key] = value
    return MappingProxyType(updated)


def dissoc(mapping: Mapping[Any, Any], *keys: Any) -> Mapping[Any, Any]:
    """Return ``mapping`` without ``keys``; same object if none were present."""
    present = [k for k in keys if k in mapping]
    if not present:
        return mapping
    updated = dict(mapping)
    for key in present:
        del updated[key]
    return MappingProxyType(updated)


def merge(mapping: Mapping[Any, Any], updates: Mapping[Any, Any]) -> Mapping[Any, Any]:
    """Shallow-merge ``updates`` into ``mapping``; same object if nothing changed."""
    changed = {k: v for k, v in updates.items() if k not in mapping or not same(mapping[k], v)}
    if not changed:
        return mapping
    updated = dict(mapping)
    updated.update(changed)
    return MappingProxyType(updated)


def assoc_in(mapping: Mapping[Any, Any], path: Sequence[Any], value: Any) -> Mapping[Any, Any]:
    """Set a nested mapping value, copying only the mappings along ``path``."""
    if not path:
        raise ValueError("assoc_in requires a non-empty path")
    head, rest = path[0], path[1:]
    if not rest:
        return assoc(mapping, head, value)
    child = mapping.get(head, EMPTY)
    if not isinstance(child, Mapping):
        raise TypeError(f"Cannot assoc into non-mapping value at {head!r}")
    return assoc(mapping, head, assoc_in(child, rest, value))


def replace_if_changed(current: Any, candidate: Any) -> Any:
    """Return ``current`` when ``candidate`` is value-equal to it."""
    return current if same(current, candidate) else candidate
