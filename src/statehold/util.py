"""Clone and equality helpers that treat dicts as ordered maps.

JSON has no map type: a dict with non-string keys either fails to encode or
silently turns its keys into strings. stringify() encodes every dict as
``{"dataType": "Map", "value": [[key, value], ...]}`` so parse() can rebuild
it exactly. Objects encode as JSON objects of their own attributes and come
back from parse() as SimpleNamespace, the same way a class instance and a
plain object literal serialize identically.

Two notions of equality live here:

- shallow_equals() compares the stringify() text. Cheap, catches any
  structural change, but is sensitive to dict insertion order.
- deep_equals() walks both values. Dict and attribute order is irrelevant,
  and a dict never equals an object even when they serialize alike.
"""

from __future__ import annotations

import json
from datetime import date, datetime, time
from enum import Enum
from types import ModuleType, SimpleNamespace
from typing import Any

MAP_TYPE = "Map"

_SCALARS = (str, int, float, bool, type(None))


def is_object(value: Any) -> bool:
    """True for instances carrying their own attributes.

    Classes, modules, callables and enum members are not objects here.
    """
    return (
        hasattr(value, "__dict__")
        and not isinstance(value, (type, ModuleType, Enum))
        and not callable(value)
    )


def own_fields(obj: Any) -> dict[str, Any]:
    """An object's own attributes, minus anything callable."""
    return {key: value for key, value in vars(obj).items() if not callable(value)}


# ─── Serialization ───────────────────────────────────────────────────────────


def _encode(value: Any) -> Any:
    if isinstance(value, Enum):
        return _encode(value.value)
    if isinstance(value, _SCALARS):
        return value
    if isinstance(value, dict):
        return {
            "dataType": MAP_TYPE,
            "value": [[_encode(k), _encode(v)] for k, v in value.items()],
        }
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_encode(item) for item in value]
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if is_object(value):
        return {str(key): _encode(item) for key, item in own_fields(value).items()}
    return str(value)


def _freeze(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(item) for item in value)
    if isinstance(value, dict):
        return tuple((_freeze(k), _freeze(v)) for k, v in value.items())
    if isinstance(value, (set, frozenset)):
        return frozenset(_freeze(item) for item in value)
    if isinstance(value, SimpleNamespace):
        return tuple((k, _freeze(v)) for k, v in vars(value).items())
    return value


class KeyNamespace(SimpleNamespace):
    """A SimpleNamespace usable as a dict key.

    Object keys of a parsed map come back as these. The hash covers the
    attribute values, so do not mutate one while it is a key.
    """

    def __hash__(self) -> int:
        return hash(_freeze(self))


def hashable_key(key: Any) -> Any:
    """Turn a decoded map key into something a dict accepts."""
    if isinstance(key, (list, tuple)):
        return tuple(hashable_key(item) for item in key)
    if isinstance(key, SimpleNamespace) and not isinstance(key, KeyNamespace):
        return KeyNamespace(**vars(key))
    return key


def _decode_object(obj: dict[str, Any]) -> Any:
    if obj.get("dataType") == MAP_TYPE and "value" in obj:
        return {hashable_key(key): value for key, value in obj["value"]}
    return SimpleNamespace(**obj)


def stringify(value: Any) -> str:
    """Serialize to JSON text, encoding dicts as ordered maps."""
    return json.dumps(_encode(value), separators=(",", ":"))


def parse(text: str) -> Any:
    """Inverse of stringify()."""
    return json.loads(text, object_hook=_decode_object)


def shallow_clone(value: Any) -> Any:
    """Clone by round-tripping through stringify()/parse()."""
    if value is None:
        return None
    return parse(stringify(value))


def shallow_equals(a: Any, b: Any) -> bool:
    return stringify(a) == stringify(b)


# ─── Structural clone / equality ─────────────────────────────────────────────


def deep_clone(value: Any) -> Any:
    """Recursively copy lists, tuples, sets, dicts and objects.

    Scalars, datetimes and enum members are immutable and returned as-is.
    Objects are copied into a SimpleNamespace of their own attributes.
    Object dict keys and set members are copied into KeyNamespace so the
    copy stays hashable.
    """
    if isinstance(value, dict):
        return {_clone_key(k): deep_clone(v) for k, v in value.items()}
    if isinstance(value, list):
        return [deep_clone(item) for item in value]
    if isinstance(value, tuple):
        return tuple(deep_clone(item) for item in value)
    if isinstance(value, frozenset):
        return frozenset(_clone_key(item) for item in value)
    if isinstance(value, set):
        return {_clone_key(item) for item in value}
    if is_object(value):
        return SimpleNamespace(**{k: deep_clone(v) for k, v in own_fields(value).items()})
    return value


def _clone_key(key: Any) -> Any:
    clone = hashable_key(deep_clone(key))
    try:
        hash(clone)
    except TypeError:
        return key
    return clone


def _kind(value: Any) -> str:
    if value is None:
        return "none"
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "str"
    if isinstance(value, dict):
        return "map"
    if isinstance(value, (list, tuple)):
        return "sequence"
    if isinstance(value, (set, frozenset)):
        return "set"
    if is_object(value):
        return "object"
    return "other"


_MISSING = object()


def _match(key: Any, keys: Any) -> Any:
    # Object keys and their KeyNamespace copies hash differently.
    if key in keys:
        return key
    return next((other for other in keys if deep_equals(key, other)), _MISSING)


def deep_equals(a: Any, b: Any) -> bool:
    """Structural equality. Values of different kinds are never equal."""
    kind = _kind(a)
    if kind != _kind(b):
        return False

    if kind == "sequence":
        return len(a) == len(b) and all(deep_equals(x, y) for x, y in zip(a, b))

    if kind == "map":
        if len(a) != len(b):
            return False
        for key, value in a.items():
            match = _match(key, b)
            if match is _MISSING or not deep_equals(value, b[match]):
                return False
        return True

    if kind == "set":
        return len(a) == len(b) and all(_match(item, b) is not _MISSING for item in a)

    if kind == "object":
        fields_a, fields_b = own_fields(a), own_fields(b)
        if fields_a.keys() != fields_b.keys():
            return False
        return all(deep_equals(value, fields_b[key]) for key, value in fields_a.items())

    return a == b


def get_path(data: Any, path: str) -> Any:
    """Resolve a dotted path like ``"employees.1.name"``.

    Segments index dicts by key, sequences by position and objects by
    attribute. Returns None as soon as a segment is missing.
    """
    current = data
    for segment in path.split("."):
        if current is None:
            return None
        if isinstance(current, dict):
            if segment not in current and segment.lstrip("-").isdigit():
                current = current.get(int(segment))
            else:
                current = current.get(segment)
        elif isinstance(current, (list, tuple)):
            try:
                current = current[int(segment)]
            except (ValueError, IndexError):
                return None
        else:
            current = getattr(current, segment, None)
    return current
