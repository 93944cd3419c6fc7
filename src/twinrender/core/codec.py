"""Structured serialisation of object graphs crossing a process boundary.

Request state travels between the server and client substrates as text (HTTP
headers, embedded script elements, channel frames). This module encodes values
to JSON where primitives stay literal and everything else becomes a tagged
descriptor ``[kind, type_name, payload]``.

`Iterable`
: containers (``list``, ``tuple``, ``set``, ``frozenset``, ``dict``). Mappings
  store ``[key, value]`` pairs so insertion order and non-string keys survive.

`ToJSON`
: values exposing ``to_json()`` (rebuilt with ``from_json()`` when the class
  provides it) and a handful of well-known standard types.

`Object`
: plain records. Only public instance attributes are written; attributes
  starting with an underscore stay on the originating side.

Decoding resolves type names against the caller's table first and the global
registry (see :func:`register_type`) second. Cyclic graphs are not supported and
are rejected while encoding.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
import json
from typing import Any, TypeVar
from uuid import UUID

from .exceptions import CodecError


ITERABLE = "Iterable"
TO_JSON = "ToJSON"
OBJECT = "Object"

T = TypeVar("T", bound=type)
TypeTable = Mapping[str, type] | Iterable[type]

_CONTAINERS: tuple[type, ...] = (dict, list, tuple, set, frozenset)
_REGISTRY: dict[str, type] = {}


@dataclass(frozen=True, slots=True)
class _Adapter:
    """Conversion pair for standard types without a ``to_json`` method."""

    type_: type
    encode: Callable[[Any], Any]
    decode: Callable[[Any], Any]


_ADAPTERS: dict[str, _Adapter] = {
    "datetime": _Adapter(datetime, datetime.isoformat, datetime.fromisoformat),
    "date": _Adapter(date, date.isoformat, date.fromisoformat),
    "UUID": _Adapter(UUID, str, UUID),
    "Decimal": _Adapter(Decimal, str, Decimal),
}


def register_type(cls: T) -> T:
    """Make ``cls`` resolvable by name for every :func:`deserialize` call."""
    name = cls.__name__
    existing = _REGISTRY.get(name)
    if existing is not None and existing is not cls:
        raise CodecError(f"Type name '{name}' is already registered by {existing!r}")
    _REGISTRY[name] = cls
    return cls


def serialize(value: Any) -> str:
    """Encode ``value`` into tagged JSON text."""
    return json.dumps(_encode(value, set()), separators=(",", ":"))


def deserialize(text: str | bytes, types: TypeTable | None = None) -> Any:
    """Rebuild a value produced by :func:`serialize`."""
    try:
        raw = json.loads(text)
    except (TypeError, ValueError) as exc:
        raise CodecError(f"Serialised payload is not valid JSON: {exc}") from exc
    return _decode(raw, _type_table(types))


def _type_table(types: TypeTable | None) -> dict[str, type]:
    if types is None:
        return {}
    if isinstance(types, Mapping):
        return dict(types)
    return {cls.__name__: cls for cls in types}


def _is_primitive(value: Any) -> bool:
    return value is None or isinstance(value, (bool, int, float, str))


def _encode(value: Any, active: set[int]) -> Any:
    if _is_primitive(value):
        return value

    marker = id(value)
    if marker in active:
        raise CodecError(
            f"Cannot serialise a cyclic reference through {type(value).__name__}"
        )
    active.add(marker)
    try:
        return _encode_compound(value, active)
    finally:
        active.discard(marker)


def _encode_compound(value: Any, active: set[int]) -> list[Any]:
    for base in _CONTAINERS:
        if isinstance(value, base):
            name = _container_name(value, base)
            if isinstance(value, dict):
                payload = [
                    [_encode(key, active), _encode(item, active)] for key, item in value.items()
                ]
            else:
                payload = [_encode(item, active) for item in value]
            return [ITERABLE, name, payload]

    to_json = getattr(value, "to_json", None)
    if callable(to_json):
        return [TO_JSON, type(value).__name__, _encode(to_json(), active)]

    adapter = _ADAPTERS.get(type(value).__name__)
    if adapter is not None and type(value) is adapter.type_:
        return [TO_JSON, type(value).__name__, adapter.encode(value)]

    try:
        attributes = vars(value)
    except TypeError as exc:
        raise CodecError(f"Unsupported value of type {type(value).__name__}") from exc

    payload = {
        key: _encode(item, active)
        for key, item in attributes.items()
        if not key.startswith("_")
    }
    return [OBJECT, type(value).__name__, payload]


def _container_name(value: Any, base: type) -> str:
    name = type(value).__name__
    if type(value) is base or name in _REGISTRY:
        return name
    return base.__name__


def _resolve(name: str, table: Mapping[str, type]) -> type:
    cls = table.get(name) or _REGISTRY.get(name)
    if cls is None:
        for base in _CONTAINERS:
            if base.__name__ == name:
                return base
        raise CodecError(f"Unknown serialised type '{name}'")
    return cls


_REBUILD_ERRORS = (TypeError, ValueError, AttributeError, ArithmeticError)


def _decode_pair(pair: Any, table: Mapping[str, type]) -> tuple[Any, Any]:
    if not isinstance(pair, list) or len(pair) != 2:
        raise CodecError(f"Mapping entry must be a [key, value] pair, got {pair!r}")
    return _decode(pair[0], table), _decode(pair[1], table)


def _decode(raw: Any, table: Mapping[str, type]) -> Any:
    if _is_primitive(raw):
        return raw
    if not isinstance(raw, list) or len(raw) != 3:
        raise CodecError(f"Malformed descriptor: {raw!r}")

    kind, name, payload = raw
    if not isinstance(name, str):
        raise CodecError(f"Descriptor type name must be a string, got {name!r}")

    if kind == ITERABLE:
        cls = _resolve(name, table)
        if not issubclass(cls, _CONTAINERS):
            raise CodecError(f"'{name}' is not a container type")
        if not isinstance(payload, list):
            raise CodecError(f"Iterable payload for '{name}' must be a list")
        if issubclass(cls, dict):
            items: list[Any] = [_decode_pair(pair, table) for pair in payload]
        else:
            items = [_decode(item, table) for item in payload]
        return _rebuild(name, cls, items)

    if kind == TO_JSON:
        adapter = _ADAPTERS.get(name)
        if adapter is not None and name not in table and name not in _REGISTRY:
            return _rebuild(name, adapter.decode, payload)
        cls = _resolve(name, table)
        converted = _decode(payload, table)
        from_json = getattr(cls, "from_json", None)
        return _rebuild(name, from_json if callable(from_json) else cls, converted)

    if kind == OBJECT:
        cls = _resolve(name, table)
        if not isinstance(payload, dict):
            raise CodecError(f"Object payload for '{name}' must be a mapping")
        try:
            instance = cls.__new__(cls)
            for key, item in payload.items():
                object.__setattr__(instance, key, _decode(item, table))
        except _REBUILD_ERRORS as exc:
            raise CodecError(f"Cannot rebuild '{name}': {exc}") from exc
        return instance

    raise CodecError(f"Unrecognised descriptor kind {kind!r}")


def _rebuild(name: str, factory: Callable[[Any], Any], payload: Any) -> Any:
    try:
        return factory(payload)
    except _REBUILD_ERRORS as exc:
        raise CodecError(f"Cannot rebuild '{name}': {exc}") from exc


__all__ = [
    "ITERABLE",
    "OBJECT",
    "TO_JSON",
    "deserialize",
    "register_type",
    "serialize",
]
