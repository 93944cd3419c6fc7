from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
import json
from uuid import UUID

import pytest

from twinrender.core.codec import deserialize, register_type, serialize
from twinrender.core.exceptions import CodecError


class Point:
    def __init__(self, x: int, y: int) -> None:
        self.x = x
        self.y = y
        self._cache = "local only"


class Money:
    def __init__(self, cents: int) -> None:
        self.cents = cents

    def to_json(self) -> int:
        return self.cents

    @classmethod
    def from_json(cls, value: int) -> Money:
        return cls(value)


def test_primitives_are_written_literally() -> None:
    assert serialize("hello") == '"hello"'
    assert serialize(3) == "3"
    assert serialize(None) == "null"
    assert deserialize("true") is True


def test_containers_use_tagged_descriptors() -> None:
    assert json.loads(serialize((1, 2))) == ["Iterable", "tuple", [1, 2]]
    assert json.loads(serialize({"b": 1, 2: "a"})) == [
        "Iterable",
        "dict",
        [["b", 1], [2, "a"]],
    ]


def test_mapping_order_and_key_types_survive() -> None:
    value = deserialize(serialize({"b": 1, 2: "a", (1, 2): {3}}))

    assert list(value) == ["b", 2, (1, 2)]
    assert value[(1, 2)] == {3}


def test_object_descriptor_skips_private_attributes() -> None:
    raw = json.loads(serialize(Point(1, 2)))
    assert raw == ["Object", "Point", {"x": 1, "y": 2}]

    point = deserialize(serialize(Point(1, 2)), [Point])
    assert isinstance(point, Point)
    assert (point.x, point.y) == (1, 2)
    assert not hasattr(point, "_cache")


def test_to_json_values_are_rebuilt_with_from_json() -> None:
    raw = json.loads(serialize([Money(250)]))
    assert raw == ["Iterable", "list", [["ToJSON", "Money", 250]]]

    (money,) = deserialize(serialize([Money(250)]), {"Money": Money})
    assert isinstance(money, Money)
    assert money.cents == 250


def test_standard_types_are_supported() -> None:
    stamp = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)
    ident = UUID("12345678-1234-5678-1234-567812345678")

    decoded = deserialize(serialize([stamp, ident, Decimal("1.10")]))

    assert decoded == [stamp, ident, Decimal("1.10")]


def test_unknown_type_names_are_rejected() -> None:
    payload = serialize(Point(0, 0))

    with pytest.raises(CodecError, match="Unknown serialised type 'Point'"):
        deserialize(payload)


def test_cycles_are_rejected() -> None:
    items: list[object] = []
    items.append(items)

    with pytest.raises(CodecError, match="cyclic"):
        serialize(items)


def test_shared_references_are_not_cycles() -> None:
    shared = [1]
    assert deserialize(serialize([shared, shared])) == [[1], [1]]


def test_invalid_payloads_raise_codec_error() -> None:
    with pytest.raises(CodecError):
        deserialize("{not json")
    with pytest.raises(CodecError):
        deserialize('["Iterable", "list"]')
    with pytest.raises(CodecError):
        deserialize('["Nope", "list", []]')


@pytest.mark.parametrize(
    "payload",
    [
        '["Iterable","dict",[[1]]]',
        '["Iterable","dict",[[["Iterable","list",[]],1]]]',
        '["Iterable","Point",[]]',
        '["ToJSON","UUID","not-a-uuid"]',
        '["ToJSON","Decimal","abc"]',
        '["ToJSON","datetime",5]',
        '["ToJSON","Point",1]',
    ],
)
def test_structurally_malformed_payloads_raise_codec_error(payload: str) -> None:
    with pytest.raises(CodecError, match="Mapping entry|not a container|Cannot rebuild"):
        deserialize(payload, [Point, Money])


def test_unsupported_values_raise_codec_error() -> None:
    with pytest.raises(CodecError, match="Unsupported"):
        serialize(object())


def test_register_type_rejects_conflicting_names() -> None:
    class PageRequest:
        pass

    with pytest.raises(CodecError, match="already registered"):
        register_type(PageRequest)
