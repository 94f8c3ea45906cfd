from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from boto3.dynamodb.types import TypeSerializer

_serializer = TypeSerializer()

KEY_TYPES = frozenset({"S", "N", "B"})


@dataclass(frozen=True)
class Value:
    """A single encoded attribute value, e.g. ``{"S": "abc"}`` or ``{"N": "42"}``."""

    item: Mapping[str, Any]

    @property
    def type(self) -> str:
        (kind,) = self.item.keys()
        return str(kind)

    def encode(self) -> dict[str, Any]:
        return dict(self.item)

    @staticmethod
    def string(value: str) -> Value:
        if not isinstance(value, str):
            raise TypeError(f"expected str, got {type(value).__name__}")
        return Value({"S": value})

    @staticmethod
    def number(value: int | float | Decimal) -> Value:
        return Value({"N": format_number(value)})

    @staticmethod
    def binary(value: bytes | bytearray) -> Value:
        if not isinstance(value, (bytes, bytearray)):
            raise TypeError(f"expected bytes, got {type(value).__name__}")
        return Value({"B": bytes(value)})

    @staticmethod
    def raw(item: Mapping[str, Any]) -> Value:
        if not isinstance(item, Mapping) or len(item) != 1:
            raise ValueError("attribute value must be a single-key map")
        return Value(dict(item))


def format_number(value: int | float | Decimal) -> str:
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise TypeError(f"expected a number, got {type(value).__name__}")
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            raise ValueError("numbers must be finite")
        value = Decimal(repr(value))
    if not value.is_finite():
        raise ValueError("numbers must be finite")
    return str(value)


def normalize(value: Any) -> Any:
    """Convert floats (also nested ones) to Decimal so TypeSerializer accepts them."""
    if isinstance(value, float):
        return Decimal(format_number(value))
    if isinstance(value, (list, tuple)):
        return [normalize(v) for v in value]
    if isinstance(value, (set, frozenset)):
        return {normalize(v) for v in value}
    if isinstance(value, Mapping):
        return {k: normalize(v) for k, v in value.items()}
    return value


def to_value(value: Any) -> Value:
    if isinstance(value, Value):
        return value
    if isinstance(value, str):
        return Value.string(value)
    if isinstance(value, bool):
        return Value({"BOOL": value})
    if isinstance(value, (int, float, Decimal)):
        return Value.number(value)
    if isinstance(value, (bytes, bytearray)):
        return Value.binary(value)
    encoded = _serializer.serialize(normalize(value))
    for kind in ("SS", "NS", "BS"):
        if kind in encoded:
            # set iteration order is not stable between processes
            encoded = {kind: sorted(encoded[kind])}
    return Value(encoded)


def is_empty_key(value: Value) -> bool:
    inner = value.item[value.type]
    return isinstance(inner, (str, bytes, bytearray)) and len(inner) == 0
