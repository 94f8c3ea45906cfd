from __future__ import annotations

import types
from collections.abc import Mapping
from dataclasses import MISSING, fields, is_dataclass
from decimal import Decimal
from typing import Any, Protocol, Union, cast, get_args, get_origin

from boto3.dynamodb.types import Binary, TypeDeserializer

from .errors import CodecError
from .model import AttributeConverter, AttributeSpec, TableSpec, field_options, resolve_hints
from .values import to_value


class RecordCodec[T](Protocol):
    """Encode/decode pair bound to one record shape for a table's lifetime."""

    def encode(self, record: T) -> dict[str, Any]: ...

    def decode(self, item: Mapping[str, Any]) -> T: ...

    def convert_key(self, attr: AttributeSpec, value: Any) -> Any: ...


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if value is False:
        return True
    if value == 0:
        return True
    if isinstance(value, (str, bytes, bytearray)) and len(value) == 0:
        return True
    if isinstance(value, (list, dict, set, frozenset, tuple)) and len(value) == 0:
        return True
    return False


def _coerce_value(value: Any, annotation: Any) -> Any:
    if value is None:
        return None

    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        args = [a for a in get_args(annotation) if a is not type(None)]
        return _coerce_value(value, args[0]) if len(args) == 1 else value

    if isinstance(value, Binary):
        value = value.value
    if annotation is int and isinstance(value, Decimal):
        return int(value)
    if annotation is float and isinstance(value, Decimal):
        return float(value)
    if annotation is bytearray and isinstance(value, bytes):
        return bytearray(value)

    if origin in (set, frozenset) and isinstance(value, set):
        (elem_type,) = get_args(annotation) or (Any,)
        out = {_coerce_value(v, elem_type) for v in value}
        return frozenset(out) if origin is frozenset else out

    if origin in (list, tuple) and isinstance(value, list):
        args = get_args(annotation)
        elem_type = args[0] if args else Any
        items = [_coerce_value(v, elem_type) for v in value]
        return tuple(items) if origin is tuple else items

    if annotation is tuple and isinstance(value, list):
        return tuple(value)

    return value


class DataclassCodec[T]:
    """Default codec: maps dataclass fields to wire attributes per the TableSpec."""

    def __init__(self, model_type: type[T], spec: TableSpec) -> None:
        if not is_dataclass(model_type):
            raise CodecError("model_type must be a dataclass")

        self._model_type = model_type
        self._spec = spec
        self._deserializer = TypeDeserializer()
        self._hints = resolve_hints(model_type)
        self._converters: dict[str, AttributeConverter] = {}
        self._omitempty: set[str] = set()
        self._required: set[str] = set()
        self._init_fields: set[str] = set()

        for dc_field in fields(cast(Any, model_type)):
            opts = field_options(dc_field)
            if dc_field.init:
                self._init_fields.add(dc_field.name)
            if opts.get("converter") is not None:
                self._converters[dc_field.name] = cast(AttributeConverter, opts["converter"])
            if opts.get("omitempty", False):
                self._omitempty.add(dc_field.name)
            if dc_field.init and dc_field.default is MISSING and dc_field.default_factory is MISSING:
                self._required.add(dc_field.name)
        self._required &= {attr.field_name for attr in spec.attributes}

    def convert_key(self, attr: AttributeSpec, value: Any) -> Any:
        converter = self._converters.get(attr.field_name)
        if converter is not None and value is not None:
            return converter.to_dynamodb(value)
        return value

    def encode(self, record: T) -> dict[str, Any]:
        if not isinstance(record, self._model_type):
            raise CodecError(f"expected {self._model_type.__name__}, got {type(record).__name__}")

        out: dict[str, Any] = {}
        for attr in self._spec.attributes:
            value = getattr(record, attr.field_name)
            if attr.field_name in self._omitempty and _is_empty(value):
                continue
            out[attr.attribute_name] = self._encode_attr(attr, value)

        for key_attr in (self._spec.hash_key, self._spec.range_key):
            if key_attr is not None and key_attr.attribute_name not in out:
                raise CodecError(f"missing key attribute: {key_attr.attribute_name}")
        return out

    def decode(self, item: Mapping[str, Any]) -> T:
        kwargs: dict[str, Any] = {}
        for attr in self._spec.attributes:
            if attr.attribute_name not in item or attr.field_name not in self._init_fields:
                continue

            raw = self._deserializer.deserialize(item[attr.attribute_name])
            converter = self._converters.get(attr.field_name)
            if converter is not None and raw is not None:
                raw = converter.from_dynamodb(raw)
            kwargs[attr.field_name] = _coerce_value(raw, self._hints.get(attr.field_name, Any))

        missing = self._required.difference(kwargs)
        if missing:
            raise CodecError(f"item is missing required fields: {sorted(missing)}")

        try:
            return self._model_type(**kwargs)
        except TypeError as err:
            raise CodecError(str(err)) from err

    def _encode_attr(self, attr: AttributeSpec, value: Any) -> Any:
        converter = self._converters.get(attr.field_name)
        if converter is not None and value is not None:
            value = converter.to_dynamodb(value)

        if attr.attribute_type in {"SS", "NS", "BS"} and isinstance(value, (set, frozenset)) and not value:
            return {"NULL": True}

        try:
            return to_value(value).encode()
        except (TypeError, ValueError, ArithmeticError) as err:
            raise CodecError(f"{attr.field_name}: {err}") from err
