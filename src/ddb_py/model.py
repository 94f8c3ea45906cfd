from __future__ import annotations

import types
from collections.abc import Mapping, Sequence
from dataclasses import MISSING, dataclass, field, fields, is_dataclass
from decimal import Decimal
from typing import Any, Protocol, Union, cast, get_args, get_origin, get_type_hints, overload, runtime_checkable

from .errors import DuplicateIndexError, MissingHashKeyError, SchemaError, UnsupportedTypeError
from .values import KEY_TYPES

HASH = "hash"
RANGE = "range"
LSI_RANGE_PREFIX = "lsi_range:"

WIRE_TYPES = frozenset({"S", "N", "B", "BOOL", "NULL", "L", "M", "SS", "NS", "BS"})

_NAMED_TYPES: dict[str, Any] = {
    "str": str,
    "int": int,
    "float": float,
    "bool": bool,
    "bytes": bytes,
    "bytearray": bytearray,
    "Decimal": Decimal,
    "list": list,
    "dict": dict,
}


class AttributeConverter(Protocol):
    def to_dynamodb(self, value: Any) -> Any: ...

    def from_dynamodb(self, value: Any) -> Any: ...


@dataclass(frozen=True)
class AttributeSpec:
    field_name: str
    attribute_name: str
    attribute_type: str


@dataclass(frozen=True)
class TableSpec:
    """Key and attribute layout of one table, derived once per record shape.

    ``local_indexes`` maps an LSI name to its alternate range key. Instances
    are immutable and may be shared between threads without locking.
    """

    table_name: str
    hash_key: AttributeSpec
    range_key: AttributeSpec | None = None
    local_indexes: Mapping[str, AttributeSpec] = field(default_factory=dict)
    attributes: tuple[AttributeSpec, ...] = ()
    _by_name: Mapping[str, AttributeSpec] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not self.table_name:
            raise SchemaError("table_name is required")

        attributes = tuple(self.attributes) or tuple(
            a for a in (self.hash_key, self.range_key, *self.local_indexes.values()) if a is not None
        )
        by_name: dict[str, AttributeSpec] = {}
        for attr in attributes:
            if attr.attribute_type not in WIRE_TYPES:
                raise UnsupportedTypeError(field=attr.field_name, type_name=attr.attribute_type)
            if attr.attribute_name in by_name:
                raise SchemaError(f"duplicate attribute name: {attr.attribute_name}")
            by_name[attr.attribute_name] = attr
        for attr in attributes:
            by_name.setdefault(attr.field_name, attr)

        keys = [self.hash_key, *([self.range_key] if self.range_key is not None else [])]
        for attr in [*keys, *self.local_indexes.values()]:
            if attr.attribute_type not in KEY_TYPES:
                raise UnsupportedTypeError(field=attr.field_name, type_name=attr.attribute_type)
            if by_name.get(attr.attribute_name) != attr:
                raise SchemaError(f"key attribute is not declared: {attr.attribute_name}")

        object.__setattr__(self, "attributes", attributes)
        object.__setattr__(self, "local_indexes", types.MappingProxyType(dict(self.local_indexes)))
        object.__setattr__(self, "_by_name", types.MappingProxyType(by_name))

    def attribute(self, name: str) -> AttributeSpec | None:
        """Look up an attribute by wire name, falling back to its field name."""
        return self._by_name.get(name)

    def lsi(self, index_name: str) -> AttributeSpec | None:
        return self.local_indexes.get(index_name)

    @classmethod
    def from_dataclass(cls, model_type: type[Any], *, table_name: str) -> TableSpec:
        if not is_dataclass(model_type):
            raise SchemaError("model_type must be a dataclass")

        hints = resolve_hints(model_type)
        attributes: list[AttributeSpec] = []
        hash_fields: list[AttributeSpec] = []
        range_fields: list[AttributeSpec] = []
        indexes: dict[str, AttributeSpec] = {}

        for dc_field in fields(model_type):
            opts = field_options(dc_field)
            if opts.get("ignore", False):
                continue

            attr = AttributeSpec(
                field_name=dc_field.name,
                attribute_name=cast(str, opts.get("name") or dc_field.name),
                attribute_type=_attribute_type(dc_field.name, hints.get(dc_field.name, dc_field.type), opts),
            )
            attributes.append(attr)

            for role in cast(list[str], opts.get("roles", [])):
                if role == HASH:
                    hash_fields.append(attr)
                elif role == RANGE:
                    range_fields.append(attr)
                elif role.startswith(LSI_RANGE_PREFIX):
                    index_name = role[len(LSI_RANGE_PREFIX) :]
                    if not index_name:
                        raise SchemaError(f"lsi_range role requires an index name: {dc_field.name}")
                    if index_name in indexes:
                        raise DuplicateIndexError(index_name=index_name)
                    indexes[index_name] = attr
                else:
                    raise SchemaError(f"unknown role {role!r} on field {dc_field.name}")

        if not hash_fields:
            raise MissingHashKeyError(f"{model_type.__name__}: no field is tagged as hash key")
        if len(hash_fields) > 1:
            raise SchemaError(f"model must define exactly one hash key (found {len(hash_fields)})")
        if len(range_fields) > 1:
            raise SchemaError(f"model must define at most one range key (found {len(range_fields)})")

        return cls(
            table_name=table_name,
            hash_key=hash_fields[0],
            range_key=range_fields[0] if range_fields else None,
            local_indexes=indexes,
            attributes=tuple(attributes),
        )


@runtime_checkable
class DescribesSchema(Protocol):
    @classmethod
    def describe_schema(cls, table_name: str) -> TableSpec: ...


def inspect(table_name: str, model: Any) -> TableSpec:
    """Derive the TableSpec for ``model`` (a dataclass type or instance).

    Models implementing ``describe_schema`` supply their own spec and skip reflection.
    """
    if isinstance(model, TableSpec):
        return model

    model_type = model if isinstance(model, type) else type(model)
    describe = getattr(model_type, "describe_schema", None)
    if callable(describe):
        spec = describe(table_name)
        if not isinstance(spec, TableSpec):
            raise SchemaError(f"{model_type.__name__}.describe_schema must return a TableSpec")
        return spec

    return TableSpec.from_dataclass(model_type, table_name=table_name)


def field_options(dc_field: Any) -> dict[str, Any]:
    return cast(dict[str, Any], dc_field.metadata.get("ddb", {}))


@overload
def ddb_field(
    *,
    name: str | None = None,
    roles: Sequence[str] | None = None,
    type_: str | None = None,
    omitempty: bool = False,
    converter: AttributeConverter | None = None,
    ignore: bool = False,
) -> Any: ...


@overload
def ddb_field(
    *,
    name: str | None = None,
    roles: Sequence[str] | None = None,
    type_: str | None = None,
    omitempty: bool = False,
    converter: AttributeConverter | None = None,
    ignore: bool = False,
    default: Any,
) -> Any: ...


@overload
def ddb_field(
    *,
    name: str | None = None,
    roles: Sequence[str] | None = None,
    type_: str | None = None,
    omitempty: bool = False,
    converter: AttributeConverter | None = None,
    ignore: bool = False,
    default_factory: Any,
) -> Any: ...


def ddb_field(
    *,
    name: str | None = None,
    roles: Sequence[str] | None = None,
    type_: str | None = None,
    omitempty: bool = False,
    converter: AttributeConverter | None = None,
    ignore: bool = False,
    default: Any = MISSING,
    default_factory: Any = MISSING,
) -> Any:
    if default is not MISSING and default_factory is not MISSING:
        raise ValueError("ddb_field: cannot set both default and default_factory")

    ddb: dict[str, Any] = {
        "omitempty": omitempty,
        "converter": converter,
        "ignore": ignore,
    }
    if name is not None:
        ddb["name"] = name
    if roles is not None:
        ddb["roles"] = list(roles)
    if type_ is not None:
        ddb["type"] = type_

    return field(default=default, default_factory=default_factory, metadata={"ddb": ddb})


def resolve_hints(model_type: type[Any]) -> dict[str, Any]:
    try:
        return get_type_hints(model_type)
    except (NameError, TypeError):
        # locally defined annotation targets; resolve what we can by name
        out: dict[str, Any] = {}
        for dc_field in fields(model_type):
            ann = dc_field.type
            out[dc_field.name] = _NAMED_TYPES.get(ann, ann) if isinstance(ann, str) else ann
        return out


def _attribute_type(field_name: str, annotation: Any, opts: Mapping[str, Any]) -> str:
    explicit = opts.get("type")
    if explicit is not None:
        if explicit not in WIRE_TYPES:
            raise SchemaError(f"unknown attribute type {explicit!r} on field {field_name}")
        return str(explicit)

    if opts.get("converter") is not None:
        return "S"

    wire_type = _wire_type(annotation)
    if wire_type is None:
        type_name = annotation if isinstance(annotation, str) else getattr(annotation, "__name__", repr(annotation))
        raise UnsupportedTypeError(field=field_name, type_name=str(type_name))
    return wire_type


def _wire_type(tp: Any) -> str | None:
    origin = get_origin(tp)
    if origin is Union or origin is types.UnionType:
        args = [a for a in get_args(tp) if a is not type(None)]
        return _wire_type(args[0]) if len(args) == 1 else None

    if tp is str:
        return "S"
    if tp is bool:
        return "BOOL"
    if tp in (int, float, Decimal):
        return "N"
    if tp in (bytes, bytearray):
        return "B"

    base = origin or tp
    if base in (list, tuple):
        return "L"
    if base is dict:
        return "M"
    if base in (set, frozenset):
        (elem,) = get_args(tp) or (None,)
        elem_type = _wire_type(elem) if elem is not None else None
        return {"S": "SS", "N": "NS", "B": "BS"}.get(elem_type or "")
    return None
