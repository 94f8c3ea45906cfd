from __future__ import annotations

from typing import Any

from .errors import KeyTypeMismatchError, MissingRangeKeyError, UnexpectedRangeKeyError
from .model import AttributeSpec, TableSpec
from .values import Value, is_empty_key, to_value


def make_key(spec: TableSpec, hash_value: Any, range_value: Any | None = None) -> dict[str, Any]:
    """Build the attribute map identifying exactly one record of ``spec``."""
    key = {spec.hash_key.attribute_name: encode_key_value(spec.hash_key, hash_value).encode()}

    if spec.range_key is None:
        if range_value is not None:
            raise UnexpectedRangeKeyError(f"table {spec.table_name} does not define a range key")
        return key

    if range_value is None:
        raise MissingRangeKeyError(f"range key {spec.range_key.attribute_name} is required")

    key[spec.range_key.attribute_name] = encode_key_value(spec.range_key, range_value).encode()
    return key


def encode_key_value(attr: AttributeSpec, value: Any) -> Value:
    if value is None:
        raise KeyTypeMismatchError(f"{attr.attribute_name}: key value is required")

    try:
        encoded = to_value(value)
    except (TypeError, ValueError, ArithmeticError) as err:
        raise KeyTypeMismatchError(f"{attr.attribute_name}: {err}") from err

    if encoded.type != attr.attribute_type:
        raise KeyTypeMismatchError(
            f"{attr.attribute_name}: expected {attr.attribute_type} value, got {encoded.type}"
        )
    if is_empty_key(encoded):
        raise KeyTypeMismatchError(f"{attr.attribute_name}: key value must not be empty")
    return encoded
