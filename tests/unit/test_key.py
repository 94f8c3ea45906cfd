from __future__ import annotations

from dataclasses import dataclass

import pytest

from ddb_py.errors import KeyTypeMismatchError, MissingRangeKeyError, UnexpectedRangeKeyError
from ddb_py.key import make_key
from ddb_py.model import ddb_field, inspect
from ddb_py.values import Value


@dataclass
class Reading:
    sensor: str = ddb_field(name="Sensor", roles=["hash"])
    at: int = ddb_field(name="At", roles=["range"])
    value: float = ddb_field(default=0.0)


@dataclass
class Blob:
    digest: bytes = ddb_field(roles=["hash"])


def test_make_key_hash_and_range() -> None:
    spec = inspect("readings", Reading)
    assert make_key(spec, "s1", 10) == {"Sensor": {"S": "s1"}, "At": {"N": "10"}}
    assert make_key(spec, Value.string("s1"), Value.number(10)) == {"Sensor": {"S": "s1"}, "At": {"N": "10"}}


def test_make_key_hash_only() -> None:
    spec = inspect("blobs", Blob)
    assert make_key(spec, b"\x01") == {"digest": {"B": b"\x01"}}


def test_make_key_requires_range_when_declared() -> None:
    spec = inspect("readings", Reading)
    with pytest.raises(MissingRangeKeyError):
        make_key(spec, "s1")


def test_make_key_rejects_unexpected_range() -> None:
    spec = inspect("blobs", Blob)
    with pytest.raises(UnexpectedRangeKeyError):
        make_key(spec, b"\x01", "extra")


@pytest.mark.parametrize(
    ("hash_value", "range_value"),
    [
        (1, 10),
        ("s1", "ten"),
        ("", 10),
        (None, 10),
        ("s1", Value.string("10")),
        ("s1", True),
    ],
)
def test_make_key_rejects_mismatched_or_empty_values(hash_value, range_value) -> None:
    spec = inspect("readings", Reading)
    with pytest.raises(KeyTypeMismatchError):
        make_key(spec, hash_value, range_value)
