from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from botocore.exceptions import ClientError

from .mocks import ANY, FakeDynamoDBClient, FakeSegmentedStore


def client_error(code: str, message: str = "", *, operation: str = "Scan") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message or code}}, operation)


def consumed(units: float, *, table_name: str = "") -> Mapping[str, Any]:
    return {"TableName": table_name, "CapacityUnits": units}


__all__ = [
    "ANY",
    "FakeDynamoDBClient",
    "FakeSegmentedStore",
    "client_error",
    "consumed",
]
