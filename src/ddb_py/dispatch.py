from __future__ import annotations

import base64
import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol, TextIO

from .capacity import CapacityKind, ConsumedCapacity
from .context import Context

log = logging.getLogger(__name__)

RETURN_CONSUMED_CAPACITY = "ReturnConsumedCapacity"
TOTAL = "TOTAL"


class StoreAPI(Protocol):
    """The subset of the boto3 ``dynamodb`` client this package calls."""

    def get_item(self, **kwargs: Any) -> Mapping[str, Any]: ...

    def put_item(self, **kwargs: Any) -> Mapping[str, Any]: ...

    def update_item(self, **kwargs: Any) -> Mapping[str, Any]: ...

    def scan(self, **kwargs: Any) -> Mapping[str, Any]: ...


def dispatch(
    client: StoreAPI,
    operation_name: str,
    operation_kwargs: dict[str, Any],
    *,
    ctx: Context,
    consumed: ConsumedCapacity,
    kind: CapacityKind,
) -> Mapping[str, Any]:
    """Issue one store call; store errors propagate unchanged."""
    ctx.check()

    operation_kwargs.setdefault(RETURN_CONSUMED_CAPACITY, TOTAL)
    log.debug("Calling %s with arguments %s", operation_name, operation_kwargs)

    data = getattr(client, operation_name)(**operation_kwargs)

    capacity = data.get("ConsumedCapacity") if data else None
    if isinstance(capacity, Mapping):
        consumed.add(capacity, kind=kind)
        log.debug(
            "%s %s consumed %s units",
            operation_kwargs.get("TableName", ""),
            operation_name,
            capacity.get("CapacityUnits"),
        )
    return data


def dump_request(stream: TextIO, operation_name: str, request: Mapping[str, Any]) -> None:
    stream.write(json.dumps({operation_name: request}, default=_json_default, sort_keys=True) + "\n")


def _json_default(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    return str(value)
