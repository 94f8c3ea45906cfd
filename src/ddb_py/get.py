from __future__ import annotations

from typing import TYPE_CHECKING, Any, TextIO

from .context import Context
from .dispatch import RETURN_CONSUMED_CAPACITY, TOTAL, dispatch, dump_request
from .errors import ItemNotFoundError

if TYPE_CHECKING:
    from .table import Table


class Get[T]:
    def __init__(self, table: Table[T], hash_key: Any) -> None:
        self._table = table
        self._hash_key = hash_key
        self._range_key: Any | None = None
        self._consistent_read = False
        self._debug: TextIO | None = None

    def range(self, value: Any) -> Get[T]:
        self._range_key = value
        return self

    def consistent_read(self, enabled: bool = True) -> Get[T]:
        self._consistent_read = bool(enabled)
        return self

    def debug(self, stream: TextIO) -> Get[T]:
        self._debug = stream
        return self

    def get_item_input(self) -> dict[str, Any]:
        return {
            "TableName": self._table.spec.table_name,
            "Key": self._table.make_key(self._hash_key, self._range_key),
            "ConsistentRead": self._consistent_read,
            RETURN_CONSUMED_CAPACITY: TOTAL,
        }

    def one(self, *, ctx: Context | None = None) -> T:
        req = self.get_item_input()
        if self._debug is not None:
            dump_request(self._debug, "GetItem", req)

        resp = dispatch(
            self._table.client,
            "get_item",
            req,
            ctx=ctx or Context.background(),
            consumed=self._table.consumed,
            kind="read",
        )

        item = resp.get("Item")
        if not item:
            raise ItemNotFoundError("item not found")
        return self._table.codec.decode(item)
