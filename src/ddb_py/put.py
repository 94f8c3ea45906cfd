from __future__ import annotations

from typing import TYPE_CHECKING, Any, TextIO

from .context import Context
from .dispatch import RETURN_CONSUMED_CAPACITY, TOTAL, dispatch, dump_request
from .errors import InvalidExpressionError
from .expression import Expression

if TYPE_CHECKING:
    from .table import Table


class Put[T]:
    def __init__(self, table: Table[T], record: T) -> None:
        self._table = table
        self._record = record
        self._expr = Expression(table.spec)
        self._err: InvalidExpressionError | None = None
        self._debug: TextIO | None = None

    def condition(self, fragment: str, *values: Any) -> Put[T]:
        try:
            self._expr.condition(fragment, *values)
        except InvalidExpressionError as err:
            if self._err is None:
                self._err = err
        return self

    def debug(self, stream: TextIO) -> Put[T]:
        self._debug = stream
        return self

    def put_item_input(self) -> dict[str, Any]:
        if self._err is not None:
            raise self._err

        req: dict[str, Any] = {
            "TableName": self._table.spec.table_name,
            "Item": self._table.codec.encode(self._record),
            RETURN_CONSUMED_CAPACITY: TOTAL,
        }
        req.update(self._expr.compile().request_fields())
        return req

    def tx(self) -> dict[str, Any]:
        req = self.put_item_input()
        del req[RETURN_CONSUMED_CAPACITY]
        return {"Put": req}

    def run(self, *, ctx: Context | None = None) -> None:
        req = self.put_item_input()
        if self._debug is not None:
            dump_request(self._debug, "PutItem", req)

        dispatch(
            self._table.client,
            "put_item",
            req,
            ctx=ctx or Context.background(),
            consumed=self._table.consumed,
            kind="write",
        )
