from __future__ import annotations

from typing import TYPE_CHECKING, Any, TextIO

from .context import Context
from .dispatch import RETURN_CONSUMED_CAPACITY, TOTAL, dispatch, dump_request
from .errors import InvalidExpressionError
from .expression import Expression

if TYPE_CHECKING:
    from .table import Table

_TX_FIELDS = frozenset(
    {
        "TableName",
        "Key",
        "UpdateExpression",
        "ConditionExpression",
        "ExpressionAttributeNames",
        "ExpressionAttributeValues",
        "ReturnValuesOnConditionCheckFailure",
    }
)


class Update[T]:
    """Fluent UpdateItem builder.

    Clause methods never raise; the first invalid clause is kept and raised by
    ``update_item_input``, ``tx`` or ``run``.
    """

    def __init__(self, table: Table[T], hash_key: Any) -> None:
        self._table = table
        self._hash_key = hash_key
        self._range_key: Any | None = None
        self._expr = Expression(table.spec)
        self._err: InvalidExpressionError | None = None
        self._return_values: str | None = None
        self._return_values_on_condition_check_failure: str | None = None
        self._debug: TextIO | None = None

    def range(self, value: Any) -> Update[T]:
        self._range_key = value
        return self

    def set(self, fragment: str, *values: Any) -> Update[T]:
        return self._clause(self._expr.set, fragment, values)

    def remove(self, fragment: str, *values: Any) -> Update[T]:
        return self._clause(self._expr.remove, fragment, values)

    def add(self, fragment: str, *values: Any) -> Update[T]:
        return self._clause(self._expr.add, fragment, values)

    def delete(self, fragment: str, *values: Any) -> Update[T]:
        return self._clause(self._expr.delete, fragment, values)

    def condition(self, fragment: str, *values: Any) -> Update[T]:
        return self._clause(self._expr.condition, fragment, values)

    def return_values(self, option: str) -> Update[T]:
        self._return_values = option
        return self

    def return_values_on_condition_check_failure(self, option: str) -> Update[T]:
        self._return_values_on_condition_check_failure = option
        return self

    def debug(self, stream: TextIO) -> Update[T]:
        self._debug = stream
        return self

    @property
    def err(self) -> InvalidExpressionError | None:
        return self._err

    def update_item_input(self) -> dict[str, Any]:
        if self._err is not None:
            raise self._err

        key = self._table.make_key(self._hash_key, self._range_key)
        compiled = self._expr.compile()
        if compiled.update is None:
            raise InvalidExpressionError("no update clauses provided")

        req: dict[str, Any] = {
            "TableName": self._table.spec.table_name,
            "Key": key,
            RETURN_CONSUMED_CAPACITY: TOTAL,
        }
        req.update(compiled.request_fields())
        if self._return_values is not None:
            req["ReturnValues"] = self._return_values
        if self._return_values_on_condition_check_failure is not None:
            req["ReturnValuesOnConditionCheckFailure"] = self._return_values_on_condition_check_failure
        return req

    def tx(self) -> dict[str, Any]:
        """Project this update into a TransactWriteItems entry."""
        req = self.update_item_input()
        return {"Update": {k: v for k, v in req.items() if k in _TX_FIELDS}}

    def run(self, *, ctx: Context | None = None) -> T | None:
        req = self.update_item_input()
        if self._debug is not None:
            dump_request(self._debug, "UpdateItem", req)

        resp = dispatch(
            self._table.client,
            "update_item",
            req,
            ctx=ctx or Context.background(),
            consumed=self._table.consumed,
            kind="write",
        )

        attrs = resp.get("Attributes")
        if not attrs or self._return_values not in {"ALL_NEW", "ALL_OLD"}:
            return None
        return self._table.codec.decode(attrs)

    def _clause(self, method: Any, fragment: str, values: tuple[Any, ...]) -> Update[T]:
        try:
            method(fragment, *values)
        except InvalidExpressionError as err:
            if self._err is None:
                self._err = err
        return self
