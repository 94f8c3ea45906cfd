from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from .errors import InvalidExpressionError
from .model import TableSpec
from .values import to_value

UPDATE_KINDS = ("SET", "REMOVE", "ADD", "DELETE")

# "#Name" references an attribute, "?" consumes the next positional value
_TOKEN_RE = re.compile(r"#([A-Za-z_][A-Za-z0-9_]*)|\?")


@dataclass(frozen=True)
class CompiledExpression:
    names: Mapping[str, str] = field(default_factory=dict)
    values: Mapping[str, Any] = field(default_factory=dict)
    condition: str | None = None
    update: str | None = None
    filter: str | None = None

    def request_fields(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.names:
            out["ExpressionAttributeNames"] = dict(self.names)
        if self.values:
            out["ExpressionAttributeValues"] = dict(self.values)
        if self.condition is not None:
            out["ConditionExpression"] = self.condition
        if self.update is not None:
            out["UpdateExpression"] = self.update
        if self.filter is not None:
            out["FilterExpression"] = self.filter
        return out


class Expression:
    """Accumulates expression clauses for a single operation.

    Every ``#Name`` reference is replaced by a ``#nN`` placeholder and every
    ``?`` by a ``:vN`` placeholder, numbered in first-use order. The same
    attribute, or an equal value, reuses its placeholder. Clause methods raise
    InvalidExpressionError and leave the builder unchanged when a fragment
    cannot be compiled.

    Not safe for concurrent mutation.
    """

    def __init__(self, spec: TableSpec | None = None) -> None:
        self._spec = spec
        self.names: dict[str, str] = {}
        self.values: dict[str, Any] = {}
        self._updates: dict[str, list[str]] = {kind: [] for kind in UPDATE_KINDS}
        self._conditions: list[str] = []
        self._filters: list[str] = []

    def set(self, fragment: str, *values: Any) -> None:
        self._updates["SET"].append(self._compile(fragment, values))

    def remove(self, fragment: str, *values: Any) -> None:
        self._updates["REMOVE"].append(self._compile(fragment, values))

    def add(self, fragment: str, *values: Any) -> None:
        self._updates["ADD"].append(self._compile(fragment, values))

    def delete(self, fragment: str, *values: Any) -> None:
        self._updates["DELETE"].append(self._compile(fragment, values))

    def condition(self, fragment: str, *values: Any) -> None:
        self._conditions.append(self._compile(fragment, values))

    def filter(self, fragment: str, *values: Any) -> None:
        self._filters.append(self._compile(fragment, values))

    def update_expression(self) -> str | None:
        parts = [f"{kind} {', '.join(clauses)}" for kind, clauses in self._updates.items() if clauses]
        return " ".join(parts) if parts else None

    def condition_expression(self) -> str | None:
        return _join_and(self._conditions)

    def filter_expression(self) -> str | None:
        return _join_and(self._filters)

    def compile(self) -> CompiledExpression:
        return CompiledExpression(
            names=dict(self.names),
            values=dict(self.values),
            condition=self.condition_expression(),
            update=self.update_expression(),
            filter=self.filter_expression(),
        )

    def _compile(self, fragment: str, values: Sequence[Any]) -> str:
        if not isinstance(fragment, str) or not fragment.strip():
            raise InvalidExpressionError("expression fragment is empty")

        names = dict(self.names)
        encoded = dict(self.values)
        pending = list(values)
        out: list[str] = []
        pos = 0

        for match in _TOKEN_RE.finditer(fragment):
            out.append(fragment[pos : match.start()])
            pos = match.end()

            name = match.group(1)
            if name is not None:
                out.append(self._name_ref(name, names))
                continue

            if not pending:
                raise InvalidExpressionError(
                    f"{fragment!r}: more value placeholders than values ({len(values)} supplied)"
                )
            out.append(self._value_ref(fragment, pending.pop(0), encoded))

        if pending:
            raise InvalidExpressionError(
                f"{fragment!r}: {len(pending)} value(s) supplied without a matching placeholder"
            )
        out.append(fragment[pos:])

        self.names = names
        self.values = encoded
        return "".join(out)

    def _name_ref(self, name: str, names: dict[str, str]) -> str:
        attribute_name = name
        if self._spec is not None:
            attr = self._spec.attribute(name)
            if attr is None:
                raise InvalidExpressionError(f"unknown attribute: {name}")
            attribute_name = attr.attribute_name

        for ref, existing in names.items():
            if existing == attribute_name:
                return ref

        ref = f"#n{len(names) + 1}"
        names[ref] = attribute_name
        return ref

    def _value_ref(self, fragment: str, value: Any, encoded: dict[str, Any]) -> str:
        try:
            av = to_value(value).encode()
        except (TypeError, ValueError, ArithmeticError) as err:
            raise InvalidExpressionError(f"{fragment!r}: cannot encode value {value!r}: {err}") from err

        for ref, existing in encoded.items():
            if existing == av:
                return ref

        ref = f":v{len(encoded) + 1}"
        encoded[ref] = av
        return ref


def _join_and(clauses: Sequence[str]) -> str | None:
    if not clauses:
        return None
    if len(clauses) == 1:
        return clauses[0]
    return " AND ".join(f"({c})" for c in clauses)
