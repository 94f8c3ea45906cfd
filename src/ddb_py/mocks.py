from __future__ import annotations

import threading
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any


class _AnySentinel:
    def __repr__(self) -> str:  # pragma: no cover
        return "ANY"


ANY: Any = _AnySentinel()


def _assert_match(expected: Any, actual: Any, *, path: str) -> None:
    if expected is ANY:
        return

    if isinstance(expected, dict):
        if not isinstance(actual, dict):
            raise AssertionError(f"{path}: expected dict, got {type(actual).__name__}")
        for k, v in expected.items():
            if k not in actual:
                raise AssertionError(f"{path}: missing key {k!r}")
            _assert_match(v, actual[k], path=f"{path}.{k}")
        return

    if isinstance(expected, list):
        if not isinstance(actual, list):
            raise AssertionError(f"{path}: expected list, got {type(actual).__name__}")
        if len(expected) != len(actual):
            raise AssertionError(f"{path}: expected {len(expected)} items, got {len(actual)}")
        for i, (e, a) in enumerate(zip(expected, actual, strict=True)):
            _assert_match(e, a, path=f"{path}[{i}]")
        return

    if expected != actual:
        raise AssertionError(f"{path}: expected {expected!r}, got {actual!r}")


@dataclass(frozen=True)
class ExpectedCall:
    method: str
    expected: Mapping[str, Any] | Callable[[Mapping[str, Any]], None] | None = None
    response: Mapping[str, Any] | None = None
    error: Exception | None = None


class FakeDynamoDBClient:
    """Scripted client: each call must match the next ``expect`` in order."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._expected: list[ExpectedCall] = []
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def expect(
        self,
        method: str,
        expected: Mapping[str, Any] | Callable[[Mapping[str, Any]], None] | None = None,
        *,
        response: Mapping[str, Any] | None = None,
        error: Exception | None = None,
    ) -> None:
        with self._lock:
            self._expected.append(ExpectedCall(method=method, expected=expected, response=response, error=error))

    def assert_no_pending(self) -> None:
        if self._expected:
            raise AssertionError(f"pending expected calls: {self._expected!r}")

    def _handle(self, method: str, req: dict[str, Any]) -> Mapping[str, Any]:
        with self._lock:
            self.calls.append((method, dict(req)))
            if not self._expected:
                raise AssertionError(f"unexpected call: {method}")
            call = self._expected.pop(0)

        if call.method != method:
            raise AssertionError(f"expected {call.method}, got {method}")

        if callable(call.expected):
            call.expected(req)
        elif call.expected is not None:
            _assert_match(dict(call.expected), req, path=method)

        if call.error is not None:
            raise call.error

        return dict(call.response or {})

    def get_item(self, **kwargs: Any) -> Mapping[str, Any]:
        return self._handle("get_item", kwargs)

    def put_item(self, **kwargs: Any) -> Mapping[str, Any]:
        return self._handle("put_item", kwargs)

    def update_item(self, **kwargs: Any) -> Mapping[str, Any]:
        return self._handle("update_item", kwargs)

    def scan(self, **kwargs: Any) -> Mapping[str, Any]:
        return self._handle("scan", kwargs)


class FakeSegmentedStore:
    """Thread-safe in-memory table for exercising segmented scans.

    Record ``i`` (in insertion order) belongs to segment ``i % TotalSegments``.
    Pages hold ``Limit`` (or ``page_size``) records and each page reports
    ``capacity_per_page`` units. Expressions are recorded but not evaluated.
    """

    def __init__(
        self,
        key_attributes: Sequence[str],
        items: Sequence[Mapping[str, Any]] = (),
        *,
        page_size: int = 2,
        capacity_per_page: float = 1.0,
        errors: Mapping[int, Exception] | None = None,
        on_scan: Callable[[Mapping[str, Any]], None] | None = None,
    ) -> None:
        if page_size <= 0:
            raise ValueError("page_size must be > 0")
        self._lock = threading.Lock()
        self._key_attributes = tuple(key_attributes)
        self._items: list[dict[str, Any]] = [dict(item) for item in items]
        self._page_size = page_size
        self._capacity_per_page = capacity_per_page
        self._errors = dict(errors or {})
        self._on_scan = on_scan
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.reported_units = 0.0

    @property
    def items(self) -> list[dict[str, Any]]:
        with self._lock:
            return [dict(item) for item in self._items]

    def scan_calls(self) -> list[dict[str, Any]]:
        with self._lock:
            return [req for method, req in self.calls if method == "scan"]

    def get_item(self, **kwargs: Any) -> Mapping[str, Any]:
        with self._lock:
            self.calls.append(("get_item", dict(kwargs)))
            index = self._find(kwargs["Key"])
            resp: dict[str, Any] = {"ConsumedCapacity": self._capacity(kwargs)}
            if index is not None:
                resp["Item"] = dict(self._items[index])
            return resp

    def put_item(self, **kwargs: Any) -> Mapping[str, Any]:
        with self._lock:
            self.calls.append(("put_item", dict(kwargs)))
            item = dict(kwargs["Item"])
            index = self._find(self._key_of(item))
            if index is None:
                self._items.append(item)
            else:
                self._items[index] = item
            return {"ConsumedCapacity": self._capacity(kwargs)}

    def update_item(self, **kwargs: Any) -> Mapping[str, Any]:
        with self._lock:
            self.calls.append(("update_item", dict(kwargs)))
            resp: dict[str, Any] = {"ConsumedCapacity": self._capacity(kwargs)}
            index = self._find(kwargs["Key"])
            if index is not None and kwargs.get("ReturnValues") in {"ALL_NEW", "ALL_OLD"}:
                resp["Attributes"] = dict(self._items[index])
            return resp

    def scan(self, **kwargs: Any) -> Mapping[str, Any]:
        if self._on_scan is not None:
            self._on_scan(kwargs)

        with self._lock:
            self.calls.append(("scan", dict(kwargs)))
            segment = int(kwargs.get("Segment", 0))
            total = int(kwargs.get("TotalSegments", 1))
            if segment in self._errors:
                raise self._errors[segment]

            owned = [item for i, item in enumerate(self._items) if i % total == segment]
            start = 0
            start_key = kwargs.get("ExclusiveStartKey")
            if start_key:
                for pos, item in enumerate(owned):
                    if self._key_of(item) == dict(start_key):
                        start = pos + 1
                        break

            size = int(kwargs.get("Limit") or self._page_size)
            page = owned[start : start + size]
            resp: dict[str, Any] = {
                "Items": [dict(item) for item in page],
                "Count": len(page),
                "ConsumedCapacity": self._capacity(kwargs),
            }
            if start + size < len(owned):
                resp["LastEvaluatedKey"] = self._key_of(page[-1])
            return resp

    def _capacity(self, req: Mapping[str, Any]) -> dict[str, Any]:
        self.reported_units += self._capacity_per_page
        return {"TableName": req.get("TableName", ""), "CapacityUnits": self._capacity_per_page}

    def _key_of(self, item: Mapping[str, Any]) -> dict[str, Any]:
        return {k: item[k] for k in self._key_attributes if k in item}

    def _find(self, key: Mapping[str, Any]) -> int | None:
        for i, item in enumerate(self._items):
            if self._key_of(item) == dict(key):
                return i
        return None
