from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable, Mapping
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Any, Literal, TextIO

from .codec import RecordCodec
from .context import Context
from .dispatch import RETURN_CONSUMED_CAPACITY, TOTAL, dispatch, dump_request
from .errors import CancelledError, ItemNotFoundError, ValidationError
from .expression import Expression

if TYPE_CHECKING:
    from .table import Table

log = logging.getLogger(__name__)

type ScanState = Literal["idle", "running", "completed", "cancelled", "failed"]


class Item[T]:
    """One scanned record, decoded on demand."""

    def __init__(self, raw: Mapping[str, Any], codec: RecordCodec[T]) -> None:
        self._raw = raw
        self._codec = codec

    @property
    def raw(self) -> Mapping[str, Any]:
        return self._raw

    def decode(self) -> T:
        return self._codec.decode(self._raw)


type ScanCallback[T] = Callable[[Item[T]], bool]


class Scan[T]:
    """Fluent Scan builder and parallel segment runner.

    ``each`` runs one worker thread per segment. A worker pages through its
    segment until ``LastEvaluatedKey`` is absent, the callback returns a falsy
    value, the callback raises, or the run is cancelled. Any stop or error
    cancels the sibling workers before their next page (or record). The first
    error raised by any worker is re-raised unchanged; later ones are dropped.
    """

    def __init__(self, table: Table[T]) -> None:
        self._table = table
        self._expr = Expression(table.spec)
        self._err: ValidationError | None = None
        self._consistent_read = False
        self._total_segments: int | None = None
        self._limit: int | None = None
        self._debug: TextIO | None = None
        self._state: ScanState = "idle"

    @property
    def state(self) -> ScanState:
        return self._state

    @property
    def err(self) -> ValidationError | None:
        return self._err

    def consistent_read(self, enabled: bool = True) -> Scan[T]:
        self._consistent_read = bool(enabled)
        return self

    def filter(self, fragment: str, *values: Any) -> Scan[T]:
        try:
            self._expr.filter(fragment, *values)
        except ValidationError as err:
            self._keep(err)
        return self

    def total_segments(self, n: int) -> Scan[T]:
        if isinstance(n, bool) or not isinstance(n, int) or n <= 0:
            self._keep(ValidationError(f"total_segments must be a positive integer, got {n!r}"))
        else:
            self._total_segments = n
        return self

    def limit(self, n: int) -> Scan[T]:
        if isinstance(n, bool) or not isinstance(n, int) or n <= 0:
            self._keep(ValidationError(f"limit must be a positive integer, got {n!r}"))
        else:
            self._limit = n
        return self

    def debug(self, stream: TextIO) -> Scan[T]:
        self._debug = stream
        return self

    def scan_input(self, segment: int = 0, start_key: Mapping[str, Any] | None = None) -> dict[str, Any]:
        if self._err is not None:
            raise self._err
        return self._scan_input(self._expr.compile().request_fields(), segment, self._segments(), start_key)

    def each(self, callback: ScanCallback[T], *, ctx: Context | None = None) -> None:
        """Deliver every matching record to ``callback``; return True from it to keep going."""
        if self._err is not None:
            raise self._err

        parent = ctx or Context.background()
        total = self._segments()
        expr_fields = self._expr.compile().request_fields()
        if self._debug is not None:
            dump_request(self._debug, "Scan", self._scan_input(expr_fields, 0, total, None))

        run_ctx = parent.child()
        errors: queue.Queue[Exception] = queue.Queue(maxsize=total)
        interrupted = threading.Event()

        def worker(segment: int) -> None:
            try:
                if not self._scan_segment(run_ctx, expr_fields, segment, total, callback):
                    interrupted.set()
            except CancelledError as err:
                # swallowed only when this run was stopped; otherwise it is a worker error
                if run_ctx.cancelled:
                    interrupted.set()
                    return
                errors.put_nowait(err)
                run_ctx.cancel()
            except Exception as err:
                errors.put_nowait(err)
                run_ctx.cancel()

        self._state = "running"
        log.debug("scanning %s with %d segment(s)", self._table.spec.table_name, total)
        with ThreadPoolExecutor(max_workers=total, thread_name_prefix="ddb-scan") as executor:
            futures = [executor.submit(worker, segment) for segment in range(total)]
            for future in futures:
                future.result()

        first_err: Exception | None = None
        while not errors.empty():
            err = errors.get_nowait()
            if first_err is None:
                first_err = err
            else:
                log.debug("discarding additional scan error: %r", err)

        if first_err is not None:
            self._state = "failed"
            raise first_err

        # a deadline passing after every segment finished does not fail the scan
        parent_err = parent.error() if interrupted.is_set() else None
        if parent_err is not None:
            self._state = "cancelled"
            raise parent_err

        self._state = "completed"

    def first(self, *, ctx: Context | None = None) -> T:
        """Return the first record delivered by any segment (not the lowest key)."""
        lock = threading.Lock()
        found: list[T] = []

        def capture(item: Item[T]) -> bool:
            with lock:
                if not found:
                    found.append(item.decode())
            return False

        self.each(capture, ctx=ctx)
        if not found:
            raise ItemNotFoundError("item not found")
        return found[0]

    def all(self, *, ctx: Context | None = None) -> list[T]:
        lock = threading.Lock()
        out: list[T] = []

        def collect(item: Item[T]) -> bool:
            decoded = item.decode()
            with lock:
                out.append(decoded)
            return True

        self.each(collect, ctx=ctx)
        return out

    def _scan_segment(
        self,
        ctx: Context,
        expr_fields: Mapping[str, Any],
        segment: int,
        total: int,
        callback: ScanCallback[T],
    ) -> bool:
        """Page through one segment; False when cancellation cut it short."""
        start_key: Mapping[str, Any] | None = None

        while True:
            if ctx.cancelled:
                return False

            req = self._scan_input(expr_fields, segment, total, start_key)
            resp = dispatch(
                self._table.client,
                "scan",
                req,
                ctx=ctx,
                consumed=self._table.consumed,
                kind="read",
            )

            for raw in resp.get("Items") or []:
                if ctx.cancelled:
                    return False
                if not callback(Item(raw, self._table.codec)):
                    ctx.cancel()
                    return True

            start_key = resp.get("LastEvaluatedKey")
            if not start_key:
                log.debug("segment %d/%d exhausted", segment, total)
                return True

    def _scan_input(
        self,
        expr_fields: Mapping[str, Any],
        segment: int,
        total: int,
        start_key: Mapping[str, Any] | None,
    ) -> dict[str, Any]:
        req: dict[str, Any] = {
            "TableName": self._table.spec.table_name,
            "ConsistentRead": self._consistent_read,
            "Segment": segment,
            "TotalSegments": total,
            RETURN_CONSUMED_CAPACITY: TOTAL,
        }
        req.update(expr_fields)
        if self._limit is not None:
            req["Limit"] = self._limit
        if start_key:
            req["ExclusiveStartKey"] = dict(start_key)
        return req

    def _segments(self) -> int:
        return self._total_segments or self._table.default_total_segments

    def _keep(self, err: ValidationError) -> None:
        if self._err is None:
            self._err = err
