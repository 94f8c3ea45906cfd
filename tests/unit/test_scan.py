from __future__ import annotations

import io
import json
import threading
from dataclasses import dataclass
from typing import Any

import pytest

from ddb_py import Context, Table, ddb_field
from ddb_py.errors import CancelledError, DeadlineExceededError, ItemNotFoundError, ValidationError
from ddb_py.mocks import FakeSegmentedStore
from ddb_py.scan import Item
from ddb_py.settings import Settings
from ddb_py.testkit import client_error


@dataclass
class Event:
    id: str = ddb_field(name="ID", roles=["hash"])
    seq: int = ddb_field(default=0)


def _items(count: int) -> list[dict[str, Any]]:
    return [{"ID": {"S": f"e{i}"}, "seq": {"N": str(i)}} for i in range(count)]


def _table(store: FakeSegmentedStore, **kwargs: Any) -> Table[Event]:
    return Table(Event, table_name="events", client=store, **kwargs)


def test_single_segment_pages_until_exhausted() -> None:
    store = FakeSegmentedStore(["ID"], _items(5), page_size=2)
    table = _table(store)
    seen: list[Event] = []

    def collect(item: Item[Event]) -> bool:
        seen.append(item.decode())
        return True

    scan = table.scan()
    scan.each(collect)

    assert [e.seq for e in seen] == [0, 1, 2, 3, 4]
    assert scan.state == "completed"

    calls = store.scan_calls()
    assert len(calls) == 3
    assert all(c["Segment"] == 0 and c["TotalSegments"] == 1 for c in calls)
    assert all(c["ReturnConsumedCapacity"] == "TOTAL" for c in calls)
    assert "ExclusiveStartKey" not in calls[0]
    assert calls[1]["ExclusiveStartKey"] == {"ID": {"S": "e1"}}
    assert table.consumed_capacity().read_units == 3.0


def test_callback_stop_ends_the_scan_early() -> None:
    store = FakeSegmentedStore(["ID"], _items(5), page_size=2)
    delivered: list[str] = []

    def stop_at_second(item: Item[Event]) -> bool:
        delivered.append(item.raw["ID"]["S"])
        return len(delivered) < 2

    scan = _table(store).scan()
    scan.each(stop_at_second)

    assert delivered == ["e0", "e1"]
    assert len(store.scan_calls()) == 1
    assert scan.state == "completed"


def test_first_returns_a_record() -> None:
    store = FakeSegmentedStore(["ID"], _items(3))
    got = _table(store).scan().total_segments(2).first()
    assert got.id in {"e0", "e1", "e2"}


def test_first_on_empty_table_raises_item_not_found() -> None:
    store = FakeSegmentedStore(["ID"])
    with pytest.raises(ItemNotFoundError):
        _table(store).scan().first()


def test_parallel_segments_deliver_every_record_once() -> None:
    store = FakeSegmentedStore(["ID"], _items(10), page_size=2, capacity_per_page=0.5)
    table = _table(store)
    scan = table.scan().total_segments(4)

    records = scan.all()

    assert sorted(e.seq for e in records) == list(range(10))
    calls = store.scan_calls()
    assert {c["Segment"] for c in calls} == {0, 1, 2, 3}
    assert all(c["TotalSegments"] == 4 for c in calls)
    # segments 0 and 1 own three records (two pages each), 2 and 3 own two
    assert len(calls) == 6
    assert table.consumed_capacity().read_units == 3.0
    assert table.consumed_capacity().capacity_units == store.reported_units
    assert scan.state == "completed"


def test_segment_count_defaults_to_settings() -> None:
    store = FakeSegmentedStore(["ID"], _items(6))
    table = _table(store, settings=Settings(total_segments=3))

    assert len(table.scan().all()) == 6
    assert {c["TotalSegments"] for c in store.scan_calls()} == {3}


def test_store_error_is_raised_unchanged_and_cancels_siblings() -> None:
    err = client_error("ProvisionedThroughputExceededException")
    store = FakeSegmentedStore(["ID"], _items(8), page_size=1, errors={1: err})
    scan = _table(store).scan().total_segments(2)

    with pytest.raises(type(err)) as excinfo:
        scan.all()

    assert excinfo.value is err
    assert scan.state == "failed"


def test_only_one_of_several_errors_is_raised() -> None:
    e0 = client_error("InternalServerError")
    e1 = client_error("ThrottlingException")
    store = FakeSegmentedStore(["ID"], _items(4), errors={0: e0, 1: e1})

    with pytest.raises(type(e0)) as excinfo:
        _table(store).scan().total_segments(2).all()
    assert excinfo.value is e0 or excinfo.value is e1


def test_callback_exception_is_the_scan_error() -> None:
    store = FakeSegmentedStore(["ID"], _items(4))

    def boom(item: Item[Event]) -> bool:
        raise RuntimeError("bad record")

    with pytest.raises(RuntimeError, match="bad record"):
        _table(store).scan().each(boom)


def test_cancelled_context_stops_before_the_first_page() -> None:
    store = FakeSegmentedStore(["ID"], _items(4))
    ctx = Context()
    ctx.cancel()
    scan = _table(store).scan().total_segments(2)

    with pytest.raises(CancelledError):
        scan.all(ctx=ctx)
    assert store.scan_calls() == []
    assert scan.state == "cancelled"


def test_expired_deadline_raises_deadline_exceeded() -> None:
    store = FakeSegmentedStore(["ID"], _items(4))
    with pytest.raises(DeadlineExceededError):
        _table(store).scan().all(ctx=Context.with_timeout(0))


def test_cancel_during_a_page_request_stops_delivery() -> None:
    ctx = Context()
    store = FakeSegmentedStore(["ID"], _items(4), on_scan=lambda req: ctx.cancel())
    delivered: list[Item[Event]] = []

    with pytest.raises(CancelledError):
        _table(store).scan().each(lambda item: delivered.append(item) is None, ctx=ctx)

    assert delivered == []
    assert len(store.scan_calls()) == 1


def test_workers_run_concurrently() -> None:
    barrier = threading.Barrier(3, timeout=5)
    store = FakeSegmentedStore(["ID"], _items(3), on_scan=lambda req: barrier.wait())

    assert len(_table(store).scan().total_segments(3).all()) == 3


@pytest.mark.parametrize("n", [0, -1, True, 1.5])
def test_invalid_segment_count_is_deferred(n: Any) -> None:
    store = FakeSegmentedStore(["ID"], _items(1))
    scan = _table(store).scan().total_segments(n)

    assert isinstance(scan.err, ValidationError)
    with pytest.raises(ValidationError, match="total_segments"):
        scan.all()
    assert store.scan_calls() == []


def test_scan_input_carries_filter_limit_and_consistency() -> None:
    scan = _table(FakeSegmentedStore(["ID"])).scan().filter("#seq > ?", 3).limit(25).consistent_read()

    assert scan.scan_input() == {
        "TableName": "events",
        "ConsistentRead": True,
        "Segment": 0,
        "TotalSegments": 1,
        "ReturnConsumedCapacity": "TOTAL",
        "FilterExpression": "#n1 > :v1",
        "ExpressionAttributeNames": {"#n1": "seq"},
        "ExpressionAttributeValues": {":v1": {"N": "3"}},
        "Limit": 25,
    }


def test_invalid_filter_is_deferred() -> None:
    scan = _table(FakeSegmentedStore(["ID"])).scan().filter("#seq > ?")
    with pytest.raises(ValidationError, match="more value placeholders"):
        scan.scan_input()


def test_debug_writes_the_rendered_request() -> None:
    out = io.StringIO()
    store = FakeSegmentedStore(["ID"], _items(1))

    _table(store).scan().debug(out).all()

    dumped = json.loads(out.getvalue())
    assert dumped["Scan"]["TableName"] == "events"
    assert dumped["Scan"]["Segment"] == 0


def test_cancellation_raised_by_the_callback_itself_fails_the_scan() -> None:
    store = FakeSegmentedStore(["ID"], _items(6), page_size=1)
    table = _table(store)
    stale = Context()
    stale.cancel()
    delivered: list[str] = []

    def lookup(item: Item[Event]) -> bool:
        delivered.append(item.raw["ID"]["S"])
        table.get(item.raw["ID"]["S"]).one(ctx=stale)
        return True

    scan = table.scan().total_segments(2)
    with pytest.raises(CancelledError):
        scan.each(lookup)

    assert scan.state == "failed"
    assert len(delivered) < 6


def test_callback_raised_cancelled_error_is_returned_unchanged() -> None:
    own = CancelledError("lookup cancelled")

    def fail(item: Item[Event]) -> bool:
        raise own

    store = FakeSegmentedStore(["ID"], _items(5), page_size=1)
    scan = _table(store).scan()
    with pytest.raises(CancelledError) as excinfo:
        scan.each(fail)

    assert excinfo.value is own
    assert scan.state == "failed"
    assert len(store.scan_calls()) == 1


def test_deadline_passing_after_the_last_record_does_not_fail_the_scan() -> None:
    clock = [100.0]
    ctx = Context.with_timeout(5.0, now=lambda: clock[0])
    store = FakeSegmentedStore(["ID"], _items(1))

    def slow(item: Item[Event]) -> bool:
        clock[0] += 10.0
        return True

    scan = _table(store).scan()
    scan.each(slow, ctx=ctx)

    assert scan.state == "completed"
