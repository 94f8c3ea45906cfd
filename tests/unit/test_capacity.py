from __future__ import annotations

import threading

from ddb_py.capacity import CapacitySnapshot, ConsumedCapacity


def test_add_attributes_total_units_by_kind() -> None:
    consumed = ConsumedCapacity()
    consumed.add({"TableName": "t", "CapacityUnits": 1.5}, kind="read")
    consumed.add({"TableName": "t", "CapacityUnits": 2.0}, kind="write")

    assert consumed.snapshot() == CapacitySnapshot(capacity_units=3.5, read_units=1.5, write_units=2.0)


def test_add_prefers_explicit_read_and_write_units() -> None:
    consumed = ConsumedCapacity()
    consumed.add({"CapacityUnits": 3.0, "ReadCapacityUnits": 1.0, "WriteCapacityUnits": 2.0}, kind="read")

    assert consumed.capacity_units == 3.0
    assert consumed.read_units == 1.0
    assert consumed.write_units == 2.0


def test_add_ignores_missing_capacity() -> None:
    consumed = ConsumedCapacity()
    consumed.add(None, kind="read")
    consumed.add({}, kind="write")
    assert consumed.snapshot() == CapacitySnapshot()


def test_concurrent_adds_are_not_lost() -> None:
    consumed = ConsumedCapacity()

    def worker() -> None:
        for _ in range(500):
            consumed.add({"CapacityUnits": 0.5}, kind="read")

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert consumed.capacity_units == 8 * 500 * 0.5
    assert consumed.read_units == 8 * 500 * 0.5
