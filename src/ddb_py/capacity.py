from __future__ import annotations

import threading
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Literal

type CapacityKind = Literal["read", "write"]


@dataclass(frozen=True)
class CapacitySnapshot:
    capacity_units: float = 0.0
    read_units: float = 0.0
    write_units: float = 0.0


class ConsumedCapacity:
    """Running total of the capacity units reported by the store.

    One instance lives as long as its table handle and is shared by every
    operation (and every scan worker) issued through it.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._capacity_units = 0.0
        self._read_units = 0.0
        self._write_units = 0.0

    def add(self, consumed: Mapping[str, Any] | None, *, kind: CapacityKind) -> None:
        if not consumed:
            return

        total = float(consumed.get("CapacityUnits") or 0.0)
        read = consumed.get("ReadCapacityUnits")
        write = consumed.get("WriteCapacityUnits")
        if read is None and write is None:
            read, write = (total, 0.0) if kind == "read" else (0.0, total)

        with self._lock:
            self._capacity_units += total
            self._read_units += float(read or 0.0)
            self._write_units += float(write or 0.0)

    def snapshot(self) -> CapacitySnapshot:
        with self._lock:
            return CapacitySnapshot(
                capacity_units=self._capacity_units,
                read_units=self._read_units,
                write_units=self._write_units,
            )

    @property
    def capacity_units(self) -> float:
        return self.snapshot().capacity_units

    @property
    def read_units(self) -> float:
        return self.snapshot().read_units

    @property
    def write_units(self) -> float:
        return self.snapshot().write_units
