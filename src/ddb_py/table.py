from __future__ import annotations

import logging
from typing import Any

from .capacity import CapacitySnapshot, ConsumedCapacity
from .codec import DataclassCodec, RecordCodec
from .errors import SchemaError
from .get import Get
from .key import make_key
from .model import TableSpec, inspect
from .put import Put
from .scan import Scan
from .settings import Settings, create_client
from .update import Update

log = logging.getLogger(__name__)


class Table[T]:
    """Handle for one table and record shape.

    The TableSpec is derived once here and reused by every operation; the
    consumed-capacity counter lives as long as the handle.
    """

    def __init__(
        self,
        model: type[T] | TableSpec,
        *,
        table_name: str | None = None,
        client: Any | None = None,
        codec: RecordCodec[T] | None = None,
        settings: Settings | None = None,
    ) -> None:
        if isinstance(model, TableSpec):
            if table_name is not None and table_name != model.table_name:
                raise SchemaError(f"table_name {table_name!r} does not match TableSpec {model.table_name!r}")
            if codec is None:
                raise SchemaError("a codec is required when the table is built from a TableSpec")
            spec = model
        else:
            if not table_name:
                raise SchemaError("table_name is required")
            spec = inspect(table_name, model)
            if codec is None:
                codec = DataclassCodec(model, spec)

        self._spec = spec
        self._codec: RecordCodec[T] = codec
        self._settings = settings or Settings.from_env()
        self._client: Any = client if client is not None else create_client(self._settings)
        self._consumed = ConsumedCapacity()
        log.debug("table %s: hash=%s range=%s", spec.table_name, spec.hash_key, spec.range_key)

    @property
    def spec(self) -> TableSpec:
        return self._spec

    @property
    def client(self) -> Any:
        return self._client

    @property
    def codec(self) -> RecordCodec[T]:
        return self._codec

    @property
    def consumed(self) -> ConsumedCapacity:
        return self._consumed

    @property
    def default_total_segments(self) -> int:
        return self._settings.total_segments

    def consumed_capacity(self) -> CapacitySnapshot:
        return self._consumed.snapshot()

    def make_key(self, hash_key: Any, range_key: Any | None = None) -> dict[str, Any]:
        spec = self._spec
        hash_value = self._codec.convert_key(spec.hash_key, hash_key)
        range_value = range_key
        if spec.range_key is not None:
            range_value = self._codec.convert_key(spec.range_key, range_key)
        return make_key(spec, hash_value, range_value)

    def get(self, hash_key: Any) -> Get[T]:
        return Get(self, hash_key)

    def scan(self) -> Scan[T]:
        return Scan(self)

    def update(self, hash_key: Any) -> Update[T]:
        return Update(self, hash_key)

    def put(self, record: T) -> Put[T]:
        return Put(self, record)


class DB:
    """Shares one store client (and settings) between table handles."""

    def __init__(self, client: Any | None = None, *, settings: Settings | None = None) -> None:
        self._settings = settings or Settings.from_env()
        self._client: Any = client if client is not None else create_client(self._settings)

    @property
    def client(self) -> Any:
        return self._client

    def table[T](
        self,
        table_name: str,
        model: type[T] | TableSpec,
        *,
        codec: RecordCodec[T] | None = None,
    ) -> Table[T]:
        return Table(model, table_name=table_name, client=self._client, codec=codec, settings=self._settings)
