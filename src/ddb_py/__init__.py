from __future__ import annotations

import json
import logging
import re
from importlib.resources import files
from typing import TYPE_CHECKING, Any

from .aws_errors import error_code, is_condition_failed, is_throttled
from .capacity import CapacitySnapshot, ConsumedCapacity
from .codec import DataclassCodec, RecordCodec
from .context import Context
from .errors import (
    CancelledError,
    CodecError,
    DdbPyError,
    DeadlineExceededError,
    DuplicateIndexError,
    InvalidExpressionError,
    ItemNotFoundError,
    KeyBuildError,
    KeyTypeMismatchError,
    MissingHashKeyError,
    MissingRangeKeyError,
    SchemaError,
    UnexpectedRangeKeyError,
    UnsupportedTypeError,
    ValidationError,
    is_item_not_found,
)
from .expression import CompiledExpression, Expression
from .key import make_key
from .model import AttributeConverter, AttributeSpec, DescribesSchema, TableSpec, ddb_field, inspect
from .values import Value, to_value

if TYPE_CHECKING:
    from .get import Get
    from .put import Put
    from .scan import Item, Scan, ScanState
    from .settings import Settings, create_client
    from .table import DB, Table
    from .update import Update

logging.getLogger(__name__).addHandler(logging.NullHandler())


def _read_repo_version() -> str:
    try:
        data = json.loads(files(__package__).joinpath("version.json").read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return "0.0.0"

    version = data.get("version")
    return version if isinstance(version, str) and version else "0.0.0"


def _normalize_repo_version(repo_version: str) -> str:
    match = re.match(r"^(\d+\.\d+\.\d+)-rc\.?([0-9]+)$", repo_version)
    if match:
        return f"{match.group(1)}rc{match.group(2)}"
    return repo_version


__repo_version__ = _read_repo_version()
__version__ = _normalize_repo_version(__repo_version__)


def __getattr__(name: str) -> Any:
    if name in {"DB", "Table"}:
        from . import table

        return getattr(table, name)
    if name in {"Settings", "create_client"}:
        from . import settings

        return getattr(settings, name)
    if name in {"Item", "Scan", "ScanState"}:
        from . import scan

        return getattr(scan, name)
    if name == "Get":
        from .get import Get

        return Get
    if name == "Put":
        from .put import Put

        return Put
    if name == "Update":
        from .update import Update

        return Update
    raise AttributeError(name)


__all__ = [
    "AttributeConverter",
    "AttributeSpec",
    "CancelledError",
    "CapacitySnapshot",
    "CodecError",
    "CompiledExpression",
    "ConsumedCapacity",
    "Context",
    "DataclassCodec",
    "DB",
    "DdbPyError",
    "DeadlineExceededError",
    "DescribesSchema",
    "DuplicateIndexError",
    "Expression",
    "Get",
    "InvalidExpressionError",
    "Item",
    "ItemNotFoundError",
    "KeyBuildError",
    "KeyTypeMismatchError",
    "MissingHashKeyError",
    "MissingRangeKeyError",
    "Put",
    "RecordCodec",
    "Scan",
    "ScanState",
    "SchemaError",
    "Settings",
    "Table",
    "TableSpec",
    "UnexpectedRangeKeyError",
    "UnsupportedTypeError",
    "Update",
    "ValidationError",
    "Value",
    "__repo_version__",
    "__version__",
    "create_client",
    "ddb_field",
    "error_code",
    "inspect",
    "is_condition_failed",
    "is_item_not_found",
    "is_throttled",
    "make_key",
    "to_value",
]
