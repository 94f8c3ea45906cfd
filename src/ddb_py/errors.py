from __future__ import annotations


class DdbPyError(Exception):
    pass


class SchemaError(DdbPyError, ValueError):
    pass


class UnsupportedTypeError(SchemaError):
    def __init__(self, *, field: str, type_name: str) -> None:
        super().__init__(f"unsupported type for field {field}: {type_name}")
        self.field = field
        self.type_name = type_name


class MissingHashKeyError(SchemaError):
    pass


class DuplicateIndexError(SchemaError):
    def __init__(self, *, index_name: str) -> None:
        super().__init__(f"duplicate local index: {index_name}")
        self.index_name = index_name


class KeyBuildError(DdbPyError):
    pass


class KeyTypeMismatchError(KeyBuildError):
    pass


class MissingRangeKeyError(KeyBuildError):
    pass


class UnexpectedRangeKeyError(KeyBuildError):
    pass


class ValidationError(DdbPyError, ValueError):
    pass


class InvalidExpressionError(ValidationError):
    pass


class ItemNotFoundError(DdbPyError):
    pass


class CancelledError(DdbPyError):
    pass


class DeadlineExceededError(CancelledError):
    pass


class CodecError(DdbPyError):
    pass


def is_item_not_found(err: BaseException | None) -> bool:
    return isinstance(err, ItemNotFoundError)
