from __future__ import annotations

from botocore.exceptions import ClientError

from ddb_py.aws_errors import error_code, error_message, is_condition_failed, is_throttled
from ddb_py.testkit import client_error


def test_error_code_and_message() -> None:
    err = client_error("ValidationException", "bad input")
    assert error_code(err) == "ValidationException"
    assert error_message(err) == "bad input"
    assert error_code(RuntimeError("x")) is None
    assert error_message(RuntimeError("x")) == "x"


def test_is_condition_failed() -> None:
    assert is_condition_failed(client_error("ConditionalCheckFailedException"))
    assert not is_condition_failed(client_error("ValidationException"))

    canceled = ClientError(
        {
            "Error": {"Code": "TransactionCanceledException", "Message": "Transaction cancelled"},
            "CancellationReasons": [{"Code": "None"}, {"Code": "ConditionalCheckFailed"}],
        },
        "TransactWriteItems",
    )
    assert is_condition_failed(canceled)


def test_is_throttled() -> None:
    assert is_throttled(client_error("ProvisionedThroughputExceededException"))
    assert is_throttled(client_error("ThrottlingException"))
    assert not is_throttled(client_error("ConditionalCheckFailedException"))
