from __future__ import annotations

from botocore.exceptions import ClientError

# Store failures are surfaced to callers unwrapped; these helpers only classify them.


def error_code(err: BaseException) -> str | None:
    if not isinstance(err, ClientError):
        return None
    code = err.response.get("Error", {}).get("Code")
    return str(code) if code else None


def error_message(err: BaseException) -> str:
    if isinstance(err, ClientError):
        message = err.response.get("Error", {}).get("Message")
        if message:
            return str(message)
    return str(err)


def is_condition_failed(err: BaseException) -> bool:
    code = error_code(err)
    if code == "ConditionalCheckFailedException":
        return True

    if code == "TransactionCanceledException" and isinstance(err, ClientError):
        reasons = err.response.get("CancellationReasons") or []
        if any(isinstance(r, dict) and r.get("Code") == "ConditionalCheckFailed" for r in reasons):
            return True
        return "ConditionalCheckFailed" in error_message(err)

    return False


def is_throttled(err: BaseException) -> bool:
    return error_code(err) in {
        "ProvisionedThroughputExceededException",
        "ThrottlingException",
        "RequestLimitExceeded",
    }
