"""
Outcome shapes for best-effort operations.

Teardown runs every service regardless of sibling failures, so each attempt
is recorded as an explicit success or captured-error value rather than
raised.
"""

from typing import Any, Optional

from devnetbox.commands.errors import DevnetError


def ok(**fields: Any) -> dict[str, Any]:
    """Success outcome, e.g. ``ok(removed=True)``."""
    return {"success": True, **fields}


def fail(message: str, *, error: Optional[BaseException] = None) -> dict[str, Any]:
    """Failure outcome with the captured error, if any.

    For DevnetError subclasses the error code is lifted to ``error_code`` so
    callers can branch on it without unpacking ``cause``.
    """
    result: dict[str, Any] = {"success": False, "error": message}
    if error is not None:
        result["cause"] = describe_error(error)
        if isinstance(error, DevnetError) and error.code:
            result["error_code"] = error.code
    return result


def is_ok(result: dict[str, Any]) -> bool:
    return bool(result.get("success"))


def describe_error(error: BaseException) -> dict[str, Any]:
    """JSON-safe description of an exception."""
    if isinstance(error, DevnetError):
        return error.to_dict()
    return {"type": type(error).__name__, "message": str(error)}
