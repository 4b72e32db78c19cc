# api/errors.py
from __future__ import annotations

from typing import Any, Optional


GENERIC_FAILURE = "Could not complete the request. Please try again."


# Domain-level error the controller can surface directly (message box / inline label)
class DomainError(Exception):
    pass


class RequestCancelled(Exception):
    """A superseded request. Never logged or shown as a failure."""


class ApiError(Exception):
    """Remote call failed. `message` is safe to show to the operator."""

    def __init__(self, message: str = GENERIC_FAILURE, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status = status


class ValidationFailed(ApiError):
    """
    The server rejected the request (400/409/422).

    `field_errors` maps field name -> message when the server sent a
    structured `details` payload; otherwise it is empty.
    """

    def __init__(self, message: str, status: Optional[int] = None, field_errors: Optional[dict] = None):
        super().__init__(message, status)
        self.field_errors: dict[str, str] = dict(field_errors or {})


class NotFound(ApiError):
    pass


class SessionExpired(ApiError):
    def __init__(self, message: str = "Your session has expired. Please sign in again.", status: Optional[int] = 401):
        super().__init__(message, status)


def parse_field_errors(details: Any) -> dict[str, str]:
    """
    Normalize the `details` part of an error envelope.

    Accepts either a mapping ({"quantity": "Only 2 left"}) or a list of
    {"field": ..., "message": ...} entries. List values in a mapping are
    joined with "; ".
    """
    out: dict[str, str] = {}
    if isinstance(details, dict):
        for key, val in details.items():
            if isinstance(val, (list, tuple)):
                val = "; ".join(str(v) for v in val)
            out[str(key)] = str(val)
    elif isinstance(details, (list, tuple)):
        for entry in details:
            if not isinstance(entry, dict):
                continue
            field = entry.get("field") or entry.get("path") or entry.get("param")
            msg = entry.get("message") or entry.get("msg")
            if field and msg:
                out[str(field)] = str(msg)
    return out


def user_message(exc: BaseException) -> str:
    if isinstance(exc, (ApiError, DomainError)):
        return str(exc) or GENERIC_FAILURE
    return GENERIC_FAILURE
