"""Session operation errors raised by the client."""

from __future__ import annotations

from typing import Any, Optional


class SessionOperationError(Exception):
    """A session operation (login, register, logout, fetch) failed."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class TransportError(SessionOperationError):
    """The request never produced a response (network down, DNS, refused)."""


class ResponseError(SessionOperationError):
    """The backend answered with a non-success status."""

    def __init__(self, status_code: int, message: str, body: Optional[Any] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ValidationError(ResponseError):
    """Backend rejected the payload (400/422), message is user-facing."""


VALIDATION_STATUSES = {400, 422}


def extract_message(body: Any) -> Optional[str]:
    """Pull a human-readable message out of an error body.

    Accepts the flat ``{"message": ...}`` shape as well as the nested
    ``{"error": {"message": ...}}`` envelope.
    """
    if not isinstance(body, dict):
        return None
    message = body.get("message")
    if isinstance(message, str) and message:
        return message
    nested = body.get("error")
    if isinstance(nested, dict):
        message = nested.get("message")
        if isinstance(message, str) and message:
            return message
    return None


def response_error(status_code: int, body: Any, default_message: str) -> ResponseError:
    """Build the right ResponseError subclass for a failed response."""
    message = extract_message(body) or default_message
    if status_code in VALIDATION_STATUSES:
        return ValidationError(status_code, message, body)
    return ResponseError(status_code, message, body)
