"""API error helpers and exception handlers."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


class APIError(Exception):
    """Application-level API error with status/code mapping."""

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        # Flat shape: the client reads ``message`` at the top level.
        return {
            "message": self.message,
            "code": self.code,
            "details": self.details,
        }


async def api_error_handler(_: Request, exc: APIError) -> JSONResponse:
    """Render contract-compliant error response."""
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def validation_error_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    """Normalize FastAPI validation errors to the API error shape."""
    errors = [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]
    message = "Invalid request payload"
    if errors:
        first = errors[0]
        field = first["loc"][-1] if first["loc"] else "body"
        message = f"{field}: {first['msg']}"
    return JSONResponse(
        status_code=400,
        content={
            "message": message,
            "code": "BAD_REQUEST",
            "details": {"errors": errors},
        },
    )
