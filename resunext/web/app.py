"""FastAPI app entrypoint for the ResuNext auth API."""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from time import perf_counter

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError

from .api.auth import router as auth_router
from .errors import APIError, api_error_handler, validation_error_handler
from .store import InMemoryAuthStore

logger = logging.getLogger("resunext.web.api")

DEFAULT_SESSION_COOKIE = "resunext.sid"


def create_app(store: InMemoryAuthStore | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    auth_store = store or InMemoryAuthStore()

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        await auth_store.start()
        try:
            yield
        finally:
            await auth_store.stop()

    app = FastAPI(title="ResuNext Auth API", version="0.1.0", lifespan=lifespan)
    app.state.auth_store = auth_store
    app.state.session_cookie_name = os.getenv("RESUNEXT_SESSION_COOKIE", DEFAULT_SESSION_COOKIE)
    app.state.session_cookie_secure = os.getenv("RESUNEXT_COOKIE_SECURE", "").lower() in ("1", "true", "yes")
    app.include_router(auth_router)

    @app.middleware("http")
    async def request_logging_middleware(request: Request, call_next):
        start = perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            duration_ms = (perf_counter() - start) * 1000
            logger.info(
                "api_request method=%s path=%s status=%s duration_ms=%.2f",
                request.method,
                request.url.path,
                500,
                duration_ms,
            )
            raise

        duration_ms = (perf_counter() - start) * 1000
        logger.info(
            "api_request method=%s path=%s status=%s duration_ms=%.2f",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
        )
        return response

    @app.get("/healthz", tags=["system"])
    async def healthz() -> dict:
        return {"status": "ok"}

    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    return app


app = create_app()


def main() -> None:
    """Run development API server."""
    import uvicorn

    uvicorn.run(
        "resunext.web.app:app",
        host=os.getenv("RESUNEXT_HOST", "127.0.0.1"),
        port=int(os.getenv("RESUNEXT_PORT", "5000")),
    )
