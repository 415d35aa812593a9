"""
api/main.py -- FastAPI application factory for drlm-auth.

Exposes the auth core's five operations over HTTP. The transport is a thin
adapter: every decision (who is authenticated, what an error means) is made
in auth/service.py; this module only renders the outcome.

Run with:      python main.py serve

create_app() receives an already-built AuthService and UserStore. main.py
builds them and runs the admin bootstrap BEFORE the app exists, so the
server never accepts a call without an admin account in place.

Middleware stack (outermost to innermost):
  1. log_requests        -- one log line per request with latency
  2. SlowAPIMiddleware   -- enforces per-route rate limits from api.limiter

Lifespan closes the store on shutdown.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.users import router as users_router
from auth.errors import ErrorCode, ServiceError
from auth.service import AuthService
from auth.store import UserStore

logger = logging.getLogger("drlm.api")

VERSION = "0.1.0"

# Caller-visible category -> HTTP status.
_STATUS_BY_CODE: dict[ErrorCode, int] = {
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.UNAUTHENTICATED: 401,
    ErrorCode.INVALID_ARGUMENT: 400,
    ErrorCode.ALREADY_EXISTS: 409,
    ErrorCode.UNKNOWN: 500,
}


def _error_response(status_code: int, code: str, message: str, detail: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump(),
    )


def create_app(service: AuthService, store: UserStore) -> FastAPI:
    """Build the FastAPI application around a ready AuthService."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("drlm-auth API starting up")
        yield
        app.state.user_store.close()
        logger.info("drlm-auth API shutdown complete")

    app = FastAPI(
        title="drlm-auth API",
        description="Session tokens and account management.",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.auth_service = service
    app.state.user_store = store

    # SlowAPI looks for app.state.limiter by convention.
    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        ms = (time.perf_counter() - start) * 1000
        logger.info(
            "%s %s %d %.1fms %s",
            request.method,
            request.url.path,
            response.status_code,
            ms,
            request.client.host if request.client else "unknown",
        )
        return response

    app.include_router(users_router, prefix="/api/v1", tags=["Users"])

    # ------------------------------------------------------------------
    # Exception handlers
    #
    # All handlers return the same ErrorResponse envelope so clients can
    # parse errors uniformly.
    # ------------------------------------------------------------------

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
        return _error_response(_STATUS_BY_CODE[exc.code], exc.code.value, exc.message)

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
        response = _error_response(429, "rate_limited", "Too many requests.", str(exc))
        response.headers["Retry-After"] = str(int(getattr(exc, "retry_after", 60)))
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return _error_response(422, "validation_error", "Request validation failed.", str(exc.errors()))

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return _error_response(exc.status_code, f"http_{exc.status_code}", str(exc.detail))

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unexpected server errors.

        The raw exception goes to the log only, never to the response body.
        """
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return _error_response(500, "internal_error", "An unexpected error occurred.")

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    @app.get("/api/v1/health", tags=["Health"])
    def health() -> HealthResponse:
        """Return liveness, version and store reachability. No auth, no rate limit."""
        database = "ok" if app.state.user_store.ping() else "error"
        return HealthResponse(version=VERSION, components={"app": "ok", "database": database})

    return app
