"""
api/main.py -- FastAPI application entry point for the inventory service.

Run with:  uvicorn api.main:app --reload

Request path (outermost to innermost):
  1. CORSMiddleware    -- answers preflights itself; adds CORS headers to every
                          response, 429s included
  2. log_requests      -- method, path, status, latency, client
  3. admission_gate    -- api.pipeline stages (per-client rate limit) -> 429
  4. router            -- protected routes add the bearer-token dependency

Lifespan loads Settings and builds every service from them (constructor
injection, no module-level singletons). A configuration problem raises
ConfigError out of startup, so the server never begins accepting requests
without a signing secret.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.pipeline import run_pipeline
from api.routes.v1.auth import router as auth_router
from api.routes.v1.items import router as items_router
from api.routes.v1.users import router as users_router
from auth.errors import AuthError, AuthTimeout, RateLimited
from auth.passwords import PasswordHasher
from auth.ratelimit import RateLimiter
from auth.service import AuthService
from auth.store import CredentialStore
from auth.tokens import TokenService
from core.config import Settings, get_settings
from inventory.store import ItemStore

VERSION = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("inventory.api")

# ---------------------------------------------------------------------------
# Service wiring
# ---------------------------------------------------------------------------


def init_state(
    app: FastAPI,
    settings: Settings,
    credential_store: CredentialStore | None = None,
    item_store: ItemStore | None = None,
) -> None:
    """Build every service from settings and attach it to app.state.

    Stores may be passed in (tests use shared in-memory databases); otherwise
    both open settings.database_url.
    """
    app.state.settings = settings
    app.state.credential_store = credential_store or CredentialStore(settings.database_url)
    app.state.item_store = item_store or ItemStore(settings.database_url)
    app.state.token_service = TokenService(secret=settings.secret_bytes, ttl_seconds=settings.token_ttl_seconds)
    app.state.auth_service = AuthService(
        store=app.state.credential_store,
        hasher=PasswordHasher(rounds=settings.bcrypt_rounds),
        tokens=app.state.token_service,
        timeout_seconds=settings.auth_timeout_seconds,
        max_workers=settings.auth_workers,
    )
    app.state.rate_limiter = RateLimiter(
        limit=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
        storage_uri=settings.rate_limit_storage_uri,
    )


def close_state(app: FastAPI) -> None:
    app.state.auth_service.close()
    app.state.credential_store.close()
    app.state.item_store.close()


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Settings are loaded first: get_settings() raises ConfigError when
    SECRET_KEY is missing or too short, which aborts startup.
    """
    settings = get_settings()
    logger.info("Inventory API starting up")
    init_state(app, settings)
    logger.info(
        "Auth initialized (token_ttl=%ds, rate_limit=%d/%ds)",
        settings.token_ttl_seconds,
        settings.rate_limit_requests,
        settings.rate_limit_window_seconds,
    )

    yield

    close_state(app)
    logger.info("Inventory API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Inventory Manager API",
    description="Inventory records behind bearer-token authentication and per-client rate limiting.",
    version=VERSION,
    lifespan=lifespan,
)


# ---------------------------------------------------------------------------
# Admission gate
#
# Runs the api.pipeline stages before routing. The resulting AuthContext is
# stored on request.state so the identity dependency extends it rather than
# starting over.
# ---------------------------------------------------------------------------


@app.middleware("http")
async def admission_gate(request: Request, call_next):
    admission = run_pipeline(request)
    if not admission.admitted:
        return _error_for(admission.failure)
    request.state.auth = admission.context
    return await call_next(request)


# ---------------------------------------------------------------------------
# Request logging middleware
#
# Registered after the admission gate so it wraps it and also times requests
# that the gate rejects.
# ---------------------------------------------------------------------------


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


# ---------------------------------------------------------------------------
# CORS
#
# Added last, so it is the outermost layer: preflight OPTIONS requests are
# answered here and never reach the admission gate, and 429 responses still
# carry CORS headers.
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Authorization", "Content-Type"],
    max_age=3600,
)


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
app.include_router(users_router, prefix="/api/v1", tags=["Users"])
app.include_router(items_router, prefix="/api/v1", tags=["Inventory"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


def _error_for(exc: AuthError) -> JSONResponse:
    """Map an auth-core error to its client-facing response.

    Only rate limiting and timeouts get their own status codes. Anything else
    that reaches this point is a server-side fault; its detail stays in the log.
    """
    if isinstance(exc, RateLimited):
        response = JSONResponse(
            status_code=429,
            content=ErrorResponse(
                error=ErrorDetail(code="rate_limited", message="Too many requests.")
            ).model_dump(),
        )
        response.headers["Retry-After"] = str(exc.retry_after)
        return response
    if isinstance(exc, AuthTimeout):
        response = JSONResponse(
            status_code=503,
            content=ErrorResponse(
                error=ErrorDetail(code="timeout", message="Authentication backend timed out. Retry later.")
            ).model_dump(),
        )
        response.headers["Retry-After"] = "1"
        return response
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(code="internal_error", message="An unexpected error occurred.")
        ).model_dump(),
    )


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    if not isinstance(exc, (RateLimited, AuthTimeout)):
        logger.error("Auth failure on %s %s: %s", request.method, request.url.path, exc.code)
    return _error_for(exc)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with field locations and messages; input values are not echoed.

    Request bodies here contain passwords, so the raw errors (which include
    the offending input) are never returned or logged.
    """
    problems = "; ".join(f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in exc.errors())
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            error=ErrorDetail(
                code="validation_error",
                message="Request validation failed.",
                detail=problems,
            )
        ).model_dump(),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return a structured error for all FastAPI/Starlette HTTP exceptions.

    Route handlers raise HTTPException with a structured dict as detail. When
    detail is already a dict, use it directly as the error field rather than
    stringifying it.
    """
    if isinstance(exc.detail, dict):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=exc.headers,
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=f"http_{exc.status_code}",
                message=str(exc.detail),
            )
        ).model_dump(),
        headers=exc.headers,
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is written to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(
                code="internal_error",
                message="An unexpected error occurred.",
            )
        ).model_dump(),
    )


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py so it is always reachable regardless of router
# registration state. Exempt from rate limiting (see api.pipeline).
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", include_in_schema=True, tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return API liveness, version and database reachability."""
    try:
        database = "ok" if request.app.state.credential_store.ping() else "error"
    except Exception:
        logger.exception("Health check could not reach the database")
        database = "error"
    return HealthResponse(version=VERSION, components={"app": "ok", "database": database})
