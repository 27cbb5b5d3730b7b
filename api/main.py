"""
api/main.py -- FastAPI application entry point for Entry.

Run with:  uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for allowed browser origins
  3. SlowAPIMiddleware     -- enforces per-route rate limits from api.limiter
  4. issue_sessions        -- hands browser sessions to page views
  5. log_requests          -- one log line per request

Lifespan handles startup (data directory, stores, resolver, paste service,
expiry task) and shutdown (cancel the task, close both stores) symmetrically.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.concurrency import run_in_threadpool

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.admin import router as admin_router
from api.routes.association import router as association_router
from api.routes.comments import router as comments_router
from api.routes.pastes import router as pastes_router
from auth.association import AssociationResolver
from core.config import get_settings
from logs.store import LogStore
from pastes.service import PasteService
from pastes.store import PasteStore

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("entry.api")

settings = get_settings()

# ---------------------------------------------------------------------------
# Background expiry task
# ---------------------------------------------------------------------------


async def _expiry_loop(app: FastAPI, interval: int) -> None:
    """Delete expired pastes every `interval` seconds.

    The store is synchronous, so each purge runs in the threadpool. Cancelling
    the task during shutdown raises CancelledError out of asyncio.sleep.
    """
    while True:
        await run_in_threadpool(app.state.paste_service.purge_expired)
        await asyncio.sleep(interval)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage stores and background work across the server lifetime.

    Startup order matters:
      1. Data directory, so the SQLite files can be created.
      2. Log store, then paste store (which seeds the version paste).
      3. Resolver and paste service, built from the stores.
      4. Expiry task last, since it calls the paste service.
    """
    logger.info("Entry %s starting up", settings.version)
    Path(settings.data_location).mkdir(parents=True, exist_ok=True)

    app.state.settings = settings
    app.state.log_store = LogStore(settings.resolved_log_db_url())
    if settings.log_clear_on_start:
        app.state.log_store.clear()
        logger.info("Log records cleared on start")
    app.state.paste_store = PasteStore(settings.resolved_paste_db_url(), version=settings.version)
    app.state.resolver = AssociationResolver(app.state.log_store, settings)
    app.state.paste_service = PasteService(app.state.paste_store, app.state.log_store, app.state.resolver, settings)
    logger.info("Stores initialized (sessions_enabled=%s)", settings.sessions_enabled)

    app.state.expiry_task = asyncio.create_task(_expiry_loop(app, settings.expiry_check_seconds))

    yield

    app.state.expiry_task.cancel()
    app.state.paste_store.close()
    app.state.log_store.close()
    logger.info("Entry shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Entry",
    description="Self-hosted pastebin with per-paste ownership.",
    version=settings.version,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
# ---------------------------------------------------------------------------

app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.allowed_hosts)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost", "http://127.0.0.1"],
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type"],
    expose_headers=["X-Entry-Error", "X-Paste-PubDate", "X-Paste-EditDate", "X-Paste-GroupName"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


# ---------------------------------------------------------------------------
# Session-issuing middleware
#
# Page views (non-API GETs) from plausible browsers without a session get one.
# A session-id cookie whose log no longer exists is cleared.
# ---------------------------------------------------------------------------


@app.middleware("http")
async def issue_sessions(request: Request, call_next):
    response = await call_next(request)
    if request.method != "GET" or request.url.path.startswith("/api/"):
        return response
    resolver = getattr(request.app.state, "resolver", None)
    if resolver is None:
        return response
    directive = await run_in_threadpool(
        resolver.issue_session, request.cookies, request.headers.get("user-agent", "")
    )
    if directive:
        response.headers.append("set-cookie", directive)
    return response


# ---------------------------------------------------------------------------
# Request logging middleware
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
# Router registration
# ---------------------------------------------------------------------------

app.include_router(pastes_router, prefix="/api", tags=["Pastes"])
app.include_router(comments_router, prefix="/api", tags=["Comments"])
app.include_router(association_router, prefix="/api", tags=["Association"])
app.include_router(admin_router, prefix="/api", tags=["Admin"])
# The site router (robots.txt, nodeinfo, catch-all page view) is mounted by
# asgi.py after everything here, so its catch-all never shadows an API route.


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error and Retry-After."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = JSONResponse(
        status_code=429,
        content=ErrorResponse(
            error=ErrorDetail(
                code="rate_limited",
                message="Too many requests.",
                detail=str(exc),
            )
        ).model_dump(),
    )
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with structured error when a form, body or query param fails validation."""
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            error=ErrorDetail(
                code="validation_error",
                message="Request validation failed.",
                detail=str(exc.errors()),
            )
        ).model_dump(),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return a structured error for all FastAPI/Starlette HTTP exceptions.

    Route handlers raise HTTPException with detail=ErrorDetail(...).model_dump().
    A dict detail is used directly as the error field.
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
    """Catch-all for unexpected server errors. The traceback goes to the log only."""
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
# Defined directly in main.py so it is always reachable. No rate limit:
# health checks from load balancers must not be throttled.
# ---------------------------------------------------------------------------


@app.get("/api/health", include_in_schema=True, tags=["Health"])
async def health() -> HealthResponse:
    """Return API liveness and current version."""
    return HealthResponse(version=settings.version)
