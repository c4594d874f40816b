"""
api/main.py -- EventDesk FastAPI app: lifespan, middleware, routers, error mapping.

Run with:      uvicorn asgi:app --reload
               python main.py serve

A request passes, outermost first: the access log, the slowapi rate limiter
(only /register and /login carry limits), CORS (CORS_ORIGINS) and the Host
allow-list (ALLOWED_HOSTS), then reaches a router. Every /api router except
auth's public routes and /api/health sits behind auth.dependencies.

Lifespan builds the stores, the resource graph and the token service on
startup and closes the stores on shutdown.

Error mapping: domain code raises core.errors.*; the handlers below are the
only place those become HTTP status codes. Every error body uses the same
envelope: {"error": {"code", "message", "detail"}}.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.attendees import router as attendees_router
from api.routes.auth import router as auth_router
from api.routes.events import router as events_router
from api.routes.tasks import router as tasks_router
from auth.store import create_user_store
from auth.tokens import get_token_service
from core.config import get_settings
from core.errors import EventDeskError
from resources.graph import ResourceGraph
from resources.store import create_resource_store

VERSION = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("eventdesk.api")

_settings = get_settings()


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create application-level resources on startup and release them on shutdown.

    Both stores use the same backend and database URL; their tables do not
    overlap.
    """
    logger.info("EventDesk API starting up (store backend: %s)", _settings.store_backend)
    app.state.user_store = create_user_store(_settings.store_backend, _settings.database_url)
    app.state.resource_store = create_resource_store(_settings.store_backend, _settings.database_url)
    app.state.graph = ResourceGraph(app.state.resource_store)
    app.state.tokens = get_token_service()
    logger.info("Stores initialized")

    yield

    app.state.resource_store.close()
    app.state.user_store.close()
    logger.info("EventDesk API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="EventDesk API",
    description=(
        "Events, attendees and tasks behind a token-authenticated REST API. "
        'Every error response has the body {"error": {"code", "message", "detail"}}.'
    ),
    version=VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# Each add_middleware call wraps the ones before it, so the last one added
# sees the request first.
# ---------------------------------------------------------------------------

app.add_middleware(TrustedHostMiddleware, allowed_hosts=_settings.allowed_hosts)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPIMiddleware reads the limiter from app.state.
app.state.limiter = limiter


@app.middleware("http")
async def access_log(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    client = request.client.host if request.client else "-"
    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info(
        "%s %s -> %d in %.1fms [%s]", request.method, request.url.path, response.status_code, elapsed_ms, client
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

# Every error status documents the same envelope in the OpenAPI schema.
_ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "validation_error, duplicate_username, invalid_credentials"},
    401: {"model": ErrorResponse, "description": "missing_token"},
    403: {"model": ErrorResponse, "description": "invalid_token"},
    404: {"model": ErrorResponse, "description": "not_found"},
    429: {"model": ErrorResponse, "description": "rate_limited"},
}

app.include_router(auth_router, prefix="/api", tags=["Auth"], responses=_ERROR_RESPONSES)
app.include_router(events_router, prefix="/api", tags=["Events"], responses=_ERROR_RESPONSES)
app.include_router(attendees_router, prefix="/api", tags=["Attendees"], responses=_ERROR_RESPONSES)
app.include_router(tasks_router, prefix="/api", tags=["Tasks"], responses=_ERROR_RESPONSES)
# The front-end router is mounted by asgi.py, not here.


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------


def _error_response(status_code: int, code: str, message: str, detail=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump(),
    )


@app.exception_handler(EventDeskError)
async def domain_error_handler(request: Request, exc: EventDeskError) -> JSONResponse:
    """Render any core.errors exception with its own status and code.

    MissingToken -> 401, InvalidToken -> 403, NotFound -> 404, everything
    else in the taxonomy -> 400.
    """
    return _error_response(exc.status_code, exc.code, exc.message, exc.detail)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with Retry-After when a rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = _error_response(429, "rate_limited", "Too many requests.", str(exc.detail))
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies and path params share the 400 validation_error shape
    that ResourceGraph uses for payload errors."""
    errors = [{"loc": list(e.get("loc", ())), "msg": e.get("msg", "")} for e in exc.errors()]
    return _error_response(400, "validation_error", "Request validation failed.", errors)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return _error_response(exc.status_code, f"http_{exc.status_code}", str(exc.detail))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unexpected server errors.

    The exception goes to the log only. The client gets a generic message,
    never the underlying library error.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error_response(500, "internal_error", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly on the app and not rate limited: monitoring must not be
# throttled. No authentication.
# ---------------------------------------------------------------------------


@app.get("/api/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return liveness, version and a reachability check per store."""
    components = {
        "app": "ok",
        "user_store": "ok" if request.app.state.user_store.ping() else "error",
        "resource_store": "ok" if request.app.state.resource_store.ping() else "error",
    }
    status = "ok" if all(v == "ok" for v in components.values()) else "degraded"
    return HealthResponse(status=status, version=VERSION, components=components)
