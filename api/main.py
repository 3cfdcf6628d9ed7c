"""
api/main.py -- FastAPI application entry point for the Onushilon backend.

Run with:  uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for allowed browser origins
  3. SlowAPIMiddleware     -- enforces per-route rate limits from api.limiter

Lifespan builds every service once at startup (store, credential store,
token service, mailer, account/admin/reset services) and hangs them on
app.state. Route handlers and the auth dependencies read them from there.
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
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.admin import router as admin_router
from api.routes.v1.auth import router as auth_router
from auth.accounts import AccountService
from auth.admin import AdminService
from auth.bootstrap import ensure_initial_admin
from auth.credentials import CredentialStore
from auth.mailer import Mailer, SmtpMailer, UnconfiguredMailer
from auth.reset import PasswordResetService
from auth.store import UserStore
from auth.tokens import TokenService
from core.config import Settings, get_settings
from core.errors import AppError

VERSION = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("onushilon.api")

# ---------------------------------------------------------------------------
# Service wiring
# ---------------------------------------------------------------------------


def build_mailer(settings: Settings) -> Mailer:
    if not settings.smtp_host:
        logger.warning("SMTP_HOST is not set -- password reset emails cannot be delivered")
        return UnconfiguredMailer()
    return SmtpMailer(
        host=settings.smtp_host,
        port=settings.smtp_port,
        username=settings.smtp_username,
        password=settings.smtp_password,
        use_tls=settings.smtp_use_tls,
        timeout=settings.smtp_timeout,
        sender=settings.mail_from,
        otp_ttl_seconds=settings.otp_ttl_seconds,
    )


def wire_services(app: FastAPI, settings: Settings, store: UserStore, mailer: Mailer) -> None:
    """Build the services on top of store and attach everything to app.state.

    Shared by the real lifespan and the test lifespan in tests/conftest.py.
    """
    credentials = CredentialStore(rounds=settings.bcrypt_rounds)
    tokens = TokenService(settings.secret_key, ttl_seconds=settings.token_expire_seconds)
    app.state.settings = settings
    app.state.user_store = store
    app.state.credentials = credentials
    app.state.tokens = tokens
    app.state.accounts = AccountService(store, credentials, tokens)
    app.state.admin = AdminService(store)
    app.state.resets = PasswordResetService(
        store,
        credentials,
        mailer,
        otp_ttl_seconds=settings.otp_ttl_seconds,
        reveal_unknown_email=settings.reveal_unknown_reset_email,
    )


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Everything before yield runs on startup; everything after yield runs on
    shutdown. The signing key is read from Settings here and handed to
    TokenService -- no module keeps it at import time.
    """
    settings = get_settings()
    logger.info("Onushilon API starting up (debug=%s)", settings.debug)
    store = UserStore(settings.database_url)
    wire_services(app, settings, store, build_mailer(settings))
    ensure_initial_admin(store, app.state.credentials, settings)
    logger.info("Auth initialized")

    yield

    store.close()
    logger.info("Onushilon API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

_settings = get_settings()

app = FastAPI(
    title="Onushilon API",
    description="User registration, login, profile, password reset and admin user management.",
    version=VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
# ---------------------------------------------------------------------------

app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=_settings.allowed_hosts,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter

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

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
app.include_router(admin_router, prefix="/api/v1", tags=["Admin"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


def _error(status_code: int, code: str, message: str, detail: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump(),
    )


def _debug(request: Request) -> bool:
    settings = getattr(request.app.state, "settings", None)
    return bool(settings and settings.debug)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render a service-layer failure with its own status and code.

    5xx errors keep their cause out of the response unless running in debug mode.
    """
    if exc.status_code >= 500:
        logger.error("%s on %s %s", type(exc).__name__, request.method, request.url.path, exc_info=exc)
        detail = str(exc.__cause__) if exc.__cause__ is not None and _debug(request) else None
        return _error(exc.status_code, exc.code, exc.message, detail)
    return _error(exc.status_code, exc.code, exc.message, exc.detail)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = _error(429, "rate_limited", "Too many requests.", str(exc))
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 when the request body, path or query fails validation."""
    messages = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        messages.append(f"{field}: {err.get('msg')}" if field else str(err.get("msg")))
    return _error(400, "validation_error", "Validation failed", "; ".join(messages))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Return a structured error for FastAPI/Starlette HTTP exceptions (404 route, 405, ...)."""
    return _error(exc.status_code, f"http_{exc.status_code}", str(exc.detail))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception goes to the log, never to the response body, unless
    the service runs in debug mode.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error(500, "internal_error", "An unexpected error occurred.", str(exc) if _debug(request) else None)


# ---------------------------------------------------------------------------
# Health endpoint
#
# No rate limit and no auth -- load balancers must always reach it.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return API liveness, version and database reachability."""
    database = "ok"
    try:
        request.app.state.user_store.ping()
    except SQLAlchemyError:
        logger.warning("Health check: database unreachable", exc_info=True)
        database = "error"
    return HealthResponse(
        status="healthy" if database == "ok" else "degraded",
        version=VERSION,
        components={"app": "ok", "database": database},
    )
