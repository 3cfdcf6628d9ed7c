"""
api/routes/v1/auth.py -- Account and password-reset REST endpoints.

Routes:
  POST /api/v1/auth/register               -- create account; returns user + token
  POST /api/v1/auth/login                  -- password login; returns user + token
  GET  /api/v1/auth/profile                -- current user (requires auth)
  PUT  /api/v1/auth/profile                -- partial profile update (requires auth)
  POST /api/v1/auth/password-reset/request -- email a 6-digit OTP
  POST /api/v1/auth/password-reset/reset   -- consume OTP, set new password

Handlers are thin: they unpack the request model, call the service on
app.state, and map the domain User onto PublicUser. Failures are
core.errors exceptions raised by the services and rendered by the handler
in api/main.py.

Security:
  POST /login and POST /password-reset/request are rate-limited per IP.
  Cache-Control: no-store on every response that carries a token.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter, login_limit, reset_limit
from api.models import (
    AuthResponse,
    LoginRequest,
    MessageResponse,
    ProfileUpdate,
    PublicUser,
    RegisterRequest,
    ResetPasswordRequest,
    ResetRequest,
    UserResponse,
)
from auth.accounts import AccountService
from auth.dependencies import get_current_user
from auth.models import User
from auth.reset import PasswordResetService

# Auth policy:
# - POST /api/v1/auth/register:               public
# - POST /api/v1/auth/login:                  public, rate-limited
# - GET  /api/v1/auth/profile:                requires auth (get_current_user)
# - PUT  /api/v1/auth/profile:                requires auth (get_current_user)
# - POST /api/v1/auth/password-reset/request: public, rate-limited
# - POST /api/v1/auth/password-reset/reset:   public (the OTP is the credential)
router = APIRouter()


def _token_response(request: Request, user: User, token: str, status_code: int) -> JSONResponse:
    resp = JSONResponse(
        status_code=status_code,
        content=AuthResponse(
            user=PublicUser.from_user(user),
            token=token,
            expires_in=request.app.state.tokens.ttl_seconds,
        ).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/register", response_model=AuthResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> JSONResponse:
    """Create a "user" account and return it with a fresh token."""
    accounts: AccountService = request.app.state.accounts
    user, token = accounts.register(body.name, body.email, body.phone, body.age, body.password)
    return _token_response(request, user, token, status_code=201)


@limiter.limit(login_limit)  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/login", response_model=AuthResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password.

    Unknown email and wrong password produce the same 401 "Invalid
    credentials" so the endpoint cannot be used to enumerate accounts.
    """
    accounts: AccountService = request.app.state.accounts
    user, token = accounts.login(body.email, body.password)
    return _token_response(request, user, token, status_code=200)


@limiter.limit(reset_limit)
@router.post("/auth/password-reset/request", response_model=MessageResponse)
async def request_password_reset(request: Request, body: ResetRequest) -> MessageResponse:
    """Email a one-time code valid for ten minutes."""
    resets: PasswordResetService = request.app.state.resets
    await resets.request_reset(body.email)
    return MessageResponse(message="OTP sent to your email")


@router.post("/auth/password-reset/reset", response_model=MessageResponse)
def reset_password(request: Request, body: ResetPasswordRequest) -> MessageResponse:
    """Set a new password using the emailed code. The code is single-use."""
    resets: PasswordResetService = request.app.state.resets
    resets.reset_password(body.email, body.otp, body.new_password)
    return MessageResponse(message="Password has been reset successfully")


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/profile", response_model=UserResponse)
def get_profile(request: Request, current_user: User = Depends(get_current_user)) -> UserResponse:
    """Return the caller's public profile."""
    accounts: AccountService = request.app.state.accounts
    return UserResponse(user=PublicUser.from_user(accounts.get_profile(current_user)))


@router.put("/auth/profile", response_model=UserResponse)
def update_profile(
    request: Request,
    body: ProfileUpdate,
    current_user: User = Depends(get_current_user),
) -> UserResponse:
    """Update any of name, email, phone and age on the caller's account."""
    accounts: AccountService = request.app.state.accounts
    updated = accounts.update_profile(current_user, body.model_dump(exclude_none=True))
    return UserResponse(user=PublicUser.from_user(updated))
