"""
auth/dependencies.py -- Authentication and authorization gates.

Two layers:
  resolve_user() and authorize() are framework-free. They take everything
  they need as arguments and either return the resolved User or raise a
  core.errors exception. Unit tests call them directly.

  get_current_user() and require_roles() adapt them to FastAPI Depends().
  The resolved User is handed to the route as an explicit parameter -- that
  is the only way a handler learns who is calling.

Nothing is cached between requests: every request re-verifies the token and
re-loads the user, so a deactivation or role change applies immediately.

auth/dependencies.py may import from fastapi (for Depends/Request) because
this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from fastapi import Depends, Request

from auth.models import User
from auth.store import UserStore
from auth.tokens import TokenExpired, TokenInvalid, TokenService
from core.errors import AccountDeactivated, Forbidden, Unauthenticated

logger = logging.getLogger("onushilon.auth")

_BEARER_PREFIX = "Bearer "


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the token from an 'Authorization: Bearer <token>' value, or None."""
    if not authorization or not authorization.startswith(_BEARER_PREFIX):
        return None
    token = authorization[len(_BEARER_PREFIX) :].strip()
    return token or None


def resolve_user(authorization: str | None, tokens: TokenService, store: UserStore) -> User:
    """Resolve an Authorization header value to a live, active User.

    Raises:
        Unauthenticated:    no bearer token, token failed verification, or the
                            token's subject no longer exists.
        AccountDeactivated: the subject exists but is_active is False.
    """
    token = extract_bearer_token(authorization)
    if token is None:
        raise Unauthenticated("Access denied. No token provided.")

    try:
        user_id = tokens.verify(token)
    except TokenExpired:
        logger.info("Rejected expired token")
        raise
    except TokenInvalid:
        logger.info("Rejected invalid token")
        raise

    user = store.get_by_id(user_id)
    if user is None:
        # Valid signature but the account was deleted after issuance.
        logger.info("Rejected token for missing user %s", user_id)
        raise Unauthenticated("Token invalid. User not found.")

    if not user.is_active:
        raise AccountDeactivated("Account has been deactivated.")

    return user


def authorize(user: User, roles: tuple[str, ...] | list[str]) -> User:
    """Pass the user through if their role is one of roles, else raise Forbidden."""
    if user.role not in roles:
        raise Forbidden(f"Access denied. Required role: {' or '.join(roles)}")
    return user


# ---------------------------------------------------------------------------
# FastAPI adapters
# ---------------------------------------------------------------------------


def get_current_user(request: Request) -> User:
    """Require authentication.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(user: User = Depends(get_current_user)): ...
    """
    return resolve_user(
        request.headers.get("Authorization"),
        request.app.state.tokens,
        request.app.state.user_store,
    )


def require_roles(*roles: str) -> Callable[[User], User]:
    """Build a dependency that requires authentication plus one of roles.

    Use as a FastAPI dependency:
        @router.get("/admin-only")
        def route(user: User = Depends(require_roles("admin"))): ...
    """

    def dependency(current_user: User = Depends(get_current_user)) -> User:
        return authorize(current_user, roles)

    return dependency


require_admin = require_roles("admin")
