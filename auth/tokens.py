"""
auth/tokens.py -- Signed identity tokens (JWT).

Security design decisions:
  JWT: python-jose with HS256. Tokens carry only the user id (sub), the issue
       time and the expiry. Role and active state are NOT embedded -- the
       authentication gate reloads the user on every request, so a role
       change or deactivation applies on the next request.

  Signing key: passed to TokenService by the application at startup (see
       api/main.py lifespan). The service keeps no module-level state and the
       key is never rotated while the process runs.

  Failures: TokenExpired and TokenInvalid are distinct types so the gate can
       log which one happened. Both are Unauthenticated subclasses and render
       as the same 401 class to the caller.

Layer rule: no imports from api/. Import from core/ is allowed.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt

from core.errors import Unauthenticated

_ALGORITHM = "HS256"


class TokenInvalid(Unauthenticated):
    default_message = "Token invalid."


class TokenExpired(Unauthenticated):
    default_message = "Token expired."


class TokenService:
    """Issues and verifies access tokens for user ids.

    Usage:
        tokens = TokenService(settings.secret_key, ttl_seconds=86400)
        token = tokens.issue(user.id)
        user_id = tokens.verify(token)   # raises TokenInvalid / TokenExpired
    """

    def __init__(self, secret_key: str, ttl_seconds: int = 86400) -> None:
        if not secret_key:
            raise ValueError("TokenService requires a signing key.")
        self._secret_key = secret_key
        self.ttl_seconds = ttl_seconds

    def issue(self, user_id: str) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": user_id,
            "iat": now,
            "exp": now + timedelta(seconds=self.ttl_seconds),
        }
        return jwt.encode(payload, self._secret_key, algorithm=_ALGORITHM)

    def verify(self, token: str | None) -> str:
        """Return the user id embedded in a valid, unexpired token."""
        if not token:
            raise TokenInvalid("Token missing.")
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[_ALGORITHM])
        except ExpiredSignatureError as exc:
            raise TokenExpired() from exc
        except JWTError as exc:
            raise TokenInvalid() from exc
        user_id = payload.get("sub")
        if not isinstance(user_id, str) or not user_id:
            raise TokenInvalid("Token has no subject.")
        return user_id
