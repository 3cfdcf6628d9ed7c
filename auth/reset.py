"""
auth/reset.py -- Password reset by one-time code.

Flow:
  request_reset(email)  -> generates a 6-digit OTP, persists it with an
                           expiry of now + otp_ttl_seconds, hands it to the
                           mailer. If delivery fails the OTP and expiry are
                           cleared again before the error surfaces, so a
                           failed send never leaves a usable code behind.
  reset_password(email, otp, new_password)
                        -> checks the stored OTP, sets the new password and
                           clears the OTP fields in the same save.

A user has at most one pending OTP; a new request overwrites the old one.
Each step writes only the OTP or credential columns, so an admin role or
status change made during delivery is never reverted.

Known gap: there is no lock between reading the stored OTP and clearing it.
Two concurrent reset_password() calls with the same code can both succeed.
tests/test_reset.py pins that behaviour down.

Layer rule: no imports from api/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
import secrets
import time
from collections.abc import Callable

from auth.credentials import CredentialStore
from auth.mailer import Mailer
from auth.models import User
from auth.store import UserStore
from auth.validators import is_valid_email, is_valid_password, normalize_email
from core.errors import (
    AccountDeactivated,
    Internal,
    InvalidOrExpiredOtp,
    InvalidOtp,
    NotFound,
    ValidationError,
)

logger = logging.getLogger("onushilon.auth.reset")

OTP_LENGTH = 6


def generate_otp() -> str:
    """Return a uniformly random 6-digit code, leading zeros kept."""
    return f"{secrets.randbelow(10**OTP_LENGTH):0{OTP_LENGTH}d}"


class PasswordResetService:
    def __init__(
        self,
        store: UserStore,
        credentials: CredentialStore,
        mailer: Mailer,
        otp_ttl_seconds: int = 600,
        reveal_unknown_email: bool = True,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.credentials = credentials
        self.mailer = mailer
        self.otp_ttl_seconds = otp_ttl_seconds
        self.reveal_unknown_email = reveal_unknown_email
        self._clock = clock

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    async def request_reset(self, email: str) -> None:
        """Issue a new OTP for email and deliver it.

        Raises:
            ValidationError:    email is malformed.
            NotFound:           no such account.
            AccountDeactivated: the account is deactivated.
            Internal:           delivery failed; the OTP has been rolled back.

        NotFound and AccountDeactivated are only raised when
        reveal_unknown_email is set. Otherwise both cases return quietly and
        the caller acknowledges them like any other request.
        """
        email = normalize_email(email)
        if not is_valid_email(email):
            raise ValidationError("Please provide a valid email address")

        user = self.store.get_by_email(email)
        if user is None:
            if self.reveal_unknown_email:
                raise NotFound("User not found with this email")
            logger.info("Password reset requested for unknown email")
            return
        if not user.is_active:
            if self.reveal_unknown_email:
                raise AccountDeactivated()
            logger.info("Password reset requested for deactivated user %s", user.id)
            return

        user.reset_otp = generate_otp()
        user.reset_otp_expire_at = self._now_ms() + self.otp_ttl_seconds * 1000
        self.store.set_reset_otp(user.id, user.reset_otp, user.reset_otp_expire_at)

        try:
            await self.mailer.send_otp(user.email, user.reset_otp)
        except Exception as exc:  # any delivery failure must roll the OTP back
            _clear_otp(user)
            self.store.clear_reset_otp(user.id)
            logger.warning("Reset OTP delivery failed for user %s; pending OTP cleared", user.id)
            raise Internal("Failed to send OTP email. Please try again later.") from exc

        logger.info("Reset OTP issued for user %s", user.id)

    def reset_password(self, email: str, otp: str, new_password: str) -> None:
        """Consume a pending OTP and set a new password.

        Raises:
            ValidationError:     malformed email or new password.
            NotFound:            no such account.
            InvalidOrExpiredOtp: no pending OTP, or it has expired.
            InvalidOtp:          the code does not match.
        """
        email = normalize_email(email)
        if not is_valid_email(email):
            raise ValidationError("Please provide a valid email address")
        if not is_valid_password(new_password):
            raise ValidationError("Password must be between 6 characters and 72 bytes long")

        user = self.store.get_by_email(email)
        if user is None:
            raise NotFound("User not found with this email")

        if not user.reset_otp or user.reset_otp_expire_at < self._now_ms():
            raise InvalidOrExpiredOtp()

        if (otp or "").strip() != user.reset_otp:
            raise InvalidOtp()

        self.credentials.set_password(user, new_password)
        self.store.set_password_hash(user.id, user.hashed_password)
        _clear_otp(user)
        user.hashed_password = None
        logger.info("Password reset completed for user %s", user.id)


def _clear_otp(user: User) -> None:
    user.reset_otp = ""
    user.reset_otp_expire_at = 0
