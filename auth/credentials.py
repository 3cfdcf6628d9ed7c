"""
auth/credentials.py -- Password hashing and verification.

Security design decisions:
  bcrypt used directly (no passlib wrapper). Its cost factor makes brute-force
  expensive for low-entropy secrets like passwords. The cost is a constructor
  argument so production runs at 12 and the test suite at 4.

  set_password() is the only code path that produces a hash. The store only
  writes a hash through UserStore.set_password_hash() and never hashes on its
  own, so a profile save cannot re-hash or replace the credential.

  authenticate() always runs bcrypt, even when the account does not exist,
  so login response time does not reveal which emails are registered.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import bcrypt

from auth.models import User
from auth.validators import MAX_PASSWORD_BYTES

DEFAULT_ROUNDS = 12


class CredentialStore:
    """Owns the password hash on a User record."""

    def __init__(self, rounds: int = DEFAULT_ROUNDS) -> None:
        self.rounds = rounds
        self._dummy_hash: str | None = None

    def hash(self, plain: str) -> str:
        """Return a salted bcrypt hash of the plaintext password."""
        return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plain: str, hashed: str) -> bool:
        """Return True if the plaintext matches the hash.

        A mismatch returns False. A malformed hash raises ValueError from
        bcrypt -- that is a data problem, not a wrong password, and it must
        not be reported as one.
        """
        encoded = plain.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            # Longer inputs were never accepted by set_password(), so nothing can match.
            return False
        return bcrypt.checkpw(encoded, hashed.encode("utf-8"))

    def set_password(self, user: User, plain: str) -> None:
        """Hash plain and store it on user. The caller persists the record."""
        user.hashed_password = self.hash(plain)

    def authenticate(self, user: User | None, plain: str) -> bool:
        """Check a login attempt with timing equalization.

        user must have been loaded with get_by_email_with_password(). When it
        is None (unknown email) bcrypt runs against a dummy hash of the same
        cost before returning False.
        """
        if user is None or not user.hashed_password:
            self.verify(plain, self._timing_hash())
            return False
        return self.verify(plain, user.hashed_password)

    def _timing_hash(self) -> str:
        if self._dummy_hash is None:
            self._dummy_hash = self.hash("onushilon_timing_dummy")
        return self._dummy_hash
