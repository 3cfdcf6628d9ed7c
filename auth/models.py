"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). The store and the
services do the work; routes map these onto the API response models.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from dataclasses import dataclass

ROLES = ("user", "moderator", "admin")


@dataclass
class User:
    """A registered account.

    hashed_password is None on every read except get_by_email_with_password().
    UserStore.save() writes only the profile fields, so a User loaded the
    normal way can be saved back without touching the credential.

    reset_otp / reset_otp_expire_at travel together: either both are set (a
    pending reset) or both are cleared ("" and 0). reset_otp_expire_at is epoch
    milliseconds.

    id is None before the record is written to the database.
    """

    name: str
    email: str  # stored lower-case
    phone: str  # stored as digits only
    age: int
    role: str = "user"  # "user" | "moderator" | "admin"
    is_active: bool = True
    id: str | None = None
    hashed_password: str | None = None
    reset_otp: str = ""
    reset_otp_expire_at: int = 0
    last_login: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
