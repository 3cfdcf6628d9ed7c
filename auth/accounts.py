"""
auth/accounts.py -- Self-service account operations.

register, login, get_profile and update_profile. Every method returns domain
objects or raises core.errors exceptions; mapping onto HTTP happens in
api/routes/v1/auth.py.

Login never says which half of the credentials was wrong: unknown email and
wrong password both raise Unauthenticated("Invalid credentials"), and both
spend one bcrypt verification (see CredentialStore.authenticate).
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError

from auth.credentials import CredentialStore
from auth.models import User
from auth.store import UserStore
from auth.tokens import TokenService
from auth.validators import (
    is_strong_password,
    is_valid_age,
    is_valid_email,
    is_valid_name,
    is_valid_phone,
    normalize_email,
    normalize_phone,
)
from core.errors import AccountDeactivated, Conflict, Unauthenticated, ValidationError

logger = logging.getLogger("onushilon.auth.accounts")

_PROFILE_FIELDS = ("name", "email", "phone", "age")


class AccountService:
    def __init__(self, store: UserStore, credentials: CredentialStore, tokens: TokenService) -> None:
        self.store = store
        self.credentials = credentials
        self.tokens = tokens

    def register(self, name: str, email: str, phone: str, age: int, password: str) -> tuple[User, str]:
        """Create a user with role "user" and return (user, token)."""
        email = normalize_email(email)
        name = name.strip()
        phone = normalize_phone(phone)
        _check_profile_values(name=name, email=email, phone=phone, age=age)
        if not is_strong_password(password):
            raise ValidationError(
                "Password must be at least 6 characters and contain at least one uppercase "
                "letter, one lowercase letter, and one number"
            )

        if self.store.get_by_email(email) is not None:
            raise Conflict("User with this email already exists")
        if self.store.get_by_phone(phone) is not None:
            raise Conflict("User with this phone number already exists")

        user = User(name=name, email=email, phone=phone, age=age)
        self.credentials.set_password(user, password)
        try:
            self.store.create_user(user)
        except IntegrityError as exc:
            # Lost a race with a concurrent registration for the same email/phone.
            raise Conflict("User with this email or phone already exists") from exc
        user.hashed_password = None

        logger.info("Registered user %s", user.id)
        return user, self.tokens.issue(user.id)

    def login(self, email: str, password: str) -> tuple[User, str]:
        """Verify credentials, stamp last_login and return (user, token)."""
        user = self.store.get_by_email_with_password(normalize_email(email))
        if not self.credentials.authenticate(user, password):
            raise Unauthenticated("Invalid credentials")
        if not user.is_active:
            raise AccountDeactivated()

        # Only last_login is written; a role or status change made while
        # bcrypt ran stays in place.
        user.last_login = datetime.now(timezone.utc).isoformat()
        self.store.touch_last_login(user.id, user.last_login)
        user.hashed_password = None

        logger.info("User %s logged in", user.id)
        return user, self.tokens.issue(user.id)

    def get_profile(self, user: User) -> User:
        return user

    def update_profile(self, user: User, changes: dict) -> User:
        """Apply a partial update of name, email, phone and age.

        Email and phone are re-checked for uniqueness only when they change.
        """
        changes = {k: v for k, v in changes.items() if k in _PROFILE_FIELDS and v is not None}
        if not changes:
            raise ValidationError("No fields to update.")

        if "name" in changes:
            changes["name"] = changes["name"].strip()
        if "email" in changes:
            changes["email"] = normalize_email(changes["email"])
        if "phone" in changes:
            changes["phone"] = normalize_phone(changes["phone"])
        _check_profile_values(**changes)

        if "email" in changes and changes["email"] != user.email:
            if self.store.get_by_email(changes["email"]) is not None:
                raise Conflict("User with this email already exists")
        if "phone" in changes and changes["phone"] != user.phone:
            if self.store.get_by_phone(changes["phone"]) is not None:
                raise Conflict("User with this phone number already exists")

        for field, value in changes.items():
            setattr(user, field, value)
        try:
            self.store.save(user)
        except IntegrityError as exc:
            raise Conflict("User with this email or phone already exists") from exc
        return user


def _check_profile_values(**values) -> None:
    if "name" in values and not is_valid_name(values["name"]):
        raise ValidationError("Name must be between 2 and 50 characters and contain only letters and spaces")
    if "email" in values and not is_valid_email(values["email"]):
        raise ValidationError("Please provide a valid email address")
    if "phone" in values and not is_valid_phone(values["phone"]):
        raise ValidationError("Please provide a valid phone number")
    if "age" in values and not is_valid_age(values["age"]):
        raise ValidationError("Age must be a whole number between 1 and 150")
