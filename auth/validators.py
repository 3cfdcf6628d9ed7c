"""
auth/validators.py -- Boolean predicates for input shape checks.

Pure functions, no side effects. The request models in api/models.py call
these from their field validators, and the services call them again before
trusting anything that did not come through a request model.
"""

from __future__ import annotations

import re

from auth.models import ROLES

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_NAME_RE = re.compile(r"^[A-Za-z\s]+$")
_USER_ID_RE = re.compile(r"^[0-9a-f]{32}$")

# bcrypt only reads the first 72 bytes of its input and bcrypt>=5 refuses
# anything longer.
MAX_PASSWORD_BYTES = 72


def is_valid_email(email: str) -> bool:
    return bool(email) and _EMAIL_RE.match(email) is not None


def is_valid_phone(phone: str) -> bool:
    """At least ten digits once separators are stripped."""
    return len(normalize_phone(phone)) >= 10


def is_valid_name(name: str) -> bool:
    name = name.strip()
    return 2 <= len(name) <= 50 and _NAME_RE.match(name) is not None


def is_valid_age(age: int) -> bool:
    return isinstance(age, int) and not isinstance(age, bool) and 1 <= age <= 150


def is_valid_password(password: str, min_length: int = 6) -> bool:
    return bool(password) and len(password) >= min_length and len(password.encode("utf-8")) <= MAX_PASSWORD_BYTES


def is_strong_password(password: str) -> bool:
    """Registration policy: valid length plus one lower, one upper and one digit."""
    return (
        is_valid_password(password)
        and any(c.islower() for c in password)
        and any(c.isupper() for c in password)
        and any(c.isdigit() for c in password)
    )


def is_valid_role(role: str) -> bool:
    return role in ROLES


def is_valid_user_id(user_id: str) -> bool:
    """User ids are UUID4 hex strings assigned by the store."""
    return isinstance(user_id, str) and _USER_ID_RE.match(user_id) is not None


def normalize_email(email: str) -> str:
    return email.strip().lower()


def normalize_phone(phone: str) -> str:
    """Reduce a phone number to its digits. Separators and spacing are cosmetic."""
    return re.sub(r"\D", "", str(phone))
