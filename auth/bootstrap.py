"""
auth/bootstrap.py -- First-run admin account.

Called once from the application lifespan. If no admin exists yet and an
ADMIN_PASSWORD is configured, an "Administrator" account is created from
ADMIN_EMAIL / ADMIN_PHONE. Without ADMIN_PASSWORD nothing is created and a
warning is logged -- there is no built-in default password.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from auth.credentials import CredentialStore
from auth.models import User
from auth.store import UserStore
from auth.validators import is_valid_password, normalize_email
from core.config import Settings

logger = logging.getLogger("onushilon.auth.bootstrap")


def ensure_initial_admin(store: UserStore, credentials: CredentialStore, settings: Settings) -> User | None:
    """Create the initial admin if none exists. Returns the new User or None."""
    if store.has_admin():
        logger.info("Admin user already exists")
        return None

    if not settings.admin_password:
        logger.warning("No admin account exists and ADMIN_PASSWORD is not set; skipping admin creation")
        return None
    if not is_valid_password(settings.admin_password):
        logger.warning("ADMIN_PASSWORD is too short or too long; skipping admin creation")
        return None

    admin = User(
        name="Administrator",
        email=normalize_email(settings.admin_email),
        phone=settings.admin_phone,
        age=30,
        role="admin",
    )
    credentials.set_password(admin, settings.admin_password)
    try:
        store.create_user(admin)
    except IntegrityError:
        # Email or phone already belongs to a non-admin account.
        logger.warning("Could not create initial admin: %s is already registered", admin.email)
        return None

    logger.info("Initial admin user created (%s). Change the password after first login.", admin.email)
    admin.hashed_password = None
    return admin
