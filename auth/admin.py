"""
auth/admin.py -- Admin user management.

Callers must already have passed the authorization gate (require_admin).
This module adds the self-protection rules that a bare role check cannot
express. They compare the target id with the caller's id and apply to
every caller, admins included:
  - no changing your own role away from admin
  - no deactivating your own account
  - no deleting your own account

Malformed ids are rejected with ValidationError before any lookup, so a
garbage path segment reads as a bad request rather than a 404 or a 500.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from auth.models import User
from auth.store import UserStore
from auth.validators import is_valid_role, is_valid_user_id
from core.errors import Forbidden, NotFound, ValidationError

logger = logging.getLogger("onushilon.auth.admin")

MAX_PAGE_SIZE = 100


@dataclass
class UserPage:
    users: list[User]
    page: int
    limit: int
    total: int

    @property
    def pages(self) -> int:
        return (self.total + self.limit - 1) // self.limit


@dataclass
class UserStatistics:
    total_users: int
    active_users: int
    inactive_users: int
    users_by_role: dict[str, int]
    recent_users: list[User] = field(default_factory=list)


class AdminService:
    def __init__(self, store: UserStore) -> None:
        self.store = store

    def list_users(
        self,
        role: str | None = None,
        is_active: bool | None = None,
        search: str | None = None,
        page: int = 1,
        limit: int = 10,
    ) -> UserPage:
        # Unknown roles are ignored rather than rejected, matching the filter's
        # behaviour for clients that pass a stale role name.
        if role is not None and not is_valid_role(role):
            role = None
        page = max(page, 1)
        limit = min(max(limit, 1), MAX_PAGE_SIZE)
        search = search.strip() if search else None
        users, total = self.store.list_users(
            role=role,
            is_active=is_active,
            search=search,
            offset=(page - 1) * limit,
            limit=limit,
        )
        return UserPage(users=users, page=page, limit=limit, total=total)

    def get_user(self, user_id: str) -> User:
        return self._load(user_id)

    def update_role(self, caller: User, user_id: str, role: str) -> User:
        _check_id(user_id)
        if not is_valid_role(role):
            raise ValidationError("Role must be either user, moderator, or admin")
        if user_id == caller.id and role != "admin":
            raise Forbidden("You cannot change your own admin role")

        if not self.store.set_role(user_id, role):
            raise NotFound("User not found")
        logger.info("User %s changed role of %s to %s", caller.id, user_id, role)
        return self._load(user_id)

    def update_status(self, caller: User, user_id: str, is_active: bool) -> User:
        _check_id(user_id)
        if not isinstance(is_active, bool):
            raise ValidationError("isActive must be a boolean value")
        if user_id == caller.id and not is_active:
            raise Forbidden("You cannot deactivate your own account")

        if not self.store.set_active(user_id, is_active):
            raise NotFound("User not found")
        logger.info("User %s %s %s", caller.id, "activated" if is_active else "deactivated", user_id)
        return self._load(user_id)

    def delete_user(self, caller: User, user_id: str) -> None:
        _check_id(user_id)
        if user_id == caller.id:
            raise Forbidden("You cannot delete your own account")

        if not self.store.delete_user(user_id):
            raise NotFound("User not found")
        logger.info("User %s deleted %s", caller.id, user_id)

    def get_statistics(self) -> UserStatistics:
        return UserStatistics(
            total_users=self.store.count_users(),
            active_users=self.store.count_users(is_active=True),
            inactive_users=self.store.count_users(is_active=False),
            users_by_role=self.store.count_by_role(),
            recent_users=self.store.recent_users(limit=5),
        )

    def _load(self, user_id: str) -> User:
        _check_id(user_id)
        user = self.store.get_by_id(user_id)
        if user is None:
            raise NotFound("User not found")
        return user


def _check_id(user_id: str) -> None:
    if not is_valid_user_id(user_id):
        raise ValidationError("Invalid user ID format")
