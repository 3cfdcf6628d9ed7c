"""
api/routes/v1/admin.py -- Admin user-management REST endpoints.

Routes (all require an authenticated, active admin):
  GET    /api/v1/admin/users              -- filtered, paginated user list
  GET    /api/v1/admin/users/{id}         -- one user
  PUT    /api/v1/admin/users/{id}/role    -- change role
  PUT    /api/v1/admin/users/{id}/status  -- activate / deactivate
  DELETE /api/v1/admin/users/{id}         -- irrecoverable delete
  GET    /api/v1/admin/stats              -- counts and recent sign-ups

The router-level dependency runs the authentication and authorization gates
on every route. Handlers that need the caller (for the self-protection rules
in auth/admin.py) also take it as a parameter; FastAPI resolves the
dependency once per request.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from api.models import (
    MessageResponse,
    Pagination,
    PublicUser,
    RoleEnum,
    RoleUpdate,
    StatisticsResponse,
    StatusUpdate,
    UserListResponse,
    UserResponse,
)
from auth.admin import MAX_PAGE_SIZE, AdminService
from auth.dependencies import require_admin
from auth.models import User

router = APIRouter(prefix="/admin", dependencies=[Depends(require_admin)])


def _admin(request: Request) -> AdminService:
    return request.app.state.admin


@router.get("/users", response_model=UserListResponse)
def list_users(
    request: Request,
    role: Optional[RoleEnum] = None,
    is_active_camel: Optional[bool] = Query(default=None, alias="isActive"),
    is_active: Optional[bool] = None,
    search: Optional[str] = Query(default=None, max_length=100),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=MAX_PAGE_SIZE),
) -> UserListResponse:
    """List users newest first. search matches name or email, case-insensitive.

    The active filter is read from isActive, the name existing clients send,
    or from is_active.
    """
    if is_active is None:
        is_active = is_active_camel
    result = _admin(request).list_users(
        role=role.value if role else None,
        is_active=is_active,
        search=search,
        page=page,
        limit=limit,
    )
    return UserListResponse(
        users=[PublicUser.from_user(u) for u in result.users],
        pagination=Pagination(page=result.page, pages=result.pages, count=len(result.users), total=result.total),
    )


@router.get("/users/{user_id}", response_model=UserResponse)
def get_user(request: Request, user_id: str) -> UserResponse:
    return UserResponse(user=PublicUser.from_user(_admin(request).get_user(user_id)))


@router.put("/users/{user_id}/role", response_model=UserResponse)
def update_role(
    request: Request,
    user_id: str,
    body: RoleUpdate,
    current_user: User = Depends(require_admin),
) -> UserResponse:
    """Change a user's role. An admin cannot demote themselves."""
    updated = _admin(request).update_role(current_user, user_id, body.role.value)
    return UserResponse(user=PublicUser.from_user(updated))


@router.put("/users/{user_id}/status", response_model=UserResponse)
def update_status(
    request: Request,
    user_id: str,
    body: StatusUpdate,
    current_user: User = Depends(require_admin),
) -> UserResponse:
    """Activate or deactivate a user. An admin cannot deactivate themselves."""
    updated = _admin(request).update_status(current_user, user_id, body.is_active)
    return UserResponse(user=PublicUser.from_user(updated))


@router.delete("/users/{user_id}", response_model=MessageResponse)
def delete_user(
    request: Request,
    user_id: str,
    current_user: User = Depends(require_admin),
) -> MessageResponse:
    """Permanently delete a user. An admin cannot delete themselves."""
    _admin(request).delete_user(current_user, user_id)
    return MessageResponse(message="User deleted successfully")


@router.get("/stats", response_model=StatisticsResponse)
def get_statistics(request: Request) -> StatisticsResponse:
    stats = _admin(request).get_statistics()
    return StatisticsResponse(
        total_users=stats.total_users,
        active_users=stats.active_users,
        inactive_users=stats.inactive_users,
        users_by_role=stats.users_by_role,
        recent_users=[PublicUser.from_user(u) for u in stats.recent_users],
    )
