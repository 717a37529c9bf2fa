# =============================================================================
# app/routers/users.py - Public Profiles and User Administration
# =============================================================================
# GET /users/{id} is public. Everything under /admin/users needs the admin
# role.
# =============================================================================

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status

from app.auth import AuthUser, require_admin
from core.models.moderation import ModerationActionResponse
from core.models.user import AdminUserUpdate, PublicUserResponse, UserResponse, UserSearchQuery
from core.services.moderation_service import ModerationService
from core.services.user_service import UserService
from lib.pagination import Page, PageRequest, build_page

router = APIRouter()


@router.get("/users/{user_id}", response_model=PublicUserResponse)
async def get_public_profile(user_id: Annotated[UUID, Path(description="User UUID")]):
    """Public profile; never includes the email address."""
    return UserService.get_user(user_id)


# =============================================================================
# Admin
# =============================================================================

@router.get("/admin/users", response_model=Page[UserResponse])
async def search_users(
    query: Annotated[UserSearchQuery, Query()],
    admin: AuthUser = Depends(require_admin),
):
    """Search by username or email, filter by role and account status."""
    rows, total = UserService.search_users(query)
    return build_page(rows, total, query)


@router.get("/admin/users/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: Annotated[UUID, Path(description="User UUID")],
    admin: AuthUser = Depends(require_admin),
):
    return UserService.get_user(user_id, include_deleted=True)


@router.patch("/admin/users/{user_id}/role", response_model=UserResponse)
async def change_role(
    user_id: Annotated[UUID, Path(description="User UUID")],
    body: AdminUserUpdate,
    admin: AuthUser = Depends(require_admin),
):
    """Admins cannot demote themselves."""
    return UserService.change_role(admin, user_id, body.role)


@router.delete("/admin/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: Annotated[UUID, Path(description="User UUID")],
    admin: AuthUser = Depends(require_admin),
):
    """Soft delete the account and revoke its sessions."""
    UserService.delete_user(admin, user_id)


@router.get("/admin/users/{user_id}/actions", response_model=Page[ModerationActionResponse])
async def list_actions_against_user(
    user_id: Annotated[UUID, Path(description="User UUID")],
    page: Annotated[PageRequest, Query()],
    admin: AuthUser = Depends(require_admin),
):
    """Moderation record of one account."""
    rows, total = ModerationService.list_actions_against(user_id, page)
    return build_page(rows, total, page)
