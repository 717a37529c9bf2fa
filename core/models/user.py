# =============================================================================
# core/models/user.py - User Schemas
# =============================================================================
# These models define the API contract for user accounts:
# - UserRole: platform-wide roles
# - UserResponse: the account as its owner (or an admin) sees it
# - PublicUserResponse: what everyone else sees (no email)
# - UserUpdate / AdminUserUpdate: profile and role changes
# =============================================================================

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, HttpUrl

from lib.pagination import PageRequest


class UserRole(str, Enum):
    """
    Platform-wide roles.

    - member: default for every registration
    - seller: may list products and fulfil orders
    - moderator: may moderate every community
    - admin: everything, including bans and appeal reviews
    """
    MEMBER = "member"
    SELLER = "seller"
    MODERATOR = "moderator"
    ADMIN = "admin"


STAFF_ROLES = frozenset({UserRole.MODERATOR.value, UserRole.ADMIN.value})


class AuthUser(BaseModel):
    """
    Authenticated principal for the current request.

    Built from the access token claims and refreshed against the users
    table, so role changes and bans take effect immediately.
    """
    id: UUID
    email: str
    username: str
    role: UserRole
    session_id: UUID

    model_config = ConfigDict(frozen=True)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_staff(self) -> bool:
        """Moderators and admins."""
        return self.role.value in STAFF_ROLES


class UserStatus(str, Enum):
    """Derived account state used by the admin search filter."""
    ACTIVE = "active"
    SUSPENDED = "suspended"
    BANNED = "banned"
    DELETED = "deleted"


class PublicUserResponse(BaseModel):
    """
    Public profile.

    Returned by GET /users/{id}. Never includes the email address.
    """
    id: UUID
    username: str
    display_name: str | None = None
    bio: str | None = None
    avatar_url: str | None = None
    role: UserRole
    karma: int = 0
    created_at: datetime


class UserResponse(PublicUserResponse):
    """
    Full account view for the owner and administrators.

    Example:
        {
            "id": "550e8400-e29b-41d4-a716-446655440000",
            "email": "ada@example.com",
            "username": "ada",
            "role": "member",
            "karma": 12,
            "is_banned": false,
            "suspended_until": null
        }
    """
    email: str
    is_banned: bool = False
    suspended_until: datetime | None = None
    last_login_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None


class UserUpdate(BaseModel):
    """Fields a user may change on their own profile."""
    display_name: str | None = Field(default=None, max_length=80)
    bio: str | None = Field(default=None, max_length=500)
    avatar_url: HttpUrl | None = None


class AdminUserUpdate(BaseModel):
    """Role change performed by an administrator."""
    role: UserRole


class UserSearchQuery(PageRequest):
    """Admin user search."""
    search: str | None = Field(default=None, max_length=100, description="Username or email substring")
    role: UserRole | None = None
    status: UserStatus | None = None


class LoginHistoryQuery(PageRequest):
    success: bool | None = None
