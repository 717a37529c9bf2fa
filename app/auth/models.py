# =============================================================================
# app/auth/models.py - Authentication Models
# =============================================================================
# Pydantic models for authentication data: the authenticated principal,
# token claims, and the request/response bodies of the auth endpoints.
# =============================================================================

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from core.models.user import AuthUser, UserResponse, UserRole


# =============================================================================
# Requests
# =============================================================================

class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    username: str = Field(
        ...,
        min_length=3,
        max_length=30,
        pattern=r"^[A-Za-z0-9_]+$",
        description="Letters, digits and underscores",
    )
    display_name: Optional[str] = Field(default=None, max_length=80)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)


class RefreshRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1)


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8, max_length=128)


class PasswordResetRequest(BaseModel):
    email: EmailStr


class PasswordResetConfirm(BaseModel):
    token: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8, max_length=128)


# =============================================================================
# Responses
# =============================================================================

class TokenPair(BaseModel):
    """Access token plus the refresh token that rotates it."""
    access: str
    refresh: str
    token_type: str = "bearer"
    expired_at: datetime = Field(..., description="Access token expiry")
    refreshable_until: datetime = Field(..., description="Refresh token expiry")


class AuthorizedUser(BaseModel):
    """Response of register, login and refresh."""
    user: UserResponse
    token: TokenPair


class SessionInfo(BaseModel):
    """An active login session (one refresh token family member)."""
    id: UUID
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime
    last_used_at: Optional[datetime] = None
    expires_at: datetime
    is_current: bool = False


class LoginHistoryEntry(BaseModel):
    id: UUID
    success: bool
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    failure_reason: Optional[str] = None
    created_at: datetime
