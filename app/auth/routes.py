# =============================================================================
# app/auth/routes.py - Authentication Routes
# =============================================================================
# API endpoints for registration, login, token rotation, sessions and
# passwords, plus the caller's own profile.
#
#   POST   /auth/register               -> user + token pair
#   POST   /auth/login                  -> user + token pair
#   POST   /auth/refresh                -> rotated token pair
#   POST   /auth/logout                 -> revoke this session
#   POST   /auth/logout-all             -> revoke every session
#   GET    /auth/sessions               -> active sessions
#   DELETE /auth/sessions/{id}          -> revoke one session
#   POST   /auth/password/change
#   POST   /auth/password/reset-request
#   POST   /auth/password/reset
#   GET    /auth/me, PATCH /auth/me, GET /auth/me/login-history
# =============================================================================

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status

from app.auth.dependencies import get_current_user
from app.auth.models import (
    AuthorizedUser,
    ChangePasswordRequest,
    LoginHistoryEntry,
    LoginRequest,
    PasswordResetConfirm,
    PasswordResetRequest,
    RefreshRequest,
    RegisterRequest,
    SessionInfo,
)
from app.dependencies import ClientInfoDep
from core.models.user import AuthUser, LoginHistoryQuery, UserResponse, UserUpdate
from core.services.auth_service import AuthService
from core.services.user_service import UserService
from lib.pagination import Page, build_page

logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# Registration and Tokens
# =============================================================================

@router.post("/register", response_model=AuthorizedUser, status_code=status.HTTP_201_CREATED)
async def register(body: RegisterRequest, client: ClientInfoDep):
    """
    Create an account and log it in.

    Raises:
        409: EMAIL_TAKEN or USERNAME_TAKEN
        400: WEAK_PASSWORD
    """
    return AuthService.register(
        email=body.email,
        password=body.password,
        username=body.username,
        display_name=body.display_name,
        ip_address=client.ip_address,
        user_agent=client.user_agent,
    )


@router.post("/login", response_model=AuthorizedUser)
async def login(body: LoginRequest, client: ClientInfoDep):
    """
    Exchange email and password for a token pair.

    Raises:
        401: INVALID_CREDENTIALS
        403: ACCOUNT_BANNED
        429: Too many failed attempts for this email and address
    """
    return AuthService.login(
        email=body.email,
        password=body.password,
        ip_address=client.ip_address,
        user_agent=client.user_agent,
    )


@router.post("/refresh", response_model=AuthorizedUser)
async def refresh(body: RefreshRequest, client: ClientInfoDep):
    """
    Rotate a refresh token.

    The presented token stops working. Presenting it again revokes every
    session descended from the same login.
    """
    return AuthService.refresh(
        body.refresh_token,
        ip_address=client.ip_address,
        user_agent=client.user_agent,
    )


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(user: AuthUser = Depends(get_current_user)):
    AuthService.logout(user)


@router.post("/logout-all")
async def logout_all(user: AuthUser = Depends(get_current_user)) -> dict:
    """Revoke every session of the caller, this one included."""
    return {"revoked_sessions": AuthService.logout_all(user)}


# =============================================================================
# Sessions
# =============================================================================

@router.get("/sessions", response_model=list[SessionInfo])
async def list_sessions(user: AuthUser = Depends(get_current_user)):
    return AuthService.list_sessions(user)


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_session(
    session_id: Annotated[UUID, Path(description="Session UUID")],
    user: AuthUser = Depends(get_current_user),
):
    AuthService.revoke_session(user, session_id)


# =============================================================================
# Passwords
# =============================================================================

@router.post("/password/change")
async def change_password(
    body: ChangePasswordRequest,
    user: AuthUser = Depends(get_current_user),
) -> dict:
    """Change the password; every other session is logged out."""
    revoked = AuthService.change_password(user, body.current_password, body.new_password)
    return {"message": "Password changed", "revoked_sessions": revoked}


@router.post("/password/reset-request", status_code=status.HTTP_202_ACCEPTED)
async def request_password_reset(body: PasswordResetRequest) -> dict:
    """
    Email a reset token.

    Always answers the same way so the endpoint can't be used to discover
    which addresses have accounts.
    """
    AuthService.request_password_reset(body.email)
    return {"message": "If that address has an account, a reset link is on its way"}


@router.post("/password/reset")
async def reset_password(body: PasswordResetConfirm) -> dict:
    AuthService.reset_password(body.token, body.new_password)
    return {"message": "Password reset; please log in again"}


# =============================================================================
# Current User
# =============================================================================

@router.get("/me", response_model=UserResponse)
async def get_me(user: AuthUser = Depends(get_current_user)):
    """Get the current authenticated user's profile."""
    return UserService.get_user(user.id)


@router.patch("/me", response_model=UserResponse)
async def update_me(body: UserUpdate, user: AuthUser = Depends(get_current_user)):
    return UserService.update_profile(user.id, body)


@router.get("/me/login-history", response_model=Page[LoginHistoryEntry])
async def get_login_history(
    query: Annotated[LoginHistoryQuery, Query()],
    user: AuthUser = Depends(get_current_user),
):
    rows, total = UserService.list_login_history(user.id, query)
    return build_page(rows, total, query)


@router.get("/verify")
async def verify_token(user: AuthUser = Depends(get_current_user)) -> dict:
    """
    Verify that the current token is valid.

    Useful for checking if a stored token is still valid.
    """
    return {
        "valid": True,
        "user_id": str(user.id),
        "role": user.role.value,
    }
