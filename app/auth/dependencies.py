# =============================================================================
# app/auth/dependencies.py - FastAPI Auth Dependencies
# =============================================================================
# Provides dependency injection for authentication and role checks.
#
# Usage:
#   from app.auth import get_current_user, require_roles, AuthUser
#
#   @router.get("/protected")
#   async def protected(user: AuthUser = Depends(get_current_user)):
#       return {"user_id": user.id}
#
#   @router.get("/admin-only")
#   async def admin_only(user: AuthUser = Depends(require_roles(UserRole.ADMIN))):
#       ...
# =============================================================================

import logging
from typing import Callable, Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.exceptions import AgoraException, AuthenticationError, PermissionDeniedError
from core.models.user import AuthUser, UserRole
from core.services.auth_service import AuthService

logger = logging.getLogger(__name__)

# HTTP Bearer token extractor. Missing credentials are reported through
# AuthenticationError so every 401 has the same JSON shape.
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> AuthUser:
    """
    Authenticate the request.

    This dependency:
    1. Extracts the Bearer token from the Authorization header
    2. Verifies signature, expiry, issuer and token type
    3. Checks the session behind the token is still active
    4. Loads the current role and ban state of the user

    Raises:
        AuthenticationError: 401 if the token is missing, invalid, expired
            or its session was revoked
        PermissionDeniedError: 403 if the account is banned
    """
    if credentials is None:
        raise AuthenticationError(
            message="Not authenticated",
            code="NOT_AUTHENTICATED",
            suggestion="Send an 'Authorization: Bearer <access token>' header",
        )

    user = AuthService.authenticate(credentials.credentials)
    logger.debug(f"Authenticated user: {user.id}")
    return user


async def get_current_user_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[AuthUser]:
    """
    Optionally get the current user from the access token.

    Returns None if no token is provided or the token is not usable,
    instead of raising an error. Used by public reads that show more to
    moderators.
    """
    if credentials is None:
        return None

    try:
        return AuthService.authenticate(credentials.credentials)
    except AgoraException:
        # If token is invalid, treat as no auth rather than error
        return None


def require_roles(*roles: UserRole) -> Callable:
    """
    Build a dependency that only admits the given roles.

    Example:
        Depends(require_roles(UserRole.SELLER, UserRole.ADMIN))
    """
    allowed = frozenset(roles)

    async def dependency(user: AuthUser = Depends(get_current_user)) -> AuthUser:
        if user.role not in allowed:
            logger.warning(f"User {user.id} with role {user.role.value} denied; needs {sorted(r.value for r in allowed)}")
            raise PermissionDeniedError(
                message="Your role does not allow this operation",
                code="FORBIDDEN_ROLE",
                details={"required": sorted(r.value for r in allowed)},
            )
        return user

    return dependency


# Common role sets
require_admin = require_roles(UserRole.ADMIN)
require_staff = require_roles(UserRole.MODERATOR, UserRole.ADMIN)
require_seller = require_roles(UserRole.SELLER, UserRole.ADMIN)
