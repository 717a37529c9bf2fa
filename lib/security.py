# =============================================================================
# lib/security.py - Password Hashing and Token Primitives
# =============================================================================
# - Passwords are hashed with bcrypt through passlib's CryptContext.
# - Access tokens are short-lived HS256 JWTs (python-jose).
# - Refresh and password-reset tokens are opaque random strings; only their
#   SHA-256 digest is ever stored.
#
# Usage:
#   from lib.security import hash_password, create_access_token
# =============================================================================

import hashlib
import logging
import re
import secrets
from datetime import datetime, timedelta, timezone

from jose import jwt, JWTError, ExpiredSignatureError
from passlib.context import CryptContext
from pydantic import BaseModel, ValidationError

from app.config import settings
from app.exceptions import AuthenticationError, BusinessRuleError

logger = logging.getLogger(__name__)

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)

ACCESS_TOKEN_TYPE = "access"

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 128


class TokenPayload(BaseModel):
    """Decoded access token claims."""
    sub: str  # User ID
    email: str
    role: str
    sid: str  # Session ID
    type: str
    iss: str
    iat: int
    exp: int


# =============================================================================
# Passwords
# =============================================================================

def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, password_hash: str | None) -> bool:
    """Constant-time check; a missing hash never verifies."""
    if not password_hash:
        return False
    try:
        return pwd_context.verify(plain_password, password_hash)
    except ValueError:
        logger.warning("Stored password hash is not a recognised bcrypt hash")
        return False


def validate_password_strength(password: str) -> str:
    """
    Enforce the password policy: 8-128 characters with at least one letter
    and one digit.

    Raises:
        BusinessRuleError: If the password is too weak
    """
    if not PASSWORD_MIN_LENGTH <= len(password) <= PASSWORD_MAX_LENGTH:
        raise BusinessRuleError(
            message=f"Password must be {PASSWORD_MIN_LENGTH}-{PASSWORD_MAX_LENGTH} characters",
            code="WEAK_PASSWORD",
        )
    if not re.search(r"[A-Za-z]", password) or not re.search(r"\d", password):
        raise BusinessRuleError(
            message="Password must contain at least one letter and one digit",
            code="WEAK_PASSWORD",
            suggestion="Mix letters and numbers, e.g. 'correct-horse-42'",
        )
    return password


# =============================================================================
# Access Tokens (JWT)
# =============================================================================

def create_access_token(
    user_id: str,
    email: str,
    role: str,
    session_id: str,
    now: datetime | None = None,
) -> tuple[str, datetime]:
    """
    Sign an access token for a session.

    Returns:
        Tuple of (encoded JWT, expiry datetime)
    """
    issued_at = now or datetime.now(timezone.utc)
    expires_at = issued_at + timedelta(minutes=settings.ACCESS_TOKEN_TTL_MINUTES)

    claims = {
        "sub": user_id,
        "email": email,
        "role": role,
        "sid": session_id,
        "type": ACCESS_TOKEN_TYPE,
        "iss": settings.JWT_ISSUER,
        "iat": int(issued_at.timestamp()),
        "exp": int(expires_at.timestamp()),
    }
    token = jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)
    return token, expires_at


def decode_access_token(token: str) -> TokenPayload:
    """
    Verify signature, expiry, issuer and token type.

    Raises:
        AuthenticationError: TOKEN_EXPIRED or INVALID_TOKEN
    """
    try:
        claims = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
            issuer=settings.JWT_ISSUER,
        )
    except ExpiredSignatureError:
        raise AuthenticationError(
            message="Token has expired",
            code="TOKEN_EXPIRED",
            suggestion="Exchange your refresh token at POST /api/v1/auth/refresh",
        )
    except JWTError as e:
        logger.warning(f"JWT validation failed: {e}")
        raise AuthenticationError(message="Invalid token", code="INVALID_TOKEN")

    if claims.get("type") != ACCESS_TOKEN_TYPE:
        raise AuthenticationError(message="Invalid token type", code="INVALID_TOKEN")

    try:
        return TokenPayload(**claims)
    except ValidationError:
        raise AuthenticationError(message="Invalid token: malformed claims", code="INVALID_TOKEN")


# =============================================================================
# Opaque Tokens (refresh, password reset)
# =============================================================================

def generate_opaque_token() -> str:
    return secrets.token_urlsafe(48)


def hash_opaque_token(token: str) -> str:
    """SHA-256 hex digest used as the lookup key for opaque tokens."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
