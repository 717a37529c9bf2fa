# =============================================================================
# core/services/auth_service.py - Authentication Flows
# =============================================================================
# Registration, login, refresh token rotation, logout, password changes and
# password resets. Every domain authenticates through this one layer:
#
#   login/register -> session row + (access JWT, opaque refresh token)
#   refresh        -> rotate: revoke old session, new session in same family
#   reuse detected -> revoke the whole family
#   each request   -> authenticate(): JWT valid AND session still active
#
# Emails (welcome, password reset) are queued on Celery; a broker outage is
# logged and never fails the request.
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from app.config import settings
from app.exceptions import (
    AuthenticationError,
    BusinessRuleError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitExceededError,
)
from core.models.user import AuthUser, UserRole
from core.services.session_service import SessionService
from core.services.user_service import UserService
from lib.rate_limiter import RateLimiter
from lib.security import (
    create_access_token,
    decode_access_token,
    generate_opaque_token,
    hash_opaque_token,
    hash_password,
    validate_password_strength,
    verify_password,
)
from lib.supabase_client import SupabaseClient
from lib.utils import iso_in, is_past, new_id, normalize_uuid, utc_now_iso

logger = logging.getLogger(__name__)

RESET_TABLE = "password_reset_tokens"

login_limiter = RateLimiter(prefix="login")


def _enqueue(task_name: str, *args: Any) -> None:
    """
    Queue a worker task by name without failing the caller.

    Goes through the configured app: a shared task's .delay() resolves the
    thread's current app, which is Celery's unconfigured default outside
    the main thread.
    """
    from workers.celery_app import celery_app

    try:
        celery_app.tasks[f"workers.tasks.{task_name}"].delay(*args)
    except Exception as e:
        logger.error(f"Failed to queue {task_name}: {e}")


def _invalid_credentials() -> AuthenticationError:
    return AuthenticationError(
        message="Invalid email or password",
        code="INVALID_CREDENTIALS",
    )


class AuthService:
    """
    Service for authentication.

    All methods are static; state lives in the users, auth_sessions,
    login_history and password_reset_tokens tables.
    """

    # -------------------------------------------------------------------------
    # Token Issuance
    # -------------------------------------------------------------------------

    @staticmethod
    def issue_tokens(
        user: dict[str, Any],
        ip_address: str | None = None,
        user_agent: str | None = None,
        family_id: str | None = None,
    ) -> dict[str, Any]:
        """
        Open a session for a user and sign its tokens.

        Returns:
            {"user": row, "session_id": ..., "token": {access, refresh, expired_at,
            refreshable_until}}
        """
        session, refresh_token = SessionService.create_session(
            user["id"],
            ip_address=ip_address,
            user_agent=user_agent,
            family_id=family_id,
        )
        access_token, expires_at = create_access_token(
            user_id=user["id"],
            email=user["email"],
            role=user["role"],
            session_id=session["id"],
        )
        return {
            "user": user,
            "session_id": session["id"],
            "token": {
                "access": access_token,
                "refresh": refresh_token,
                "expired_at": expires_at,
                "refreshable_until": session["expires_at"],
            },
        }

    # -------------------------------------------------------------------------
    # Register / Login
    # -------------------------------------------------------------------------

    @staticmethod
    def register(
        email: str,
        password: str,
        username: str,
        display_name: str | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> dict[str, Any]:
        """
        Create an account and log it in.

        Raises:
            BusinessRuleError: WEAK_PASSWORD
            ConflictError: EMAIL_TAKEN or USERNAME_TAKEN
        """
        validate_password_strength(password)
        user = UserService.create_user(
            email=email,
            password_hash=hash_password(password),
            username=username,
            display_name=display_name,
            role=UserRole.MEMBER,
        )
        result = AuthService.issue_tokens(user, ip_address, user_agent)
        _enqueue("send_welcome_email", user["email"], user["username"])
        return result

    @staticmethod
    def login(
        email: str,
        password: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> dict[str, Any]:
        """
        Verify credentials and open a session.

        Raises:
            RateLimitExceededError: Too many attempts for this email and IP
            AuthenticationError: INVALID_CREDENTIALS (unknown email, wrong
                password and deleted accounts are indistinguishable)
            PermissionDeniedError: ACCOUNT_BANNED for non-appealable bans.
                Appealably banned accounts may log in to read and appeal;
                UserService.ensure_can_participate blocks everything else.
        """
        email = email.strip().lower()
        limiter_key = f"{email}:{ip_address or 'unknown'}"

        attempt = login_limiter.hit(
            limiter_key,
            limit=settings.LOGIN_RATE_LIMIT_ATTEMPTS,
            window_seconds=settings.LOGIN_RATE_LIMIT_WINDOW_SECONDS,
        )
        if not attempt.allowed:
            raise RateLimitExceededError(retry_after=attempt.retry_after)

        user = UserService.find_by_email(email)
        user_id = user["id"] if user else None

        if not user or user.get("deleted_at") or not verify_password(password, user.get("password_hash")):
            logger.warning(f"Failed login for {email} from {ip_address}")
            UserService.record_login_attempt(
                email, False, user_id, ip_address, user_agent, failure_reason="invalid_credentials",
            )
            raise _invalid_credentials()

        if user.get("is_banned") and not user.get("ban_appealable"):
            logger.warning(f"Banned user {user_id} attempted to log in")
            UserService.record_login_attempt(
                email, False, user_id, ip_address, user_agent, failure_reason="banned",
            )
            raise PermissionDeniedError(
                message="This account is banned",
                code="ACCOUNT_BANNED",
                suggestion="Contact support or appeal the ban",
            )

        login_limiter.reset(limiter_key)
        UserService.record_login_attempt(email, True, user_id, ip_address, user_agent)
        UserService.mark_logged_in(user_id)
        logger.info(f"User {user_id} logged in")

        return AuthService.issue_tokens(UserService.get_user(user_id), ip_address, user_agent)

    # -------------------------------------------------------------------------
    # Refresh Rotation
    # -------------------------------------------------------------------------

    @staticmethod
    def refresh(
        refresh_token: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> dict[str, Any]:
        """
        Exchange a refresh token for a new token pair.

        The presented session is revoked and replaced by a new session in the
        same family. Presenting an already revoked token means it was copied,
        so every live session of that family is revoked.

        Raises:
            AuthenticationError: INVALID_REFRESH_TOKEN, REFRESH_TOKEN_REUSED,
                REFRESH_TOKEN_EXPIRED
        """
        session = SessionService.find_by_refresh_token(refresh_token)
        if not session:
            raise AuthenticationError(message="Unknown refresh token", code="INVALID_REFRESH_TOKEN")

        if session.get("revoked_at"):
            SessionService.revoke_family(session["family_id"])
            raise AuthenticationError(
                message="Refresh token was already used",
                code="REFRESH_TOKEN_REUSED",
                suggestion="Log in again",
            )

        if is_past(session.get("expires_at")):
            raise AuthenticationError(
                message="Refresh token has expired",
                code="REFRESH_TOKEN_EXPIRED",
                suggestion="Log in again",
            )

        user = SupabaseClient.fetch_by_id("users", session["user_id"])
        if not user:
            SessionService.revoke(session["id"])
            raise AuthenticationError(message="Account no longer exists", code="INVALID_REFRESH_TOKEN")
        if user.get("is_banned") and not user.get("ban_appealable"):
            SessionService.revoke_family(session["family_id"])
            raise PermissionDeniedError(message="This account is banned", code="ACCOUNT_BANNED")

        result = AuthService.issue_tokens(
            user,
            ip_address=ip_address or session.get("ip_address"),
            user_agent=user_agent or session.get("user_agent"),
            family_id=session["family_id"],
        )
        SessionService.revoke(session["id"], replaced_by=result["session_id"])
        logger.info(f"Rotated session {session['id']} for user {user['id']}")
        return result

    # -------------------------------------------------------------------------
    # Request Authentication
    # -------------------------------------------------------------------------

    @staticmethod
    def authenticate(access_token: str) -> AuthUser:
        """
        Resolve an access token to the current principal.

        Role and ban state come from the users table, not the token, so they
        take effect before the token expires.

        Raises:
            AuthenticationError: TOKEN_EXPIRED, INVALID_TOKEN, SESSION_REVOKED
            PermissionDeniedError: ACCOUNT_BANNED
        """
        payload = decode_access_token(access_token)

        session = SessionService.get_session(payload.sid)
        if not session or session["user_id"] != payload.sub:
            raise AuthenticationError(message="Invalid token: unknown session", code="INVALID_TOKEN")
        if not SessionService.is_active(session):
            raise AuthenticationError(
                message="This session has been logged out",
                code="SESSION_REVOKED",
                suggestion="Log in again",
            )

        user = SupabaseClient.fetch_by_id("users", payload.sub)
        if not user:
            raise AuthenticationError(message="Account no longer exists", code="INVALID_TOKEN")
        if user.get("is_banned") and not user.get("ban_appealable"):
            raise PermissionDeniedError(message="This account is banned", code="ACCOUNT_BANNED")

        SessionService.touch(session)
        return AuthUser(
            id=UUID(user["id"]),
            email=user["email"],
            username=user["username"],
            role=user["role"],
            session_id=UUID(session["id"]),
        )

    # -------------------------------------------------------------------------
    # Sessions
    # -------------------------------------------------------------------------

    @staticmethod
    def logout(actor: AuthUser) -> None:
        SessionService.revoke(actor.session_id)
        logger.info(f"User {actor.id} logged out session {actor.session_id}")

    @staticmethod
    def logout_all(actor: AuthUser) -> int:
        return SessionService.revoke_all_for_user(actor.id)

    @staticmethod
    def list_sessions(actor: AuthUser) -> list[dict[str, Any]]:
        sessions = SessionService.list_active(actor.id)
        current = str(actor.session_id)
        return [{**s, "is_current": s["id"] == current} for s in sessions]

    @staticmethod
    def revoke_session(actor: AuthUser, session_id: UUID | str) -> None:
        """
        Revoke one of the caller's sessions.

        Raises:
            NotFoundError: If the session is not an active session of the caller
        """
        session = SessionService.get_session(session_id)
        if not session or session["user_id"] != str(actor.id) or not SessionService.is_active(session):
            raise NotFoundError("Session", session_id)
        SessionService.revoke(session_id)

    # -------------------------------------------------------------------------
    # Passwords
    # -------------------------------------------------------------------------

    @staticmethod
    def change_password(actor: AuthUser, current_password: str, new_password: str) -> int:
        """
        Change the caller's password and revoke their other sessions.

        Returns:
            Number of other sessions revoked
        """
        user = UserService.get_user(actor.id)
        if not verify_password(current_password, user.get("password_hash")):
            logger.warning(f"User {actor.id} failed password change: wrong current password")
            raise AuthenticationError(message="Current password is incorrect", code="INVALID_CREDENTIALS")
        if current_password == new_password:
            raise BusinessRuleError(
                message="New password must differ from the current password",
                code="PASSWORD_UNCHANGED",
            )
        validate_password_strength(new_password)

        UserService.set_password_hash(actor.id, hash_password(new_password))
        revoked = SessionService.revoke_all_for_user(actor.id, except_session_id=actor.session_id)
        logger.info(f"User {actor.id} changed password, revoked {revoked} other sessions")
        return revoked

    @staticmethod
    def request_password_reset(email: str) -> None:
        """
        Start a password reset.

        Behaves identically whether or not the account exists.
        """
        user = UserService.find_by_email(email)
        if not user or user.get("deleted_at"):
            logger.info(f"Password reset requested for unknown email {email}")
            return

        now = utc_now_iso()
        SupabaseClient.update_where(RESET_TABLE, {"used_at": now}, user_id=user["id"], used_at=None)

        token = generate_opaque_token()
        SupabaseClient.insert_row(RESET_TABLE, {
            "id": new_id(),
            "user_id": user["id"],
            "token_hash": hash_opaque_token(token),
            "expires_at": iso_in(minutes=settings.PASSWORD_RESET_TTL_MINUTES),
            "used_at": None,
            "created_at": now,
        })
        logger.info(f"Issued password reset token for user {user['id']}")
        _enqueue("send_password_reset_email", user["email"], token)

    @staticmethod
    def reset_password(token: str, new_password: str) -> None:
        """
        Complete a password reset and revoke every session of the account.

        Raises:
            BusinessRuleError: INVALID_RESET_TOKEN if the token is unknown,
                used or expired; WEAK_PASSWORD
        """
        row = SupabaseClient.fetch_one(RESET_TABLE, token_hash=hash_opaque_token(token))
        if not row or row.get("used_at") or is_past(row.get("expires_at")):
            raise BusinessRuleError(
                message="Reset token is invalid or has expired",
                code="INVALID_RESET_TOKEN",
                suggestion="Request a new password reset email",
            )
        validate_password_strength(new_password)

        user_id = normalize_uuid(row["user_id"])
        UserService.set_password_hash(user_id, hash_password(new_password))
        SupabaseClient.update_row(RESET_TABLE, row["id"], {"used_at": utc_now_iso()})
        revoked = SessionService.revoke_all_for_user(user_id)
        logger.info(f"User {user_id} reset password, revoked {revoked} sessions")
