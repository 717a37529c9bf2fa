# =============================================================================
# core/services/user_service.py - User Accounts
# =============================================================================
# Profile reads and writes, participation checks (suspension and bans),
# karma bookkeeping, login history and the admin user directory.
#
# Usernames are unique case-insensitively through the username_key column
# (lower-cased username).
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from app.exceptions import BusinessRuleError, ConflictError, NotFoundError, PermissionDeniedError
from core.models.user import (
    AuthUser,
    LoginHistoryQuery,
    UserRole,
    UserSearchQuery,
    UserStatus,
    UserUpdate,
)
from core.services.session_service import SessionService
from lib.pagination import paginate_query
from lib.supabase_client import SupabaseClient
from lib.utils import is_past, like_pattern, new_id, normalize_uuid, utc_now_iso

logger = logging.getLogger(__name__)

TABLE = "users"
LOGIN_HISTORY_TABLE = "login_history"


class UserService:
    """
    Service for user accounts.

    Rows returned by this service contain password_hash; response models
    drop it, so never return a row without one.
    """

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    @staticmethod
    def get_user(user_id: UUID | str, include_deleted: bool = False) -> dict[str, Any]:
        """
        Get a user by ID.

        Raises:
            NotFoundError: If the user doesn't exist (or is deleted)
        """
        user = SupabaseClient.fetch_by_id(TABLE, user_id, include_deleted=include_deleted)
        if not user:
            raise NotFoundError("User", user_id)
        return user

    @staticmethod
    def find_by_email(email: str) -> dict[str, Any] | None:
        """Includes deleted accounts so a deleted email cannot be re-registered."""
        return SupabaseClient.fetch_one(TABLE, email=email.strip().lower())

    @staticmethod
    def find_by_username(username: str) -> dict[str, Any] | None:
        return SupabaseClient.fetch_one(TABLE, username_key=username.strip().lower())

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    @staticmethod
    def create_user(
        email: str,
        password_hash: str,
        username: str,
        display_name: str | None = None,
        role: UserRole = UserRole.MEMBER,
    ) -> dict[str, Any]:
        """
        Insert a new account.

        Raises:
            ConflictError: EMAIL_TAKEN or USERNAME_TAKEN
        """
        email = email.strip().lower()
        if UserService.find_by_email(email):
            raise ConflictError(
                message="An account with this email already exists",
                code="EMAIL_TAKEN",
                suggestion="Log in instead, or reset your password",
            )
        if UserService.find_by_username(username):
            raise ConflictError(
                message=f"Username '{username}' is already taken",
                code="USERNAME_TAKEN",
            )

        now = utc_now_iso()
        user = SupabaseClient.insert_row(TABLE, {
            "id": new_id(),
            "email": email,
            "username": username,
            "username_key": username.lower(),
            "display_name": display_name or username,
            "bio": None,
            "avatar_url": None,
            "password_hash": password_hash,
            "role": role.value,
            "karma": 0,
            "is_banned": False,
            "ban_appealable": True,
            "suspended_until": None,
            "last_login_at": None,
            "created_at": now,
            "updated_at": now,
            "deleted_at": None,
        })
        logger.info(f"Created user {user['id']} ({username})")
        return user

    @staticmethod
    def update_profile(user_id: UUID | str, update: UserUpdate) -> dict[str, Any]:
        UserService.get_user(user_id)

        data = update.model_dump(exclude_unset=True, mode="json")
        if not data:
            return UserService.get_user(user_id)

        data["updated_at"] = utc_now_iso()
        user = SupabaseClient.update_row(TABLE, user_id, data)
        logger.info(f"Updated profile of user {user_id}: {sorted(data)}")
        return user

    @staticmethod
    def set_password_hash(user_id: UUID | str, password_hash: str) -> None:
        SupabaseClient.update_row(TABLE, user_id, {
            "password_hash": password_hash,
            "updated_at": utc_now_iso(),
        })

    @staticmethod
    def mark_logged_in(user_id: UUID | str) -> None:
        SupabaseClient.update_row(TABLE, user_id, {"last_login_at": utc_now_iso()})

    @staticmethod
    def adjust_karma(user_id: UUID | str, delta: int) -> None:
        """Apply a karma delta to a content author."""
        if not delta:
            return
        user = SupabaseClient.fetch_by_id(TABLE, user_id, include_deleted=True)
        if not user:
            return
        SupabaseClient.update_row(TABLE, user_id, {"karma": (user.get("karma") or 0) + delta})

    # -------------------------------------------------------------------------
    # Participation
    # -------------------------------------------------------------------------

    @staticmethod
    def ensure_can_participate(user_id: UUID | str) -> dict[str, Any]:
        """
        Check that a user may create content.

        Raises:
            PermissionDeniedError: ACCOUNT_BANNED or ACCOUNT_SUSPENDED
        """
        user = UserService.get_user(user_id)

        if user.get("is_banned"):
            raise PermissionDeniedError(
                message="This account is banned",
                code="ACCOUNT_BANNED",
                suggestion="You can appeal the ban from your moderation history",
            )
        suspended_until = user.get("suspended_until")
        if suspended_until and not is_past(suspended_until):
            raise PermissionDeniedError(
                message=f"This account is suspended until {suspended_until}",
                code="ACCOUNT_SUSPENDED",
                details={"suspended_until": suspended_until},
            )
        return user

    # -------------------------------------------------------------------------
    # Admin
    # -------------------------------------------------------------------------

    @staticmethod
    def search_users(query: UserSearchQuery) -> tuple[list[dict[str, Any]], int]:
        """
        Search the user directory.

        Status is derived: deleted (deleted_at set), banned, suspended
        (suspended_until in the future) or active (none of those).
        """
        client = SupabaseClient.get_client()
        builder = client.table(TABLE).select("*", count="exact")

        if query.search:
            pattern = like_pattern(query.search)
            builder = builder.or_(f"username.ilike.{pattern},email.ilike.{pattern}")
        if query.role:
            builder = builder.eq("role", query.role.value)

        now = utc_now_iso()
        if query.status == UserStatus.DELETED:
            builder = builder.not_.is_("deleted_at", "null")
        else:
            builder = builder.is_("deleted_at", "null")
            if query.status == UserStatus.BANNED:
                builder = builder.eq("is_banned", True)
            elif query.status == UserStatus.SUSPENDED:
                builder = builder.eq("is_banned", False).gt("suspended_until", now)
            elif query.status == UserStatus.ACTIVE:
                builder = builder.eq("is_banned", False).or_(
                    f"suspended_until.is.null,suspended_until.lte.{now}"
                )

        builder = builder.order("created_at", desc=True)
        return paginate_query(builder, query)

    @staticmethod
    def change_role(actor: AuthUser, user_id: UUID | str, role: UserRole) -> dict[str, Any]:
        """
        Change a user's platform role.

        Raises:
            BusinessRuleError: If an admin tries to demote themselves
        """
        UserService.get_user(user_id)
        if normalize_uuid(user_id) == str(actor.id) and role != UserRole.ADMIN:
            raise BusinessRuleError(
                message="Administrators cannot demote themselves",
                code="SELF_DEMOTION",
                suggestion="Ask another administrator to change your role",
            )

        user = SupabaseClient.update_row(TABLE, user_id, {
            "role": role.value,
            "updated_at": utc_now_iso(),
        })
        logger.info(f"User {actor.id} changed role of {user_id} to {role.value}")
        return user

    @staticmethod
    def delete_user(actor: AuthUser, user_id: UUID | str) -> None:
        """Soft delete an account and revoke all of its sessions."""
        UserService.get_user(user_id)
        if normalize_uuid(user_id) == str(actor.id):
            raise BusinessRuleError(
                message="Administrators cannot delete their own account",
                code="SELF_DELETION",
            )

        now = utc_now_iso()
        SupabaseClient.update_row(TABLE, user_id, {"deleted_at": now, "updated_at": now})
        SessionService.revoke_all_for_user(user_id)
        logger.info(f"User {actor.id} deleted user {user_id}")

    # -------------------------------------------------------------------------
    # Login History
    # -------------------------------------------------------------------------

    @staticmethod
    def record_login_attempt(
        email: str,
        success: bool,
        user_id: UUID | str | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
        failure_reason: str | None = None,
    ) -> None:
        SupabaseClient.insert_row(LOGIN_HISTORY_TABLE, {
            "id": new_id(),
            "user_id": normalize_uuid(user_id) if user_id else None,
            "email": email,
            "success": success,
            "ip_address": ip_address,
            "user_agent": user_agent,
            "failure_reason": failure_reason,
            "created_at": utc_now_iso(),
        })

    @staticmethod
    def list_login_history(
        user_id: UUID | str,
        query: LoginHistoryQuery,
    ) -> tuple[list[dict[str, Any]], int]:
        client = SupabaseClient.get_client()
        builder = (
            client.table(LOGIN_HISTORY_TABLE)
            .select("*", count="exact")
            .eq("user_id", normalize_uuid(user_id))
        )
        if query.success is not None:
            builder = builder.eq("success", query.success)
        builder = builder.order("created_at", desc=True)
        return paginate_query(builder, query)
