# =============================================================================
# core/services/moderation_service.py - Moderation Actions
# =============================================================================
# Who may do what:
#
#   remove_content / restore_content  community moderator, global staff
#   warn                              community moderator (with content), staff
#   suspend / lift_suspension         global moderator, admin
#   ban                               admin
#
# Nobody acts on themselves, and a moderator cannot act on another
# moderator or an admin. Every action is recorded, notified to its target,
# and may resolve the report that prompted it.
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from app.config import settings
from app.exceptions import BusinessRuleError, NotFoundError, PermissionDeniedError
from core.models.community import VoteTarget
from core.models.moderation import (
    APPEALABLE_ACTIONS,
    CONTENT_ACTIONS,
    ModerationActionCreate,
    ModerationActionQuery,
    ModerationActionType,
)
from core.models.notification import NotificationType
from core.models.user import STAFF_ROLES, AuthUser, UserRole
from core.services.comment_service import CommentService
from core.services.community_service import CommunityService
from core.services.notification_service import NotificationService
from core.services.post_service import PostService
from core.services.report_service import ReportService, resolve_content
from core.services.session_service import SessionService
from core.services.user_service import UserService
from lib.pagination import PageRequest, paginate_query
from lib.supabase_client import SupabaseClient
from lib.utils import iso_in, new_id, normalize_uuid, utc_now_iso

logger = logging.getLogger(__name__)

TABLE = "moderation_actions"

ACTION_TITLES = {
    ModerationActionType.REMOVE_CONTENT: "Your content was removed",
    ModerationActionType.RESTORE_CONTENT: "Your content was restored",
    ModerationActionType.WARN: "You received a warning",
    ModerationActionType.SUSPEND: "Your account was suspended",
    ModerationActionType.BAN: "Your account was banned",
    ModerationActionType.LIFT_SUSPENSION: "Your suspension was lifted",
}


def _set_content_removed(target_type: str, target_id: str, removed: bool) -> None:
    if target_type == VoteTarget.POST.value:
        PostService.set_removed(target_id, removed)
    else:
        CommentService.set_removed(target_id, removed)


class ModerationService:
    """Service for moderation actions."""

    # -------------------------------------------------------------------------
    # Authorization
    # -------------------------------------------------------------------------

    @staticmethod
    def _check_rank(actor: AuthUser, target_user: dict[str, Any]) -> None:
        if target_user["id"] == str(actor.id):
            raise BusinessRuleError(message="You cannot moderate yourself", code="SELF_ACTION")
        if actor.is_admin:
            return
        if target_user["role"] in STAFF_ROLES:
            raise PermissionDeniedError(
                message="Moderators cannot act on other moderators or administrators",
                code="INSUFFICIENT_RANK",
            )

    @staticmethod
    def _require_role(actor: AuthUser, allowed: set[UserRole], action: ModerationActionType) -> None:
        if actor.role not in allowed:
            raise PermissionDeniedError(
                message=f"Your role cannot perform {action.value}",
                code="FORBIDDEN_ROLE",
            )

    # -------------------------------------------------------------------------
    # Actions
    # -------------------------------------------------------------------------

    @staticmethod
    def create_action(actor: AuthUser, action: ModerationActionCreate) -> dict[str, Any]:
        """
        Apply and record a moderation action.

        Raises:
            BusinessRuleError: TARGET_REQUIRED, SELF_ACTION, DURATION_REQUIRED,
                DURATION_TOO_LONG, NOT_SUSPENDED, REPORT_CLOSED, REPORT_MISMATCH
            NotFoundError: REPORT_NOT_FOUND
            PermissionDeniedError: NOT_A_MODERATOR, FORBIDDEN_ROLE,
                INSUFFICIENT_RANK
        """
        action_type = action.action_type
        community_id = None
        content = None

        if action.target_type and action.target_id:
            content, community_id = resolve_content(action.target_type, action.target_id)
        elif action_type.value in CONTENT_ACTIONS:
            raise BusinessRuleError(
                message=f"{action_type.value} requires target_type and target_id",
                code="TARGET_REQUIRED",
            )

        if content is not None:
            target_user_id = content.get("author_id")
        else:
            target_user_id = str(action.target_user_id) if action.target_user_id else None
        if not target_user_id:
            raise BusinessRuleError(
                message=f"{action_type.value} requires target_user_id",
                code="TARGET_REQUIRED",
            )

        target_user = UserService.get_user(target_user_id)

        if action_type.value in CONTENT_ACTIONS or action_type == ModerationActionType.WARN:
            CommunityService.require_moderator(actor, community_id)
        elif action_type == ModerationActionType.BAN:
            ModerationService._require_role(actor, {UserRole.ADMIN}, action_type)
        else:
            ModerationService._require_role(actor, {UserRole.MODERATOR, UserRole.ADMIN}, action_type)

        ModerationService._check_rank(actor, target_user)

        if action.report_id:
            ReportService.check_actionable(
                actor,
                action.report_id,
                action.target_type if content is not None else None,
                content["id"] if content is not None else None,
                target_user["id"],
            )

        expires_at = None
        duration_days = None
        is_appealable = action_type.value in APPEALABLE_ACTIONS

        if action_type == ModerationActionType.REMOVE_CONTENT:
            _set_content_removed(action.target_type.value, content["id"], True)

        elif action_type == ModerationActionType.RESTORE_CONTENT:
            _set_content_removed(action.target_type.value, content["id"], False)

        elif action_type == ModerationActionType.SUSPEND:
            duration_days = action.duration_days
            if not duration_days:
                raise BusinessRuleError(message="Suspensions need duration_days", code="DURATION_REQUIRED")
            limit = (
                settings.ADMIN_MAX_SUSPENSION_DAYS if actor.is_admin
                else settings.MODERATOR_MAX_SUSPENSION_DAYS
            )
            if duration_days > limit:
                raise BusinessRuleError(
                    message=f"Suspensions you issue are limited to {limit} days",
                    code="DURATION_TOO_LONG",
                    details={"max_days": limit},
                )
            expires_at = iso_in(days=duration_days)
            SupabaseClient.update_row("users", target_user["id"], {
                "suspended_until": expires_at,
                "updated_at": utc_now_iso(),
            })

        elif action_type == ModerationActionType.BAN:
            is_appealable = action.is_appealable
            SupabaseClient.update_row("users", target_user["id"], {
                "is_banned": True,
                "ban_appealable": is_appealable,
                "updated_at": utc_now_iso(),
            })
            SessionService.revoke_all_for_user(target_user["id"])

        elif action_type == ModerationActionType.LIFT_SUSPENSION:
            if not target_user.get("suspended_until"):
                raise BusinessRuleError(message="User is not suspended", code="NOT_SUSPENDED")
            SupabaseClient.update_row("users", target_user["id"], {
                "suspended_until": None,
                "updated_at": utc_now_iso(),
            })

        row = SupabaseClient.insert_row(TABLE, {
            "id": new_id(),
            "moderator_id": str(actor.id),
            "target_user_id": target_user["id"],
            "action_type": action_type.value,
            "target_type": action.target_type.value if content is not None else None,
            "target_id": content["id"] if content is not None else None,
            "community_id": community_id,
            "report_id": str(action.report_id) if action.report_id else None,
            "reason": action.reason,
            "duration_days": duration_days,
            "expires_at": expires_at,
            "is_appealable": is_appealable,
            "is_reversed": False,
            "reversed_at": None,
            "created_at": utc_now_iso(),
        })
        logger.info(
            f"User {actor.id} applied {action_type.value} to user {target_user['id']} (action {row['id']})"
        )

        if action.report_id:
            ReportService.resolve_for_action(actor, action.report_id, note=f"{action_type.value}: {action.reason}")

        NotificationService.notify(
            target_user["id"],
            NotificationType.MODERATION_ACTION,
            title=ACTION_TITLES[action_type],
            body=action.reason,
            reference_type="moderation_action",
            reference_id=row["id"],
        )
        return row

    @staticmethod
    def get_action(actor: AuthUser, action_id: UUID | str) -> dict[str, Any]:
        """Visible to its target and to moderators who could have issued it."""
        action = SupabaseClient.fetch_one(TABLE, id=normalize_uuid(action_id))
        if not action:
            raise NotFoundError("Moderation action", action_id)
        if action["target_user_id"] != str(actor.id) and not CommunityService.can_moderate(
            actor, action.get("community_id")
        ):
            raise NotFoundError("Moderation action", action_id)
        return action

    @staticmethod
    def list_actions(actor: AuthUser, query: ModerationActionQuery) -> tuple[list[dict[str, Any]], int]:
        builder = SupabaseClient.get_client().table(TABLE).select("*", count="exact")

        if not actor.is_staff:
            community_ids = CommunityService.moderated_community_ids(actor.id)
            if not community_ids:
                raise PermissionDeniedError(
                    message="Only moderators can view moderation actions",
                    code="NOT_A_MODERATOR",
                )
            builder = builder.in_("community_id", community_ids)

        if query.action_type:
            builder = builder.eq("action_type", query.action_type.value)
        if query.target_user_id:
            builder = builder.eq("target_user_id", str(query.target_user_id))
        if query.moderator_id:
            builder = builder.eq("moderator_id", str(query.moderator_id))

        builder = builder.order("created_at", desc=True)
        return paginate_query(builder, query)

    @staticmethod
    def list_actions_against(user_id: UUID | str, page: PageRequest) -> tuple[list[dict[str, Any]], int]:
        """A user's own moderation history."""
        builder = (
            SupabaseClient.get_client()
            .table(TABLE)
            .select("*", count="exact")
            .eq("target_user_id", normalize_uuid(user_id))
            .order("created_at", desc=True)
        )
        return paginate_query(builder, page)

    # -------------------------------------------------------------------------
    # Reversal
    # -------------------------------------------------------------------------

    @staticmethod
    def reverse_action(action: dict[str, Any]) -> dict[str, Any]:
        """
        Undo the effect of an action (used when an appeal is overturned).

        Warnings have no lasting effect; they are only marked reversed.
        """
        action_type = action["action_type"]
        now = utc_now_iso()

        if action_type == ModerationActionType.REMOVE_CONTENT.value and action.get("target_id"):
            _set_content_removed(action["target_type"], action["target_id"], False)
        elif action_type == ModerationActionType.SUSPEND.value:
            SupabaseClient.update_row("users", action["target_user_id"], {
                "suspended_until": None,
                "updated_at": now,
            })
        elif action_type == ModerationActionType.BAN.value:
            SupabaseClient.update_row("users", action["target_user_id"], {
                "is_banned": False,
                "ban_appealable": True,
                "updated_at": now,
            })

        logger.info(f"Reversed moderation action {action['id']} ({action_type})")
        return SupabaseClient.update_row(TABLE, action["id"], {
            "is_reversed": True,
            "reversed_at": now,
        })

    @staticmethod
    def lift_expired_suspensions() -> int:
        """Clear suspended_until on users whose suspension has run out."""
        expired = (
            SupabaseClient.get_client()
            .table("users")
            .update({"suspended_until": None})
            .lte("suspended_until", utc_now_iso())
            .execute()
        )
        count = len(expired.data or [])
        if count:
            logger.info(f"Lifted {count} expired suspensions")
        return count
