# =============================================================================
# core/services/appeal_service.py - Appeals Against Moderation Actions
# =============================================================================
# The user a moderation action targeted may appeal it:
# - within APPEAL_WINDOW_DAYS of the action
# - once per action (a withdrawn appeal may be re-filed)
# - with at most MAX_ACTIVE_APPEALS appeals pending at a time
# - never for bans issued as non-appealable
#
# Admins decide: upheld keeps the action, overturned reverses its effect.
# =============================================================================

import logging
from datetime import timedelta
from typing import Any
from uuid import UUID

from app.config import settings
from app.exceptions import BusinessRuleError, ConflictError, NotFoundError, PermissionDeniedError
from core.models.moderation import (
    APPEALABLE_ACTIONS,
    AppealCreate,
    AppealDecision,
    AppealQuery,
    AppealStatus,
    AppealUpdate,
)
from core.models.notification import NotificationType
from core.models.user import AuthUser
from core.services.moderation_service import ModerationService
from core.services.notification_service import NotificationService
from lib.pagination import paginate_query
from lib.supabase_client import SupabaseClient
from lib.utils import new_id, normalize_uuid, parse_timestamp, utc_now, utc_now_iso

logger = logging.getLogger(__name__)

TABLE = "appeals"
ACTIONS_TABLE = "moderation_actions"


class AppealService:
    """Service for appeals."""

    @staticmethod
    def create_appeal(actor: AuthUser, appeal: AppealCreate) -> dict[str, Any]:
        """
        File an appeal.

        Raises:
            NotFoundError: Unknown moderation action
            PermissionDeniedError: NOT_YOUR_ACTION, NOT_APPEALABLE
            BusinessRuleError: ALREADY_REVERSED, APPEAL_WINDOW_CLOSED,
                TOO_MANY_APPEALS
            ConflictError: APPEAL_EXISTS
        """
        action = SupabaseClient.fetch_one(ACTIONS_TABLE, id=str(appeal.moderation_action_id))
        if not action:
            raise NotFoundError("Moderation action", appeal.moderation_action_id)

        if action["target_user_id"] != str(actor.id):
            raise PermissionDeniedError(
                message="You can only appeal actions taken against you",
                code="NOT_YOUR_ACTION",
            )
        if action["action_type"] not in APPEALABLE_ACTIONS or not action.get("is_appealable", True):
            raise PermissionDeniedError(
                message="This action cannot be appealed",
                code="NOT_APPEALABLE",
            )
        if action.get("is_reversed"):
            raise BusinessRuleError(message="This action was already reversed", code="ALREADY_REVERSED")

        deadline = parse_timestamp(action["created_at"]) + timedelta(days=settings.APPEAL_WINDOW_DAYS)
        if utc_now() > deadline:
            raise BusinessRuleError(
                message=f"Appeals must be filed within {settings.APPEAL_WINDOW_DAYS} days of the action",
                code="APPEAL_WINDOW_CLOSED",
                details={"deadline": deadline.isoformat()},
            )

        existing = (
            SupabaseClient.get_client()
            .table(TABLE)
            .select("id")
            .eq("moderation_action_id", action["id"])
            .eq("appellant_id", str(actor.id))
            .neq("status", AppealStatus.WITHDRAWN.value)
            .limit(1)
            .execute()
        )
        if existing.data:
            raise ConflictError(
                message="You already appealed this action",
                code="APPEAL_EXISTS",
                details={"appeal_id": existing.data[0]["id"]},
            )

        pending = SupabaseClient.count_rows(
            TABLE,
            appellant_id=str(actor.id),
            status=AppealStatus.PENDING_REVIEW.value,
        )
        if pending >= settings.MAX_ACTIVE_APPEALS:
            raise BusinessRuleError(
                message=f"You can have at most {settings.MAX_ACTIVE_APPEALS} pending appeals",
                code="TOO_MANY_APPEALS",
                suggestion="Wait for a decision or withdraw an appeal",
            )

        now = utc_now_iso()
        row = SupabaseClient.insert_row(TABLE, {
            "id": new_id(),
            "appellant_id": str(actor.id),
            "moderation_action_id": action["id"],
            "explanation": appeal.explanation,
            "additional_evidence": appeal.additional_evidence,
            "status": AppealStatus.PENDING_REVIEW.value,
            "reviewer_id": None,
            "decision_reasoning": None,
            "created_at": now,
            "updated_at": now,
            "reviewed_at": None,
        })
        logger.info(f"User {actor.id} appealed moderation action {action['id']}")
        return row

    @staticmethod
    def get_appeal(actor: AuthUser, appeal_id: UUID | str) -> dict[str, Any]:
        """Visible to the appellant and to staff."""
        appeal = SupabaseClient.fetch_one(TABLE, id=normalize_uuid(appeal_id))
        if not appeal or (appeal["appellant_id"] != str(actor.id) and not actor.is_staff):
            raise NotFoundError("Appeal", appeal_id)
        return appeal

    @staticmethod
    def list_appeals(actor: AuthUser, query: AppealQuery) -> tuple[list[dict[str, Any]], int]:
        """Staff see every appeal; members see their own."""
        builder = SupabaseClient.get_client().table(TABLE).select("*", count="exact")
        if not actor.is_staff:
            builder = builder.eq("appellant_id", str(actor.id))
        if query.status:
            builder = builder.eq("status", query.status.value)
        builder = builder.order("created_at", desc=True)
        return paginate_query(builder, query)

    @staticmethod
    def _get_own_pending(actor: AuthUser, appeal_id: UUID | str) -> dict[str, Any]:
        appeal = SupabaseClient.fetch_one(TABLE, id=normalize_uuid(appeal_id))
        if not appeal or appeal["appellant_id"] != str(actor.id):
            raise NotFoundError("Appeal", appeal_id)
        if appeal["status"] != AppealStatus.PENDING_REVIEW.value:
            raise BusinessRuleError(
                message=f"Appeal is already {appeal['status']}",
                code="APPEAL_NOT_PENDING",
            )
        return appeal

    @staticmethod
    def update_appeal(actor: AuthUser, appeal_id: UUID | str, update: AppealUpdate) -> dict[str, Any]:
        appeal = AppealService._get_own_pending(actor, appeal_id)
        data = update.model_dump(exclude_unset=True, exclude_none=True)
        if not data:
            return appeal
        data["updated_at"] = utc_now_iso()
        return SupabaseClient.update_row(TABLE, appeal_id, data)

    @staticmethod
    def withdraw_appeal(actor: AuthUser, appeal_id: UUID | str) -> dict[str, Any]:
        AppealService._get_own_pending(actor, appeal_id)
        updated = SupabaseClient.update_row(TABLE, appeal_id, {
            "status": AppealStatus.WITHDRAWN.value,
            "updated_at": utc_now_iso(),
        })
        logger.info(f"User {actor.id} withdrew appeal {appeal_id}")
        return updated

    @staticmethod
    def decide(actor: AuthUser, appeal_id: UUID | str, decision: AppealDecision) -> dict[str, Any]:
        """
        Uphold or overturn an appeal.

        Raises:
            BusinessRuleError: INVALID_DECISION, APPEAL_NOT_PENDING
        """
        if decision.decision not in (AppealStatus.UPHELD, AppealStatus.OVERTURNED):
            raise BusinessRuleError(
                message="Decision must be upheld or overturned",
                code="INVALID_DECISION",
            )

        appeal = SupabaseClient.fetch_one(TABLE, id=normalize_uuid(appeal_id))
        if not appeal:
            raise NotFoundError("Appeal", appeal_id)
        if appeal["status"] != AppealStatus.PENDING_REVIEW.value:
            raise BusinessRuleError(
                message=f"Appeal is already {appeal['status']}",
                code="APPEAL_NOT_PENDING",
            )

        if decision.decision == AppealStatus.OVERTURNED:
            action = SupabaseClient.fetch_one(ACTIONS_TABLE, id=appeal["moderation_action_id"])
            if action and not action.get("is_reversed"):
                ModerationService.reverse_action(action)

        now = utc_now_iso()
        updated = SupabaseClient.update_row(TABLE, appeal_id, {
            "status": decision.decision.value,
            "reviewer_id": str(actor.id),
            "decision_reasoning": decision.decision_reasoning,
            "reviewed_at": now,
            "updated_at": now,
        })
        logger.info(f"User {actor.id} decided appeal {appeal_id}: {decision.decision.value}")

        NotificationService.notify(
            appeal["appellant_id"],
            NotificationType.APPEAL_DECISION,
            title=f"Your appeal was {decision.decision.value}",
            body=decision.decision_reasoning,
            reference_type="appeal",
            reference_id=appeal["id"],
        )
        return updated
