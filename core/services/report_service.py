# =============================================================================
# core/services/report_service.py - Content Reports
# =============================================================================
# Members report posts and comments; moderators work the queue.
#
#   pending -> under_review -> resolved | dismissed
#   pending ---------------->  resolved | dismissed
#
# resolved and dismissed are terminal. Moderators only see reports from the
# communities they moderate; global staff see everything.
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from app.exceptions import BusinessRuleError, ConflictError, NotFoundError, PermissionDeniedError
from core.models.community import VoteTarget
from core.models.moderation import (
    OPEN_REPORT_STATUSES,
    ReportCreate,
    ReportQuery,
    ReportStatus,
    ReportStatusUpdate,
)
from core.models.user import AuthUser
from core.services.community_service import CommunityService
from lib.pagination import PageRequest, paginate_query
from lib.supabase_client import SupabaseClient
from lib.utils import new_id, normalize_uuid, utc_now_iso

logger = logging.getLogger(__name__)

TABLE = "reports"

TERMINAL_STATUSES = (ReportStatus.RESOLVED.value, ReportStatus.DISMISSED.value)


def resolve_content(target_type: VoteTarget, target_id: UUID | str) -> tuple[dict[str, Any], str]:
    """
    Load a post or comment with the community it belongs to.

    Returns:
        Tuple of (content row, community_id)

    Raises:
        NotFoundError: If the content doesn't exist or was deleted
    """
    if target_type == VoteTarget.POST:
        post = SupabaseClient.fetch_by_id("posts", target_id)
        if not post:
            raise NotFoundError("Post", target_id)
        return post, post["community_id"]

    comment = SupabaseClient.fetch_by_id("comments", target_id)
    if not comment:
        raise NotFoundError("Comment", target_id)
    post = SupabaseClient.fetch_by_id("posts", comment["post_id"], include_deleted=True)
    if not post:
        raise NotFoundError("Post", comment["post_id"])
    return comment, post["community_id"]


class ReportService:
    """Service for content reports."""

    @staticmethod
    def create_report(actor: AuthUser, report: ReportCreate) -> dict[str, Any]:
        """
        File a report.

        Raises:
            BusinessRuleError: SELF_REPORT
            ConflictError: DUPLICATE_REPORT while the caller's previous report
                on the same content is still open
        """
        content, community_id = resolve_content(report.target_type, report.target_id)

        if content.get("author_id") == str(actor.id):
            raise BusinessRuleError(message="You cannot report your own content", code="SELF_REPORT")

        open_reports = (
            SupabaseClient.get_client()
            .table(TABLE)
            .select("id")
            .eq("reporter_id", str(actor.id))
            .eq("target_type", report.target_type.value)
            .eq("target_id", content["id"])
            .in_("status", list(OPEN_REPORT_STATUSES))
            .limit(1)
            .execute()
        )
        if open_reports.data:
            raise ConflictError(
                message="You already reported this content",
                code="DUPLICATE_REPORT",
                details={"report_id": open_reports.data[0]["id"]},
            )

        now = utc_now_iso()
        row = SupabaseClient.insert_row(TABLE, {
            "id": new_id(),
            "reporter_id": str(actor.id),
            "target_type": report.target_type.value,
            "target_id": content["id"],
            "target_user_id": content.get("author_id"),
            "community_id": community_id,
            "category": report.category.value,
            "description": report.description,
            "status": ReportStatus.PENDING.value,
            "reviewer_id": None,
            "resolution_note": None,
            "created_at": now,
            "updated_at": now,
            "resolved_at": None,
        })
        logger.info(f"User {actor.id} reported {report.target_type.value} {content['id']}")
        return row

    @staticmethod
    def get_report(actor: AuthUser, report_id: UUID | str) -> dict[str, Any]:
        """Visible to the reporter and to moderators of the community."""
        report = SupabaseClient.fetch_one(TABLE, id=normalize_uuid(report_id))
        if not report:
            raise NotFoundError("Report", report_id)
        if report["reporter_id"] != str(actor.id) and not CommunityService.can_moderate(actor, report["community_id"]):
            raise NotFoundError("Report", report_id)
        return report

    @staticmethod
    def list_reports(actor: AuthUser, query: ReportQuery) -> tuple[list[dict[str, Any]], int]:
        """
        The moderation queue.

        Raises:
            PermissionDeniedError: If the caller moderates nothing
        """
        builder = SupabaseClient.get_client().table(TABLE).select("*", count="exact")

        if not actor.is_staff:
            community_ids = CommunityService.moderated_community_ids(actor.id)
            if not community_ids:
                raise PermissionDeniedError(
                    message="Only moderators can view the report queue",
                    code="NOT_A_MODERATOR",
                )
            builder = builder.in_("community_id", community_ids)

        if query.status:
            builder = builder.eq("status", query.status.value)
        if query.category:
            builder = builder.eq("category", query.category.value)
        if query.target_type:
            builder = builder.eq("target_type", query.target_type.value)
        if query.community_id:
            builder = builder.eq("community_id", str(query.community_id))
        if query.created_from:
            builder = builder.gte("created_at", query.created_from.isoformat())
        if query.created_to:
            builder = builder.lte("created_at", query.created_to.isoformat())

        builder = builder.order("created_at", desc=True)
        return paginate_query(builder, query)

    @staticmethod
    def list_my_reports(actor: AuthUser, page: PageRequest) -> tuple[list[dict[str, Any]], int]:
        builder = (
            SupabaseClient.get_client()
            .table(TABLE)
            .select("*", count="exact")
            .eq("reporter_id", str(actor.id))
            .order("created_at", desc=True)
        )
        return paginate_query(builder, page)

    @staticmethod
    def update_status(actor: AuthUser, report_id: UUID | str, update: ReportStatusUpdate) -> dict[str, Any]:
        """
        Move a report through the queue.

        Raises:
            BusinessRuleError: REPORT_CLOSED, INVALID_TRANSITION,
                RESOLUTION_NOTE_REQUIRED
        """
        report = SupabaseClient.fetch_one(TABLE, id=normalize_uuid(report_id))
        if not report:
            raise NotFoundError("Report", report_id)
        CommunityService.require_moderator(actor, report["community_id"])

        current = report["status"]
        target = update.status.value

        if current in TERMINAL_STATUSES:
            raise BusinessRuleError(
                message=f"Report is already {current}",
                code="REPORT_CLOSED",
            )
        if target == ReportStatus.PENDING.value or (
            target == ReportStatus.UNDER_REVIEW.value and current != ReportStatus.PENDING.value
        ):
            raise BusinessRuleError(
                message=f"Cannot move a report from {current} to {target}",
                code="INVALID_TRANSITION",
            )
        if target == ReportStatus.DISMISSED.value and not (update.resolution_note or "").strip():
            raise BusinessRuleError(
                message="Dismissing a report requires a resolution note",
                code="RESOLUTION_NOTE_REQUIRED",
            )

        now = utc_now_iso()
        data: dict[str, Any] = {
            "status": target,
            "reviewer_id": str(actor.id),
            "updated_at": now,
        }
        if update.resolution_note is not None:
            data["resolution_note"] = update.resolution_note
        if target in TERMINAL_STATUSES:
            data["resolved_at"] = now

        updated = SupabaseClient.update_row(TABLE, report_id, data)
        logger.info(f"User {actor.id} moved report {report_id} from {current} to {target}")
        return updated

    @staticmethod
    def check_actionable(
        actor: AuthUser,
        report_id: UUID | str,
        target_type: VoteTarget | None,
        target_id: str | None,
        target_user_id: str,
    ) -> dict[str, Any]:
        """
        Make sure a moderation action may resolve this report.

        Runs before the action touches anything, so a bad report_id leaves
        no partial state behind.

        Raises:
            NotFoundError: REPORT_NOT_FOUND
            PermissionDeniedError: NOT_A_MODERATOR
            BusinessRuleError: REPORT_CLOSED, REPORT_MISMATCH
        """
        report = SupabaseClient.fetch_one(TABLE, id=normalize_uuid(report_id))
        if not report:
            raise NotFoundError("Report", report_id)
        CommunityService.require_moderator(actor, report["community_id"])

        if report["status"] in TERMINAL_STATUSES:
            raise BusinessRuleError(
                message=f"Report is already {report['status']}",
                code="REPORT_CLOSED",
            )

        if target_id is not None:
            matches = report["target_type"] == target_type.value and report["target_id"] == target_id
        else:
            matches = report.get("target_user_id") == target_user_id
        if not matches:
            raise BusinessRuleError(
                message="The report is about different content or a different user",
                code="REPORT_MISMATCH",
                suggestion="Act on the reported content, or leave report_id out",
            )
        return report

    @staticmethod
    def resolve_for_action(actor: AuthUser, report_id: UUID | str, note: str) -> dict[str, Any]:
        """Resolve an open report because a moderation action addressed it."""
        return ReportService.update_status(
            actor,
            report_id,
            ReportStatusUpdate(status=ReportStatus.RESOLVED, resolution_note=note),
        )
