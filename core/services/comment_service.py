# =============================================================================
# core/services/comment_service.py - Threaded Comments
# =============================================================================
# Comments form a tree under a post through parent_id. Top-level comments
# have depth 0; a reply is one deeper than its parent.
#
# Deleted and removed comments stay in the thread so replies keep their
# place, but their body and author are replaced by a placeholder.
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from app.config import settings
from app.exceptions import BusinessRuleError, NotFoundError, PermissionDeniedError
from core.models.community import (
    DELETED_PLACEHOLDER,
    REMOVED_PLACEHOLDER,
    CommentCreate,
    CommentUpdate,
)
from core.models.notification import NotificationType
from core.models.user import AuthUser
from core.services.community_service import CommunityService
from core.services.notification_service import NotificationService
from core.services.post_service import PostService
from core.services.user_service import UserService
from lib.pagination import PageRequest, paginate_query
from lib.supabase_client import SupabaseClient
from lib.utils import new_id, normalize_uuid, utc_now_iso

logger = logging.getLogger(__name__)

TABLE = "comments"


def render_comment(comment: dict[str, Any]) -> dict[str, Any]:
    """Replace body and author of deleted or removed comments."""
    if comment.get("deleted_at"):
        return {**comment, "body": DELETED_PLACEHOLDER, "author_id": None, "is_deleted": True}
    if comment.get("is_removed"):
        return {**comment, "body": REMOVED_PLACEHOLDER, "author_id": None, "is_deleted": False}
    return {**comment, "is_deleted": False}


class CommentService:
    """Service for comments."""

    @staticmethod
    def create_comment(actor: AuthUser, post_id: UUID | str, comment: CommentCreate) -> dict[str, Any]:
        """
        Comment on a post or reply to a comment.

        Raises:
            BusinessRuleError: PARENT_MISMATCH, MAX_DEPTH_EXCEEDED
        """
        post = PostService.get_live_post(post_id)
        UserService.ensure_can_participate(actor.id)

        parent = None
        depth = 0
        if comment.parent_id:
            parent = SupabaseClient.fetch_by_id(TABLE, comment.parent_id)
            if not parent:
                raise NotFoundError("Comment", comment.parent_id)
            if parent["post_id"] != post["id"]:
                raise BusinessRuleError(
                    message="Parent comment belongs to a different post",
                    code="PARENT_MISMATCH",
                )
            depth = (parent.get("depth") or 0) + 1
            if depth > settings.MAX_COMMENT_DEPTH:
                raise BusinessRuleError(
                    message=f"Replies cannot be nested more than {settings.MAX_COMMENT_DEPTH} levels deep",
                    code="MAX_DEPTH_EXCEEDED",
                    suggestion="Reply to a comment higher up the thread",
                )

        now = utc_now_iso()
        row = SupabaseClient.insert_row(TABLE, {
            "id": new_id(),
            "post_id": post["id"],
            "parent_id": parent["id"] if parent else None,
            "author_id": str(actor.id),
            "body": comment.body,
            "depth": depth,
            "upvotes": 0,
            "downvotes": 0,
            "score": 0,
            "is_removed": False,
            "created_at": now,
            "updated_at": now,
            "deleted_at": None,
        })
        PostService.adjust_comment_count(post["id"], 1)
        logger.info(f"User {actor.id} commented {row['id']} on post {post['id']}")

        if parent and parent.get("author_id") and parent["author_id"] != str(actor.id):
            NotificationService.notify(
                parent["author_id"],
                NotificationType.COMMENT_REPLY,
                title=f"{actor.username} replied to your comment",
                body=comment.body[:200],
                reference_type="comment",
                reference_id=row["id"],
            )
        elif not parent and post["author_id"] != str(actor.id):
            NotificationService.notify(
                post["author_id"],
                NotificationType.POST_REPLY,
                title=f"{actor.username} commented on your post",
                body=comment.body[:200],
                reference_type="comment",
                reference_id=row["id"],
            )

        return render_comment(row)

    @staticmethod
    def get_comment(comment_id: UUID | str) -> dict[str, Any]:
        comment = SupabaseClient.fetch_by_id(TABLE, comment_id, include_deleted=True)
        if not comment:
            raise NotFoundError("Comment", comment_id)
        return render_comment(comment)

    @staticmethod
    def get_raw(comment_id: UUID | str) -> dict[str, Any]:
        """Unrendered row, for moderation and votes."""
        comment = SupabaseClient.fetch_by_id(TABLE, comment_id, include_deleted=True)
        if not comment:
            raise NotFoundError("Comment", comment_id)
        return comment

    @staticmethod
    def list_comments(post_id: UUID | str, page: PageRequest) -> tuple[list[dict[str, Any]], int]:
        """All comments of a post, oldest first, placeholders included."""
        PostService.get_live_post(post_id)
        builder = (
            SupabaseClient.get_client()
            .table(TABLE)
            .select("*", count="exact")
            .eq("post_id", normalize_uuid(post_id))
            .order("created_at", desc=False)
        )
        rows, total = paginate_query(builder, page)
        return [render_comment(row) for row in rows], total

    @staticmethod
    def update_comment(actor: AuthUser, comment_id: UUID | str, update: CommentUpdate) -> dict[str, Any]:
        comment = SupabaseClient.fetch_by_id(TABLE, comment_id)
        if not comment or comment.get("is_removed"):
            raise NotFoundError("Comment", comment_id)
        if comment["author_id"] != str(actor.id):
            raise PermissionDeniedError(message="Only the author can edit this comment", code="NOT_AUTHOR")
        UserService.ensure_can_participate(actor.id)

        updated = SupabaseClient.update_row(TABLE, comment_id, {
            "body": update.body,
            "updated_at": utc_now_iso(),
        })
        return render_comment(updated)

    @staticmethod
    def delete_comment(actor: AuthUser, comment_id: UUID | str) -> None:
        """Soft delete by the author, a moderator of the community or staff."""
        comment = SupabaseClient.fetch_by_id(TABLE, comment_id)
        if not comment:
            raise NotFoundError("Comment", comment_id)

        if comment["author_id"] != str(actor.id):
            post = SupabaseClient.fetch_by_id("posts", comment["post_id"], include_deleted=True)
            if not post or not CommunityService.can_moderate(actor, post["community_id"]):
                raise PermissionDeniedError(message="You cannot delete this comment", code="NOT_AUTHOR")

        now = utc_now_iso()
        SupabaseClient.update_row(TABLE, comment_id, {"deleted_at": now, "updated_at": now})
        PostService.adjust_comment_count(comment["post_id"], -1)
        logger.info(f"User {actor.id} deleted comment {comment_id}")

    @staticmethod
    def set_removed(comment_id: UUID | str, removed: bool) -> dict[str, Any] | None:
        return SupabaseClient.update_row(TABLE, comment_id, {
            "is_removed": removed,
            "updated_at": utc_now_iso(),
        })

    @staticmethod
    def community_of(comment: dict[str, Any]) -> str | None:
        post = SupabaseClient.fetch_by_id("posts", comment["post_id"], include_deleted=True)
        return post["community_id"] if post else None
