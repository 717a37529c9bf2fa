# =============================================================================
# core/services/post_service.py - Posts
# =============================================================================
# Posts live inside a community. Soft-deleted posts (deleted_at) and posts
# hidden by moderation (is_removed) disappear from listings; moderators can
# still open them directly.
#
# Sorting:
#   new - newest first
#   top - highest score first
#   hot - score decayed by age, computed over the fetched page
# =============================================================================

import logging
import math
from typing import Any
from uuid import UUID

from app.exceptions import NotFoundError, PermissionDeniedError
from core.models.community import PostCreate, PostQuery, PostSort, PostUpdate
from core.models.user import AuthUser
from core.services.community_service import CommunityService
from core.services.user_service import UserService
from lib.pagination import paginate_query
from lib.supabase_client import SupabaseClient
from lib.utils import like_pattern, new_id, normalize_uuid, parse_timestamp, utc_now_iso

logger = logging.getLogger(__name__)

TABLE = "posts"
EDITS_TABLE = "post_edits"

# One order of magnitude of score is worth 12.5 hours of age
HOT_DECAY_SECONDS = 45000


def hot_score(score: int, created_at: str) -> float:
    """
    Rank used by the hot sort.

    Example:
        hot_score(100, "2024-01-15T10:00:00+00:00") > hot_score(10, same time)
    """
    order = math.log10(max(abs(score), 1))
    sign = 1 if score > 0 else -1 if score < 0 else 0
    seconds = parse_timestamp(created_at).timestamp()
    return round(sign * order + seconds / HOT_DECAY_SECONDS, 7)


class PostService:
    """Service for posts."""

    @staticmethod
    def create_post(actor: AuthUser, community_id: UUID | str, post: PostCreate) -> dict[str, Any]:
        community = CommunityService.get_community(community_id)
        UserService.ensure_can_participate(actor.id)

        now = utc_now_iso()
        row = SupabaseClient.insert_row(TABLE, {
            "id": new_id(),
            "community_id": community["id"],
            "author_id": str(actor.id),
            "title": post.title,
            "body": post.body,
            "url": str(post.url) if post.url else None,
            "upvotes": 0,
            "downvotes": 0,
            "score": 0,
            "comment_count": 0,
            "is_removed": False,
            "created_at": now,
            "updated_at": now,
            "deleted_at": None,
        })
        logger.info(f"User {actor.id} created post {row['id']} in community {community['id']}")
        return row

    @staticmethod
    def get_post(post_id: UUID | str, viewer: AuthUser | None = None) -> dict[str, Any]:
        """
        Get a post.

        Deleted and removed posts are only visible to moderators of the
        post's community and global staff.

        Raises:
            NotFoundError: If the post doesn't exist or isn't visible
        """
        post = SupabaseClient.fetch_by_id(TABLE, post_id, include_deleted=True)
        if not post:
            raise NotFoundError("Post", post_id)

        hidden = post.get("deleted_at") or post.get("is_removed")
        if hidden and not (viewer and CommunityService.can_moderate(viewer, post["community_id"])):
            raise NotFoundError("Post", post_id)
        return post

    @staticmethod
    def get_live_post(post_id: UUID | str) -> dict[str, Any]:
        """A post that accepts comments and votes: not deleted, not removed."""
        post = SupabaseClient.fetch_by_id(TABLE, post_id)
        if not post or post.get("is_removed"):
            raise NotFoundError("Post", post_id)
        return post

    @staticmethod
    def list_posts(query: PostQuery) -> tuple[list[dict[str, Any]], int]:
        builder = (
            SupabaseClient.get_client()
            .table(TABLE)
            .select("*", count="exact")
            .is_("deleted_at", "null")
            .eq("is_removed", False)
        )

        if query.community_id:
            builder = builder.eq("community_id", str(query.community_id))
        if query.author_id:
            builder = builder.eq("author_id", str(query.author_id))
        if query.search:
            builder = builder.ilike("title", like_pattern(query.search))

        if query.sort == PostSort.TOP:
            builder = builder.order("score", desc=True).order("created_at", desc=True)
        else:
            builder = builder.order("created_at", desc=True)

        rows, total = paginate_query(builder, query)

        if query.sort == PostSort.HOT:
            rows.sort(key=lambda p: hot_score(p.get("score") or 0, p["created_at"]), reverse=True)

        return rows, total

    @staticmethod
    def update_post(actor: AuthUser, post_id: UUID | str, update: PostUpdate) -> dict[str, Any]:
        """
        Edit a post. Only the author may edit; the previous title and body
        are kept in post_edits.

        Raises:
            PermissionDeniedError: NOT_AUTHOR
        """
        post = PostService.get_live_post(post_id)
        if post["author_id"] != str(actor.id):
            raise PermissionDeniedError(message="Only the author can edit this post", code="NOT_AUTHOR")
        UserService.ensure_can_participate(actor.id)

        data = update.model_dump(exclude_unset=True, exclude_none=True)
        if not data:
            return post

        now = utc_now_iso()
        SupabaseClient.insert_row(EDITS_TABLE, {
            "id": new_id(),
            "post_id": post["id"],
            "editor_id": str(actor.id),
            "previous_title": post["title"],
            "previous_body": post.get("body"),
            "created_at": now,
        })

        data["updated_at"] = now
        updated = SupabaseClient.update_row(TABLE, post_id, data)
        logger.info(f"User {actor.id} edited post {post_id}")
        return updated

    @staticmethod
    def list_edits(post_id: UUID | str) -> list[dict[str, Any]]:
        """Edit history, oldest first."""
        PostService.get_live_post(post_id)
        return SupabaseClient.fetch_all(EDITS_TABLE, post_id=normalize_uuid(post_id))

    @staticmethod
    def delete_post(actor: AuthUser, post_id: UUID | str) -> None:
        """Soft delete by the author, a moderator of the community or staff."""
        post = SupabaseClient.fetch_by_id(TABLE, post_id)
        if not post:
            raise NotFoundError("Post", post_id)

        if post["author_id"] != str(actor.id) and not CommunityService.can_moderate(actor, post["community_id"]):
            raise PermissionDeniedError(message="You cannot delete this post", code="NOT_AUTHOR")

        now = utc_now_iso()
        SupabaseClient.update_row(TABLE, post_id, {"deleted_at": now, "updated_at": now})
        logger.info(f"User {actor.id} deleted post {post_id}")

    # -------------------------------------------------------------------------
    # Counters and moderation hooks
    # -------------------------------------------------------------------------

    @staticmethod
    def adjust_comment_count(post_id: UUID | str, delta: int) -> None:
        post = SupabaseClient.fetch_by_id(TABLE, post_id, include_deleted=True)
        if post:
            SupabaseClient.update_row(TABLE, post_id, {
                "comment_count": max((post.get("comment_count") or 0) + delta, 0),
            })

    @staticmethod
    def set_removed(post_id: UUID | str, removed: bool) -> dict[str, Any] | None:
        return SupabaseClient.update_row(TABLE, post_id, {
            "is_removed": removed,
            "updated_at": utc_now_iso(),
        })
