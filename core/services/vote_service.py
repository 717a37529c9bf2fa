# =============================================================================
# core/services/vote_service.py - Up/Down Votes
# =============================================================================
# One vote per (user, target). A vote of 0 clears it. The target keeps
# denormalized upvotes/downvotes/score, and the target's author gains or
# loses karma by the change in vote value.
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from app.exceptions import BusinessRuleError, NotFoundError
from core.models.community import VoteTarget
from core.models.user import AuthUser
from core.services.post_service import PostService
from core.services.user_service import UserService
from lib.supabase_client import SupabaseClient
from lib.utils import new_id, normalize_uuid, utc_now_iso

logger = logging.getLogger(__name__)

TABLE = "votes"

TARGET_TABLES = {
    VoteTarget.POST: "posts",
    VoteTarget.COMMENT: "comments",
}


class VoteService:
    """Service for votes on posts and comments."""

    @staticmethod
    def _get_target(target_type: VoteTarget, target_id: UUID | str) -> dict[str, Any]:
        if target_type == VoteTarget.POST:
            return PostService.get_live_post(target_id)
        comment = SupabaseClient.fetch_by_id(TARGET_TABLES[target_type], target_id)
        if not comment or comment.get("is_removed"):
            raise NotFoundError("Comment", target_id)
        return comment

    @staticmethod
    def vote(
        actor: AuthUser,
        target_type: VoteTarget,
        target_id: UUID | str,
        value: int,
    ) -> dict[str, Any]:
        """
        Cast, change or clear a vote.

        Args:
            actor: The voter
            target_type: post or comment
            target_id: Post or comment ID
            value: 1, -1, or 0 to clear

        Returns:
            The vote value and the target's updated counters

        Raises:
            BusinessRuleError: SELF_VOTE
        """
        target = VoteService._get_target(target_type, target_id)
        UserService.ensure_can_participate(actor.id)

        if target.get("author_id") == str(actor.id):
            raise BusinessRuleError(message="You cannot vote on your own content", code="SELF_VOTE")

        existing = SupabaseClient.fetch_one(
            TABLE,
            user_id=str(actor.id),
            target_type=target_type.value,
            target_id=target["id"],
        )
        previous = existing["value"] if existing else 0

        upvotes = target.get("upvotes") or 0
        downvotes = target.get("downvotes") or 0

        if previous != value:
            upvotes += (value == 1) - (previous == 1)
            downvotes += (value == -1) - (previous == -1)

            now = utc_now_iso()
            if value == 0:
                SupabaseClient.delete_rows(TABLE, id=existing["id"])
            elif existing:
                SupabaseClient.update_row(TABLE, existing["id"], {"value": value, "updated_at": now})
            else:
                SupabaseClient.insert_row(TABLE, {
                    "id": new_id(),
                    "user_id": str(actor.id),
                    "target_type": target_type.value,
                    "target_id": target["id"],
                    "value": value,
                    "created_at": now,
                    "updated_at": now,
                })

            SupabaseClient.update_row(TARGET_TABLES[target_type], target["id"], {
                "upvotes": upvotes,
                "downvotes": downvotes,
                "score": upvotes - downvotes,
            })
            if target.get("author_id"):
                UserService.adjust_karma(target["author_id"], value - previous)

            logger.info(f"User {actor.id} voted {value} on {target_type.value} {target['id']}")

        return {
            "target_type": target_type.value,
            "target_id": target["id"],
            "value": value,
            "upvotes": upvotes,
            "downvotes": downvotes,
            "score": upvotes - downvotes,
        }

    @staticmethod
    def get_user_vote(user_id: UUID | str, target_type: VoteTarget, target_id: UUID | str) -> int:
        vote = SupabaseClient.fetch_one(
            TABLE,
            user_id=normalize_uuid(user_id),
            target_type=target_type.value,
            target_id=normalize_uuid(target_id),
        )
        return vote["value"] if vote else 0
