# =============================================================================
# core/services/community_service.py - Communities, Members and Moderators
# =============================================================================
# A community is created by a member, who becomes its first member and first
# moderator. Community moderators act only inside their communities; global
# moderators and admins act everywhere (see can_moderate).
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from app.exceptions import BusinessRuleError, ConflictError, NotFoundError, PermissionDeniedError
from core.models.community import CommunityCreate, CommunityQuery, CommunityUpdate
from core.models.user import AuthUser
from core.services.user_service import UserService
from lib.pagination import PageRequest, paginate_query
from lib.supabase_client import SupabaseClient
from lib.utils import like_pattern, new_id, normalize_uuid, utc_now_iso

logger = logging.getLogger(__name__)

TABLE = "communities"
MEMBERS_TABLE = "community_members"
MODERATORS_TABLE = "community_moderators"


class CommunityService:
    """Service for communities."""

    # -------------------------------------------------------------------------
    # Communities
    # -------------------------------------------------------------------------

    @staticmethod
    def create_community(actor: AuthUser, community: CommunityCreate) -> dict[str, Any]:
        """
        Create a community owned by the caller.

        Raises:
            ConflictError: COMMUNITY_NAME_TAKEN (names compare case-insensitively)
        """
        UserService.ensure_can_participate(actor.id)

        if SupabaseClient.fetch_one(TABLE, name_key=community.name.lower()):
            raise ConflictError(
                message=f"Community '{community.name}' already exists",
                code="COMMUNITY_NAME_TAKEN",
            )

        now = utc_now_iso()
        row = SupabaseClient.insert_row(TABLE, {
            "id": new_id(),
            "name": community.name,
            "name_key": community.name.lower(),
            "title": community.title,
            "description": community.description,
            "is_nsfw": community.is_nsfw,
            "creator_id": str(actor.id),
            "member_count": 1,
            "created_at": now,
            "updated_at": now,
            "deleted_at": None,
        })
        SupabaseClient.insert_row(MEMBERS_TABLE, {
            "id": new_id(),
            "community_id": row["id"],
            "user_id": str(actor.id),
            "joined_at": now,
        })
        SupabaseClient.insert_row(MODERATORS_TABLE, {
            "id": new_id(),
            "community_id": row["id"],
            "user_id": str(actor.id),
            "appointed_by": None,
            "created_at": now,
        })
        logger.info(f"User {actor.id} created community {row['id']} ({community.name})")
        return row

    @staticmethod
    def get_community(community_id: UUID | str) -> dict[str, Any]:
        community = SupabaseClient.fetch_by_id(TABLE, community_id)
        if not community:
            raise NotFoundError("Community", community_id)
        return community

    @staticmethod
    def list_communities(query: CommunityQuery) -> tuple[list[dict[str, Any]], int]:
        client = SupabaseClient.get_client()
        builder = client.table(TABLE).select("*", count="exact").is_("deleted_at", "null")

        if query.search:
            builder = builder.ilike("name", like_pattern(query.search))

        if query.sort == "members":
            builder = builder.order("member_count", desc=True).order("created_at", desc=True)
        else:
            builder = builder.order("created_at", desc=True)

        return paginate_query(builder, query)

    @staticmethod
    def update_community(
        actor: AuthUser,
        community_id: UUID | str,
        update: CommunityUpdate,
    ) -> dict[str, Any]:
        community = CommunityService.get_community(community_id)
        CommunityService.require_moderator(actor, community_id)

        data = update.model_dump(exclude_unset=True, exclude_none=True)
        if not data:
            return community
        data["updated_at"] = utc_now_iso()
        return SupabaseClient.update_row(TABLE, community_id, data)

    @staticmethod
    def delete_community(actor: AuthUser, community_id: UUID | str) -> None:
        CommunityService.get_community(community_id)
        CommunityService.require_moderator(actor, community_id)

        now = utc_now_iso()
        SupabaseClient.update_row(TABLE, community_id, {"deleted_at": now, "updated_at": now})
        logger.info(f"User {actor.id} deleted community {community_id}")

    # -------------------------------------------------------------------------
    # Membership
    # -------------------------------------------------------------------------

    @staticmethod
    def is_member(user_id: UUID | str, community_id: UUID | str) -> bool:
        return SupabaseClient.fetch_one(
            MEMBERS_TABLE,
            community_id=normalize_uuid(community_id),
            user_id=normalize_uuid(user_id),
        ) is not None

    @staticmethod
    def join(actor: AuthUser, community_id: UUID | str) -> dict[str, Any]:
        """
        Join a community.

        Raises:
            ConflictError: ALREADY_MEMBER
        """
        community = CommunityService.get_community(community_id)
        if CommunityService.is_member(actor.id, community_id):
            raise ConflictError(message="Already a member of this community", code="ALREADY_MEMBER")

        membership = SupabaseClient.insert_row(MEMBERS_TABLE, {
            "id": new_id(),
            "community_id": community["id"],
            "user_id": str(actor.id),
            "joined_at": utc_now_iso(),
        })
        CommunityService._adjust_member_count(community, 1)
        return membership

    @staticmethod
    def leave(actor: AuthUser, community_id: UUID | str) -> None:
        """
        Leave a community. Moderators give up their moderator seat too.

        Raises:
            BusinessRuleError: NOT_A_MEMBER, LAST_MODERATOR
        """
        community = CommunityService.get_community(community_id)
        if not CommunityService.is_member(actor.id, community_id):
            raise BusinessRuleError(message="Not a member of this community", code="NOT_A_MEMBER")

        if CommunityService.is_moderator(actor.id, community_id):
            if CommunityService._moderator_count(community_id) <= 1:
                raise BusinessRuleError(
                    message="The last moderator cannot leave the community",
                    code="LAST_MODERATOR",
                    suggestion="Appoint another moderator first",
                )
            SupabaseClient.delete_rows(
                MODERATORS_TABLE,
                community_id=community["id"],
                user_id=str(actor.id),
            )

        SupabaseClient.delete_rows(MEMBERS_TABLE, community_id=community["id"], user_id=str(actor.id))
        CommunityService._adjust_member_count(community, -1)

    @staticmethod
    def list_members(community_id: UUID | str, page: PageRequest) -> tuple[list[dict[str, Any]], int]:
        CommunityService.get_community(community_id)
        builder = (
            SupabaseClient.get_client()
            .table(MEMBERS_TABLE)
            .select("*", count="exact")
            .eq("community_id", normalize_uuid(community_id))
            .order("joined_at", desc=False)
        )
        return paginate_query(builder, page)

    @staticmethod
    def _adjust_member_count(community: dict[str, Any], delta: int) -> None:
        current = SupabaseClient.fetch_by_id(TABLE, community["id"]) or community
        SupabaseClient.update_row(TABLE, community["id"], {
            "member_count": max((current.get("member_count") or 0) + delta, 0),
        })

    # -------------------------------------------------------------------------
    # Moderators
    # -------------------------------------------------------------------------

    @staticmethod
    def is_moderator(user_id: UUID | str, community_id: UUID | str) -> bool:
        return SupabaseClient.fetch_one(
            MODERATORS_TABLE,
            community_id=normalize_uuid(community_id),
            user_id=normalize_uuid(user_id),
        ) is not None

    @staticmethod
    def can_moderate(actor: AuthUser, community_id: UUID | str | None) -> bool:
        """Global staff moderate everywhere; community moderators only at home."""
        if actor.is_staff:
            return True
        return community_id is not None and CommunityService.is_moderator(actor.id, community_id)

    @staticmethod
    def require_moderator(actor: AuthUser, community_id: UUID | str | None) -> None:
        if not CommunityService.can_moderate(actor, community_id):
            raise PermissionDeniedError(
                message="Only moderators of this community can do that",
                code="NOT_A_MODERATOR",
            )

    @staticmethod
    def moderated_community_ids(user_id: UUID | str) -> list[str]:
        rows = SupabaseClient.fetch_all(MODERATORS_TABLE, user_id=normalize_uuid(user_id))
        return [row["community_id"] for row in rows]

    @staticmethod
    def list_moderators(community_id: UUID | str) -> list[dict[str, Any]]:
        CommunityService.get_community(community_id)
        return SupabaseClient.fetch_all(MODERATORS_TABLE, community_id=normalize_uuid(community_id))

    @staticmethod
    def add_moderator(actor: AuthUser, community_id: UUID | str, user_id: UUID | str) -> dict[str, Any]:
        """
        Appoint a member as moderator.

        Raises:
            BusinessRuleError: NOT_A_MEMBER
            ConflictError: ALREADY_MODERATOR
        """
        community = CommunityService.get_community(community_id)
        CommunityService.require_moderator(actor, community_id)
        UserService.get_user(user_id)

        if not CommunityService.is_member(user_id, community_id):
            raise BusinessRuleError(
                message="Only members can be appointed moderator",
                code="NOT_A_MEMBER",
                suggestion="The user must join the community first",
            )
        if CommunityService.is_moderator(user_id, community_id):
            raise ConflictError(message="User is already a moderator", code="ALREADY_MODERATOR")

        row = SupabaseClient.insert_row(MODERATORS_TABLE, {
            "id": new_id(),
            "community_id": community["id"],
            "user_id": normalize_uuid(user_id),
            "appointed_by": str(actor.id),
            "created_at": utc_now_iso(),
        })
        logger.info(f"User {actor.id} appointed {user_id} moderator of {community_id}")
        return row

    @staticmethod
    def remove_moderator(actor: AuthUser, community_id: UUID | str, user_id: UUID | str) -> None:
        """
        Raises:
            NotFoundError: If the user is not a moderator here
            BusinessRuleError: LAST_MODERATOR
        """
        community = CommunityService.get_community(community_id)
        CommunityService.require_moderator(actor, community_id)

        if not CommunityService.is_moderator(user_id, community_id):
            raise NotFoundError("Moderator", user_id)
        if CommunityService._moderator_count(community_id) <= 1:
            raise BusinessRuleError(
                message="A community must keep at least one moderator",
                code="LAST_MODERATOR",
            )

        SupabaseClient.delete_rows(
            MODERATORS_TABLE,
            community_id=community["id"],
            user_id=normalize_uuid(user_id),
        )
        logger.info(f"User {actor.id} removed moderator {user_id} from {community_id}")

    @staticmethod
    def _moderator_count(community_id: UUID | str) -> int:
        return SupabaseClient.count_rows(MODERATORS_TABLE, community_id=normalize_uuid(community_id))
