# =============================================================================
# app/routers/communities.py - Community Endpoints
# =============================================================================
# Communities, their members and their moderators. Posts inside a
# community are created here; everything else about posts lives in
# posts.py.
# =============================================================================

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status

from app.auth import AuthUser, get_current_user
from core.models.community import (
    CommunityCreate,
    CommunityModeratorResponse,
    CommunityQuery,
    CommunityResponse,
    CommunityUpdate,
    MembershipResponse,
    ModeratorAdd,
    PostCreate,
    PostQuery,
    PostResponse,
)
from core.services.community_service import CommunityService
from core.services.post_service import PostService
from lib.pagination import Page, PageRequest, build_page

router = APIRouter()

CommunityId = Annotated[UUID, Path(description="Community UUID")]


@router.post("", response_model=CommunityResponse, status_code=status.HTTP_201_CREATED)
async def create_community(body: CommunityCreate, user: AuthUser = Depends(get_current_user)):
    """Create a community; the creator becomes its first member and moderator."""
    return CommunityService.create_community(user, body)


@router.get("", response_model=Page[CommunityResponse])
async def list_communities(query: Annotated[CommunityQuery, Query()]):
    rows, total = CommunityService.list_communities(query)
    return build_page(rows, total, query)


@router.get("/{community_id}", response_model=CommunityResponse)
async def get_community(community_id: CommunityId):
    return CommunityService.get_community(community_id)


@router.patch("/{community_id}", response_model=CommunityResponse)
async def update_community(
    community_id: CommunityId,
    body: CommunityUpdate,
    user: AuthUser = Depends(get_current_user),
):
    return CommunityService.update_community(user, community_id, body)


@router.delete("/{community_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_community(community_id: CommunityId, user: AuthUser = Depends(get_current_user)):
    CommunityService.delete_community(user, community_id)


# =============================================================================
# Membership
# =============================================================================

@router.post("/{community_id}/join", response_model=MembershipResponse, status_code=status.HTTP_201_CREATED)
async def join_community(community_id: CommunityId, user: AuthUser = Depends(get_current_user)):
    return CommunityService.join(user, community_id)


@router.post("/{community_id}/leave", status_code=status.HTTP_204_NO_CONTENT)
async def leave_community(community_id: CommunityId, user: AuthUser = Depends(get_current_user)):
    """The last moderator cannot leave."""
    CommunityService.leave(user, community_id)


@router.get("/{community_id}/members", response_model=Page[MembershipResponse])
async def list_members(community_id: CommunityId, page: Annotated[PageRequest, Query()]):
    rows, total = CommunityService.list_members(community_id, page)
    return build_page(rows, total, page)


# =============================================================================
# Moderators
# =============================================================================

@router.get("/{community_id}/moderators", response_model=list[CommunityModeratorResponse])
async def list_moderators(community_id: CommunityId):
    return CommunityService.list_moderators(community_id)


@router.post(
    "/{community_id}/moderators",
    response_model=CommunityModeratorResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_moderator(
    community_id: CommunityId,
    body: ModeratorAdd,
    user: AuthUser = Depends(get_current_user),
):
    """Appoint a member as moderator. Only existing moderators or staff may."""
    return CommunityService.add_moderator(user, community_id, body.user_id)


@router.delete("/{community_id}/moderators/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_moderator(
    community_id: CommunityId,
    user_id: Annotated[UUID, Path(description="Moderator's user UUID")],
    user: AuthUser = Depends(get_current_user),
):
    CommunityService.remove_moderator(user, community_id, user_id)


# =============================================================================
# Posts
# =============================================================================

@router.post("/{community_id}/posts", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    community_id: CommunityId,
    body: PostCreate,
    user: AuthUser = Depends(get_current_user),
):
    return PostService.create_post(user, community_id, body)


@router.get("/{community_id}/posts", response_model=Page[PostResponse])
async def list_community_posts(community_id: CommunityId, query: Annotated[PostQuery, Query()]):
    CommunityService.get_community(community_id)
    query = query.model_copy(update={"community_id": community_id})
    rows, total = PostService.list_posts(query)
    return build_page(rows, total, query)
