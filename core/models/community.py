# =============================================================================
# core/models/community.py - Community, Post, Comment and Vote Schemas
# =============================================================================
# These models define the API contract of the Reddit-style community
# platform:
# - Communities and their moderators
# - Posts (with edit history) inside a community
# - Threaded comments on a post
# - Up/down votes on posts and comments
# =============================================================================

from datetime import datetime
from enum import Enum
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field, HttpUrl

from lib.pagination import PageRequest


# =============================================================================
# Communities
# =============================================================================

class CommunityCreate(BaseModel):
    """
    Example:
        {"name": "python_jobs", "title": "Python Jobs", "description": "Hiring threads"}
    """
    name: str = Field(
        ...,
        min_length=3,
        max_length=21,
        pattern=r"^[A-Za-z0-9_]+$",
        description="Unique handle (case-insensitive)",
    )
    title: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    is_nsfw: bool = False


class CommunityUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    is_nsfw: bool | None = None


class CommunityResponse(BaseModel):
    id: UUID
    name: str
    title: str
    description: str | None = None
    is_nsfw: bool = False
    creator_id: UUID
    member_count: int = 0
    created_at: datetime
    updated_at: datetime | None = None


class CommunityQuery(PageRequest):
    search: str | None = Field(default=None, max_length=100, description="Name substring")
    sort: Literal["members", "created_at"] = "members"


class ModeratorAdd(BaseModel):
    user_id: UUID


class CommunityModeratorResponse(BaseModel):
    id: UUID
    community_id: UUID
    user_id: UUID
    appointed_by: UUID | None = None
    created_at: datetime


class MembershipResponse(BaseModel):
    community_id: UUID
    user_id: UUID
    joined_at: datetime


# =============================================================================
# Posts
# =============================================================================

class PostCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=300)
    body: str | None = Field(default=None, max_length=40000)
    url: HttpUrl | None = None


class PostUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=300)
    body: str | None = Field(default=None, max_length=40000)


class PostResponse(BaseModel):
    id: UUID
    community_id: UUID
    author_id: UUID
    title: str
    body: str | None = None
    url: str | None = None
    upvotes: int = 0
    downvotes: int = 0
    score: int = 0
    comment_count: int = 0
    is_removed: bool = False
    created_at: datetime
    updated_at: datetime | None = None
    deleted_at: datetime | None = None


class PostSort(str, Enum):
    NEW = "new"
    TOP = "top"
    HOT = "hot"


class PostQuery(PageRequest):
    community_id: UUID | None = None
    author_id: UUID | None = None
    search: str | None = Field(default=None, max_length=300, description="Title substring")
    sort: PostSort = PostSort.NEW


class PostEditResponse(BaseModel):
    """A snapshot of a post as it was before one edit."""
    id: UUID
    post_id: UUID
    editor_id: UUID
    previous_title: str
    previous_body: str | None = None
    created_at: datetime


# =============================================================================
# Comments
# =============================================================================

DELETED_PLACEHOLDER = "[deleted]"
REMOVED_PLACEHOLDER = "[removed]"


class CommentCreate(BaseModel):
    body: str = Field(..., min_length=1, max_length=10000)
    parent_id: UUID | None = Field(default=None, description="Reply to this comment")


class CommentUpdate(BaseModel):
    body: str = Field(..., min_length=1, max_length=10000)


class CommentResponse(BaseModel):
    id: UUID
    post_id: UUID
    parent_id: UUID | None = None
    author_id: UUID | None = None
    body: str
    depth: int = 0
    upvotes: int = 0
    downvotes: int = 0
    score: int = 0
    is_removed: bool = False
    is_deleted: bool = False
    created_at: datetime
    updated_at: datetime | None = None


# =============================================================================
# Votes
# =============================================================================

class VoteTarget(str, Enum):
    POST = "post"
    COMMENT = "comment"


class VoteRequest(BaseModel):
    """+1 upvote, -1 downvote, 0 clears an existing vote."""
    value: Literal[-1, 0, 1]


class VoteResponse(BaseModel):
    target_type: VoteTarget
    target_id: UUID
    value: int
    upvotes: int
    downvotes: int
    score: int
