# =============================================================================
# app/routers/posts.py - Post, Comment and Vote Endpoints
# =============================================================================

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status

from app.auth import AuthUser, get_current_user, get_current_user_optional
from core.models.community import (
    CommentCreate,
    CommentResponse,
    CommentUpdate,
    PostEditResponse,
    PostQuery,
    PostResponse,
    PostUpdate,
    VoteRequest,
    VoteResponse,
    VoteTarget,
)
from core.services.comment_service import CommentService
from core.services.post_service import PostService
from core.services.vote_service import VoteService
from lib.pagination import Page, PageRequest, build_page

# Mounted at /posts and /comments respectively
router = APIRouter()
comments_router = APIRouter()

PostId = Annotated[UUID, Path(description="Post UUID")]
CommentId = Annotated[UUID, Path(description="Comment UUID")]


# =============================================================================
# Posts
# =============================================================================

@router.get("", response_model=Page[PostResponse])
async def list_posts(query: Annotated[PostQuery, Query()]):
    """Front page: live posts across all communities, sorted new, top or hot."""
    rows, total = PostService.list_posts(query)
    return build_page(rows, total, query)


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(post_id: PostId, viewer: AuthUser | None = Depends(get_current_user_optional)):
    """Removed and deleted posts are only visible to moderators."""
    return PostService.get_post(post_id, viewer)


@router.patch("/{post_id}", response_model=PostResponse)
async def update_post(post_id: PostId, body: PostUpdate, user: AuthUser = Depends(get_current_user)):
    """Authors only; the previous version is kept in the edit history."""
    return PostService.update_post(user, post_id, body)


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post(post_id: PostId, user: AuthUser = Depends(get_current_user)):
    PostService.delete_post(user, post_id)


@router.get("/{post_id}/edits", response_model=list[PostEditResponse])
async def list_post_edits(post_id: PostId):
    return PostService.list_edits(post_id)


@router.post("/{post_id}/vote", response_model=VoteResponse)
async def vote_on_post(post_id: PostId, body: VoteRequest, user: AuthUser = Depends(get_current_user)):
    """value 1 upvotes, -1 downvotes, 0 clears the vote."""
    return VoteService.vote(user, VoteTarget.POST, post_id, body.value)


@router.post("/{post_id}/comments", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def create_comment(post_id: PostId, body: CommentCreate, user: AuthUser = Depends(get_current_user)):
    return CommentService.create_comment(user, post_id, body)


@router.get("/{post_id}/comments", response_model=Page[CommentResponse])
async def list_comments(post_id: PostId, page: Annotated[PageRequest, Query()]):
    """Oldest first; clients rebuild the tree from parent_id and depth."""
    rows, total = CommentService.list_comments(post_id, page)
    return build_page(rows, total, page)


# =============================================================================
# Comments
# =============================================================================

@comments_router.get("/{comment_id}", response_model=CommentResponse)
async def get_comment(comment_id: CommentId):
    return CommentService.get_comment(comment_id)


@comments_router.patch("/{comment_id}", response_model=CommentResponse)
async def update_comment(comment_id: CommentId, body: CommentUpdate, user: AuthUser = Depends(get_current_user)):
    return CommentService.update_comment(user, comment_id, body)


@comments_router.delete("/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(comment_id: CommentId, user: AuthUser = Depends(get_current_user)):
    """The comment stays in the thread as a placeholder."""
    CommentService.delete_comment(user, comment_id)


@comments_router.post("/{comment_id}/vote", response_model=VoteResponse)
async def vote_on_comment(comment_id: CommentId, body: VoteRequest, user: AuthUser = Depends(get_current_user)):
    return VoteService.vote(user, VoteTarget.COMMENT, comment_id, body.value)
