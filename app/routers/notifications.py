# =============================================================================
# app/routers/notifications.py - Notification Inbox
# =============================================================================
# The same notifications are pushed live over /ws/notifications.
# =============================================================================

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query

from app.auth import AuthUser, get_current_user
from core.models.notification import NotificationQuery, NotificationResponse
from core.services.notification_service import NotificationService
from lib.pagination import Page, build_page

router = APIRouter()


@router.get("", response_model=Page[NotificationResponse])
async def list_notifications(
    query: Annotated[NotificationQuery, Query()],
    user: AuthUser = Depends(get_current_user),
):
    rows, total = NotificationService.list_notifications(user.id, query)
    return build_page(rows, total, query)


@router.get("/unread-count")
async def unread_count(user: AuthUser = Depends(get_current_user)) -> dict:
    return {"unread": NotificationService.unread_count(user.id)}


@router.post("/read-all")
async def mark_all_read(user: AuthUser = Depends(get_current_user)) -> dict:
    return {"updated": NotificationService.mark_all_read(user.id)}


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: Annotated[UUID, Path(description="Notification UUID")],
    user: AuthUser = Depends(get_current_user),
):
    return NotificationService.mark_read(user.id, notification_id)
