# =============================================================================
# core/models/notification.py - Notification Schemas
# =============================================================================

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel

from lib.pagination import PageRequest


class NotificationType(str, Enum):
    COMMENT_REPLY = "comment_reply"
    POST_REPLY = "post_reply"
    MODERATION_ACTION = "moderation_action"
    APPEAL_DECISION = "appeal_decision"
    ORDER_STATUS = "order_status"
    REFUND_STATUS = "refund_status"
    REVIEW_RESPONSE = "review_response"


class NotificationResponse(BaseModel):
    id: UUID
    type: NotificationType
    title: str
    body: str | None = None
    reference_type: str | None = None
    reference_id: UUID | None = None
    is_read: bool = False
    read_at: datetime | None = None
    created_at: datetime


class NotificationQuery(PageRequest):
    type: NotificationType | None = None
    is_read: bool | None = None
