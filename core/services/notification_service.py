# =============================================================================
# core/services/notification_service.py - In-App Notifications
# =============================================================================
# Notifications are written to the notifications table and published on the
# Redis channel the API process relays to WebSocket clients. A failed
# publish is logged; the stored notification is the source of truth.
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from app.exceptions import NotFoundError
from core.models.notification import NotificationQuery, NotificationType
from lib.pagination import paginate_query
from lib.supabase_client import SupabaseClient
from lib.utils import new_id, normalize_uuid, utc_now_iso

logger = logging.getLogger(__name__)

TABLE = "notifications"


class NotificationService:
    """Service for notifications."""

    @staticmethod
    def notify(
        user_id: UUID | str,
        notification_type: NotificationType,
        title: str,
        body: str | None = None,
        reference_type: str | None = None,
        reference_id: UUID | str | None = None,
    ) -> dict[str, Any]:
        """
        Store a notification and push it to the user's open WebSockets.

        Args:
            user_id: Recipient
            notification_type: What happened
            title: One-line summary
            body: Optional longer text
            reference_type: Kind of object the notification points at
                (post, comment, moderation_action, appeal, order, refund,
                review)
            reference_id: ID of that object
        """
        from app.websocket.broadcast import EVENT_NOTIFICATION, publish_event

        row = SupabaseClient.insert_row(TABLE, {
            "id": new_id(),
            "user_id": normalize_uuid(user_id),
            "type": notification_type.value,
            "title": title,
            "body": body,
            "reference_type": reference_type,
            "reference_id": normalize_uuid(reference_id) if reference_id else None,
            "is_read": False,
            "read_at": None,
            "created_at": utc_now_iso(),
        })
        logger.debug(f"Notified user {user_id}: {notification_type.value}")

        publish_event(
            user_id=normalize_uuid(user_id),
            event_type=EVENT_NOTIFICATION,
            data={"notification": {k: v for k, v in row.items() if k != "user_id"}},
        )
        return row

    @staticmethod
    def list_notifications(
        user_id: UUID | str,
        query: NotificationQuery,
    ) -> tuple[list[dict[str, Any]], int]:
        """Newest first."""
        builder = (
            SupabaseClient.get_client()
            .table(TABLE)
            .select("*", count="exact")
            .eq("user_id", normalize_uuid(user_id))
        )
        if query.type:
            builder = builder.eq("type", query.type.value)
        if query.is_read is not None:
            builder = builder.eq("is_read", query.is_read)
        builder = builder.order("created_at", desc=True)
        return paginate_query(builder, query)

    @staticmethod
    def unread_count(user_id: UUID | str) -> int:
        return SupabaseClient.count_rows(TABLE, user_id=normalize_uuid(user_id), is_read=False)

    @staticmethod
    def mark_read(user_id: UUID | str, notification_id: UUID | str) -> dict[str, Any]:
        notification = SupabaseClient.fetch_one(TABLE, id=normalize_uuid(notification_id))
        if not notification or notification["user_id"] != normalize_uuid(user_id):
            raise NotFoundError("Notification", notification_id)
        if notification["is_read"]:
            return notification
        return SupabaseClient.update_row(TABLE, notification_id, {
            "is_read": True,
            "read_at": utc_now_iso(),
        })

    @staticmethod
    def mark_all_read(user_id: UUID | str) -> int:
        updated = SupabaseClient.update_where(
            TABLE,
            {"is_read": True, "read_at": utc_now_iso()},
            user_id=normalize_uuid(user_id),
            is_read=False,
        )
        logger.info(f"Marked {len(updated)} notifications read for user {user_id}")
        return len(updated)
