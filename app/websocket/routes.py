# =============================================================================
# app/websocket/routes.py - WebSocket Routes
# =============================================================================
# WebSocket endpoint for real-time notifications.
#
# Connect: ws://host/ws/notifications?token={access jwt}
#
# Events:
#   - {"type": "connected", "unread": 3}
#   - {"type": "notification", "notification": {...}}
#
# The socket is closed with code 4003 when its session is revoked.
# =============================================================================

import logging
from fastapi import APIRouter, WebSocket, WebSocketDisconnect, Query

from app.exceptions import AgoraException
from app.websocket.manager import websocket_manager
from core.services.auth_service import AuthService
from core.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws/notifications")
async def notifications_websocket(
    websocket: WebSocket,
    token: str = Query(..., description="Access token")
):
    """
    WebSocket endpoint for the caller's notifications.

    Authentication is required via the `token` query parameter; the same
    checks as the REST API apply (signature, expiry, live session).
    """
    try:
        user = AuthService.authenticate(token)
    except AgoraException as e:
        logger.warning(f"WebSocket auth failed: {e.code}")
        await websocket.close(code=4001, reason=e.message)
        return

    user_id = str(user.id)
    await websocket_manager.connect(user_id, str(user.session_id), websocket)

    try:
        await websocket.send_json({
            "type": "connected",
            "unread": NotificationService.unread_count(user_id),
        })

        while True:
            data = await websocket.receive_text()

            # Handle ping/pong for keepalive
            if data == "ping":
                await websocket.send_text("pong")
            else:
                logger.debug(f"WebSocket received: {data[:100]}")

    except WebSocketDisconnect:
        logger.info(f"WebSocket client disconnected for user {user_id}")
    finally:
        websocket_manager.disconnect(user_id, websocket)


@router.get("/ws/status")
async def websocket_status():
    """Connection statistics."""
    return {
        "total_connections": websocket_manager.count(),
        "connected_users": len(websocket_manager.connections),
    }
