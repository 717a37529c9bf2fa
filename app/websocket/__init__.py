# =============================================================================
# app/websocket/__init__.py - WebSocket Module
# =============================================================================
# Provides real-time notification delivery.
#
# Usage:
#   # Push to all connections of a user (inside the API process)
#   from app.websocket import websocket_manager
#   await websocket_manager.broadcast(user_id, {"type": "notification", ...})
#
#   # Publish from any process (services, Celery workers)
#   from app.websocket.broadcast import publish_event
#   publish_event(user_id, "notification", {"notification": {...}})
# =============================================================================

from app.websocket.manager import websocket_manager
from app.websocket.broadcast import publish_event, WEBSOCKET_CHANNEL

__all__ = [
    "websocket_manager",
    "publish_event",
    "WEBSOCKET_CHANNEL",
]
