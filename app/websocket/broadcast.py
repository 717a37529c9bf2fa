# =============================================================================
# app/websocket/broadcast.py - Cross-Process Broadcasting
# =============================================================================
# Services and Celery workers can't reach the sockets held by the API
# process, so they publish to a Redis channel and the listener started in
# app/main.py delivers each event locally.
#
# Events:
#   - notification: forwarded to every socket of the user
#   - sessions_revoked: closes the sockets opened by those sessions
# =============================================================================

import json
import logging
from typing import Any

from lib.redis_client import RedisClient

logger = logging.getLogger(__name__)

WEBSOCKET_CHANNEL = "agora:websocket:events"

EVENT_NOTIFICATION = "notification"
EVENT_SESSIONS_REVOKED = "sessions_revoked"


def publish_event(user_id: str, event_type: str, data: dict[str, Any]) -> bool:
    """
    Publish an event for one user's sockets.

    Delivery is best effort: a Redis outage is logged and reported as False,
    never raised, so the write that triggered the event still succeeds.
    """
    try:
        message = json.dumps({"user_id": str(user_id), "type": event_type, **data}, default=str)
        RedisClient.get_client().publish(WEBSOCKET_CHANNEL, message)
        logger.debug(f"Published {event_type} event for user {user_id}")
        return True

    except Exception as e:
        logger.error(f"Failed to publish {event_type} event for user {user_id}: {e}")
        return False
