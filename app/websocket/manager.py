# =============================================================================
# app/websocket/manager.py - WebSocket Connection Manager
# =============================================================================
# Tracks open notification sockets per user, remembering which auth session
# opened each one so revoking a session (logout, ban, password change) also
# drops its live sockets.
#
# Usage:
#   from app.websocket import websocket_manager
#
#   await websocket_manager.connect(user_id, session_id, websocket)
#   await websocket_manager.broadcast(user_id, {"type": "notification", ...})
#   await websocket_manager.close_sessions(user_id, [session_id])
#   websocket_manager.disconnect(user_id, websocket)
# =============================================================================

import logging
from typing import Dict, Iterable
from fastapi import WebSocket

logger = logging.getLogger(__name__)

# Close code sent when the session behind a socket is revoked
SESSION_REVOKED_CLOSE_CODE = 4003


class ConnectionManager:
    """
    Open sockets grouped by user.

    A user can have several clients (browser tabs, devices), each tied to
    the session whose access token opened it.
    """

    def __init__(self):
        # user_id -> {websocket: session_id}
        self.connections: Dict[str, Dict[WebSocket, str]] = {}

    async def connect(self, user_id: str, session_id: str, websocket: WebSocket) -> None:
        await websocket.accept()
        self.connections.setdefault(user_id, {})[websocket] = session_id
        logger.info(f"WebSocket connected for user {user_id} (session {session_id}). Total: {self.count()}")

    def disconnect(self, user_id: str, websocket: WebSocket) -> None:
        sockets = self.connections.get(user_id)
        if sockets is None:
            return
        sockets.pop(websocket, None)
        if not sockets:
            del self.connections[user_id]
        logger.info(f"WebSocket disconnected for user {user_id}. Total: {self.count()}")

    async def broadcast(self, user_id: str, message: dict) -> int:
        """
        Send a message to every socket of a user.

        Sockets that fail to send are dropped.

        Returns:
            Number of sockets the message reached
        """
        sockets = list(self.connections.get(user_id, {}))
        sent = 0
        for websocket in sockets:
            try:
                await websocket.send_json(message)
                sent += 1
            except Exception as e:
                logger.warning(f"Dropping dead WebSocket for user {user_id}: {e}")
                self.disconnect(user_id, websocket)

        logger.debug(f"Broadcast {message.get('type')} to user {user_id}: {sent}/{len(sockets)} sockets")
        return sent

    async def close_sessions(self, user_id: str, session_ids: Iterable[str] | None = None) -> int:
        """
        Close the sockets opened by the given sessions (all of the user's if None).

        Returns:
            Number of sockets closed
        """
        wanted = set(session_ids) if session_ids is not None else None
        closing = [
            websocket
            for websocket, session_id in self.connections.get(user_id, {}).items()
            if wanted is None or session_id in wanted
        ]
        for websocket in closing:
            self.disconnect(user_id, websocket)
            try:
                await websocket.close(code=SESSION_REVOKED_CLOSE_CODE, reason="Session revoked")
            except Exception as e:
                logger.debug(f"Socket already gone while closing: {e}")

        if closing:
            logger.info(f"Closed {len(closing)} sockets of user {user_id} after session revocation")
        return len(closing)

    def count(self, user_id: str | None = None) -> int:
        if user_id is not None:
            return len(self.connections.get(user_id, {}))
        return sum(len(sockets) for sockets in self.connections.values())


# Global singleton instance
websocket_manager = ConnectionManager()
