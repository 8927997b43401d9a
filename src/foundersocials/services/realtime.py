"""WebSocket fan-out of feed events to connected clients."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import WebSocket

logger = logging.getLogger(__name__)

EVENT_NEW_COMMENT = "new-comment"
EVENT_COMMENT_VOTE = "comment-vote"
EVENT_POST_VOTE = "post-vote"
EVENT_COMMUNITY_CREATED = "community-created"


class ConnectionManager:
    """Track open WebSocket connections and broadcast events to all of them."""

    def __init__(self) -> None:
        self.active_connections: list[WebSocket] = []

    async def connect(self, websocket: WebSocket) -> None:
        """Accept and register a WebSocket connection."""
        await websocket.accept()
        self.active_connections.append(websocket)
        logger.debug("WebSocket connected (%d open)", len(self.active_connections))

    def disconnect(self, websocket: WebSocket) -> None:
        if websocket in self.active_connections:
            self.active_connections.remove(websocket)
        logger.debug("WebSocket disconnected (%d open)", len(self.active_connections))

    async def broadcast(self, event: str, data: dict[str, Any]) -> None:
        """Send ``{"event": event, "data": data}`` to every connection.

        Connections that fail to receive are dropped.
        """
        message = {"event": event, "data": data}
        disconnected = []
        for connection in list(self.active_connections):
            try:
                await connection.send_json(message)
            except Exception as exc:
                logger.debug("Dropping WebSocket after failed send: %s", exc)
                disconnected.append(connection)
        for connection in disconnected:
            self.disconnect(connection)


# Global connection manager instance
manager = ConnectionManager()


def get_connection_manager() -> ConnectionManager:
    """Get the connection manager instance."""
    return manager
