"""WebSocket endpoint for live feed updates."""

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from foundersocials.api.dependencies import BroadcasterDep

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket, manager: BroadcasterDep) -> None:
    """Push broadcast events to the client and answer ``ping`` messages."""
    await manager.connect(websocket)
    try:
        while True:
            message = await websocket.receive_json()
            if isinstance(message, dict) and message.get("type") == "ping":
                await websocket.send_json({"type": "pong"})
    except WebSocketDisconnect:
        pass
    except ValueError as exc:
        logger.debug("Closing WebSocket after malformed message: %s", exc)
    finally:
        manager.disconnect(websocket)
