"""Live-update WebSocket endpoint.

Protocol (server → client only):
    - On connect: {type: "CONNECTED"} once the connection is registered
    - After each successful upload: {type: "UPLOAD", url: "<file url>"}

Anything the client sends is read and discarded.
"""
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from .manager import ConnectionManager

logger = logging.getLogger(__name__)

router = APIRouter(tags=["live"])


@router.websocket("/ws")
@router.websocket("/")
async def live_updates_endpoint(websocket: WebSocket) -> None:
    """Register the client for upload notifications until it disconnects."""
    manager: ConnectionManager = websocket.app.state.connections
    try:
        await manager.connect(websocket)
        while True:
            # Client payloads (text or bytes) are ignored
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                logger.info("[Live] Client disconnected")
                break
    except WebSocketDisconnect:
        logger.info("[Live] Client disconnected")
    finally:
        manager.unregister(websocket)
