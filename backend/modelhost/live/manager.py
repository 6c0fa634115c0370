"""WebSocket connection registry and upload-event broadcaster.

This module keeps track of the open live-update connections and pushes
upload notifications to them.

Key features:
    - Explicit registry object owned by the application (``app.state.connections``)
    - Concurrent delivery to all recipients with asyncio.gather()
    - Automatic dead connection cleanup on failed sends
    - Fire-and-forget ``notify()`` for request handlers: events are queued and
      delivered by a background dispatcher task, in the order they were queued
    - Recipients are snapshotted when an event is queued, so a client that
      connects later never receives an event that predates it

Thread Safety:
    This implementation is designed for async/await usage with a single event loop.
    It is NOT thread-safe for concurrent access from multiple threads.

Delivery guarantees:
    None. Sends are best-effort, unacknowledged, and unthrottled. A client
    that fails a send is dropped from the registry.
"""
import asyncio
import logging
from typing import List, Optional, Set, Tuple

from fastapi import Request, WebSocket
from starlette.websockets import WebSocketState

logger = logging.getLogger(__name__)

# WebSocket close code sent to clients when the server shuts down
GOING_AWAY = 1001

_Delivery = Tuple[dict, List[WebSocket]]


class ConnectionManager:
    """Registry of live-update WebSocket connections.

    Created once per application and started/stopped by the application
    lifespan. Request handlers receive it through ``Depends`` and only ever
    call ``notify()``, which never blocks them.
    """

    def __init__(self) -> None:
        self.active_connections: Set[WebSocket] = set()

        # Dispatcher state, bound to the event loop that started it
        self._queue: Optional["asyncio.Queue[Optional[_Delivery]]"] = None
        self._dispatcher: Optional[asyncio.Task] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    # -----------------------------------------------------------------------
    # Registry
    # -----------------------------------------------------------------------

    async def connect(self, websocket: WebSocket) -> None:
        """Accept a WebSocket handshake, greet the client, then register it.

        Registering after the greeting keeps ``CONNECTED`` the first message
        on the socket; events queued while it is being sent are not delivered.
        """
        await websocket.accept()
        await websocket.send_json({"type": "CONNECTED"})
        self.register(websocket)

    def register(self, websocket: WebSocket) -> None:
        self.active_connections.add(websocket)
        logger.info(f"[Live] Connection registered ({len(self.active_connections)} open)")

    def unregister(self, websocket: WebSocket) -> None:
        """Remove a connection. Unknown connections are ignored."""
        if websocket in self.active_connections:
            self.active_connections.discard(websocket)
            logger.info(f"[Live] Connection removed ({len(self.active_connections)} open)")

    def count(self) -> int:
        return len(self.active_connections)

    # -----------------------------------------------------------------------
    # Delivery
    # -----------------------------------------------------------------------

    async def broadcast(
        self, message: dict, recipients: Optional[List[WebSocket]] = None
    ) -> None:
        """Send a message to every recipient concurrently.

        Recipients default to all registered connections. Connections that
        were unregistered in the meantime are skipped; connections whose send
        fails are removed from the registry. Never raises.

        Args:
            message: JSON-serializable message to broadcast.
            recipients: Connections to deliver to (a snapshot of the registry).
        """
        if recipients is None:
            recipients = list(self.active_connections)
        connections = [conn for conn in recipients if conn in self.active_connections]
        if not connections:
            return

        results = await asyncio.gather(
            *[self._safe_send(conn, message) for conn in connections],
            return_exceptions=True
        )

        failed_connections = [
            conn for conn, success in zip(connections, results)
            if success is not True
        ]
        for conn in failed_connections:
            self.unregister(conn)

    async def _safe_send(self, connection: WebSocket, message: dict) -> bool:
        """Send a message to a WebSocket connection with error handling.

        Returns:
            True if successful, False if connection failed.
        """
        try:
            await connection.send_json(message)
            return True
        except Exception as e:
            logger.debug(f"Failed to send to connection: {e}")
            return False

    def notify(self, message: dict) -> None:
        """Queue a message for every currently registered connection.

        Returns immediately; delivery happens on the dispatcher task.
        """
        recipients = list(self.active_connections)
        if not recipients:
            return
        self._ensure_dispatcher()
        self._queue.put_nowait((message, recipients))

    def _ensure_dispatcher(self) -> None:
        loop = asyncio.get_running_loop()
        if (
            self._dispatcher is not None
            and not self._dispatcher.done()
            and self._loop is loop
        ):
            return
        self._loop = loop
        self._queue = asyncio.Queue()
        self._dispatcher = loop.create_task(self._dispatch(self._queue))

    async def _dispatch(self, queue: "asyncio.Queue[Optional[_Delivery]]") -> None:
        while True:
            item = await queue.get()
            if item is None:
                return
            message, recipients = item
            await self.broadcast(message, recipients)

    # -----------------------------------------------------------------------
    # Lifecycle
    # -----------------------------------------------------------------------

    def start(self) -> None:
        """Start the dispatcher on the running loop."""
        self._ensure_dispatcher()
        logger.info("[Live] Broadcaster started")

    async def shutdown(self) -> None:
        """Deliver queued events, then close every connection."""
        if (
            self._dispatcher is not None
            and not self._dispatcher.done()
            and self._loop is asyncio.get_running_loop()
        ):
            self._queue.put_nowait(None)
            await self._dispatcher
        self._dispatcher = None
        self._queue = None
        self._loop = None

        connections = list(self.active_connections)
        self.active_connections.clear()
        for conn in connections:
            if conn.application_state == WebSocketState.CONNECTED:
                try:
                    await conn.close(code=GOING_AWAY)
                except Exception as e:
                    logger.debug(f"Failed to close connection: {e}")
        logger.info(f"[Live] Broadcaster stopped, closed {len(connections)} connections")


def get_connection_manager(request: Request) -> ConnectionManager:
    """FastAPI dependency returning the application's connection registry."""
    return request.app.state.connections
