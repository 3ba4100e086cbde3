import asyncio
import logging
from typing import Callable, List, Optional, Set

from websockets.asyncio.server import Server, ServerConnection, serve

logger = logging.getLogger(__name__)


class StreamServer:
    """
    WebSocket server on a camera's stream port.

    Every connected viewer receives the transcoder's MPEG-TS bytes as binary
    messages. Viewers that stall longer than the send timeout are dropped so a
    slow client cannot hold up the others.
    """

    def __init__(
        self,
        camera_id: str,
        host: str,
        port: int,
        send_timeout: float = 1.0,
        on_viewers_changed: Optional[Callable[[int], None]] = None,
    ) -> None:
        self.camera_id = camera_id
        self.host = host
        self.port = port
        self._send_timeout = send_timeout
        self._on_viewers_changed = on_viewers_changed
        self._viewers: Set[ServerConnection] = set()
        self._server: Optional[Server] = None

    @property
    def viewer_count(self) -> int:
        return len(self._viewers)

    @property
    def is_serving(self) -> bool:
        return self._server is not None

    async def start(self) -> None:
        """Bind the port. Raises OSError if it cannot be bound."""
        self._server = await serve(self._handle_viewer, self.host, self.port)
        logger.info("Stream server for camera %s listening on %s:%d", self.camera_id, self.host, self.port)

    async def close(self) -> None:
        """Disconnect every viewer and release the port."""
        server = self._server
        self._server = None
        if server is None:
            return
        server.close()
        await server.wait_closed()
        self._viewers.clear()
        logger.info("Stream server for camera %s closed", self.camera_id)

    async def broadcast(self, chunk: bytes) -> None:
        viewers = list(self._viewers)
        if not viewers:
            return

        async def _send_one(ws: ServerConnection) -> Optional[ServerConnection]:
            try:
                await asyncio.wait_for(ws.send(chunk), timeout=self._send_timeout)
                return None
            except Exception:
                return ws

        results: List[Optional[ServerConnection]] = await asyncio.gather(
            *(_send_one(ws) for ws in viewers)
        )
        for ws in results:
            if ws is not None and ws in self._viewers:
                logger.info("Dropping slow stream viewer for camera %s", self.camera_id)
                self._remove(ws)
                asyncio.create_task(ws.close())

    async def _handle_viewer(self, connection: ServerConnection) -> None:
        self._viewers.add(connection)
        logger.info("Stream viewer connected for camera %s. viewers=%d", self.camera_id, self.viewer_count)
        self._notify()
        try:
            await connection.wait_closed()
        finally:
            self._remove(connection)
            logger.info("Stream viewer left camera %s. viewers=%d", self.camera_id, self.viewer_count)

    def _remove(self, connection: ServerConnection) -> None:
        if connection in self._viewers:
            self._viewers.discard(connection)
            self._notify()

    def _notify(self) -> None:
        if self._on_viewers_changed is not None:
            self._on_viewers_changed(self.viewer_count)
