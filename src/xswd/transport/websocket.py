"""WebSocket transport built on the websockets library."""

from __future__ import annotations

import logging
import time
from typing import AsyncIterator

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, ConnectionClosedError
from websockets.protocol import State

from xswd.config import ConnectionConfig
from xswd.transport.base import (
    Transport,
    TransportError,
    TransportEvent,
    TransportEventType,
    TransportOpenError,
)

logger = logging.getLogger(__name__)


class WebSocketTransport(Transport):
    """
    Client side of the XSWD WebSocket.

    Frames are exchanged as text. Binary frames received from the wallet
    are decoded as UTF-8 so the caller always sees str.
    """

    def __init__(self, config: ConnectionConfig | None = None):
        super().__init__(config or ConnectionConfig())
        self._websocket: ClientConnection | None = None

    async def connect(self) -> None:
        """Open the WebSocket to the configured endpoint."""
        if self.is_connected():
            return

        url = self.config.url
        self._emit(TransportEventType.OPENING, {"url": url})

        try:
            self._websocket = await connect(
                url,
                open_timeout=self.config.open_timeout,
                max_size=self.config.max_frame_size,
            )
        except Exception as e:
            self._websocket = None
            self._emit(TransportEventType.ERROR, {"url": url}, error=e)
            raise TransportOpenError(f"Failed to open {url}: {e}", cause=e)

        logger.debug(f"WebSocket opened to {url}")
        self._emit(TransportEventType.OPENED, {"url": url})

    async def disconnect(self) -> None:
        """Close the WebSocket if one is held."""
        websocket = self._websocket
        if websocket is None:
            return

        self._emit(TransportEventType.CLOSING)
        self._websocket = None
        await websocket.close()
        logger.debug("WebSocket closed")
        self._emit(TransportEventType.CLOSED)

    async def send(self, frame: str) -> None:
        """Write one text frame."""
        websocket = self._websocket
        if websocket is None:
            raise TransportError("Transport not connected")

        try:
            await websocket.send(frame)
        except ConnectionClosed as e:
            raise TransportError(f"Send failed, connection closed: {e}", cause=e)

        self._emit(TransportEventType.FRAME_SENT, {"size": len(frame)})

    async def receive(self) -> AsyncIterator[str]:
        """Yield text frames until the WebSocket closes."""
        websocket = self._websocket
        if websocket is None:
            raise TransportError("Transport not connected")

        try:
            async for message in websocket:
                if isinstance(message, bytes):
                    message = message.decode("utf-8", errors="replace")
                self._emit(TransportEventType.FRAME_RECEIVED, {"size": len(message)})
                yield message
        except ConnectionClosedError as e:
            self._emit(TransportEventType.ERROR, error=e)
            raise TransportError(f"Connection lost: {e}", cause=e)
        finally:
            if self._websocket is websocket and websocket.state is State.CLOSED:
                self._websocket = None

    def is_connected(self) -> bool:
        """True while the WebSocket is open."""
        return self._websocket is not None and self._websocket.state is State.OPEN

    def _emit(
        self,
        event_type: TransportEventType,
        data: dict | None = None,
        error: Exception | None = None,
    ) -> None:
        self._emit_event(
            TransportEvent(type=event_type, timestamp=time.time(), data=data, error=error)
        )
