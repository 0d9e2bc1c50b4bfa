"""WebSocket implementation of the stream transport."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import Any

import websockets

from .interface import StreamConnection, StreamTransport

logger = logging.getLogger(__name__)

PING_INTERVAL = 20.0  # seconds
PING_TIMEOUT = 10.0  # seconds
MAX_FRAME_SIZE = None  # bytes; None accepts frames of any size


class WebSocketConnection(StreamConnection):
    """StreamConnection over an open ``websockets`` client connection."""

    def __init__(self, ws: Any) -> None:
        self._ws = ws

    async def send(self, message: str) -> None:
        await self._ws.send(message)

    async def __aiter__(self) -> AsyncIterator[str | bytes]:
        # websockets ends iteration on a clean close and raises
        # ConnectionClosedError when the link drops.
        async for message in self._ws:
            yield message

    async def close(self) -> None:
        await self._ws.close()


class WebSocketTransport(StreamTransport):
    """Opens WebSocket connections with keepalive pings."""

    def __init__(
        self,
        ping_interval: float = PING_INTERVAL,
        ping_timeout: float = PING_TIMEOUT,
        max_size: int | None = MAX_FRAME_SIZE,
    ) -> None:
        self._ping_interval = ping_interval
        self._ping_timeout = ping_timeout
        self._max_size = max_size

    async def connect(self, url: str) -> StreamConnection:
        ws = await websockets.connect(
            url,
            ping_interval=self._ping_interval,
            ping_timeout=self._ping_timeout,
            max_size=self._max_size,
        )
        logger.debug("WebSocket opened: %s", url)
        return WebSocketConnection(ws)
