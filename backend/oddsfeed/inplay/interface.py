"""Abstract interface for the streaming transport."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator


class StreamConnection(ABC):
    """One open, text-framed, bidirectional connection to the odds stream.

    Lifecycle:
        conn = await transport.connect(url)
        await conn.send(subscription_frame)
        async for frame in conn:
            ...
        # iteration ends (or raises) when the peer closes or the link fails
        await conn.close()
    """

    @abstractmethod
    async def send(self, message: str) -> None:
        """Send one text frame."""

    @abstractmethod
    def __aiter__(self) -> AsyncIterator[str | bytes]:
        """Yield inbound frames in arrival order until the connection ends.

        A clean close ends iteration; a broken connection raises.
        """

    @abstractmethod
    async def close(self) -> None:
        """Close the connection. Safe to call more than once."""


class StreamTransport(ABC):
    """Opens StreamConnections. Injected into the ConnectionManager."""

    @abstractmethod
    async def connect(self, url: str) -> StreamConnection:
        """Open a connection to ``url``. Raises on failure."""
