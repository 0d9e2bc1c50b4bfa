"""Streaming connection lifecycle: connect, subscribe, receive, reconnect."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable, Iterable
from enum import Enum
from typing import Any

from .decoder import decode_frame
from .errors import EngineClosedError
from .interface import StreamConnection, StreamTransport
from .models import SubscriptionRequest
from .scheduling import BACKOFF_BASE_DELAY, BACKOFF_MAX_DELAY, backoff_delay
from .subscriptions import encode_subscription_frame

logger = logging.getLogger(__name__)

RECONNECT_JITTER = 1.0  # seconds, upper bound of the random extra delay


class ConnectionState(str, Enum):
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    CLOSED = "closed"


class ConnectionManager:
    """Owns the stream connection and keeps it alive.

    State machine:
        disconnected -> connecting -> connected -> disconnected (wait) -> connecting ...
        any state -> closed (shutdown(), terminal)

    One background task runs connect, subscribe, the receive loop and the
    backoff wait. Cancelling that task is how connect() replaces a
    connection and how shutdown() stops reconnecting, so a pending wait or
    connection attempt is always interruptible.

    Reconnect delay after the n-th consecutive failure:
        min(base * 2**n, max_delay) + uniform(0, jitter)
    with fresh jitter every time. n resets to 0 on each successful connect.
    """

    def __init__(
        self,
        transport: StreamTransport,
        on_envelope: Callable[[dict[str, Any]], Any],
        on_state_change: Callable[[ConnectionState], None] | None = None,
        base_delay: float = BACKOFF_BASE_DELAY,
        max_delay: float = BACKOFF_MAX_DELAY,
        jitter: float = RECONNECT_JITTER,
        rng: random.Random | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._transport = transport
        self._on_envelope = on_envelope
        self._on_state_change = on_state_change
        self._base_delay = base_delay
        self._max_delay = max_delay
        self._jitter = jitter
        self._rng = rng or random.Random()
        self._sleep = sleep

        self._state = ConnectionState.DISCONNECTED
        self._subscriptions: list[SubscriptionRequest] = []
        self._attempts: int = 0
        self._url: str | None = None
        self._error: str | None = None
        self._conn: StreamConnection | None = None
        self._task: asyncio.Task | None = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def attempts(self) -> int:
        """Consecutive failed connections since the last successful one."""
        return self._attempts

    @property
    def url(self) -> str | None:
        return self._url

    @property
    def error(self) -> str | None:
        """Advisory message about the last connection problem, if any."""
        return self._error

    def set_subscriptions(self, subscriptions: Iterable[SubscriptionRequest]) -> None:
        """Replace the subscription list. Sent on the next (re)connect."""
        self._subscriptions = list(subscriptions)

    def get_subscriptions(self) -> list[SubscriptionRequest]:
        return list(self._subscriptions)

    async def connect(self, url: str) -> None:
        """Start streaming from ``url``, replacing any existing connection.

        Returns once the background task is started; progress is reported
        through ``state`` and the state-change callback.
        """
        if self._state is ConnectionState.CLOSED:
            raise EngineClosedError("connection manager is shut down")
        await self._stop_task()
        self._url = url
        self._task = asyncio.create_task(self._run(url), name="inplay-stream")

    async def shutdown(self) -> None:
        """Close the connection and cancel any pending reconnect. Idempotent."""
        if self._state is ConnectionState.CLOSED:
            return
        await self._stop_task()
        self._set_state(ConnectionState.CLOSED)
        logger.info("Stream connection manager shut down")

    # --- Internal ---

    def _set_state(self, state: ConnectionState) -> None:
        if state is self._state:
            return
        self._state = state
        if self._on_state_change:
            self._on_state_change(state)

    async def _stop_task(self) -> None:
        task, self._task = self._task, None
        if task and not task.done():
            task.cancel()
            if task is not asyncio.current_task():
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        await self._close_connection()

    async def _close_connection(self) -> None:
        conn, self._conn = self._conn, None
        if conn is None:
            return
        try:
            await conn.close()
        except Exception as e:
            logger.debug("Error while closing stream connection: %s", e)

    async def _run(self, url: str) -> None:
        """Connect, receive until the link ends, wait, repeat. Runs until cancelled."""
        while True:
            self._set_state(ConnectionState.CONNECTING)
            try:
                self._conn = await self._transport.connect(url)
                self._attempts = 0
                self._error = None
                self._set_state(ConnectionState.CONNECTED)
                logger.info("Stream connected: %s", url)
                await self._send_subscriptions(self._conn)
                await self._receive(self._conn)
                self._error = "Live updates connection closed"
                logger.info("Stream closed: %s", url)
            except Exception as e:
                self._error = "WebSocket connection error"
                logger.warning("Stream connection failed: %s", e)

            await self._close_connection()
            self._set_state(ConnectionState.DISCONNECTED)

            delay = backoff_delay(self._attempts, self._base_delay, self._max_delay)
            delay += self._rng.uniform(0, self._jitter)
            self._attempts += 1
            logger.warning("Reconnecting in %.2fs (attempt %d)", delay, self._attempts)
            await self._sleep(delay)

    async def _send_subscriptions(self, conn: StreamConnection) -> None:
        if not self._subscriptions:
            return
        await conn.send(encode_subscription_frame(self._subscriptions))
        logger.info("Subscribed to %d markets", len(self._subscriptions))

    async def _receive(self, conn: StreamConnection) -> None:
        """Decode frames in arrival order and hand each envelope to the store."""
        async for frame in conn:
            for envelope in decode_frame(frame):
                try:
                    self._on_envelope(envelope)
                except Exception:
                    logger.exception("Failed to merge update for market %s", envelope.get("id"))
