"""Live odds engine: snapshot load, streaming connection and market state behind one facade."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable

from .connection import ConnectionManager, ConnectionState
from .errors import EngineClosedError, SnapshotError
from .interface import StreamTransport
from .models import Match, MarketState, SubscriptionRequest
from .scheduling import Scheduler
from .snapshot import SnapshotLoader
from .store import MarketStore
from .subscriptions import build_subscriptions

logger = logging.getLogger(__name__)

Listener = Callable[[], None]


class LiveOddsEngine:
    """Keeps an in-memory model of every tracked market in step with the live feed.

    Lifecycle:
        engine = LiveOddsEngine(loader, transport)
        await engine.start()          # snapshot (retried until it loads), then stream
        # ... read list_markets() / changes_for() ...
        await engine.refresh()        # reload snapshot and reconnect
        await engine.shutdown()       # always, on every teardown path

    or ``async with LiveOddsEngine(...) as engine:``.

    Listeners registered with subscribe() are called after every merge,
    connection-state transition and snapshot outcome.
    """

    def __init__(
        self,
        loader: SnapshotLoader,
        transport: StreamTransport,
        scheduler: Scheduler | None = None,
        rng: random.Random | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._loader = loader
        self._store = MarketStore(scheduler=scheduler, on_change=self._notify)
        self._connection = ConnectionManager(
            transport,
            on_envelope=self._store.merge,
            on_state_change=self._on_connection_state,
            rng=rng,
            sleep=sleep,
        )
        self._matches: tuple[Match, ...] = ()
        self._listeners: list[Listener] = []
        self._events: int = 0
        self._loading = True
        self._snapshot_error: str | None = None
        self._load_task: asyncio.Task | None = None
        self._closed = False

    # --- Commands ---

    async def start(self) -> None:
        await self.refresh()
        logger.info("Live odds engine started: snapshot from %s", self._loader.url)

    async def refresh(self) -> None:
        """Re-run the snapshot fetch and reconnect the stream from scratch."""
        if self._closed:
            raise EngineClosedError("engine is shut down")
        await self._cancel_load()
        self._snapshot_error = None
        self._load_task = asyncio.create_task(self._load_and_connect(), name="inplay-snapshot")
        self._load_task.add_done_callback(self._on_load_done)

    async def shutdown(self) -> None:
        """Stop retrying, close the stream. Safe to call multiple times."""
        if self._closed:
            return
        self._closed = True
        await self._cancel_load()
        await self._connection.shutdown()
        logger.info("Live odds engine stopped")

    def remove(self, market_id: str) -> None:
        """Forget a market (e.g. the user dismissed it). The feed may recreate it."""
        self._store.remove(market_id)
        self._notify()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a state-changed listener. Returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # --- Queries ---

    def list_matches(self) -> list[Match]:
        return list(self._matches)

    def list_markets(self) -> dict[str, MarketState]:
        return self._store.get_all()

    def get_market(self, market_id: str) -> MarketState | None:
        return self._store.get(market_id)

    def changes_for(self, market_id: str) -> dict[str, str]:
        return self._store.changes_for(market_id)

    def subscriptions(self) -> list[SubscriptionRequest]:
        return self._connection.get_subscriptions()

    @property
    def connection_state(self) -> ConnectionState:
        return self._connection.state

    @property
    def loading(self) -> bool:
        """True until the first snapshot attempt has finished, either way."""
        return self._loading

    @property
    def error(self) -> str | None:
        """Advisory message for display alongside whatever state is held."""
        return self._snapshot_error or self._connection.error

    @property
    def rejected(self) -> int:
        return self._store.rejected

    @property
    def version(self) -> int:
        """Bumped whenever anything a consumer can observe has changed."""
        return self._store.version + self._events

    @property
    def closed(self) -> bool:
        return self._closed

    async def __aenter__(self) -> LiveOddsEngine:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.shutdown()

    # --- Internal ---

    async def _cancel_load(self) -> None:
        task, self._load_task = self._load_task, None
        if task and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _load_and_connect(self) -> None:
        snapshot = await self._loader.load(on_failure=self._on_snapshot_failure)
        self._matches = snapshot.matches
        self._snapshot_error = None
        self._loading = False
        self._connection.set_subscriptions(build_subscriptions(snapshot.matches))
        self._notify()

        if snapshot.stream_url:
            await self._connection.connect(snapshot.stream_url)
        else:
            logger.info("Snapshot advertised no stream endpoint; not connecting")

    def _on_load_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None:
            return
        logger.exception("Snapshot load stopped unexpectedly", exc_info=exc)
        self._snapshot_error = f"Failed to load matches: {exc}"
        self._loading = False
        self._notify()

    def _on_snapshot_failure(self, error: SnapshotError) -> None:
        self._snapshot_error = str(error)
        self._loading = False
        self._notify()

    def _on_connection_state(self, state: ConnectionState) -> None:
        logger.debug("Connection state -> %s", state.value)
        self._notify()

    def _notify(self) -> None:
        self._events += 1
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                logger.exception("State listener failed")
