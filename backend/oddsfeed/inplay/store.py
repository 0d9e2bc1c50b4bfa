"""Thread-safe table of live market state with per-field change markers."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import replace
from threading import Lock
from types import MappingProxyType
from typing import Any

from .models import DOWN, UP, MarketState, PriceLevel, Runner, overlay, runner_key
from .scheduling import AsyncioScheduler, Scheduler

logger = logging.getLogger(__name__)

CHANGE_MARKER_TTL = 0.6  # seconds a change marker batch stays visible


def _diff_ladder(
    key: str,
    side: str,
    old: tuple[PriceLevel, ...],
    new: tuple[PriceLevel, ...] | None,
    changes: dict[str, str],
) -> None:
    """Record up/down markers for positions present in both ladders whose odds moved."""
    if new is None:
        return
    for position, level in enumerate(new[: len(old)]):
        previous = old[position]
        if level.odds != previous.odds:
            changes[f"{key}-{side}-{position}"] = UP if level.odds > previous.odds else DOWN


class MarketStore:
    """Authoritative in-memory state for every market seen on the stream.

    Writer: the connection manager, one envelope at a time via merge().
    Readers: the engine facade and anything it hands snapshots to.

    Stored MarketState objects are replaced, never mutated, so a reference
    handed out by get()/get_all() stays consistent after later merges.
    """

    def __init__(
        self,
        scheduler: Scheduler | None = None,
        change_ttl: float = CHANGE_MARKER_TTL,
        clock: Callable[[], float] = time.time,
        on_change: Callable[[], None] | None = None,
    ) -> None:
        self._markets: dict[str, MarketState] = {}
        self._changes: dict[str, dict[str, str]] = {}
        self._lock = Lock()
        self._scheduler = scheduler or AsyncioScheduler()
        self._change_ttl = change_ttl
        self._clock = clock
        self._on_change = on_change
        self._version: int = 0  # Bumped on every merge, removal and marker expiry
        self._rejected: int = 0

    def merge(self, envelope: Mapping[str, Any]) -> MarketState | None:
        """Fold one update envelope into the table. Returns the new state.

        Envelopes without a market id are rejected (counted, no side effect)
        and None is returned. Malformed runner data raises before anything
        is written.
        """
        market_id = envelope.get("id")
        if not market_id:
            with self._lock:
                self._rejected += 1
            logger.debug("Rejected envelope without market id: keys=%s", list(envelope)[:5])
            return None
        market_id = str(market_id)

        market_fields = MarketState.fields_from_feed(envelope)
        extras = market_fields.pop("extras", None)
        runner_updates = [Runner.fields_from_feed(raw) for raw in envelope.get("rc") or ()]

        changes: dict[str, str] = {}
        with self._lock:
            existing = self._markets.get(market_id)
            base = existing or MarketState(market_id=market_id, last_updated=self._clock())
            state = overlay(base, market_fields)
            if extras:
                state = replace(state, extras=MappingProxyType({**base.extras, **extras}))

            if runner_updates:
                runners = dict(base.runners)
                for fields in runner_updates:
                    key = runner_key(fields["id"], fields["handicap"])
                    previous = runners.get(key)
                    if previous is None:
                        runners[key] = overlay(Runner(id=fields["id"]), fields)
                        continue
                    _diff_ladder(key, "back", previous.back, fields["back"], changes)
                    _diff_ladder(key, "lay", previous.lay, fields["lay"], changes)
                    runners[key] = overlay(previous, fields)
                state = replace(state, runners=MappingProxyType(runners))

            if changes:
                self._changes[market_id] = changes
            self._markets[market_id] = state
            self._version += 1

        if changes:
            logger.debug("Market %s: %d price level(s) moved", market_id, len(changes))
            self._scheduler.call_later(
                self._change_ttl, lambda: self._expire_changes(market_id, changes)
            )
        if self._on_change:
            self._on_change()
        return state

    def _expire_changes(self, market_id: str, batch: dict[str, str]) -> None:
        """Drop a marker batch, unless a newer batch has replaced it since."""
        with self._lock:
            if self._changes.get(market_id) is not batch:
                return
            del self._changes[market_id]
            self._version += 1

    def get(self, market_id: str) -> MarketState | None:
        """Latest state for a single market, or None if never seen."""
        with self._lock:
            return self._markets.get(market_id)

    def get_all(self) -> dict[str, MarketState]:
        """Snapshot of all markets. Returns a shallow copy."""
        with self._lock:
            return dict(self._markets)

    def changes_for(self, market_id: str) -> dict[str, str]:
        """Live change markers for a market (``<runnerKey>-<side>-<index>`` -> up/down)."""
        with self._lock:
            return dict(self._changes.get(market_id, {}))

    def remove(self, market_id: str) -> None:
        """Drop a market. A later envelope for it starts again from defaults."""
        with self._lock:
            self._markets.pop(market_id, None)
            self._changes.pop(market_id, None)
            self._version += 1

    @property
    def version(self) -> int:
        """Current version counter. Useful for SSE change detection."""
        return self._version

    @property
    def rejected(self) -> int:
        """Number of envelopes dropped for lacking a market id."""
        return self._rejected

    def __len__(self) -> int:
        with self._lock:
            return len(self._markets)

    def __contains__(self, market_id: str) -> bool:
        with self._lock:
            return market_id in self._markets
