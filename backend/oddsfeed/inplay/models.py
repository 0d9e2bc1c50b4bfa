"""Data models for in-play matches and live market state."""

from __future__ import annotations

import time
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, TypeVar

APPLICATION_TYPE = "WEB"

UP = "up"
DOWN = "down"

STATUS_OPEN = "OPEN"
STATUS_SUSPENDED = "SUSPENDED"

T = TypeVar("T")


def overlay(base: T, updates: Mapping[str, Any]) -> T:
    """Return a copy of dataclass ``base`` with every non-None value in ``updates`` applied.

    Keys absent from ``updates`` (or mapped to None) keep the base value, so
    the result never loses a field the update did not mention.
    """
    present = {key: value for key, value in updates.items() if value is not None}
    if not present:
        return base
    return replace(base, **present)


def runner_key(runner_id: str, handicap: float | None = None) -> str:
    """Composite key for a runner: selection id plus handicap line (0 when absent)."""
    hc = handicap or 0
    if isinstance(hc, float) and hc.is_integer():
        hc = int(hc)
    return f"{runner_id}-{hc}"


def _number(value: Any) -> float:
    if value is None:
        return 0.0
    return float(value)


def _optional_number(value: Any) -> float | None:
    if value is None:
        return None
    return float(value)


@dataclass(frozen=True, slots=True)
class MarketSummary:
    """One market listed under a match in the snapshot."""

    market_id: str
    market_name: str = ""

    @classmethod
    def from_feed(cls, raw: Mapping[str, Any]) -> MarketSummary:
        return cls(market_id=str(raw["marketId"]), market_name=str(raw.get("marketName", "")))

    def to_dict(self) -> dict:
        return {"marketId": self.market_id, "marketName": self.market_name}


@dataclass(frozen=True, slots=True)
class Match:
    """An in-play match as listed in the snapshot. Never mutated after loading."""

    id: str
    name: str = ""
    sport: str = ""
    open_date: str = ""
    markets: tuple[MarketSummary, ...] = ()

    @classmethod
    def from_feed(cls, raw: Mapping[str, Any]) -> Match:
        return cls(
            id=str(raw["id"]),
            name=str(raw.get("name", "")),
            sport=str(raw.get("sport", "")),
            open_date=str(raw.get("openDate", "")),
            markets=tuple(MarketSummary.from_feed(m) for m in raw.get("markets") or ()),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "sport": self.sport,
            "openDate": self.open_date,
            "markets": [m.to_dict() for m in self.markets],
        }


@dataclass(frozen=True, slots=True)
class SubscriptionRequest:
    """Ask the stream for updates on one (market, event) pair."""

    market_id: str
    event_id: str
    application_type: str = APPLICATION_TYPE

    def to_dict(self) -> dict:
        # Key order is part of the wire format
        return {
            "marketId": self.market_id,
            "eventId": self.event_id,
            "applicationType": self.application_type,
        }


@dataclass(frozen=True, slots=True)
class PriceLevel:
    """One rung of a back or lay ladder. Odds of 0 mean no price is available."""

    index: int
    odds: float = 0.0
    amount: float = 0.0

    @property
    def has_price(self) -> bool:
        return self.odds > 0

    @classmethod
    def from_feed(cls, raw: Mapping[str, Any], position: int) -> PriceLevel:
        index = raw.get("index")
        return cls(
            index=position if index is None else int(index),
            odds=_number(raw.get("odds")),
            amount=_number(raw.get("amount")),
        )

    def to_dict(self) -> dict:
        return {"index": self.index, "odds": self.odds, "amount": self.amount}


def _ladder(raw: Any) -> tuple[PriceLevel, ...] | None:
    if raw is None:
        return None
    return tuple(PriceLevel.from_feed(level, position) for position, level in enumerate(raw))


@dataclass(frozen=True, slots=True)
class Runner:
    """A selection within a market with its back and lay ladders (index 0 = best)."""

    id: str
    handicap: float | None = None
    traded_volume: float | None = None
    back: tuple[PriceLevel, ...] = ()
    lay: tuple[PriceLevel, ...] = ()
    locked: bool | None = None

    @property
    def key(self) -> str:
        return runner_key(self.id, self.handicap)

    @property
    def best_back(self) -> PriceLevel | None:
        return self.back[0] if self.back and self.back[0].has_price else None

    @property
    def best_lay(self) -> PriceLevel | None:
        return self.lay[0] if self.lay and self.lay[0].has_price else None

    @staticmethod
    def fields_from_feed(raw: Mapping[str, Any]) -> dict[str, Any]:
        """Translate one feed runner object into the runner fields it actually carries.

        Omitted keys map to None so that overlay() leaves the prior value alone.
        """
        return {
            "id": str(raw["id"]),
            "handicap": _optional_number(raw.get("hc")),
            "traded_volume": _optional_number(raw.get("tv")),
            "back": _ladder(raw.get("bdatb")),
            "lay": _ladder(raw.get("bdatl")),
            "locked": None if raw.get("locked") is None else bool(raw["locked"]),
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "hc": self.handicap,
            "tv": self.traded_volume,
            "bdatb": [level.to_dict() for level in self.back],
            "bdatl": [level.to_dict() for level in self.lay],
            "locked": self.locked,
        }


@dataclass(frozen=True, slots=True)
class MarketDefinition:
    """Market type, in-play flag and status as described by the feed."""

    market_type: str | None = None
    in_play: bool | None = None
    status: str | None = None

    @classmethod
    def from_feed(cls, raw: Mapping[str, Any]) -> MarketDefinition:
        in_play = raw.get("inPlay")
        return cls(
            market_type=raw.get("marketType"),
            in_play=None if in_play is None else bool(in_play),
            status=raw.get("status"),
        )

    def to_dict(self) -> dict:
        return {"marketType": self.market_type, "inPlay": self.in_play, "status": self.status}


# Feed key -> MarketState attribute for the scalar market fields.
_MARKET_FIELDS = {
    "mainEventId": "main_event_id",
    "mainEventName": "main_event_name",
    "mainEventStartTime": "main_event_start_time",
    "marketNameWithParents": "market_name_with_parents",
    "currency": "currency",
    "status": "status",
    "lastUpdated": "last_updated",
}
# Keys consumed elsewhere and never copied into extras.
_RESERVED_KEYS = frozenset({"id", "marketDefinition", "rc"}) | frozenset(_MARKET_FIELDS)


@dataclass(frozen=True, slots=True)
class MarketState:
    """Latest known state of one market, rebuilt (never mutated) on each merge."""

    market_id: str
    market_definition: MarketDefinition | None = None
    main_event_id: str | None = None
    main_event_name: str | None = None
    main_event_start_time: Any = None
    market_name_with_parents: str | None = None
    currency: str | None = None
    status: str | None = None
    runners: Mapping[str, Runner] = field(default_factory=lambda: MappingProxyType({}))
    last_updated: float = field(default_factory=time.time)  # Unix seconds
    extras: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def is_live(self) -> bool:
        """In play and currently open for betting."""
        return bool(self.market_definition and self.market_definition.in_play) and (
            self.status == STATUS_OPEN
        )

    @property
    def is_suspended(self) -> bool:
        return self.status == STATUS_SUSPENDED

    @staticmethod
    def fields_from_feed(envelope: Mapping[str, Any]) -> dict[str, Any]:
        """Market-level fields carried by an envelope (runners excluded)."""
        updates: dict[str, Any] = {
            attr: envelope.get(key) for key, attr in _MARKET_FIELDS.items()
        }
        definition = envelope.get("marketDefinition")
        if isinstance(definition, Mapping):
            updates["market_definition"] = MarketDefinition.from_feed(definition)
        extras = {k: v for k, v in envelope.items() if k not in _RESERVED_KEYS}
        if extras:
            updates["extras"] = extras
        return updates

    def to_dict(self) -> dict:
        data = dict(self.extras)
        data.update(
            {
                "id": self.market_id,
                "marketDefinition": (
                    self.market_definition.to_dict() if self.market_definition else None
                ),
                "mainEventId": self.main_event_id,
                "mainEventName": self.main_event_name,
                "mainEventStartTime": self.main_event_start_time,
                "marketNameWithParents": self.market_name_with_parents,
                "currency": self.currency,
                "status": self.status,
                "runners": {key: runner.to_dict() for key, runner in self.runners.items()},
                "lastUpdated": self.last_updated,
            }
        )
        return data

