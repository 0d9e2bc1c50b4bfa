"""Display names for runners.

Selection ids are feed-specific; there is no general rule mapping an id to
a name, so names come from an explicit lookup table.
"""

from __future__ import annotations

from collections.abc import Mapping

from .models import MarketState, Runner

MATCH_ODDS = "MATCH_ODDS"

# Known selection ids for MATCH_ODDS markets on this feed.
DEFAULT_MATCH_ODDS_NAMES: dict[str, str] = {
    "47972": "Home",
    "47973": "Away",
    "58805": "Draw",
}


class SelectionNames:
    """Lookup of runner display names, keyed by market type then selection id."""

    def __init__(self, names: Mapping[str, Mapping[str, str]] | None = None) -> None:
        if names is None:
            names = {MATCH_ODDS: DEFAULT_MATCH_ODDS_NAMES}
        self._names = {market_type: dict(table) for market_type, table in names.items()}

    def name_for(self, market: MarketState, runner: Runner) -> str:
        market_type = market.market_definition.market_type if market.market_definition else None
        name = self._names.get(market_type or "", {}).get(runner.id)
        if name is not None:
            return name
        return f"Selection {runner.id}"
