"""In-play live odds subsystem.

Public API:
    LiveOddsEngine      - Snapshot + stream + market state behind one facade
    MarketStore         - Thread-safe market state table with change markers
    ConnectionManager   - Stream connection lifecycle with backoff reconnect
    ConnectionState     - connecting / connected / disconnected / closed
    SnapshotLoader      - Snapshot fetch with unbounded backoff retry
    decode_frame        - Raw stream frame -> update envelopes
    build_subscriptions - Snapshot matches -> subscription requests
    create_engine       - Factory configured from the environment
    create_inplay_router - FastAPI router factory for the query/SSE endpoints
"""

from .connection import ConnectionManager, ConnectionState
from .decoder import decode_frame
from .engine import LiveOddsEngine
from .factory import create_engine
from .models import Match, MarketState, PriceLevel, Runner, SubscriptionRequest
from .snapshot import Snapshot, SnapshotLoader
from .store import MarketStore
from .stream import create_inplay_router
from .subscriptions import build_subscriptions

__all__ = [
    "ConnectionManager",
    "ConnectionState",
    "LiveOddsEngine",
    "Match",
    "MarketState",
    "MarketStore",
    "PriceLevel",
    "Runner",
    "Snapshot",
    "SnapshotLoader",
    "SubscriptionRequest",
    "build_subscriptions",
    "create_engine",
    "create_inplay_router",
    "decode_frame",
]
