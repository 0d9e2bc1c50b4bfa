"""Factory for creating the live odds engine from the environment."""

from __future__ import annotations

import logging
import os

from .engine import LiveOddsEngine
from .snapshot import DEFAULT_TIMEOUT, SnapshotLoader
from .transport import WebSocketTransport

logger = logging.getLogger(__name__)


def create_engine() -> LiveOddsEngine:
    """Create an engine configured from environment variables.

    - INPLAY_SNAPSHOT_URL (required) -> snapshot document URL
    - INPLAY_SNAPSHOT_TIMEOUT (optional, seconds) -> HTTP timeout for the fetch

    Returns an unstarted engine. Caller must await engine.start() and,
    on every exit path, engine.shutdown().
    """
    url = os.environ.get("INPLAY_SNAPSHOT_URL", "").strip()
    if not url:
        raise ValueError("INPLAY_SNAPSHOT_URL must be set to the snapshot endpoint")

    raw_timeout = os.environ.get("INPLAY_SNAPSHOT_TIMEOUT", "").strip()
    timeout = float(raw_timeout) if raw_timeout else DEFAULT_TIMEOUT

    logger.info("In-play snapshot source: %s (timeout %.1fs)", url, timeout)
    return LiveOddsEngine(
        loader=SnapshotLoader(url, timeout=timeout),
        transport=WebSocketTransport(),
    )
