"""One-shot snapshot fetch: tracked matches plus the streaming endpoint."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import httpx

from .errors import SnapshotError
from .models import Match
from .scheduling import BACKOFF_BASE_DELAY, BACKOFF_MAX_DELAY, backoff_delay

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0  # seconds


@dataclass(frozen=True, slots=True)
class Snapshot:
    """Parsed snapshot document."""

    matches: tuple[Match, ...]
    stream_url: str | None  # first advertised endpoint; None means don't stream

    @classmethod
    def from_document(cls, document: Any) -> Snapshot:
        """Build from the decoded JSON body. Raises SnapshotError if malformed."""
        if not isinstance(document, dict):
            raise SnapshotError("Snapshot body is not a JSON object")
        try:
            matches = tuple(Match.from_feed(m) for m in document.get("inplay_matches") or ())
            endpoints = document.get("wss_endpoints") or []
            stream_url = str(endpoints[0]["url"]) if endpoints else None
        except (KeyError, TypeError, AttributeError, IndexError) as e:
            raise SnapshotError(f"Malformed snapshot document: {e}") from e
        return cls(matches=matches, stream_url=stream_url)


class SnapshotLoader:
    """Fetches the snapshot over HTTP, with an unbounded backoff retry loop.

    fetch() is a single attempt. load() keeps retrying with delays of
    1s, 2s, 4s ... capped at 30s until a fetch succeeds or the calling
    task is cancelled. Every failure is reported to ``on_failure`` as soon
    as it happens so it can be displayed while the retry waits.
    """

    def __init__(
        self,
        url: str,
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
        base_delay: float = BACKOFF_BASE_DELAY,
        max_delay: float = BACKOFF_MAX_DELAY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._client = client
        self._base_delay = base_delay
        self._max_delay = max_delay
        self._sleep = sleep

    @property
    def url(self) -> str:
        return self._url

    async def fetch(self) -> Snapshot:
        """One GET of the snapshot document. Raises SnapshotError on any failure."""
        try:
            if self._client is not None:
                response = await self._client.get(self._url, timeout=self._timeout)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.get(self._url)
            response.raise_for_status()
            document = response.json()
        except httpx.HTTPStatusError as e:
            raise SnapshotError(f"HTTP error! status: {e.response.status_code}") from e
        except (httpx.HTTPError, httpx.InvalidURL, httpx.CookieConflict) as e:
            # InvalidURL and CookieConflict do not derive from HTTPError
            raise SnapshotError(f"Failed to fetch matches: {e}") from e
        except ValueError as e:
            raise SnapshotError(f"Snapshot body is not valid JSON: {e}") from e

        snapshot = Snapshot.from_document(document)
        logger.info(
            "Snapshot loaded: %d matches, stream endpoint %s",
            len(snapshot.matches),
            snapshot.stream_url or "none",
        )
        return snapshot

    async def load(self, on_failure: Callable[[SnapshotError], None] | None = None) -> Snapshot:
        """Fetch until one attempt succeeds. Cancel the calling task to give up."""
        attempt = 0
        while True:
            try:
                return await self.fetch()
            except SnapshotError as e:
                delay = backoff_delay(attempt, self._base_delay, self._max_delay)
                logger.warning("Snapshot fetch failed (%s); retrying in %.1fs", e, delay)
                if on_failure:
                    on_failure(e)
            attempt += 1
            await self._sleep(delay)
