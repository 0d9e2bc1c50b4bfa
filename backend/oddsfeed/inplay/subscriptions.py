"""Subscription list derived from the snapshot, and its wire encoding."""

from __future__ import annotations

import json
from collections.abc import Iterable

from .models import Match, SubscriptionRequest


def build_subscriptions(matches: Iterable[Match]) -> list[SubscriptionRequest]:
    """One request per (match, market) pair, in snapshot order.

    The snapshot already lists each match and market once, so nothing is
    filtered or deduplicated here.
    """
    return [
        SubscriptionRequest(market_id=market.market_id, event_id=match.id)
        for match in matches
        for market in match.markets
    ]


def encode_subscription_frame(subscriptions: Iterable[SubscriptionRequest]) -> str:
    """Encode requests the way the stream expects them.

    The JSON array of requests is itself JSON-encoded as a string and sent
    inside a one-element array: ``["[{\\"marketId\\":...}]"]``.
    """
    payload = json.dumps(
        [request.to_dict() for request in subscriptions],
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return f"[{json.dumps(payload, ensure_ascii=False)}]"
