"""Turn raw stream frames into update envelopes."""

from __future__ import annotations

import json
import logging
from typing import Any

logger = logging.getLogger(__name__)

HEARTBEAT_PREFIX = "a"

# Frames at or below this length that fail to decode are heartbeats and
# other control noise, not worth a warning.
NOISE_FRAME_LENGTH = 10


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant {name}")


def _loads(text: str) -> Any:
    # NaN and Infinity are not JSON
    return json.loads(text, parse_constant=_reject_constant)


def _reparse(item: Any) -> Any:
    if isinstance(item, str):
        try:
            return _loads(item)
        except (ValueError, RecursionError):
            return item
    return item


def decode_frame(payload: str | bytes) -> list[dict[str, Any]]:
    """Decode one frame into zero or more envelopes, in frame order.

    The feed prefixes data frames with a single ``a`` and double-encodes each
    update as a JSON string inside the outer array. Anything that is not a
    JSON object after unwrapping is dropped. A frame that cannot be parsed
    yields no envelopes (invalid UTF-8, nesting too deep to parse and
    NaN/Infinity literals included); it is logged at WARNING only when it is
    longer than NOISE_FRAME_LENGTH. Never raises.
    """
    try:
        text = payload.decode("utf-8") if isinstance(payload, bytes) else payload
        if text.startswith(HEARTBEAT_PREFIX):
            text = text[1:]
        parsed = _loads(text)
    except (ValueError, RecursionError) as e:
        if len(payload) > NOISE_FRAME_LENGTH:
            logger.warning("Failed to decode stream frame (%d chars): %s", len(payload), e)
        else:
            logger.debug("Ignoring short non-JSON frame %r", payload)
        return []

    if isinstance(parsed, list):
        return [item for item in map(_reparse, parsed) if isinstance(item, dict)]
    if isinstance(parsed, dict):
        return [parsed]
    return []
