"""Exceptions raised by the in-play engine."""

from __future__ import annotations


class InplayError(Exception):
    """Base class for in-play engine errors."""


class SnapshotError(InplayError):
    """The snapshot document could not be fetched or understood.

    The message is meant to be shown to a user as-is.
    """


class EngineClosedError(InplayError):
    """Operation attempted after shutdown()."""
