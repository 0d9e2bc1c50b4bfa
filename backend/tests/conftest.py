"""Pytest configuration shared by the engine test suites."""

import asyncio

import pytest


@pytest.fixture
def event_loop_policy():
    """Run engine tests on the default asyncio policy."""
    return asyncio.DefaultEventLoopPolicy()
