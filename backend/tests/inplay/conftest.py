"""Fixtures for in-play engine tests."""

import pytest

from fakes import FakeTransport, ManualScheduler


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()
