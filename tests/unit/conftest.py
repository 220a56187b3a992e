"""
Shared fixtures for unit tests.

Provides resource factories, a mocked bridge client and a fake clock for the
debounce and sync tests.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from hue_mixer.models import Resource, ResourceKind
from hue_mixer.registry import ControlRegistry


class FakeClock:
    """Manually advanced clock; `sleep` moves time forward instead of waiting."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def time(self):
        return self.now

    async def sleep(self, delay):
        self.sleeps.append(delay)
        self.now += delay
        await asyncio.sleep(0)


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def make_light():
    """Factory for light resources as decoded from GET /lights."""

    def _make(light_id="1", name="Desk", on=True, bri=127, hue=0, sat=0):
        return Resource(id=light_id, kind=ResourceKind.LIGHT, name=name, on=on, bri=bri, hue=hue, sat=sat)

    return _make


@pytest.fixture
def make_group():
    """Factory for group resources as decoded from GET /groups."""

    def _make(group_id="1", name="Living Room", on=True, bri=254, hue=0, sat=0, lights=("1", "2")):
        return Resource(
            id=group_id,
            kind=ResourceKind.GROUP,
            name=name,
            on=on,
            bri=bri,
            hue=hue,
            sat=sat,
            lights=tuple(lights),
        )

    return _make


@pytest.fixture
def mock_client():
    """
    Mock HueBridgeClient.

    Reads return empty collections and writes succeed unless a test overrides them.
    """
    client = MagicMock()
    client.list_lights = AsyncMock(return_value={})
    client.list_groups = AsyncMock(return_value={})
    client.list_scenes = AsyncMock(return_value={})
    client.write_light_state = AsyncMock(return_value=[{"success": {}}])
    client.write_group_action = AsyncMock(return_value=[{"success": {}}])
    client.close = AsyncMock()
    return client


@pytest.fixture
def registry():
    return ControlRegistry()
