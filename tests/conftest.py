import os

# Must be set before config is imported anywhere.
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["DEBUG"] = "true"

import pytest
from fastapi.testclient import TestClient

from main import create_app
from relay_service import RelayService

HOUR_MS = 60 * 60 * 1000
DAY_MS = 24 * HOUR_MS


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int = 0, hours: float = 0, days: float = 0) -> int:
        self.now += int(ms + hours * HOUR_MS + days * DAY_MS)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def relay(clock):
    return RelayService(clock=clock)


@pytest.fixture
def app(relay):
    return create_app(relay, sweep_interval=3600)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def lobby(relay):
    """Room LOBBY hosted by u1 with u2 joined."""
    relay.create_room("LOBBY", "u1", e2ee_enabled=True)
    relay.join_room("LOBBY", "u2")
    return "LOBBY"
