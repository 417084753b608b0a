"""
Shared fixtures: a controllable clock, an in-memory store and wired services
"""
from datetime import datetime, timezone

import pytest

from tripjournal.core.clock import ManualClock
from tripjournal.core.exceptions import PersistenceFailureError
from tripjournal.core.store import InMemoryStore
from tripjournal.services.intention_service import IntentionService
from tripjournal.services.trip_flow import TripFlow
from tripjournal.services.trip_history_service import TripHistoryLog
from tripjournal.services.trip_session import TripSession
from tripjournal.services.trip_sitter_service import TripSitterRegistry

T0 = datetime(2025, 3, 1, 20, 0, tzinfo=timezone.utc)


class FlakyStore(InMemoryStore):
    """In-memory store whose writes can be switched off."""

    def __init__(self):
        super().__init__()
        self.fail_writes = False

    async def set(self, key, value):
        if self.fail_writes:
            raise PersistenceFailureError(key, "disk full")
        await super().set(key, value)


@pytest.fixture
def clock():
    return ManualClock(T0)


@pytest.fixture
def store():
    return FlakyStore()


@pytest.fixture
def session(store, clock):
    return TripSession(store, clock=clock)


@pytest.fixture
def history(store):
    return TripHistoryLog(store)


@pytest.fixture
def intentions(store, clock):
    return IntentionService(store, clock=clock)


@pytest.fixture
def sitters(store):
    return TripSitterRegistry(store)


@pytest.fixture
def flow(session, history, intentions, clock):
    return TripFlow(session, history, intentions, clock=clock)
