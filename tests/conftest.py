"""
Pytest configuration and shared fixtures.
"""
from datetime import datetime, timedelta, timezone

import pytest

from ketchup_tracker.models import DoseEvent
from ketchup_tracker.session import SessionContext, SyncGate
from ketchup_tracker.store import MemoryDoseLogStore, SqliteDoseLogStore

from helpers import FailingStore, FakeClock


@pytest.fixture
def base_time() -> datetime:
    return datetime(2026, 3, 1, 8, 0, tzinfo=timezone.utc)


@pytest.fixture
def sample_events(base_time):
    """Three doses on consecutive days, inserted oldest first."""
    return [
        DoseEvent(timestamp=base_time + timedelta(days=i), cycle_day=i + 1)
        for i in range(3)
    ]


@pytest.fixture
def memory_store(sample_events) -> MemoryDoseLogStore:
    return MemoryDoseLogStore(sample_events)


@pytest.fixture
def sqlite_store(tmp_path) -> SqliteDoseLogStore:
    return SqliteDoseLogStore(tmp_path / "test.db", user_id="tester")


@pytest.fixture
def failing_store(sample_events) -> FailingStore:
    return FailingStore(sample_events)


@pytest.fixture
def open_session() -> SessionContext:
    return SessionContext(is_authenticated=True, user="tester")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def free_gate() -> SyncGate:
    """A gate without cooldown, so doses can be logged back to back."""
    return SyncGate(cooldown=0, clock=FakeClock())
