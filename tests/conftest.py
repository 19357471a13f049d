"""Shared test fixtures and configuration."""
import os
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest
from fastapi.testclient import TestClient

# Set test environment variables before importing app
os.environ.setdefault("SERVER_BASE_URL", "https://ivr.example.com")

from roofing_ivr.main import app
from roofing_ivr.core.config import Settings
from roofing_ivr.core.dependencies import get_call_flow, get_session_store
from roofing_ivr.services.call_session.manager import CallFlowManager
from roofing_ivr.services.call_session.store import InMemoryStore
from roofing_ivr.services.script.provider import ScriptProvider
from roofing_ivr.services.summary import MemorySummarySink

BASE_URL = "https://ivr.example.com"
EASTERN = ZoneInfo("America/New_York")

# Monday 4 March 2024
MONDAY_MORNING = datetime(2024, 3, 4, 10, 0, tzinfo=EASTERN)
# Saturday 9 March 2024
SATURDAY_NIGHT = datetime(2024, 3, 9, 22, 0, tzinfo=EASTERN)


class FakeClock:
    """Clock whose time the test controls."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def test_settings():
    """Override settings for testing."""
    return Settings(server_base_url=BASE_URL)


@pytest.fixture
def clock():
    """Clock set to a weekday during office hours."""
    return FakeClock(MONDAY_MORNING)


@pytest.fixture
def after_hours(clock):
    """Move the clock to a Saturday night."""
    clock.now = SATURDAY_NIGHT
    return clock


@pytest.fixture
def script():
    """The bundled spoken script."""
    return ScriptProvider().get_script()


@pytest.fixture
def summary_sink():
    """Sink that keeps summary lines for assertions."""
    return MemorySummarySink()


@pytest.fixture
def session_store():
    return InMemoryStore(name="session")


@pytest.fixture
def recording_store():
    return InMemoryStore(name="recording")


@pytest.fixture
def make_flow(session_store, recording_store, script, summary_sink, clock):
    """Build a CallFlowManager with settings overrides."""
    def _make_flow(**overrides) -> CallFlowManager:
        return CallFlowManager(
            settings=Settings(server_base_url=BASE_URL, **overrides),
            sessions=session_store,
            recordings=recording_store,
            script=script,
            summary_sink=summary_sink,
            clock=clock,
        )
    return _make_flow


@pytest.fixture
def call_flow(make_flow):
    """CallFlowManager with default settings."""
    return make_flow()


@pytest.fixture
def test_client(call_flow, session_store):
    """Create FastAPI test client with overrides."""
    app.dependency_overrides[get_call_flow] = lambda: call_flow
    app.dependency_overrides[get_session_store] = lambda: session_store

    client = TestClient(app)

    yield client

    # Clear overrides
    app.dependency_overrides.clear()

