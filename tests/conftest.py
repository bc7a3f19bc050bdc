"""Pytest configuration and fixtures."""

import logging
import os
from datetime import datetime, timedelta, timezone

import pytest
from dotenv import load_dotenv

from parkgrid import LocalChangeNotifier, MemorySlotStore, Occupant, default_layout

# Configure logging for tests
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# Load environment variables
load_dotenv()

T0 = datetime(2024, 4, 1, 9, 0, tzinfo=timezone.utc)


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test (requires a live PostgREST endpoint)",
    )
    config.addinivalue_line(
        "markers", "destructive: mark test as potentially destructive (modifies data)"
    )


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    """Clock starting at T0."""
    return FakeClock()


@pytest.fixture
def notifier():
    """In-process change notifier."""
    return LocalChangeNotifier()


@pytest.fixture
def store(notifier):
    """Memory store with a 10-slot yard wired to the notifier."""
    return MemorySlotStore(default_layout(count=10), on_write=notifier.notify)


@pytest.fixture
def plain_store():
    """Memory store without transactions, for the two-write relocation path."""
    return MemorySlotStore(default_layout(count=10), transactional=False)


@pytest.fixture
def prius():
    return Occupant(name="Prius", color="白", car_manager="社員名１")


@pytest.fixture
def hiace():
    return Occupant(name="Hiace", color="黒", status="代車")


@pytest.fixture(scope="session")
def postgrest_credentials():
    """Get PostgREST credentials from environment variables.

    Raises:
        pytest.skip: If credentials are not available
    """
    url = os.getenv("PARKGRID_URL")
    api_key = os.getenv("PARKGRID_API_KEY")

    if not url or not api_key:
        pytest.skip("PARKGRID_URL and PARKGRID_API_KEY environment variables not set")

    return url, api_key
