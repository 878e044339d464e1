"""
Pytest Configuration and Fixtures
"""

import os
import sys
import pytest
import tempfile
from datetime import datetime, timedelta, timezone

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(__file__)), 'src'))

# Set test environment
os.environ["DATABASE_URL"] = "memory://"
os.environ["ADMIN_API_KEY"] = "test-admin-key"
os.environ["CASHIER_API_KEY"] = "test-cashier-key"

from cueledger.core.credits import CreditLedger
from cueledger.core.models import StationType
from cueledger.core.payments import PaymentLog
from cueledger.core.sessions import SessionLedger
from cueledger.core.stations import StationDirectory
from cueledger.persistence.memory import InMemoryStore

T0 = datetime(2025, 3, 14, 18, 0, tzinfo=timezone.utc)


class FixedClock:
    """Clock the tests can move forward by hand."""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def stations(store):
    return StationDirectory(store)


@pytest.fixture
def payment_log(store, clock):
    return PaymentLog(store, clock=clock)


@pytest.fixture
def credits(store, payment_log, clock):
    return CreditLedger(store, payment_log, clock=clock)


@pytest.fixture
def ledger(store, stations, credits, payment_log, clock):
    return SessionLedger(
        store,
        stations=stations,
        credits=credits,
        payment_log=payment_log,
        clock=clock,
    )


@pytest.fixture
def billiard_table(stations):
    """A billiard table charging 100 per hour."""
    return stations.add_station("Billiard Table 1", StationType.BILLIARD, 100)


@pytest.fixture
def ps4_station(stations):
    return stations.add_station("PS4 Station 1", "ps4", 60)


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield os.path.join(tmpdir, "ledger.db")
