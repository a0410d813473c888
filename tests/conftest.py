"""Pytest configuration and fixtures."""
import pytest
from unittest.mock import MagicMock

from idxwatch.domain.entities import Portfolio, Quote, UserConfig, Watchlist
from idxwatch.domain.interfaces import ConfigRepository
from idxwatch.services.alert_service import AlertService
from idxwatch.services.record_store import RecordStore
from idxwatch.session.state import Session

NOW = 1_700_000_000


class FakeClock:
    """Manually advanced clock, callable like time.time."""

    def __init__(self, now: float = NOW):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_quote(symbol: str, price: float = 1000.0, **fields) -> Quote:
    """Build a quote with sensible defaults."""
    fields.setdefault("short_name", f"{symbol} Tbk")
    return Quote(symbol=symbol, price=price, **fields)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def user_config():
    """Config with one four-symbol watchlist and an empty portfolio."""
    return UserConfig(
        watchlists=[Watchlist(name="Main", symbols=["BBCA", "BBRI", "TLKM", "ASII"])],
        portfolios=[Portfolio(name="Default")],
    )


@pytest.fixture
def mock_repository():
    """Mock configuration repository."""
    repository = MagicMock(spec=ConfigRepository)
    repository.save = MagicMock(return_value=None)
    return repository


@pytest.fixture
def records(user_config, mock_repository, clock):
    return RecordStore(user_config, mock_repository, clock=clock)


@pytest.fixture
def session(records, clock):
    return Session(records, AlertService(clock=clock), clock=clock)
