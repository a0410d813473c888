"""Collaborator interfaces (Ports) - abstraction for network and disk access."""
from abc import ABC, abstractmethod
from typing import Dict, List

from idxwatch.domain.entities import ChartData, NewsItem, Quote, UserConfig


class QuoteProvider(ABC):
    """Interface for quote and chart data."""

    @abstractmethod
    async def get_quotes(self, symbols: List[str]) -> Dict[str, Quote]:
        """Get latest quotes keyed by display symbol.

        An empty symbol list returns an empty dict without a network call.
        Raises FetchError on failure.
        """
        pass

    @abstractmethod
    async def get_chart(self, symbol: str) -> ChartData:
        """Get recent daily closes for one symbol. Raises FetchError."""
        pass


class NewsProvider(ABC):
    """Interface for the headline feed."""

    @abstractmethod
    async def fetch_all(self, urls: List[str]) -> List[NewsItem]:
        """Fetch every feed, newest first.

        Individual feed failures are dropped; FetchError only when all fail.
        """
        pass


class ConfigRepository(ABC):
    """Interface for the persisted user configuration."""

    @abstractmethod
    def load(self) -> UserConfig:
        """Load (and migrate) the configuration. Raises PersistenceError."""
        pass

    @abstractmethod
    def save(self, config: UserConfig) -> None:
        """Write the configuration. Raises PersistenceError."""
        pass
