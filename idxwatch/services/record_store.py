"""Watchlist, portfolio, alert and bookmark CRUD over the persisted config.

Every mutating method changes the in-memory config first and then saves.
A failed save raises PersistenceError but the in-memory change stays, so the
user sees the edit even though a restart may lose it.
"""
import logging
import time
from typing import Callable, List, Optional

from idxwatch.domain.entities import (
    Alert,
    AlertTrigger,
    Bookmark,
    Holding,
    NewsItem,
    Portfolio,
    UserConfig,
    Watchlist,
)
from idxwatch.domain.errors import LastItemError
from idxwatch.domain.interfaces import ConfigRepository
from idxwatch.services import portfolio_calculator

logger = logging.getLogger(__name__)


class RecordStore:
    """Owns the UserConfig and persists it after each change."""

    def __init__(
        self,
        config: UserConfig,
        repository: ConfigRepository,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config
        self._repository = repository
        self._clock = clock

    def save(self) -> None:
        self._repository.save(self.config)

    # Watchlists

    @property
    def watchlist(self) -> Watchlist:
        return self.config.current_watchlist()

    def add_symbol(self, symbol: str) -> bool:
        """Append a symbol to the active watchlist. False if already present."""
        symbol = symbol.strip().upper()
        if not symbol or symbol in self.watchlist.symbols:
            return False
        self.watchlist.symbols.append(symbol)
        self.save()
        return True

    def remove_symbol(self, symbol: str) -> None:
        symbol = symbol.upper()
        self.watchlist.symbols = [s for s in self.watchlist.symbols if s != symbol]
        self.save()

    def add_watchlist(self, name: str) -> None:
        self.config.watchlists.append(Watchlist(name=name))
        self.config.active_watchlist = len(self.config.watchlists) - 1
        self.save()

    def rename_watchlist(self, name: str) -> None:
        self.watchlist.name = name
        self.save()

    def remove_watchlist(self) -> str:
        """Delete the active watchlist and return its name."""
        if len(self.config.watchlists) <= 1:
            raise LastItemError("Cannot remove the last watchlist")
        removed = self.config.watchlists.pop(self.config.active_watchlist)
        if self.config.active_watchlist >= len(self.config.watchlists):
            self.config.active_watchlist = len(self.config.watchlists) - 1
        self.save()
        return removed.name

    def next_watchlist(self) -> None:
        self.config.active_watchlist = (self.config.active_watchlist + 1) % len(
            self.config.watchlists
        )

    def prev_watchlist(self) -> None:
        self.config.active_watchlist = (self.config.active_watchlist - 1) % len(
            self.config.watchlists
        )

    # Portfolios

    @property
    def portfolio(self) -> Portfolio:
        return self.config.current_portfolio()

    def add_holding(self, symbol: str, lots: int, avg_price: float) -> Holding:
        """Add or merge a holding. Raises LotOverflowError before mutating."""
        holding = portfolio_calculator.merge_holding(self.portfolio, symbol, lots, avg_price)
        self.save()
        return holding

    def update_holding(self, symbol: str, lots: int, avg_price: float) -> bool:
        holding = self.portfolio.find(symbol)
        if holding is None:
            return False
        holding.lots = lots
        holding.avg_price = avg_price
        self.save()
        return True

    def remove_holding(self, symbol: str) -> None:
        symbol = symbol.upper()
        self.portfolio.holdings = [h for h in self.portfolio.holdings if h.symbol != symbol]
        self.save()

    def add_portfolio(self, name: str) -> None:
        self.config.portfolios.append(Portfolio(name=name))
        self.config.active_portfolio = len(self.config.portfolios) - 1
        self.save()

    def rename_portfolio(self, name: str) -> None:
        self.portfolio.name = name
        self.save()

    def remove_portfolio(self) -> str:
        if len(self.config.portfolios) <= 1:
            raise LastItemError("Cannot remove the last portfolio")
        removed = self.config.portfolios.pop(self.config.active_portfolio)
        if self.config.active_portfolio >= len(self.config.portfolios):
            self.config.active_portfolio = len(self.config.portfolios) - 1
        self.save()
        return removed.name

    def next_portfolio(self) -> None:
        self.config.active_portfolio = (self.config.active_portfolio + 1) % len(
            self.config.portfolios
        )

    def prev_portfolio(self) -> None:
        self.config.active_portfolio = (self.config.active_portfolio - 1) % len(
            self.config.portfolios
        )

    # Alerts

    def alerts_for_symbol(self, symbol: str) -> List[Alert]:
        return self.config.alerts_for_symbol(symbol)

    def add_alert(self, alert: Alert) -> None:
        self.config.alerts.append(alert)
        self.save()

    def toggle_alert(self, alert_id: str) -> None:
        for alert in self.config.alerts:
            if alert.id == alert_id:
                alert.enabled = not alert.enabled
        self.save()

    def remove_alert(self, alert_id: str) -> None:
        self.config.alerts = [a for a in self.config.alerts if a.id != alert_id]
        self.save()

    def apply_triggers(self, triggered: List[AlertTrigger]) -> None:
        """Stamp every fired alert, then save once."""
        if not triggered:
            return
        stamps = {t.alert_id: t.timestamp for t in triggered}
        for alert in self.config.alerts:
            if alert.id in stamps:
                alert.last_triggered = stamps[alert.id]
        self.save()

    # Bookmarks

    def find_bookmark(self, bookmark_id: str) -> Optional[Bookmark]:
        for bookmark in self.config.bookmarks:
            if bookmark.id == bookmark_id:
                return bookmark
        return None

    def _new_bookmark_id(self) -> str:
        """bm_{epoch_ms}, suffixed when that millisecond is already taken."""
        base = f"bm_{int(self._clock() * 1000)}"
        taken = {b.id for b in self.config.bookmarks}
        candidate, n = base, 1
        while candidate in taken:
            candidate = f"{base}_{n}"
            n += 1
        return candidate

    def add_bookmark(self, bookmark: Bookmark) -> bool:
        """Add unless the same (headline, url) is already saved."""
        if self.config.is_bookmarked(bookmark.headline, bookmark.url):
            return False
        self.config.bookmarks.append(bookmark)
        self.save()
        return True

    def toggle_news_bookmark(self, item: NewsItem) -> bool:
        """Bookmark the article, or un-bookmark it. Returns True if now saved."""
        if self.config.is_bookmarked(item.title, item.url):
            self.config.bookmarks = [
                b for b in self.config.bookmarks if not b.matches(item.title, item.url)
            ]
            self.save()
            return False
        now = int(self._clock())
        bookmark = Bookmark(
            id=self._new_bookmark_id(),
            headline=item.title,
            source=item.publisher,
            url=item.url,
            published_at=item.published_at,
            bookmarked_at=now,
        )
        return self.add_bookmark(bookmark)

    def remove_bookmark(self, bookmark_id: str) -> None:
        bookmark = self.find_bookmark(bookmark_id)
        if bookmark is None:
            return
        self.config.bookmarks.remove(bookmark)
        self.save()

    def set_bookmark_read(self, bookmark_id: str, read: Optional[bool] = None) -> None:
        """Set the read flag, or flip it when read is None."""
        bookmark = self.find_bookmark(bookmark_id)
        if bookmark is None:
            return
        bookmark.read = (not bookmark.read) if read is None else read
        self.save()

    def clear_bookmarks(self) -> None:
        self.config.bookmarks = []
        self.save()
