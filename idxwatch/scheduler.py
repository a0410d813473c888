"""The refresh loop: draw, poll for a key, refresh on two timers."""
import asyncio
import logging
import time
from typing import Callable, Optional, Protocol

from idxwatch.config import app_config
from idxwatch.domain.errors import FetchError
from idxwatch.domain.interfaces import NewsProvider, QuoteProvider
from idxwatch.session.controller import handle_key
from idxwatch.session.state import Session, SessionSnapshot, View

logger = logging.getLogger(__name__)


class Terminal(Protocol):
    def draw(self, snapshot: SessionSnapshot) -> int:
        """Render one frame and return the visible table height."""

    def poll_key(self, timeout: float) -> Optional[str]:
        """Wait up to `timeout` seconds for a normalized key name."""


class RefreshScheduler:
    """Interleaves quote/news refreshes with keyboard polling.

    Every fetch is awaited before the next key is read, so the session has
    a single writer. Loading flags are raised before a fetch and always
    cleared afterwards, whatever the outcome.
    """

    def __init__(
        self,
        session: Session,
        terminal: Terminal,
        quote_provider: QuoteProvider,
        news_provider: NewsProvider,
        news_interval: float = app_config.NEWS_REFRESH_SECS,
        poll_timeout: float = app_config.POLL_TIMEOUT_MS / 1000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.session = session
        self._terminal = terminal
        self._quote_provider = quote_provider
        self._news_provider = news_provider
        self.news_interval = news_interval
        self.poll_timeout = poll_timeout
        self._clock = clock
        self.last_quote_refresh: Optional[float] = None
        self._quotes_in_flight = False
        self.is_running = False

    @property
    def refresh_interval(self) -> float:
        return self.session.config.refresh_interval_secs

    def quote_refresh_due(self) -> bool:
        if not self.session.view.needs_quotes or self._quotes_in_flight:
            return False
        if self.last_quote_refresh is None:
            return True
        return self._clock() - self.last_quote_refresh >= self.refresh_interval

    def news_refresh_due(self) -> bool:
        session = self.session
        if session.view is not View.NEWS or session.news_loading:
            return False
        if session.news_last_refresh is None:
            return True
        return self._clock() - session.news_last_refresh >= self.news_interval

    def draw(self) -> None:
        height = self._terminal.draw(self.session.snapshot())
        # A shrunken terminal can leave the selection below the window
        if self.session.resize(height):
            self._terminal.draw(self.session.snapshot())

    async def refresh_quotes(self) -> None:
        """Fetch quotes for the active view and swap the cache."""
        if self._quotes_in_flight:
            return
        symbols = self.session.prepare_quote_refresh()
        if symbols is None:
            return
        self._quotes_in_flight = True
        try:
            self.draw()
            quotes = await self._quote_provider.get_quotes(symbols)
            triggered = self.session.apply_quotes(quotes)
            await self.session.alert_service.notify(triggered)
            logger.debug(f"Refreshed {len(quotes)} quotes")
        except FetchError as e:
            self.session.fail_quote_refresh(e)
        finally:
            self.session.loading = False
            self._quotes_in_flight = False
            self.last_quote_refresh = self._clock()

    async def refresh_news(self) -> None:
        """Fetch every feed and replace the headline list."""
        if self.session.news_loading:
            return
        urls = self.session.prepare_news_refresh()
        try:
            self.draw()
            items = await self._news_provider.fetch_all(urls)
            self.session.apply_news(items, self._clock())
            logger.info(f"Loaded {len(items)} headlines from {len(urls)} feeds")
        except FetchError as e:
            self.session.fail_news_refresh(e)
        finally:
            self.session.news_loading = False

    async def open_detail(self, symbol: str) -> None:
        """Fill the stock detail view: related headlines, then the chart."""
        if not self.session.news_items:
            await self.refresh_news()
        self.session.begin_detail(symbol)
        try:
            self.draw()
            self.session.detail_chart = await self._quote_provider.get_chart(symbol)
        except FetchError as e:
            logger.info(f"Chart unavailable for {symbol}: {e}")
        finally:
            self.session.chart_loading = False

    async def tick(self) -> bool:
        """Run one loop iteration. Returns False when the user quits."""
        if self.quote_refresh_due():
            await self.refresh_quotes()
        if self.news_refresh_due():
            await self.refresh_news()

        self.draw()
        key = self._terminal.poll_key(self.poll_timeout)
        if key is None:
            return True

        outcome = handle_key(self.session, key)
        if outcome.quit:
            return False
        if outcome.open_detail:
            await self.open_detail(outcome.open_detail)
        if outcome.refresh_news:
            await self.refresh_news()
        if outcome.refresh_quotes:
            await self.refresh_quotes()
        return True

    async def run(self) -> None:
        """Main loop."""
        self.is_running = True
        logger.info("Refresh scheduler started")

        # Headlines feed the watchlist news markers, so load them up front
        await self.refresh_news()

        while self.is_running:
            try:
                if not await self.tick():
                    self.is_running = False
            except Exception as e:
                logger.exception(f"Error in refresh loop: {e}")
                self.session.status = f"Error: {e}"
                await asyncio.sleep(self.poll_timeout)

        logger.info("Refresh scheduler stopped")

    def stop(self) -> None:
        """Stop after the current iteration."""
        self.is_running = False
