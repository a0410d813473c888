"""The session model: everything on screen and why.

One Session is built at startup and passed explicitly to the controller and
the scheduler. Only the scheduler's loop touches it.
"""
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Callable, Dict, List, Mapping, Optional, Tuple, Union

from idxwatch.domain.entities import (
    INDEX_SYMBOL,
    Alert,
    AlertTrigger,
    Bookmark,
    ChartData,
    NewsItem,
    Quote,
    UserConfig,
)
from idxwatch.domain.errors import PersistenceError
from idxwatch.services import portfolio_calculator
from idxwatch.services.alert_service import AlertService
from idxwatch.services.record_store import RecordStore
from idxwatch.session import rows as row_producers
from idxwatch.session.export import ExportFormat, ExportScope
from idxwatch.session.modes import Mode, Normal
from idxwatch.session.rows import PortfolioRow, WatchlistRow
from idxwatch.session.view_state import ListViewState

logger = logging.getLogger(__name__)

RECENT_NEWS_SECS = 86_400

Row = Union[WatchlistRow, PortfolioRow, NewsItem, Bookmark]


class View(str, Enum):
    WATCHLIST = "watchlist"
    PORTFOLIO = "portfolio"
    NEWS = "news"
    BOOKMARKS = "bookmarks"

    @property
    def needs_quotes(self) -> bool:
        return self in (View.WATCHLIST, View.PORTFOLIO)

    @property
    def is_news(self) -> bool:
        return self in (View.NEWS, View.BOOKMARKS)


SORT_COLUMNS = {
    View.WATCHLIST: len(row_producers.WATCHLIST_COLUMNS),
    View.PORTFOLIO: len(row_producers.PORTFOLIO_COLUMNS),
    View.NEWS: len(row_producers.NEWS_COLUMNS),
    View.BOOKMARKS: len(row_producers.BOOKMARK_COLUMNS),
}


def _detached(row: Row) -> Row:
    """Copy the mutable records a row holds so the snapshot cannot alias them."""
    if isinstance(row, PortfolioRow):
        return row._replace(holding=row.holding.model_copy())
    if isinstance(row, Bookmark):
        return row.model_copy()
    return row


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only copy of what the renderer needs for one frame."""

    view: View
    mode: Mode
    rows: Tuple[Row, ...]
    selected: int
    offset: int
    sort_column: Optional[int]
    sort_descending: bool
    filter_text: str
    input_buffer: str
    status: Optional[str]
    loading: bool
    news_loading: bool
    chart_loading: bool
    watchlist_names: Tuple[str, ...]
    active_watchlist: int
    portfolio_names: Tuple[str, ...]
    active_portfolio: int
    quotes: Mapping[str, Quote]
    index_quote: Optional[Quote]
    totals: Tuple[float, float, float, float]
    allocation: Tuple[Tuple[str, float, float], ...]
    detail_chart: Optional[ChartData]
    detail_news: Tuple[NewsItem, ...]
    modal_alerts: Tuple[Alert, ...]
    alert_symbols: frozenset
    news_symbols: frozenset
    bookmark_keys: frozenset
    export_format: ExportFormat
    export_scope: ExportScope
    refresh_interval_secs: int
    timestamp: float = field(default=0.0)

    @property
    def selected_row(self) -> Optional[Row]:
        if 0 <= self.selected < len(self.rows):
            return self.rows[self.selected]
        return None


class Session:
    """Mutable session state shared by the controller and the scheduler."""

    def __init__(
        self,
        records: RecordStore,
        alert_service: Optional[AlertService] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.records = records
        self.alert_service = alert_service or AlertService(clock=clock)
        self._clock = clock

        self.quotes: Dict[str, Quote] = {}
        self.view = View.WATCHLIST
        self.views: Dict[View, ListViewState] = {
            View.WATCHLIST: ListViewState(),
            View.PORTFOLIO: ListViewState(),
            View.NEWS: ListViewState(),
            View.BOOKMARKS: ListViewState(sort_descending=True),
        }
        self.mode: Mode = Normal()
        self.input_buffer = ""
        self.status: Optional[str] = None
        self.viewport_height = 20

        self.loading = False
        self.news_loading = False
        self.chart_loading = False
        self.news_items: List[NewsItem] = []
        self.news_last_refresh: Optional[float] = None

        self.detail_chart: Optional[ChartData] = None
        self.detail_news: List[NewsItem] = []

        self.export_format = ExportFormat.CSV
        self.export_scope = ExportScope.WATCHLIST
        self.last_triggers: List[AlertTrigger] = []

    @property
    def config(self) -> UserConfig:
        return self.records.config

    @property
    def view_state(self) -> ListViewState:
        return self.views[self.view]

    def now(self) -> float:
        return self._clock()

    def set_mode(self, mode: Mode) -> None:
        """Enter a mode with an empty input buffer."""
        self.mode = mode
        self.input_buffer = ""

    def report_save_error(self, error: PersistenceError) -> None:
        logger.error(f"Save failed: {error}")
        self.status = f"Save error: {error}"

    # Rows and selection

    def rows_for(self, view: View) -> List[Row]:
        state = self.views[view]
        if view is View.WATCHLIST:
            return row_producers.watchlist_rows(
                self.config.current_watchlist().symbols, self.quotes, state
            )
        if view is View.PORTFOLIO:
            return row_producers.portfolio_rows(
                self.config.current_portfolio(), self.quotes, state
            )
        if view is View.NEWS:
            return row_producers.news_rows(self.news_items, state)
        return row_producers.bookmark_rows(self.config.bookmarks, state)

    def current_rows(self) -> List[Row]:
        return self.rows_for(self.view)

    def selected_row(self) -> Optional[Row]:
        rows = self.current_rows()
        index = self.view_state.selected
        return rows[index] if 0 <= index < len(rows) else None

    def selected_symbol(self) -> Optional[str]:
        if not self.view.needs_quotes:
            return None
        row = self.selected_row()
        return row.symbol if row is not None else None

    def selected_news(self) -> Optional[NewsItem]:
        return self.selected_row() if self.view is View.NEWS else None

    def selected_bookmark(self) -> Optional[Bookmark]:
        return self.selected_row() if self.view is View.BOOKMARKS else None

    def resize(self, viewport_height: int) -> bool:
        """Record the table height; True if the active view had to scroll."""
        self.viewport_height = viewport_height
        state = self.view_state
        offset = state.offset
        state.ensure_visible(viewport_height)
        return state.offset != offset

    def move_up(self) -> None:
        self.view_state.move_up()

    def move_down(self) -> None:
        self.view_state.move_down(len(self.current_rows()), self.viewport_height)

    def clamp_selection(self) -> None:
        """Re-clamp every view after its row set may have shrunk."""
        for view, state in self.views.items():
            state.clamp(len(self.rows_for(view)))

    def cycle_sort(self) -> None:
        self.view_state.cycle_sort(SORT_COLUMNS[self.view])

    def toggle_sort_direction(self) -> None:
        self.view_state.toggle_direction()

    # View switching

    def switch_view(self, view: View) -> None:
        entering_quotes = view.needs_quotes and view is not self.view
        self.view = view
        self.view_state.clear_filter()
        if entering_quotes:
            self.quotes = {}

    def cycle_view(self) -> None:
        """Watchlist -> portfolio -> news -> watchlist."""
        if self.view is View.WATCHLIST:
            self.switch_view(View.PORTFOLIO)
        elif self.view is View.PORTFOLIO:
            self.switch_view(View.NEWS)
        else:
            self.switch_view(View.WATCHLIST)

    def toggle_news_tab(self) -> None:
        self.switch_view(View.BOOKMARKS if self.view is View.NEWS else View.NEWS)

    # Quote refresh

    def refresh_symbols(self) -> Optional[List[str]]:
        """Symbols the active view needs, plus the composite index.

        None when the active view shows no quotes.
        """
        if self.view is View.WATCHLIST:
            symbols = list(self.config.current_watchlist().symbols)
        elif self.view is View.PORTFOLIO:
            symbols = self.config.portfolio_symbols()
        else:
            return None
        if INDEX_SYMBOL not in symbols:
            symbols.append(INDEX_SYMBOL)
        return symbols

    def prepare_quote_refresh(self) -> Optional[List[str]]:
        symbols = self.refresh_symbols()
        if symbols is not None:
            self.loading = True
        return symbols

    def apply_quotes(self, quotes: Dict[str, Quote]) -> List[AlertTrigger]:
        """Swap the quote cache and run the alert engine over it."""
        self.quotes = dict(quotes)
        self.status = None
        self.clamp_selection()

        triggered = self.alert_service.evaluate(
            self.config.alerts, self.quotes, int(self.now())
        )
        self.last_triggers = triggered
        if triggered:
            self.status = " | ".join(t.message for t in triggered)
            try:
                self.records.apply_triggers(triggered)
            except PersistenceError as e:
                self.report_save_error(e)
        return triggered

    def fail_quote_refresh(self, error: Exception) -> None:
        logger.error(f"Quote refresh failed: {error}")
        self.status = f"Error: {error}"

    # News refresh

    def prepare_news_refresh(self) -> List[str]:
        self.news_loading = True
        return list(self.config.news_sources)

    def apply_news(self, items: List[NewsItem], refreshed_at: float) -> None:
        self.news_items = list(items)
        self.news_last_refresh = refreshed_at
        self.status = None
        self.clamp_selection()

    def fail_news_refresh(self, error: Exception) -> None:
        logger.error(f"News refresh failed: {error}")
        self.status = f"News error: {error}"

    def has_recent_news(self, symbol: str) -> bool:
        cutoff = self.now() - RECENT_NEWS_SECS
        return any(
            item.published_at >= cutoff and row_producers.title_contains_ticker(item.title, symbol)
            for item in self.news_items
        )

    # Stock detail

    def begin_detail(self, symbol: str) -> None:
        self.detail_chart = None
        self.detail_news = row_producers.related_news(self.news_items, symbol)
        self.chart_loading = True

    def close_detail(self) -> None:
        self.detail_chart = None
        self.detail_news = []
        self.chart_loading = False

    # Snapshot

    def snapshot(self) -> SessionSnapshot:
        state = self.view_state
        rows = self.current_rows()
        portfolio = self.config.current_portfolio()
        modal_symbol = getattr(self.mode, "symbol", None)
        symbols = {r.symbol for r in rows} if self.view.needs_quotes else set()
        return SessionSnapshot(
            view=self.view,
            mode=self.mode,
            rows=tuple(_detached(r) for r in rows),
            selected=state.selected,
            offset=state.offset,
            sort_column=state.sort_column,
            sort_descending=state.sort_descending,
            filter_text=state.filter_text,
            input_buffer=self.input_buffer,
            status=self.status,
            loading=self.loading,
            news_loading=self.news_loading,
            chart_loading=self.chart_loading,
            watchlist_names=tuple(w.name for w in self.config.watchlists),
            active_watchlist=self.config.active_watchlist,
            portfolio_names=tuple(p.name for p in self.config.portfolios),
            active_portfolio=self.config.active_portfolio,
            quotes=MappingProxyType(dict(self.quotes)),
            index_quote=self.quotes.get(INDEX_SYMBOL),
            totals=portfolio_calculator.portfolio_totals(portfolio, self.quotes),
            allocation=tuple(portfolio_calculator.portfolio_allocation(portfolio, self.quotes)),
            detail_chart=self.detail_chart,
            detail_news=tuple(self.detail_news),
            modal_alerts=(
                tuple(a.model_copy() for a in self.config.alerts_for_symbol(modal_symbol))
                if modal_symbol else ()
            ),
            alert_symbols=frozenset(s for s in symbols if self.config.has_active_alerts(s)),
            news_symbols=frozenset(s for s in symbols if self.has_recent_news(s)),
            bookmark_keys=frozenset((b.headline, b.url) for b in self.config.bookmarks),
            export_format=self.export_format,
            export_scope=self.export_scope,
            refresh_interval_secs=self.config.refresh_interval_secs,
            timestamp=self.now(),
        )
