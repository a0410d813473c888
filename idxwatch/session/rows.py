"""Row producers for the four list views.

Each producer is a pure function: filter the source rows by the view's
filter text, then order them by its sort column and direction.
"""
from typing import Callable, Dict, List, NamedTuple, Optional, Sequence

from idxwatch.domain.entities import Bookmark, Holding, NewsItem, Portfolio, Quote
from idxwatch.session.view_state import ListViewState

WATCHLIST_COLUMNS = [
    "Symbol", "Name", "Price", "Chg", "Chg%", "Open", "High", "Low", "Volume", "Value",
]
PORTFOLIO_COLUMNS = [
    "Symbol", "Name", "Lots", "Avg", "Last", "Value", "Cost", "P/L", "P/L%",
]
NEWS_COLUMNS = ["Time", "Source", "Headline"]
BOOKMARK_COLUMNS = ["Saved", "Published", "Source", "Headline"]


class WatchlistRow(NamedTuple):
    symbol: str
    quote: Optional[Quote]


class PortfolioRow(NamedTuple):
    holding: Holding
    quote: Optional[Quote]
    value: float
    cost: float
    pl: float
    pl_percent: float

    @property
    def symbol(self) -> str:
        return self.holding.symbol

    @property
    def current_price(self) -> float:
        return self.quote.price if self.quote else 0.0


_WATCHLIST_KEYS: List[Callable[[Quote], object]] = [
    lambda q: q.symbol,
    lambda q: q.short_name,
    lambda q: q.price,
    lambda q: q.change,
    lambda q: q.change_percent,
    lambda q: q.open,
    lambda q: q.high,
    lambda q: q.low,
    lambda q: q.volume,
    lambda q: q.turnover,
]

_PORTFOLIO_KEYS: List[Callable[[PortfolioRow], object]] = [
    lambda r: r.symbol,
    lambda r: r.quote.short_name if r.quote else "",
    lambda r: r.holding.lots,
    lambda r: r.holding.avg_price,
    lambda r: r.current_price,
    lambda r: r.value,
    lambda r: r.cost,
    lambda r: r.pl,
    lambda r: r.pl_percent,
]

_NEWS_KEYS: List[Callable[[NewsItem], object]] = [
    lambda n: n.published_at,
    lambda n: n.publisher,
    lambda n: n.title,
]

_BOOKMARK_KEYS: List[Callable[[Bookmark], object]] = [
    lambda b: b.bookmarked_at,
    lambda b: b.published_at,
    lambda b: b.source,
    lambda b: b.headline,
]


def _matches(needle: str, *fields: Optional[str]) -> bool:
    if not needle:
        return True
    return any(needle in (field or "").upper() for field in fields)


def watchlist_rows(
    symbols: Sequence[str], quotes: Dict[str, Quote], view: ListViewState
) -> List[WatchlistRow]:
    """Watchlist rows; symbols whose quote has not arrived always sort last."""
    rows = [
        WatchlistRow(symbol, quotes.get(symbol))
        for symbol in symbols
        if _matches(view.filter_text, symbol)
    ]
    if view.sort_column is None:
        return rows

    key = _WATCHLIST_KEYS[view.sort_column]
    known = [row for row in rows if row.quote is not None]
    unknown = [row for row in rows if row.quote is None]
    known.sort(key=lambda row: key(row.quote), reverse=view.sort_descending)
    return known + unknown


def portfolio_rows(
    portfolio: Portfolio, quotes: Dict[str, Quote], view: ListViewState
) -> List[PortfolioRow]:
    rows = []
    for holding in portfolio.holdings:
        if not _matches(view.filter_text, holding.symbol):
            continue
        quote = quotes.get(holding.symbol)
        value, cost, pl, pl_percent = holding.pl_metrics(quote.price if quote else 0.0)
        rows.append(PortfolioRow(holding, quote, value, cost, pl, pl_percent))

    if view.sort_column is not None:
        rows.sort(key=_PORTFOLIO_KEYS[view.sort_column], reverse=view.sort_descending)
    return rows


def news_rows(items: Sequence[NewsItem], view: ListViewState) -> List[NewsItem]:
    """News rows, newest first unless a column is chosen."""
    rows = [n for n in items if _matches(view.filter_text, n.title, n.publisher)]
    if view.sort_column is None:
        rows.sort(key=lambda n: n.published_at, reverse=True)
    else:
        rows.sort(key=_NEWS_KEYS[view.sort_column], reverse=view.sort_descending)
    return rows


def bookmark_rows(bookmarks: Sequence[Bookmark], view: ListViewState) -> List[Bookmark]:
    """Bookmark rows, most recently saved first unless a column is chosen."""
    rows = [b for b in bookmarks if _matches(view.filter_text, b.headline, b.source)]
    if view.sort_column is None:
        rows.sort(key=lambda b: b.bookmarked_at, reverse=True)
    else:
        rows.sort(key=_BOOKMARK_KEYS[view.sort_column], reverse=view.sort_descending)
    return rows


def title_contains_ticker(title: str, ticker: str) -> bool:
    """Whole-word, case-insensitive ticker match inside a headline."""
    haystack = title.upper()
    needle = ticker.upper()
    if not needle:
        return False
    start = haystack.find(needle)
    while start != -1:
        end = start + len(needle)
        before_ok = start == 0 or not haystack[start - 1].isalpha()
        after_ok = end == len(haystack) or not haystack[end].isalpha()
        if before_ok and after_ok:
            return True
        start = haystack.find(needle, start + 1)
    return False


def related_news(items: Sequence[NewsItem], ticker: str, limit: int = 8) -> List[NewsItem]:
    """Headlines mentioning the ticker, in feed order, at most `limit`."""
    return [n for n in items if title_contains_ticker(n.title, ticker)][:limit]
