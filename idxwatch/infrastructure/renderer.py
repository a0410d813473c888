"""Pure rendering: SessionSnapshot -> lines of styled text segments.

The renderer never touches the session; the terminal adapter paints what it
returns.
"""
import time
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from idxwatch.domain.entities import AlertType, Bookmark, NewsItem, Quote
from idxwatch.infrastructure import formatters as fmt
from idxwatch.session import modes
from idxwatch.session.rows import (
    BOOKMARK_COLUMNS,
    NEWS_COLUMNS,
    PORTFOLIO_COLUMNS,
    WATCHLIST_COLUMNS,
    PortfolioRow,
    WatchlistRow,
)
from idxwatch.session.state import SessionSnapshot, View

# Styles understood by the terminal adapter
NORMAL = "normal"
HEADER = "header"
TITLE = "title"
UP = "up"
DOWN = "down"
DIM = "dim"
SELECTED = "selected"
WARN = "warn"

Segment = Tuple[str, str]
Line = List[Segment]

# Header, group line, column header on top; summary, status, hint at the bottom
CHROME_LINES = 6

_WATCHLIST_WIDTHS = [8, 20, 10, 8, 8, 10, 10, 10, 9, 9]
_PORTFOLIO_WIDTHS = [8, 18, 8, 10, 10, 10, 10, 10, 8]
_NEWS_WIDTHS = [9, 18, 0]
_BOOKMARK_WIDTHS = [16, 16, 16, 0]

HELP_LINES = [
    "q quit    ? help    / filter    esc clear filter",
    "p cycle view (watchlist/portfolio/news)    tab news/bookmarks",
    "a add    d delete    r refresh    enter details",
    "up/k down/j move    left/h right/l switch list",
    "n new list    R rename list    D delete list / clear bookmarks",
    "s sort column    S sort direction",
    "c allocation chart    e edit holding / export",
    "A alerts for symbol    b bookmark    m read/unread",
]


@dataclass
class Frame:
    lines: List[Line] = field(default_factory=list)
    table_height: int = 0


def _trend(value: float) -> str:
    if value > 0:
        return UP
    if value < 0:
        return DOWN
    return NORMAL


def _cell(text: str, width: int, right: bool = False) -> str:
    if width <= 0:
        return text
    text = fmt.truncate(text, width)
    return text.rjust(width) if right else text.ljust(width)


def _header_line(snapshot: SessionSnapshot, width: int) -> Line:
    line: Line = [(" idxwatch ", TITLE)]
    index = snapshot.index_quote
    if index is not None:
        line.append((f" IHSG {fmt.format_price(index.price)} ", NORMAL))
        line.append((f"{fmt.format_change(index.change)} ({fmt.format_percent(index.change_percent)}) ",
                     _trend(index.change)))
    clock = time.strftime("%H:%M:%S", time.localtime(snapshot.timestamp or time.time()))
    line.append((f" {clock} ", DIM))
    if snapshot.loading or snapshot.news_loading:
        line.append((" Loading... ", WARN))
    return line


def _group_line(snapshot: SessionSnapshot) -> Line:
    line: Line = []
    if snapshot.view is View.WATCHLIST:
        names, active = snapshot.watchlist_names, snapshot.active_watchlist
    elif snapshot.view is View.PORTFOLIO:
        names, active = snapshot.portfolio_names, snapshot.active_portfolio
    else:
        names = ("News", "Bookmarks")
        active = 0 if snapshot.view is View.NEWS else 1
    for i, name in enumerate(names):
        line.append((f" {name} ", SELECTED if i == active else DIM))
    if snapshot.filter_text:
        line.append((f"  filter: {snapshot.filter_text}", WARN))
    return line


def _column_header(snapshot: SessionSnapshot, columns: Sequence[str], widths: Sequence[int]) -> Line:
    cells = []
    for i, (name, w) in enumerate(zip(columns, widths)):
        if snapshot.sort_column == i:
            name = f"{name}{'▼' if snapshot.sort_descending else '▲'}"
        cells.append(_cell(name, w, right=i >= 2 and w > 0 and snapshot.view.needs_quotes))
    return [("  " + " ".join(cells), HEADER)]


def _watchlist_line(snapshot: SessionSnapshot, row: WatchlistRow) -> Line:
    marker = ("*" if row.symbol in snapshot.alert_symbols else " ") + (
        "•" if row.symbol in snapshot.news_symbols else " ")
    q: Optional[Quote] = row.quote
    if q is None:
        return [(marker + _cell(row.symbol, 8) + " Loading...", DIM)]
    cells = [
        _cell(q.symbol, 8),
        _cell(q.short_name, 20),
        _cell(fmt.format_price(q.price), 10, True),
        _cell(fmt.format_change(q.change), 8, True),
        _cell(fmt.format_percent(q.change_percent), 8, True),
        _cell(fmt.format_price(q.open), 10, True),
        _cell(fmt.format_price(q.high), 10, True),
        _cell(fmt.format_price(q.low), 10, True),
        _cell(fmt.format_compact(q.volume), 9, True),
        _cell(fmt.format_compact(q.turnover), 9, True),
    ]
    return [(marker + " ".join(cells), _trend(q.change))]


def _portfolio_line(snapshot: SessionSnapshot, row: PortfolioRow) -> Line:
    marker = ("*" if row.symbol in snapshot.alert_symbols else " ") + (
        "•" if row.symbol in snapshot.news_symbols else " ")
    name = row.quote.short_name if row.quote else ""
    cells = [
        _cell(row.symbol, 8),
        _cell(name, 18),
        _cell(f"{row.holding.lots:,}", 8, True),
        _cell(fmt.format_price(row.holding.avg_price), 10, True),
        _cell(fmt.format_price(row.current_price) if row.quote else "-", 10, True),
        _cell(fmt.format_compact(row.value), 10, True),
        _cell(fmt.format_compact(row.cost), 10, True),
        _cell(fmt.format_pl(row.pl), 10, True),
        _cell(fmt.format_percent(row.pl_percent), 8, True),
    ]
    return [(marker + " ".join(cells), _trend(row.pl))]


def _news_line(snapshot: SessionSnapshot, item: NewsItem, width: int) -> Line:
    saved = "★" if (item.title, item.url) in snapshot.bookmark_keys else " "
    title_width = max(width - 32, 10)
    text = " ".join([
        _cell(fmt.format_relative_time(item.published_at, snapshot.timestamp), 9),
        _cell(item.publisher, 18),
        _cell(item.title, title_width),
    ])
    return [(saved + " " + text, NORMAL)]


def _bookmark_line(snapshot: SessionSnapshot, bookmark: Bookmark, width: int) -> Line:
    title_width = max(width - 56, 10)
    text = " ".join([
        _cell(fmt.format_timestamp(bookmark.bookmarked_at), 16),
        _cell(fmt.format_timestamp(bookmark.published_at), 16),
        _cell(bookmark.source, 16),
        _cell(bookmark.headline, title_width),
    ])
    return [(("  " if bookmark.read else "● ") + text, DIM if bookmark.read else NORMAL)]


def _table(snapshot: SessionSnapshot, width: int, height: int) -> List[Line]:
    view = snapshot.view
    if view is View.WATCHLIST:
        header = _column_header(snapshot, WATCHLIST_COLUMNS, _WATCHLIST_WIDTHS)
    elif view is View.PORTFOLIO:
        header = _column_header(snapshot, PORTFOLIO_COLUMNS, _PORTFOLIO_WIDTHS)
    elif view is View.NEWS:
        header = _column_header(snapshot, NEWS_COLUMNS, _NEWS_WIDTHS)
    else:
        header = _column_header(snapshot, BOOKMARK_COLUMNS, _BOOKMARK_WIDTHS)

    lines = [header]
    visible = snapshot.rows[snapshot.offset:snapshot.offset + height]
    if not snapshot.rows:
        empty = "No headlines yet" if view.is_news else "Nothing here yet, press a to add"
        lines.append([(f"  {empty}", DIM)])
    for i, row in enumerate(visible):
        if view is View.WATCHLIST:
            line = _watchlist_line(snapshot, row)
        elif view is View.PORTFOLIO:
            line = _portfolio_line(snapshot, row)
        elif view is View.NEWS:
            line = _news_line(snapshot, row, width)
        else:
            line = _bookmark_line(snapshot, row, width)
        if snapshot.offset + i == snapshot.selected:
            line = [(text, SELECTED) for text, _ in line]
        lines.append(line)
    return lines


def _summary_line(snapshot: SessionSnapshot) -> Line:
    if snapshot.view is not View.PORTFOLIO:
        return [(f"  {len(snapshot.rows)} rows", DIM)]
    value, cost, pl, pl_percent = snapshot.totals
    return [
        (f"  Value {fmt.format_compact(value)}  Cost {fmt.format_compact(cost)}  ", NORMAL),
        (f"P/L {fmt.format_pl(pl)} ({fmt.format_percent(pl_percent)})", _trend(pl)),
    ]


def _bottom_line(snapshot: SessionSnapshot) -> Line:
    mode = snapshot.mode
    if mode.is_text_entry:
        return [(f" {mode.prompt}: {snapshot.input_buffer}_", WARN)]
    return [(" q quit  ? help  / filter  p view  a add  d delete  s sort  enter details", DIM)]


# Modals


def _stock_detail(snapshot: SessionSnapshot, symbol: str, width: int) -> List[Line]:
    q = snapshot.quotes.get(symbol)
    lines: List[Line] = [[(f" {symbol} ", TITLE)]]
    if q is None:
        lines.append([("  Quote not loaded yet", DIM)])
    else:
        lines.append([(f"  {q.long_name or q.short_name}", NORMAL)])
        lines.append([(f"  {fmt.format_price(q.price)}  {fmt.format_change(q.change)} "
                       f"({fmt.format_percent(q.change_percent)})", _trend(q.change))])
        lines.append([(f"  Open {fmt.format_price(q.open)}  High {fmt.format_price(q.high)}  "
                       f"Low {fmt.format_price(q.low)}  Prev {fmt.format_price(q.prev_close)}", NORMAL)])
        if q.sector or q.industry:
            lines.append([(f"  {q.sector or '-'} / {q.industry or '-'}", DIM)])
        cap = fmt.format_compact(q.market_cap) if q.market_cap else "-"
        lines.append([(f"  Mkt cap {cap}  P/E {fmt.format_optional(q.trailing_pe)}  "
                       f"Div {fmt.format_optional(q.dividend_yield)}  Beta {fmt.format_optional(q.beta)}", NORMAL)])
        position = q.week52_position()
        if position is not None:
            lines.append([(f"  52w {fmt.format_price(q.fifty_two_week_low)} "
                           f"{fmt.bar(position / 100, 20)} {fmt.format_price(q.fifty_two_week_high)} "
                           f"({position:.0f}%)", NORMAL)])
    if snapshot.chart_loading:
        lines.append([("  Loading chart...", WARN)])
    elif snapshot.detail_chart is not None:
        chart = snapshot.detail_chart
        lines.append([(f"  3M {fmt.sparkline(chart.closes, max(width - 30, 10))} "
                       f"H {fmt.format_price(chart.high)} L {fmt.format_price(chart.low)}", NORMAL)])
    else:
        lines.append([("  Chart unavailable", DIM)])
    lines.append([(" Related news", HEADER)])
    if not snapshot.detail_news:
        lines.append([("  No recent headlines", DIM)])
    for item in snapshot.detail_news:
        lines.append([(f"  {fmt.format_relative_time(item.published_at, snapshot.timestamp):>9} "
                       f"{fmt.truncate(item.title, max(width - 14, 10))}", NORMAL)])
    return lines


def _article(title: str, source: str, published: int, url: Optional[str],
             summary: Optional[str], scroll: int, width: int) -> List[Line]:
    lines: List[Line] = [[(f" {fmt.truncate(title, width - 2)} ", TITLE)],
                         [(f"  {source}  {fmt.format_timestamp(published)}", DIM)]]
    if url:
        lines.append([(f"  {fmt.truncate(url, width - 4)}", DIM)])
    body = summary or ""
    wrap = max(width - 4, 10)
    words, current, wrapped = body.split(), "", []
    for word in words:
        if current and len(current) + 1 + len(word) > wrap:
            wrapped.append(current)
            current = word
        else:
            current = f"{current} {word}".strip()
    if current:
        wrapped.append(current)
    lines.extend([[(f"  {text}", NORMAL)] for text in wrapped[scroll:]])
    return lines


def _alert_list(snapshot: SessionSnapshot, mode) -> List[Line]:
    lines: List[Line] = [[(f" Alerts for {mode.symbol} ", TITLE)]]
    selected = getattr(mode, "selected", None)
    for i, alert in enumerate(snapshot.modal_alerts):
        state = "on " if alert.enabled else "off"
        style = SELECTED if i == selected else (NORMAL if alert.enabled else DIM)
        lines.append([(f"  [{state}] {alert.describe()}", style)])
    add_style = SELECTED if selected == len(snapshot.modal_alerts) else NORMAL
    lines.append([("  + Add alert", add_style)])
    if isinstance(mode, (modes.AlertPickType, modes.AlertEnterValue)):
        lines.append([(" Alert type", HEADER)])
        for kind in AlertType:
            lines.append([(f"  {kind.label}", SELECTED if kind is mode.kind else NORMAL)])
    lines.append([("  enter toggle/add  d delete  esc close", DIM)])
    return lines


def _export_menu(snapshot: SessionSnapshot, mode: modes.ExportMenu) -> List[Line]:
    rows = [
        f"Format: {snapshot.export_format.value.upper()}",
        f"Scope:  {snapshot.export_scope.value.title()}",
        "[ Export ]",
    ]
    lines: List[Line] = [[(" Export ", TITLE)]]
    for i, text in enumerate(rows):
        lines.append([(f"  {text}", SELECTED if i == mode.selection else NORMAL)])
    lines.append([("  left/right change  enter export  esc cancel", DIM)])
    return lines


def _allocation(snapshot: SessionSnapshot, width: int) -> List[Line]:
    lines: List[Line] = [[(" Portfolio allocation ", TITLE)]]
    bar_width = max(width - 40, 10)
    for symbol, value, pct in snapshot.allocation:
        lines.append([(f"  {symbol:<8} {fmt.bar(pct / 100, bar_width)} {pct:5.1f}% "
                       f"{fmt.format_compact(value)}", NORMAL)])
    if not snapshot.allocation:
        lines.append([("  No holdings", DIM)])
    return lines


def _modal(snapshot: SessionSnapshot, width: int) -> Optional[List[Line]]:
    mode = snapshot.mode
    if isinstance(mode, modes.Help):
        return [[(" Keys ", TITLE)]] + [[(f"  {text}", NORMAL)] for text in HELP_LINES]
    if isinstance(mode, modes.StockDetail):
        return _stock_detail(snapshot, mode.symbol, width)
    if isinstance(mode, (modes.AlertList, modes.AlertPickType, modes.AlertEnterValue)):
        return _alert_list(snapshot, mode)
    if isinstance(mode, modes.ExportMenu):
        return _export_menu(snapshot, mode)
    if isinstance(mode, modes.PortfolioChart):
        return _allocation(snapshot, width)
    if isinstance(mode, modes.BookmarkClearConfirm):
        return [[(" Clear all bookmarks? ", TITLE)], [("  y confirm  n cancel", NORMAL)]]
    row = snapshot.selected_row
    if isinstance(mode, modes.NewsDetail) and isinstance(row, NewsItem):
        return _article(row.title, row.publisher, row.published_at, row.url, row.summary,
                        mode.scroll, width)
    if isinstance(mode, modes.BookmarkDetail) and isinstance(row, Bookmark):
        return _article(row.headline, row.source, row.published_at, row.url, None,
                        mode.scroll, width)
    return None


def render(snapshot: SessionSnapshot, width: int, height: int) -> Frame:
    """Lay out one frame for a width x height terminal."""
    table_height = max(height - CHROME_LINES, 1)
    body = _modal(snapshot, width)
    if body is None:
        body = _table(snapshot, width, table_height)
    body = body[: table_height + 1]
    body += [[]] * (table_height + 1 - len(body))

    status: Line = [(f" {snapshot.status}", WARN)] if snapshot.status else []
    lines = [_header_line(snapshot, width), _group_line(snapshot)] + body + [
        _summary_line(snapshot),
        status,
        _bottom_line(snapshot),
    ]
    return Frame(lines=lines[:height], table_height=table_height)
