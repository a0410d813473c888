"""Keystroke dispatch for every input mode.

`handle_key` is the only entry point. Keys arrive already normalized by the
terminal adapter: single printable characters, or one of the names
"up", "down", "left", "right", "enter", "esc", "backspace", "tab".

Store mutations happen after the mode transition, so a PersistenceError
raised by the store leaves the session in its new mode with the edit applied
and a "Save error" status.
"""
import logging
import math
from dataclasses import dataclass, replace
from typing import Callable, Dict, Optional, Type

from idxwatch.domain.entities import MAX_LOTS, Alert
from idxwatch.domain.errors import LastItemError, LotOverflowError, PersistenceError
from idxwatch.session import export
from idxwatch.session.modes import (
    EXPORT_MENU_ROWS,
    AddHoldingLots,
    AddHoldingPrice,
    AddHoldingSymbol,
    AddSymbol,
    AlertEnterValue,
    AlertList,
    AlertPickType,
    BookmarkClearConfirm,
    BookmarkDetail,
    EditHoldingLots,
    EditHoldingPrice,
    ExportMenu,
    Help,
    Mode,
    NewPortfolio,
    NewsDetail,
    NewWatchlist,
    Normal,
    PortfolioChart,
    RenamePortfolio,
    RenameWatchlist,
    Search,
    StockDetail,
)
from idxwatch.session.rows import watchlist_rows
from idxwatch.session.state import Session, View
from idxwatch.session.view_state import ListViewState

logger = logging.getLogger(__name__)

UP = ("up", "k")
DOWN = ("down", "j")
LEFT = ("left", "h")
RIGHT = ("right", "l")


@dataclass
class Outcome:
    """What the scheduler must do after a keystroke."""

    quit: bool = False
    refresh_quotes: bool = False
    refresh_news: bool = False
    open_detail: Optional[str] = None


def handle_key(session: Session, key: str) -> Outcome:
    """Apply one keystroke to the session."""
    outcome = Outcome()
    mode = session.mode
    handler = _MODE_HANDLERS.get(type(mode))
    try:
        if handler is not None:
            handler(session, mode, key, outcome)
        elif mode.is_text_entry:
            _handle_text_entry(session, mode, key, outcome)
    except PersistenceError as e:
        session.report_save_error(e)
    return outcome


# Parsing helpers


def _parse_lots(text: str) -> Optional[int]:
    try:
        lots = int(text.strip())
    except ValueError:
        return None
    return lots if lots <= MAX_LOTS else None


def _parse_float(text: str) -> Optional[float]:
    """Float value or None when unparsable. Non-finite values become 0."""
    try:
        value = float(text.strip())
    except ValueError:
        return None
    return value if math.isfinite(value) else 0.0


def _reject(session: Session, message: str) -> None:
    """Keep the current mode, clear the offending input."""
    session.status = message
    session.input_buffer = ""


# Normal mode


def _handle_normal(session: Session, mode: Normal, key: str, outcome: Outcome) -> None:
    view = session.view

    if key == "q":
        outcome.quit = True
    elif key == "?":
        session.set_mode(Help())
    elif key == "/":
        session.set_mode(Search())
    elif key == "esc":
        session.view_state.clear_filter()
    elif key == "p":
        session.cycle_view()
        if session.view.needs_quotes:
            outcome.refresh_quotes = True
        elif session.news_last_refresh is None and not session.news_loading:
            outcome.refresh_news = True
    elif key == "tab":
        if view.is_news:
            session.toggle_news_tab()
    elif key == "a":
        if view is View.WATCHLIST:
            session.set_mode(AddSymbol())
        elif view is View.PORTFOLIO:
            session.set_mode(AddHoldingSymbol())
    elif key == "d":
        _delete_selected(session, outcome)
    elif key == "r":
        if view is View.NEWS:
            outcome.refresh_news = True
        elif view.needs_quotes:
            outcome.refresh_quotes = True
    elif key in UP:
        session.move_up()
    elif key in DOWN:
        session.move_down()
    elif key in LEFT or key in RIGHT:
        _switch_group(session, forward=key in RIGHT, outcome=outcome)
    elif key == "n":
        if view is View.WATCHLIST:
            session.set_mode(NewWatchlist())
        elif view is View.PORTFOLIO:
            session.set_mode(NewPortfolio())
    elif key == "R":
        if view is View.WATCHLIST:
            session.set_mode(RenameWatchlist())
            session.input_buffer = session.config.current_watchlist().name
        elif view is View.PORTFOLIO:
            session.set_mode(RenamePortfolio())
            session.input_buffer = session.config.current_portfolio().name
    elif key == "D":
        _delete_group(session, outcome)
    elif key == "enter":
        _open_selected(session, outcome)
    elif key == "s":
        session.cycle_sort()
    elif key == "S":
        session.toggle_sort_direction()
    elif key == "c":
        if view is View.PORTFOLIO:
            session.set_mode(PortfolioChart())
    elif key == "e":
        _start_edit_or_export(session)
    elif key == "A":
        _open_alerts(session)
    elif key == "b":
        item = session.selected_news()
        if item is not None:
            _toggle_bookmark(session, item)
    elif key == "m":
        bookmark = session.selected_bookmark()
        if bookmark is not None:
            session.records.set_bookmark_read(bookmark.id)


def _delete_selected(session: Session, outcome: Outcome) -> None:
    row = session.selected_row()
    if row is None:
        return
    if session.view is View.WATCHLIST:
        outcome.refresh_quotes = True
        session.status = f"Removed {row.symbol}"
        try:
            session.records.remove_symbol(row.symbol)
        finally:
            session.clamp_selection()
    elif session.view is View.PORTFOLIO:
        outcome.refresh_quotes = True
        session.status = f"Removed {row.symbol}"
        try:
            session.records.remove_holding(row.symbol)
        finally:
            session.clamp_selection()
    elif session.view is View.BOOKMARKS:
        session.status = "Bookmark removed"
        try:
            session.records.remove_bookmark(row.id)
        finally:
            session.clamp_selection()


def _switch_group(session: Session, forward: bool, outcome: Outcome) -> None:
    records = session.records
    if session.view is View.WATCHLIST:
        step = records.next_watchlist if forward else records.prev_watchlist
    elif session.view is View.PORTFOLIO:
        step = records.next_portfolio if forward else records.prev_portfolio
    else:
        return
    step()
    session.view_state.reset_position()
    outcome.refresh_quotes = True


def _delete_group(session: Session, outcome: Outcome) -> None:
    if session.view is View.BOOKMARKS:
        if session.config.bookmarks:
            session.set_mode(BookmarkClearConfirm())
        return
    if not session.view.needs_quotes:
        return
    watchlist = session.view is View.WATCHLIST
    try:
        if watchlist:
            name = session.records.remove_watchlist()
        else:
            name = session.records.remove_portfolio()
    except LastItemError as e:
        session.status = str(e)
        return
    finally:
        session.clamp_selection()
    session.view_state.reset_position()
    session.status = f"Deleted {'watchlist' if watchlist else 'portfolio'} '{name}'"
    outcome.refresh_quotes = True


def _open_selected(session: Session, outcome: Outcome) -> None:
    if session.view.needs_quotes:
        symbol = session.selected_symbol()
        if symbol is not None:
            session.set_mode(StockDetail(symbol=symbol))
            outcome.open_detail = symbol
    elif session.view is View.NEWS:
        if session.selected_news() is not None:
            session.set_mode(NewsDetail())
    else:
        bookmark = session.selected_bookmark()
        if bookmark is not None:
            session.set_mode(BookmarkDetail())
            session.records.set_bookmark_read(bookmark.id, True)


def _start_edit_or_export(session: Session) -> None:
    if session.view is View.PORTFOLIO:
        symbol = session.selected_symbol()
        holding = session.config.current_portfolio().find(symbol) if symbol else None
        if holding is None:
            session.status = "No symbol selected"
            return
        session.set_mode(EditHoldingLots(symbol=holding.symbol))
        session.input_buffer = str(holding.lots)
    elif session.view is View.WATCHLIST:
        session.export_scope = export.ExportScope.WATCHLIST
        session.set_mode(ExportMenu())


def _open_alerts(session: Session) -> None:
    if not session.view.needs_quotes:
        return
    symbol = session.selected_symbol()
    if symbol is None:
        session.status = "No symbol selected"
        return
    session.set_mode(AlertList(symbol=symbol))


def _toggle_bookmark(session: Session, item) -> None:
    saved = not session.config.is_bookmarked(item.title, item.url)
    session.status = "Article bookmarked" if saved else "Bookmark removed"
    session.records.toggle_news_bookmark(item)


# Text entry modes


def _handle_text_entry(session: Session, mode: Mode, key: str, outcome: Outcome) -> None:
    if key == "esc":
        if isinstance(mode, Search):
            session.view_state.clear_filter()
        session.set_mode(Normal())
    elif key == "backspace":
        session.input_buffer = session.input_buffer[:-1]
    elif key == "enter":
        _CONFIRM_HANDLERS[type(mode)](session, mode, outcome)
    elif mode.accepts(key):
        session.input_buffer += key


def _confirm_add_symbol(session: Session, mode: AddSymbol, outcome: Outcome) -> None:
    symbol = session.input_buffer.strip().upper()
    if not symbol:
        _reject(session, "Symbol cannot be empty")
        return
    session.set_mode(Normal())
    outcome.refresh_quotes = True
    if symbol in session.config.current_watchlist().symbols:
        session.status = f"{symbol} already in watchlist"
        return
    session.status = f"Added {symbol}"
    session.records.add_symbol(symbol)


def _confirm_name(session: Session) -> Optional[str]:
    name = session.input_buffer.strip()
    if not name:
        _reject(session, "Name cannot be empty")
        return None
    return name


def _confirm_new_watchlist(session: Session, mode: NewWatchlist, outcome: Outcome) -> None:
    name = _confirm_name(session)
    if name is None:
        return
    session.set_mode(Normal())
    session.status = f"Created watchlist '{name}'"
    outcome.refresh_quotes = True
    session.view_state.reset_position()
    session.records.add_watchlist(name)


def _confirm_rename_watchlist(session: Session, mode: RenameWatchlist, outcome: Outcome) -> None:
    name = _confirm_name(session)
    if name is None:
        return
    old = session.config.current_watchlist().name
    session.set_mode(Normal())
    session.status = f"Renamed '{old}' to '{name}'"
    session.records.rename_watchlist(name)


def _confirm_new_portfolio(session: Session, mode: NewPortfolio, outcome: Outcome) -> None:
    name = _confirm_name(session)
    if name is None:
        return
    session.set_mode(Normal())
    session.status = f"Created portfolio '{name}'"
    outcome.refresh_quotes = True
    session.view_state.reset_position()
    session.records.add_portfolio(name)


def _confirm_rename_portfolio(session: Session, mode: RenamePortfolio, outcome: Outcome) -> None:
    name = _confirm_name(session)
    if name is None:
        return
    old = session.config.current_portfolio().name
    session.set_mode(Normal())
    session.status = f"Renamed '{old}' to '{name}'"
    session.records.rename_portfolio(name)


def _confirm_search(session: Session, mode: Search, outcome: Outcome) -> None:
    text = session.input_buffer.strip()
    if text:
        session.view_state.set_filter(text)
    else:
        session.view_state.clear_filter()
    session.set_mode(Normal())


def _confirm_holding_symbol(session: Session, mode: AddHoldingSymbol, outcome: Outcome) -> None:
    symbol = session.input_buffer.strip().upper()
    if not symbol:
        _reject(session, "Symbol cannot be empty")
        return
    session.set_mode(AddHoldingLots(symbol=symbol))


def _validated_lots(session: Session) -> Optional[int]:
    lots = _parse_lots(session.input_buffer)
    if lots is None:
        _reject(session, "Invalid number for lots")
        return None
    if lots <= 0:
        _reject(session, "Lots must be greater than 0")
        return None
    return lots


def _validated_price(session: Session) -> Optional[float]:
    price = _parse_float(session.input_buffer)
    if price is None:
        _reject(session, "Invalid number for price")
        return None
    if price <= 0:
        _reject(session, "Price must be greater than 0")
        return None
    return price


def _confirm_holding_lots(session: Session, mode: AddHoldingLots, outcome: Outcome) -> None:
    lots = _validated_lots(session)
    if lots is not None:
        session.set_mode(AddHoldingPrice(symbol=mode.symbol, lots=lots))


def _confirm_holding_price(session: Session, mode: AddHoldingPrice, outcome: Outcome) -> None:
    price = _validated_price(session)
    if price is None:
        return
    session.set_mode(Normal())
    try:
        session.records.add_holding(mode.symbol, mode.lots, price)
    except LotOverflowError:
        session.status = f"Total lots would exceed maximum ({MAX_LOTS:,})"
        return
    finally:
        outcome.refresh_quotes = True
    session.status = f"Added {mode.lots} lots of {mode.symbol} @ {price:g}"


def _confirm_edit_lots(session: Session, mode: EditHoldingLots, outcome: Outcome) -> None:
    lots = _validated_lots(session)
    if lots is None:
        return
    holding = session.config.current_portfolio().find(mode.symbol)
    session.set_mode(EditHoldingPrice(symbol=mode.symbol, lots=lots))
    if holding is not None:
        session.input_buffer = f"{holding.avg_price:g}"


def _confirm_edit_price(session: Session, mode: EditHoldingPrice, outcome: Outcome) -> None:
    price = _validated_price(session)
    if price is None:
        return
    session.set_mode(Normal())
    outcome.refresh_quotes = True
    session.status = f"Updated {mode.symbol}"
    if not session.records.update_holding(mode.symbol, mode.lots, price):
        session.status = f"{mode.symbol} is no longer in the portfolio"


def _confirm_alert_value(session: Session, mode: AlertEnterValue, outcome: Outcome) -> None:
    value = _parse_float(session.input_buffer)
    if value is None:
        _reject(session, "Invalid number")
        return
    if value <= 0:
        _reject(session, "Value must be > 0")
        return
    new_index = len(session.config.alerts_for_symbol(mode.symbol))
    session.set_mode(AlertList(symbol=mode.symbol, selected=new_index))
    session.status = f"Alert added for {mode.symbol}"
    session.records.add_alert(Alert.new(mode.symbol, mode.kind, value))


_CONFIRM_HANDLERS: Dict[Type[Mode], Callable] = {
    AddSymbol: _confirm_add_symbol,
    NewWatchlist: _confirm_new_watchlist,
    RenameWatchlist: _confirm_rename_watchlist,
    NewPortfolio: _confirm_new_portfolio,
    RenamePortfolio: _confirm_rename_portfolio,
    Search: _confirm_search,
    AddHoldingSymbol: _confirm_holding_symbol,
    AddHoldingLots: _confirm_holding_lots,
    AddHoldingPrice: _confirm_holding_price,
    EditHoldingLots: _confirm_edit_lots,
    EditHoldingPrice: _confirm_edit_price,
    AlertEnterValue: _confirm_alert_value,
}


# Menus and modals


def _handle_alert_list(session: Session, mode: AlertList, key: str, outcome: Outcome) -> None:
    alerts = session.config.alerts_for_symbol(mode.symbol)
    count = len(alerts)
    if key == "esc":
        session.set_mode(Normal())
    elif key in UP:
        session.mode = replace(mode, selected=max(mode.selected - 1, 0))
    elif key in DOWN:
        session.mode = replace(mode, selected=min(mode.selected + 1, count))
    elif key == "enter":
        if mode.selected >= count:
            session.set_mode(AlertPickType(symbol=mode.symbol))
        else:
            session.records.toggle_alert(alerts[mode.selected].id)
    elif key == "d" and mode.selected < count:
        remaining = count - 1
        session.mode = replace(mode, selected=min(mode.selected, max(remaining - 1, 0)))
        session.status = "Alert deleted"
        session.records.remove_alert(alerts[mode.selected].id)


def _handle_alert_pick(session: Session, mode: AlertPickType, key: str, outcome: Outcome) -> None:
    if key == "esc":
        session.set_mode(Normal())
    elif key in UP:
        session.mode = replace(mode, kind=mode.kind.prev())
    elif key in DOWN:
        session.mode = replace(mode, kind=mode.kind.next())
    elif key == "enter":
        session.set_mode(AlertEnterValue(symbol=mode.symbol, kind=mode.kind))


def _handle_export_menu(session: Session, mode: ExportMenu, key: str, outcome: Outcome) -> None:
    if key == "esc":
        session.set_mode(Normal())
    elif key in UP:
        session.mode = replace(mode, selection=max(mode.selection - 1, 0))
    elif key in DOWN:
        session.mode = replace(mode, selection=min(mode.selection + 1, EXPORT_MENU_ROWS - 1))
    elif key in LEFT or key in RIGHT:
        if mode.selection == 0:
            session.export_format = session.export_format.toggle()
        elif mode.selection == 1:
            session.export_scope = session.export_scope.toggle()
    elif key == "enter" and mode.selection == EXPORT_MENU_ROWS - 1:
        session.set_mode(Normal())
        _perform_export(session)


def _perform_export(session: Session) -> None:
    if session.export_scope is export.ExportScope.WATCHLIST:
        rows = watchlist_rows(
            session.config.current_watchlist().symbols, session.quotes, ListViewState()
        )
        records = export.watchlist_records(rows)
    else:
        records = export.portfolio_records(session.config.current_portfolio(), session.quotes)
    try:
        path = export.write_export(session.export_scope, session.export_format, records)
    except OSError as e:
        logger.error(f"Export failed: {e}")
        session.status = f"Export failed: {e}"
        return
    session.status = f"Exported to {path}"


def _handle_help(session: Session, mode: Help, key: str, outcome: Outcome) -> None:
    if key in ("esc", "enter", "?"):
        session.set_mode(Normal())


def _handle_stock_detail(session: Session, mode: StockDetail, key: str, outcome: Outcome) -> None:
    if key in ("esc", "enter"):
        session.close_detail()
        session.set_mode(Normal())


def _handle_news_detail(session: Session, mode: NewsDetail, key: str, outcome: Outcome) -> None:
    if key in ("esc", "enter"):
        session.set_mode(Normal())
    elif key in UP:
        session.mode = replace(mode, scroll=max(mode.scroll - 1, 0))
    elif key in DOWN:
        session.mode = replace(mode, scroll=mode.scroll + 1)
    elif key == "b":
        item = session.selected_news()
        if item is not None:
            _toggle_bookmark(session, item)


def _handle_bookmark_detail(
    session: Session, mode: BookmarkDetail, key: str, outcome: Outcome
) -> None:
    if key in ("esc", "enter"):
        session.set_mode(Normal())
    elif key in UP:
        session.mode = replace(mode, scroll=max(mode.scroll - 1, 0))
    elif key in DOWN:
        session.mode = replace(mode, scroll=mode.scroll + 1)
    elif key == "m":
        bookmark = session.selected_bookmark()
        if bookmark is not None:
            session.records.set_bookmark_read(bookmark.id)


def _handle_clear_confirm(
    session: Session, mode: BookmarkClearConfirm, key: str, outcome: Outcome
) -> None:
    if key in ("y", "Y", "enter"):
        session.set_mode(Normal())
        session.views[View.BOOKMARKS].reset_position()
        session.status = "All bookmarks cleared"
        session.records.clear_bookmarks()
    elif key in ("n", "N", "esc"):
        session.set_mode(Normal())


def _handle_portfolio_chart(
    session: Session, mode: PortfolioChart, key: str, outcome: Outcome
) -> None:
    if key in ("esc", "enter", "c"):
        session.set_mode(Normal())


_MODE_HANDLERS: Dict[Type[Mode], Callable] = {
    Normal: _handle_normal,
    AlertList: _handle_alert_list,
    AlertPickType: _handle_alert_pick,
    ExportMenu: _handle_export_menu,
    Help: _handle_help,
    StockDetail: _handle_stock_detail,
    NewsDetail: _handle_news_detail,
    BookmarkDetail: _handle_bookmark_detail,
    BookmarkClearConfirm: _handle_clear_confirm,
    PortfolioChart: _handle_portfolio_chart,
}
