"""Input modes.

Each mode is a frozen dataclass that carries only the scratch data of its
own wizard step. Leaving a wizard drops the mode object, so nothing entered
in one wizard can leak into the next.
"""
from dataclasses import dataclass
from typing import Callable, ClassVar, Optional

from idxwatch.domain.entities import AlertType


def _symbol_char(ch: str) -> bool:
    return ch.isalnum()


def _digit_char(ch: str) -> bool:
    return ch.isdigit()


def _decimal_char(ch: str) -> bool:
    return ch.isdigit() or ch == "."


def _name_char(ch: str) -> bool:
    return ch.isalnum() or ch in " -_"


def _printable_char(ch: str) -> bool:
    return ch.isprintable()


@dataclass(frozen=True)
class Mode:
    """Base mode. Modes with an allow-list accept typed characters."""

    allow: ClassVar[Optional[Callable[[str], bool]]] = None
    prompt: ClassVar[str] = ""

    @property
    def is_text_entry(self) -> bool:
        return self.allow is not None

    def accepts(self, ch: str) -> bool:
        return self.allow is not None and len(ch) == 1 and self.allow(ch)


@dataclass(frozen=True)
class Normal(Mode):
    pass


@dataclass(frozen=True)
class AddSymbol(Mode):
    allow = staticmethod(_symbol_char)
    prompt = "Add symbol"


@dataclass(frozen=True)
class NewWatchlist(Mode):
    allow = staticmethod(_name_char)
    prompt = "New watchlist name"


@dataclass(frozen=True)
class RenameWatchlist(Mode):
    allow = staticmethod(_name_char)
    prompt = "Rename watchlist"


@dataclass(frozen=True)
class NewPortfolio(Mode):
    allow = staticmethod(_name_char)
    prompt = "New portfolio name"


@dataclass(frozen=True)
class RenamePortfolio(Mode):
    allow = staticmethod(_name_char)
    prompt = "Rename portfolio"


@dataclass(frozen=True)
class Search(Mode):
    allow = staticmethod(_printable_char)
    prompt = "Filter"


@dataclass(frozen=True)
class AddHoldingSymbol(Mode):
    allow = staticmethod(_symbol_char)
    prompt = "Holding symbol"


@dataclass(frozen=True)
class AddHoldingLots(Mode):
    symbol: str = ""
    allow = staticmethod(_digit_char)
    prompt = "Lots"


@dataclass(frozen=True)
class AddHoldingPrice(Mode):
    symbol: str = ""
    lots: int = 0
    allow = staticmethod(_decimal_char)
    prompt = "Average price"


@dataclass(frozen=True)
class EditHoldingLots(Mode):
    symbol: str = ""
    allow = staticmethod(_digit_char)
    prompt = "Lots"


@dataclass(frozen=True)
class EditHoldingPrice(Mode):
    symbol: str = ""
    lots: int = 0
    allow = staticmethod(_decimal_char)
    prompt = "Average price"


@dataclass(frozen=True)
class AlertList(Mode):
    """Alerts of one symbol; the row after the last alert is "Add"."""

    symbol: str = ""
    selected: int = 0


@dataclass(frozen=True)
class AlertPickType(Mode):
    symbol: str = ""
    kind: AlertType = AlertType.ABOVE


@dataclass(frozen=True)
class AlertEnterValue(Mode):
    symbol: str = ""
    kind: AlertType = AlertType.ABOVE
    allow = staticmethod(_decimal_char)
    prompt = "Target"


@dataclass(frozen=True)
class ExportMenu(Mode):
    """Rows: 0 format, 1 scope, 2 export button."""

    selection: int = 0


@dataclass(frozen=True)
class Help(Mode):
    pass


@dataclass(frozen=True)
class StockDetail(Mode):
    symbol: str = ""


@dataclass(frozen=True)
class NewsDetail(Mode):
    scroll: int = 0


@dataclass(frozen=True)
class BookmarkDetail(Mode):
    scroll: int = 0


@dataclass(frozen=True)
class BookmarkClearConfirm(Mode):
    pass


@dataclass(frozen=True)
class PortfolioChart(Mode):
    pass


EXPORT_MENU_ROWS = 3
