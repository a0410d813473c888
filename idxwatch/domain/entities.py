"""Domain entities - core business objects."""
import time
from enum import Enum
from typing import List, Optional, Tuple
from pydantic import BaseModel, Field

LOT_SIZE = 100
MAX_LOTS = 2**32 - 1
DEFAULT_ALERT_COOLDOWN = 300
INDEX_SYMBOL = "^JKSE"

DEFAULT_NEWS_SOURCES = [
    "https://www.cnbcindonesia.com/market/rss",
    "https://www.cnbcindonesia.com/news/rss",
    "https://www.idxchannel.com/rss",
    "https://rss.tempo.co/bisnis",
]


class Quote(BaseModel):
    """Latest quote for one symbol. Replaced on refresh, never patched."""
    symbol: str
    short_name: str = "N/A"
    price: float = 0.0
    change: float = 0.0
    change_percent: float = 0.0
    open: float = 0.0
    high: float = 0.0
    low: float = 0.0
    volume: int = 0
    prev_close: float = 0.0
    long_name: Optional[str] = None
    sector: Optional[str] = None
    industry: Optional[str] = None
    market_cap: Optional[int] = None
    trailing_pe: Optional[float] = None
    dividend_yield: Optional[float] = None
    fifty_two_week_high: Optional[float] = None
    fifty_two_week_low: Optional[float] = None
    beta: Optional[float] = None
    average_volume: Optional[int] = None

    class Config:
        frozen = True

    @property
    def turnover(self) -> float:
        return self.price * self.volume

    def week52_position(self) -> Optional[float]:
        """Percent position of price inside the 52-week range.

        None unless both bounds are present and high > low.
        """
        high, low = self.fifty_two_week_high, self.fifty_two_week_low
        if high is None or low is None or high <= low:
            return None
        return (self.price - low) / (high - low) * 100


class ChartData(BaseModel):
    """Daily closes for the detail sparkline."""
    closes: List[float]
    high: float
    low: float

    class Config:
        frozen = True


class NewsItem(BaseModel):
    """A headline from one of the RSS feeds."""
    title: str
    publisher: str = "Unknown"
    url: Optional[str] = None
    published_at: int = 0
    summary: Optional[str] = None

    class Config:
        frozen = True


class Watchlist(BaseModel):
    """Named, ordered list of ticker symbols."""
    name: str
    symbols: List[str] = Field(default_factory=list)


class Holding(BaseModel):
    """A position in lots (1 lot = 100 shares)."""
    symbol: str
    lots: int = Field(ge=0, le=MAX_LOTS)
    avg_price: float

    def shares(self) -> int:
        return self.lots * LOT_SIZE

    def cost_basis(self) -> float:
        return self.shares() * self.avg_price

    def pl_metrics(self, current_price: float) -> Tuple[float, float, float, float]:
        """Return (value, cost, pl, pl_percent) at the given market price."""
        value = current_price * self.shares()
        cost = self.cost_basis()
        pl = value - cost
        pl_percent = (pl / cost) * 100 if cost > 0 else 0.0
        return value, cost, pl, pl_percent


class Portfolio(BaseModel):
    """Named group of holdings, unique by symbol."""
    name: str
    holdings: List[Holding] = Field(default_factory=list)

    def find(self, symbol: str) -> Optional[Holding]:
        for holding in self.holdings:
            if holding.symbol == symbol:
                return holding
        return None


class AlertType(str, Enum):
    """Alert trigger kinds, in wizard order."""
    ABOVE = "Above"
    BELOW = "Below"
    PERCENT_GAIN = "PercentGain"
    PERCENT_LOSS = "PercentLoss"

    @property
    def label(self) -> str:
        return _ALERT_LABELS[self]

    def next(self) -> "AlertType":
        members = list(AlertType)
        return members[(members.index(self) + 1) % len(members)]

    def prev(self) -> "AlertType":
        members = list(AlertType)
        return members[(members.index(self) - 1) % len(members)]


_ALERT_LABELS = {
    AlertType.ABOVE: "Price above",
    AlertType.BELOW: "Price below",
    AlertType.PERCENT_GAIN: "Gain % above",
    AlertType.PERCENT_LOSS: "Loss % above",
}


class Alert(BaseModel):
    """Price alert scoped to one symbol."""
    id: str
    symbol: str
    alert_type: AlertType
    target_value: float
    enabled: bool = True
    last_triggered: Optional[int] = None
    cooldown_seconds: int = DEFAULT_ALERT_COOLDOWN

    @classmethod
    def new(cls, symbol: str, alert_type: AlertType, target_value: float) -> "Alert":
        symbol = symbol.upper()
        return cls(
            id=f"alert_{int(time.time() * 1000)}_{symbol}",
            symbol=symbol,
            alert_type=alert_type,
            target_value=target_value,
        )

    def describe(self) -> str:
        if self.alert_type in (AlertType.ABOVE, AlertType.BELOW):
            return f"{self.alert_type.label} {self.target_value:,.0f}"
        return f"{self.alert_type.label} {self.target_value:.2f}%"


class AlertTrigger(BaseModel):
    """One alert firing, produced by an evaluation pass."""
    alert_id: str
    symbol: str
    alert_type: AlertType
    price: float
    change_percent: float
    timestamp: int
    message: str


class Bookmark(BaseModel):
    """A saved news article. Identity is (headline, url)."""
    id: str
    headline: str
    source: str
    url: Optional[str] = None
    published_at: int = 0
    bookmarked_at: int = 0
    read: bool = False

    def matches(self, headline: str, url: Optional[str]) -> bool:
        return self.headline == headline and self.url == url


def _default_watchlists() -> List[Watchlist]:
    return [
        Watchlist(name="Banking", symbols=["BBCA", "BBRI", "BMRI", "BBNI"]),
        Watchlist(name="Tech", symbols=["TLKM", "GOTO", "BUKA"]),
        Watchlist(name="Mining", symbols=["ADRO", "ANTM", "INCO", "PTBA"]),
    ]


def _default_portfolios() -> List[Portfolio]:
    return [Portfolio(name="Default")]


class UserConfig(BaseModel):
    """Everything persisted between sessions."""
    watchlists: List[Watchlist] = Field(default_factory=_default_watchlists)
    active_watchlist: int = 0
    refresh_interval_secs: int = 1
    portfolios: List[Portfolio] = Field(default_factory=_default_portfolios)
    active_portfolio: int = 0
    news_sources: List[str] = Field(default_factory=lambda: list(DEFAULT_NEWS_SOURCES))
    alerts: List[Alert] = Field(default_factory=list)
    bookmarks: List[Bookmark] = Field(default_factory=list)

    def current_watchlist(self) -> Watchlist:
        return self.watchlists[self.active_watchlist]

    def current_portfolio(self) -> Portfolio:
        return self.portfolios[self.active_portfolio]

    def portfolio_symbols(self) -> List[str]:
        return [h.symbol for h in self.current_portfolio().holdings]

    def alerts_for_symbol(self, symbol: str) -> List[Alert]:
        return [a for a in self.alerts if a.symbol == symbol]

    def has_active_alerts(self, symbol: str) -> bool:
        return any(a.enabled for a in self.alerts if a.symbol == symbol)

    def is_bookmarked(self, headline: str, url: Optional[str]) -> bool:
        return any(b.matches(headline, url) for b in self.bookmarks)
