"""CSV and JSON export of watchlist and portfolio rows."""
import csv
import io
import json
import logging
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from idxwatch.config import app_config
from idxwatch.domain.entities import Portfolio, Quote
from idxwatch.session.rows import WatchlistRow

logger = logging.getLogger(__name__)

WATCHLIST_HEADER = ["Symbol", "Name", "Price", "Change", "Change%", "Open", "High", "Low", "Volume"]
PORTFOLIO_HEADER = ["Symbol", "Lots", "Shares", "AvgPrice", "CurrentPrice", "Value", "Cost", "PL", "PL%"]


class ExportFormat(str, Enum):
    CSV = "csv"
    JSON = "json"

    def toggle(self) -> "ExportFormat":
        return ExportFormat.JSON if self is ExportFormat.CSV else ExportFormat.CSV


class ExportScope(str, Enum):
    WATCHLIST = "watchlist"
    PORTFOLIO = "portfolio"

    def toggle(self) -> "ExportScope":
        return ExportScope.PORTFOLIO if self is ExportScope.WATCHLIST else ExportScope.WATCHLIST


def watchlist_records(rows: Sequence[WatchlistRow]) -> List[Dict]:
    records = []
    for symbol, quote in rows:
        if quote is None:
            records.append({"symbol": symbol, "name": None, "price": None})
            continue
        records.append({
            "symbol": quote.symbol,
            "name": quote.short_name,
            "price": quote.price,
            "change": quote.change,
            "change_percent": quote.change_percent,
            "open": quote.open,
            "high": quote.high,
            "low": quote.low,
            "volume": quote.volume,
        })
    return records


def portfolio_records(portfolio: Portfolio, quotes: Dict[str, Quote]) -> List[Dict]:
    records = []
    for holding in portfolio.holdings:
        quote = quotes.get(holding.symbol)
        price = quote.price if quote else 0.0
        value, cost, pl, pl_percent = holding.pl_metrics(price)
        records.append({
            "symbol": holding.symbol,
            "lots": holding.lots,
            "shares": holding.shares(),
            "avg_price": holding.avg_price,
            "current_price": price,
            "value": value,
            "cost": cost,
            "pl": pl,
            "pl_percent": pl_percent,
        })
    return records


def _fmt(value) -> str:
    return f"{value:.2f}" if isinstance(value, float) else str(value)


def to_csv(scope: ExportScope, records: List[Dict]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    if scope is ExportScope.WATCHLIST:
        writer.writerow(WATCHLIST_HEADER)
        for r in records:
            if r["price"] is None:
                writer.writerow([r["symbol"], "Loading..."] + [""] * 7)
            else:
                writer.writerow([
                    r["symbol"], r["name"], _fmt(r["price"]), _fmt(r["change"]),
                    _fmt(r["change_percent"]), _fmt(r["open"]), _fmt(r["high"]),
                    _fmt(r["low"]), r["volume"],
                ])
    else:
        writer.writerow(PORTFOLIO_HEADER)
        for r in records:
            writer.writerow([
                r["symbol"], r["lots"], r["shares"], _fmt(r["avg_price"]),
                _fmt(r["current_price"]), _fmt(r["value"]), _fmt(r["cost"]),
                _fmt(r["pl"]), _fmt(r["pl_percent"]),
            ])
    return buffer.getvalue()


def to_json(records: List[Dict]) -> str:
    return json.dumps(records, indent=2)


def export_dir(override: Optional[str] = None) -> Path:
    """EXPORT_DIR if configured, else ~/Downloads when it exists, else home."""
    configured = override or app_config.EXPORT_DIR
    if configured:
        return Path(configured)
    home = Path.home()
    downloads = home / "Downloads"
    return downloads if downloads.is_dir() else home


def export_filename(scope: ExportScope, fmt: ExportFormat, when: datetime) -> str:
    return f"idx_{scope.value}_{when.strftime('%Y%m%d_%H%M%S')}.{fmt.value}"


def write_export(
    scope: ExportScope,
    fmt: ExportFormat,
    records: List[Dict],
    directory: Optional[Path] = None,
    when: Optional[datetime] = None,
) -> Path:
    """Write the records and return the file path. Raises OSError."""
    directory = directory or export_dir()
    path = directory / export_filename(scope, fmt, when or datetime.now())
    content = to_csv(scope, records) if fmt is ExportFormat.CSV else to_json(records)
    path.write_text(content, encoding="utf-8")
    logger.info(f"Exported {len(records)} {scope.value} rows to {path}")
    return path
