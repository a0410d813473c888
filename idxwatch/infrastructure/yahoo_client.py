"""Yahoo Finance quote and chart client."""
import asyncio
import logging
import re
from typing import Any, Callable, Dict, List, Optional

import httpx
import yfinance as yf
from pydantic import ValidationError

from idxwatch.config import app_config
from idxwatch.domain.entities import ChartData, Quote
from idxwatch.domain.errors import AuthError, FetchError
from idxwatch.domain.interfaces import QuoteProvider

logger = logging.getLogger(__name__)

YAHOO_BASE_URL = "https://finance.yahoo.com"
YAHOO_QUOTE_URL = "https://query1.finance.yahoo.com/v7/finance/quote"
EXCHANGE_SUFFIX = ".JK"
CHART_PERIOD = "3mo"

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept-Language": "en-US,en;q=0.5",
}

_CRUMB_PATTERNS = [
    re.compile(r'"crumb":"([^"]+)"'),
    re.compile(r'"CrumbStore":\{"crumb":"([^"]+)"'),
]


def to_yahoo_symbol(code: str) -> str:
    """BBCA -> BBCA.JK. Index symbols (^JKSE) pass through."""
    code = code.upper()
    if code.startswith("^") or code.endswith(EXCHANGE_SUFFIX):
        return code
    return f"{code}{EXCHANGE_SUFFIX}"


def to_display_symbol(symbol: str) -> str:
    if symbol.endswith(EXCHANGE_SUFFIX):
        return symbol[: -len(EXCHANGE_SUFFIX)]
    return symbol


def extract_crumb(html: str) -> str:
    for pattern in _CRUMB_PATTERNS:
        match = pattern.search(html)
        if match:
            return match.group(1)
    raise AuthError("Could not extract crumb from Yahoo Finance")


def parse_quote(result: Dict[str, Any]) -> Quote:
    """Map one quoteResponse result onto a Quote."""
    return Quote(
        symbol=to_display_symbol(result.get("symbol", "")),
        short_name=result.get("shortName") or "N/A",
        price=result.get("regularMarketPrice") or 0.0,
        change=result.get("regularMarketChange") or 0.0,
        change_percent=result.get("regularMarketChangePercent") or 0.0,
        open=result.get("regularMarketOpen") or 0.0,
        high=result.get("regularMarketDayHigh") or 0.0,
        low=result.get("regularMarketDayLow") or 0.0,
        volume=int(result.get("regularMarketVolume") or 0),
        prev_close=result.get("regularMarketPreviousClose") or 0.0,
        long_name=result.get("longName"),
        sector=result.get("sector"),
        industry=result.get("industry"),
        market_cap=result.get("marketCap"),
        trailing_pe=result.get("trailingPE"),
        dividend_yield=result.get("dividendYield"),
        fifty_two_week_high=result.get("fiftyTwoWeekHigh"),
        fifty_two_week_low=result.get("fiftyTwoWeekLow"),
        beta=result.get("beta"),
        average_volume=result.get("averageVolume"),
    )


def _load_history(symbol: str, period: str) -> List[float]:
    ticker: yf.Ticker = yf.Ticker(symbol)
    hist = ticker.history(period=period)
    closes: List[float] = []
    for _, row in hist.iterrows():
        close = float(row["Close"])
        if close == close:  # skip NaN
            closes.append(close)
    return closes


class YahooClient(QuoteProvider):
    """Quotes from the v7 quote endpoint, charts through yfinance.

    The quote endpoint needs a crumb tied to the session cookies. The crumb
    is fetched lazily and refreshed once when the endpoint answers 401.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        history_loader: Callable[[str, str], List[float]] = _load_history,
    ):
        self._client = client or httpx.AsyncClient(
            timeout=app_config.HTTP_TIMEOUT,
            headers=BROWSER_HEADERS,
            follow_redirects=True,
        )
        self._history_loader = history_loader
        self.crumb: Optional[str] = None

    async def close(self) -> None:
        await self._client.aclose()

    async def _fetch_crumb(self) -> str:
        response = await self._client.get(
            YAHOO_BASE_URL,
            headers={"Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"},
        )
        self.crumb = extract_crumb(response.text)
        logger.debug("Fetched new Yahoo crumb")
        return self.crumb

    async def _request_quotes(self, symbols_param: str, crumb: str) -> httpx.Response:
        return await self._client.get(
            YAHOO_QUOTE_URL,
            params={"symbols": symbols_param, "crumb": crumb},
            headers={"Accept": "application/json", "Referer": f"{YAHOO_BASE_URL}/"},
        )

    async def get_quotes(self, symbols: List[str]) -> Dict[str, Quote]:
        """Fetch quotes keyed by display symbol (without the .JK suffix)."""
        if not symbols:
            return {}
        symbols_param = ",".join(to_yahoo_symbol(s) for s in symbols)
        try:
            crumb = self.crumb or await self._fetch_crumb()
            response = await self._request_quotes(symbols_param, crumb)
            if response.status_code == 401:
                logger.info("Yahoo crumb rejected, re-authenticating")
                self.crumb = None
                response = await self._request_quotes(symbols_param, await self._fetch_crumb())
                if response.status_code == 401:
                    raise AuthError("Yahoo API rejected the refreshed crumb")
            response.raise_for_status()
            return self.parse_response(response.json())
        except httpx.HTTPStatusError as e:
            raise FetchError(f"Yahoo API error: {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise FetchError(f"Yahoo request failed: {e}") from e
        except (ValidationError, ValueError, TypeError, AttributeError) as e:
            raise FetchError(f"Malformed Yahoo response: {e}") from e

    @staticmethod
    def parse_response(data: Dict[str, Any]) -> Dict[str, Quote]:
        if not isinstance(data, dict):
            raise FetchError(f"Malformed Yahoo response: expected an object, got {type(data).__name__}")
        body = data.get("quoteResponse") or {}
        if body.get("error"):
            raise FetchError(f"Yahoo API error: {body['error']}")
        quotes: Dict[str, Quote] = {}
        for result in body.get("result") or []:
            quote = parse_quote(result)
            quotes[quote.symbol] = quote
        return quotes

    async def get_chart(self, symbol: str) -> ChartData:
        """Daily closes over the last three months."""
        yahoo_symbol = to_yahoo_symbol(symbol)
        try:
            closes = await asyncio.to_thread(self._history_loader, yahoo_symbol, CHART_PERIOD)
        except Exception as e:
            raise FetchError(f"Chart fetch failed for {symbol}: {e}") from e
        if not closes:
            raise FetchError(f"No price data in chart for {symbol}")
        return ChartData(closes=closes, high=max(closes), low=min(closes))
