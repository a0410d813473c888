"""Portfolio math: lot-weighted merges, P/L and allocation."""
from typing import Dict, List, Optional, Tuple

from idxwatch.domain.entities import LOT_SIZE, MAX_LOTS, Holding, Portfolio, Quote
from idxwatch.domain.errors import LotOverflowError


def merge_holding(portfolio: Portfolio, symbol: str, lots: int, avg_price: float) -> Holding:
    """Add lots to a portfolio, merging into an existing holding.

    The merged average is weighted by lots:
    (old_cost + lots * 100 * price) / ((old_lots + lots) * 100).

    Raises:
        LotOverflowError: if the summed lots exceed MAX_LOTS. The existing
            holding is left untouched.
    """
    symbol = symbol.upper()
    existing = portfolio.find(symbol)
    if existing is None:
        if lots > MAX_LOTS:
            raise LotOverflowError(f"{lots} lots exceeds maximum ({MAX_LOTS:,})")
        holding = Holding(symbol=symbol, lots=lots, avg_price=avg_price)
        portfolio.holdings.append(holding)
        return holding

    total_lots = existing.lots + lots
    if total_lots > MAX_LOTS:
        raise LotOverflowError(f"Total lots would exceed maximum ({MAX_LOTS:,})")
    total_cost = existing.cost_basis() + lots * LOT_SIZE * avg_price
    existing.avg_price = total_cost / (total_lots * LOT_SIZE)
    existing.lots = total_lots
    return existing


def pl_metrics(holding: Holding, current_price: float) -> Tuple[float, float, float, float]:
    """(value, cost, pl, pl_percent); pl_percent is 0 when cost is 0."""
    return holding.pl_metrics(current_price)


def current_price(quotes: Dict[str, Quote], symbol: str) -> float:
    quote: Optional[Quote] = quotes.get(symbol)
    return quote.price if quote else 0.0


def portfolio_allocation(
    portfolio: Portfolio, quotes: Dict[str, Quote]
) -> List[Tuple[str, float, float]]:
    """Return (symbol, value, percent_of_total) sorted by value descending."""
    items = [
        (h.symbol, current_price(quotes, h.symbol) * h.shares())
        for h in portfolio.holdings
    ]
    items.sort(key=lambda item: item[1], reverse=True)
    total = sum(value for _, value in items)
    return [
        (symbol, value, (value / total) * 100 if total > 0 else 0.0)
        for symbol, value in items
    ]


def portfolio_totals(
    portfolio: Portfolio, quotes: Dict[str, Quote]
) -> Tuple[float, float, float, float]:
    """Summed (value, cost, pl, pl_percent) over every holding."""
    value = cost = 0.0
    for holding in portfolio.holdings:
        v, c, _, _ = holding.pl_metrics(current_price(quotes, holding.symbol))
        value += v
        cost += c
    pl = value - cost
    return value, cost, pl, (pl / cost) * 100 if cost > 0 else 0.0
