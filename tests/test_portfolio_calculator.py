"""Tests for the portfolio calculator."""
import pytest

from idxwatch.domain.entities import MAX_LOTS, Holding, Portfolio
from idxwatch.domain.errors import LotOverflowError
from idxwatch.services import portfolio_calculator
from conftest import make_quote


def test_merge_weighted_average():
    """100 lots @ 8000 then 100 lots @ 9000 gives 200 lots @ 8500."""
    portfolio = Portfolio(name="Default")
    portfolio_calculator.merge_holding(portfolio, "BBCA", 100, 8000)
    portfolio_calculator.merge_holding(portfolio, "BBCA", 100, 9000)

    assert len(portfolio.holdings) == 1
    holding = portfolio.holdings[0]
    assert holding.lots == 200
    assert holding.avg_price == pytest.approx(8500)


def test_merge_is_order_independent():
    """Final average does not depend on call order."""
    first = Portfolio(name="A")
    portfolio_calculator.merge_holding(first, "BBRI", 30, 4000)
    portfolio_calculator.merge_holding(first, "BBRI", 70, 5000)

    second = Portfolio(name="B")
    portfolio_calculator.merge_holding(second, "BBRI", 70, 5000)
    portfolio_calculator.merge_holding(second, "BBRI", 30, 4000)

    assert first.holdings[0].lots == second.holdings[0].lots == 100
    assert first.holdings[0].avg_price == pytest.approx(second.holdings[0].avg_price)


def test_merge_uppercases_symbol():
    portfolio = Portfolio(name="Default")
    holding = portfolio_calculator.merge_holding(portfolio, "tlkm", 1, 3000)
    assert holding.symbol == "TLKM"
    assert portfolio.find("TLKM") is holding


def test_merge_overflow_leaves_holding_untouched():
    """Summed lots above the u32 maximum are rejected with no partial update."""
    portfolio = Portfolio(name="Default", holdings=[
        Holding(symbol="BBCA", lots=MAX_LOTS - 5, avg_price=8000),
    ])

    with pytest.raises(LotOverflowError):
        portfolio_calculator.merge_holding(portfolio, "BBCA", 10, 9000)

    holding = portfolio.holdings[0]
    assert holding.lots == MAX_LOTS - 5
    assert holding.avg_price == 8000


def test_merge_exactly_max_is_allowed():
    portfolio = Portfolio(name="Default", holdings=[
        Holding(symbol="BBCA", lots=MAX_LOTS - 1, avg_price=100),
    ])
    portfolio_calculator.merge_holding(portfolio, "BBCA", 1, 100)
    assert portfolio.holdings[0].lots == MAX_LOTS


def test_pl_metrics_without_quote_uses_zero_price():
    holding = Holding(symbol="BBCA", lots=1, avg_price=100)
    price = portfolio_calculator.current_price({}, "BBCA")
    value, cost, pl, pl_percent = portfolio_calculator.pl_metrics(holding, price)
    assert value == 0.0
    assert pl == -cost
    assert pl_percent == pytest.approx(-100.0)


def test_allocation_sorted_by_value():
    portfolio = Portfolio(name="Default", holdings=[
        Holding(symbol="TLKM", lots=1, avg_price=1),
        Holding(symbol="BBCA", lots=3, avg_price=1),
    ])
    quotes = {"TLKM": make_quote("TLKM", 100), "BBCA": make_quote("BBCA", 100)}

    allocation = portfolio_calculator.portfolio_allocation(portfolio, quotes)

    assert [symbol for symbol, _, _ in allocation] == ["BBCA", "TLKM"]
    assert allocation[0][1] == pytest.approx(30_000)
    assert allocation[0][2] == pytest.approx(75.0)
    assert allocation[1][2] == pytest.approx(25.0)


def test_allocation_zero_total_gives_zero_percent():
    portfolio = Portfolio(name="Default", holdings=[
        Holding(symbol="TLKM", lots=1, avg_price=1),
        Holding(symbol="BBCA", lots=3, avg_price=1),
    ])
    allocation = portfolio_calculator.portfolio_allocation(portfolio, {})
    assert [pct for _, _, pct in allocation] == [0.0, 0.0]


def test_portfolio_totals():
    portfolio = Portfolio(name="Default", holdings=[
        Holding(symbol="BBCA", lots=1, avg_price=100),
        Holding(symbol="TLKM", lots=1, avg_price=100),
    ])
    quotes = {"BBCA": make_quote("BBCA", 120), "TLKM": make_quote("TLKM", 90)}

    value, cost, pl, pl_percent = portfolio_calculator.portfolio_totals(portfolio, quotes)

    assert value == pytest.approx(21_000)
    assert cost == pytest.approx(20_000)
    assert pl == pytest.approx(1_000)
    assert pl_percent == pytest.approx(5.0)


def test_portfolio_totals_empty():
    assert portfolio_calculator.portfolio_totals(Portfolio(name="Empty"), {}) == (0.0, 0.0, 0.0, 0.0)
