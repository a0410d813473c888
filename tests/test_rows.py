"""Tests for the list row producers."""
from idxwatch.domain.entities import Bookmark, Holding, NewsItem, Portfolio
from idxwatch.session import rows
from idxwatch.session.view_state import ListViewState
from conftest import NOW, make_quote


def test_watchlist_filter_keeps_config_order():
    """Filter "BB" over [BBCA, BBRI, TLKM, ASII] leaves [BBCA, BBRI]."""
    view = ListViewState()
    view.set_filter("bb")
    result = rows.watchlist_rows(["BBCA", "BBRI", "TLKM", "ASII"], {}, view)
    assert [r.symbol for r in result] == ["BBCA", "BBRI"]


def test_watchlist_missing_quotes_sort_last_both_directions():
    quotes = {"BBCA": make_quote("BBCA", 9000), "TLKM": make_quote("TLKM", 3000)}
    symbols = ["GOTO", "BBCA", "TLKM"]

    ascending = ListViewState(sort_column=2)
    descending = ListViewState(sort_column=2, sort_descending=True)

    assert [r.symbol for r in rows.watchlist_rows(symbols, quotes, ascending)] == [
        "TLKM", "BBCA", "GOTO",
    ]
    assert [r.symbol for r in rows.watchlist_rows(symbols, quotes, descending)] == [
        "BBCA", "TLKM", "GOTO",
    ]


def test_watchlist_rows_are_idempotent():
    """Applying the same filter and sort to the output changes nothing."""
    quotes = {s: make_quote(s, p) for s, p in [("BBCA", 9000), ("BBRI", 4500), ("BMRI", 6000)]}
    view = ListViewState(sort_column=2, filter_text="B")

    first = rows.watchlist_rows(["BBCA", "BBRI", "BMRI", "TLKM"], quotes, view)
    second = rows.watchlist_rows([r.symbol for r in first], quotes, view)

    assert first == second


def test_watchlist_sort_by_value():
    quotes = {
        "BBCA": make_quote("BBCA", 100, volume=10),
        "BBRI": make_quote("BBRI", 10, volume=1000),
    }
    view = ListViewState(sort_column=9, sort_descending=True)
    assert [r.symbol for r in rows.watchlist_rows(["BBCA", "BBRI"], quotes, view)] == [
        "BBRI", "BBCA",
    ]


def test_portfolio_rows_compute_metrics_and_sort():
    portfolio = Portfolio(name="Default", holdings=[
        Holding(symbol="BBCA", lots=1, avg_price=8000),
        Holding(symbol="TLKM", lots=2, avg_price=3000),
    ])
    quotes = {"BBCA": make_quote("BBCA", 9000), "TLKM": make_quote("TLKM", 2500)}

    result = rows.portfolio_rows(portfolio, quotes, ListViewState(sort_column=7))

    assert [r.symbol for r in result] == ["TLKM", "BBCA"]
    assert result[1].pl == 100_000
    assert result[0].pl == -100_000


def test_portfolio_rows_without_quote():
    portfolio = Portfolio(name="Default", holdings=[Holding(symbol="BBCA", lots=1, avg_price=8000)])
    row = rows.portfolio_rows(portfolio, {}, ListViewState())[0]
    assert row.current_price == 0.0
    assert row.value == 0.0


def test_news_default_order_is_newest_first():
    items = [
        NewsItem(title="old", published_at=NOW - 600),
        NewsItem(title="new", published_at=NOW),
        NewsItem(title="mid", published_at=NOW - 60),
    ]
    assert [n.title for n in rows.news_rows(items, ListViewState())] == ["new", "mid", "old"]


def test_news_filter_matches_publisher():
    items = [
        NewsItem(title="IHSG menguat", publisher="CNBC Indonesia"),
        NewsItem(title="Rupiah melemah", publisher="Tempo"),
    ]
    view = ListViewState(filter_text="TEMPO")
    assert [n.title for n in rows.news_rows(items, view)] == ["Rupiah melemah"]


def test_bookmarks_default_order_is_most_recently_saved():
    bookmarks = [
        Bookmark(id="a", headline="a", source="s", bookmarked_at=NOW - 10),
        Bookmark(id="b", headline="b", source="s", bookmarked_at=NOW),
    ]
    assert [b.id for b in rows.bookmark_rows(bookmarks, ListViewState())] == ["b", "a"]


def test_title_contains_ticker_whole_word():
    assert rows.title_contains_ticker("Saham DEWA Naik", "DEWA")
    assert rows.title_contains_ticker("Laba bersih (DEWA) melonjak", "dewa")
    assert rows.title_contains_ticker("DEWA", "DEWA")
    assert not rows.title_contains_ticker("Dewan Komisaris baru", "DEWA")
    assert not rows.title_contains_ticker("Anything", "")


def test_related_news_limit():
    items = [NewsItem(title=f"BBCA update {i}") for i in range(12)]
    items.append(NewsItem(title="TLKM only"))
    related = rows.related_news(items, "BBCA")
    assert len(related) == 8
    assert related[0].title == "BBCA update 0"
