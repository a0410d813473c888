"""Tests for the record store."""
import pytest

from idxwatch.domain.entities import Alert, AlertTrigger, AlertType, Bookmark, NewsItem
from idxwatch.domain.errors import LastItemError, LotOverflowError, PersistenceError
from conftest import NOW


def test_add_symbol_uppercases_and_rejects_duplicates(records, mock_repository):
    assert records.add_symbol("goto")
    assert not records.add_symbol("GOTO")
    assert not records.add_symbol("bbca")
    assert records.watchlist.symbols == ["BBCA", "BBRI", "TLKM", "ASII", "GOTO"]
    assert mock_repository.save.call_count == 1


def test_add_remove_sequence_keeps_symbols_unique(records):
    for symbol in ["BBCA", "ADRO", "adro", "BBCA", "PTBA"]:
        records.add_symbol(symbol)
    records.remove_symbol("ADRO")
    records.add_symbol("ADRO")
    symbols = records.watchlist.symbols
    assert len(symbols) == len(set(symbols))


def test_cannot_remove_last_watchlist(records):
    with pytest.raises(LastItemError):
        records.remove_watchlist()
    assert len(records.config.watchlists) == 1


def test_remove_watchlist_clamps_active(records):
    records.add_watchlist("Second")
    assert records.config.active_watchlist == 1
    assert records.remove_watchlist() == "Second"
    assert records.config.active_watchlist == 0


def test_watchlist_navigation_wraps(records):
    records.add_watchlist("Second")
    records.next_watchlist()
    assert records.config.active_watchlist == 0
    records.prev_watchlist()
    assert records.config.active_watchlist == 1


def test_cannot_remove_last_portfolio(records):
    with pytest.raises(LastItemError):
        records.remove_portfolio()


def test_add_holding_overflow_does_not_save(records, mock_repository):
    records.add_holding("BBCA", 4_294_967_295, 100)
    mock_repository.save.reset_mock()

    with pytest.raises(LotOverflowError):
        records.add_holding("BBCA", 1, 100)

    mock_repository.save.assert_not_called()
    assert records.portfolio.find("BBCA").lots == 4_294_967_295


def test_update_and_remove_holding(records):
    records.add_holding("BBCA", 10, 8000)
    assert records.update_holding("BBCA", 5, 8200)
    holding = records.portfolio.find("BBCA")
    assert (holding.lots, holding.avg_price) == (5, 8200)
    assert not records.update_holding("ASII", 1, 1)
    records.remove_holding("bbca")
    assert records.portfolio.holdings == []


def test_apply_triggers_stamps_all_and_saves_once(records, mock_repository):
    """All stamps from one pass are committed with a single save."""
    first = Alert(id="a1", symbol="BBCA", alert_type=AlertType.ABOVE, target_value=1)
    second = Alert(id="a2", symbol="BBRI", alert_type=AlertType.ABOVE, target_value=1)
    untouched = Alert(id="a3", symbol="TLKM", alert_type=AlertType.ABOVE, target_value=1)
    records.config.alerts = [first, second, untouched]

    triggers = [
        AlertTrigger(alert_id=a.id, symbol=a.symbol, alert_type=a.alert_type, price=2,
                     change_percent=0, timestamp=NOW, message="m")
        for a in (first, second)
    ]
    records.apply_triggers(triggers)

    assert first.last_triggered == NOW
    assert second.last_triggered == NOW
    assert untouched.last_triggered is None
    assert mock_repository.save.call_count == 1


def test_apply_no_triggers_does_not_save(records, mock_repository):
    records.apply_triggers([])
    mock_repository.save.assert_not_called()


def test_toggle_and_remove_alert(records):
    alert = Alert(id="a1", symbol="BBCA", alert_type=AlertType.BELOW, target_value=1)
    records.add_alert(alert)
    records.toggle_alert("a1")
    assert not records.config.alerts[0].enabled
    records.remove_alert("a1")
    assert records.config.alerts == []


def test_bookmark_dedup_by_headline_and_url(records):
    bookmark = Bookmark(id="bm_1", headline="BBCA naik", source="CNBC", url="https://x/1")
    duplicate = Bookmark(id="bm_2", headline="BBCA naik", source="Other", url="https://x/1")
    assert records.add_bookmark(bookmark)
    assert not records.add_bookmark(duplicate)
    assert len(records.config.bookmarks) == 1


def test_toggle_news_bookmark(records):
    item = NewsItem(title="BBRI laba naik", publisher="Tempo", url="https://t/2", published_at=NOW - 60)

    assert records.toggle_news_bookmark(item)
    bookmark = records.config.bookmarks[0]
    assert bookmark.headline == item.title
    assert bookmark.source == "Tempo"
    assert bookmark.bookmarked_at == NOW
    assert bookmark.id.startswith("bm_")

    assert not records.toggle_news_bookmark(item)
    assert records.config.bookmarks == []


def test_bookmarks_in_same_millisecond_get_distinct_ids(records):
    first = NewsItem(title="BBCA naik", publisher="CNBC", url="https://x/1", published_at=NOW)
    second = NewsItem(title="TLKM turun", publisher="CNBC", url="https://x/2", published_at=NOW)

    records.toggle_news_bookmark(first)
    records.toggle_news_bookmark(second)
    ids = [b.id for b in records.config.bookmarks]
    assert ids == [f"bm_{NOW * 1000}", f"bm_{NOW * 1000}_1"]

    records.remove_bookmark(ids[0])
    assert [b.headline for b in records.config.bookmarks] == ["TLKM turun"]


def test_bookmark_read_flag(records):
    records.add_bookmark(Bookmark(id="bm_1", headline="h", source="s"))
    records.set_bookmark_read("bm_1")
    assert records.find_bookmark("bm_1").read
    records.set_bookmark_read("bm_1", True)
    assert records.find_bookmark("bm_1").read
    records.set_bookmark_read("bm_1")
    assert not records.find_bookmark("bm_1").read


def test_clear_and_remove_bookmarks(records):
    records.add_bookmark(Bookmark(id="bm_1", headline="a", source="s"))
    records.add_bookmark(Bookmark(id="bm_2", headline="b", source="s"))
    records.remove_bookmark("bm_1")
    assert [b.id for b in records.config.bookmarks] == ["bm_2"]
    records.clear_bookmarks()
    assert records.config.bookmarks == []


def test_failed_save_keeps_in_memory_change(records, mock_repository):
    """The edit stays visible even though persisting it failed."""
    mock_repository.save.side_effect = PersistenceError("read-only")
    with pytest.raises(PersistenceError):
        records.add_symbol("GOTO")
    assert "GOTO" in records.watchlist.symbols
