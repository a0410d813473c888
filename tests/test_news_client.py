"""Tests for the RSS news client."""
import asyncio

import httpx
import pytest

from idxwatch.domain.errors import FetchError
from idxwatch.infrastructure.news_client import RssNewsClient, parse_feed

CNBC_FEED = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>CNBC Indonesia Market</title>
    <item>
      <title>IHSG Ditutup Menguat, BBCA Jadi Penopang</title>
      <link>https://www.cnbcindonesia.com/market/1</link>
      <pubDate>Tue, 14 Nov 2023 22:13:20 GMT</pubDate>
      <description>&lt;p&gt;Indeks   harga saham &lt;b&gt;gabungan&lt;/b&gt; naik.&lt;/p&gt;</description>
    </item>
    <item>
      <title>Rupiah Melemah</title>
      <link>https://www.cnbcindonesia.com/market/2</link>
      <pubDate>Tue, 14 Nov 2023 20:00:00 GMT</pubDate>
    </item>
  </channel>
</rss>
"""

TEMPO_FEED = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Tempo Bisnis</title>
    <item>
      <title>GOTO Rilis Laporan Keuangan</title>
      <link>https://bisnis.tempo.co/3</link>
      <pubDate>Tue, 14 Nov 2023 21:00:00 GMT</pubDate>
    </item>
  </channel>
</rss>
"""

FEEDS = {
    "https://cnbc.test/rss": CNBC_FEED,
    "https://tempo.test/rss": TEMPO_FEED,
}


def handler(request: httpx.Request) -> httpx.Response:
    body = FEEDS.get(str(request.url))
    if body is None:
        return httpx.Response(404)
    return httpx.Response(200, content=body)


def make_client():
    return RssNewsClient(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


def test_parse_feed_maps_entries():
    items = parse_feed(CNBC_FEED)

    assert len(items) == 2
    first = items[0]
    assert first.title == "IHSG Ditutup Menguat, BBCA Jadi Penopang"
    assert first.publisher == "CNBC Indonesia Market"
    assert first.url == "https://www.cnbcindonesia.com/market/1"
    assert first.published_at == 1_700_000_000
    assert first.summary == "Indeks harga saham gabungan naik."
    assert items[1].summary is None


def test_fetch_all_merges_newest_first():
    client = make_client()

    items = asyncio.run(client.fetch_all(list(FEEDS)))

    assert [item.title for item in items] == [
        "IHSG Ditutup Menguat, BBCA Jadi Penopang",
        "GOTO Rilis Laporan Keuangan",
        "Rupiah Melemah",
    ]


def test_failed_feed_is_dropped():
    client = make_client()

    items = asyncio.run(client.fetch_all(["https://gone.test/rss", "https://tempo.test/rss"]))

    assert [item.publisher for item in items] == ["Tempo Bisnis"]


def test_all_feeds_failing_is_fetch_error():
    client = make_client()
    with pytest.raises(FetchError):
        asyncio.run(client.fetch_all(["https://gone.test/rss", "https://also-gone.test/rss"]))


def test_no_sources_returns_empty():
    assert asyncio.run(make_client().fetch_all([])) == []


def test_network_error_is_fetch_error():
    def unreachable(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    client = RssNewsClient(client=httpx.AsyncClient(transport=httpx.MockTransport(unreachable)))
    with pytest.raises(FetchError):
        asyncio.run(client.fetch_feed("https://cnbc.test/rss"))
