"""RSS headline client."""
import asyncio
import calendar
import logging
import re
from typing import List, Optional

import feedparser
import httpx

from idxwatch.config import app_config
from idxwatch.domain.entities import NewsItem
from idxwatch.domain.errors import FetchError
from idxwatch.domain.interfaces import NewsProvider

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (compatible; idxwatch/0.1)"

_TAG_RE = re.compile(r"<[^>]+>")


def _entry_timestamp(entry) -> int:
    parsed = entry.get("published_parsed") or entry.get("updated_parsed")
    return calendar.timegm(parsed) if parsed else 0


def _clean_summary(text: Optional[str]) -> Optional[str]:
    if not text:
        return None
    return " ".join(_TAG_RE.sub(" ", text).split()) or None


def parse_feed(content: bytes) -> List[NewsItem]:
    """Parse RSS/Atom bytes into headlines. Raises FetchError if unreadable."""
    feed = feedparser.parse(content)
    if feed.bozo and not feed.entries:
        raise FetchError(f"Unreadable feed: {feed.get('bozo_exception')}")
    publisher = feed.feed.get("title") or "Unknown"
    return [
        NewsItem(
            title=entry.get("title") or "(no title)",
            publisher=publisher,
            url=entry.get("link") or None,
            published_at=_entry_timestamp(entry),
            summary=_clean_summary(entry.get("summary")),
        )
        for entry in feed.entries
    ]


class RssNewsClient(NewsProvider):
    """Fetches all configured feeds concurrently."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self._client = client or httpx.AsyncClient(
            timeout=app_config.HTTP_TIMEOUT,
            headers={"User-Agent": USER_AGENT},
            follow_redirects=True,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def fetch_feed(self, url: str) -> List[NewsItem]:
        try:
            response = await self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise FetchError(str(e)) from e
        return parse_feed(response.content)

    async def fetch_all(self, urls: List[str]) -> List[NewsItem]:
        """Merge every feed, newest first. Failed feeds are dropped."""
        if not urls:
            return []
        results = await asyncio.gather(
            *(self.fetch_feed(url) for url in urls), return_exceptions=True
        )
        items: List[NewsItem] = []
        failures = 0
        for url, result in zip(urls, results):
            if isinstance(result, FetchError):
                logger.warning(f"Dropping feed {url}: {result}")
                failures += 1
            elif isinstance(result, BaseException):
                raise result
            else:
                items.extend(result)
        if failures == len(urls):
            raise FetchError(f"All {failures} news feeds failed")
        items.sort(key=lambda item: item.published_at, reverse=True)
        return items
