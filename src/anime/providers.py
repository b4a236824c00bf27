"""
RSS search providers for anime releases.

ACG.RIP, Mikan and DMHY all serve RSS 2.0 search results; they differ only by
URL template. Items are normalized to ``ReleaseItem``.
"""

import asyncio
from abc import ABC
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote

import requests
from bs4 import BeautifulSoup


USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"


class ProviderError(Exception):
    pass


@dataclass
class ReleaseItem:
    title: str
    link: str
    guid: str
    pub_date: str
    torrent_url: str
    description: str = ""


def _text(item, tag: str) -> str:
    node = item.find(tag)
    return node.get_text(strip=True) if node else ""


def parse_rss_items(xml: bytes | str) -> list[ReleaseItem]:
    """
    Parse RSS 2.0 ``<item>`` elements into ``ReleaseItem``.

    ``guid`` falls back to ``link``, then to ``"{title}-{pubDate}"``.
    """
    soup = BeautifulSoup(xml, "xml")
    channel = soup.find("channel")
    if channel is None:
        return []

    items = []
    for item in channel.find_all("item"):
        title = _text(item, "title")
        link = _text(item, "link")
        pub_date = _text(item, "pubDate")
        enclosure = item.find("enclosure")
        torrent_url = enclosure.get("url", "") if enclosure else ""
        items.append(
            ReleaseItem(
                title=title,
                link=link,
                guid=_text(item, "guid") or link or f"{title}-{pub_date}",
                pub_date=pub_date,
                torrent_url=torrent_url,
                description=_text(item, "description"),
            )
        )
    return items


class RSSProvider(ABC):
    """
    Base class for RSS search providers.

    Subclasses only set ``name`` and ``search_url_template`` (with a
    ``{keyword}`` placeholder receiving the URL-encoded keyword).
    """

    name: str = ""
    search_url_template: str = ""

    def __init__(self, timeout: float = 30.0):
        self.timeout = timeout

    def search_url(self, keyword: str) -> str:
        return self.search_url_template.format(keyword=quote(keyword.strip()))

    def fetch(self, keyword: str) -> bytes:
        url = self.search_url(keyword)
        try:
            response = requests.get(
                url, headers={"User-Agent": USER_AGENT}, timeout=self.timeout
            )
        except requests.RequestException as e:
            raise ProviderError(f"{self.name} request failed: {e}") from e
        if not response.ok:
            raise ProviderError(f"{self.name} request failed: {response.status_code}")
        return response.content

    async def search(self, keyword: str) -> list[ReleaseItem]:
        """Search releases matching ``keyword``."""
        content = await asyncio.to_thread(self.fetch, keyword)
        return parse_rss_items(content)


class AcgRipProvider(RSSProvider):
    name = "acgrip"
    search_url_template = "https://acg.rip/page/1.xml?term={keyword}"


class MikanProvider(RSSProvider):
    name = "mikan"
    search_url_template = "https://mikanani.me/RSS/Search?searchstr={keyword}"


class DmhyProvider(RSSProvider):
    name = "dmhy"
    search_url_template = "http://share.dmhy.org/topics/rss/rss.xml?keyword={keyword}"


PROVIDERS: dict[str, type[RSSProvider]] = {
    provider.name: provider for provider in (AcgRipProvider, MikanProvider, DmhyProvider)
}


def get_provider(name: Optional[str], timeout: float = 30.0) -> RSSProvider:
    """Return the provider called ``name``; unknown names fall back to ACG.RIP."""
    return PROVIDERS.get(name or "", AcgRipProvider)(timeout=timeout)
