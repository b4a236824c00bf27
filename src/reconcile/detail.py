"""
Video detail fetching from Apple-CMS style catalog APIs.

Each configured video source exposes ``{api}?ac=videolist&ids={id}`` returning
JSON with a ``list`` of videos. Episodes are encoded in ``vod_play_url`` as
``name$url#name$url`` groups separated by ``$$$`` (one group per player).
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Optional

import requests

from src.reconcile.models import CatalogDetail

if TYPE_CHECKING:
    from src.storage.base import BaseConfigStore


logger = logging.getLogger("reconcile")

USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"


class DetailFetchError(Exception):
    pass


def parse_episodes(play_url: str) -> list[str]:
    """
    Extract episode URLs from a CMS ``vod_play_url`` field.

    The player group with the most episodes wins; entries without a ``$`` are
    taken as bare URLs.
    """
    best: list[str] = []
    for group in (play_url or "").split("$$$"):
        episodes = []
        for entry in group.split("#"):
            entry = entry.strip()
            if not entry:
                continue
            url = entry.split("$", 1)[1] if "$" in entry else entry
            if url:
                episodes.append(url)
        if len(episodes) > len(best):
            best = episodes
    return best


def parse_detail(source: str, source_id: str, item: dict[str, Any]) -> CatalogDetail:
    year = str(item.get("vod_year") or "")
    return CatalogDetail(
        source=source,
        id=source_id,
        title=(item.get("vod_name") or "").strip(),
        poster=item.get("vod_pic") or "",
        year=year if year.isdigit() else "",
        episodes=parse_episodes(item.get("vod_play_url", "")),
    )


class CMSDetailFetcher:
    """
    Fetches ``CatalogDetail`` for a (source, id) from the source's CMS API.

    Raises ``DetailFetchError`` on unknown sources, HTTP errors, or empty
    results; callers (the detail cache) decide what a failure means.
    """

    def __init__(self, config_store: BaseConfigStore, timeout: float = 30.0):
        self._config_store = config_store
        self._timeout = timeout

    async def __call__(
        self, source: str, source_id: str, fallback_title: str = ""
    ) -> CatalogDetail:
        return await self.fetch_video_detail(source, source_id, fallback_title)

    async def fetch_video_detail(
        self, source: str, source_id: str, fallback_title: str = ""
    ) -> CatalogDetail:
        config = await self._config_store.get_config()
        video_source = config.get_source(source)
        if video_source is None or not video_source.api:
            raise DetailFetchError(f"Unknown video source: {source}")

        item = await asyncio.to_thread(self._request, video_source.api, source_id)
        detail = parse_detail(source, source_id, item)
        if not detail.title:
            detail.title = fallback_title
        return detail

    def _request(self, api: str, source_id: str) -> dict[str, Any]:
        try:
            response = requests.get(
                api,
                params={"ac": "videolist", "ids": source_id},
                headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
                timeout=self._timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            raise DetailFetchError(f"Detail request failed for {source_id}: {e}") from e

        items: Optional[list] = data.get("list") if isinstance(data, dict) else None
        if not items:
            raise DetailFetchError(f"No detail returned for {source_id}")
        return items[0]
