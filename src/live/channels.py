"""
Live channel playlist download and parsing.

Supports M3U playlists (``#EXTINF`` entries followed by a URL) and the plain
text ``name,url`` format with ``group,#genre#`` section headers.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional

import requests

from src.config.models import LiveSource


DEFAULT_LIVE_UA = "okHttp/Mod-1.1.0"


@dataclass
class Channel:
    name: str
    url: str
    group: str = ""
    logo: str = ""


def _extinf_attr(line: str, name: str) -> str:
    marker = f'{name}="'
    start = line.find(marker)
    if start < 0:
        return ""
    start += len(marker)
    end = line.find('"', start)
    return line[start:end] if end > start else ""


def parse_m3u(content: str) -> list[Channel]:
    channels = []
    pending: Optional[Channel] = None
    for raw in content.splitlines():
        line = raw.strip()
        if not line:
            continue
        if line.startswith("#EXTINF"):
            name = line.rsplit(",", 1)[-1].strip() if "," in line else ""
            pending = Channel(
                name=_extinf_attr(line, "tvg-name") or name,
                url="",
                group=_extinf_attr(line, "group-title"),
                logo=_extinf_attr(line, "tvg-logo"),
            )
        elif line.startswith("#"):
            continue
        elif pending is not None:
            pending.url = line
            channels.append(pending)
            pending = None
    return channels


def parse_txt(content: str) -> list[Channel]:
    channels = []
    group = ""
    for raw in content.splitlines():
        line = raw.strip()
        if not line or "," not in line:
            continue
        name, url = (part.strip() for part in line.split(",", 1))
        if url == "#genre#":
            group = name
            continue
        if "://" in url:
            channels.append(Channel(name=name, url=url, group=group))
    return channels


def parse_playlist(content: str) -> list[Channel]:
    if content.lstrip().startswith("#EXTM3U") or "#EXTINF" in content:
        return parse_m3u(content)
    return parse_txt(content)


def fetch_playlist(source: LiveSource, timeout: float = 30.0) -> str:
    response = requests.get(
        source.url,
        headers={"User-Agent": source.ua or DEFAULT_LIVE_UA},
        timeout=timeout,
    )
    response.raise_for_status()
    return response.text


class LiveChannelRefresher:
    """Downloads a live source playlist and returns its channel count."""

    def __init__(self, timeout: float = 30.0):
        self._timeout = timeout

    async def __call__(self, source: LiveSource) -> int:
        return await self.refresh_live_channels(source)

    async def refresh_live_channels(self, source: LiveSource) -> int:
        if not source.url:
            raise ValueError(f"Live source {source.key} has no URL")
        content = await asyncio.to_thread(fetch_playlist, source, self._timeout)
        return len(parse_playlist(content))
