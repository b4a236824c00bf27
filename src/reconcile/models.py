"""
Record types exchanged between the stores and the reconciliation jobs.

Models:
    PlayRecord: A user's playback progress on one video
    FavoriteRecord: A user's favorited video
    CatalogDetail: Freshly fetched catalog data for one video (never stored)
    Notification: In-app notification, created once and never mutated
    FavoriteUpdate: One line of the per-user favorite update email
"""

from dataclasses import dataclass, field
from typing import Any, Optional


def record_key(source: str, source_id: str) -> str:
    """Build the ``source+id`` key used by the record store."""
    return f"{source}+{source_id}"


def split_record_key(key: str) -> tuple[Optional[str], Optional[str]]:
    """Split a ``source+id`` key. Missing parts come back as None."""
    source, _, source_id = key.partition("+")
    return source or None, source_id or None


@dataclass
class PlayRecord:
    title: str
    source_name: str = ""
    cover: str = ""
    index: int = 0  # current episode index
    total_episodes: int = 0
    play_time: int = 0  # seconds
    total_time: int = 0  # seconds
    year: str = ""
    save_time: int = 0  # epoch ms
    search_title: str = ""
    new_episodes: int = 0  # episodes released since the user last watched


@dataclass
class FavoriteRecord:
    title: str
    source_name: str = ""
    cover: str = ""
    year: str = ""
    total_episodes: int = 0
    save_time: int = 0
    search_title: str = ""
    origin: str = "vod"  # "vod" or "live"


@dataclass
class CatalogDetail:
    source: str
    id: str
    title: str = ""
    poster: str = ""
    year: str = ""
    episodes: list[str] = field(default_factory=list)


@dataclass
class Notification:
    id: str
    type: str
    title: str
    message: str
    timestamp: int
    read: bool = False
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class FavoriteUpdate:
    title: str
    old_episodes: int
    new_episodes: int
    url: str
    cover: str = ""
