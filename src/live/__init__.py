"""
Live source channel refresh.

Modules:
    channels: Playlist download and M3U / TXT parsing
    refresh: Concurrent refresh of every enabled live source
"""

from .channels import Channel, LiveChannelRefresher, parse_playlist
from .refresh import refresh_all_live_channels

__all__ = [
    "Channel",
    "LiveChannelRefresher",
    "parse_playlist",
    "refresh_all_live_channels",
]
