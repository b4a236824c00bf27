"""
Anime subscription tracking.

Modules:
    providers: RSS search providers (ACG.RIP, Mikan, DMHY)
    episodes: Episode number extraction and title filters
    poller: Watermark-based subscription checks and offline downloads
"""

from .providers import (
    AcgRipProvider,
    DmhyProvider,
    MikanProvider,
    ProviderError,
    ReleaseItem,
    RSSProvider,
    get_provider,
    parse_rss_items,
)
from .episodes import extract_episode, matches_filter
from .poller import (
    AnimeSubscriptionPoller,
    CheckResult,
    ConfigError,
    select_new_episodes,
)

__all__ = [
    "AcgRipProvider",
    "DmhyProvider",
    "MikanProvider",
    "ProviderError",
    "ReleaseItem",
    "RSSProvider",
    "get_provider",
    "parse_rss_items",
    "extract_episode",
    "matches_filter",
    "AnimeSubscriptionPoller",
    "CheckResult",
    "ConfigError",
    "select_new_episodes",
]
