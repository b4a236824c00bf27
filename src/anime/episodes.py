"""
Episode number extraction and keyword filtering for release titles.
"""

import re
from typing import Optional

import PTN


FALLBACK_EPISODE_PATTERNS = (
    re.compile(r"\[(\d+)\]"),  # [01]
    re.compile(r"第(\d+)[集话]"),  # 第01集 / 第01话
    re.compile(r"EP?(\d+)", re.IGNORECASE),  # EP01, E01
    re.compile(r"\s(\d+)\s"),  # " 01 "
)


def extract_episode(title: str) -> Optional[int]:
    """
    Return the episode number of a release title, or None.

    The torrent name parser runs first; the fallback patterns are tried in
    order and the first match wins.
    """
    try:
        parsed = PTN.parse(title)
    except Exception:
        parsed = {}
    episode = parsed.get("episode")
    if isinstance(episode, list):
        episode = episode[0] if episode else None
    if isinstance(episode, int) and episode > 0:
        return episode

    for pattern in FALLBACK_EPISODE_PATTERNS:
        match = pattern.search(title)
        if match:
            return int(match.group(1))
    return None


def matches_filter(title: str, filter_text: str) -> bool:
    """
    Return True if every comma separated keyword of ``filter_text`` is in ``title``.

    An empty filter matches everything.
    """
    if not filter_text:
        return True
    keywords = [k.strip() for k in filter_text.split(",") if k.strip()]
    return all(keyword in title for keyword in keywords)
