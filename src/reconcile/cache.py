"""
Pass-scoped detail cache that coalesces concurrent fetches.

Many users share the same videos, and users of one batch are processed
concurrently. The cache keeps one shared task per (source, id) so a video is
fetched at most once at a time during a reconciliation pass.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from src.reconcile.models import CatalogDetail


logger = logging.getLogger("reconcile")

DetailFetcher = Callable[[str, str, str], Awaitable[CatalogDetail]]


class DetailCache:
    """
    Single-flight cache of ``CatalogDetail`` lookups.

    The first caller for a key stores the pending task before awaiting it;
    later callers await the same task. A failed lookup is evicted so a later
    caller in the same pass can retry.

    Args:
        fetcher: ``async (source, id, fallback_title) -> CatalogDetail``, may raise
    """

    def __init__(self, fetcher: DetailFetcher):
        self._fetcher = fetcher
        self._entries: dict[tuple[str, str], asyncio.Task] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: tuple[str, str]) -> bool:
        return key in self._entries

    async def resolve(
        self, source: str, source_id: str, fallback_title: str = ""
    ) -> Optional[CatalogDetail]:
        """
        Return the detail for (source, id), or None if it could not be fetched.

        Never raises on fetch errors.
        """
        key = (source, source_id)
        task = self._entries.get(key)
        if task is None:
            # No await between lookup and insert
            task = asyncio.ensure_future(
                self._fetch(key, source, source_id, (fallback_title or "").strip())
            )
            self._entries[key] = task
        return await asyncio.shield(task)

    async def _fetch(
        self, key: tuple[str, str], source: str, source_id: str, fallback_title: str
    ) -> Optional[CatalogDetail]:
        try:
            return await self._fetcher(source, source_id, fallback_title)
        except Exception as e:
            logger.error(f"Failed to fetch video detail ({source}+{source_id}): {e}")
            if self._entries.get(key) is asyncio.current_task():
                del self._entries[key]
            return None
