"""
Catalog diff engine for play records and favorites.

Compares the episode count stored on each record with the count fetched from
the catalog and decides whether the record is updated and, for favorites,
whether the user is notified.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Callable, Optional
from urllib.parse import quote

from src.config.settings import DEFAULT_SITE_URL
from src.reconcile.cache import DetailCache
from src.reconcile.models import (
    CatalogDetail,
    FavoriteRecord,
    FavoriteUpdate,
    Notification,
    PlayRecord,
    split_record_key,
)

if TYPE_CHECKING:
    from src.storage.base import BaseRecordStore


logger = logging.getLogger("reconcile")

SKIPPED_SOURCE_PREFIXES = ("emby", "live")
SKIPPED_SOURCES = ("openlist", "xiaoya")


def should_skip_source(source: str, include_special_sources: bool = False) -> bool:
    """
    Return True for sources whose records are never refreshed.

    Private library and live sources (``emby*``, ``openlist``, ``xiaoya``,
    ``live*``) are skipped unless ``include_special_sources`` is set.
    """
    if include_special_sources:
        return False
    return source.startswith(SKIPPED_SOURCE_PREFIXES) or source in SKIPPED_SOURCES


def episode_increase(stored_total: int, detail: CatalogDetail) -> int:
    """Number of new episodes in ``detail``, 0 when unchanged, shrunk or empty."""
    fetched = len(detail.episodes)
    if fetched <= 0:
        return 0
    return max(0, fetched - (stored_total or 0))


def diff_play_record(record: PlayRecord, detail: CatalogDetail) -> Optional[PlayRecord]:
    """Return the updated play record, or None when nothing changes."""
    added = episode_increase(record.total_episodes, detail)
    if added == 0:
        return None
    return replace(
        record,
        title=detail.title or record.title,
        cover=detail.poster or record.cover,
        year=detail.year or record.year,
        total_episodes=len(detail.episodes),
        new_episodes=(record.new_episodes or 0) + added,
    )


def diff_favorite(
    favorite: FavoriteRecord, detail: CatalogDetail
) -> Optional[FavoriteRecord]:
    """Return the updated favorite, or None when nothing changes."""
    if episode_increase(favorite.total_episodes, detail) == 0:
        return None
    return replace(
        favorite,
        title=detail.title or favorite.title,
        cover=detail.poster or favorite.cover,
        year=detail.year or favorite.year,
        total_episodes=len(detail.episodes),
    )


def play_url(site_url: str, source: str, source_id: str, title: str) -> str:
    return f"{site_url}/play?source={source}&id={source_id}&title={quote(title)}"


@dataclass
class ReconcileStats:
    total: int = 0
    processed: int = 0
    updated: int = 0


class CatalogDiffEngine:
    """
    Applies catalog diffs to one user's records.

    Args:
        store: Record and notification store
        cache: Pass-scoped detail cache shared by every user of the pass
        include_special_sources: Disable the source skip list
        site_url: Base URL for deep links in notifications
        clock: Returns the current time in epoch ms
    """

    def __init__(
        self,
        store: BaseRecordStore,
        cache: DetailCache,
        include_special_sources: bool = False,
        site_url: str = DEFAULT_SITE_URL,
        clock: Optional[Callable[[], int]] = None,
    ):
        self.store = store
        self.cache = cache
        self.include_special_sources = include_special_sources
        self.site_url = site_url.rstrip("/")
        self._clock = clock or (lambda: int(time.time() * 1000))

    async def reconcile_play_records(self, user: str) -> ReconcileStats:
        """Refresh episode counts of the user's play records."""
        records = await self.store.get_all_play_records(user)
        stats = ReconcileStats(total=len(records))

        for key, record in records.items():
            try:
                source, source_id = split_record_key(key)
                if not source or not source_id:
                    logger.warning(f"Skipping play record with invalid key: {key}")
                    continue

                if should_skip_source(source, self.include_special_sources):
                    logger.debug(f"Skipping play record (source filtered): {key}")
                    stats.processed += 1
                    continue

                detail = await self.cache.resolve(source, source_id, record.title)
                if detail is None:
                    logger.warning(f"Skipping play record without detail: {key}")
                    continue

                updated = diff_play_record(record, detail)
                if updated is not None:
                    await self.store.save_play_record(user, source, source_id, updated)
                    stats.updated += 1
                    logger.info(
                        f"Updated play record {record.title} for {user}: "
                        f"{record.total_episodes} -> {updated.total_episodes} "
                        f"(+{updated.new_episodes - record.new_episodes})"
                    )
                stats.processed += 1
            except Exception as e:
                logger.error(f"Failed to process play record {key} for {user}: {e}")

        logger.info(f"Play records done for {user}: {stats.processed}/{stats.total}")
        return stats

    async def reconcile_favorites(self, user: str) -> list[FavoriteUpdate]:
        """
        Refresh episode counts of the user's favorites.

        Every increase stores one in-app notification and is returned as a
        ``FavoriteUpdate`` for the user's summary email.
        """
        favorites = {
            key: fav
            for key, fav in (await self.store.get_all_favorites(user)).items()
            if fav.origin != "live"
        }
        stats = ReconcileStats(total=len(favorites))
        now = self._clock()
        updates: list[FavoriteUpdate] = []

        for key, favorite in favorites.items():
            try:
                source, source_id = split_record_key(key)
                if not source or not source_id:
                    logger.warning(f"Skipping favorite with invalid key: {key}")
                    continue

                if should_skip_source(source, self.include_special_sources):
                    logger.debug(f"Skipping favorite (source filtered): {key}")
                    stats.processed += 1
                    continue

                detail = await self.cache.resolve(source, source_id, favorite.title)
                if detail is None:
                    logger.warning(f"Skipping favorite without detail: {key}")
                    continue

                updated = diff_favorite(favorite, detail)
                if updated is not None:
                    await self.store.save_favorite(user, source, source_id, updated)
                    stats.updated += 1
                    logger.info(
                        f"Updated favorite {favorite.title} for {user}: "
                        f"{favorite.total_episodes} -> {updated.total_episodes}"
                    )
                    try:
                        await self.store.add_notification(
                            user,
                            self._favorite_notification(
                                source, source_id, favorite, updated, now
                            ),
                        )
                    except Exception as e:
                        logger.error(f"Failed to notify {user} about {key}: {e}")
                    updates.append(
                        FavoriteUpdate(
                            title=favorite.title,
                            old_episodes=favorite.total_episodes,
                            new_episodes=updated.total_episodes,
                            url=play_url(
                                self.site_url, source, source_id, favorite.title
                            ),
                            cover=updated.cover,
                        )
                    )
                stats.processed += 1
            except Exception as e:
                logger.error(f"Failed to process favorite {key} for {user}: {e}")

        logger.info(f"Favorites done for {user}: {stats.processed}/{stats.total}")
        return updates

    @staticmethod
    def _favorite_notification(
        source: str,
        source_id: str,
        old: FavoriteRecord,
        new: FavoriteRecord,
        now: int,
    ) -> Notification:
        return Notification(
            id=f"fav_update_{source}_{source_id}_{now}",
            type="favorite_update",
            title="收藏更新",
            message=(
                f"《{old.title}》有新集数更新！"
                f"从 {old.total_episodes} 集更新到 {new.total_episodes} 集"
            ),
            timestamp=now,
            read=False,
            metadata={
                "source": source,
                "id": source_id,
                "title": old.title,
                "old_episodes": old.total_episodes,
                "new_episodes": new.total_episodes,
            },
        )
