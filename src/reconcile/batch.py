"""
User batch processing for the play record / favorite refresh.

Users are split into batches; batches run one after another and the users of
a batch run concurrently, which bounds the number of in-flight catalog
requests to roughly the batch size.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Awaitable, Callable, Optional

from src.config.settings import DEFAULT_USER_BATCH_SIZE, Settings
from src.logger import log_function, setup_logging
from src.reconcile.cache import DetailCache, DetailFetcher
from src.reconcile.diff import CatalogDiffEngine
from src.reconcile.notify import FavoriteUpdateNotifier

if TYPE_CHECKING:
    from src.storage.base import BaseRecordStore


logger = setup_logging(logger_name="reconcile", log_file="logs/reconcile.log")


def split_batches(users: list[str], batch_size: int) -> list[list[str]]:
    """Split ``users`` into consecutive batches of at most ``batch_size``."""
    if batch_size <= 0:
        raise ValueError(f"batch_size must be positive, got {batch_size}")
    return [users[i : i + batch_size] for i in range(0, len(users), batch_size)]


async def process_all(
    users: list[str],
    process_user: Callable[[str], Awaitable[None]],
    batch_size: int = DEFAULT_USER_BATCH_SIZE,
) -> dict[str, int]:
    """
    Run ``process_user`` for every user, one batch at a time.

    A failing user is logged and counted; it never stops its batch or the
    following batches.

    Returns:
        Dictionary with statistics: users, batches, errors
    """
    batches = split_batches(users, batch_size)
    stats = {"users": len(users), "batches": len(batches), "errors": 0}

    for number, batch in enumerate(batches, 1):
        logger.info(f"Processing user batch {number}/{len(batches)}: {', '.join(batch)}")
        results = await asyncio.gather(
            *(process_user(user) for user in batch), return_exceptions=True
        )
        for user, result in zip(batch, results):
            if isinstance(result, Exception):
                stats["errors"] += 1
                logger.error(f"Failed to process user {user}: {result}")

    return stats


class UserRefresher:
    """
    Refreshes one user's play records and favorites.

    The play record and favorite phases are isolated from each other: a
    failure listing play records does not prevent the favorites phase.
    """

    def __init__(self, engine: CatalogDiffEngine, notifier: FavoriteUpdateNotifier):
        self.engine = engine
        self.notifier = notifier

    async def __call__(self, user: str) -> None:
        logger.info(f"Processing user: {user}")

        try:
            await self.engine.reconcile_play_records(user)
        except Exception as e:
            logger.error(f"Failed to load play records for {user}: {e}")

        try:
            updates = await self.engine.reconcile_favorites(user)
        except Exception as e:
            logger.error(f"Failed to load favorites for {user}: {e}")
            return

        if updates:
            self.notifier.dispatch(user, updates)


@log_function(logger_name="reconcile", log_execution_time=True)
async def refresh_records_and_favorites(
    store: BaseRecordStore,
    fetcher: DetailFetcher,
    notifier: FavoriteUpdateNotifier,
    settings: Settings,
) -> Optional[dict[str, int]]:
    """
    Refresh every user's play records and favorites against the catalog.

    Whole-task failures (e.g. the user list cannot be loaded) are logged and
    the task gives up until the next pass.

    Returns:
        Batch statistics, or None if the task aborted
    """
    try:
        users = list(await store.get_all_users())
        if settings.owner_username and settings.owner_username not in users:
            users.append(settings.owner_username)

        cache = DetailCache(fetcher)
        engine = CatalogDiffEngine(
            store,
            cache,
            include_special_sources=settings.include_special_sources,
            site_url=settings.site_url,
        )
        stats = await process_all(
            users, UserRefresher(engine, notifier), settings.user_batch_size
        )
        logger.info(
            f"Record and favorite refresh finished: {stats['users']} users, "
            f"{len(cache)} details cached, {stats['errors']} errors"
        )
        return stats
    except Exception as e:
        logger.error(f"Record and favorite refresh failed to start: {e}", exc_info=True)
        return None
