"""
Scheduled pass orchestrator.

One pass refreshes the subscribed config file first, then runs the live
source refresh, the OpenList scan gate, the play record / favorite refresh and
the anime subscription check concurrently. Each task owns its own error
handling; the pass only logs what they report.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Optional

from src.anime import AnimeSubscriptionPoller
from src.config.settings import Settings
from src.config.subscription import refresh_config
from src.live import LiveChannelRefresher, refresh_all_live_channels
from src.logger import log_function, setup_logging
from src.openlist import OpenListScanner, refresh_openlist
from src.reconcile import FavoriteUpdateNotifier, refresh_records_and_favorites
from src.reconcile.cache import DetailFetcher
from src.storage import BaseConfigStore, BaseRecordStore


logger = setup_logging(logger_name="scheduler", log_file="logs/scheduler.log")


@dataclass
class PassResult:
    """Outcome of one scheduled pass"""

    started_at: int
    finished_at: int = 0
    skipped: bool = False
    config_refreshed: bool = False
    live_sources: int = 0
    openlist_task_id: Optional[str] = None
    records: Optional[dict[str, int]] = None
    anime: Optional[dict[str, int]] = None
    errors: list[str] = field(default_factory=list)


class CronScheduler:
    """
    Runs scheduled passes, never two at once.

    A trigger that arrives while a pass is running is logged and skipped.
    """

    def __init__(
        self,
        settings: Settings,
        config_store: BaseConfigStore,
        record_store: BaseRecordStore,
        detail_fetcher: DetailFetcher,
        notifier: FavoriteUpdateNotifier,
        live_refresher: LiveChannelRefresher,
        openlist_scanner: OpenListScanner,
        anime_poller: AnimeSubscriptionPoller,
    ):
        self.settings = settings
        self.config_store = config_store
        self.record_store = record_store
        self.detail_fetcher = detail_fetcher
        self.notifier = notifier
        self.live_refresher = live_refresher
        self.openlist_scanner = openlist_scanner
        self.anime_poller = anime_poller
        self._lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._lock.locked()

    async def run(self) -> PassResult:
        """Run one pass, or return a skipped result if one is in progress."""
        started_at = int(time.time() * 1000)
        if self._lock.locked():
            logger.warning("Scheduled pass already running, skipping this trigger")
            return PassResult(started_at=started_at, finished_at=started_at, skipped=True)

        async with self._lock:
            return await self._run_pass(started_at)

    @log_function(logger_name="scheduler", log_execution_time=True)
    async def _run_pass(self, started_at: int) -> PassResult:
        result = PassResult(started_at=started_at)
        logger.info("Scheduled pass started")

        # Jobs below must see the latest sources
        self.config_store.invalidate()
        try:
            result.config_refreshed = await refresh_config(
                self.config_store, self.settings.http_timeout
            )
        except Exception as e:
            logger.error(f"Config refresh failed: {e}", exc_info=True)
            result.errors.append(f"config: {e}")

        outcomes: list[Any] = await asyncio.gather(
            refresh_all_live_channels(self.config_store, self.live_refresher),
            refresh_openlist(self.config_store, self.openlist_scanner),
            refresh_records_and_favorites(
                self.record_store, self.detail_fetcher, self.notifier, self.settings
            ),
            self.anime_poller.check_all(),
            return_exceptions=True,
        )
        names = ("live", "openlist", "records", "anime")
        for name, outcome in zip(names, outcomes):
            if isinstance(outcome, Exception):
                logger.error(f"Task {name} failed: {outcome}")
                result.errors.append(f"{name}: {outcome}")

        live, openlist_task, records, anime = (
            None if isinstance(o, Exception) else o for o in outcomes
        )
        result.live_sources = live or 0
        result.openlist_task_id = openlist_task
        result.records = records
        result.anime = anime
        result.finished_at = int(time.time() * 1000)

        logger.info(
            f"Scheduled pass finished in {result.finished_at - started_at} ms "
            f"({len(result.errors)} task errors)"
        )
        return result

    async def drain(self) -> None:
        """Wait for detached emails and OpenList scans started by past passes."""
        await self.notifier.drain()
        await self.openlist_scanner.drain()
