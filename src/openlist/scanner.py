"""
Background OpenList library scan.

A scan lists the library root and records every folder in
``OpenListConfig.metainfo``. Incremental scans keep existing entries; a full
scan (``clear_metainfo=True``) rebuilds the metainfo from scratch.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Callable, Optional

import uuid_utils as uuid

from src.openlist.client import OpenListClient

if TYPE_CHECKING:
    from src.config.models import OpenListConfig
    from src.storage.base import BaseConfigStore


logger = logging.getLogger("openlist")

ClientFactory = Callable[["OpenListConfig"], OpenListClient]


def default_client_factory(openlist: OpenListConfig) -> OpenListClient:
    return OpenListClient(openlist.url, openlist.username, openlist.password)


def merge_metainfo(
    metainfo: dict[str, dict], root_path: str, entries: list[dict], now: int
) -> int:
    """
    Add folders from ``entries`` that are not in ``metainfo`` yet.

    Returns:
        Number of folders added
    """
    root = root_path.rstrip("/")
    added = 0
    for entry in entries:
        name = entry.get("name")
        if not entry.get("is_dir") or not name or name in metainfo:
            continue
        metainfo[name] = {
            "path": f"{root}/{name}",
            "modified": entry.get("modified", ""),
            "added_at": now,
        }
        added += 1
    return added


class OpenListScanner:
    """Starts library scans as background tasks and tracks their status."""

    def __init__(
        self,
        config_store: BaseConfigStore,
        client_factory: ClientFactory = default_client_factory,
        clock: Optional[Callable[[], int]] = None,
    ):
        self.config_store = config_store
        self.client_factory = client_factory
        self._clock = clock or (lambda: int(time.time() * 1000))
        self.status: dict[str, str] = {}
        self._tasks: set[asyncio.Task] = set()

    async def start_openlist_refresh(self, clear_metainfo: bool = False) -> str:
        """Start a scan in the background and return its task id."""
        task_id = str(uuid.uuid7())
        self.status[task_id] = "running"
        task = asyncio.create_task(
            self.scan(task_id, clear_metainfo), name=f"openlist-scan-{task_id}"
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task_id

    async def scan(self, task_id: str, clear_metainfo: bool) -> None:
        try:
            openlist = (await self.config_store.get_config()).openlist_config
            client = self.client_factory(openlist)
            entries = await asyncio.to_thread(client.list_dir, openlist.root_path)

            # Other jobs may have reloaded and saved the config while listing
            config = await self.config_store.get_config()
            openlist = config.openlist_config
            if clear_metainfo:
                openlist.metainfo = {}
            now = self._clock()
            added = merge_metainfo(openlist.metainfo, openlist.root_path, entries, now)
            openlist.resource_count = len(openlist.metainfo)
            openlist.last_refresh_time = now
            await self.config_store.save_admin_config(config)

            self.status[task_id] = "completed"
            logger.info(
                f"OpenList scan {task_id} completed: {added} new, "
                f"{openlist.resource_count} total"
            )
        except Exception as e:
            self.status[task_id] = "failed"
            logger.error(f"OpenList scan {task_id} failed: {e}")

    async def drain(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
