"""
Live source refresh coordinator.

All enabled live sources refresh concurrently. A failing source keeps its
entry with a channel count of 0; the config is saved once after every source
settled.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Awaitable, Callable

from src.config.models import LiveSource
from src.logger import log_function, setup_logging

if TYPE_CHECKING:
    from src.storage.base import BaseConfigStore


logger = setup_logging(logger_name="live", log_file="logs/live.log")

ChannelRefresher = Callable[[LiveSource], Awaitable[int]]


async def _refresh_source(source: LiveSource, refresher: ChannelRefresher) -> None:
    try:
        source.channel_number = await refresher(source)
        logger.info(f"Live source {source.name or source.key}: {source.channel_number} channels")
    except Exception as e:
        logger.error(f"Failed to refresh live source [{source.name or source.key}]: {e}")
        source.channel_number = 0


@log_function(logger_name="live", log_execution_time=True)
async def refresh_all_live_channels(
    config_store: BaseConfigStore, refresher: ChannelRefresher
) -> int:
    """
    Refresh channel counts of every enabled live source.

    Returns:
        Number of sources refreshed
    """
    try:
        config = await config_store.get_config()
        sources = [s for s in config.live_config if not s.disabled]
        await asyncio.gather(*(_refresh_source(s, refresher) for s in sources))
        await config_store.save_admin_config(config)
        return len(sources)
    except Exception as e:
        logger.error(f"Live channel refresh failed: {e}", exc_info=True)
        return 0
