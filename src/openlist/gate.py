"""Scheduled OpenList scan guard."""

from __future__ import annotations

import math
import time
from typing import TYPE_CHECKING, Optional

from src.config.settings import OPENLIST_MIN_SCAN_INTERVAL_MINUTES
from src.logger import log_function, setup_logging

if TYPE_CHECKING:
    from src.config.models import OpenListConfig
    from src.openlist.scanner import OpenListScanner
    from src.storage.base import BaseConfigStore


logger = setup_logging(logger_name="openlist", log_file="logs/openlist.log")

MINUTE_MS = 60 * 1000


def scan_skip_reason(openlist: OpenListConfig, now: int) -> Optional[str]:
    """
    Return why a scheduled scan must not run now, or None if it may.

    Args:
        openlist: OpenList section of the admin config
        now: Current time in epoch ms
    """
    if not openlist.enabled:
        return "feature disabled"
    if not openlist.has_credentials:
        return "not configured"

    interval = openlist.scan_interval or 0
    if interval == 0:
        return "scheduled scan turned off"
    if interval < OPENLIST_MIN_SCAN_INTERVAL_MINUTES:
        return (
            f"interval {interval} min is below the "
            f"{OPENLIST_MIN_SCAN_INTERVAL_MINUTES} min minimum"
        )

    elapsed = now - (openlist.last_refresh_time or 0)
    interval_ms = interval * MINUTE_MS
    if elapsed < interval_ms:
        remaining = math.ceil((interval_ms - elapsed) / MINUTE_MS)
        return (
            f"last scan {elapsed // MINUTE_MS} min ago, "
            f"{remaining} min until the next one"
        )
    return None


@log_function(logger_name="openlist", log_execution_time=True)
async def refresh_openlist(
    config_store: BaseConfigStore,
    scanner: OpenListScanner,
    now: Optional[int] = None,
) -> Optional[str]:
    """
    Start an incremental OpenList scan when the schedule allows it.

    Returns:
        The scan task id, or None if skipped or failed
    """
    try:
        config = await config_store.get_config()
        openlist = config.openlist_config
        now = now if now is not None else int(time.time() * 1000)

        reason = scan_skip_reason(openlist, now)
        if reason:
            logger.info(f"Skipping OpenList scan: {reason}")
            return None

        logger.info(f"Starting scheduled OpenList scan (interval: {openlist.scan_interval} min)")
        task_id = await scanner.start_openlist_refresh(clear_metainfo=False)
        logger.info(f"OpenList scan started, task id: {task_id}")
        return task_id
    except Exception as e:
        logger.error(f"Scheduled OpenList scan failed: {e}")
        return None
