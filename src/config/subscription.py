"""
Remote config file subscription.

The subscribed URL serves the config file as base58-encoded JSON. Each pass
refreshes it before the other jobs run so they see the latest sources.
"""

from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import base58
import requests

from src.logger import log_function, setup_logging
from .refine import refine_config

if TYPE_CHECKING:
    from src.storage.base import BaseConfigStore


logger = setup_logging(logger_name="config", log_file="logs/config.log")


def decode_config_file(payload: str) -> str:
    """
    Decode a base58 payload into the config file JSON text.

    Raises:
        ValueError: If the payload is not base58 or not valid JSON
    """
    decoded = base58.b58decode(payload.strip()).decode("utf-8")
    try:
        json.loads(decoded)
    except json.JSONDecodeError as e:
        raise ValueError(f"Config file is not valid JSON: {e}") from e
    return decoded


def download_config_file(url: str, timeout: float = 30.0) -> str:
    response = requests.get(url, timeout=timeout)
    response.raise_for_status()
    return response.text


@log_function(logger_name="config", log_execution_time=True)
async def refresh_config(config_store: BaseConfigStore, timeout: float = 30.0) -> bool:
    """
    Pull the subscribed config file and save the refined admin config.

    Skipped (logged) when no subscription URL is set or auto update is off.
    Failures are logged; the pass continues with the stored config.

    Returns:
        True if a new config file was applied
    """
    config = await config_store.get_config()
    subscription = config.config_subscription
    if not subscription.url or not subscription.auto_update:
        logger.info("Skipping config refresh: no subscription URL or auto update off")
        return False

    try:
        payload = await asyncio.to_thread(download_config_file, subscription.url, timeout)
        config.config_file = decode_config_file(payload)
        subscription.last_check = datetime.now(timezone.utc).isoformat()
        refine_config(config)
        await config_store.save_admin_config(config)
        logger.info(f"Config file refreshed from {subscription.url}")
        return True
    except Exception as e:
        logger.error(f"Config refresh failed: {e}")
        return False
