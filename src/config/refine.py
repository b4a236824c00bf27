"""Merge the raw config file into the structured admin config."""

import json
import logging

from .models import AdminConfig, LiveSource, VideoSource


logger = logging.getLogger("config")


def refine_config(config: AdminConfig) -> AdminConfig:
    """
    Apply ``config.config_file`` to the source and live lists.

    The config file is a JSON object whose ``api_site`` entries become video
    sources and whose ``lives`` entries become live sources. Existing entries
    keep their ``disabled`` flag and channel count; entries no longer present
    in the file are kept as-is.

    Args:
        config: Admin config holding the raw config file text

    Returns:
        The same config object, updated in place

    Raises:
        ValueError: If ``config_file`` is not a JSON object
    """
    if not config.config_file:
        return config

    try:
        file_content = json.loads(config.config_file)
    except json.JSONDecodeError as e:
        raise ValueError(f"Config file is not valid JSON: {e}") from e
    if not isinstance(file_content, dict):
        raise ValueError("Config file must be a JSON object")

    sources = {s.key: s for s in config.source_config}
    for key, site in (file_content.get("api_site") or {}).items():
        existing = sources.get(key)
        if existing:
            existing.name = site.get("name", existing.name)
            existing.api = site.get("api", existing.api)
        else:
            sources[key] = VideoSource(
                key=key, name=site.get("name", key), api=site.get("api", "")
            )
    config.source_config = list(sources.values())

    lives = {s.key: s for s in config.live_config}
    for key, live in (file_content.get("lives") or {}).items():
        existing = lives.get(key)
        if existing:
            existing.name = live.get("name", existing.name)
            existing.url = live.get("url", existing.url)
            existing.ua = live.get("ua", existing.ua)
            existing.epg = live.get("epg", existing.epg)
        else:
            lives[key] = LiveSource(
                key=key,
                name=live.get("name", key),
                url=live.get("url", ""),
                ua=live.get("ua", ""),
                epg=live.get("epg", ""),
            )
    config.live_config = list(lives.values())

    logger.info(
        f"Refined config: {len(config.source_config)} sources, "
        f"{len(config.live_config)} live sources"
    )
    return config
