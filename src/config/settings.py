"""
Environment-derived settings for the reconciliation jobs.

Values are read from the process environment after loading an optional
``.env`` file. Everything that is not environment-driven (sources, live
channels, OpenList, email, anime subscriptions) lives in the persisted admin
config document, see ``src.config.models``.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


# Fixed floors, not configurable
SUBSCRIPTION_MIN_CHECK_INTERVAL_MINUTES = 30
OPENLIST_MIN_SCAN_INTERVAL_MINUTES = 60

DEFAULT_CRON_PASSWORD = "mtvpls"
DEFAULT_USER_BATCH_SIZE = 3
DEFAULT_SITE_URL = "http://localhost:3000"
DEFAULT_SITE_NAME = "MoonTVPlus"
DEFAULT_DATABASE_URL = "sqlite:///data/app.db"


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() == "true"


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


@dataclass
class Settings:
    """Configuration for one scheduler process"""

    # Trigger
    cron_password: str = DEFAULT_CRON_PASSWORD

    # Play record / favorite refresh
    user_batch_size: int = DEFAULT_USER_BATCH_SIZE
    include_special_sources: bool = False  # True disables the source skip list
    owner_username: Optional[str] = None

    # Links in notifications and emails
    site_url: str = DEFAULT_SITE_URL

    # Persistence
    database_url: str = DEFAULT_DATABASE_URL

    # Outbound HTTP timeout in seconds
    http_timeout: float = 30.0

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the environment (``.env`` is loaded first)."""
        load_dotenv()
        batch_size = _env_int("CRON_USER_BATCH_SIZE", DEFAULT_USER_BATCH_SIZE)
        return cls(
            cron_password=os.getenv("CRON_PASSWORD") or DEFAULT_CRON_PASSWORD,
            user_batch_size=batch_size if batch_size > 0 else DEFAULT_USER_BATCH_SIZE,
            include_special_sources=_env_bool("CRON_INCLUDE_SPECIAL_SOURCES"),
            owner_username=os.getenv("USERNAME") or None,
            site_url=(
                os.getenv("SITE_URL")
                or os.getenv("NEXT_PUBLIC_SITE_URL")
                or DEFAULT_SITE_URL
            ).rstrip("/"),
            database_url=os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL,
            http_timeout=float(_env_int("HTTP_TIMEOUT", 30)),
        )
