"""
Configuration for the reconciliation jobs.

- settings.py: Environment-derived Settings (python-dotenv)
- models.py: Admin config document dataclasses
- refine.py: Merge the raw config file into sources and live sources
- subscription.py: Remote config file refresh (imported directly, it needs
  network access)
"""

from .settings import (
    OPENLIST_MIN_SCAN_INTERVAL_MINUTES,
    SUBSCRIPTION_MIN_CHECK_INTERVAL_MINUTES,
    Settings,
)
from .models import (
    AdminConfig,
    AnimeSubscription,
    AnimeSubscriptionConfig,
    ConfigSubscription,
    EmailConfig,
    LiveSource,
    OpenListConfig,
    ResendConfig,
    SiteConfig,
    SMTPConfig,
    VideoSource,
)
from .refine import refine_config

__all__ = [
    "OPENLIST_MIN_SCAN_INTERVAL_MINUTES",
    "SUBSCRIPTION_MIN_CHECK_INTERVAL_MINUTES",
    "Settings",
    "AdminConfig",
    "AnimeSubscription",
    "AnimeSubscriptionConfig",
    "ConfigSubscription",
    "EmailConfig",
    "LiveSource",
    "OpenListConfig",
    "ResendConfig",
    "SiteConfig",
    "SMTPConfig",
    "VideoSource",
    "refine_config",
]
