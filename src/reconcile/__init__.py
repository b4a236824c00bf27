"""
Play record and favorite reconciliation against the upstream catalog.

Modules:
    models: Record, detail and notification types
    cache: Single-flight detail cache scoped to one pass
    detail: CMS catalog client used as the default detail fetcher
    diff: Episode count comparison and record updates
    notify: Detached per-user summary emails
    batch: Batched fan-out across all users
"""

from .models import (
    CatalogDetail,
    FavoriteRecord,
    FavoriteUpdate,
    Notification,
    PlayRecord,
    record_key,
    split_record_key,
)
from .cache import DetailCache
from .detail import CMSDetailFetcher, DetailFetchError
from .diff import (
    CatalogDiffEngine,
    diff_favorite,
    diff_play_record,
    should_skip_source,
)
from .notify import FavoriteUpdateNotifier
from .batch import (
    UserRefresher,
    process_all,
    refresh_records_and_favorites,
    split_batches,
)

__all__ = [
    "CatalogDetail",
    "FavoriteRecord",
    "FavoriteUpdate",
    "Notification",
    "PlayRecord",
    "record_key",
    "split_record_key",
    "DetailCache",
    "CMSDetailFetcher",
    "DetailFetchError",
    "CatalogDiffEngine",
    "diff_favorite",
    "diff_play_record",
    "should_skip_source",
    "FavoriteUpdateNotifier",
    "UserRefresher",
    "process_all",
    "refresh_records_and_favorites",
    "split_batches",
]
