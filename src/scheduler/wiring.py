"""Builds a ``CronScheduler`` backed by the SQLAlchemy stores and real clients."""

import functools

from src.anime import AnimeSubscriptionPoller, get_provider
from src.config.settings import Settings
from src.db import configure_database
from src.live import LiveChannelRefresher
from src.mailer import EmailService
from src.openlist import OfflineDownloader, OpenListClient, OpenListScanner
from src.reconcile import CMSDetailFetcher, FavoriteUpdateNotifier
from src.storage import SQLConfigStore, SQLRecordStore

from .orchestrator import CronScheduler


def build_scheduler(settings: Settings) -> CronScheduler:
    """
    Configure the database and assemble every collaborator of a pass.

    Raises:
        ValueError: If ``settings.database_url`` is not usable
    """
    configure_database(settings.database_url)

    timeout = settings.http_timeout
    config_store = SQLConfigStore()
    record_store = SQLRecordStore()
    email_service = EmailService(timeout=timeout)

    return CronScheduler(
        settings=settings,
        config_store=config_store,
        record_store=record_store,
        detail_fetcher=CMSDetailFetcher(config_store, timeout=timeout),
        notifier=FavoriteUpdateNotifier(
            record_store, config_store, email_service, site_url=settings.site_url
        ),
        live_refresher=LiveChannelRefresher(timeout=timeout),
        openlist_scanner=OpenListScanner(
            config_store,
            client_factory=lambda openlist: OpenListClient(
                openlist.url, openlist.username, openlist.password, timeout
            ),
        ),
        anime_poller=AnimeSubscriptionPoller(
            config_store,
            record_store,
            downloader=OfflineDownloader(config_store, timeout=timeout),
            email_service=email_service,
            provider_factory=functools.partial(get_provider, timeout=timeout),
        ),
    )
