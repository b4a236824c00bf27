"""
Anime subscription poller.

Each enabled subscription is checked at most once per 30 minutes: its
provider is searched, new episodes (above the ``last_episode`` watermark) are
submitted to OpenList offline download in ascending order, and the watermark
advances after each confirmed submission. The first failed submission stops
the subscription for this cycle so a later episode is never downloaded before
an earlier one.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Awaitable, Callable, Optional

import uuid_utils as uuid

from src.anime.episodes import extract_episode, matches_filter
from src.anime.providers import ReleaseItem, RSSProvider, get_provider
from src.config.models import AdminConfig, AnimeSubscription
from src.config.settings import SUBSCRIPTION_MIN_CHECK_INTERVAL_MINUTES
from src.logger import log_function, setup_logging
from src.mailer import EmailService, anime_update_email
from src.reconcile.models import Notification

if TYPE_CHECKING:
    from src.storage.base import BaseConfigStore, BaseRecordStore


logger = setup_logging(logger_name="anime", log_file="logs/anime.log")

MIN_CHECK_INTERVAL_MS = SUBSCRIPTION_MIN_CHECK_INTERVAL_MINUTES * 60 * 1000

Downloader = Callable[[str, str], Awaitable[None]]
ProviderFactory = Callable[[str], RSSProvider]


class ConfigError(Exception):
    pass


@dataclass
class CheckResult:
    found: int = 0
    downloaded: int = 0
    episodes: list[int] = field(default_factory=list)


def select_new_episodes(
    items: list[ReleaseItem], filter_text: str, last_episode: int
) -> list[tuple[int, ReleaseItem]]:
    """
    Pick releases of episodes above ``last_episode``, ascending.

    Items must match the filter and carry an episode number; when several
    releases share an episode number the first one in feed order is kept.
    """
    by_episode: dict[int, ReleaseItem] = {}
    for item in items:
        if not matches_filter(item.title, filter_text):
            continue
        episode = extract_episode(item.title)
        if episode is None or episode <= last_episode:
            continue
        by_episode.setdefault(episode, item)
    return sorted(by_episode.items(), key=lambda pair: pair[0])


def download_path(offline_download_path: str, title: str) -> str:
    return f"{offline_download_path.rstrip('/')}/{title}"


class AnimeSubscriptionPoller:
    """
    Checks anime subscriptions and submits new episodes for download.

    Args:
        config_store: Admin config store (subscriptions live in the config)
        record_store: Used to find the site owner and notify users
        downloader: ``async (torrent_url, path)``, raises on failure
        email_service: Sends update emails when email is enabled
        provider_factory: Returns the RSS provider for a subscription source
        clock: Returns the current time in epoch ms
    """

    def __init__(
        self,
        config_store: BaseConfigStore,
        record_store: BaseRecordStore,
        downloader: Downloader,
        email_service: EmailService,
        provider_factory: ProviderFactory = get_provider,
        clock: Optional[Callable[[], int]] = None,
    ):
        self.config_store = config_store
        self.record_store = record_store
        self.downloader = downloader
        self.email_service = email_service
        self.provider_factory = provider_factory
        self._clock = clock or (lambda: int(time.time() * 1000))

    def due(self, subscription: AnimeSubscription, now: int) -> bool:
        """Return True if the subscription may be checked at ``now``."""
        if not subscription.enabled:
            logger.info(f"Skipping disabled subscription: {subscription.title}")
            return False
        elapsed = now - (subscription.last_check_time or 0)
        if elapsed < MIN_CHECK_INTERVAL_MS:
            remaining = -(-(MIN_CHECK_INTERVAL_MS - elapsed) // 60000)
            logger.info(
                f"Skipping {subscription.title}: checked {elapsed // 60000} min ago, "
                f"{remaining} min until the next check"
            )
            return False
        return True

    async def check_subscription(
        self, subscription: AnimeSubscription, config: AdminConfig
    ) -> CheckResult:
        """
        Search, filter and download new episodes of one subscription.

        ``last_check_time`` is updated even if the check fails.

        Raises:
            ConfigError: If the offline download path is not configured
            ProviderError: If the RSS search fails
        """
        result = CheckResult()
        try:
            offline_path = config.openlist_config.offline_download_path
            if not offline_path:
                raise ConfigError("OpenList offline download path is not configured")

            provider = self.provider_factory(subscription.source)
            items = await provider.search(subscription.title)
            candidates = select_new_episodes(
                items, subscription.filter_text, subscription.last_episode
            )
            result.found = len(candidates)

            target = download_path(offline_path, subscription.title)
            for episode, item in candidates:
                try:
                    await self.downloader(item.torrent_url, target)
                except Exception as e:
                    logger.error(
                        f"{subscription.title}: failed to queue episode {episode}, "
                        f"stopping this cycle: {e}"
                    )
                    break
                subscription.last_episode = max(subscription.last_episode, episode)
                result.episodes.append(episode)
                logger.info(f"{subscription.title}: queued episode {episode}")
        finally:
            subscription.last_check_time = self._clock()

        result.downloaded = len(result.episodes)
        if result.episodes:
            try:
                await self.send_update_notifications(subscription, result.episodes, config)
            except Exception as e:
                logger.error(f"{subscription.title}: failed to send notifications: {e}")
        return result

    @log_function(logger_name="anime", log_execution_time=True)
    async def check_all(self) -> Optional[dict[str, int]]:
        """
        Check every due subscription, one after another.

        The config is saved once at the end if any subscription was checked.

        Returns:
            Dictionary with statistics: total, checked, skipped, errors; None if
            the feature is disabled or the task failed
        """
        try:
            config = await self.config_store.get_config()
            anime_config = config.anime_subscription_config
            if not anime_config.enabled:
                logger.info("Anime subscriptions disabled, skipping check")
                return None

            subscriptions = anime_config.subscriptions
            logger.info(f"Checking {len(subscriptions)} anime subscriptions")
            stats = {"total": len(subscriptions), "checked": 0, "skipped": 0, "errors": 0}
            changed = False

            for subscription in subscriptions:
                if not self.due(subscription, self._clock()):
                    stats["skipped"] += 1
                    continue

                changed = True
                try:
                    logger.info(
                        f"Checking {subscription.title} (source: {subscription.source}, "
                        f"last episode: {subscription.last_episode})"
                    )
                    result = await self.check_subscription(subscription, config)
                    logger.info(
                        f"{subscription.title}: {result.found} new episodes found, "
                        f"{result.downloaded} queued"
                    )
                    stats["checked"] += 1
                except Exception as e:
                    logger.error(f"{subscription.title}: check failed: {e}")
                    stats["errors"] += 1

            if changed:
                await self.config_store.save_admin_config(config)
                logger.info("Anime subscription state saved")

            logger.info(
                f"Anime check finished - total: {stats['total']}, checked: {stats['checked']}, "
                f"skipped: {stats['skipped']}, failed: {stats['errors']}"
            )
            return stats
        except Exception as e:
            logger.error(f"Anime subscription check failed: {e}", exc_info=True)
            return None

    async def find_owner(self) -> Optional[str]:
        for username in await self.record_store.get_all_users():
            if await self.record_store.get_user_role(username) == "owner":
                return username
        return None

    async def send_update_notifications(
        self, subscription: AnimeSubscription, episodes: list[int], config: AdminConfig
    ) -> None:
        """Notify the site owner and the subscription creator, then email them."""
        try:
            owner = await self.find_owner()
        except Exception as e:
            logger.error(f"Failed to look up the site owner: {e}")
            owner = None
        if not owner:
            logger.warning("No site owner found, skipping anime notifications")
            return

        recipients = [owner]
        if subscription.created_by and subscription.created_by != owner:
            recipients.append(subscription.created_by)

        episode_list = "、".join(str(ep) for ep in episodes)
        title = f"追番更新：{subscription.title}"
        message = (
            f"您订阅的番剧《{subscription.title}》有新集数更新："
            f"第 {episode_list} 集，已下载到私人影库"
        )

        for username in recipients:
            try:
                await self.record_store.add_notification(
                    username,
                    Notification(
                        id=str(uuid.uuid7()),
                        type="anime_subscription_update",
                        title=title,
                        message=message,
                        timestamp=self._clock(),
                        read=False,
                        metadata={
                            "subscription_id": subscription.id,
                            "subscription_title": subscription.title,
                            "episodes": list(episodes),
                        },
                    ),
                )
                logger.info(f"Notified {username} about {subscription.title}")
            except Exception as e:
                logger.error(f"Failed to notify {username}: {e}")

        if not config.email_config.enabled:
            return

        for username in recipients:
            try:
                email = await self.record_store.get_user_email(username)
                if not email:
                    continue
                await self.email_service.send(
                    config.email_config,
                    to=email,
                    subject=title,
                    html=anime_update_email(
                        username, subscription.title, episodes, subscription.source
                    ),
                )
                logger.info(f"Emailed {email} about {subscription.title}")
            except Exception as e:
                logger.error(f"Failed to email {username}: {e}")
