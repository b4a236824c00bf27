"""
Detached per-user summary emails for favorite updates.

The reconciliation of a user never waits for email delivery: ``dispatch``
spawns a background task and returns immediately. Every failure is logged
inside the task.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Optional

from src.config.settings import DEFAULT_SITE_URL
from src.mailer import (
    EmailService,
    batch_favorite_update_email,
    favorite_update_subject,
)
from src.reconcile.models import FavoriteUpdate

if TYPE_CHECKING:
    from src.storage.base import BaseConfigStore, BaseRecordStore


logger = logging.getLogger("reconcile")


class FavoriteUpdateNotifier:
    """
    Sends one batched summary email per user and pass.

    Background tasks are kept in ``self._tasks`` until they finish so they are
    not garbage collected mid-flight; ``drain`` waits for the remaining ones.
    """

    def __init__(
        self,
        store: BaseRecordStore,
        config_store: BaseConfigStore,
        email_service: EmailService,
        site_url: str = DEFAULT_SITE_URL,
    ):
        self.store = store
        self.config_store = config_store
        self.email_service = email_service
        self.site_url = site_url.rstrip("/")
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def dispatch(self, user: str, updates: list[FavoriteUpdate]) -> Optional[asyncio.Task]:
        """Start the summary email for ``user`` in the background."""
        if not updates:
            return None
        task = asyncio.create_task(
            self.send_summary(user, list(updates)), name=f"favorite-email-{user}"
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def send_summary(self, user: str, updates: list[FavoriteUpdate]) -> bool:
        """
        Email the user a summary of ``updates`` if they and the site allow it.

        Returns:
            True if an email was sent
        """
        try:
            email = await self.store.get_user_email(user)
            wants_email = await self.store.get_email_notification_preference(user)
            if not email or not wants_email:
                logger.debug(f"Skipping summary email for {user}: not opted in")
                return False

            config = await self.config_store.get_config()
            if not config.email_config.enabled:
                logger.debug("Skipping summary email: email disabled")
                return False

            await self.email_service.send(
                config.email_config,
                to=email,
                subject=favorite_update_subject(updates),
                html=batch_favorite_update_email(
                    user, updates, self.site_url, config.site_config.site_name
                ),
            )
            logger.info(f"Summary email sent to {email} ({len(updates)} updates)")
            return True
        except Exception as e:
            logger.error(f"Failed to send summary email to {user}: {e}")
            return False

    async def drain(self) -> None:
        """Wait for every dispatched email task to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
