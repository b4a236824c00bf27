from abc import ABC, abstractmethod
from typing import Optional

from src.config.models import AdminConfig
from src.reconcile.models import FavoriteRecord, Notification, PlayRecord


class BaseConfigStore(ABC):
    """
    Abstract base class for the admin config document store.

    Implementations keep one in-process config object: ``get_config`` returns
    the same instance until ``save_admin_config`` or ``invalidate`` replaces
    it, so jobs of the same pass mutate and save a shared document.
    """

    @abstractmethod
    async def get_config(self) -> AdminConfig:
        """Return the current admin config."""

    @abstractmethod
    async def save_admin_config(self, config: AdminConfig) -> None:
        """Persist the whole admin config document.

        Args:
            config (AdminConfig): The document to save.
        """

    def invalidate(self) -> None:
        """Drop the cached document so the next read hits the backend."""


class BaseRecordStore(ABC):
    """
    Abstract base class for per-user records and notifications.

    Records are returned keyed by ``source+id`` (see
    ``src.reconcile.models.record_key``).
    """

    @abstractmethod
    async def get_all_users(self) -> list[str]:
        """Return every known username."""

    @abstractmethod
    async def get_all_play_records(self, user: str) -> dict[str, PlayRecord]:
        """Return the user's play records keyed by ``source+id``."""

    @abstractmethod
    async def get_all_favorites(self, user: str) -> dict[str, FavoriteRecord]:
        """Return the user's favorites keyed by ``source+id``."""

    @abstractmethod
    async def save_play_record(
        self, user: str, source: str, source_id: str, record: PlayRecord
    ) -> None:
        """Insert or replace a play record."""

    @abstractmethod
    async def save_favorite(
        self, user: str, source: str, source_id: str, favorite: FavoriteRecord
    ) -> None:
        """Insert or replace a favorite."""

    @abstractmethod
    async def add_notification(self, user: str, notification: Notification) -> None:
        """Store an in-app notification for the user."""

    @abstractmethod
    async def get_user_email(self, user: str) -> Optional[str]:
        """Return the user's email address, if any."""

    @abstractmethod
    async def get_email_notification_preference(self, user: str) -> bool:
        """Return True if the user opted in to email notifications."""

    @abstractmethod
    async def get_user_role(self, user: str) -> Optional[str]:
        """Return the user's role (``owner``, ``admin`` or ``user``)."""
