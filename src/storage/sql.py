import asyncio
import copy
from typing import Optional

from src.config.models import AdminConfig
from src.db import (
    AdminConfigRow,
    FavoriteRow,
    NotificationRow,
    PlayRecordRow,
    User,
    get_db_session,
)
from src.reconcile.models import (
    FavoriteRecord,
    Notification,
    PlayRecord,
    record_key,
)

from .base import BaseConfigStore, BaseRecordStore


ADMIN_CONFIG_ID = 1


class SQLConfigStore(BaseConfigStore):
    """Admin config document stored as one JSON row."""

    def __init__(self):
        self._cached: Optional[AdminConfig] = None
        self._lock = asyncio.Lock()

    async def get_config(self) -> AdminConfig:
        async with self._lock:
            if self._cached is None:
                self._cached = await asyncio.to_thread(self._load)
            return self._cached

    async def save_admin_config(self, config: AdminConfig) -> None:
        document = copy.deepcopy(config.to_dict())
        await asyncio.to_thread(self._store, document)
        self._cached = config

    def invalidate(self) -> None:
        self._cached = None

    def _load(self) -> AdminConfig:
        with get_db_session() as session:
            row = session.get(AdminConfigRow, ADMIN_CONFIG_ID)
            return AdminConfig.from_dict(row.document if row else None)

    def _store(self, document: dict) -> None:
        with get_db_session() as session:
            row = session.get(AdminConfigRow, ADMIN_CONFIG_ID)
            if row is None:
                session.add(AdminConfigRow(id=ADMIN_CONFIG_ID, document=document))
            else:
                row.document = document
            session.commit()


def _to_play_record(row: PlayRecordRow) -> PlayRecord:
    return PlayRecord(
        title=row.title,
        source_name=row.source_name,
        cover=row.cover,
        index=row.episode_index,
        total_episodes=row.total_episodes,
        play_time=row.play_time,
        total_time=row.total_time,
        year=row.year,
        save_time=row.save_time,
        search_title=row.search_title,
        new_episodes=row.new_episodes,
    )


def _to_favorite(row: FavoriteRow) -> FavoriteRecord:
    return FavoriteRecord(
        title=row.title,
        source_name=row.source_name,
        cover=row.cover,
        year=row.year,
        total_episodes=row.total_episodes,
        save_time=row.save_time,
        search_title=row.search_title,
        origin=row.origin,
    )


class SQLRecordStore(BaseRecordStore):
    """
    Users, play records, favorites and notifications in SQLite.

    Every method runs its session in a worker thread so the event loop keeps
    interleaving other users while the database is busy.
    """

    async def get_all_users(self) -> list[str]:
        return await asyncio.to_thread(self._get_all_users)

    async def get_all_play_records(self, user: str) -> dict[str, PlayRecord]:
        return await asyncio.to_thread(self._get_all_play_records, user)

    async def get_all_favorites(self, user: str) -> dict[str, FavoriteRecord]:
        return await asyncio.to_thread(self._get_all_favorites, user)

    async def save_play_record(
        self, user: str, source: str, source_id: str, record: PlayRecord
    ) -> None:
        await asyncio.to_thread(self._save_play_record, user, source, source_id, record)

    async def save_favorite(
        self, user: str, source: str, source_id: str, favorite: FavoriteRecord
    ) -> None:
        await asyncio.to_thread(self._save_favorite, user, source, source_id, favorite)

    async def add_notification(self, user: str, notification: Notification) -> None:
        await asyncio.to_thread(self._add_notification, user, notification)

    async def get_user_email(self, user: str) -> Optional[str]:
        row = await asyncio.to_thread(self._get_user, user)
        return row.email if row else None

    async def get_email_notification_preference(self, user: str) -> bool:
        row = await asyncio.to_thread(self._get_user, user)
        return bool(row and row.email_notifications)

    async def get_user_role(self, user: str) -> Optional[str]:
        row = await asyncio.to_thread(self._get_user, user)
        return row.role.value if row else None

    # ============ SYNC HELPERS ============

    def _get_all_users(self) -> list[str]:
        with get_db_session() as session:
            rows = session.query(User.username).order_by(User.created_at).all()
            return [row[0] for row in rows]

    def _get_user(self, user: str) -> Optional[User]:
        with get_db_session() as session:
            row = session.get(User, user)
            if row is not None:
                session.expunge(row)
            return row

    def _get_all_play_records(self, user: str) -> dict[str, PlayRecord]:
        with get_db_session() as session:
            rows = session.query(PlayRecordRow).filter_by(username=user).all()
            return {record_key(r.source, r.source_id): _to_play_record(r) for r in rows}

    def _get_all_favorites(self, user: str) -> dict[str, FavoriteRecord]:
        with get_db_session() as session:
            rows = session.query(FavoriteRow).filter_by(username=user).all()
            return {record_key(r.source, r.source_id): _to_favorite(r) for r in rows}

    def _save_play_record(
        self, user: str, source: str, source_id: str, record: PlayRecord
    ) -> None:
        with get_db_session() as session:
            row = (
                session.query(PlayRecordRow)
                .filter_by(username=user, source=source, source_id=source_id)
                .first()
            )
            if row is None:
                row = PlayRecordRow(username=user, source=source, source_id=source_id)
                session.add(row)
            row.title = record.title
            row.source_name = record.source_name
            row.cover = record.cover
            row.episode_index = record.index
            row.total_episodes = record.total_episodes
            row.play_time = record.play_time
            row.total_time = record.total_time
            row.year = record.year
            row.save_time = record.save_time
            row.search_title = record.search_title
            row.new_episodes = record.new_episodes
            session.commit()

    def _save_favorite(
        self, user: str, source: str, source_id: str, favorite: FavoriteRecord
    ) -> None:
        with get_db_session() as session:
            row = (
                session.query(FavoriteRow)
                .filter_by(username=user, source=source, source_id=source_id)
                .first()
            )
            if row is None:
                row = FavoriteRow(username=user, source=source, source_id=source_id)
                session.add(row)
            row.title = favorite.title
            row.source_name = favorite.source_name
            row.cover = favorite.cover
            row.year = favorite.year
            row.total_episodes = favorite.total_episodes
            row.save_time = favorite.save_time
            row.search_title = favorite.search_title
            row.origin = favorite.origin
            session.commit()

    def _add_notification(self, user: str, notification: Notification) -> None:
        with get_db_session() as session:
            session.add(
                NotificationRow(
                    id=notification.id,
                    username=user,
                    type=notification.type,
                    title=notification.title,
                    message=notification.message,
                    timestamp=notification.timestamp,
                    read=notification.read,
                    extra=notification.metadata,
                )
            )
            session.commit()
