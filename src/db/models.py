"""
SQLAlchemy ORM models for the reconciliation jobs.

This module defines the database schema using SQLAlchemy's declarative base.
All models inherit from Base and use consistent naming conventions.

Models:
    User: A site user with role and email preferences
    PlayRecordRow: A user's play progress on one (source, source_id)
    FavoriteRow: A user's favorite on one (source, source_id)
    NotificationRow: An in-app notification
    AdminConfigRow: The single admin config JSON document
    TimestampMixin: Provides automatic created_at/updated_at timestamps

Enums:
    UserRole: Site roles, the owner receives subscription notifications
"""

from enum import Enum as PyEnum
from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Column,
    DateTime,
    Enum,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class TimestampMixin:
    """
    Mixin to add automatic timestamp tracking to models.

    Provides:
        created_at: Timestamp when record was created (set automatically)
        updated_at: Timestamp when record was last modified (updated automatically)
    """

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )


class UserRole(str, PyEnum):
    OWNER = "owner"
    ADMIN = "admin"
    USER = "user"


class User(Base, TimestampMixin):
    __tablename__ = "users"

    username = Column(String, primary_key=True)
    role = Column(
        Enum(UserRole), nullable=False, default=UserRole.USER, server_default="USER"
    )
    email = Column(String, nullable=True)
    email_notifications = Column(Boolean, nullable=False, default=False)

    def __repr__(self):
        return f"<User(username={self.username}, role={self.role.value})>"


class PlayRecordRow(Base, TimestampMixin):
    """
    A user's playback progress on one video.

    Attributes:
        episode_index: Index of the episode being watched
        total_episodes: Episode count last seen upstream
        new_episodes: Episodes released since the user last watched (reset by the
            player, only ever increased by the reconciliation job)
        play_time / total_time: Position and duration in seconds
        save_time: Epoch ms of the last save by the player
    """

    __tablename__ = "play_records"
    __table_args__ = (UniqueConstraint("username", "source", "source_id"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String, nullable=False, index=True)
    source = Column(String, nullable=False)
    source_id = Column(String, nullable=False)

    title = Column(String, nullable=False)
    source_name = Column(String, nullable=False, default="")
    cover = Column(String, nullable=False, default="")
    year = Column(String, nullable=False, default="")
    search_title = Column(String, nullable=False, default="")
    episode_index = Column(Integer, nullable=False, default=0)
    total_episodes = Column(Integer, nullable=False, default=0)
    play_time = Column(Integer, nullable=False, default=0)
    total_time = Column(Integer, nullable=False, default=0)
    save_time = Column(BigInteger, nullable=False, default=0)
    new_episodes = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return (
            f"<PlayRecordRow(username={self.username}, key={self.source}+{self.source_id}, "
            f"episodes={self.total_episodes})>"
        )


class FavoriteRow(Base, TimestampMixin):
    __tablename__ = "favorites"
    __table_args__ = (UniqueConstraint("username", "source", "source_id"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String, nullable=False, index=True)
    source = Column(String, nullable=False)
    source_id = Column(String, nullable=False)

    title = Column(String, nullable=False)
    source_name = Column(String, nullable=False, default="")
    cover = Column(String, nullable=False, default="")
    year = Column(String, nullable=False, default="")
    search_title = Column(String, nullable=False, default="")
    total_episodes = Column(Integer, nullable=False, default=0)
    save_time = Column(BigInteger, nullable=False, default=0)
    origin = Column(String, nullable=False, default="vod")  # "vod" or "live"


class NotificationRow(Base):
    __tablename__ = "notifications"

    id = Column(String, primary_key=True)
    username = Column(String, nullable=False, index=True)
    type = Column(String, nullable=False)
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    timestamp = Column(BigInteger, nullable=False)
    read = Column(Boolean, nullable=False, default=False)
    # "metadata" is reserved on declarative classes
    extra = Column("metadata", JSON, nullable=False, default=dict)


class AdminConfigRow(Base, TimestampMixin):
    __tablename__ = "admin_config"

    id = Column(Integer, primary_key=True)
    document = Column(JSON, nullable=False)
