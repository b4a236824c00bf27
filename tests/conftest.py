import asyncio

import pytest

from src.config.models import AdminConfig, EmailConfig, SMTPConfig
from src.config.settings import Settings
from src.reconcile.models import CatalogDetail
from src.storage.base import BaseConfigStore, BaseRecordStore


# ---------- Fakes ----------
class FakeConfigStore(BaseConfigStore):
    def __init__(self, config=None):
        self.config = config or AdminConfig()
        self.saves = 0

    async def get_config(self):
        return self.config

    async def save_admin_config(self, config):
        self.config = config
        self.saves += 1


class FakeRecordStore(BaseRecordStore):
    def __init__(self):
        self.users = []
        self.play_records = {}
        self.favorites = {}
        self.saved_play_records = []
        self.saved_favorites = []
        self.notifications = {}
        self.emails = {}
        self.email_opt_in = {}
        self.roles = {}
        self.failing_users = set()
        self.fail_notifications = False

    async def get_all_users(self):
        return list(self.users)

    async def get_all_play_records(self, user):
        if user in self.failing_users:
            raise RuntimeError(f"storage down for {user}")
        return dict(self.play_records.get(user, {}))

    async def get_all_favorites(self, user):
        if user in self.failing_users:
            raise RuntimeError(f"storage down for {user}")
        return dict(self.favorites.get(user, {}))

    async def save_play_record(self, user, source, source_id, record):
        self.saved_play_records.append((user, source, source_id, record))

    async def save_favorite(self, user, source, source_id, favorite):
        self.saved_favorites.append((user, source, source_id, favorite))

    async def add_notification(self, user, notification):
        if self.fail_notifications:
            raise RuntimeError("notification store down")
        self.notifications.setdefault(user, []).append(notification)

    async def get_user_email(self, user):
        return self.emails.get(user)

    async def get_email_notification_preference(self, user):
        return self.email_opt_in.get(user, False)

    async def get_user_role(self, user):
        return self.roles.get(user, "user")


class FakeEmailService:
    def __init__(self, fail=False):
        self.sent = []
        self.fail = fail

    async def send(self, email_config, to, subject, html):
        if self.fail:
            raise RuntimeError("smtp down")
        self.sent.append({"to": to, "subject": subject, "html": html})


class FakeFetcher:
    """Detail fetcher returning ``episodes[(source, id)]`` episodes."""

    def __init__(self, episodes=None, delay=0.0):
        self.episodes = episodes or {}
        self.delay = delay
        self.calls = []
        self.failures = {}

    async def __call__(self, source, source_id, fallback_title=""):
        self.calls.append((source, source_id))
        if self.delay:
            await asyncio.sleep(self.delay)
        remaining = self.failures.get((source, source_id), 0)
        if remaining:
            self.failures[(source, source_id)] = remaining - 1
            raise RuntimeError("upstream unavailable")
        count = self.episodes.get((source, source_id), 0)
        return CatalogDetail(
            source=source,
            id=source_id,
            title=fallback_title,
            episodes=[f"ep{i}" for i in range(1, count + 1)],
        )


# ---------- Fixtures ----------
@pytest.fixture
def config_store():
    return FakeConfigStore()


@pytest.fixture
def record_store():
    return FakeRecordStore()


@pytest.fixture
def email_service():
    return FakeEmailService()


@pytest.fixture
def email_config():
    return EmailConfig(
        enabled=True,
        provider="smtp",
        smtp=SMTPConfig(host="smtp.example.com", user="bot@example.com", password="x"),
    )


@pytest.fixture
def settings():
    return Settings(owner_username="owner", site_url="https://tv.example.com")
