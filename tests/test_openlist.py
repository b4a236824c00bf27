import asyncio
import threading

import pytest

from conftest import FakeConfigStore
from src.config.models import (
    AdminConfig,
    AnimeSubscription,
    AnimeSubscriptionConfig,
    OpenListConfig,
)
from src.openlist import (
    OfflineDownloader,
    OpenListClient,
    OpenListError,
    OpenListScanner,
    merge_metainfo,
    refresh_openlist,
    scan_skip_reason,
)


NOW = 1_700_000_000_000
MINUTE = 60 * 1000


def openlist(**overrides):
    values = dict(
        enabled=True,
        url="http://openlist:5244",
        username="admin",
        password="pw",
        scan_interval=60,
        last_refresh_time=0,
    )
    values.update(overrides)
    return OpenListConfig(**values)


class FakeScanner:
    def __init__(self):
        self.calls = []

    async def start_openlist_refresh(self, clear_metainfo=False):
        self.calls.append(clear_metainfo)
        return "task-1"


class FakeClient:
    def __init__(self, entries):
        self.entries = entries

    def list_dir(self, path):
        return self.entries


# ---------- Gate ----------
@pytest.mark.parametrize(
    "overrides,reason",
    [
        ({"enabled": False}, "feature disabled"),
        ({"password": ""}, "not configured"),
        ({"scan_interval": 0}, "scheduled scan turned off"),
    ],
)
def test_gate_skip_reasons(overrides, reason):
    assert scan_skip_reason(openlist(**overrides), NOW) == reason


@pytest.mark.parametrize("last_refresh", [0, NOW - 10 * MINUTE, NOW - 10_000 * MINUTE])
def test_gate_interval_below_minimum_always_skips(last_refresh):
    reason = scan_skip_reason(openlist(scan_interval=30, last_refresh_time=last_refresh), NOW)
    assert reason is not None
    assert "minimum" in reason


def test_gate_cooldown():
    config = openlist(scan_interval=60, last_refresh_time=NOW - 45 * MINUTE)
    assert "15 min until the next one" in scan_skip_reason(config, NOW)


def test_gate_due():
    config = openlist(scan_interval=60, last_refresh_time=NOW - 60 * MINUTE)
    assert scan_skip_reason(config, NOW) is None


def test_refresh_openlist_starts_incremental_scan():
    store = FakeConfigStore(AdminConfig(openlist_config=openlist()))
    scanner = FakeScanner()

    task_id = asyncio.run(refresh_openlist(store, scanner, now=NOW))

    assert task_id == "task-1"
    assert scanner.calls == [False]


def test_refresh_openlist_skipped():
    store = FakeConfigStore(AdminConfig(openlist_config=openlist(scan_interval=30)))
    scanner = FakeScanner()

    assert asyncio.run(refresh_openlist(store, scanner, now=NOW)) is None
    assert scanner.calls == []


# ---------- Scanner ----------
def test_merge_metainfo_adds_new_folders_only():
    metainfo = {"Old": {"path": "/media/Old"}}
    entries = [
        {"name": "Old", "is_dir": True},
        {"name": "New", "is_dir": True, "modified": "2024-01-01"},
        {"name": "file.mkv", "is_dir": False},
    ]

    added = merge_metainfo(metainfo, "/media/", entries, NOW)

    assert added == 1
    assert metainfo["New"] == {"path": "/media/New", "modified": "2024-01-01", "added_at": NOW}
    assert metainfo["Old"] == {"path": "/media/Old"}


@pytest.mark.parametrize("clear,expected", [(False, {"Old", "New"}), (True, {"New"})])
def test_scan_updates_config(clear, expected):
    config = AdminConfig(
        openlist_config=openlist(root_path="/media", metainfo={"Old": {"path": "/media/Old"}})
    )
    store = FakeConfigStore(config)
    scanner = OpenListScanner(
        store,
        client_factory=lambda _: FakeClient([{"name": "New", "is_dir": True}]),
        clock=lambda: NOW,
    )

    async def run():
        task_id = await scanner.start_openlist_refresh(clear_metainfo=clear)
        await scanner.drain()
        return task_id

    task_id = asyncio.run(run())

    assert scanner.status[task_id] == "completed"
    assert set(config.openlist_config.metainfo) == expected
    assert config.openlist_config.resource_count == len(expected)
    assert config.openlist_config.last_refresh_time == NOW
    assert store.saves == 1


class BlockingClient:
    def __init__(self, entries):
        self.entries = entries
        self.entered = threading.Event()
        self.release = threading.Event()

    def list_dir(self, path):
        self.entered.set()
        self.release.wait(timeout=5)
        return self.entries


def subscriptions_at(last_episode):
    return AnimeSubscriptionConfig(
        enabled=True,
        subscriptions=[AnimeSubscription(id="s1", title="Show", last_episode=last_episode)],
    )


def test_scan_keeps_config_saved_while_listing():
    stale = AdminConfig(
        openlist_config=openlist(root_path="/media"),
        anime_subscription_config=subscriptions_at(2),
    )
    store = FakeConfigStore(stale)
    client = BlockingClient([{"name": "New", "is_dir": True}])
    scanner = OpenListScanner(store, client_factory=lambda _: client, clock=lambda: NOW)

    async def run():
        await scanner.start_openlist_refresh()
        while not client.entered.is_set():
            await asyncio.sleep(0.001)
        # next pass reloads the config and advances the watermark
        store.invalidate()
        fresh = AdminConfig(
            openlist_config=openlist(root_path="/media"),
            anime_subscription_config=subscriptions_at(5),
        )
        await store.save_admin_config(fresh)
        client.release.set()
        await scanner.drain()
        return fresh

    fresh = asyncio.run(run())

    assert store.config is fresh
    assert store.config.anime_subscription_config.subscriptions[0].last_episode == 5
    assert set(store.config.openlist_config.metainfo) == {"New"}
    assert store.config.openlist_config.last_refresh_time == NOW
    assert store.saves == 2


def test_scan_failure_is_recorded():
    store = FakeConfigStore(AdminConfig(openlist_config=openlist()))

    def broken_factory(_):
        raise OpenListError("login failed")

    scanner = OpenListScanner(store, client_factory=broken_factory)

    async def run():
        task_id = await scanner.start_openlist_refresh()
        await scanner.drain()
        return task_id

    task_id = asyncio.run(run())

    assert scanner.status[task_id] == "failed"
    assert store.saves == 0


# ---------- Client ----------
class FakeResponse:
    def __init__(self, body, ok=True):
        self.body = body
        self.ok = ok

    def json(self):
        return self.body


def test_client_logs_in_once_and_lists(monkeypatch):
    posts = []

    def fake_post(url, json, headers, timeout):
        posts.append((url, headers.get("Authorization")))
        if url.endswith("/api/auth/login"):
            return FakeResponse({"code": 200, "data": {"token": "tok"}})
        return FakeResponse({"code": 200, "data": {"content": [{"name": "A", "is_dir": True}]}})

    monkeypatch.setattr("src.openlist.client.requests.post", fake_post)
    client = OpenListClient("http://openlist:5244/", "admin", "pw")

    assert client.list_dir("/") == [{"name": "A", "is_dir": True}]
    client.add_offline_download("magnet:?xt=1", "/downloads/Show")

    assert posts == [
        ("http://openlist:5244/api/auth/login", None),
        ("http://openlist:5244/api/fs/list", "tok"),
        ("http://openlist:5244/api/fs/add_offline_download", "tok"),
    ]


def test_client_raises_on_error_code(monkeypatch):
    monkeypatch.setattr(
        "src.openlist.client.requests.post",
        lambda *args, **kwargs: FakeResponse({"code": 500, "message": "storage not found"}),
    )
    client = OpenListClient("http://openlist:5244", "admin", "pw")

    with pytest.raises(OpenListError, match="storage not found"):
        client.get_token()


@pytest.mark.parametrize("overrides", [{"enabled": False}, {"url": ""}])
def test_offline_downloader_requires_configuration(overrides):
    store = FakeConfigStore(AdminConfig(openlist_config=openlist(**overrides)))

    with pytest.raises(OpenListError):
        asyncio.run(OfflineDownloader(store)("magnet:?xt=1", "/downloads/Show"))
