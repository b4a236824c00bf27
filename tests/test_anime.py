import asyncio

import pytest
import requests

from conftest import FakeConfigStore, FakeEmailService, FakeRecordStore
from src.anime import (
    AcgRipProvider,
    AnimeSubscriptionPoller,
    ConfigError,
    DmhyProvider,
    MikanProvider,
    ProviderError,
    ReleaseItem,
    extract_episode,
    get_provider,
    matches_filter,
    parse_rss_items,
    select_new_episodes,
)
from src.config.models import (
    AdminConfig,
    AnimeSubscription,
    AnimeSubscriptionConfig,
    OpenListConfig,
)


NOW = 1_700_000_000_000
MINUTE = 60 * 1000

RSS = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>search</title>
    <item>
      <title>[Sub] Frieren [03][1080p]</title>
      <link>https://acg.rip/t/3</link>
      <guid>guid-3</guid>
      <pubDate>Mon, 01 Jan 2024 00:00:00 +0000</pubDate>
      <enclosure url="https://acg.rip/t/3.torrent" type="application/x-bittorrent"/>
    </item>
    <item>
      <title>[Sub] Frieren [04][1080p]</title>
      <link>https://acg.rip/t/4</link>
      <pubDate>Mon, 08 Jan 2024 00:00:00 +0000</pubDate>
      <enclosure url="https://acg.rip/t/4.torrent" type="application/x-bittorrent"/>
    </item>
    <item>
      <title>No link</title>
      <pubDate>Tue</pubDate>
    </item>
  </channel>
</rss>
"""


def item(title, torrent=None):
    return ReleaseItem(
        title=title, link="", guid=title, pub_date="", torrent_url=torrent or title
    )


class FakeProvider:
    def __init__(self, items=None, error=None):
        self.items = items or []
        self.error = error
        self.keywords = []

    async def search(self, keyword):
        self.keywords.append(keyword)
        if self.error:
            raise self.error
        return self.items


class FakeDownloader:
    def __init__(self, fail_on=()):
        self.fail_on = set(fail_on)
        self.calls = []

    async def __call__(self, torrent_url, path):
        self.calls.append((torrent_url, path))
        if torrent_url in self.fail_on:
            raise RuntimeError("offline download rejected")


def make_config(*subscriptions, offline_path="/downloads/anime"):
    return AdminConfig(
        openlist_config=OpenListConfig(
            enabled=True,
            url="http://openlist:5244",
            username="admin",
            password="pw",
            offline_download_path=offline_path,
        ),
        anime_subscription_config=AnimeSubscriptionConfig(
            enabled=True, subscriptions=list(subscriptions)
        ),
    )


def make_poller(config, provider, downloader, record_store=None, email_service=None):
    return AnimeSubscriptionPoller(
        FakeConfigStore(config),
        record_store or FakeRecordStore(),
        downloader,
        email_service or FakeEmailService(),
        provider_factory=lambda name: provider,
        clock=lambda: NOW,
    )


# ---------- Episode extraction ----------
@pytest.mark.parametrize(
    "title,expected",
    [
        ("[Sub] Frieren [03][1080p]", 3),
        ("葬送的芙莉莲 第12集", 12),
        ("葬送的芙莉莲 第7话 简体", 7),
        ("Frieren EP05 1080p", 5),
        ("Frieren - 08 [1080p]", 8),
    ],
)
def test_extract_episode(title, expected):
    assert extract_episode(title) == expected


def test_extract_episode_none():
    assert extract_episode("Frieren Complete Soundtrack") is None


def test_matches_filter():
    assert matches_filter("[Sub] Frieren [03][1080p]", "")
    assert matches_filter("[Sub] Frieren [03][1080p]", "Sub, 1080p")
    assert not matches_filter("[Sub] Frieren [03][720p]", "Sub,1080p")


# ---------- Providers ----------
def test_parse_rss_items():
    items = parse_rss_items(RSS.encode("utf-8"))

    assert [i.title for i in items] == [
        "[Sub] Frieren [03][1080p]",
        "[Sub] Frieren [04][1080p]",
        "No link",
    ]
    assert items[0].guid == "guid-3"
    assert items[0].torrent_url == "https://acg.rip/t/3.torrent"
    assert items[1].guid == "https://acg.rip/t/4"
    assert items[2].guid == "No link-Tue"
    assert items[2].torrent_url == ""


def test_parse_rss_without_channel():
    assert parse_rss_items("<html></html>") == []


def test_get_provider_falls_back_to_acgrip():
    assert isinstance(get_provider("mikan"), MikanProvider)
    assert isinstance(get_provider("dmhy"), DmhyProvider)
    assert isinstance(get_provider("unknown"), AcgRipProvider)
    assert isinstance(get_provider(None), AcgRipProvider)


def test_search_url_encodes_keyword():
    assert AcgRipProvider().search_url(" 葬送 ") == "https://acg.rip/page/1.xml?term=%E8%91%AC%E9%80%81"


def test_fetch_failure_raises_provider_error(monkeypatch):
    def boom(*args, **kwargs):
        raise requests.ConnectionError("no route")

    monkeypatch.setattr("src.anime.providers.requests.get", boom)
    with pytest.raises(ProviderError):
        AcgRipProvider().fetch("x")


# ---------- Candidate selection ----------
def test_select_new_episodes_orders_and_dedupes():
    items = [
        item("Show [05] 1080p"),
        item("Show [02] 1080p"),
        item("Show [03] 1080p", "first-3"),
        item("Show [03] 1080p repack", "second-3"),
        item("Show [04] 720p"),
        item("Show OST"),
    ]

    selected = select_new_episodes(items, "1080p", last_episode=2)

    assert [ep for ep, _ in selected] == [3, 5]
    assert selected[0][1].torrent_url == "first-3"


# ---------- Subscription check ----------
def test_download_failure_stops_the_subscription():
    subscription = AnimeSubscription(id="s1", title="Show", last_episode=2)
    provider = FakeProvider([item("Show [05]"), item("Show [03]"), item("Show [04]")])
    downloader = FakeDownloader(fail_on={"Show [04]"})
    config = make_config(subscription)
    poller = make_poller(config, provider, downloader)

    result = asyncio.run(poller.check_subscription(subscription, config))

    assert [url for url, _ in downloader.calls] == ["Show [03]", "Show [04]"]
    assert result.episodes == [3]
    assert result.downloaded == 1
    assert result.found == 3
    assert subscription.last_episode == 3
    assert subscription.last_check_time == NOW


def test_download_path_uses_title():
    subscription = AnimeSubscription(id="s1", title="Show")
    downloader = FakeDownloader()
    config = make_config(subscription, offline_path="/downloads/")
    poller = make_poller(config, FakeProvider([item("Show [01]")]), downloader)

    asyncio.run(poller.check_subscription(subscription, config))

    assert downloader.calls == [("Show [01]", "/downloads/Show")]


def test_missing_offline_path_raises_and_marks_checked():
    subscription = AnimeSubscription(id="s1", title="Show")
    config = make_config(subscription, offline_path="")
    poller = make_poller(config, FakeProvider(), FakeDownloader())

    with pytest.raises(ConfigError):
        asyncio.run(poller.check_subscription(subscription, config))
    assert subscription.last_check_time == NOW


def test_check_all_skips_recent_and_disabled():
    recent = AnimeSubscription(id="a", title="Recent", last_check_time=NOW - 10 * MINUTE)
    disabled = AnimeSubscription(id="b", title="Off", enabled=False)
    due = AnimeSubscription(id="c", title="Due", last_check_time=NOW - 31 * MINUTE)
    config = make_config(recent, disabled, due)
    provider = FakeProvider()
    poller = make_poller(config, provider, FakeDownloader())

    stats = asyncio.run(poller.check_all())

    assert stats == {"total": 3, "checked": 1, "skipped": 2, "errors": 0}
    assert provider.keywords == ["Due"]
    assert poller.config_store.saves == 1
    assert recent.last_check_time == NOW - 10 * MINUTE


def test_check_all_counts_provider_errors_and_saves():
    subscription = AnimeSubscription(id="a", title="Show")
    config = make_config(subscription)
    poller = make_poller(
        config, FakeProvider(error=ProviderError("503")), FakeDownloader()
    )

    stats = asyncio.run(poller.check_all())

    assert stats["errors"] == 1
    assert subscription.last_check_time == NOW
    assert poller.config_store.saves == 1


def test_check_all_noop_when_disabled():
    config = make_config(AnimeSubscription(id="a", title="Show"))
    config.anime_subscription_config.enabled = False
    provider = FakeProvider()
    poller = make_poller(config, provider, FakeDownloader())

    assert asyncio.run(poller.check_all()) is None
    assert provider.keywords == []
    assert poller.config_store.saves == 0


def test_check_all_without_due_subscriptions_does_not_save():
    config = make_config(AnimeSubscription(id="a", title="Show", last_check_time=NOW))
    poller = make_poller(config, FakeProvider(), FakeDownloader())

    asyncio.run(poller.check_all())

    assert poller.config_store.saves == 0


# ---------- Notifications ----------
def test_downloads_notify_owner_and_creator(email_config):
    record_store = FakeRecordStore()
    record_store.users = ["boss", "fan"]
    record_store.roles = {"boss": "owner"}
    record_store.emails = {"boss": "boss@example.com"}
    email_service = FakeEmailService()
    subscription = AnimeSubscription(id="s1", title="Show", created_by="fan")
    config = make_config(subscription)
    config.email_config = email_config
    poller = make_poller(
        config,
        FakeProvider([item("Show [01]"), item("Show [02]")]),
        FakeDownloader(),
        record_store=record_store,
        email_service=email_service,
    )

    asyncio.run(poller.check_subscription(subscription, config))

    assert set(record_store.notifications) == {"boss", "fan"}
    notification = record_store.notifications["fan"][0]
    assert notification.type == "anime_subscription_update"
    assert notification.title == "追番更新：Show"
    assert "第 1、2 集" in notification.message
    assert notification.metadata["episodes"] == [1, 2]
    assert [mail["to"] for mail in email_service.sent] == ["boss@example.com"]


def test_no_owner_means_no_notifications():
    record_store = FakeRecordStore()
    record_store.users = ["fan"]
    subscription = AnimeSubscription(id="s1", title="Show", created_by="fan")
    config = make_config(subscription)
    poller = make_poller(
        config, FakeProvider([item("Show [01]")]), FakeDownloader(), record_store=record_store
    )

    result = asyncio.run(poller.check_subscription(subscription, config))

    assert result.episodes == [1]
    assert record_store.notifications == {}


def test_email_failure_does_not_affect_watermark(email_config):
    record_store = FakeRecordStore()
    record_store.users = ["boss"]
    record_store.roles = {"boss": "owner"}
    record_store.emails = {"boss": "boss@example.com"}
    subscription = AnimeSubscription(id="s1", title="Show")
    config = make_config(subscription)
    config.email_config = email_config
    poller = make_poller(
        config,
        FakeProvider([item("Show [01]")]),
        FakeDownloader(),
        record_store=record_store,
        email_service=FakeEmailService(fail=True),
    )

    asyncio.run(poller.check_subscription(subscription, config))

    assert subscription.last_episode == 1
    assert len(record_store.notifications["boss"]) == 1
