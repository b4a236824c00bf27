import asyncio

from conftest import FakeConfigStore, FakeEmailService, FakeFetcher, FakeRecordStore
from src.config.models import AdminConfig, LiveSource
from src.reconcile import FavoriteUpdateNotifier
from src.scheduler import CronScheduler


class FakeScanner:
    def __init__(self):
        self.started = 0
        self.drained = False

    async def start_openlist_refresh(self, clear_metainfo=False):
        self.started += 1
        return "scan-1"

    async def drain(self):
        self.drained = True


class FakeAnimePoller:
    def __init__(self, gate=None, error=None):
        self.gate = gate
        self.error = error
        self.calls = 0

    async def check_all(self):
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error:
            raise self.error
        return {"total": 0, "checked": 0, "skipped": 0, "errors": 0}


def make_scheduler(settings, anime_poller, events=None):
    config_store = FakeConfigStore(AdminConfig(live_config=[LiveSource(key="tv", url="http://tv")]))
    record_store = FakeRecordStore()

    async def live_refresher(source):
        if events is not None:
            events.append("live")
        return 5

    return CronScheduler(
        settings=settings,
        config_store=config_store,
        record_store=record_store,
        detail_fetcher=FakeFetcher(),
        notifier=FavoriteUpdateNotifier(record_store, config_store, FakeEmailService()),
        live_refresher=live_refresher,
        openlist_scanner=FakeScanner(),
        anime_poller=anime_poller,
    )


def test_pass_refreshes_config_before_other_tasks(settings, monkeypatch):
    events = []

    async def fake_refresh_config(config_store, timeout):
        events.append("config")
        return True

    monkeypatch.setattr("src.scheduler.orchestrator.refresh_config", fake_refresh_config)
    scheduler = make_scheduler(settings, FakeAnimePoller(), events)

    result = asyncio.run(scheduler.run())

    assert events == ["config", "live"]
    assert result.config_refreshed is True
    assert result.live_sources == 1
    assert result.records == {"users": 1, "batches": 1, "errors": 0}
    assert result.anime["total"] == 0
    assert result.errors == []


def test_overlapping_trigger_is_skipped(settings):
    async def run():
        gate = asyncio.Event()
        poller = FakeAnimePoller(gate=gate)
        scheduler = make_scheduler(settings, poller)

        first = asyncio.create_task(scheduler.run())
        while poller.calls == 0:
            await asyncio.sleep(0)
        assert scheduler.running
        second = await scheduler.run()
        gate.set()
        return await first, second, poller.calls

    first, second, calls = asyncio.run(run())

    assert second.skipped is True
    assert first.skipped is False
    assert calls == 1


def test_task_failure_is_reported_not_raised(settings):
    scheduler = make_scheduler(settings, FakeAnimePoller(error=RuntimeError("boom")))

    result = asyncio.run(scheduler.run())

    assert result.anime is None
    assert result.errors == ["anime: boom"]
    assert result.live_sources == 1


def test_drain_waits_for_background_work(settings):
    scheduler = make_scheduler(settings, FakeAnimePoller())

    asyncio.run(scheduler.drain())

    assert scheduler.openlist_scanner.drained is True
