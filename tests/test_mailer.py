import asyncio

import pytest

from src.config.models import EmailConfig, ResendConfig
from src.mailer import (
    EmailError,
    EmailService,
    anime_update_email,
    batch_favorite_update_email,
    favorite_update_subject,
)
from src.reconcile.models import FavoriteUpdate


UPDATES = [
    FavoriteUpdate(title="<Show>", old_episodes=10, new_episodes=12, url="https://tv/play?a=1&b=2"),
    FavoriteUpdate(title="Other", old_episodes=1, new_episodes=2, url="https://tv/play", cover="c.jpg"),
]


def test_favorite_summary():
    html = batch_favorite_update_email("alice", UPDATES, "https://tv", "MoonTVPlus")

    assert favorite_update_subject(UPDATES) == "📺 收藏更新汇总 - 2 部影片有更新"
    assert "&lt;Show&gt;" in html
    assert "a=1&amp;b=2" in html
    assert "10 集 → 12 集" in html
    assert 'src="c.jpg"' in html


def test_anime_email_uses_provider_label():
    html = anime_update_email("boss", "Show", [3, 4], "mikan")
    assert "第 3、4 集" in html
    assert "Show" in html


@pytest.mark.parametrize(
    "config",
    [
        EmailConfig(enabled=False),
        EmailConfig(enabled=True, provider="smtp"),
        EmailConfig(enabled=True, provider="carrier-pigeon"),
    ],
)
def test_send_requires_configured_provider(config):
    with pytest.raises(EmailError):
        asyncio.run(EmailService().send(config, "a@example.com", "s", "<p>x</p>"))


def test_send_via_resend(monkeypatch):
    calls = []

    class Response:
        def raise_for_status(self):
            pass

    def fake_post(url, headers, json, timeout):
        calls.append((url, headers, json))
        return Response()

    monkeypatch.setattr("src.mailer.service.requests.post", fake_post)
    config = EmailConfig(
        enabled=True, provider="resend", resend=ResendConfig(api_key="key", sender="bot@tv")
    )

    asyncio.run(EmailService().send(config, "a@example.com", "subject", "<p>x</p>"))

    (url, headers, body), = calls
    assert url == "https://api.resend.com/emails"
    assert headers["Authorization"] == "Bearer key"
    assert body["to"] == ["a@example.com"]
