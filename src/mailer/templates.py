"""HTML bodies for notification emails."""

from __future__ import annotations

from html import escape
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.reconcile.models import FavoriteUpdate


PROVIDER_LABELS = {"acgrip": "ACG.RIP", "mikan": "蜜柑", "dmhy": "动漫花园"}

_FOOTER = (
    '<hr style="border: none; border-top: 1px solid #eee; margin: 20px 0;">'
    '<p style="color: #999; font-size: 12px;">此邮件由系统自动发送，请勿回复。</p>'
)


def favorite_update_subject(updates: list[FavoriteUpdate]) -> str:
    return f"📺 收藏更新汇总 - {len(updates)} 部影片有更新"


def batch_favorite_update_email(
    username: str, updates: list[FavoriteUpdate], site_url: str, site_name: str
) -> str:
    """Summary of every favorite that gained episodes during one pass."""
    rows = []
    for update in updates:
        cover = (
            f'<img src="{escape(update.cover)}" alt="" '
            'style="width: 60px; height: 84px; object-fit: cover; border-radius: 4px;">'
            if update.cover
            else ""
        )
        rows.append(
            '<tr style="border-bottom: 1px solid #eee;">'
            f'<td style="padding: 10px;">{cover}</td>'
            '<td style="padding: 10px;">'
            f'<a href="{escape(update.url)}" style="color: #2563eb; font-weight: bold;">'
            f"{escape(update.title)}</a>"
            f'<p style="margin: 4px 0; color: #666;">'
            f"{update.old_episodes} 集 → {update.new_episodes} 集</p>"
            "</td></tr>"
        )

    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        f'<h2 style="color: #333;">{escape(site_name)} 收藏更新</h2>'
        f"<p>您好，{escape(username)}！</p>"
        f"<p>您收藏的 {len(updates)} 部影片有新集数更新：</p>"
        f'<table style="width: 100%; border-collapse: collapse;">{"".join(rows)}</table>'
        f'<p><a href="{escape(site_url)}" style="color: #2563eb;">前往 {escape(site_name)}</a></p>'
        f"{_FOOTER}</div>"
    )


def anime_update_email(
    username: str, subscription_title: str, episodes: list[int], source: str
) -> str:
    """Notice that new episodes of a subscription were queued for download."""
    episode_list = "、".join(str(ep) for ep in episodes)
    label = PROVIDER_LABELS.get(source, source)
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        '<h2 style="color: #333;">追番更新通知</h2>'
        f"<p>您好，{escape(username)}！</p>"
        "<p>您订阅的番剧有新集数更新：</p>"
        '<div style="background-color: #f5f5f5; padding: 15px; border-radius: 5px; margin: 20px 0;">'
        f'<h3 style="margin-top: 0; color: #2563eb;">{escape(subscription_title)}</h3>'
        f'<p style="margin: 10px 0;">新增集数：第 {episode_list} 集</p>'
        f'<p style="margin: 10px 0; color: #666;">搜索源：{escape(label)}</p>'
        "</div>"
        '<p style="color: #666; font-size: 14px;">这些集数已自动添加到 OpenList 离线下载队列。</p>'
        f"{_FOOTER}</div>"
    )
