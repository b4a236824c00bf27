"""
OpenList (AList fork) HTTP API client.

Only the endpoints used by the jobs are wrapped: login, directory listing and
offline download submission. Every API response carries a ``code`` field;
anything other than 200 is an error.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Optional

import requests

if TYPE_CHECKING:
    from src.storage.base import BaseConfigStore


class OpenListError(Exception):
    pass


class OpenListClient:
    """
    Synchronous OpenList client; call it from a worker thread.

    The token from ``/api/auth/login`` is fetched lazily and reused.
    """

    def __init__(self, url: str, username: str, password: str, timeout: float = 30.0):
        self.base_url = url.rstrip("/")
        self.username = username
        self.password = password
        self.timeout = timeout
        self._token: Optional[str] = None

    def get_token(self) -> str:
        if self._token is None:
            data = self._post(
                "/api/auth/login",
                {"username": self.username, "password": self.password},
                authenticated=False,
            )
            token = (data or {}).get("token")
            if not token:
                raise OpenListError("OpenList login returned no token")
            self._token = token
        return self._token

    def list_dir(self, path: str) -> list[dict[str, Any]]:
        data = self._post(
            "/api/fs/list",
            {"path": path, "password": "", "page": 1, "per_page": 0, "refresh": False},
        )
        return (data or {}).get("content") or []

    def add_offline_download(self, torrent_url: str, path: str, tool: str = "aria2") -> None:
        self._post(
            "/api/fs/add_offline_download",
            {"path": path, "urls": [torrent_url], "tool": tool},
        )

    def _post(self, path: str, payload: dict, authenticated: bool = True) -> Any:
        headers = {"Content-Type": "application/json"}
        if authenticated:
            headers["Authorization"] = self.get_token()
        try:
            response = requests.post(
                f"{self.base_url}{path}",
                json=payload,
                headers=headers,
                timeout=self.timeout,
            )
            body = response.json()
        except (requests.RequestException, ValueError) as e:
            raise OpenListError(f"OpenList request {path} failed: {e}") from e

        if not isinstance(body, dict):
            raise OpenListError(f"OpenList request {path} returned unexpected body")
        if not response.ok or body.get("code") != 200:
            raise OpenListError(body.get("message") or f"OpenList request {path} failed")
        return body.get("data")


class OfflineDownloader:
    """
    Submits torrents to OpenList offline download with the current config.

    Raises ``OpenListError`` when the private library is disabled, the
    connection is incomplete, or OpenList rejects the task.
    """

    def __init__(self, config_store: BaseConfigStore, timeout: float = 30.0):
        self._config_store = config_store
        self._timeout = timeout

    async def __call__(self, torrent_url: str, path: str) -> None:
        await self.add_offline_download(torrent_url, path)

    async def add_offline_download(self, torrent_url: str, path: str) -> None:
        config = await self._config_store.get_config()
        openlist = config.openlist_config
        if not openlist.enabled:
            raise OpenListError("Private library (OpenList) is disabled")
        if not openlist.has_credentials:
            raise OpenListError("OpenList configuration is incomplete")

        client = OpenListClient(
            openlist.url, openlist.username, openlist.password, self._timeout
        )
        await asyncio.to_thread(client.add_offline_download, torrent_url, path)
