"""
Admin config document models.

The whole admin config is persisted as one JSON document (see
``src.storage``). These dataclasses give the reconciliation jobs typed access
to the parts they read and mutate:

    SiteConfig: Site name used in email templates
    ConfigSubscription: Remote config file subscription
    VideoSource: Catalog API used to fetch video details
    LiveSource: Live channel playlist
    OpenListConfig: Private library (OpenList) connection and scan state
    EmailConfig: Outbound email provider settings
    AnimeSubscription / AnimeSubscriptionConfig: Tracked series and watermarks

Timestamps (``last_check_time``, ``last_refresh_time``) are epoch milliseconds.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Optional

from .settings import DEFAULT_SITE_NAME


@dataclass
class SiteConfig:
    site_name: str = DEFAULT_SITE_NAME

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "SiteConfig":
        data = data or {}
        return cls(site_name=data.get("site_name") or DEFAULT_SITE_NAME)


@dataclass
class ConfigSubscription:
    url: str = ""
    auto_update: bool = False
    last_check: str = ""  # ISO timestamp

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "ConfigSubscription":
        data = data or {}
        return cls(
            url=data.get("url", ""),
            auto_update=bool(data.get("auto_update", False)),
            last_check=data.get("last_check", ""),
        )


@dataclass
class VideoSource:
    key: str
    name: str = ""
    api: str = ""
    disabled: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> "VideoSource":
        return cls(
            key=data["key"],
            name=data.get("name", ""),
            api=data.get("api", ""),
            disabled=bool(data.get("disabled", False)),
        )


@dataclass
class LiveSource:
    key: str
    name: str = ""
    url: str = ""
    ua: str = ""
    epg: str = ""
    disabled: bool = False
    channel_number: int = 0

    @classmethod
    def from_dict(cls, data: dict) -> "LiveSource":
        return cls(
            key=data["key"],
            name=data.get("name", ""),
            url=data.get("url", ""),
            ua=data.get("ua", ""),
            epg=data.get("epg", ""),
            disabled=bool(data.get("disabled", False)),
            channel_number=int(data.get("channel_number", 0) or 0),
        )


@dataclass
class OpenListConfig:
    enabled: bool = False
    url: str = ""
    username: str = ""
    password: str = ""
    root_path: str = "/"
    offline_download_path: str = ""
    scan_interval: int = 0  # minutes, 0 disables scheduled scans
    last_refresh_time: int = 0
    resource_count: int = 0
    metainfo: dict[str, dict[str, Any]] = field(default_factory=dict)

    @property
    def has_credentials(self) -> bool:
        return bool(self.url and self.username and self.password)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "OpenListConfig":
        data = data or {}
        return cls(
            enabled=bool(data.get("enabled", False)),
            url=data.get("url", ""),
            username=data.get("username", ""),
            password=data.get("password", ""),
            root_path=data.get("root_path") or "/",
            offline_download_path=data.get("offline_download_path", ""),
            scan_interval=int(data.get("scan_interval", 0) or 0),
            last_refresh_time=int(data.get("last_refresh_time", 0) or 0),
            resource_count=int(data.get("resource_count", 0) or 0),
            metainfo=dict(data.get("metainfo") or {}),
        )


@dataclass
class SMTPConfig:
    host: str
    port: int = 587
    secure: bool = False  # implicit TLS (port 465) when True, STARTTLS otherwise
    user: str = ""
    password: str = ""
    sender: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "SMTPConfig":
        return cls(
            host=data["host"],
            port=int(data.get("port", 587)),
            secure=bool(data.get("secure", False)),
            user=data.get("user", ""),
            password=data.get("password", ""),
            sender=data.get("sender", "") or data.get("user", ""),
        )


@dataclass
class ResendConfig:
    api_key: str
    sender: str

    @classmethod
    def from_dict(cls, data: dict) -> "ResendConfig":
        return cls(api_key=data["api_key"], sender=data["sender"])


@dataclass
class EmailConfig:
    enabled: bool = False
    provider: str = "smtp"  # "smtp" or "resend"
    smtp: Optional[SMTPConfig] = None
    resend: Optional[ResendConfig] = None

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "EmailConfig":
        data = data or {}
        return cls(
            enabled=bool(data.get("enabled", False)),
            provider=data.get("provider", "smtp"),
            smtp=SMTPConfig.from_dict(data["smtp"]) if data.get("smtp") else None,
            resend=(
                ResendConfig.from_dict(data["resend"]) if data.get("resend") else None
            ),
        )


@dataclass
class AnimeSubscription:
    """
    A tracked series polled from an RSS provider.

    Attributes:
        id: Subscription identifier
        title: Search keyword and download folder name
        source: RSS provider: acgrip, mikan or dmhy
        filter_text: Comma separated keywords, all must appear in an item title
        last_episode: Highest episode confirmed submitted for download (watermark)
        last_check_time: Epoch ms of the last check that actually ran
        enabled: Disabled subscriptions are never checked
        created_by: Username notified alongside the site owner
    """

    id: str
    title: str
    source: str = "acgrip"
    filter_text: str = ""
    last_episode: int = 0
    last_check_time: int = 0
    enabled: bool = True
    created_by: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "AnimeSubscription":
        return cls(
            id=data["id"],
            title=data["title"],
            source=data.get("source", "acgrip"),
            filter_text=data.get("filter_text", ""),
            last_episode=int(data.get("last_episode", 0) or 0),
            last_check_time=int(data.get("last_check_time", 0) or 0),
            enabled=bool(data.get("enabled", True)),
            created_by=data.get("created_by", ""),
        )


@dataclass
class AnimeSubscriptionConfig:
    enabled: bool = False
    subscriptions: list[AnimeSubscription] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "AnimeSubscriptionConfig":
        data = data or {}
        return cls(
            enabled=bool(data.get("enabled", False)),
            subscriptions=[
                AnimeSubscription.from_dict(s) for s in data.get("subscriptions", [])
            ],
        )


@dataclass
class AdminConfig:
    """The persisted admin config document."""

    site_config: SiteConfig = field(default_factory=SiteConfig)
    config_subscription: ConfigSubscription = field(default_factory=ConfigSubscription)
    config_file: str = ""  # raw JSON text of the last applied config file
    source_config: list[VideoSource] = field(default_factory=list)
    live_config: list[LiveSource] = field(default_factory=list)
    openlist_config: OpenListConfig = field(default_factory=OpenListConfig)
    email_config: EmailConfig = field(default_factory=EmailConfig)
    anime_subscription_config: AnimeSubscriptionConfig = field(
        default_factory=AnimeSubscriptionConfig
    )

    def get_source(self, key: str) -> Optional[VideoSource]:
        for source in self.source_config:
            if source.key == key:
                return source
        return None

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "AdminConfig":
        data = data or {}
        return cls(
            site_config=SiteConfig.from_dict(data.get("site_config")),
            config_subscription=ConfigSubscription.from_dict(
                data.get("config_subscription")
            ),
            config_file=data.get("config_file", ""),
            source_config=[VideoSource.from_dict(s) for s in data.get("source_config", [])],
            live_config=[LiveSource.from_dict(s) for s in data.get("live_config", [])],
            openlist_config=OpenListConfig.from_dict(data.get("openlist_config")),
            email_config=EmailConfig.from_dict(data.get("email_config")),
            anime_subscription_config=AnimeSubscriptionConfig.from_dict(
                data.get("anime_subscription_config")
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
