"""
Private library (OpenList) integration.

Modules:
    client: OpenList HTTP API client and offline download submission
    scanner: Background library scans
    gate: Interval guard for scheduled scans
"""

from .client import OfflineDownloader, OpenListClient, OpenListError
from .scanner import OpenListScanner, merge_metainfo
from .gate import refresh_openlist, scan_skip_reason

__all__ = [
    "OfflineDownloader",
    "OpenListClient",
    "OpenListError",
    "OpenListScanner",
    "merge_metainfo",
    "refresh_openlist",
    "scan_skip_reason",
]
