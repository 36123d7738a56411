#!/usr/bin/env python3
"""Configuration management for qBittorrent management.

Settings are read from a JSON file. Connection details fall back to the
``QB_*`` environment variables when the file leaves them out.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from .constants import (
    DEFAULT_FEED_CATEGORY, DEFAULT_LEDGER_FILE, DEFAULT_SETTINGS_FILE,
    KEEP_FOREVER, WILDCARD_TRACKER
)
from .utils import parse_bool, parse_int

logger = logging.getLogger(__name__)


class SettingsError(Exception):
    """Raised when the settings file is missing or invalid."""


@dataclass
class ConnectionConfig:
    """qBittorrent connection configuration."""
    host: str = field(default_factory=lambda: os.environ.get("QB_HOST", "localhost"))
    port: int = field(default_factory=lambda: parse_int("QB_PORT", 8080))
    username: str = field(default_factory=lambda: os.environ.get("QB_USERNAME", "admin"))
    password: str = field(default_factory=lambda: os.environ.get("QB_PASSWORD", ""))
    verify_ssl: bool = field(default_factory=lambda: parse_bool("QB_VERIFY_SSL", False))


@dataclass
class TrackerPolicy:
    """Retention and limit policy for torrents on one tracker."""
    tracker: str
    max_days_to_keep: int = KEEP_FOREVER
    delete_messages: List[str] = field(default_factory=list)
    up_limit: Optional[int] = None  # KiB/s
    max_ratio: Optional[float] = None
    max_seeding_time: Optional[int] = None  # minutes

    @property
    def is_wildcard(self) -> bool:
        """Check if this policy matches every torrent."""
        return self.tracker == WILDCARD_TRACKER


@dataclass
class BehaviorConfig:
    """Deletion behavior configuration."""
    delete_tasks: bool = False
    delete_files: bool = False
    dry_run: bool = False
    task_only_categories: List[str] = field(default_factory=list)
    task_only_tags: List[str] = field(default_factory=list)
    avoid_shared_file_deletion: bool = False


@dataclass
class FeedConfig:
    """An RSS feed whose items are queued for download."""
    url: str
    category: str = DEFAULT_FEED_CATEGORY


@dataclass
class NotificationConfig:
    """Apprise notification configuration."""
    urls: List[str] = field(default_factory=list)
    on_actions: bool = True
    on_error: bool = True

    @property
    def enabled(self) -> bool:
        return bool(self.urls)


@dataclass
class ScheduleConfig:
    """Schedule configuration."""
    interval_hours: int = 24
    run_once: bool = True


@dataclass
class LedgerConfig:
    """Download history configuration."""
    path: str = DEFAULT_LEDGER_FILE


@dataclass
class Config:
    """Main configuration container."""
    connection: ConnectionConfig = field(default_factory=ConnectionConfig)
    behavior: BehaviorConfig = field(default_factory=BehaviorConfig)
    trackers: List[TrackerPolicy] = field(default_factory=list)
    feeds: List[FeedConfig] = field(default_factory=list)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)
    schedule: ScheduleConfig = field(default_factory=ScheduleConfig)
    ledger: LedgerConfig = field(default_factory=LedgerConfig)

    @classmethod
    def from_file(cls, path: Optional[str] = None) -> "Config":
        """
        Load configuration from a JSON settings file.

        Args:
            path: Settings file path. Defaults to $QBT_MANAGER_SETTINGS or Settings.json

        Returns:
            Parsed configuration

        Raises:
            SettingsError: If the file is missing or cannot be parsed
        """
        settings_path = Path(path or os.environ.get("QBT_MANAGER_SETTINGS", DEFAULT_SETTINGS_FILE))
        if not settings_path.is_file():
            raise SettingsError(f"Settings not found: {settings_path}")

        try:
            with open(settings_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise SettingsError(f"Could not read settings {settings_path}: {e}") from e

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        """
        Build configuration from a parsed settings document.

        Raises:
            SettingsError: If a section has the wrong shape
        """
        if not isinstance(data, dict):
            raise SettingsError("Settings must be a JSON object")

        try:
            config = cls(
                connection=_parse_connection(data.get("qbt") or {}),
                behavior=BehaviorConfig(
                    delete_tasks=bool(data.get("deleteTasks", False)),
                    delete_files=bool(data.get("deleteFiles", False)),
                    dry_run=bool(data.get("dryRun", False)),
                    task_only_categories=list(data.get("delete_task_not_file_categories") or []),
                    task_only_tags=list(data.get("delete_task_not_file_tags") or []),
                    avoid_shared_file_deletion=bool(data.get("delete_task_not_file_if_other_tasks", False)),
                ),
                trackers=[_parse_tracker(t) for t in data.get("trackers") or []],
                feeds=[_parse_feed(f) for f in data.get("rssfeeds") or []],
                notifications=_parse_notifications(data),
                schedule=ScheduleConfig(**(data.get("schedule") or {})),
                ledger=LedgerConfig(**(data.get("ledger") or {})),
            )
        except (TypeError, ValueError, KeyError) as e:
            raise SettingsError(f"Invalid settings: {e}") from e

        return config


def _parse_connection(section: Dict[str, Any]) -> ConnectionConfig:
    """Overlay the 'qbt' section on the environment defaults."""
    connection = ConnectionConfig()
    host = section.get("url") or section.get("host")
    if host:
        connection.host = host
    if "port" in section:
        connection.port = int(section["port"])
    if "username" in section:
        connection.username = section["username"]
    if "password" in section:
        connection.password = section["password"] or ""
    if "verify_ssl" in section:
        connection.verify_ssl = bool(section["verify_ssl"])
    return connection


def _optional(value: Any, cast):
    return None if value is None else cast(value)


def _parse_tracker(entry: Dict[str, Any]) -> TrackerPolicy:
    tracker = str(entry["tracker"]).strip()
    if not tracker:
        raise ValueError("tracker matcher must not be empty")
    return TrackerPolicy(
        tracker=tracker,
        max_days_to_keep=int(entry.get("maxDaysToKeep", KEEP_FOREVER)),
        delete_messages=list(entry.get("deleteMessages") or []),
        up_limit=_optional(entry.get("up_limit"), int),
        max_ratio=_optional(entry.get("max_ratio"), float),
        max_seeding_time=_optional(entry.get("max_seeding_time"), int),
    )


def _parse_feed(entry: Any) -> FeedConfig:
    if isinstance(entry, str):
        return FeedConfig(url=entry)
    return FeedConfig(url=entry["url"], category=entry.get("category") or DEFAULT_FEED_CATEGORY)


def _parse_notifications(data: Dict[str, Any]) -> NotificationConfig:
    section = data.get("notifications") or {}
    urls = list(section.get("urls") or [])

    # Legacy SMTP block from older settings files
    email = data.get("email")
    if email:
        urls.append(email_to_apprise_url(email))

    return NotificationConfig(
        urls=urls,
        on_actions=bool(section.get("on_actions", True)),
        on_error=bool(section.get("on_error", True)),
    )


def email_to_apprise_url(email: Dict[str, Any]) -> str:
    """
    Convert an SMTP settings block into an Apprise mailto URL.

    Args:
        email: Dict with smtpserver/smtpport/username/password/toaddress/fromaddress keys

    Returns:
        Apprise URL string
    """
    server = email.get("smtpserver") or email.get("smtp_server")
    if not server:
        raise ValueError("email settings need an smtpserver")
    port = email.get("smtpport") or email.get("smtp_port") or 587
    username = email.get("username", "")
    password = email.get("password", "")

    auth = ""
    if username:
        auth = quote(username, safe="")
        if password:
            auth += ":" + quote(password, safe="")
        auth += "@"

    params = []
    to_address = email.get("toaddress") or email.get("to")
    if to_address:
        params.append(f"to={quote(to_address, safe='@')}")
    from_address = email.get("fromaddress") or email.get("from")
    if from_address:
        params.append(f"from={quote(from_address, safe='@')}")
    query = f"?{'&'.join(params)}" if params else ""

    return f"mailtos://{auth}{server}:{port}{query}"
