#!/usr/bin/env python3
"""Data models for qBittorrent management."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .constants import DeleteMethod, TorrentState
from .utils import format_age


def _timestamp(value: Any) -> datetime:
    """Convert a unix timestamp from the API into an aware datetime."""
    try:
        seconds = int(value or 0)
    except (TypeError, ValueError):
        seconds = 0
    # Some endpoints report milliseconds
    if seconds > 10_000_000_000:
        seconds //= 1000
    return datetime.fromtimestamp(max(0, seconds), tz=timezone.utc)


@dataclass(frozen=True)
class TrackerMessage:
    """Status of one tracker announce for a torrent."""
    url: str
    status: int
    msg: str = ""


@dataclass(frozen=True)
class TorrentFile:
    """One entry of a torrent's file manifest."""
    name: str
    size: int


@dataclass(frozen=True)
class Torrent:
    """Read-only snapshot of a torrent as reported by qBittorrent."""
    hash: str
    name: str
    state: str
    category: str = ""
    tags: str = ""
    magnet_uri: str = ""
    tracker: str = ""
    added_on: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_on: Optional[datetime] = None
    up_limit: int = -1  # bytes/s
    max_ratio: float = -1.0
    max_seeding_time: int = -1  # minutes
    trackers: Tuple[TrackerMessage, ...] = ()

    @classmethod
    def from_api(cls, raw: Any, trackers: Iterable[Any] = ()) -> "Torrent":
        """
        Build a snapshot from qbittorrentapi objects.

        Args:
            raw: TorrentDictionary (or any mapping) from torrents/info
            trackers: Tracker entries from torrents/trackers

        Returns:
            Torrent snapshot
        """
        get = raw.get
        return cls(
            hash=get("hash"),
            name=get("name") or "",
            state=get("state") or "",
            category=get("category") or "",
            tags=get("tags") or "",
            magnet_uri=get("magnet_uri") or "",
            tracker=get("tracker") or "",
            added_on=_timestamp(get("added_on")),
            completed_on=_timestamp(get("completion_on")) if (get("completion_on") or -1) > 0 else None,
            up_limit=int(get("up_limit", -1)),
            max_ratio=float(get("max_ratio", -1)),
            max_seeding_time=int(get("max_seeding_time", -1)),
            trackers=tuple(
                TrackerMessage(url=t.get("url", ""), status=int(t.get("status", 0)), msg=t.get("msg") or "")
                for t in trackers
            ),
        )

    @property
    def tag_list(self) -> List[str]:
        """Tags as a list, trimmed, without empties."""
        return [t.strip() for t in self.tags.split(",") if t.strip()]

    @property
    def is_paused(self) -> bool:
        return TorrentState.is_paused(self.state)

    @property
    def is_finished(self) -> bool:
        return self.state in TorrentState.finished_states()

    def age(self, now: Optional[datetime] = None) -> timedelta:
        """Time since the torrent was added."""
        now = now or datetime.now(timezone.utc)
        return now - self.added_on

    def describe(self, now: Optional[datetime] = None) -> str:
        """Short description for logs and notifications."""
        return f"{self.name} ({self.state}, {format_age(self.age(now))})"


@dataclass(frozen=True)
class FeedItem:
    """An item from an RSS feed."""
    title: str
    link: str


@dataclass(frozen=True)
class RetentionVerdict:
    """Outcome of the retention rules for one torrent."""
    deletable: bool
    reason: str = ""


@dataclass(frozen=True)
class ActionRecord:
    """A torrent staged for pausing or deletion."""
    torrent: Torrent
    method: DeleteMethod
    reason: str = ""

    @property
    def key(self) -> Tuple[str, DeleteMethod]:
        return self.torrent.hash, self.method


@dataclass
class StagedLimits:
    """Limit changes to apply to kept torrents, keyed by hash."""
    upload_limits: Dict[str, int] = field(default_factory=dict)  # bytes/s
    share_limits: Dict[str, Tuple[float, int]] = field(default_factory=dict)  # (ratio, minutes)

    def __bool__(self) -> bool:
        return bool(self.upload_limits or self.share_limits)


@dataclass
class ClassificationResult:
    """Result of torrent classification."""
    kept: List[Torrent] = field(default_factory=list)
    actions: List[ActionRecord] = field(default_factory=list)
    limits: StagedLimits = field(default_factory=StagedLimits)

    def actions_for(self, method: DeleteMethod) -> List[ActionRecord]:
        """Records with the given method, in classification order."""
        return [a for a in self.actions if a.method == method]

    def get_action_stats(self) -> dict:
        """Get action statistics."""
        return {
            "kept": len(self.kept),
            "pause": len(self.actions_for(DeleteMethod.PAUSE_TASK)),
            "delete_task": len(self.actions_for(DeleteMethod.DELETE_TASK)),
            "delete_files": len(self.actions_for(DeleteMethod.DELETE_FILE_AND_TASK)),
            "upload_limits": len(self.limits.upload_limits),
            "share_limits": len(self.limits.share_limits),
        }
