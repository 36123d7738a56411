#!/usr/bin/env python3
"""Constants and enumerations for qBittorrent management."""

from enum import Enum
from typing import Final

# Time constants
SECONDS_PER_DAY: Final[int] = 86400
SECONDS_PER_HOUR: Final[int] = 3600

# Network constants
DEFAULT_TIMEOUT: Final[int] = 30
MAX_RETRY_ATTEMPTS: Final[int] = 3
RETRY_DELAY: Final[float] = 5.0
PAUSE_CHUNK_SIZE: Final[int] = 30
FEED_TIMEOUT: Final[int] = 30

# File paths
DEFAULT_SETTINGS_FILE: Final[str] = "Settings.json"
DEFAULT_LEDGER_FILE: Final[str] = "download_history.json"

# Policy constants
WILDCARD_TRACKER: Final[str] = "*"
KEEP_FOREVER: Final[int] = -1
DEFAULT_FEED_CATEGORY: Final[str] = "freeleech"
BYTES_PER_KIB: Final[int] = 1024
UNLIMITED: Final[int] = -1


class TorrentState(str, Enum):
    """qBittorrent torrent states."""
    PAUSED_UP = "pausedUP"
    PAUSED_DL = "pausedDL"
    STOPPED_UP = "stoppedUP"
    STOPPED_DL = "stoppedDL"
    DOWNLOADING = "downloading"
    STALLED_DL = "stalledDL"
    QUEUED_DL = "queuedDL"
    FORCED_DL = "forcedDL"
    META_DL = "metaDL"
    UPLOADING = "uploading"
    STALLED_UP = "stalledUP"
    QUEUED_UP = "queuedUP"
    CHECKING_UP = "checkingUP"
    CHECKING_DL = "checkingDL"
    FORCED_UP = "forcedUP"

    @classmethod
    def finished_states(cls) -> set:
        """Return set of states a completed (seeding) torrent can be in."""
        return {cls.UPLOADING, cls.PAUSED_UP, cls.STOPPED_UP, cls.QUEUED_UP,
                cls.STALLED_UP, cls.CHECKING_UP, cls.FORCED_UP}

    @classmethod
    def is_paused(cls, state: str) -> bool:
        """Check for any paused variant (qBittorrent 5 calls these 'stopped')."""
        return state.startswith("paused") or state.startswith("stopped")


class DeleteMethod(str, Enum):
    """What to do with a torrent that is not kept."""
    PAUSE_TASK = "PauseTask"
    DELETE_TASK = "DeleteTask"
    DELETE_FILE_AND_TASK = "DeleteFileAndTask"

    @property
    def label(self) -> str:
        """Human readable description."""
        return {
            DeleteMethod.PAUSE_TASK: "pause",
            DeleteMethod.DELETE_TASK: "delete task only",
            DeleteMethod.DELETE_FILE_AND_TASK: "delete task and files",
        }[self]
