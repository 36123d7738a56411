#!/usr/bin/env python3
"""Persistent history of feed items already sent to qBittorrent."""

import json
import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List

logger = logging.getLogger(__name__)


class LedgerError(Exception):
    """Download history file exists but cannot be used."""


@dataclass(frozen=True)
class LedgerEntry:
    """A feed download that was queued successfully."""
    link: str
    title: str = ""
    added_at: str = ""


class DownloadLedger:
    """Tracks submitted feed links across runs.

    The file is read once on construction and rewritten by save(). Records
    added since the last save are lost if the process dies before saving.
    An unreadable file raises LedgerError and is never overwritten.
    """

    def __init__(self, path: str):
        """
        Load the ledger.

        Args:
            path: JSON file holding the history

        Raises:
            LedgerError: If the file exists but is unreadable or malformed
        """
        self.path = Path(path)
        self._entries: Dict[str, LedgerEntry] = {}
        self._dirty = False
        self._load()

    def _load(self) -> None:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            logger.debug(f"No download history at {self.path}, starting empty")
            return
        except (OSError, json.JSONDecodeError) as e:
            raise LedgerError(f"Could not read download history {self.path}: {e}") from e

        if not isinstance(data, list):
            raise LedgerError(f"Download history {self.path} is not a list")

        for item in data:
            if isinstance(item, str):
                item = {"link": item}
            if isinstance(item, dict) and item.get("link"):
                entry = LedgerEntry(item["link"], item.get("title", ""), item.get("added_at", ""))
                self._entries.setdefault(entry.link, entry)

        logger.debug(f"Loaded {len(self._entries)} download history entries")

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, link: str) -> bool:
        return self.contains(link)

    def contains(self, link: str) -> bool:
        """Check if a link was already submitted."""
        return link in self._entries

    def record(self, link: str, title: str = "") -> bool:
        """
        Remember a submitted link.

        Returns:
            True if the link was new
        """
        if link in self._entries:
            return False
        self._entries[link] = LedgerEntry(link, title, datetime.now(timezone.utc).isoformat())
        self._dirty = True
        return True

    def entries(self) -> List[LedgerEntry]:
        """All entries in insertion order."""
        return list(self._entries.values())

    def remove(self, link: str) -> bool:
        """Forget a link so it can be downloaded again."""
        if self._entries.pop(link, None) is None:
            return False
        self._dirty = True
        return True

    def clear(self) -> None:
        """Forget every link."""
        self._entries.clear()
        self._dirty = True

    def save(self) -> bool:
        """
        Rewrite the history file atomically.

        Returns:
            True if written (or nothing changed)
        """
        if not self._dirty:
            return True

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(".tmp")
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump([asdict(e) for e in self._entries.values()], f, indent=2)
            tmp_path.replace(self.path)
        except OSError as e:
            logger.error(f"Failed to save download history {self.path}: {e}")
            return False

        self._dirty = False
        logger.debug(f"Saved {len(self._entries)} download history entries")
        return True
