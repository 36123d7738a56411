#!/usr/bin/env python3
"""RSS feed ingestion."""

import logging
from typing import Iterable, List, Optional

import feedparser
import requests

from .config import FeedConfig
from .constants import FEED_TIMEOUT
from .ledger import DownloadLedger
from .models import FeedItem

logger = logging.getLogger(__name__)


def entry_link(entry) -> Optional[str]:
    """First link of a feed entry."""
    link = entry.get("link")
    if link:
        return link
    for candidate in entry.get("links") or []:
        href = candidate.get("href")
        if href:
            return href
    return None


def parse_feed(content: bytes) -> Optional[List[FeedItem]]:
    """
    Parse feed content into items.

    Args:
        content: Raw RSS/Atom document

    Returns:
        Items with a link, or None if the document could not be parsed
    """
    feed = feedparser.parse(content)
    if feed.bozo and not feed.entries:
        logger.error(f"Malformed feed: {feed.get('bozo_exception')}")
        return None

    items = []
    for entry in feed.entries:
        link = entry_link(entry)
        if link:
            items.append(FeedItem(title=entry.get("title") or link, link=link))
    return items


class FeedIngester:
    """Sends new feed items to qBittorrent."""

    def __init__(self, client, timeout: int = FEED_TIMEOUT, dry_run: bool = False):
        """
        Initialize ingester.

        Args:
            client: QBittorrentClient (or compatible) with add_torrent(url, category)
            timeout: HTTP timeout for fetching feeds
            dry_run: Log new items instead of submitting them
        """
        self.client = client
        self.timeout = timeout
        self.dry_run = dry_run
        self._session = requests.Session()

    def fetch(self, url: str) -> Optional[List[FeedItem]]:
        """
        Download and parse a feed.

        Returns:
            Feed items, or None on failure
        """
        try:
            response = self._session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Error reading feed {url}: {e}")
            return None
        return parse_feed(response.content)

    def ingest(self, feed: FeedConfig, ledger: DownloadLedger) -> Optional[int]:
        """
        Queue new items of one feed.

        Args:
            feed: Feed configuration
            ledger: Download history

        Returns:
            Number of items submitted, or None if the feed could not be read
        """
        logger.info(f"Reading RSS feed {feed.url}")
        items = self.fetch(feed.url)
        if items is None:
            return None
        if not items:
            logger.info("No RSS items found")
            return 0
        return self.submit_items(items, ledger, feed.category)

    def submit_items(self, items: Iterable[FeedItem], ledger: DownloadLedger,
                     category: Optional[str] = None) -> int:
        """
        Submit items not yet in the ledger.

        Args:
            items: Feed items
            ledger: Download history, updated on each successful submission
            category: qBittorrent category for new torrents

        Returns:
            Number of items submitted
        """
        items = list(items)
        logger.info(f"Processing {len(items)} RSS feed items")
        submitted = 0

        for item in items:
            if ledger.contains(item.link):
                logger.info(f"Skipping {item.title} (downloaded already)")
                continue

            if self.dry_run:
                logger.info(f"[DRY RUN] Would send {item.title} ({item.link})")
                continue

            logger.info(f"Sending {item.title} ({item.link}) to qBittorrent")
            if self.client.add_torrent(item.link, category):
                ledger.record(item.link, item.title)
                submitted += 1
            else:
                logger.error(f"Torrent add failed for {item.title}")

        return submitted

    def close(self) -> None:
        self._session.close()
