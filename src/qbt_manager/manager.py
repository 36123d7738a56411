#!/usr/bin/env python3
"""Main run orchestration logic."""

import logging
from typing import Optional, Sequence

from .batcher import BatchGrouper, BatchReport
from .classifier import ActionClassifier
from .client import QBittorrentClient
from .config import Config
from .feeds import FeedIngester
from .fingerprint import build_fingerprints
from .ledger import DownloadLedger, LedgerError
from .models import ClassificationResult, Torrent
from .notifier import Notifier

logger = logging.getLogger(__name__)


class QbtManager:
    """Runs one classify-execute-ingest pass against qBittorrent."""

    def __init__(self, config: Config, client: Optional[QBittorrentClient] = None,
                 notifier: Optional[Notifier] = None):
        """
        Initialize orchestrator.

        Args:
            config: Application configuration
            client: qBittorrent client (built from config if omitted)
            notifier: Notifier (built from config if omitted)
        """
        self.config = config
        self.client = client or QBittorrentClient(config.connection)
        self.notifier = notifier or Notifier(config.notifications)
        self.classifier = ActionClassifier(config.behavior, config.trackers)

    def run(self) -> bool:
        """
        Run one full pass.

        Returns:
            True if successful
        """
        try:
            logger.info("Signing in to qBittorrent")
            if not self.client.connect():
                logger.error("Login failed")
                self.notifier.notify_error("Could not sign in to qBittorrent", context="Login")
                return False

            self._log_active_features()

            logger.info("Getting task list and mapping trackers")
            torrents = self.client.get_torrents()
            if torrents is None:
                logger.error("Could not fetch torrent list")
                return False

            logger.info(f"Found {len(torrents)} torrents")
            report = self.process_torrents(torrents)

            feeds_ok = self.ingest_feeds()

            return report.success and feeds_ok

        except Exception as e:
            logger.error(f"Run failed: {e}", exc_info=True)
            self.notifier.notify_error(str(e))
            return False
        finally:
            self.client.disconnect()

    def classify(self, torrents: Sequence[Torrent]) -> ClassificationResult:
        """
        Classify torrents without executing anything.

        Args:
            torrents: Torrents fetched this run

        Returns:
            Classification result
        """
        fingerprints = None
        if self.config.behavior.avoid_shared_file_deletion:
            logger.info("Creating hashes for all torrent file sizes and names")
            fingerprints = build_fingerprints(self.client, torrents)

        logger.info("Processing torrent list")
        return self.classifier.classify(torrents, fingerprints)

    def process_torrents(self, torrents: Sequence[Torrent]) -> BatchReport:
        """
        Classify torrents and execute the resulting bulk calls.

        Args:
            torrents: Torrents fetched this run

        Returns:
            Report of the bulk calls
        """
        behavior = self.config.behavior
        result = self.classify(torrents)

        report = BatchGrouper(self.client, dry_run=behavior.dry_run).execute(
            result, delete_tasks=behavior.delete_tasks
        )

        if result.actions:
            self.notifier.notify_actions(result.actions, dry_run=behavior.dry_run)

        return report

    def ingest_feeds(self) -> bool:
        """
        Queue new items of every configured feed and persist the history.

        Returns:
            True if every feed was read and the history was saved
            (or there were no feeds)
        """
        if not self.config.feeds:
            logger.info("No RSS feeds to process")
            return True

        logger.info("Processing RSS feed list")
        try:
            ledger = DownloadLedger(self.config.ledger.path)
        except LedgerError as e:
            logger.error(f"{e}; skipping RSS feeds until the file is fixed")
            self.notifier.notify_error(str(e), context="Download history")
            return False

        ingester = FeedIngester(self.client, dry_run=self.config.behavior.dry_run)
        submitted = 0
        failed = 0
        try:
            for feed in self.config.feeds:
                count = ingester.ingest(feed, ledger)
                if count is None:
                    failed += 1
                else:
                    submitted += count
        finally:
            ingester.close()

        if submitted:
            logger.info(f"Queued {submitted} new downloads")
        if failed:
            logger.warning(f"{failed} of {len(self.config.feeds)} RSS feeds could not be read")
        saved = ledger.save()
        return saved and not failed

    def _log_active_features(self) -> None:
        """Log active configuration features."""
        behavior = self.config.behavior

        if behavior.delete_tasks:
            if behavior.delete_files:
                logger.info("Filtered torrents will be deleted with their content")
            else:
                logger.info("Filtered torrents will be deleted (files will not be deleted)")
        else:
            logger.info("Filtered torrents will be paused")

        features = [f"Trackers: {len(self.config.trackers)}"]
        if behavior.dry_run:
            features.append("Dry run")
        if behavior.avoid_shared_file_deletion:
            features.append("Shared-file protection")
        if behavior.task_only_categories or behavior.task_only_tags:
            features.append(
                f"Task-only: {len(behavior.task_only_categories)} categories, "
                f"{len(behavior.task_only_tags)} tags"
            )
        if self.config.feeds:
            features.append(f"RSS feeds: {len(self.config.feeds)}")
        if self.notifier.is_active:
            features.append("Notifications")

        logger.info(f"[Config] {' | '.join(features)}")
