#!/usr/bin/env python3
"""Grouping of staged changes into bulk qBittorrent calls."""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple

from .constants import DeleteMethod
from .models import ActionRecord, ClassificationResult, StagedLimits

logger = logging.getLogger(__name__)


@dataclass
class BatchReport:
    """What the grouper did during one run."""
    calls: int = 0
    failures: int = 0
    counts: Dict[str, int] = field(default_factory=dict)

    def record(self, operation: str, count: int, success: bool) -> None:
        self.calls += 1
        if success:
            self.counts[operation] = self.counts.get(operation, 0) + count
        else:
            self.failures += 1

    @property
    def success(self) -> bool:
        return self.failures == 0


def group_by_value(staged: Dict[str, object]) -> Dict[object, List[str]]:
    """Invert a hash -> target mapping into target -> hashes, keeping insertion order."""
    groups: Dict[object, List[str]] = defaultdict(list)
    for torrent_hash, value in staged.items():
        groups[value].append(torrent_hash)
    return dict(groups)


def partition_actions(actions: Iterable[ActionRecord]) -> Tuple[List[str], List[str], List[str]]:
    """
    Split action records into pause, task-only and task-and-files hash lists.

    Identical (hash, method) pairs collapse to one. A hash that is both
    task-only and task-and-files keeps its files.

    Returns:
        Tuple of (pause_hashes, delete_task_hashes, delete_files_hashes)
    """
    seen = set()
    by_method: Dict[DeleteMethod, List[str]] = defaultdict(list)
    for action in actions:
        if action.key in seen:
            continue
        seen.add(action.key)
        by_method[action.method].append(action.torrent.hash)

    task_only = by_method[DeleteMethod.DELETE_TASK]
    keep_files = set(task_only)
    with_files = [h for h in by_method[DeleteMethod.DELETE_FILE_AND_TASK] if h not in keep_files]
    return by_method[DeleteMethod.PAUSE_TASK], task_only, with_files


class BatchGrouper:
    """Issues the minimal set of bulk calls for a classification result."""

    def __init__(self, client, dry_run: bool = False):
        """
        Initialize grouper.

        Args:
            client: QBittorrentClient (or compatible) used for the bulk calls
            dry_run: Log the planned calls instead of issuing them
        """
        self.client = client
        self.dry_run = dry_run

    def execute(self, result: ClassificationResult, delete_tasks: bool) -> BatchReport:
        """
        Apply limits, pauses and deletions.

        Args:
            result: Classification result for the run
            delete_tasks: Whether deletions are allowed to run

        Returns:
            Report of issued calls and failures
        """
        report = BatchReport()
        self._apply_limits(result.limits, report)
        self._apply_actions(result.actions, delete_tasks, report)
        if report.failures:
            logger.warning(f"{report.failures} of {report.calls} bulk calls failed")
        return report

    def _apply_limits(self, limits: StagedLimits, report: BatchReport) -> None:
        for limit, hashes in group_by_value(limits.upload_limits).items():
            self._call(
                report, "upload_limit", hashes,
                f"Setting upload limit {limit} B/s for {len(hashes)} torrents",
                lambda: self.client.set_upload_limit(hashes, limit),
            )

        for (ratio, minutes), hashes in group_by_value(limits.share_limits).items():
            self._call(
                report, "share_limits", hashes,
                f"Setting ratio {ratio} and seeding time {minutes}m for {len(hashes)} torrents",
                lambda: self.client.set_share_limits(hashes, ratio, minutes),
            )

    def _apply_actions(self, actions: List[ActionRecord], delete_tasks: bool,
                       report: BatchReport) -> None:
        if not actions:
            logger.info("No torrents to delete/pause")
            return

        pause, task_only, with_files = partition_actions(actions)

        if delete_tasks:
            if with_files:
                self._call(
                    report, "deleted_with_files", with_files,
                    f"Deleting {len(with_files)} torrents with files",
                    lambda: self.client.delete_torrents(with_files, delete_files=True),
                )
            if task_only:
                self._call(
                    report, "deleted", task_only,
                    f"Deleting {len(task_only)} torrents (keeping files)",
                    lambda: self.client.delete_torrents(task_only, delete_files=False),
                )

        if pause:
            self._call(
                report, "paused", pause,
                f"Pausing {len(pause)} torrents",
                lambda: self.client.pause_torrents(pause),
            )

    def _call(self, report: BatchReport, operation: str, hashes: List[str],
              description: str, call) -> None:
        """Run one bulk call, recording its outcome without raising."""
        if self.dry_run:
            logger.info(f"[DRY RUN] {description}")
            return

        logger.info(description)
        success = bool(call())
        if not success:
            logger.error(f"Bulk call failed: {description}")
        report.record(operation, len(hashes), success)
