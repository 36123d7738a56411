#!/usr/bin/env python3
"""Torrent classification logic."""

import logging
import math
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Set, Tuple

from .config import BehaviorConfig, TrackerPolicy
from .constants import BYTES_PER_KIB, UNLIMITED, DeleteMethod
from .models import ActionRecord, ClassificationResult, StagedLimits, Torrent
from .policy import evaluate_retention, find_tracker_policy
from .utils import truncate_name

logger = logging.getLogger(__name__)


@dataclass
class ExemptionContext:
    """Run-wide facts the file-preserving exemptions look at."""
    behavior: BehaviorConfig
    hash_counts: Counter = field(default_factory=Counter)
    fingerprints: Mapping[str, Optional[str]] = field(default_factory=dict)
    fingerprint_owners: Dict[str, Set[str]] = field(default_factory=dict)
    names: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def build(cls, behavior: BehaviorConfig, torrents: Sequence[Torrent],
              fingerprints: Optional[Mapping[str, Optional[str]]] = None) -> "ExemptionContext":
        fingerprints = fingerprints or {}
        owners: Dict[str, Set[str]] = defaultdict(set)
        for torrent in torrents:
            fingerprint = fingerprints.get(torrent.hash)
            if fingerprint:
                owners[fingerprint].add(torrent.hash)
        return cls(
            behavior=behavior,
            hash_counts=Counter(t.hash for t in torrents),
            fingerprints=fingerprints,
            fingerprint_owners=dict(owners),
            names={t.hash: t.name for t in torrents},
        )


ExemptionRule = Callable[[Torrent, ExemptionContext], Optional[str]]


def task_only_category(torrent: Torrent, ctx: ExemptionContext) -> Optional[str]:
    """Category listed as task-only."""
    category = torrent.category.upper()
    if category and any(c.upper() == category for c in ctx.behavior.task_only_categories):
        return f"Category={torrent.category}"
    return None


def task_only_tag(torrent: Torrent, ctx: ExemptionContext) -> Optional[str]:
    """Any tag listed as task-only."""
    tags = {t.upper() for t in torrent.tag_list}
    for tag in ctx.behavior.task_only_tags:
        if tag.strip().upper() in tags:
            return f"Tags contain {tag}"
    return None


def shared_hash(torrent: Torrent, ctx: ExemptionContext) -> Optional[str]:
    """Another task references the same torrent hash."""
    if ctx.behavior.avoid_shared_file_deletion and ctx.hash_counts[torrent.hash] > 1:
        return "another torrent has the same hash"
    return None


def shared_content(torrent: Torrent, ctx: ExemptionContext) -> Optional[str]:
    """Another torrent has an identical file manifest."""
    if not ctx.behavior.avoid_shared_file_deletion:
        return None
    fingerprint = ctx.fingerprints.get(torrent.hash)
    if not fingerprint:
        return None
    others = ctx.fingerprint_owners.get(fingerprint, set()) - {torrent.hash}
    if not others:
        return None
    partner = ctx.names.get(sorted(others)[0], "")
    return f"another torrent uses the same files: {truncate_name(partner, 40)}"


# Checked in order when files would otherwise be deleted; first match keeps the files.
EXEMPTION_RULES: Tuple[Tuple[str, ExemptionRule], ...] = (
    ("category", task_only_category),
    ("tag", task_only_tag),
    ("same hash", shared_hash),
    ("same files", shared_content),
)


def file_exemption(torrent: Torrent, ctx: ExemptionContext) -> Optional[str]:
    """
    Walk the exemption rules for a torrent.

    Returns:
        Reason of the first rule that matched, or None
    """
    for name, rule in EXEMPTION_RULES:
        reason = rule(torrent, ctx)
        if reason:
            logger.debug(f"Exemption '{name}' matched {truncate_name(torrent.name)}: {reason}")
            return reason
    return None


def stage_limits(torrent: Torrent, policy: TrackerPolicy, limits: StagedLimits) -> None:
    """
    Stage limit changes for a kept torrent whose live values differ from policy.

    Args:
        torrent: Kept torrent
        policy: Its policy
        limits: Accumulator for the run
    """
    if policy.up_limit is not None:
        target = policy.up_limit * BYTES_PER_KIB if policy.up_limit > 0 else UNLIMITED
        already_unlimited = target == UNLIMITED and torrent.up_limit <= 0
        if torrent.up_limit != target and not already_unlimited:
            limits.upload_limits[torrent.hash] = target

    # The API sets ratio and seeding time together
    if policy.max_ratio is not None and not math.isclose(torrent.max_ratio, policy.max_ratio):
        limits.share_limits[torrent.hash] = (policy.max_ratio, torrent.max_seeding_time)

    if policy.max_seeding_time is not None and torrent.max_seeding_time != policy.max_seeding_time:
        ratio, _ = limits.share_limits.get(torrent.hash, (torrent.max_ratio, torrent.max_seeding_time))
        limits.share_limits[torrent.hash] = (ratio, policy.max_seeding_time)


class ActionClassifier:
    """Classifies torrents into keep, pause or delete actions."""

    def __init__(self, behavior: BehaviorConfig, policies: Sequence[TrackerPolicy]):
        """
        Initialize classifier.

        Args:
            behavior: Deletion behavior flags
            policies: Tracker policies in configuration order
        """
        self.behavior = behavior
        self.policies = list(policies)

    def classify(self, torrents: Sequence[Torrent],
                 fingerprints: Optional[Mapping[str, Optional[str]]] = None,
                 now: Optional[datetime] = None) -> ClassificationResult:
        """
        Classify every torrent of the run.

        Args:
            torrents: All torrents fetched this run
            fingerprints: Content fingerprint per hash (only used for shared-file avoidance)
            now: Reference time for age checks

        Returns:
            Classification result
        """
        now = now or datetime.now(timezone.utc)
        ctx = ExemptionContext.build(self.behavior, torrents, fingerprints)
        result = ClassificationResult()

        for torrent in torrents:
            policy = find_tracker_policy(torrent, self.policies)
            verdict = evaluate_retention(torrent, policy, now)

            if not verdict.deletable:
                result.kept.append(torrent)
                logger.info(f"→ keep: {truncate_name(torrent.describe(now))}")
                if policy is not None:
                    stage_limits(torrent, policy, result.limits)
                continue

            result.actions.extend(self._actions_for(torrent, verdict.reason, ctx, now))

        self._log_classification_summary(result)
        return result

    def _actions_for(self, torrent: Torrent, reason: str, ctx: ExemptionContext,
                     now: datetime) -> List[ActionRecord]:
        """Decide what happens to a torrent that is not kept."""
        label = truncate_name(torrent.describe(now))
        actions: List[ActionRecord] = []

        if not self.behavior.delete_tasks:
            if torrent.is_paused:
                logger.info(f"→ already paused: {label} (reason: {reason})")
                return actions
            logger.info(f"→ pause: {label} (reason: {reason})")
            actions.append(ActionRecord(torrent, DeleteMethod.PAUSE_TASK, reason))

        if not self.behavior.delete_files:
            logger.info(f"→ delete task only: {label} (reason: {reason})")
            actions.append(ActionRecord(torrent, DeleteMethod.DELETE_TASK, reason))
            return actions

        exemption = file_exemption(torrent, ctx)
        if exemption:
            logger.info(f"→ delete task only: {label} (reason: {reason}; keeping files: {exemption})")
            actions.append(ActionRecord(torrent, DeleteMethod.DELETE_TASK, f"{reason}; {exemption}"))
        else:
            logger.info(f"→ delete task and files: {label} (reason: {reason})")
            actions.append(ActionRecord(torrent, DeleteMethod.DELETE_FILE_AND_TASK, reason))
        return actions

    def _log_classification_summary(self, result: ClassificationResult) -> None:
        """Log classification summary."""
        stats = result.get_action_stats()
        logger.info(
            f"Keep: {stats['kept']} | Pause: {stats['pause']} | "
            f"Delete task: {stats['delete_task']} | Delete with files: {stats['delete_files']}"
        )
        if result.limits:
            logger.info(
                f"{stats['upload_limits']} upload limit and "
                f"{stats['share_limits']} share limit changes staged"
            )
