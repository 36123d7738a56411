#!/usr/bin/env python3
"""Tracker policy resolution and retention rules."""

import logging
from datetime import datetime, timezone
from typing import Optional, Sequence

from .config import TrackerPolicy
from .constants import KEEP_FOREVER, SECONDS_PER_DAY
from .models import RetentionVerdict, Torrent

logger = logging.getLogger(__name__)


def find_tracker_policy(torrent: Torrent,
                        policies: Sequence[TrackerPolicy]) -> Optional[TrackerPolicy]:
    """
    Find the policy that governs a torrent.

    Magnet URI matches are tried first, then the tracker URL, then a
    wildcard policy. The first match under that order wins.

    Args:
        torrent: Torrent to resolve
        policies: Configured policies, in configuration order

    Returns:
        Matching policy, or None if the torrent has no policy
    """
    if not policies:
        return None

    magnet = torrent.magnet_uri.lower()
    tracker_url = torrent.tracker.lower()
    specific = [p for p in policies if not p.is_wildcard]

    for haystack in (magnet, tracker_url):
        if not haystack:
            continue
        for policy in specific:
            if policy.tracker.lower() in haystack:
                return policy

    return next((p for p in policies if p.is_wildcard), None)


def matched_delete_message(torrent: Torrent, policy: TrackerPolicy) -> Optional[str]:
    """Return the first tracker message on the policy's blacklist, if any."""
    if not policy.delete_messages or not torrent.trackers:
        return None

    blacklist = {m.lower() for m in policy.delete_messages}
    for tracker in torrent.trackers:
        if tracker.msg and tracker.msg.lower() in blacklist:
            return tracker.msg
    return None


def evaluate_retention(torrent: Torrent, policy: Optional[TrackerPolicy],
                       now: Optional[datetime] = None) -> RetentionVerdict:
    """
    Decide whether a torrent may be removed.

    Args:
        torrent: Torrent to evaluate
        policy: Its resolved policy, or None
        now: Reference time (defaults to current UTC time)

    Returns:
        Verdict with the reasons that fired
    """
    if policy is None:
        return RetentionVerdict(deletable=False, reason="wrong tracker")

    now = now or datetime.now(timezone.utc)
    reasons = []

    if torrent.is_finished and policy.max_days_to_keep != KEEP_FOREVER:
        age_days = torrent.age(now).total_seconds() / SECONDS_PER_DAY
        if age_days >= policy.max_days_to_keep:
            reasons.append("too old")

    message = matched_delete_message(torrent, policy)
    if message:
        reasons.append(f"tracker message '{message}'")

    return RetentionVerdict(deletable=bool(reasons), reason=", ".join(reasons))
