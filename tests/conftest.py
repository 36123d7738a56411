"""Shared fixtures for qbt-manager tests."""

from datetime import datetime, timedelta, timezone

import pytest

from qbt_manager.config import BehaviorConfig, TrackerPolicy
from qbt_manager.models import Torrent, TrackerMessage

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def make_torrent(hash="a" * 40, name="Some.Release", state="uploading", age_days=0,
                 category="", tags="", magnet_uri="", tracker="", messages=(), **kwargs):
    """Build a Torrent snapshot relative to NOW."""
    return Torrent(
        hash=hash,
        name=name,
        state=state,
        category=category,
        tags=tags,
        magnet_uri=magnet_uri,
        tracker=tracker,
        added_on=NOW - timedelta(days=age_days),
        trackers=tuple(TrackerMessage(url=tracker, status=2, msg=m) for m in messages),
        **kwargs
    )


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def torrent_factory():
    return make_torrent


@pytest.fixture
def policy():
    return TrackerPolicy(tracker="tracker.example", max_days_to_keep=90)


@pytest.fixture
def behavior():
    return BehaviorConfig(delete_tasks=True, delete_files=True)
