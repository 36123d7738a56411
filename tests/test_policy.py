"""Tests for tracker policy resolution and retention rules."""

import pytest

from qbt_manager.config import TrackerPolicy
from qbt_manager.policy import evaluate_retention, find_tracker_policy, matched_delete_message

from conftest import NOW, make_torrent

# ===================================================================
# Tests for find_tracker_policy
# ===================================================================


def test_no_policies_resolves_to_none():
    assert find_tracker_policy(make_torrent(tracker="https://t.example/announce"), []) is None


def test_magnet_match_beats_earlier_tracker_field_match():
    """Magnet matches are searched before tracker field matches."""
    by_tracker = TrackerPolicy(tracker="announce.one")
    by_magnet = TrackerPolicy(tracker="magnet.two")
    torrent = make_torrent(
        magnet_uri="magnet:?xt=urn:btih:abc&tr=https://MAGNET.TWO/announce",
        tracker="https://announce.one/announce",
    )

    assert find_tracker_policy(torrent, [by_tracker, by_magnet]) is by_magnet


def test_tracker_field_match_beats_wildcard():
    wildcard = TrackerPolicy(tracker="*")
    specific = TrackerPolicy(tracker="tracker.example")
    torrent = make_torrent(tracker="https://Tracker.Example/announce")

    assert find_tracker_policy(torrent, [wildcard, specific]) is specific


def test_first_of_several_matching_policies_wins():
    first = TrackerPolicy(tracker="example")
    second = TrackerPolicy(tracker="tracker.example")
    torrent = make_torrent(tracker="https://tracker.example/announce")

    assert find_tracker_policy(torrent, [first, second]) is first


def test_wildcard_used_when_nothing_else_matches():
    wildcard = TrackerPolicy(tracker="*")
    torrent = make_torrent(tracker="https://other.org/announce")

    assert find_tracker_policy(torrent, [TrackerPolicy(tracker="tracker.example"), wildcard]) is wildcard


def test_unmatched_torrent_has_no_policy():
    torrent = make_torrent(tracker="https://other.org/announce")

    assert find_tracker_policy(torrent, [TrackerPolicy(tracker="tracker.example")]) is None


# ===================================================================
# Tests for evaluate_retention
# ===================================================================


def test_paused_old_torrent_is_too_old(policy):
    verdict = evaluate_retention(make_torrent(state="pausedUP", age_days=120), policy, NOW)

    assert verdict.deletable
    assert verdict.reason == "too old"


def test_downloading_torrent_never_aged_out(policy):
    verdict = evaluate_retention(make_torrent(state="downloading", age_days=400), policy, NOW)

    assert not verdict.deletable


def test_keep_forever_policy_never_ages_out():
    policy = TrackerPolicy(tracker="tracker.example", max_days_to_keep=-1)
    verdict = evaluate_retention(make_torrent(state="pausedUP", age_days=3650), policy, NOW)

    assert not verdict.deletable


@pytest.mark.parametrize("state", ["uploading", "pausedUP", "queuedUP", "stalledUP", "checkingUP", "forcedUP"])
def test_all_finished_states_are_eligible(policy, state):
    assert evaluate_retention(make_torrent(state=state, age_days=90), policy, NOW).deletable


def test_younger_than_limit_is_kept(policy):
    assert not evaluate_retention(make_torrent(state="uploading", age_days=89), policy, NOW).deletable


def test_no_policy_is_not_deletable():
    verdict = evaluate_retention(make_torrent(state="pausedUP", age_days=1000), None, NOW)

    assert not verdict.deletable
    assert verdict.reason == "wrong tracker"


def test_blacklisted_message_deletes_young_torrent():
    policy = TrackerPolicy(tracker="tracker.example", max_days_to_keep=-1,
                           delete_messages=["Unregistered torrent"])
    torrent = make_torrent(state="stalledUP", age_days=1, messages=["", "unregistered TORRENT"])

    verdict = evaluate_retention(torrent, policy, NOW)

    assert verdict.deletable
    assert "unregistered TORRENT" in verdict.reason


def test_message_rule_applies_to_downloading_torrents():
    policy = TrackerPolicy(tracker="tracker.example", delete_messages=["torrent not found"])
    torrent = make_torrent(state="downloading", messages=["Torrent not found"])

    assert evaluate_retention(torrent, policy, NOW).deletable


def test_both_reasons_are_reported():
    policy = TrackerPolicy(tracker="tracker.example", max_days_to_keep=10, delete_messages=["gone"])
    torrent = make_torrent(state="uploading", age_days=20, messages=["gone"])

    verdict = evaluate_retention(torrent, policy, NOW)

    assert verdict.reason == "too old, tracker message 'gone'"


def test_message_must_match_exactly():
    policy = TrackerPolicy(tracker="tracker.example", delete_messages=["unregistered"])
    torrent = make_torrent(messages=["unregistered torrent"])

    assert matched_delete_message(torrent, policy) is None
