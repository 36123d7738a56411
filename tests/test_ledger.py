"""Tests for the download history ledger."""

import json

import pytest

from qbt_manager.ledger import DownloadLedger, LedgerError


def test_missing_file_is_empty(tmp_path):
    ledger = DownloadLedger(str(tmp_path / "history.json"))

    assert len(ledger) == 0
    assert not ledger.contains("https://x/1.torrent")


def test_record_and_save_round_trip(tmp_path):
    path = tmp_path / "history.json"
    ledger = DownloadLedger(str(path))

    assert ledger.record("https://x/1.torrent", "One")
    assert not ledger.record("https://x/1.torrent", "One again")
    assert ledger.save()

    reloaded = DownloadLedger(str(path))
    assert "https://x/1.torrent" in reloaded
    assert reloaded.entries()[0].title == "One"


def test_nothing_written_until_save(tmp_path):
    path = tmp_path / "history.json"
    ledger = DownloadLedger(str(path))

    ledger.record("https://x/1.torrent")

    assert not path.exists()


def test_reads_plain_link_list(tmp_path):
    path = tmp_path / "history.json"
    path.write_text(json.dumps(["https://x/1.torrent", {"link": "https://x/2.torrent", "title": "Two"}]))

    ledger = DownloadLedger(str(path))

    assert ledger.contains("https://x/1.torrent")
    assert ledger.contains("https://x/2.torrent")


def test_truncated_file_raises_and_is_left_alone(tmp_path):
    path = tmp_path / "history.json"
    path.write_text('[{"link": "https://x/1.torrent"}')

    with pytest.raises(LedgerError):
        DownloadLedger(str(path))

    assert path.read_text() == '[{"link": "https://x/1.torrent"}'


def test_non_list_document_raises(tmp_path):
    path = tmp_path / "history.json"
    path.write_text(json.dumps({"link": "https://x/1.torrent"}))

    with pytest.raises(LedgerError):
        DownloadLedger(str(path))


def test_remove_and_clear(tmp_path):
    path = tmp_path / "history.json"
    ledger = DownloadLedger(str(path))
    ledger.record("https://x/1.torrent")
    ledger.record("https://x/2.torrent")

    assert ledger.remove("https://x/1.torrent")
    assert not ledger.remove("https://x/1.torrent")
    ledger.clear()
    ledger.save()

    assert json.loads(path.read_text()) == []
