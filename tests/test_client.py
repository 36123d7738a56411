"""Tests for the qBittorrent client wrapper."""

from unittest.mock import MagicMock, patch

import pytest
import qbittorrentapi

from qbt_manager.client import QBittorrentClient
from qbt_manager.config import ConnectionConfig
from qbt_manager.models import TorrentFile

_REAL_CLIENT = qbittorrentapi.Client


@pytest.fixture
def api():
    with patch("qbt_manager.client.qbittorrentapi.Client") as mock_cls:
        yield mock_cls.return_value


@pytest.fixture
def client(api):
    client = QBittorrentClient(ConnectionConfig(host="localhost", port=8080, username="u", password="p"))
    assert client.connect()
    return client


def test_connect_logs_in(api, client):
    api.auth_log_in.assert_called_once()


@patch("qbt_manager.client.qbittorrentapi.Client")
def test_connect_passes_port_only_when_host_has_none(mock_cls):
    QBittorrentClient(ConnectionConfig(host="http://qbt:9090", password="p")).connect()

    assert "port" not in mock_cls.call_args.kwargs


@patch("qbt_manager.client.qbittorrentapi.Client")
def test_login_failure_returns_false(mock_cls):
    mock_cls.return_value.auth_log_in.side_effect = qbittorrentapi.LoginFailed()

    assert not QBittorrentClient(ConnectionConfig(password="bad")).connect()


def test_get_torrents_attaches_trackers_and_sorts(api, client):
    api.torrents_info.return_value = [
        {"hash": "b" * 40, "name": "Zeta", "state": "uploading", "added_on": 1_700_000_000,
         "up_limit": -1, "max_ratio": -1, "max_seeding_time": -1},
        {"hash": "a" * 40, "name": "Alpha", "state": "pausedUP", "added_on": 1_700_000_000,
         "tags": "x,y", "up_limit": 1024, "max_ratio": 2.0, "max_seeding_time": 60},
    ]
    api.torrents_trackers.return_value = [{"url": "https://t/announce", "status": 4, "msg": "Unregistered torrent"}]

    torrents = client.get_torrents()

    assert [t.name for t in torrents] == ["Alpha", "Zeta"]
    assert torrents[0].trackers[0].msg == "Unregistered torrent"
    assert torrents[0].tag_list == ["x", "y"]
    assert api.torrents_trackers.call_count == 2


def test_get_torrents_failure_returns_none(api, client):
    api.torrents_info.side_effect = qbittorrentapi.APIConnectionError("down")

    assert client.get_torrents() is None


def test_get_torrent_files(api, client):
    api.torrents_files.return_value = [{"name": "a.mkv", "size": 10}]

    assert client.get_torrent_files("a" * 40) == [TorrentFile("a.mkv", 10)]


def test_get_torrent_files_failure_returns_none(api, client):
    api.torrents_files.side_effect = qbittorrentapi.NotFound404Error()

    assert client.get_torrent_files("a" * 40) is None


def test_pause_is_chunked(api, client):
    hashes = [f"{i:040d}" for i in range(65)]

    assert client.pause_torrents(hashes)

    assert [len(c.kwargs["torrent_hashes"]) for c in api.torrents_pause.call_args_list] == [30, 30, 5]


@patch("qbt_manager.client.qbittorrentapi.Client")
def test_pause_uses_method_defined_by_library(mock_cls):
    mock_cls.return_value = MagicMock(spec=_REAL_CLIENT)
    client = QBittorrentClient(ConnectionConfig(host="localhost", port=8080, password="p"))
    assert client.connect()

    assert client.pause_torrents(["a" * 40])

    mock_cls.return_value.torrents_pause.assert_called_once_with(torrent_hashes=["a" * 40])


def test_delete_failure_returns_false(api, client):
    api.torrents_delete.side_effect = qbittorrentapi.Forbidden403Error()

    assert not client.delete_torrents(["a" * 40], delete_files=True)


def test_share_limits_set_together(api, client):
    assert client.set_share_limits(["a" * 40], 2.0, 1440)

    api.torrents_set_share_limits.assert_called_once_with(
        ratio_limit=2.0, seeding_time_limit=1440,
        inactive_seeding_time_limit=-1, torrent_hashes=["a" * 40],
    )


@pytest.mark.parametrize("response,expected", [("Ok.", True), ("Fails.", False)])
def test_add_torrent_reads_response(api, client, response, expected):
    api.torrents_add.return_value = response

    assert client.add_torrent("https://x/1.torrent", "freeleech") is expected
