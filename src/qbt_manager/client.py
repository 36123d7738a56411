#!/usr/bin/env python3
"""qBittorrent client wrapper returning plain results instead of raising."""

import logging
import time
from typing import List, Optional, Sequence
from urllib.parse import urlparse

import qbittorrentapi
import urllib3

from .config import ConnectionConfig
from .constants import DEFAULT_TIMEOUT, MAX_RETRY_ATTEMPTS, PAUSE_CHUNK_SIZE, RETRY_DELAY
from .models import Torrent, TorrentFile

# Suppress SSL warnings when SSL verification is disabled
urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

logger = logging.getLogger(__name__)


class QBittorrentClient:
    """qBittorrent client wrapper used by the manager."""

    def __init__(self, config: ConnectionConfig):
        """
        Initialize client wrapper.

        Args:
            config: Connection configuration
        """
        self.config = config
        self._client: Optional[qbittorrentapi.Client] = None

    @property
    def client(self) -> qbittorrentapi.Client:
        """Get the underlying client."""
        if self._client is None:
            raise RuntimeError("Client not connected")
        return self._client

    def _client_kwargs(self) -> dict:
        kwargs = dict(
            host=self.config.host,
            username=self.config.username,
            password=self.config.password,
            VERIFY_WEBUI_CERTIFICATE=self.config.verify_ssl,
            REQUESTS_ARGS={'timeout': DEFAULT_TIMEOUT},
        )
        host = self.config.host if "://" in self.config.host else f"//{self.config.host}"
        if urlparse(host).port is None:
            kwargs["port"] = self.config.port
        return kwargs

    def connect(self) -> bool:
        """
        Sign in to qBittorrent.

        Returns:
            True if connection successful
        """
        for attempt in range(MAX_RETRY_ATTEMPTS):
            try:
                self._client = qbittorrentapi.Client(**self._client_kwargs())

                if self.config.password:
                    # Suppress SSL logging for connection
                    original_level = logging.getLogger("urllib3.connectionpool").level
                    logging.getLogger("urllib3.connectionpool").setLevel(logging.ERROR)
                    try:
                        self._client.auth_log_in()
                    finally:
                        logging.getLogger("urllib3.connectionpool").setLevel(original_level)
                else:
                    logger.info("No password specified - assuming local auth is disabled in qBittorrent")

                version = self._client.app.version
                api_version = self._client.app.web_api_version
                ssl_status = "enabled" if self.config.verify_ssl else "disabled"
                logger.info(
                    f"Connected to qBittorrent {version} "
                    f"(API: {api_version}, SSL: {ssl_status})"
                )
                return True

            except (qbittorrentapi.LoginFailed, qbittorrentapi.Forbidden403Error) as e:
                logger.error(f"Login failed: {e}")
                self._client = None
                return False
            except qbittorrentapi.APIConnectionError as e:
                self._client = None
                if attempt == MAX_RETRY_ATTEMPTS - 1:
                    logger.error(f"Connection failed after {MAX_RETRY_ATTEMPTS} attempts: {e}")
                    return False
                logger.warning(f"Connection attempt {attempt + 1} failed, retrying: {e}")
                time.sleep(RETRY_DELAY)

        return False

    def disconnect(self) -> None:
        """Disconnect from qBittorrent."""
        if self._client:
            try:
                self._client.auth_log_out()
                logger.debug("Disconnected from qBittorrent")
            except qbittorrentapi.APIError as e:
                logger.debug(f"Logout error (ignored): {e}")
            finally:
                self._client = None

    def get_torrents(self) -> Optional[List[Torrent]]:
        """
        Get all torrents with their tracker messages, sorted by name.

        Returns:
            List of torrents, or None on API failure
        """
        try:
            raw_torrents = self.client.torrents_info()
        except qbittorrentapi.APIConnectionError as e:
            logger.error(f"API connection error fetching torrents: {e}")
            return None
        except qbittorrentapi.APIError as e:
            logger.error(f"Error fetching torrents: {e}")
            return None

        torrents = []
        for raw in raw_torrents:
            try:
                trackers = self.client.torrents_trackers(torrent_hash=raw["hash"])
            except qbittorrentapi.APIError as e:
                logger.warning(f"Could not get trackers for {raw.get('name')}: {e}")
                trackers = []
            torrents.append(Torrent.from_api(raw, trackers))

        return sorted(torrents, key=lambda t: t.name)

    def get_torrent_files(self, torrent_hash: str) -> Optional[List[TorrentFile]]:
        """
        Get the file manifest of a torrent.

        Args:
            torrent_hash: Torrent hash

        Returns:
            Files with sizes, or None on API failure
        """
        try:
            files = self.client.torrents_files(torrent_hash=torrent_hash)
        except qbittorrentapi.APIError as e:
            logger.warning(f"Could not get files for torrent {torrent_hash}: {e}")
            return None
        return [TorrentFile(name=f["name"], size=int(f["size"])) for f in files]

    def pause_torrents(self, torrent_hashes: Sequence[str]) -> bool:
        """
        Pause torrents in chunks.

        torrents_pause exists in every supported qbittorrent-api release and
        sends the stop endpoint to qBittorrent 5.

        Args:
            torrent_hashes: Hashes to pause

        Returns:
            True if every chunk succeeded
        """
        hashes = list(torrent_hashes)
        for start in range(0, len(hashes), PAUSE_CHUNK_SIZE):
            chunk = hashes[start:start + PAUSE_CHUNK_SIZE]
            if not self._command("pausing torrents", self.client.torrents_pause, torrent_hashes=chunk):
                return False
        return True

    def delete_torrents(self, torrent_hashes: Sequence[str], delete_files: bool = False) -> bool:
        """
        Delete torrents.

        Args:
            torrent_hashes: Hashes to delete
            delete_files: Whether to delete files on disk too

        Returns:
            True if successful
        """
        if not torrent_hashes:
            return True
        return self._command(
            "deleting torrents", self.client.torrents_delete,
            delete_files=delete_files, torrent_hashes=list(torrent_hashes),
        )

    def set_upload_limit(self, torrent_hashes: Sequence[str], limit: int) -> bool:
        """
        Set the upload limit of torrents.

        Args:
            torrent_hashes: Hashes to update
            limit: Limit in bytes/s (-1 for unlimited)
        """
        return self._command(
            "setting upload limits", self.client.torrents_set_upload_limit,
            limit=limit, torrent_hashes=list(torrent_hashes),
        )

    def set_share_limits(self, torrent_hashes: Sequence[str], ratio: float, minutes: int) -> bool:
        """
        Set max ratio and seeding time of torrents (the API takes both at once).

        Args:
            torrent_hashes: Hashes to update
            ratio: Max ratio (-2 none, -1 global)
            minutes: Max seeding time in minutes (-2 none, -1 global)
        """
        return self._command(
            "setting share limits", self.client.torrents_set_share_limits,
            ratio_limit=ratio, seeding_time_limit=minutes,
            inactive_seeding_time_limit=-1, torrent_hashes=list(torrent_hashes),
        )

    def add_torrent(self, url: str, category: Optional[str] = None) -> bool:
        """
        Add a torrent by URL.

        Args:
            url: Torrent or magnet URL
            category: Optional category

        Returns:
            True if qBittorrent accepted it
        """
        try:
            result = self.client.torrents_add(urls=url, category=category)
        except qbittorrentapi.APIError as e:
            logger.error(f"Error adding torrent {url}: {e}")
            return False
        if isinstance(result, str):
            return result.strip().lower().startswith("ok")
        return bool(result)

    def _command(self, description: str, method, **kwargs) -> bool:
        """Run a mutating API call, converting errors to False."""
        try:
            method(**kwargs)
            return True
        except qbittorrentapi.Forbidden403Error as e:
            logger.error(f"Permission denied {description}: {e}")
        except qbittorrentapi.Conflict409Error as e:
            logger.error(f"Conflict error {description}: {e}")
        except qbittorrentapi.APIConnectionError as e:
            logger.error(f"API connection error {description}: {e}")
        except qbittorrentapi.APIError as e:
            logger.error(f"Error {description}: {e}")
        return False
