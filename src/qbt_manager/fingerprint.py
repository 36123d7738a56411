#!/usr/bin/env python3
"""Content fingerprints for detecting torrents that share the same files."""

import hashlib
import logging
from typing import Dict, Iterable, Optional, Sequence

from .models import Torrent, TorrentFile

logger = logging.getLogger(__name__)


def content_fingerprint(files: Iterable[TorrentFile]) -> str:
    """
    Compute a digest identifying a torrent's file set.

    Files are sorted by name, then each name is followed directly by its
    size in decimal. The SHA-256 of that string is the fingerprint.

    Args:
        files: File manifest in any order

    Returns:
        Lowercase hex SHA-256 digest
    """
    combined = "".join(f"{f.name}{f.size}" for f in sorted(files, key=lambda f: f.name))
    return hashlib.sha256(combined.encode("utf-8")).hexdigest()


def build_fingerprints(client, torrents: Sequence[Torrent]) -> Dict[str, Optional[str]]:
    """
    Fingerprint every torrent in the run.

    Args:
        client: Object with get_torrent_files(hash) returning a list or None
        torrents: Torrents to fingerprint

    Returns:
        Mapping of torrent hash to fingerprint, None where the manifest fetch failed
    """
    fingerprints: Dict[str, Optional[str]] = {}
    for torrent in torrents:
        if torrent.hash in fingerprints:
            continue
        files = client.get_torrent_files(torrent.hash)
        if files is None:
            logger.warning(f"No file list for {torrent.name}, shared-content check disabled for it")
            fingerprints[torrent.hash] = None
            continue
        fingerprints[torrent.hash] = content_fingerprint(files)

    logger.debug(f"Fingerprinted {len(fingerprints)} torrents")
    return fingerprints
