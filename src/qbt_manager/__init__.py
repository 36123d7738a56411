#!/usr/bin/env python3
"""qBittorrent Manager - tracker-policy driven torrent pruning and RSS queuing."""

__version__ = "1.0.0"
__license__ = "MIT"

from .config import Config
from .manager import QbtManager

__all__ = ["QbtManager", "Config", "__version__"]
