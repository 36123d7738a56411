#!/usr/bin/env python3
"""Notification support via Apprise for qBittorrent management events."""

import logging
from typing import List, Sequence

import apprise

from .config import NotificationConfig
from .models import ActionRecord

logger = logging.getLogger(__name__)

_TYPE_MAP = {
    "info": apprise.NotifyType.INFO,
    "success": apprise.NotifyType.SUCCESS,
    "warning": apprise.NotifyType.WARNING,
    "failure": apprise.NotifyType.FAILURE,
}


class Notifier:
    """Apprise-based notification sender.

    Any Apprise URL works, so alert emails are configured as ``mailto://``
    or ``mailtos://`` URLs alongside Discord, Telegram, webhooks and so on.
    With no URLs configured every call is a no-op.
    """

    def __init__(self, config: NotificationConfig) -> None:
        """Initialize the notifier.

        Args:
            config: Notification configuration
        """
        self._config = config
        self._apprise = None

        if not config.enabled:
            return

        self._apprise = apprise.Apprise()
        for url in config.urls:
            if not self._apprise.add(url):
                logger.warning("[Notifications] Ignoring invalid notification URL")
        logger.info(f"[Notifications] Initialized with {len(self._apprise)} service(s)")

    @property
    def is_active(self) -> bool:
        """Check if notifications are active and configured."""
        return self._apprise is not None and len(self._apprise) > 0

    def notify_actions(self, actions: Sequence[ActionRecord], dry_run: bool = False) -> int:
        """Send a summary of paused and deleted torrents.

        Args:
            actions: Action records of the run
            dry_run: Whether the actions were only planned

        Returns:
            Number of services successfully notified
        """
        if not self.is_active or not self._config.on_actions or not actions:
            return 0

        lines: List[str] = []
        for action in actions:
            lines.append(f" * {action.torrent.describe()} - {action.method.label} ({action.reason})")

        prefix = "[DRY RUN] " if dry_run else ""
        title = f"{prefix}qbt-manager: {len(actions)} torrent action(s)"
        body = "The following torrents were processed:\n\n" + "\n".join(lines)

        return self._send(title=title, body=body, notify_type="info")

    def notify_error(self, error_message: str, context: str = "Run") -> int:
        """Send notification for an error.

        Args:
            error_message: The error message
            context: Context where the error occurred

        Returns:
            Number of services successfully notified
        """
        if not self.is_active or not self._config.on_error:
            return 0

        return self._send(
            title=f"qbt-manager: {context} Failed",
            body=f"Error: {error_message}",
            notify_type="failure",
        )

    def test(self) -> tuple[bool, int]:
        """Send a test notification to verify configuration.

        Returns:
            Tuple of (success, services_notified)
        """
        if not self.is_active:
            return False, 0

        count = self._send(
            title="qbt-manager: Test Notification",
            body="If you see this, notifications are working correctly!",
            notify_type="info",
        )
        return count > 0, count

    def _send(self, title: str, body: str, notify_type: str = "info") -> int:
        """Send a notification via Apprise.

        Returns:
            Number of services successfully notified
        """
        try:
            result = self._apprise.notify(
                title=title,
                body=body,
                notify_type=_TYPE_MAP.get(notify_type, apprise.NotifyType.INFO),
            )
        except Exception as e:
            logger.error(f"[Notifications] Error sending notification: {e}")
            return 0

        count = len(self._apprise)
        if result:
            logger.debug(f"[Notifications] Sent to {count} service(s): {title}")
        else:
            logger.warning(f"[Notifications] Failed to send: {title}")
        return count if result else 0
