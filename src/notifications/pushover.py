"""
Pushover Notification Callback for mentiond.

This module provides a webmention application callback that sends a push
notification via Pushover for every verified incoming webmention.

Pushover Configuration:
    Configure via config.yml:
    - pushover.enabled: Set to true to enable notifications
    - pushover.app_token_file: Path to Docker secret for app token
    - pushover.user_key_file: Path to Docker secret for user key

Usage:
    >>> from config import load_config
    >>> config = load_config()
    >>> notifier = PushoverNotifier.from_config(config)
    >>> processor = MentionProcessor(mention_queue, callback=notifier.notify_mention)

API Reference:
    Pushover API: https://pushover.net/api

Security:
    - Credentials are loaded from Docker secrets
    - No credentials are logged or stored in code
"""
import os
import logging
from typing import Any, Dict, Optional

import requests

from webmention.models import VerifiedMention


logger = logging.getLogger(__name__)


class NotificationError(Exception):
    """Pushover did not accept a notification."""


class PushoverNotifier:
    """Client for sending push notifications via Pushover service.

    Attributes:
        app_token: Pushover application API token
        user_key: Pushover user/group key
        enabled: Whether notifications are enabled (both credentials must be set)
    """

    # Pushover API endpoint
    PUSHOVER_API_URL = "https://api.pushover.net/1/messages.json"

    # Pushover field length limits
    MAX_TITLE_LENGTH = 250
    MAX_MESSAGE_LENGTH = 1024
    MAX_URL_LENGTH = 512
    MAX_URL_TITLE_LENGTH = 100

    MENTION_TITLES = {
        "reply": "💬 New Webmention Reply",
        "like": "⭐ New Webmention Like",
        "repost": "🔁 New Webmention Repost",
        "bookmark": "🔖 New Webmention Bookmark",
        "mention": "🌐 New Webmention",
    }

    def __init__(self, app_token: Optional[str] = None, user_key: Optional[str] = None,
                 config_enabled: bool = True):
        """Initialize Pushover notifier with credentials.

        Args:
            app_token: Pushover application API token. If None, reads from
                      PUSHOVER_APP_TOKEN environment variable.
            user_key: Pushover user/group key. If None, reads from
                     PUSHOVER_USER_KEY environment variable.
            config_enabled: Whether Pushover is enabled in config.yml (default: True)
        """
        self.app_token = app_token or os.environ.get("PUSHOVER_APP_TOKEN")
        self.user_key = user_key or os.environ.get("PUSHOVER_USER_KEY")
        self.enabled = (config_enabled and
                        self.app_token is not None and
                        self.user_key is not None)

        if not config_enabled:
            logger.info("Pushover notifications disabled via config.yml")
        elif not self.enabled:
            logger.warning("Pushover notifications disabled: missing credentials")
        else:
            logger.info("Pushover notifications enabled")

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "PushoverNotifier":
        """Create PushoverNotifier from configuration dictionary.

        Reads credentials from the Docker secret files named in config.yml.
        """
        from config import read_secret_file

        pushover_config = config.get("pushover", {})
        if not pushover_config.get("enabled", False):
            return cls(config_enabled=False)

        app_token_file = pushover_config.get("app_token_file", "/run/secrets/pushover_app_token")
        user_key_file = pushover_config.get("user_key_file", "/run/secrets/pushover_user_key")

        return cls(
            app_token=read_secret_file(app_token_file),
            user_key=read_secret_file(user_key_file),
            config_enabled=True,
        )

    def _send_notification(
        self,
        title: str,
        message: str,
        priority: int = 0,
        url: Optional[str] = None,
        url_title: Optional[str] = None
    ) -> bool:
        """Send a push notification via Pushover API.

        Args:
            title: Notification title (up to 250 characters)
            message: Notification message (up to 1024 characters)
            priority: Priority level (-2 to 2)
            url: Optional URL to include in notification
            url_title: Optional title for the URL

        Returns:
            True if notification sent successfully, False otherwise
        """
        if not self.enabled:
            logger.debug(f"Pushover notification skipped (disabled): {title} - {message}")
            return False

        payload = {
            "token": self.app_token,
            "user": self.user_key,
            "title": title[:self.MAX_TITLE_LENGTH],
            "message": message[:self.MAX_MESSAGE_LENGTH],
            "priority": priority,
        }
        if url:
            payload["url"] = url[:self.MAX_URL_LENGTH]
            if url_title:
                payload["url_title"] = url_title[:self.MAX_URL_TITLE_LENGTH]

        try:
            response = requests.post(self.PUSHOVER_API_URL, data=payload, timeout=10)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to send Pushover notification: {e}")
            return False

        logger.info(f"Pushover notification sent: {title}")
        return True

    def notify_mention(self, source: str, target: str, data: Optional[Dict[str, Any]]) -> bool:
        """Webmention callback: notify about a verified incoming mention.

        Args:
            source: URL of the page that mentions the target
            target: URL of the page that was mentioned
            data: Microformats2 data of the source, or None

        Returns:
            True if sent, False if notifications are disabled

        Raises:
            NotificationError: If Pushover is enabled but rejected the notification,
                so the mention processor logs the failure.
        """
        if not self.enabled:
            return False

        mention = VerifiedMention(source=source, target=target, data=data)
        title = self.MENTION_TITLES[mention.mention_type]
        message = f"{source}\nmentioned\n{target}"
        if not self._send_notification(title=title, message=message, url=source, url_title="View Source"):
            raise NotificationError(f"Pushover rejected notification for source={source}")
        return True
