"""Notification callbacks for verified webmentions."""
from .pushover import NotificationError, PushoverNotifier

__all__ = ["NotificationError", "PushoverNotifier"]
