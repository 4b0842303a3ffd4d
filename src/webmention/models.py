"""
Data types passed through the webmention pipeline.

A MentionRequest is what the receiving endpoint puts on the queue; a
VerifiedMention is what the processor hands to the application callback
once the source has been fetched and checked; MentionOutcome names the
terminal state each request ends in. NotificationResult is returned to
callers of the sender.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional


@dataclass(frozen=True)
class MentionRequest:
    """An accepted but not yet verified webmention.

    Attributes:
        source: URL of the page that claims to mention the target
        target: URL of the page being mentioned
        received_at: Unix timestamp when the receiver accepted the request
    """
    source: str
    target: str
    received_at: float = field(default_factory=time.time, compare=False)


class MentionOutcome(Enum):
    """Terminal states of a MentionRequest."""
    VERIFIED_WITH_DATA = "verified-with-data"
    VERIFIED_WITHOUT_DATA = "verified-without-data"
    DROPPED_FETCH_ERROR = "dropped-fetch-error"
    DROPPED_PARSE_ERROR = "dropped-parse-error"
    DROPPED_UNVERIFIABLE = "dropped-unverifiable"

    @property
    def verified(self) -> bool:
        return self in (MentionOutcome.VERIFIED_WITH_DATA, MentionOutcome.VERIFIED_WITHOUT_DATA)


# h-entry properties that turn a plain mention into a response type,
# checked in this order
_RESPONSE_PROPERTIES = (
    ("in-reply-to", "reply"),
    ("like-of", "like"),
    ("repost-of", "repost"),
    ("bookmark-of", "bookmark"),
)


@dataclass
class VerifiedMention:
    """A mention whose source was fetched and found to reference the target.

    Attributes:
        source: URL of the mentioning page
        target: URL of the mentioned page
        data: mf2py parse result of the source page, or None when the source
            was accepted only on the strength of its Link headers
    """
    source: str
    target: str
    data: Optional[Dict[str, Any]] = None

    @property
    def mention_type(self) -> str:
        """Classify the mention from the source's first h-entry.

        Returns one of "reply", "like", "repost", "bookmark" or "mention".
        """
        if not self.data:
            return "mention"
        hentry = _find_first_hentry(self.data.get("items", []))
        if not hentry:
            return "mention"

        properties = hentry.get("properties", {})
        for prop, mention_type in _RESPONSE_PROPERTIES:
            for value in properties.get(prop, []):
                if _references(value, self.target):
                    return mention_type
        return "mention"


def _find_first_hentry(items: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Depth-first search for the first h-entry in parsed microformats items."""
    stack = list(reversed(items))
    while stack:
        item = stack.pop()
        if not isinstance(item, dict):
            continue
        if "h-entry" in item.get("type", []):
            return item
        stack.extend(reversed(item.get("children", [])))
    return None


def _references(value: Any, target: str) -> bool:
    """Check if a property value (URL string or h-cite dict) is the target."""
    if isinstance(value, str):
        return value == target
    if isinstance(value, dict):
        urls = value.get("properties", {}).get("url", [])
        return target in urls or value.get("value") == target
    return False


# Application callback: (source, target, structured data or None).
# Raising signals failure; the processor logs it and moves on.
MentionCallback = Callable[[str, str, Optional[Dict[str, Any]]], Any]


@dataclass
class NotificationResult:
    """Result of sending a webmention.

    Attributes:
        source: URL of the mentioning page
        target: URL of the mentioned page
        endpoint: Webmention endpoint that was notified, or None when the
            target advertises no endpoint and nothing was sent
        status_code: HTTP status code returned by the endpoint (0 if not sent)
        location: Optional status URL returned by some endpoints
    """
    source: str
    target: str
    endpoint: Optional[str] = None
    status_code: int = 0
    location: Optional[str] = None

    @property
    def sent(self) -> bool:
        return self.endpoint is not None
