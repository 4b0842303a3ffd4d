"""
Webmention protocol package.

Implements both halves of the W3C Webmention protocol:

Sending:
    - Endpoint discovery via HTTP Link headers and HTML rel=webmention
    - Form-encoded notification POST to the discovered endpoint

Receiving:
    - MentionRequest queue fed by the receiving endpoint (see server.app)
    - MentionProcessor workers that fetch the source, verify it links to
      the target, extract microformats2 data and invoke an application
      callback

Usage:
    >>> from webmention import send_webmention, MentionProcessor
    >>> result = send_webmention("https://me.example/reply", "https://you.example/post")
    >>>
    >>> processor = MentionProcessor(mention_queue, callback=my_callback)
    >>> processor.start()

Configuration (config.yml):
    webmention:
      endpoint_path: /webmention
      queue_size: 100
      queue_full: block
      workers: 1
      fetch_timeout: 10
"""

from webmention.discovery import discover_endpoint
from webmention.errors import (
    DeliveryError,
    FetchError,
    ParseError,
    UnverifiableMention,
    ValidationError,
    WebmentionError,
)
from webmention.links import LinkRelation, parse_link_headers
from webmention.models import (
    MentionCallback,
    MentionOutcome,
    MentionRequest,
    NotificationResult,
    VerifiedMention,
)
from webmention.processor import MentionProcessor, log_mention
from webmention.sender import WebmentionSender, send_webmention

__all__ = [
    "discover_endpoint",
    "send_webmention",
    "WebmentionSender",
    "MentionProcessor",
    "log_mention",
    "LinkRelation",
    "parse_link_headers",
    "MentionCallback",
    "MentionOutcome",
    "MentionRequest",
    "NotificationResult",
    "VerifiedMention",
    "WebmentionError",
    "FetchError",
    "ParseError",
    "DeliveryError",
    "ValidationError",
    "UnverifiableMention",
]
