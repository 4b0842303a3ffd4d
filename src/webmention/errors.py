"""
Webmention error taxonomy.

Every failure the protocol code can report derives from WebmentionError so
callers embedding the library can catch a single base class. The receiving
pipeline never lets these escape a worker thread: fetch and parse failures
are logged and the affected mention is dropped.

Hierarchy:
    WebmentionError
    ├── FetchError           - transport failure or non-2xx fetching a page
    ├── ParseError           - malformed HTML or an unparseable URL
    ├── DeliveryError        - endpoint refused a notification
    ├── ValidationError      - missing/invalid inbound source or target
    └── UnverifiableMention  - source shows no sign of linking to target
"""

from typing import Optional


class WebmentionError(Exception):
    """Base class for all webmention errors."""


class FetchError(WebmentionError):
    """Fetching a remote resource failed.

    Attributes:
        url: The URL that was being fetched
        status_code: HTTP status of the response, or None for transport errors
    """

    def __init__(self, url: str, message: str, status_code: Optional[int] = None):
        super().__init__(f"{message}: {url}")
        self.url = url
        self.status_code = status_code


class ParseError(WebmentionError):
    """Page content or a URL extracted from it could not be parsed."""


class DeliveryError(WebmentionError):
    """Posting a notification to a webmention endpoint failed.

    Attributes:
        endpoint: The webmention endpoint that was posted to
        status_code: HTTP status code (0 for connection errors and timeouts)
        message: Human-readable reason, parsed from the response if possible
    """

    def __init__(self, endpoint: str, status_code: int, message: str):
        super().__init__(f"Webmention delivery to {endpoint} failed: {message}")
        self.endpoint = endpoint
        self.status_code = status_code
        self.message = message


class ValidationError(WebmentionError):
    """An inbound webmention request is missing or has malformed parameters."""


class UnverifiableMention(WebmentionError):
    """The source neither links to the target nor exposes any Link headers."""
