"""
Webmention sending.

Webmention is a W3C standard for notifying a URL when you link to it.
Sending is two steps: discover the target's endpoint, then

    POST {webmention-endpoint}
    Content-Type: application/x-www-form-urlencoded

    source={your-post-url}&target={linked-url}

A target without an endpoint is a normal outcome: nothing is posted and
the returned NotificationResult has endpoint=None. Failures raise
(FetchError from discovery, DeliveryError from the POST); retrying is
left to the caller.

Usage:
    >>> from webmention.sender import send_webmention
    >>> result = send_webmention(
    ...     "https://reply.example.com/reply/abc",
    ...     "https://blog.example.com/post",
    ... )
    >>> if result.sent:
    ...     print(f"Accepted by {result.endpoint} ({result.status_code})")
"""

import logging
from typing import Any, Dict, Optional

import requests

from webmention.discovery import discover_endpoint
from webmention.errors import DeliveryError
from webmention.http import (
    DEFAULT_TIMEOUT,
    WEBMENTION_USER_AGENT,
    build_session,
)
from webmention.models import NotificationResult


logger = logging.getLogger(__name__)


def send_webmention(
    source_url: str,
    target_url: str,
    timeout: float = DEFAULT_TIMEOUT,
    session: Optional[requests.Session] = None,
) -> NotificationResult:
    """Send a webmention from source to target with automatic endpoint discovery.

    Args:
        source_url: The URL of the page that mentions the target.
        target_url: The URL being mentioned.
        timeout: Request timeout in seconds, applied to discovery and delivery.
        session: Optional requests Session shared by both requests.

    Returns:
        NotificationResult; result.sent is False if the target has no endpoint.

    Raises:
        FetchError: If the target could not be fetched for discovery.
        DeliveryError: If the endpoint could not be reached or answered non-2xx.
    """
    session = session or build_session()

    endpoint = discover_endpoint(target_url, timeout=timeout, session=session)
    if endpoint is None:
        logger.warning(f"No webmention endpoint found, nothing sent: source={source_url}, target={target_url}")
        return NotificationResult(source=source_url, target=target_url)

    logger.info(f"Sending webmention: source={source_url}, target={target_url}, endpoint={endpoint}")

    try:
        response = session.post(
            endpoint,
            data={"source": source_url, "target": target_url},
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            timeout=timeout,
        )
    except requests.exceptions.TooManyRedirects as e:
        raise DeliveryError(endpoint, 0, "Too many redirects") from e
    except requests.exceptions.Timeout as e:
        raise DeliveryError(endpoint, 0, "Request timed out") from e
    except requests.exceptions.RequestException as e:
        raise DeliveryError(endpoint, 0, f"Request failed: {e}") from e

    if not 200 <= response.status_code < 300:
        error_msg = _parse_error_response(response)
        logger.error(
            f"Webmention rejected: source={source_url}, target={target_url}, "
            f"status_code={response.status_code}, error={error_msg}"
        )
        raise DeliveryError(endpoint, response.status_code, error_msg)

    location = response.headers.get("Location")
    logger.info(
        f"Webmention accepted: source={source_url}, target={target_url}, "
        f"status_code={response.status_code}, location={location}"
    )
    return NotificationResult(
        source=source_url,
        target=target_url,
        endpoint=endpoint,
        status_code=response.status_code,
        location=location,
    )


class WebmentionSender:
    """Configured sender sharing one session across notifications.

    Example:
        >>> sender = WebmentionSender.from_config(config)
        >>> sender.send("https://me.example/reply", "https://you.example/post")
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, user_agent: str = WEBMENTION_USER_AGENT):
        self.timeout = timeout
        self.session = build_session(user_agent)

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "WebmentionSender":
        """Create a sender from the webmention section of config.yml."""
        wm_config = config.get("webmention", {})
        return cls(
            timeout=wm_config.get("fetch_timeout", DEFAULT_TIMEOUT),
            user_agent=wm_config.get("user_agent", WEBMENTION_USER_AGENT),
        )

    def send(self, source_url: str, target_url: str) -> NotificationResult:
        return send_webmention(source_url, target_url, timeout=self.timeout, session=self.session)


def _parse_error_response(response: requests.Response) -> str:
    """Parse error message from an HTTP response."""
    try:
        data = response.json()
        if isinstance(data, dict) and "error" in data:
            return data.get("error_description", data["error"])
    except ValueError:
        pass
    text = (response.text or "").strip()
    if text and len(text) < 200:
        return f"HTTP {response.status_code}: {text}"
    return f"HTTP {response.status_code}: {response.reason}"
