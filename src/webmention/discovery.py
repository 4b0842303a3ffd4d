"""
Webmention endpoint discovery.

Follows the W3C Webmention discovery algorithm:

    1. GET the target URL
    2. Check HTTP Link headers for rel="webmention" (or the legacy
       rel="http://webmention.org"); the first match in header order wins
       and the body is never read
    3. Otherwise parse the body as microformats2 and use the first
       parseable rel=webmention URL (<link> or <a>) in document order,
       resolved against the target

A target without an endpoint is not an error: it simply does not accept
webmentions, and discover_endpoint() returns None.

Usage:
    >>> from webmention.discovery import discover_endpoint
    >>> endpoint = discover_endpoint("https://blog.example.com/post")
    >>> if endpoint is None:
    ...     print("target does not accept webmentions")

References:
    - W3C Webmention: https://www.w3.org/TR/webmention/#sender-discovers-receiver-webmention-endpoint
"""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin

import mf2py
import requests

from webmention.errors import ParseError
from webmention.http import (
    DEFAULT_TIMEOUT,
    MAX_RESPONSE_BYTES,
    build_session,
    declared_encoding,
    decode_body,
    fetch,
    parse_url,
    read_bounded_response,
)
from webmention.links import find_rel, parse_link_headers


logger = logging.getLogger(__name__)

WEBMENTION_RELS = ("webmention", "http://webmention.org")


def discover_endpoint(
    target_url: str,
    timeout: float = DEFAULT_TIMEOUT,
    session: Optional[requests.Session] = None,
    max_bytes: int = MAX_RESPONSE_BYTES,
) -> Optional[str]:
    """Discover the webmention endpoint for a target URL.

    Args:
        target_url: The URL to discover the webmention endpoint for.
        timeout: Request timeout in seconds.
        session: Optional requests Session (a fresh one is built if omitted).
        max_bytes: Maximum number of body bytes read when falling back to HTML.

    Returns:
        The absolute webmention endpoint URL, or None if the target
        advertises none.

    Raises:
        FetchError: If the target cannot be fetched or answers non-2xx.
    """
    session = session or build_session()
    response = fetch(session, target_url, timeout=timeout)

    # 1. Link headers (before reading body, avoids unnecessary download)
    relations = parse_link_headers(response.headers.get("Link"))
    relation = find_rel(relations, *WEBMENTION_RELS)
    if relation is not None:
        response.close()
        endpoint = urljoin(target_url, relation.url)
        logger.debug(f"Found webmention endpoint in Link header: target={target_url}, endpoint={endpoint}")
        return endpoint

    # 2. HTML rel=webmention via microformats2
    body = read_bounded_response(response, max_bytes)
    html_body = decode_body(body, declared_encoding(response))

    try:
        parsed = mf2py.parse(doc=html_body, url=target_url)
    except RecursionError:
        logger.warning(f"Target too deeply nested for rel parsing, no endpoint: {target_url}")
        return None

    for candidate in _webmention_candidates(parsed):
        try:
            endpoint = urljoin(target_url, parse_url(candidate))
        except ParseError as e:
            logger.warning(f"Skipping unparseable webmention link on {target_url}: {e}")
            continue
        logger.debug(f"Found webmention endpoint in HTML: target={target_url}, endpoint={endpoint}")
        return endpoint

    logger.info(f"No webmention endpoint found for: {target_url}")
    return None


def _webmention_candidates(parsed: Dict[str, Any]) -> List[str]:
    """Endpoint URLs from an mf2 parse, in document order.

    rel-urls keeps the order links first appear in the page, so a legacy
    rel="http://webmention.org" before a rel="webmention" still wins.
    """
    wanted = {rel.lower() for rel in WEBMENTION_RELS}
    return [
        url
        for url, info in parsed.get("rel-urls", {}).items()
        if wanted.intersection(rel.lower() for rel in info.get("rels", []))
    ]
