"""
Shared HTTP plumbing for the webmention client and verifier.

Both discovery (fetching a target) and verification (fetching a source)
pull untrusted pages from the network, so they share the same session
setup and the same guards: a User-Agent containing "Webmention" as the
W3C recommendation asks, a redirect cap, a mandatory timeout and a cap on
how much of a response body is read.
"""

import logging
from typing import Optional
from urllib.parse import urlsplit

import requests
from bs4 import UnicodeDammit

from webmention.errors import FetchError, ParseError


logger = logging.getLogger(__name__)

# W3C spec-aligned defaults
WEBMENTION_USER_AGENT = "Webmention (mentiond)"
MAX_RESPONSE_BYTES = 1_048_576  # 1 MB
MAX_REDIRECTS = 20  # W3C Webmention spec recommendation
DEFAULT_TIMEOUT = 10.0


def build_session(user_agent: str = WEBMENTION_USER_AGENT) -> requests.Session:
    """Build a requests Session with webmention-appropriate settings.

    Configures User-Agent and redirect limits per W3C spec recommendations.
    """
    session = requests.Session()
    session.headers["User-Agent"] = user_agent
    session.max_redirects = MAX_REDIRECTS
    return session


def parse_url(value: str) -> str:
    """Parse a URL and return its textual form.

    Raises:
        ParseError: If the value is empty or urllib cannot split it
            (e.g. an unbalanced IPv6 bracket or an invalid port).
    """
    if not value:
        raise ParseError("Empty URL")
    try:
        parts = urlsplit(value)
        # Accessing port validates it
        parts.port
    except ValueError as e:
        raise ParseError(f"Invalid URL {value!r}: {e}") from e
    return parts.geturl()


def is_absolute_url(value: str) -> bool:
    """Check if a string parses as an absolute URL (scheme and host present)."""
    try:
        parsed = urlsplit(parse_url(value))
    except ParseError:
        return False
    return bool(parsed.scheme) and bool(parsed.netloc)


def fetch(
    session: requests.Session,
    url: str,
    timeout: float = DEFAULT_TIMEOUT,
) -> requests.Response:
    """GET a page for webmention processing.

    The response is streamed so the caller can inspect headers before
    deciding whether to read the body. The caller must close it.

    Raises:
        FetchError: On timeouts, too many redirects, transport errors or a
            non-2xx status code.
    """
    try:
        response = session.get(
            url,
            headers={"Accept": "text/html, application/xhtml+xml, */*"},
            timeout=timeout,
            allow_redirects=True,
            stream=True,
        )
    except requests.exceptions.TooManyRedirects as e:
        raise FetchError(url, "Too many redirects") from e
    except requests.exceptions.Timeout as e:
        raise FetchError(url, "Request timed out") from e
    except requests.exceptions.RequestException as e:
        raise FetchError(url, f"Request failed ({e})") from e

    if not 200 <= response.status_code < 300:
        response.close()
        raise FetchError(url, f"HTTP {response.status_code}", status_code=response.status_code)

    return response


def read_bounded_response(response: requests.Response, max_bytes: int = MAX_RESPONSE_BYTES) -> bytes:
    """Read a streamed response body, stopping once max_bytes is exceeded."""
    chunks = []
    bytes_read = 0
    try:
        for chunk in response.iter_content(chunk_size=8192, decode_unicode=False):
            chunks.append(chunk)
            bytes_read += len(chunk)
            if bytes_read > max_bytes:
                logger.warning(f"Response too large ({bytes_read}+ bytes), truncating: {response.url}")
                break
    finally:
        response.close()
    return b"".join(chunks)[:max_bytes]


def declared_encoding(response: requests.Response) -> Optional[str]:
    """Return the charset named in the Content-Type header, if any.

    requests reports ISO-8859-1 for any text/* response without a charset
    parameter; that default is not treated as a declaration.
    """
    content_type = response.headers.get("Content-Type", "")
    if "charset" not in content_type.lower():
        return None
    return response.encoding


def decode_body(body: bytes, encoding: Optional[str] = None) -> str:
    """Decode an HTML body.

    A charset declared by the server wins. Otherwise a byte order mark,
    strict utf-8 and <meta charset> are tried before character detection.
    """
    dammit = UnicodeDammit(
        body,
        known_definite_encodings=[encoding] if encoding else [],
        user_encodings=["utf-8"],
        is_html=True,
    )
    if dammit.unicode_markup is None:
        return body.decode("utf-8", errors="replace")
    return dammit.unicode_markup
