"""
Pytest configuration and shared fixtures for all tests.

This module provides shared fixtures for the test suite, including:
- Fake requests responses for mocked fetches
- Fake requests sessions returning them
- A bounded mention queue and Flask app wired to it

No test touches the network: every HTTP request goes through a
MagicMock session.
"""

from queue import Queue
from typing import Dict, Optional
from unittest.mock import MagicMock

import pytest


@pytest.fixture
def make_response():
    """Factory for MagicMock objects shaped like a streamed requests.Response."""

    def _make(
        status_code: int = 200,
        body: str = "",
        headers: Optional[Dict[str, str]] = None,
        url: str = "https://example.com/",
        encoding: Optional[str] = "utf-8",
        content: Optional[bytes] = None,
    ) -> MagicMock:
        """content overrides the utf-8 encoding of body as the raw payload."""
        response = MagicMock()
        response.status_code = status_code
        response.ok = status_code < 400
        response.headers = headers or {}
        response.url = url
        response.encoding = encoding
        response.text = body
        response.iter_content = MagicMock(return_value=[content if content is not None else body.encode("utf-8")])
        response.close = MagicMock()
        response.json.side_effect = ValueError("No JSON")
        return response

    return _make


@pytest.fixture
def make_session():
    """Factory for MagicMock sessions with canned GET (and optional POST) responses.

    GET responses may be a single response or a dict of url -> response.
    """

    def _make(get=None, post=None) -> MagicMock:
        session = MagicMock()
        if isinstance(get, dict):
            session.get.side_effect = lambda url, **kwargs: get[url]
        else:
            session.get.return_value = get
        session.post.return_value = post
        return session

    return _make


@pytest.fixture
def receiver_config():
    """Config with defaults for the webmention receiver."""
    return {
        "webmention": {
            "endpoint_path": "/webmention",
            "queue_size": 100,
            "queue_full": "block",
        },
        "cors": {"enabled": False},
        "pushover": {"enabled": False},
    }


@pytest.fixture
def mention_queue():
    """Bounded mention queue with the default capacity."""
    return Queue(maxsize=100)


@pytest.fixture
def app(mention_queue, receiver_config):
    """Flask test app wired to the mention queue."""
    from server.app import create_app

    app = create_app(mention_queue, config=receiver_config)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()
