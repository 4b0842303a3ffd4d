"""
Unit Tests for webmention sending.

Test Coverage:
    - Discovery + POST of source/target form fields
    - Targets without an endpoint (no POST, not an error)
    - Error response parsing into DeliveryError
    - Transport errors during delivery
    - WebmentionSender configuration

Running Tests:
    $ pytest tests/test_sender.py -v
"""
import pytest
from unittest.mock import patch
import requests

from webmention.errors import DeliveryError, FetchError
from webmention.sender import WebmentionSender, send_webmention


SOURCE = "https://a.example/post"
TARGET = "https://b.example/article"
ENDPOINT_HEADER = {"Link": '<https://example.com/wm>; rel="webmention"'}


class TestSendWebmention:
    def test_posts_source_and_target_to_endpoint(self, make_response, make_session):
        session = make_session(
            get=make_response(headers=ENDPOINT_HEADER),
            post=make_response(status_code=200),
        )

        result = send_webmention(SOURCE, TARGET, session=session)

        assert result.sent is True
        assert result.endpoint == "https://example.com/wm"
        assert result.status_code == 200
        call_args = session.post.call_args
        assert call_args[0][0] == "https://example.com/wm"
        assert call_args[1]["data"] == {"source": SOURCE, "target": TARGET}
        assert call_args[1]["headers"]["Content-Type"] == "application/x-www-form-urlencoded"

    @pytest.mark.parametrize("status", [201, 202])
    def test_accepted_statuses(self, make_response, make_session, status):
        session = make_session(
            get=make_response(headers=ENDPOINT_HEADER),
            post=make_response(status_code=status, headers={"Location": "https://example.com/status/1"}),
        )
        result = send_webmention(SOURCE, TARGET, session=session)
        assert result.status_code == status
        assert result.location == "https://example.com/status/1"

    def test_no_endpoint_sends_nothing(self, make_response, make_session):
        session = make_session(get=make_response(body="<html><body>no endpoint</body></html>"))

        result = send_webmention(SOURCE, TARGET, session=session)

        assert result.sent is False
        assert result.endpoint is None
        session.post.assert_not_called()

    def test_no_endpoint_twice_posts_nothing(self, make_response, make_session):
        session = make_session(get=make_response(body="<html></html>"))
        send_webmention(SOURCE, TARGET, session=session)
        send_webmention(SOURCE, TARGET, session=session)
        assert session.post.call_count == 0

    def test_discovery_failure_propagates(self, make_response, make_session):
        session = make_session(get=make_response(status_code=500))
        with pytest.raises(FetchError):
            send_webmention(SOURCE, TARGET, session=session)
        session.post.assert_not_called()

    def test_rejection_with_json_error(self, make_response, make_session):
        rejected = make_response(status_code=400)
        rejected.json.side_effect = None
        rejected.json.return_value = {
            "error": "no_link_found",
            "error_description": "The source document does not contain a link to the target",
        }
        session = make_session(get=make_response(headers=ENDPOINT_HEADER), post=rejected)

        with pytest.raises(DeliveryError) as exc_info:
            send_webmention(SOURCE, TARGET, session=session)

        assert exc_info.value.status_code == 400
        assert exc_info.value.message == "The source document does not contain a link to the target"
        assert exc_info.value.endpoint == "https://example.com/wm"

    def test_rejection_with_json_error_without_description(self, make_response, make_session):
        rejected = make_response(status_code=400)
        rejected.json.side_effect = None
        rejected.json.return_value = {"error": "invalid_source"}
        session = make_session(get=make_response(headers=ENDPOINT_HEADER), post=rejected)

        with pytest.raises(DeliveryError) as exc_info:
            send_webmention(SOURCE, TARGET, session=session)
        assert exc_info.value.message == "invalid_source"

    def test_rejection_with_text_body(self, make_response, make_session):
        rejected = make_response(status_code=500, body="Internal Server Error")
        session = make_session(get=make_response(headers=ENDPOINT_HEADER), post=rejected)

        with pytest.raises(DeliveryError) as exc_info:
            send_webmention(SOURCE, TARGET, session=session)
        assert exc_info.value.message == "HTTP 500: Internal Server Error"

    def test_delivery_timeout(self, make_response, make_session):
        session = make_session(get=make_response(headers=ENDPOINT_HEADER))
        session.post.side_effect = requests.exceptions.Timeout()

        with pytest.raises(DeliveryError) as exc_info:
            send_webmention(SOURCE, TARGET, session=session)
        assert exc_info.value.status_code == 0
        assert exc_info.value.message == "Request timed out"

    def test_delivery_connection_error(self, make_response, make_session):
        session = make_session(get=make_response(headers=ENDPOINT_HEADER))
        session.post.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(DeliveryError) as exc_info:
            send_webmention(SOURCE, TARGET, session=session)
        assert exc_info.value.status_code == 0

    def test_timeout_passed_to_post(self, make_response, make_session):
        session = make_session(get=make_response(headers=ENDPOINT_HEADER), post=make_response(status_code=202))
        send_webmention(SOURCE, TARGET, timeout=7, session=session)
        assert session.post.call_args[1]["timeout"] == 7


class TestWebmentionSender:
    def test_from_config(self):
        sender = WebmentionSender.from_config({"webmention": {"fetch_timeout": 4, "user_agent": "Webmention (test)"}})
        assert sender.timeout == 4
        assert sender.session.headers["User-Agent"] == "Webmention (test)"

    def test_from_empty_config(self):
        sender = WebmentionSender.from_config({})
        assert sender.timeout == 10.0
        assert "Webmention" in sender.session.headers["User-Agent"]

    def test_send_uses_shared_session(self):
        sender = WebmentionSender(timeout=2)
        with patch("webmention.sender.send_webmention") as mock_send:
            sender.send(SOURCE, TARGET)
        mock_send.assert_called_once_with(SOURCE, TARGET, timeout=2, session=sender.session)
