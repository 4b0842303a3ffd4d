"""
Tests for the W3C webmention receiving endpoint.

Covers:
- POST /webmention validation (missing and unparseable parameters)
- Enqueueing and immediate 202 response
- Queue-full behavior (block and reject)
- Link header advertisement, GET endpoint description, health check

Running Tests:
    $ PYTHONPATH=src python -m pytest tests/test_receiver.py -v
"""
import threading
import time
from queue import Queue

import pytest

from server.app import create_app, validate_mention_params
from webmention.errors import ValidationError
from webmention.models import MentionRequest


SOURCE = "https://a.example/post"
TARGET = "https://b.example/article"


def post_mention(client, **data):
    return client.post(
        "/webmention",
        data=data,
        content_type="application/x-www-form-urlencoded",
    )


class TestReceiverEndpoint:
    def test_valid_webmention_returns_202(self, client, mention_queue):
        response = post_mention(client, source=SOURCE, target=TARGET)

        assert response.status_code == 202
        assert mention_queue.qsize() == 1
        queued = mention_queue.get_nowait()
        assert queued == MentionRequest(SOURCE, TARGET)

    def test_values_are_stripped(self, client, mention_queue):
        response = post_mention(client, source=f"  {SOURCE} ", target=f"{TARGET}\n")
        assert response.status_code == 202
        assert mention_queue.get_nowait() == MentionRequest(SOURCE, TARGET)

    def test_missing_source_returns_400(self, client, mention_queue):
        response = post_mention(client, target=TARGET)
        assert response.status_code == 400
        assert response.mimetype == "text/plain"
        assert b"source" in response.data
        assert mention_queue.qsize() == 0

    def test_empty_target_returns_400(self, client, mention_queue):
        response = post_mention(client, source=SOURCE, target="")
        assert response.status_code == 400
        assert b"target" in response.data
        assert mention_queue.qsize() == 0

    def test_missing_both_returns_400(self, client, mention_queue):
        response = post_mention(client)
        assert response.status_code == 400
        assert mention_queue.qsize() == 0

    @pytest.mark.parametrize("source,target", [
        ("not-a-url", TARGET),
        (SOURCE, "/relative/path"),
        ("http://[::1", TARGET),
        (SOURCE, "http://b.example:port/article"),
    ])
    def test_unparseable_urls_return_400(self, client, mention_queue, source, target):
        response = post_mention(client, source=source, target=target)
        assert response.status_code == 400
        assert mention_queue.qsize() == 0

    def test_json_body_is_not_form_data(self, client, mention_queue):
        response = client.post(
            "/webmention",
            data=f'{{"source": "{SOURCE}", "target": "{TARGET}"}}',
            content_type="application/json",
        )
        assert response.status_code == 400
        assert mention_queue.qsize() == 0

    def test_duplicates_are_independent_jobs(self, client, mention_queue):
        post_mention(client, source=SOURCE, target=TARGET)
        post_mention(client, source=SOURCE, target=TARGET)
        assert mention_queue.qsize() == 2

    def test_response_does_not_wait_for_processing(self, client, mention_queue):
        # Nothing consumes the queue, yet the request completes
        response = post_mention(client, source=SOURCE, target=TARGET)
        assert response.status_code == 202
        assert mention_queue.unfinished_tasks == 1


class TestQueueFull:
    def test_reject_mode_returns_503(self, receiver_config):
        receiver_config["webmention"]["queue_full"] = "reject"
        mention_queue = Queue(maxsize=1)
        mention_queue.put(MentionRequest("https://a.example/first", TARGET))
        app = create_app(mention_queue, config=receiver_config)

        response = post_mention(app.test_client(), source=SOURCE, target=TARGET)

        assert response.status_code == 503
        assert response.headers["Retry-After"] == "30"
        assert mention_queue.qsize() == 1

    def test_reject_mode_accepts_when_space(self, receiver_config):
        receiver_config["webmention"]["queue_full"] = "reject"
        mention_queue = Queue(maxsize=1)
        app = create_app(mention_queue, config=receiver_config)

        response = post_mention(app.test_client(), source=SOURCE, target=TARGET)
        assert response.status_code == 202

    def test_block_mode_waits_for_space(self, receiver_config):
        mention_queue = Queue(maxsize=1)
        mention_queue.put(MentionRequest("https://a.example/first", TARGET))
        app = create_app(mention_queue, config=receiver_config)
        result = {}

        def submit():
            result["response"] = post_mention(app.test_client(), source=SOURCE, target=TARGET)

        thread = threading.Thread(target=submit, daemon=True)
        thread.start()
        time.sleep(0.2)
        assert thread.is_alive()

        mention_queue.get_nowait()
        thread.join(timeout=2)

        assert result["response"].status_code == 202
        assert mention_queue.get_nowait() == MentionRequest(SOURCE, TARGET)


class TestDiscoveryAndInfo:
    def test_link_header_advertised(self, client):
        response = client.get("/health")
        assert response.headers["Link"] == '</webmention>; rel="webmention"'

    def test_link_header_can_be_disabled(self, receiver_config, mention_queue):
        receiver_config["webmention"]["advertise_link_header"] = False
        app = create_app(mention_queue, config=receiver_config)
        response = app.test_client().get("/health")
        assert "Link" not in response.headers

    def test_custom_endpoint_path(self, receiver_config, mention_queue):
        receiver_config["webmention"]["endpoint_path"] = "/wm"
        app = create_app(mention_queue, config=receiver_config)
        c = app.test_client()

        response = c.post("/wm", data={"source": SOURCE, "target": TARGET})
        assert response.status_code == 202
        assert response.headers["Link"] == '</wm>; rel="webmention"'

    def test_get_endpoint_description(self, client):
        response = client.get("/webmention")
        assert response.status_code == 200
        assert b"source" in response.data

    def test_health_reports_queue_size(self, client, mention_queue):
        mention_queue.put(MentionRequest(SOURCE, TARGET))
        response = client.get("/health")
        assert response.status_code == 200
        assert response.get_json() == {"status": "healthy", "queue_size": 1}


class TestValidateMentionParams:
    def test_valid(self):
        assert validate_mention_params(SOURCE, TARGET) == MentionRequest(SOURCE, TARGET)

    @pytest.mark.parametrize("source,target,message", [
        ("", TARGET, "source"),
        (SOURCE, "", "target"),
        ("mailto:someone@example.com", TARGET, "source"),
        (SOURCE, "b.example/article", "target"),
    ])
    def test_invalid(self, source, target, message):
        with pytest.raises(ValidationError, match=message):
            validate_mention_params(source, target)
