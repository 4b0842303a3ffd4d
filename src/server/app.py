"""
Webmention Receiver - Flask Application.

This module implements the W3C Webmention receiving endpoint as a Flask
application factory. The endpoint acknowledges fast and verifies later:

Architecture:
    The receiver follows a request-validation-queuing pattern:
    1. Receive form-encoded POST with source and target
    2. Reject missing or unparseable parameters with 400
    3. Push a MentionRequest onto the bounded mention queue
    4. Return 202 Accepted without waiting for verification

    Verification (fetching the source, checking it links to the target,
    extracting microformats2) happens in webmention.processor.MentionProcessor
    threads consuming the same queue.

Mention Queue:
    The queue is injected through create_app(mention_queue) and stored in
    app.config["MENTION_QUEUE"]. Its maxsize bounds how many unverified
    mentions may wait. When it is full the endpoint either blocks the
    request until a worker frees a slot (queue_full: block) or answers
    503 with Retry-After (queue_full: reject).

Endpoint Discovery:
    Every response carries a Link header advertising the endpoint, per
    W3C Webmention section 3.1.2, unless advertise_link_header is false.

Error Handling:
    Returns plain-text bodies with:
    - 202: Accepted for asynchronous verification
    - 400: Missing or invalid source/target
    - 503: Queue full (reject mode only)

Functions:
    create_app(mention_queue, config): Build the Flask application
"""
import logging
import queue
from typing import Any, Dict, Optional, Tuple

from flask import Flask, current_app, jsonify, request
from flask_cors import CORS

from config import QUEUE_FULL_REJECT, get_webmention_config, load_config
from webmention.errors import ValidationError
from webmention.http import is_absolute_url, parse_url
from webmention.models import MentionRequest

# Logging is configured in mentiond.main() - this module uses the configured logger
logger = logging.getLogger(__name__)

# Seconds a client is asked to wait when the queue is full
RETRY_AFTER_SECONDS = 30

TEXT_PLAIN = {"Content-Type": "text/plain; charset=utf-8"}


def _text(message: str, status: int, headers: Optional[Dict[str, str]] = None) -> Tuple[str, int, Dict[str, str]]:
    """Build a plain-text Flask response tuple."""
    return message, status, {**TEXT_PLAIN, **(headers or {})}


def validate_mention_params(source: str, target: str) -> MentionRequest:
    """Validate inbound source/target values and build a MentionRequest.

    Args:
        source: Raw source form value
        target: Raw target form value

    Returns:
        MentionRequest holding the parsed URLs

    Raises:
        ValidationError: If a value is missing or is not an absolute URL
    """
    if not source:
        raise ValidationError("Missing required parameter: source")
    if not target:
        raise ValidationError("Missing required parameter: target")
    if not is_absolute_url(source):
        raise ValidationError("Invalid source URL")
    if not is_absolute_url(target):
        raise ValidationError("Invalid target URL")
    return MentionRequest(source=parse_url(source), target=parse_url(target))


def create_app(mention_queue: "queue.Queue[MentionRequest]", config: Optional[Dict[str, Any]] = None) -> Flask:
    """Factory function to create and configure the Flask application.

    This factory pattern allows dependency injection of the mention queue
    and config, making the app easy to test and letting the process that
    owns the queue also own the MentionProcessor consuming it.

    Args:
        mention_queue: Bounded Queue shared with the MentionProcessor
        config: Optional configuration dictionary (if None, will be loaded from config.yml)

    Returns:
        Configured Flask application instance with webmention and health endpoints

    Example:
        >>> from queue import Queue
        >>> app = create_app(Queue(maxsize=100))
        >>> # Use app with test client or run with Gunicorn
    """
    app = Flask(__name__)

    if config is None:
        config = load_config()
    wm_config = get_webmention_config(config)
    endpoint_path = wm_config["endpoint_path"]

    # Configure CORS so browser widgets on other origins can submit webmentions
    cors_config = config.get("cors", {})
    if cors_config.get("enabled", False):
        cors_origins = cors_config.get("origins", [])
        if cors_origins:
            CORS(app, origins=cors_origins)
            logger.info(f"CORS enabled for origins: {cors_origins}")
        else:
            logger.warning("CORS enabled but no origins configured")
    else:
        logger.info("CORS is disabled in configuration")

    app.config["MENTION_QUEUE"] = mention_queue
    app.config["QUEUE_FULL_BEHAVIOR"] = wm_config["queue_full"]

    if wm_config["advertise_link_header"]:
        # Per W3C Webmention spec section 3.1.2: Sender discovers receiver's
        # webmention endpoint via Link header or <link> element.
        @app.after_request
        def add_webmention_link_header(response):
            """Add Link header advertising the webmention endpoint."""
            response.headers.setdefault("Link", f'<{endpoint_path}>; rel="webmention"')
            return response

    @app.route(endpoint_path, methods=["POST"])
    def receive_webmention():
        """W3C Webmention receiving endpoint.

        Accepts application/x-www-form-urlencoded POSTs with:
            - source: URL of the page that mentions the target
            - target: URL of the page being mentioned

        Returns:
            - 202 Accepted: Webmention queued for verification
            - 400 Bad Request: Missing/invalid parameters
            - 503 Service Unavailable: Queue full (reject mode)
        """
        mention_queue = current_app.config["MENTION_QUEUE"]

        source = request.form.get("source", "").strip()
        target = request.form.get("target", "").strip()

        try:
            mention = validate_mention_params(source, target)
        except ValidationError as e:
            logger.warning(f"Invalid webmention received: {e} (source={source!r}, target={target!r})")
            return _text(str(e), 400)

        if current_app.config["QUEUE_FULL_BEHAVIOR"] == QUEUE_FULL_REJECT:
            try:
                mention_queue.put_nowait(mention)
            except queue.Full:
                logger.warning(f"Mention queue full, rejecting webmention: source={source}, target={target}")
                return _text(
                    "Too many pending webmentions, try again later",
                    503,
                    {"Retry-After": str(RETRY_AFTER_SECONDS)},
                )
        else:
            # Blocks until a worker frees a slot
            mention_queue.put(mention)

        logger.info(f"Webmention source={source} target={target} enqueued for processing")
        return _text("Accepted", 202)

    @app.route(endpoint_path, methods=["GET"])
    def webmention_info():
        """Human-readable description of the endpoint."""
        return _text(
            f"Webmention endpoint. POST source and target as "
            f"application/x-www-form-urlencoded to {endpoint_path}.",
            200,
        )

    @app.route("/health", methods=["GET"])
    def health_check():
        """Health check endpoint for monitoring and load balancers.

        Returns:
            tuple: (JSON response, 200 status code)

        Example:
            $ curl http://localhost:5000/health
            {"queue_size": 0, "status": "healthy"}
        """
        return jsonify({
            "status": "healthy",
            "queue_size": current_app.config["MENTION_QUEUE"].qsize(),
        }), 200

    return app
