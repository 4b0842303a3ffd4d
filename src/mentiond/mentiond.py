"""
mentiond Core Module.

This module provides the main entry point for the webmention receiving
service. The mentiond entry point embeds Gunicorn to run the webmention
receiver as a production-ready WSGI application, which:
1. Accepts webmentions via POST /webmention (source, target)
2. Rejects missing or unparseable parameters with 400
3. Queues accepted mentions on a bounded mention queue and answers 202
4. Verifies queued mentions in MentionProcessor worker threads
5. Hands verified mentions to the configured application callback

The mention queue is a thread-safe bounded Queue shared by the Flask
request handlers (producers) and the processor threads (consumers).

Functions:
    main() -> None:
        Entry point for the console script. Starts Gunicorn with the
        webmention receiver Flask app on port 5000.

Example:
    Run via console script:
        $ mentiond
        Starting Gunicorn for webmention receiver
        Gunicorn server is ready to accept webmentions
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from queue import Queue
from typing import Any, Dict

from webmention.models import MentionCallback
from webmention.processor import log_mention


logger = logging.getLogger(__name__)

LOG_FILE = "webmention.log"


def configure_logging(debug: bool = False, log_file: str = LOG_FILE) -> None:
    """Configure root logging: rotating file (10MB x 3) plus stdout."""
    log_level = logging.DEBUG if debug else logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Clear any existing handlers to avoid duplicates (e.g., from gunicorn)
    root_logger.handlers.clear()

    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    log_handler = RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=3
    )
    log_handler.setLevel(log_level)
    log_handler.setFormatter(formatter)
    root_logger.addHandler(log_handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)


def build_callback(config: Dict[str, Any]) -> MentionCallback:
    """Pick the application callback for verified mentions.

    Pushover notifications when enabled and configured, otherwise log only.
    """
    from notifications.pushover import PushoverNotifier

    notifier = PushoverNotifier.from_config(config)
    if notifier.enabled:
        logger.info("Verified webmentions will be sent as Pushover notifications")
        return notifier.notify_mention
    logger.info("Verified webmentions will be logged")
    return log_mention


def main(debug: bool = False) -> None:
    """Start the webmention receiver under Gunicorn.

    Gunicorn Configuration (src/server/gunicorn_config.py):
        - Single worker process, since the mention queue is in-process
        - Threaded worker so a request blocked on a full queue does not
          stall the endpoint
        - All logs to stdout/stderr for Docker visibility

    Debug mode (--debug or MENTIOND_DEBUG=true) enables DEBUG logging and
    disables the Gunicorn worker timeout for breakpoint debugging.
    """
    from gunicorn.app.base import BaseApplication
    from config import load_config
    from server.app import create_app
    from webmention.processor import MentionProcessor

    if not debug:
        debug = os.environ.get("MENTIOND_DEBUG", "").lower() in ("true", "1", "yes")
        if "--debug" in sys.argv[1:]:
            debug = True

    configure_logging(debug)
    if debug:
        logger.info("Debug mode enabled: verbose logging and worker timeout disabled for breakpoint debugging")

    logger.info("Loading configuration from config.yml")
    config = load_config()
    wm_config = config["webmention"]

    mention_queue: Queue = Queue(maxsize=wm_config["queue_size"])
    processor = MentionProcessor.from_config(config, mention_queue, callback=build_callback(config))
    logger.info(
        f"Mention queue capacity={wm_config['queue_size']}, queue_full={wm_config['queue_full']}, "
        f"workers={wm_config['workers']}, fetch_timeout={wm_config['fetch_timeout']}s"
    )

    app = create_app(mention_queue, config=config)

    config_path = os.path.join(os.path.dirname(__file__), "..", "server", "gunicorn_config.py")

    class StandaloneApplication(BaseApplication):
        """Custom Gunicorn application for embedding within the mentiond entry point."""

        def __init__(self, app, options=None):
            self.options = options or {}
            self.application = app
            super().__init__()

        def load_config(self):
            config_file = self.options.get("config")
            if config_file:
                # Execute the config file to load settings
                with open(config_file, "r") as f:
                    config_code = f.read()
                config_namespace: Dict[str, Any] = {}
                exec(config_code, config_namespace)
                for key, value in config_namespace.items():
                    if key in self.cfg.settings and value is not None:
                        self.cfg.set(key.lower(), value)

            def post_worker_init_hook(worker):
                """Start the mention processor threads inside the worker."""
                worker.log.info(f"Starting mention processor in worker {worker.pid}")
                processor.start()

            def worker_exit_hook(server, worker):
                processor.stop(timeout=5)

            self.cfg.set("post_worker_init", post_worker_init_hook)
            self.cfg.set("worker_exit", worker_exit_hook)

            if self.options.get("debug"):
                self.cfg.set("timeout", 0)

        def load(self):
            return self.application

    options = {
        "config": config_path,
        "debug": debug,
    }
    StandaloneApplication(app, options).run()


# Allow running as a script for development/testing
if __name__ == "__main__":
    main()
