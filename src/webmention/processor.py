"""
Mention Processor: asynchronous verification of received webmentions.

The receiving endpoint only checks that source and target are present and
parse, puts a MentionRequest on a bounded queue and answers 202 right
away. Worker threads owned by MentionProcessor drain that queue:

    1. Fetch the source (with a timeout)
    2. Parse it as HTML
    3. Look for an <a href> that is exactly the target
    4. Found: parse microformats2 from the page and call back with the data
    5. Not found but the source sent Link headers: call back without data
    6. Neither: the claim is unverifiable and is dropped

Every failure is terminal for that one mention. Nothing is retried or
re-queued; a sender that wants another attempt submits again.

Usage:
    >>> from queue import Queue
    >>> mention_queue = Queue(maxsize=100)
    >>> processor = MentionProcessor(mention_queue, callback=log_mention)
    >>> processor.start()

References:
    - W3C Webmention: https://www.w3.org/TR/webmention/#webmention-verification
    - Microformats2: https://microformats.org/wiki/microformats2
"""

import logging
import queue
import threading
from typing import Any, Dict, List, Optional

import mf2py
import requests

from webmention.errors import FetchError, ParseError, UnverifiableMention
from webmention.http import (
    DEFAULT_TIMEOUT,
    MAX_RESPONSE_BYTES,
    WEBMENTION_USER_AGENT,
    build_session,
    declared_encoding,
    decode_body,
    fetch,
    read_bounded_response,
)
from webmention.links import parse_link_headers
from webmention.models import MentionCallback, MentionOutcome, MentionRequest, VerifiedMention
from webmention.verifier import links_to, parse_document


logger = logging.getLogger(__name__)

# How often idle workers wake up to check for stop()
_POLL_INTERVAL = 0.5


def log_mention(source: str, target: str, data: Optional[Dict[str, Any]]) -> None:
    """Default application callback: log each verified mention."""
    mention = VerifiedMention(source=source, target=target, data=data)
    logger.info(
        f"Verified webmention: source={source}, target={target}, "
        f"type={mention.mention_type}, microformats={'yes' if data else 'no'}"
    )


class MentionProcessor:
    """Background workers that verify queued mentions and invoke a callback.

    Attributes:
        mention_queue: Queue of MentionRequest shared with the receiver
        callback: Application callback (source, target, data)
        timeout: Timeout in seconds for fetching a source
        max_bytes: Maximum number of source body bytes read
        workers: Number of worker threads draining the queue
    """

    def __init__(
        self,
        mention_queue: "queue.Queue[MentionRequest]",
        callback: MentionCallback = log_mention,
        timeout: float = DEFAULT_TIMEOUT,
        max_bytes: int = MAX_RESPONSE_BYTES,
        workers: int = 1,
        user_agent: str = WEBMENTION_USER_AGENT,
    ):
        if workers < 1:
            raise ValueError(f"workers must be at least 1, got {workers}")
        self.mention_queue = mention_queue
        self.callback = callback
        self.timeout = timeout
        self.max_bytes = max_bytes
        self.workers = workers
        self.user_agent = user_agent
        self._stop_event = threading.Event()
        self._threads: List[threading.Thread] = []

    @classmethod
    def from_config(
        cls,
        config: Dict[str, Any],
        mention_queue: "queue.Queue[MentionRequest]",
        callback: MentionCallback = log_mention,
    ) -> "MentionProcessor":
        """Create a processor from the webmention section of config.yml."""
        wm_config = config.get("webmention", {})
        return cls(
            mention_queue,
            callback=callback,
            timeout=wm_config.get("fetch_timeout", DEFAULT_TIMEOUT),
            max_bytes=wm_config.get("max_response_bytes", MAX_RESPONSE_BYTES),
            workers=wm_config.get("workers", 1),
            user_agent=wm_config.get("user_agent", WEBMENTION_USER_AGENT),
        )

    # =====================================================================
    # Worker lifecycle
    # =====================================================================

    @property
    def running(self) -> bool:
        return any(t.is_alive() for t in self._threads)

    def start(self) -> None:
        """Start the worker threads (daemon, so they never block exit)."""
        if self.running:
            logger.warning("Mention processor already running")
            return
        self._stop_event.clear()
        self._threads = []
        for i in range(self.workers):
            thread = threading.Thread(
                target=self._run,
                name=f"mention-processor-{i}",
                daemon=True,
            )
            thread.start()
            self._threads.append(thread)
        logger.info(f"Mention processor started with {self.workers} worker(s)")

    def stop(self, timeout: Optional[float] = None) -> None:
        """Signal workers to stop and wait for them to finish their current item."""
        self._stop_event.set()
        for thread in self._threads:
            thread.join(timeout)
        logger.info("Mention processor stopped")

    def _run(self) -> None:
        # Each worker has its own session; Session is not thread-safe
        session = build_session(self.user_agent)
        while not self._stop_event.is_set():
            try:
                request = self.mention_queue.get(block=True, timeout=_POLL_INTERVAL)
            except queue.Empty:
                continue

            try:
                self.process(request, session=session)
            except Exception as e:
                logger.error(f"Error processing webmention {request}: {e}", exc_info=True)
            finally:
                self.mention_queue.task_done()

    # =====================================================================
    # Verification pipeline
    # =====================================================================

    def process(self, request: MentionRequest, session: Optional[requests.Session] = None) -> MentionOutcome:
        """Verify one mention and, if verified, hand it to the callback.

        Returns:
            The terminal MentionOutcome for the request.
        """
        logger.info(f"Processing webmention: source={request.source}, target={request.target}")
        try:
            mention = self.verify(request, session=session)
        except FetchError as e:
            logger.error(f"Error getting source {request.source}: {e}")
            return MentionOutcome.DROPPED_FETCH_ERROR
        except ParseError as e:
            logger.error(f"Error parsing source {request.source}: {e}")
            return MentionOutcome.DROPPED_PARSE_ERROR
        except UnverifiableMention:
            logger.warning(f"No link to {request.target} found on {request.source}, dropping webmention")
            return MentionOutcome.DROPPED_UNVERIFIABLE

        outcome = (
            MentionOutcome.VERIFIED_WITH_DATA
            if mention.data is not None
            else MentionOutcome.VERIFIED_WITHOUT_DATA
        )
        try:
            self.callback(mention.source, mention.target, mention.data)
        except Exception as e:
            logger.error(
                f"Error handling verified webmention: source={mention.source}, "
                f"target={mention.target}, error={e}",
                exc_info=True,
            )
        else:
            logger.info(
                f"Processed webmention {'with' if mention.data is not None else 'without'} mf2: "
                f"source={mention.source}, target={mention.target}"
            )
        return outcome

    def verify(self, request: MentionRequest, session: Optional[requests.Session] = None) -> VerifiedMention:
        """Fetch the source and check that it really mentions the target.

        A source that links to the target but is too deeply nested for
        microformats parsing is verified without data.

        Raises:
            FetchError: The source could not be fetched or answered non-2xx.
            ParseError: The source body is not parseable HTML.
            UnverifiableMention: No matching anchor and no Link headers.
        """
        session = session or build_session(self.user_agent)
        response = fetch(session, request.source, timeout=self.timeout)

        link_header = response.headers.get("Link")
        body = read_bounded_response(response, self.max_bytes)
        document = parse_document(decode_body(body, declared_encoding(response)))

        if links_to(document, request.target):
            try:
                data = mf2py.parse(doc=document, url=request.source)
            except RecursionError:
                # mf2py walks the tree recursively; the link itself is verified
                logger.warning(f"Source too deeply nested for microformats parsing: source={request.source}")
                data = None
            return VerifiedMention(source=request.source, target=request.target, data=data)

        if parse_link_headers(link_header):
            logger.debug(f"No anchor to target, accepting on Link headers: source={request.source}")
            return VerifiedMention(source=request.source, target=request.target, data=None)

        raise UnverifiableMention(f"{request.source} does not link to {request.target}")
