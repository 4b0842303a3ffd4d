"""Send a webmention from the command line.

Usage:
    mentiond-send <source> <target> [--timeout SECONDS] [--debug]

Exit status:
    0  webmention accepted, or target has no webmention endpoint
    1  target could not be fetched for discovery
    2  endpoint rejected the webmention or could not be reached
"""

import argparse
import logging
import sys
from typing import List, Optional

from webmention.errors import DeliveryError, FetchError
from webmention.http import DEFAULT_TIMEOUT
from webmention.sender import send_webmention


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Send a W3C webmention with endpoint discovery.")
    parser.add_argument("source", help="URL of the page that links to the target")
    parser.add_argument("target", help="URL of the page being mentioned")
    parser.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT, help="request timeout in seconds")
    parser.add_argument("--debug", action="store_true", help="enable debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        result = send_webmention(args.source, args.target, timeout=args.timeout)
    except FetchError as e:
        print(f"Endpoint discovery failed: {e}", file=sys.stderr)
        return 1
    except DeliveryError as e:
        print(f"Webmention not delivered: {e}", file=sys.stderr)
        return 2

    if not result.sent:
        print(f"No webmention endpoint advertised by {args.target}; nothing sent")
        return 0

    print(f"Webmention accepted by {result.endpoint} (HTTP {result.status_code})")
    if result.location:
        print(f"Status: {result.location}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
