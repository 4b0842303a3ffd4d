"""
Source link verification.

Before a received webmention reaches the application, the source page is
fetched and searched for an <a> element linking to the target. The match
is deliberately strict: both hrefs are parsed independently and compared
as text, with no scheme/host case folding and no trailing slash
equivalence.

The walk uses an explicit stack, so document depth is not bounded by the
recursion limit.
"""

import logging
from typing import Optional, Union

from bs4 import BeautifulSoup, ParserRejectedMarkup, Tag

from webmention.errors import ParseError
from webmention.http import parse_url


logger = logging.getLogger(__name__)

# Same tree builder mf2py uses, so both see the same document
HTML_PARSER = "html5lib"


def parse_document(markup: Union[str, bytes]) -> BeautifulSoup:
    """Parse HTML markup into a traversable tree.

    Raises:
        ParseError: If the tree builder rejects the markup.
    """
    try:
        return BeautifulSoup(markup, HTML_PARSER)
    except ParserRejectedMarkup as e:
        raise ParseError(f"Could not parse HTML: {e}") from e


def get_attr(element: Tag, name: str) -> Optional[str]:
    """Look up an attribute by name, ignoring case."""
    name = name.lower()
    for key, value in element.attrs.items():
        if key.lower() == name:
            if isinstance(value, list):
                return " ".join(value)
            return value
    return None


def links_to(document: BeautifulSoup, target: str) -> bool:
    """Check if the document contains an anchor whose href is the target.

    Args:
        document: Parsed HTML tree
        target: The URL that must be linked

    Returns:
        True on the first <a> whose parsed href equals the parsed target.
    """
    try:
        wanted = parse_url(target)
    except ParseError:
        logger.warning(f"Cannot search for unparseable target URL: {target!r}")
        return False

    stack = [document]
    while stack:
        node = stack.pop()
        if node.name == "a":
            href = get_attr(node, "href")
            if href:
                try:
                    if parse_url(href) == wanted:
                        return True
                except ParseError:
                    logger.debug(f"Skipping unparseable href: {href!r}")
        # Reversed so children are visited in document order
        stack.extend(child for child in reversed(node.contents) if isinstance(child, Tag))
    return False
