"""
HTTP Link header parsing (RFC 8288).

A Link header carries one or more comma separated entries of the form

    <https://example.com/webmention>; rel="webmention"

and a response may repeat the header. requests/urllib3 join repeated
headers with ", " in arrival order, so parsing the joined value keeps the
order the server sent them in, which matters for discovery (first match
wins).

Usage:
    >>> from webmention.links import parse_link_headers
    >>> links = parse_link_headers('<https://example.com/wm>; rel="webmention"')
    >>> links[0].url, links[0].rels
    ('https://example.com/wm', ['webmention'])
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Union

from requests.utils import parse_header_links


# Parameters whose value is a whitespace separated list of relation types
_RELATION_PARAMS = ("rel", "rev")


@dataclass
class LinkRelation:
    """A single entry from a Link header.

    Attributes:
        url: The link target exactly as written between the angle brackets
        params: Parameter name (lowercased) to ordered list of values.
            rel/rev values are split into individual relation tokens.
    """
    url: str
    params: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def rels(self) -> List[str]:
        return self.params.get("rel", [])

    def has_rel(self, *names: str) -> bool:
        """Check whether any of the given relation types is present.

        Relation types are compared case-insensitively per RFC 8288.
        """
        wanted = {n.lower() for n in names}
        return any(rel.lower() in wanted for rel in self.rels)


def parse_link_headers(values: Union[None, str, Iterable[str]]) -> List[LinkRelation]:
    """Parse one or more Link header values into LinkRelation entries.

    Args:
        values: A single header value, an iterable of header values (one per
            header line), or None when the response had no Link header.

    Returns:
        All relations in header order. Entries without a URL are skipped.
    """
    if not values:
        return []
    if isinstance(values, str):
        values = [values]

    relations: List[LinkRelation] = []
    for value in values:
        for link in parse_header_links(value):
            url = link.pop("url", "")
            if not url:
                continue
            params: Dict[str, List[str]] = {}
            for key, raw in link.items():
                key = key.lower()
                if key in _RELATION_PARAMS:
                    params.setdefault(key, []).extend(raw.split())
                else:
                    params.setdefault(key, []).append(raw)
            relations.append(LinkRelation(url=url, params=params))
    return relations


def find_rel(relations: Iterable[LinkRelation], *names: str) -> Optional[LinkRelation]:
    """Return the first relation carrying any of the given rel types."""
    for relation in relations:
        if relation.has_rel(*names):
            return relation
    return None
