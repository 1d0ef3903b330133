"""
Document extraction: HTML version, title, headings, links and login forms.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Set, Union
from urllib.parse import urlsplit

from bs4 import BeautifulSoup, Doctype, NavigableString, Tag
from bs4.element import PageElement, PreformattedString

logger = logging.getLogger(__name__)

# HTML versions
VERSION_5 = "5"
VERSION_4_01 = "4.01"
VERSION_4_0 = "4.0"
VERSION_3_2 = "3.2"
VERSION_3_0 = "3.0"
VERSION_2_0 = "2.0"
LESS_THAN_2_0 = "<2.0"

# Checked in order, first match wins ("4.01" must precede "4.0")
VERSION_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(re.escape(" HTML 4.01"), re.IGNORECASE), VERSION_4_01),
    (re.compile(re.escape(" HTML 4.0"), re.IGNORECASE), VERSION_4_0),
    (re.compile(re.escape(" HTML 3.2"), re.IGNORECASE), VERSION_3_2),
    (re.compile(re.escape(" HTML 3.0"), re.IGNORECASE), VERSION_3_0),
    (re.compile(re.escape(" HTML 2.0"), re.IGNORECASE), VERSION_2_0),
)

HEADING_TAGS: frozenset[str] = frozenset(("h1", "h2", "h3", "h4", "h5", "h6"))

# Quoted public/system identifiers inside a doctype declaration
DOCTYPE_IDENTIFIER = re.compile(r'"([^"]*)"|\'([^\']*)\'')

INVALID_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")
CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")

# Scheme is ALPHA *( ALPHA / DIGIT / "+" / "-" / "." ) followed by ":"
SCHEME_PREFIX = re.compile(r"[A-Za-z][A-Za-z0-9+.-]*:")

# ASCII characters allowed in a host besides letters and digits, including
# the ":port" and "[ipv6]" forms; "<", ">" and '"' are accepted as well
HOST_PUNCTUATION: frozenset[str] = frozenset("-_.~!$&'()*+,;=:[]<>\"%")


class HrefParseError(ValueError):
    """Raised when an href attribute is not a valid URL."""

    def __init__(self, href: str, reason: str) -> None:
        super().__init__(f"unable to parse URL {href!r}: {reason}")
        self.href = href
        self.reason = reason


@dataclass(slots=True)
class PageSummary:
    """Structural metadata extracted from a single HTML document."""
    version: str = ""
    title: str = ""
    headings: Dict[str, int] = field(default_factory=dict)
    # hostname -> raw hrefs; relative hrefs live under ""
    links: Dict[str, Set[str]] = field(default_factory=dict)
    has_login_form: bool = False


def parse_document(data: Union[bytes, str], features: str = "lxml") -> BeautifulSoup:
    """Parse raw HTML into a tree."""
    return BeautifulSoup(data, features)


def inspect_page(data: Union[bytes, str], features: str = "lxml") -> PageSummary:
    """Parse an HTML document and extract its summary."""
    return extract(parse_document(data, features))


def doctype_identifiers(doctype: str) -> List[str]:
    """
    Return the non-empty public/system identifiers of a doctype.

    bs4 stores the declaration without the leading "DOCTYPE", e.g.
    'html PUBLIC "-//W3C//DTD HTML 4.01//EN" "http://www.w3.org/TR/html4/strict.dtd"'.
    """
    values = []
    for match in DOCTYPE_IDENTIFIER.finditer(doctype):
        value = match.group(1) if match.group(1) is not None else match.group(2)
        if value:
            values.append(value)
    return values


def classify_version(doctype: str) -> str:
    """Infer the HTML version from a doctype declaration."""
    identifiers = doctype_identifiers(doctype)
    if not identifiers:
        # <!DOCTYPE html>
        return VERSION_5

    for value in identifiers:
        for pattern, version in VERSION_PATTERNS:
            if pattern.search(value):
                return version

    return LESS_THAN_2_0


def parse_href(href: str) -> str:
    """
    Validate an href and return its hostname ("" when it has no authority).

    Raises:
        HrefParseError: if the value is not a syntactically valid URL.
    """
    if CONTROL_CHARS.search(href):
        raise HrefParseError(href, "invalid control character in URL")

    _check_scheme(href)

    try:
        parts = urlsplit(href)
        # .port raises on a non-numeric or out-of-range port
        parts.port
    except ValueError as e:
        raise HrefParseError(href, str(e)) from e

    # Query strings are passed through undecoded, so only these are checked
    for component in (parts.netloc, parts.path, parts.fragment):
        match = INVALID_ESCAPE.search(component)
        if match:
            escape = component[match.start():match.start() + 3]
            raise HrefParseError(href, f"invalid URL escape {escape!r}")

    _check_host(href, parts.netloc)

    return parts.hostname or ""


def is_login_input(tag: Tag) -> bool:
    """Check for an <input type="password"> nested in a <form>."""
    input_type = _get_attr(tag, "type")
    if input_type is None or input_type.lower() != "password":
        return False
    return any(_tag_name(parent) == "form" for parent in tag.parents)


def extract(root: PageElement) -> PageSummary:
    """
    Walk a parsed HTML tree once in document order and summarize it.

    Args:
        root: Root of the tree, usually the BeautifulSoup object itself.

    Returns:
        A new PageSummary. The traversal owns its accumulator, so calling
        this twice on the same tree yields equal, independent summaries.

    Raises:
        HrefParseError: if any href cannot be parsed. Traversal stops at
            the first bad href and no partial summary is returned.
    """
    summary = PageSummary()
    title_found = False

    for node in _walk(root):
        if isinstance(node, Doctype):
            summary.version = classify_version(str(node))
            continue

        if not isinstance(node, Tag):
            continue

        name = _tag_name(node)

        if name == "title" and not title_found:
            title_found = True
            summary.title = _first_text(node)

        elif name in HEADING_TAGS:
            summary.headings[name] = summary.headings.get(name, 0) + 1

        elif name == "a":
            href = _get_attr(node, "href")
            if href is not None:
                hostname = parse_href(href)
                summary.links.setdefault(hostname, set()).add(href)

        elif name == "input" and not summary.has_login_form:
            summary.has_login_form = is_login_input(node)

    logger.debug(
        "Extracted version=%r title=%r headings=%d link groups=%d login_form=%s",
        summary.version,
        summary.title,
        sum(summary.headings.values()),
        len(summary.links),
        summary.has_login_form,
    )
    return summary


def _walk(root: PageElement) -> Iterator[PageElement]:
    """Yield root followed by its descendants in pre-order."""
    yield root
    if isinstance(root, Tag):
        yield from root.descendants


def _tag_name(tag: PageElement) -> str:
    return (getattr(tag, "name", None) or "").lower()


def _get_attr(tag: Tag, key: str) -> Optional[str]:
    """Case-insensitive attribute lookup."""
    for attr, value in tag.attrs.items():
        if attr.lower() == key:
            # Multi-valued attributes (e.g. class) come back as lists
            return " ".join(value) if isinstance(value, list) else value
    return None


def _first_text(tag: Tag) -> str:
    for child in tag.children:
        if isinstance(child, NavigableString) and not isinstance(child, PreformattedString):
            return str(child)
    return ""


def _check_scheme(href: str) -> None:
    """Reject ":foo" and a colon in the first segment of a scheme-less path."""
    rest = href.split("#", 1)[0]
    if rest.startswith(":"):
        raise HrefParseError(href, "missing protocol scheme")
    if SCHEME_PREFIX.match(rest):
        return

    path = rest.split("?", 1)[0]
    if not path.startswith("/") and ":" in path.split("/", 1)[0]:
        raise HrefParseError(href, "first path segment in URL cannot contain colon")


def _check_host(href: str, netloc: str) -> None:
    host = netloc.rpartition("@")[2]
    for ch in host:
        # Non-ASCII hosts are left to IDNA encoding at request time
        if ch.isascii() and not ch.isalnum() and ch not in HOST_PUNCTUATION:
            raise HrefParseError(href, f"invalid character {ch!r} in host name")
