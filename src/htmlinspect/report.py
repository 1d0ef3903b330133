"""
Shape a page summary and its reachability results into a JSON-ready report.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Set
from urllib.parse import urlsplit

from htmlinspect.core import PageSummary
from htmlinspect.reachability import InvalidLink, combine


@dataclass(slots=True)
class Heading:
    level: str
    total: int


@dataclass(slots=True)
class LinkGroup:
    domain: str
    links: List[str] = field(default_factory=list)
    total: int = 0


@dataclass(slots=True)
class InvalidLinkGroup:
    domain: str
    links: List[InvalidLink] = field(default_factory=list)
    total: int = 0


@dataclass(slots=True)
class Report:
    """Everything reported for one page."""
    version: str
    title: str
    login_form: bool
    headings: List[Heading] = field(default_factory=list)
    internal: Optional[LinkGroup] = None
    external: List[LinkGroup] = field(default_factory=list)
    inaccessible: List[InvalidLinkGroup] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def consume_internal_links(page_url: str, links: Dict[str, Set[str]]) -> List[str]:
    """
    Remove and return the links pointing back at the page's own site.

    Relative links are combined with page_url; absolute links under the
    page's hostname are returned as-is. Both groups are deleted from links.
    """
    hostname = urlsplit(page_url).hostname or ""

    internal = [combine(page_url, link) for link in links.pop("", set())]
    internal.extend(links.pop(hostname, set()))
    return sorted(internal)


def build_report(
    page_url: str,
    summary: PageSummary,
    invalid_links: Mapping[str, List[InvalidLink]],
) -> Report:
    """
    Build the report for a page.

    The summary's link mapping is copied before internal links are
    consumed, so the summary itself is left untouched.
    """
    report = Report(
        version=summary.version,
        # No <title> falls back to the page URL
        title=summary.title or page_url,
        login_form=summary.has_login_form,
    )

    report.headings = [
        Heading(level=level, total=count)
        for level, count in sorted(summary.headings.items())
    ]

    links = {hostname: set(hrefs) for hostname, hrefs in summary.links.items()}
    internal = consume_internal_links(page_url, links)
    if internal:
        report.internal = LinkGroup(
            domain=urlsplit(page_url).hostname or "",
            links=internal,
            total=len(internal),
        )

    # Everything left is external
    for domain in sorted(links):
        hrefs = sorted(links[domain])
        report.external.append(LinkGroup(domain=domain, links=hrefs, total=len(hrefs)))

    for domain in sorted(invalid_links):
        found = list(invalid_links[domain])
        report.inaccessible.append(InvalidLinkGroup(domain=domain, links=found, total=len(found)))

    return report
