"""
Concurrent reachability checks for the links found on a page.

One worker thread is started per hostname group. Each worker probes its own
links one after another with its own HTTP session and hands its findings
back to the calling thread, which is the only writer of the result mapping.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple
from urllib.parse import urlsplit

import requests

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], requests.Session]


@dataclass(frozen=True, slots=True)
class InvalidLink:
    """A link that could not be reached, with the reason why."""
    url: str
    reason: str


def combine(base: str, relative: str) -> str:
    """
    Join a relative link onto a base URL textually.

    Only a doubled slash at the seam is collapsed; no other URL resolution
    is performed.
    """
    if relative.startswith("/") and base.endswith("/"):
        return base[:-1] + relative
    return base + relative


def probe(
    session: requests.Session,
    url: str,
    timeout: Optional[float] = None,
) -> Optional[InvalidLink]:
    """
    Request a URL once and report it if it is unreachable.

    Only request errors, URLs the HTTP client cannot parse and 5xx
    responses count as unreachable; 4xx and every other status are
    reported as reachable.
    """
    try:
        # Only the headers are read; the body is released unread
        resp = session.get(url, timeout=timeout, stream=True)
    except (requests.RequestException, ValueError) as e:
        # urllib3 reports unparsable hosts (e.g. "a..b") as a ValueError
        logger.debug("Probe failed for %s: %s", url, e)
        return InvalidLink(url=url, reason=str(e))

    status_code = resp.status_code
    resp.close()
    logger.debug("Probe %s -> %s", url, status_code)

    if 500 <= status_code < 600:
        return InvalidLink(url=url, reason=f"server responded with status {status_code}")
    return None


def _check_group(
    hostname: str,
    links: Iterable[str],
    base_url: str,
    session_factory: SessionFactory,
    timeout: Optional[float],
    user_agent: Optional[str],
) -> List[Tuple[str, InvalidLink]]:
    """Probe every link of one hostname group sequentially."""
    relative = hostname == ""
    if relative:
        hostname = urlsplit(base_url).hostname or ""

    found: List[Tuple[str, InvalidLink]] = []
    session = session_factory()
    if user_agent:
        session.headers["User-Agent"] = user_agent

    try:
        for link in links:
            url = combine(base_url, link) if relative else link
            invalid = probe(session, url, timeout=timeout)
            if invalid is not None:
                found.append((hostname, invalid))
    finally:
        session.close()

    logger.info("Checked group %r: %d invalid", hostname, len(found))
    return found


def check_links(
    links: Mapping[str, Iterable[str]],
    base_url: str,
    session_factory: SessionFactory = requests.Session,
    timeout: Optional[float] = None,
    user_agent: Optional[str] = None,
) -> Dict[str, List[InvalidLink]]:
    """
    Check every link concurrently and collect the unreachable ones.

    Args:
        links: Hostname to hrefs, as produced by ``extract``. Relative
            hrefs under the "" key are combined with base_url and grouped
            under base_url's hostname.
        base_url: The URL the document was fetched from.
        session_factory: Creates one HTTP session per worker.
        timeout: Per-request timeout in seconds, None for no timeout.
        user_agent: Optional User-Agent header for the probes.

    Returns:
        Hostname to invalid links. Hostnames without failures are absent.
        Failures are never raised.
    """
    out: Dict[str, List[InvalidLink]] = {}
    if not links:
        return out

    # Snapshot each group so workers never share the caller's sets
    groups = {hostname: list(hrefs) for hostname, hrefs in links.items()}

    with ThreadPoolExecutor(max_workers=len(groups)) as executor:
        futures = [
            executor.submit(
                _check_group,
                hostname,
                hrefs,
                base_url,
                session_factory,
                timeout,
                user_agent,
            )
            for hostname, hrefs in groups.items()
        ]
        for future in as_completed(futures):
            for hostname, invalid in future.result():
                out.setdefault(hostname, []).append(invalid)

    return out
