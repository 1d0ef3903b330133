"""
Command-line interface for inspecting a page.
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import urlsplit

import requests

from htmlinspect.core import HrefParseError, inspect_page
from htmlinspect.reachability import check_links
from htmlinspect.report import Report, build_report

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "htmlinspect/1.0"

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


def fetch_page(url: str, timeout_s: float, user_agent: str) -> bytes:
    """Download the raw body of the page to inspect."""
    with requests.Session() as session:
        session.headers["User-Agent"] = user_agent
        resp = session.get(url, timeout=timeout_s, allow_redirects=True)
        logger.info("Fetched %s (%s, %d bytes)", url, resp.status_code, len(resp.content))
        return resp.content


def validate_url(url: str) -> Optional[str]:
    """Return an error message if url cannot be inspected, else None."""
    if not url:
        return "empty URL in payload"
    try:
        parsed = urlsplit(url)
    except ValueError as e:
        return str(e)
    if not parsed.scheme or not parsed.hostname:
        return f"invalid URL {url!r}: scheme and host are required"
    return None


def inspect_url(
    url: str,
    timeout_s: float,
    user_agent: str,
    probe_timeout_s: Optional[float] = None,
) -> Report:
    """Fetch a page, extract its summary and check its links."""
    summary = inspect_page(fetch_page(url, timeout_s, user_agent))
    invalid = check_links(
        summary.links,
        url,
        timeout=probe_timeout_s,
        user_agent=user_agent,
    )
    return build_report(url, summary, invalid)


def print_summary(report: Report) -> None:
    """Print report summary to stderr."""
    sys.stderr.write("=" * 50 + "\n")
    sys.stderr.write("PAGE SUMMARY\n")
    sys.stderr.write("=" * 50 + "\n\n")

    sys.stderr.write(f"HTML version:           {report.version or 'unknown'}\n")
    sys.stderr.write(f"Title:                  {report.title}\n")
    sys.stderr.write(f"Login form:             {'yes' if report.login_form else 'no'}\n")
    sys.stderr.write(f"Headings:               {sum(h.total for h in report.headings)}\n")
    sys.stderr.write(f"Internal links:         {report.internal.total if report.internal else 0}\n")
    sys.stderr.write(f"External links:         {sum(g.total for g in report.external)}\n\n")

    if report.inaccessible:
        sys.stderr.write("Inaccessible links:\n")
        for group in report.inaccessible:
            for link in group.links:
                sys.stderr.write(f"  {link.url}: {link.reason}\n")
    else:
        sys.stderr.write("No inaccessible links.\n")

    sys.stderr.write("\n")


def write_output(payload: Dict[str, Any], out: Optional[str], pretty: bool) -> None:
    json_text = json.dumps(payload, ensure_ascii=False, indent=2 if pretty else None)
    if out is None or out == "-":
        print(json_text)
    else:
        output_path = Path(out)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(json_text, encoding="utf-8")


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for the htmlinspect CLI."""
    parser = argparse.ArgumentParser(
        description="Inspect a web page and report its HTML version, title, headings, login form and links."
    )
    parser.add_argument("url", help="Page URL (e.g. https://example.com)")
    parser.add_argument("--timeout", type=float, default=15.0, help="Timeout for fetching the page in seconds (default: 15)")
    parser.add_argument(
        "--probe-timeout",
        type=float,
        default=None,
        help="Timeout for each link check in seconds (default: none)",
    )
    parser.add_argument("--user-agent", default=DEFAULT_USER_AGENT, help="User-Agent header")
    parser.add_argument("--out", help="Output file path, or '-' for stdout (default: stdout)")
    parser.add_argument("--pretty", action="store_true", help="Pretty-print JSON")
    parser.add_argument("--verbose", action="store_true", help="Show progress and summary")
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(
            level=logging.INFO,
            stream=sys.stderr,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    error = validate_url(args.url)
    if error:
        logger.error("Rejected URL %r: %s", args.url, error)
        write_output({"err": error}, args.out, args.pretty)
        return EXIT_USAGE

    try:
        report = inspect_url(
            args.url,
            timeout_s=args.timeout,
            user_agent=args.user_agent,
            probe_timeout_s=args.probe_timeout,
        )
    except requests.RequestException as e:
        logger.error("Failed to fetch page for url %s: %s", args.url, e)
        write_output({"err": str(e)}, args.out, args.pretty)
        return EXIT_FAILURE
    except HrefParseError as e:
        logger.error("Failed to extract page contents: %s", e)
        write_output({"err": str(e)}, args.out, args.pretty)
        return EXIT_FAILURE

    if args.verbose:
        print_summary(report)

    write_output(report.to_dict(), args.out, args.pretty)
    if args.verbose and args.out and args.out != "-":
        sys.stderr.write(f"Results written to: {args.out}\n")

    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
