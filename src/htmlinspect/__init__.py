"""
Inspect a single HTML page: HTML version, title, headings, login forms and
links, plus a concurrent check of which links are unreachable.
"""
from htmlinspect.core import HrefParseError, PageSummary, extract, inspect_page, parse_document
from htmlinspect.reachability import InvalidLink, check_links, combine
from htmlinspect.report import Report, build_report

__version__ = "1.0.0"
__all__ = [
    "HrefParseError",
    "PageSummary",
    "extract",
    "inspect_page",
    "parse_document",
    "InvalidLink",
    "check_links",
    "combine",
    "Report",
    "build_report",
]
