"""Excerpt, highlight and icon helpers used when rendering search results."""

from __future__ import annotations

import html
import re
from typing import Dict, List

MARKUP_RE = re.compile(r"<[^>]*>")
WHITESPACE_RE = re.compile(r"\s+")
TOKEN_RE = re.compile(r"\w+")

HIGHLIGHT_OPEN = '<mark class="bg-yellow-200">'
HIGHLIGHT_CLOSE = "</mark>"
ELLIPSIS = "..."

EXCERPT_BEFORE = 50
EXCERPT_AFTER = 100

ICONS: Dict[str, str] = {
    "staff": "fa-user",
    "research": "fa-flask",
    "lab": "fa-microscope",
    "location": "fa-location-dot",
    "organization": "fa-building",
    "monitoring": "fa-chart-line",
    "news": "fa-newspaper",
    "board": "fa-users",
    "faq": "fa-circle-question",
    "intern_project": "fa-graduation-cap",
    "intern_year": "fa-calendar",
    "page": "fa-file-lines",
    "annual_report": "fa-file-pdf",
    "factsheet": "fa-file-alt",
}
DEFAULT_ICON = "fa-file"


def get_icon(content_type: str) -> str:
    """Return the Font Awesome icon class for a content type."""
    return ICONS.get(content_type, DEFAULT_ICON)


def strip_markup(text: str) -> str:
    """Drop tags and collapse whitespace."""
    return WHITESPACE_RE.sub(" ", MARKUP_RE.sub(" ", text or "")).strip()


def tokenize(text: str) -> List[str]:
    """Lower-cased word tokens, as stored in the static index."""
    return TOKEN_RE.findall((text or "").lower())


def highlight_text(text: str, query: str) -> str:
    """Wrap every case-insensitive occurrence of ``query`` in a highlight marker.

    The query is matched literally; matched text keeps its original case and
    everything else is HTML-escaped.
    """
    if not query:
        return html.escape(text or "")
    pattern = re.compile(re.escape(query), re.IGNORECASE)
    out = []
    last = 0
    for match in pattern.finditer(text or ""):
        out.append(html.escape(text[last:match.start()]))
        out.append(f"{HIGHLIGHT_OPEN}{html.escape(match.group(0))}{HIGHLIGHT_CLOSE}")
        last = match.end()
    out.append(html.escape((text or "")[last:]))
    return "".join(out)


def excerpt_window(text: str, query: str, length: int = 150) -> str:
    """Return the plain-text excerpt around the first match of ``query``.

    The window spans 50 characters before the match and ``100 + len(query)``
    after it, clamped to the text. Ellipses mark the sides that were cut.
    Without a match, the first ``length`` characters are used.
    """
    text_only = strip_markup(text)
    index = text_only.lower().find(query.lower()) if query else -1

    if index == -1:
        return text_only[:length] + ELLIPSIS

    start = max(0, index - EXCERPT_BEFORE)
    end = min(len(text_only), index + len(query) + EXCERPT_AFTER)

    excerpt = text_only[start:end]
    if start > 0:
        excerpt = ELLIPSIS + excerpt
    if end < len(text_only):
        excerpt = excerpt + ELLIPSIS
    return excerpt


def create_excerpt(text: str, query: str, length: int = 150) -> str:
    """Build a highlighted HTML excerpt of ``text`` for ``query``."""
    text_only = strip_markup(text)
    if not query or text_only.lower().find(query.lower()) == -1:
        return html.escape(excerpt_window(text_only, query, length))
    return highlight_text(excerpt_window(text_only, query, length), query)
