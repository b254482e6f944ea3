"""HTML fragments for grouped search results.

Markup lives in ``sitesearch/templates`` and is rendered with autoescaping;
only the highlighter's output is passed through as ``Markup``.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from jinja2 import Environment, PackageLoader, select_autoescape
from markupsafe import Markup

from ..models import SearchOutcome, SearchRecord, SearchState
from .text import create_excerpt, get_icon, highlight_text, strip_markup

templates = Environment(
    loader=PackageLoader("sitesearch", "templates"),
    autoescape=select_autoescape(["html"]),
)


def card_context(
    result: SearchRecord,
    query: str,
    *,
    asset_base_url: Optional[str] = None,
    excerpt_length: int = 150,
) -> Dict[str, Any]:
    """Template values for one result card."""
    if result.excerpt:
        # source excerpts are treated as text; only the highlight is markup
        excerpt = highlight_text(strip_markup(result.excerpt), query)
    else:
        excerpt = create_excerpt(result.content, query, excerpt_length)

    image_src = None
    if result.image and asset_base_url:
        image_src = f"{asset_base_url.rstrip('/')}/assets/{result.image}?width=80&height=80&fit=cover"

    return {
        "url": result.url,
        "title": result.title,
        "title_html": Markup(highlight_text(result.title, query)),
        "category": result.category,
        "subtitle": result.subtitle,
        "address": result.address,
        "excerpt_html": Markup(excerpt),
        "image_src": image_src,
        "icon": get_icon(result.type),
    }


def render_outcome(outcome: SearchOutcome, *, asset_base_url: Optional[str] = None, excerpt_length: int = 150) -> str:
    """Render the results container; Idle renders nothing, Empty the no-results block."""
    if outcome.state in (SearchState.IDLE, SearchState.LOADING):
        return ""

    groups = [
        {
            "category": group.category,
            "count": group.count,
            "cards": [
                card_context(item, outcome.query, asset_base_url=asset_base_url, excerpt_length=excerpt_length)
                for item in group.items
            ],
        }
        for group in outcome.groups
    ]
    return templates.get_template("results.html").render(
        empty=outcome.state == SearchState.EMPTY,
        total=outcome.total,
        static_indexed=outcome.static_indexed,
        groups=groups,
    )
