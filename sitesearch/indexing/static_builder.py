"""Build the static page index from a rendered site directory.

Walks ``*.html`` under the site directory and writes the files the static
index provider reads: ``entry.json``, ``index.json`` and
``fragment/<page>.json``.

Page markup hooks:
  - ``data-search-body`` marks the element to index (else ``<main>``, else ``<body>``)
  - ``data-search-ignore`` excludes an element
  - ``<meta name="search:category" content="...">`` or
    ``data-search-meta="category:..."`` sets the result category
"""

import argparse
import json
import sys
from collections import Counter
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog
from bs4 import BeautifulSoup

from ..search.text import strip_markup, tokenize

logger = structlog.get_logger()

INDEX_VERSION = 1
SKIP_TAGS = ("script", "style", "noscript", "nav", "template")


def page_url(rel_path: Path) -> str:
    """Map a file path under the site root to the URL it is served at.

    Directory pages map to their directory without a trailing slash, the
    same shape the CMS index uses.
    """
    parts = list(rel_path.parts)
    if parts[-1] == "index.html":
        parts = parts[:-1]
    return "/" + "/".join(parts)


def _meta_from_attrs(soup: BeautifulSoup) -> Dict[str, str]:
    meta: Dict[str, str] = {}
    for element in soup.select("[data-search-meta]"):
        key, _, value = element["data-search-meta"].partition(":")
        if key.strip() and value.strip():
            meta[key.strip()] = value.strip()
    return meta


def extract_page(markup: str) -> Optional[Dict[str, Any]]:
    """Pull title, category and indexable text out of one rendered page."""
    soup = BeautifulSoup(markup, "html.parser")
    if soup.body is None:
        return None

    meta = _meta_from_attrs(soup)
    category_tag = soup.find("meta", attrs={"name": "search:category"})
    if category_tag and category_tag.get("content"):
        meta.setdefault("category", category_tag["content"].strip())

    if "title" not in meta:
        heading = soup.find("h1")
        if heading and heading.get_text(strip=True):
            meta["title"] = heading.get_text(" ", strip=True)
        elif soup.title and soup.title.string:
            meta["title"] = soup.title.string.strip()

    root = soup.select_one("[data-search-body]") or soup.find("main") or soup.body
    for element in root.select("[data-search-ignore]"):
        element.decompose()
    for element in root.find_all(list(SKIP_TAGS)):
        element.decompose()

    content = strip_markup(root.get_text(" "))
    if not content:
        return None
    return {"meta": meta, "content": content}


def build_static_index(site_dir: Path, out_dir: Path) -> Dict[str, Any]:
    """Index every page under ``site_dir`` and write the index to ``out_dir``."""
    fragment_dir = out_dir / "fragment"
    fragment_dir.mkdir(parents=True, exist_ok=True)

    pages: List[str] = []
    terms: Dict[str, List[List[int]]] = {}

    for path in sorted(site_dir.rglob("*.html")):
        rel = path.relative_to(site_dir)
        if out_dir in path.parents:
            continue
        try:
            page = extract_page(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Skipping unreadable page", path=str(rel), error=str(e))
            continue
        if page is None:
            continue

        page_id = f"p{len(pages)}"
        position = len(pages)
        pages.append(page_id)

        words = tokenize(page["content"] + " " + page["meta"].get("title", ""))
        for term, count in Counter(words).items():
            terms.setdefault(term, []).append([position, count])

        fragment = {
            "url": page_url(rel),
            "content": page["content"],
            "meta": page["meta"],
            "word_count": len(words),
        }
        (fragment_dir / f"{page_id}.json").write_text(json.dumps(fragment), encoding="utf-8")

    (out_dir / "index.json").write_text(json.dumps({"pages": pages, "terms": terms}), encoding="utf-8")
    entry = {
        "version": INDEX_VERSION,
        "page_count": len(pages),
        "index": "index.json",
        "fragment_dir": "fragment/",
    }
    (out_dir / "entry.json").write_text(json.dumps(entry), encoding="utf-8")

    logger.info("Built static index", pages=len(pages), terms=len(terms), out=str(out_dir))
    return entry


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Build the static page search index")
    parser.add_argument("site_dir", help="Directory containing the rendered site")
    parser.add_argument(
        "out_dir",
        nargs="?",
        help="Output directory (default: <site_dir>/static-search)",
    )
    args = parser.parse_args(argv)

    site_dir = Path(args.site_dir).resolve()
    if not site_dir.is_dir():
        print(f"Site directory not found: {site_dir}", file=sys.stderr)
        return 1
    out_dir = Path(args.out_dir).resolve() if args.out_dir else site_dir / "static-search"

    entry = build_static_index(site_dir, out_dir)
    print(f"Indexed {entry['page_count']} pages into {out_dir}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
