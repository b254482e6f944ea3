"""Adapter for the pre-built static page index.

The static index is produced offline from the rendered site (see
``sitesearch.indexing.static_builder``) and served as plain files:

    <path>/entry.json           probe target and index metadata
    <path>/index.json           term -> [[page, count], ...] postings
    <path>/fragment/<id>.json   per-page detail, loaded lazily per hit

A session probes the entry with ``HEAD`` once. When it is missing the
``NullStaticSearchProvider`` stands in and the static source contributes
nothing for the rest of the session.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional, Protocol

import httpx
import structlog

from ..models import ContentType, SearchRecord
from ..observability.metrics import SOURCE_FAILURES
from ..search.text import excerpt_window, strip_markup, tokenize

logger = structlog.get_logger()

ENTRY_FILE = "entry.json"


class StaticSearchProvider(Protocol):
    """Interface every static index implementation offers the query engine."""

    available: bool

    async def probe(self) -> bool:
        ...

    async def search(self, query: str) -> List[SearchRecord]:
        ...


class NullStaticSearchProvider:
    """Stand-in used when no static index was built."""

    available = False

    async def probe(self) -> bool:
        return False

    async def search(self, query: str) -> List[SearchRecord]:
        return []


class StaticIndexHit:
    """A ranked hit whose page detail is fetched on demand."""

    def __init__(self, provider: "StaticIndexProvider", page_id: str, score: int) -> None:
        self.provider = provider
        self.page_id = page_id
        self.score = score

    async def data(self) -> Dict[str, Any]:
        return await self.provider.load_fragment(self.page_id)

    def __repr__(self) -> str:
        return f"StaticIndexHit(page_id={self.page_id}, score={self.score})"


class StaticIndexProvider:
    """Queries the static index served under ``base_url + path``."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        path: str = "/static-search/",
        *,
        default_category: str = "Information",
        excerpt_length: int = 150,
    ) -> None:
        self.client = client
        self.root = f"{base_url.rstrip('/')}/{path.strip('/')}/"
        self.default_category = default_category
        self.excerpt_length = excerpt_length
        self.available = False
        self.entry: Dict[str, Any] = {}
        self._pages: Optional[List[str]] = None
        self._terms: Dict[str, List[List[Any]]] = {}
        self._fragments: Dict[str, Dict[str, Any]] = {}
        self._load_lock = asyncio.Lock()

    async def probe(self) -> bool:
        """Check for the entry file; never raises."""
        entry_url = self.root + ENTRY_FILE
        try:
            resp = await self.client.head(entry_url)
        except httpx.HTTPError as e:
            logger.info("Static index not available", url=entry_url, error=str(e))
            self.available = False
            return False
        if not resp.is_success:
            logger.info("Static index not available (build it first)", url=entry_url, status=resp.status_code)
            self.available = False
            return False

        try:
            resp = await self.client.get(entry_url)
            resp.raise_for_status()
            self.entry = resp.json()
        except Exception as e:
            logger.warning("Static index entry unreadable", url=entry_url, error=str(e))
            self.available = False
            return False

        self.available = True
        logger.info("Static index loaded", pages=self.entry.get("page_count"))
        return True

    async def _ensure_index(self) -> None:
        async with self._load_lock:
            if self._pages is not None:
                return
            resp = await self.client.get(self.root + self.entry.get("index", "index.json"))
            resp.raise_for_status()
            payload = resp.json()
            self._terms = payload.get("terms", {})
            self._pages = list(payload.get("pages", []))

    def rank(self, query: str) -> List[StaticIndexHit]:
        """Rank pages containing every query term; the last term may be a prefix."""
        terms = tokenize(query)
        if not terms or self._pages is None:
            return []

        scores: Optional[Dict[int, int]] = None
        for position, term in enumerate(terms):
            if position == len(terms) - 1:
                postings = [
                    posting
                    for key, entries in self._terms.items()
                    if key.startswith(term)
                    for posting in entries
                ]
            else:
                postings = self._terms.get(term, [])

            term_scores: Dict[int, int] = {}
            for page, count in postings:
                term_scores[page] = term_scores.get(page, 0) + count

            if scores is None:
                scores = term_scores
            else:
                scores = {
                    page: score + term_scores[page]
                    for page, score in scores.items()
                    if page in term_scores
                }

        ranked = sorted((scores or {}).items(), key=lambda item: (-item[1], item[0]))
        return [StaticIndexHit(self, self._pages[page], score) for page, score in ranked]

    async def load_fragment(self, page_id: str) -> Dict[str, Any]:
        if page_id not in self._fragments:
            fragment_dir = self.entry.get("fragment_dir", "fragment/")
            resp = await self.client.get(f"{self.root}{fragment_dir}{page_id}.json")
            resp.raise_for_status()
            self._fragments[page_id] = resp.json()
        return self._fragments[page_id]

    def to_record(self, data: Dict[str, Any], query: str) -> SearchRecord:
        meta = data.get("meta") or {}
        content = data.get("content") or data.get("excerpt") or ""
        excerpt = strip_markup(data.get("excerpt") or "") or excerpt_window(content, query, self.excerpt_length)
        url = data.get("url", "")
        return SearchRecord(
            title=meta.get("title") or "Untitled",
            url=url,
            content=content,
            type=ContentType.PAGE,
            category=meta.get("category") or self.default_category,
            excerpt=excerpt,
        )

    async def search(self, query: str) -> List[SearchRecord]:
        """Search the static index; errors yield no results."""
        if not self.available:
            return []
        try:
            await self._ensure_index()
            hits = self.rank(query)
            details = await asyncio.gather(*(hit.data() for hit in hits))
            return [self.to_record(data, query) for data in details]
        except Exception as e:
            logger.error("Static index search error", query=query, error=str(e))
            SOURCE_FAILURES.labels(source="static").inc()
            return []


async def select_static_provider(
    client: httpx.AsyncClient,
    base_url: str,
    path: str = "/static-search/",
    **kwargs: Any,
) -> StaticSearchProvider:
    """Probe the static index and pick the real provider or the no-op stub."""
    provider = StaticIndexProvider(client, base_url, path, **kwargs)
    if await provider.probe():
        return provider
    return NullStaticSearchProvider()
