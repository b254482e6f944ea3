"""Query engine: runs both sources, merges by URL, filters and groups by category."""

from __future__ import annotations

import asyncio
import time
from typing import Any, Dict, Iterable, List, Optional

import httpx
import structlog

from ..clients.search_index import cache_bust_token, load_search_index
from ..clients.static_index import (
    NullStaticSearchProvider,
    StaticSearchProvider,
    select_static_provider,
)
from ..models import ResultGroup, SearchOutcome, SearchRecord, SearchState
from ..observability.metrics import SEARCH_DURATION, SEARCHES

logger = structlog.get_logger()

DEFAULT_GROUP = "Other"


def search_content(index: Iterable[SearchRecord], query: str, category: str = "") -> List[SearchRecord]:
    """Case-insensitive substring match on title or content, in index order."""
    lower_query = query.lower()
    return [
        item
        for item in index
        if (lower_query in item.content.lower() or lower_query in item.title.lower())
        and (not category or item.category == category)
    ]


def url_key(url: str) -> str:
    """Dedupe key for a result URL; a trailing slash does not make a new page."""
    return url.rstrip("/") or "/"


def merge_results(
    custom: Iterable[SearchRecord],
    static: Iterable[SearchRecord],
) -> List[SearchRecord]:
    """Custom matches first, then static hits for URLs not seen yet."""
    seen = set()
    merged: List[SearchRecord] = []
    for result in list(custom) + list(static):
        key = url_key(result.url)
        if key in seen:
            continue
        seen.add(key)
        merged.append(result)
    return merged


def filter_by_category(results: Iterable[SearchRecord], category: str = "") -> List[SearchRecord]:
    if not category:
        return list(results)
    return [r for r in results if r.category == category]


def group_by_category(results: Iterable[SearchRecord]) -> Dict[str, List[SearchRecord]]:
    """Group results under their category, keeping first-seen category order."""
    grouped: Dict[str, List[SearchRecord]] = {}
    for result in results:
        grouped.setdefault(result.category or DEFAULT_GROUP, []).append(result)
    return grouped


def build_outcome(
    query: str,
    category: str,
    results: List[SearchRecord],
    *,
    static_indexed: bool,
    sequence: int = 0,
) -> SearchOutcome:
    groups = [
        ResultGroup(category=name, count=len(items), items=items)
        for name, items in group_by_category(results).items()
    ]
    return SearchOutcome(
        query=query,
        category=category,
        state=SearchState.RESULTS if results else SearchState.EMPTY,
        total=len(results),
        groups=groups,
        static_indexed=static_indexed,
        sequence=sequence,
    )


class SearchSession:
    """Per-page-view search state: the custom index cache and the static provider.

    Use as an async context manager; it owns its HTTP client unless one is
    passed in.
    """

    def __init__(
        self,
        base_url: str,
        *,
        index_path: str = "/js/search-index.json",
        static_index_path: str = "/static-search/",
        default_static_category: str = "Information",
        excerpt_length: int = 150,
        min_query_length: int = 2,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url
        self.index_path = index_path
        self.static_index_path = static_index_path
        self.default_static_category = default_static_category
        self.excerpt_length = excerpt_length
        self.min_query_length = min_query_length
        self.timeout = timeout
        self.index: List[SearchRecord] = []
        self.provider: StaticSearchProvider = NullStaticSearchProvider()
        self.version: Optional[str] = None
        self._client = client
        self._owns_client = client is None

    @classmethod
    def from_settings(cls, settings: Any, **kwargs: Any) -> "SearchSession":
        return cls(
            settings.site_base_url,
            index_path=settings.search_index_path,
            static_index_path=settings.static_index_path,
            default_static_category=settings.default_static_category,
            excerpt_length=settings.excerpt_length,
            min_query_length=settings.min_query_length,
            timeout=settings.http_timeout,
            **kwargs,
        )

    async def __aenter__(self) -> "SearchSession":
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        await self.initialize()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def static_indexed(self) -> bool:
        return bool(self.provider.available)

    async def initialize(self) -> None:
        """Load the custom index and pick the static provider, concurrently."""
        assert self._client is not None, "Session not started"
        self.version = cache_bust_token()
        self.index, self.provider = await asyncio.gather(
            load_search_index(self._client, self.base_url, path=self.index_path),
            select_static_provider(
                self._client,
                self.base_url,
                self.static_index_path,
                default_category=self.default_static_category,
                excerpt_length=self.excerpt_length,
            ),
        )
        logger.info(
            "Search session initialized",
            custom_items=len(self.index),
            static_indexed=self.static_indexed,
        )

    def search_content(self, query: str, category: str = "") -> List[SearchRecord]:
        return search_content(self.index, query, category)

    async def _search_custom(self, query: str) -> List[SearchRecord]:
        return self.search_content(query)

    def idle(self, query: str = "", category: str = "", sequence: int = 0) -> SearchOutcome:
        return SearchOutcome(
            query=query,
            category=category,
            state=SearchState.IDLE,
            static_indexed=self.static_indexed,
            sequence=sequence,
        )

    async def perform_search(self, text: str, category: str = "", *, sequence: int = 0) -> SearchOutcome:
        """Run ``text`` against both sources and return the grouped outcome.

        Queries shorter than ``min_query_length`` return Idle without touching
        either source. Category filtering happens after the URL merge so a
        static duplicate of a custom match never resurfaces under another
        category.
        """
        if len(text) < self.min_query_length:
            return self.idle(text, category, sequence)

        start_time = time.perf_counter()
        custom, static = await asyncio.gather(
            self._search_custom(text),
            self.provider.search(text),
        )
        merged = merge_results(custom, static)
        filtered = filter_by_category(merged, category)
        outcome = build_outcome(
            text,
            category,
            filtered,
            static_indexed=self.static_indexed,
            sequence=sequence,
        )
        SEARCH_DURATION.observe(time.perf_counter() - start_time)
        SEARCHES.labels(state=outcome.state.value).inc()

        logger.info(
            "Search completed",
            query=text,
            category=category or None,
            custom=len(custom),
            static=len(static),
            total=outcome.total,
            sequence=sequence,
        )
        return outcome
