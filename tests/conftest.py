"""Shared test fixtures for the search service."""

import asyncio
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from sitesearch.app import app
from sitesearch.models import SearchRecord
from sitesearch.search.engine import SearchSession

SITE = "http://site.test"


class FakeStaticProvider:
    """In-memory static provider that records the queries it receives."""

    def __init__(self, results: Optional[List[SearchRecord]] = None, *, available: bool = True, delay: float = 0.0):
        self.results = results or []
        self.available = available
        self.delay = delay
        self.queries: List[str] = []

    async def probe(self) -> bool:
        return self.available

    async def search(self, query: str) -> List[SearchRecord]:
        self.queries.append(query)
        if self.delay:
            await asyncio.sleep(self.delay)
        if not self.available:
            return []
        return list(self.results)


def make_record(**overrides: Any) -> SearchRecord:
    data: Dict[str, Any] = {
        "title": "Jane Doe",
        "url": "/staff/jane",
        "content": "Jane Doe geologist",
        "type": "staff",
        "category": "Staff Directory",
    }
    data.update(overrides)
    return SearchRecord(**data)


def make_session(index: List[SearchRecord], provider: Optional[FakeStaticProvider] = None) -> SearchSession:
    session = SearchSession(SITE)
    session.index = list(index)
    session.provider = provider or FakeStaticProvider()
    return session


@pytest.fixture
def test_client() -> TestClient:
    """Create a test client for the FastAPI app."""
    return TestClient(app)


@pytest.fixture
def custom_index() -> List[SearchRecord]:
    return [
        make_record(),
        make_record(
            title="Water Resources Section",
            url="/research/water",
            content="Groundwater monitoring and water quality research",
            type="research",
            category="Research",
        ),
        make_record(
            title="Rock Core Lab",
            url="/labs/core",
            content="Core samples and <b>geologist</b> tools",
            type="lab",
            category="Research Labs",
            subtitle="RCL",
        ),
        make_record(
            title="Earthquake Network",
            url="/monitoring#seismic",
            content="Seismic stations reporting water well levels",
            type="monitoring",
            category="Monitoring Networks",
        ),
    ]


@pytest.fixture
def static_hits() -> List[SearchRecord]:
    return [
        make_record(
            title="Jane Doe Bio",
            url="/staff/jane",
            content="Jane Doe biography",
            type="page",
            category="Information",
        ),
        make_record(
            title="Water Facts",
            url="/about/water-facts/",
            content="Facts about water in the region",
            type="page",
            category="Information",
        ),
    ]


@pytest.fixture
def index_payload() -> List[Dict[str, Any]]:
    """Custom index as served by /js/search-index.json."""
    return [
        {
            "title": "Jane Doe",
            "url": "/staff/jane",
            "content": "Jane Doe geologist",
            "type": "staff",
            "category": "Staff Directory",
            "department": "Geology",
        },
        {
            "title": "Oil and Gas Lab",
            "url": "/labs/oil-gas",
            "content": "Oil and Gas Lab petroleum analysis",
            "type": "lab",
            "category": "Research Labs",
            "subtitle": "OGL",
        },
    ]


@pytest.fixture
def static_index_files() -> Dict[str, Any]:
    """Static index documents keyed by path under the index root."""
    return {
        "entry.json": {"version": 1, "page_count": 3, "index": "index.json", "fragment_dir": "fragment/"},
        "index.json": {
            "pages": ["p0", "p1", "p2"],
            "terms": {
                "jane": [[0, 2], [2, 1]],
                "doe": [[0, 2]],
                "water": [[1, 3], [2, 1]],
                "watershed": [[1, 1]],
                "history": [[2, 4]],
            },
        },
        "fragment/p0.json": {
            "url": "/staff/jane",
            "content": "Jane Doe biography page",
            "meta": {"title": "Jane Doe Bio", "category": "People"},
        },
        "fragment/p1.json": {
            "url": "/about/water/",
            "content": "Water and watershed programs across the state",
            "meta": {"title": "Water Programs"},
        },
        "fragment/p2.json": {
            "url": "/about/history/",
            "content": "History of the survey, founded by Jane and water experts",
            "meta": {},
        },
    }
