"""Loader for the generated custom search index (CMS-backed content)."""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

import httpx
import structlog
from pydantic import ValidationError

from ..models import SearchRecord
from ..observability.metrics import SOURCE_FAILURES

logger = structlog.get_logger()


def cache_bust_token(now: Optional[datetime] = None) -> str:
    """Return a ``YYYYMMDDHH`` token that rotates hourly with the index cache."""
    now = now or datetime.now()
    return f"{now.year}{now.month:02d}{now.day:02d}{now.hour:02d}"


def parse_records(payload: Any) -> List[SearchRecord]:
    """Validate a decoded index payload, skipping malformed items."""
    if not isinstance(payload, list):
        raise ValueError(f"search index must be a JSON array, got {type(payload).__name__}")
    records: List[SearchRecord] = []
    skipped = 0
    for item in payload:
        try:
            records.append(SearchRecord.model_validate(item))
        except ValidationError:
            skipped += 1
    if skipped:
        logger.warning("Skipped malformed search index items", skipped=skipped)
    return records


async def load_search_index(
    client: httpx.AsyncClient,
    base_url: str,
    *,
    path: str = "/js/search-index.json",
    now: Optional[datetime] = None,
) -> List[SearchRecord]:
    """Fetch the custom index once; any failure yields an empty index."""
    url = f"{base_url.rstrip('/')}{path}"
    version = cache_bust_token(now)
    try:
        resp = await client.get(url, params={"v": version})
        resp.raise_for_status()
        records = parse_records(resp.json())
    except Exception as e:
        logger.error("Failed to load search index", url=url, error=str(e))
        SOURCE_FAILURES.labels(source="custom").inc()
        return []
    logger.info("Loaded custom search index", items=len(records), version=version)
    return records
