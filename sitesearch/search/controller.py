"""Live search glue: debounced input, category changes and ``q`` URL sync."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional, Set

import httpx
import structlog

from ..models import SearchOutcome, SearchState
from ..observability.metrics import STALE_RESULTS
from .engine import SearchSession
from .render import render_outcome

logger = structlog.get_logger()

Publisher = Callable[[Dict[str, Any]], Awaitable[None]]


class SearchController:
    """Drives one page's search box against a ``SearchSession``.

    Every committed query gets the next sequence number. Starting a new
    search cancels the previous in-flight one, and any result whose sequence
    is no longer current is dropped instead of published.
    """

    def __init__(
        self,
        session: SearchSession,
        publish: Publisher,
        *,
        debounce_seconds: float = 0.3,
        asset_base_url: Optional[str] = None,
        location: str = "/search",
    ) -> None:
        self.session = session
        self.publish = publish
        self.debounce_seconds = debounce_seconds
        self.asset_base_url = asset_base_url
        self.location = httpx.URL(location)
        self.query = ""
        self.category = ""
        self.sequence = 0
        self.last_outcome: Optional[SearchOutcome] = None
        self._timer: Optional[asyncio.Task] = None
        self._inflight: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def min_length(self) -> int:
        return self.session.min_query_length

    async def start(self, location: str) -> None:
        """Adopt the page URL; a ``q`` parameter triggers an immediate search."""
        self.location = httpx.URL(location)
        query = (self.location.params.get("q") or "").strip()
        self.query = query
        if len(query) >= self.min_length:
            self._schedule(query, 0)

    async def on_input(self, value: str) -> None:
        query = value.strip()
        self.query = query

        if len(query) < self.min_length:
            self._cancel_timer()
            self._cancel_inflight()
            self.sequence += 1
            self.location = self.location.copy_remove_param("q")
            await self._publish_location()
            await self._publish_outcome(self.session.idle(query, self.category, self.sequence))
            return

        self.location = self.location.copy_set_param("q", query)
        await self._publish_location()
        self._schedule(query, self.debounce_seconds)

    async def on_category(self, category: str) -> None:
        self.category = category
        if len(self.query) >= self.min_length:
            self._schedule(self.query, 0)

    async def commit(self, query: str) -> Optional[SearchOutcome]:
        """Run ``query`` now and publish it unless a newer query superseded it."""
        self.sequence += 1
        sequence = self.sequence
        self._cancel_inflight()

        await self.publish({"type": "state", "state": SearchState.LOADING.value, "sequence": sequence})
        task = asyncio.create_task(
            self.session.perform_search(query, self.category, sequence=sequence)
        )
        self._inflight = task
        try:
            outcome = await task
        except asyncio.CancelledError:
            if sequence != self.sequence:
                STALE_RESULTS.inc()
                return None
            raise

        if sequence != self.sequence:
            STALE_RESULTS.inc()
            logger.info("Dropped stale search result", query=query, sequence=sequence, current=self.sequence)
            return None

        await self._publish_outcome(outcome)
        return outcome

    async def drain(self) -> None:
        """Wait for scheduled and running searches to settle."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        self._cancel_inflight()
        await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _schedule(self, query: str, delay: float) -> None:
        self._cancel_timer()
        task = asyncio.create_task(self._run(query, delay))
        self._timer = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, query: str, delay: float) -> None:
        if delay:
            await asyncio.sleep(delay)
        # past the debounce window; further input supersedes by sequence
        if self._timer is asyncio.current_task():
            self._timer = None
        await self.commit(query)

    def _cancel_timer(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    def _cancel_inflight(self) -> None:
        if self._inflight is not None and not self._inflight.done():
            self._inflight.cancel()
        self._inflight = None

    async def _publish_location(self) -> None:
        await self.publish({"type": "location", "location": str(self.location)})

    async def _publish_outcome(self, outcome: SearchOutcome) -> None:
        self.last_outcome = outcome
        message = outcome.model_dump(mode="json")
        message["type"] = "results"
        message["html"] = render_outcome(
            outcome,
            asset_base_url=self.asset_base_url,
            excerpt_length=self.session.excerpt_length,
        )
        await self.publish(message)
