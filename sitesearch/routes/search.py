from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

import httpx
import structlog
from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from fastapi.responses import HTMLResponse

from ..clients.search_index import cache_bust_token
from ..config import settings
from ..search.controller import SearchController
from ..search.engine import SearchSession
from ..search.render import render_outcome

logger = structlog.get_logger()

router = APIRouter(tags=["Search"])

_shared_client: Optional[httpx.AsyncClient] = None
_shared_session: Optional[SearchSession] = None
_shared_lock: Optional[asyncio.Lock] = None


def new_session(client: Optional[httpx.AsyncClient] = None) -> SearchSession:
    return SearchSession.from_settings(settings, client=client)


async def get_search_session() -> SearchSession:
    """Session shared by the stateless endpoints, rebuilt when the index version rotates.

    Every shared session runs on one app-lifetime HTTP client, so requests
    still running on a replaced session finish against a live client.
    """
    global _shared_client, _shared_session, _shared_lock
    if _shared_lock is None:
        _shared_lock = asyncio.Lock()

    async with _shared_lock:
        if _shared_client is None or _shared_client.is_closed:
            _shared_client = httpx.AsyncClient(timeout=settings.http_timeout)
            _shared_session = None
        if _shared_session is None or _shared_session.version != cache_bust_token():
            session = new_session(client=_shared_client)
            await session.__aenter__()
            if _shared_session is not None:
                logger.info("Rebuilt shared search session", version=session.version)
            _shared_session = session
    return _shared_session


async def close_shared_session() -> None:
    global _shared_client, _shared_session, _shared_lock
    _shared_session = None
    _shared_lock = None
    if _shared_client is not None:
        await _shared_client.aclose()
        _shared_client = None


@router.get("/api/search")
async def search(
    q: str = Query(..., description="Search text"),
    category: str = Query("", description="Restrict results to one category"),
    session: SearchSession = Depends(get_search_session),
) -> Dict[str, Any]:
    outcome = await session.perform_search(q.strip(), category)
    return outcome.model_dump(mode="json")


@router.get("/search/results", response_class=HTMLResponse)
async def search_results(
    q: str = Query("", description="Search text"),
    category: str = Query("", description="Restrict results to one category"),
    session: SearchSession = Depends(get_search_session),
) -> HTMLResponse:
    outcome = await session.perform_search(q.strip(), category)
    return HTMLResponse(
        render_outcome(
            outcome,
            asset_base_url=settings.directus_url,
            excerpt_length=settings.excerpt_length,
        )
    )


@router.websocket("/ws/search")
async def live_search(websocket: WebSocket) -> None:
    """Live search for one page view.

    Client messages: ``init`` (with the page ``location``), ``input`` and
    ``category`` (with a ``value``). The server answers with ``location``,
    ``state`` and ``results`` messages.
    """
    await websocket.accept()
    async with new_session() as session:
        controller = SearchController(
            session,
            websocket.send_json,
            debounce_seconds=settings.debounce_seconds,
            asset_base_url=settings.directus_url,
        )
        try:
            while True:
                message = await websocket.receive_json()
                if not isinstance(message, dict):
                    await websocket.send_json({"type": "error", "detail": "Messages must be JSON objects"})
                    continue
                kind = message.get("type")
                if kind == "init":
                    await controller.start(str(message.get("location") or "/search"))
                elif kind == "input":
                    await controller.on_input(str(message.get("value") or ""))
                elif kind == "category":
                    await controller.on_category(str(message.get("value") or ""))
                else:
                    await websocket.send_json({"type": "error", "detail": f"Unknown message type: {kind}"})
        except WebSocketDisconnect:
            logger.info("Live search closed", last_query=controller.query or None)
        finally:
            await controller.close()
