from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from ..clients.cms import DirectusClient
from ..config import settings
from ..indexing.builder import build_search_index


router = APIRouter(tags=["Search Index"])


def _cms_client() -> DirectusClient:
    return DirectusClient(
        base_url=settings.directus_url,
        token=settings.directus_token,
        timeout=settings.http_timeout,
    )


@router.get(settings.search_index_path)
async def search_index() -> JSONResponse:
    """Return the custom search index built from CMS content.

    Cached for an hour at the edge and in the browser; clients bust the
    cache hourly with their ``v`` parameter.
    """
    async with _cms_client() as cms:
        records = await build_search_index(cms)

    max_age = settings.index_cache_seconds
    return JSONResponse(
        [record.model_dump(mode="json", exclude_none=True) for record in records],
        headers={"Cache-Control": f"public, max-age={max_age}, s-maxage={max_age}"},
    )
