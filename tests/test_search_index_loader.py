from datetime import datetime

import httpx
import pytest
import respx

from conftest import SITE
from sitesearch.clients.search_index import cache_bust_token, load_search_index, parse_records


def test_cache_bust_token_is_zero_padded_hour():
    assert cache_bust_token(datetime(2026, 3, 7, 9, 45)) == "2026030709"
    assert cache_bust_token(datetime(2026, 12, 31, 23, 0)) == "2026123123"


def test_parse_records_skips_malformed_items(index_payload):
    records = parse_records(index_payload + [{"title": "no url"}, "junk"])
    assert [r.url for r in records] == ["/staff/jane", "/labs/oil-gas"]
    # builder extras survive
    assert records[0].model_dump()["department"] == "Geology"


def test_parse_records_rejects_non_list():
    with pytest.raises(ValueError):
        parse_records({"data": []})


@pytest.mark.asyncio
async def test_load_sends_version_token(index_payload):
    now = datetime(2026, 10, 18, 14, 5)
    async with httpx.AsyncClient() as client:
        with respx.mock(assert_all_called=True) as mock:
            route = mock.get(f"{SITE}/js/search-index.json").mock(
                return_value=httpx.Response(200, json=index_payload)
            )
            records = await load_search_index(client, SITE, now=now)

    assert len(records) == 2
    assert route.calls.last.request.url.params["v"] == "2026101814"


@pytest.mark.asyncio
async def test_load_failure_yields_empty_index():
    async with httpx.AsyncClient() as client:
        with respx.mock() as mock:
            mock.get(f"{SITE}/js/search-index.json").mock(side_effect=httpx.ConnectError("down"))
            assert await load_search_index(client, SITE) == []


@pytest.mark.asyncio
async def test_load_bad_json_yields_empty_index():
    async with httpx.AsyncClient() as client:
        with respx.mock() as mock:
            mock.get(f"{SITE}/js/search-index.json").mock(return_value=httpx.Response(200, text="<html>"))
            assert await load_search_index(client, SITE) == []
