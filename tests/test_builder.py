"""Tests for the Directus client and the custom index builder."""

import json

import httpx
import pytest
import respx

from sitesearch.clients import cms as content
from sitesearch.clients.cms import DirectusClient
from sitesearch.indexing.builder import (
    SECTIONS,
    build_search_index,
    clean_html,
    factsheet_records,
    format_publication_date,
    location_records,
    news_records,
)

CMS = "http://cms.test"


def items(data):
    return httpx.Response(200, json={"data": data})


class TestDirectusClient:
    """Request shaping and failure handling."""

    @pytest.mark.asyncio
    async def test_items_sends_query_params(self):
        with respx.mock(assert_all_called=True) as mock:
            route = mock.get(f"{CMS}/items/articles").mock(return_value=items([{"id": 1}]))
            async with DirectusClient(CMS, token="secret") as cms:
                result = await content.fetch_all_news(cms)

        assert result == [{"id": 1}]
        request = route.calls.last.request
        assert request.headers["Authorization"] == "Bearer secret"
        assert request.url.params["sort"] == "-publication_date"
        assert json.loads(request.url.params["filter"]) == {"status": {"_eq": "published"}}

    @pytest.mark.asyncio
    async def test_items_error_returns_empty(self):
        with respx.mock() as mock:
            mock.get(f"{CMS}/items/labs").mock(return_value=httpx.Response(503))
            async with DirectusClient(CMS) as cms:
                assert await content.fetch_all_labs(cms) == []

    @pytest.mark.asyncio
    async def test_staff_joined_with_teams_and_sorted(self):
        with respx.mock(assert_all_called=True) as mock:
            mock.get(f"{CMS}/items/departments").mock(
                return_value=items([{"id": 1, "name": "Geology"}, {"id": 2, "name": "Empty Dept"}])
            )
            mock.get(f"{CMS}/items/staff").mock(
                return_value=items(
                    [
                        {"id": 10, "first_name": "Zed", "last_name": "Adams", "sort": 1, "department_id": {"name": "Geology"}},
                        {"id": 11, "first_name": "Amy", "last_name": "Baker", "sort": 2, "department_id": {"name": "Geology"}},
                        {"id": 12, "first_name": "Cal", "last_name": "Cole", "sort": 3, "department_id": {"name": "Geology"}, "department_head": True},
                        {"id": 13, "first_name": "Dee", "last_name": "Dunn", "sort": 1, "department_id": None},
                    ]
                )
            )
            mock.get(f"{CMS}/items/staff_team").mock(
                return_value=items([{"staff_id": 11, "team_id": 5}, {"staff_id": 10, "team_id": 5}])
            )
            mock.get(f"{CMS}/items/team").mock(
                return_value=items([{"id": 5, "name": "Water Team", "team_lead": {"id": 11}}])
            )
            async with DirectusClient(CMS) as cms:
                grouped = await content.fetch_staff_by_department(cms)

        assert list(grouped) == ["Geology", "Other"]
        assert [m["first_name"] for m in grouped["Geology"]] == ["Cal", "Amy", "Zed"]
        amy = grouped["Geology"][1]
        assert amy["is_team_lead"] is True
        assert amy["team"][0]["name"] == "Water Team"
        assert grouped["Other"][0]["department"] == "Other"

    @pytest.mark.asyncio
    async def test_factsheets_drop_superseded(self):
        with respx.mock() as mock:
            mock.get(f"{CMS}/items/publications").mock(
                return_value=items(
                    [
                        {"title": "Old Sheet", "publication_year": 2001, "comments": "Superseded by FS-9"},
                        {"title": "B Sheet", "publication_year": 2010},
                        {"title": "A Sheet", "publication_year": 2010},
                        {"title": "New Sheet", "publication_year": 2020},
                    ]
                )
            )
            async with DirectusClient(CMS) as cms:
                sheets = await content.fetch_all_factsheets(cms)

        assert [s["title"] for s in sheets] == ["New Sheet", "A Sheet", "B Sheet"]


class TestRecordShaping:
    """Per-section record construction."""

    def test_clean_html_decodes_entities(self):
        assert clean_html("<p>Rocks&nbsp;&amp; <b>minerals</b> &quot;here&quot;</p>") == 'Rocks & minerals "here"'

    def test_publication_date_subtitle(self):
        assert format_publication_date("2024-05-01") == "Published: May 1, 2024"
        assert format_publication_date("2024-05-01T12:00:00Z") == "Published: May 1, 2024"
        assert format_publication_date(None) is None
        assert format_publication_date("not a date") is None

    def test_news_record(self):
        [record] = news_records(
            [
                {
                    "title": "Sinkhole Survey",
                    "slug": "sinkhole-survey",
                    "excerpt": "Short summary",
                    "content": "<p>Karst &amp; caves</p>",
                    "category": "Hazards",
                    "publication_date": "2025-02-03",
                    "main_image": "img-1",
                }
            ]
        )
        assert record.url == "/news/sinkhole-survey"
        assert record.content == "Sinkhole Survey Short summary Karst & caves Hazards"
        assert record.subtitle == "Published: February 3, 2025"
        assert record.image == "img-1"
        assert record.category == "News"
        assert record.model_dump()["articleCategory"] == "Hazards"

    def test_location_address_skips_missing_parts(self):
        full, state_only, bare = location_records(
            [
                {"name": "Field Office", "slug": "field", "city": "Henderson", "state": "KY"},
                {"name": "Core Repository", "slug": "core", "state": "KY"},
                {"name": "Mobile Lab", "slug": "mobile"},
            ]
        )
        assert full.address == "Henderson, KY"
        assert state_only.address == "KY"
        assert bare.address is None
        assert "None" not in bare.content

    def test_factsheet_record(self):
        [record] = factsheet_records([{"title": "Coal", "series_number": "12", "publication_year": 2019}])
        assert record.url == "/pubs/factsheets"
        assert record.subtitle == "Fact Sheet 12"
        assert record.content == "Coal  12 2019"


@pytest.mark.asyncio
async def test_build_search_index_isolates_failing_sections(monkeypatch):
    async def boom(cms):
        raise RuntimeError("schema changed")

    sections = [(name, section) for name, section in SECTIONS]
    sections[0] = ("staff", boom)
    monkeypatch.setattr("sitesearch.indexing.builder.SECTIONS", sections)

    with respx.mock(assert_all_called=False) as mock:
        mock.get(f"{CMS}/items/pages").mock(
            return_value=items([{"title": "About Us", "slug": "about", "content": "History"}])
        )
        mock.get(f"{CMS}/items/locations").mock(
            return_value=items([{"name": "Field Office", "slug": "field", "city": "Henderson", "state": "KY"}])
        )
        mock.get(url__regex=rf"{CMS}/items/.*").mock(return_value=items([]))

        async with DirectusClient(CMS) as cms:
            index = await build_search_index(cms)

    assert [r.url for r in index] == ["/about", "/locations/field"]
    assert index[0].category == "Information"
    assert index[1].address == "Henderson, KY"
    assert index[1].type == "location"
