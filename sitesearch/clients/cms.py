"""Minimal async client for the Directus REST content API.

Only the read paths the search index needs: ``GET /items/<collection>`` with
``fields``/``filter``/``sort``/``limit`` parameters. Every request degrades to
an empty list on failure so one broken collection never takes the index down.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Sequence

import httpx
import structlog

logger = structlog.get_logger()


class DirectusClient:
    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        *,
        timeout: float = 15.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "DirectusClient":
        self._client = httpx.AsyncClient(timeout=self.timeout)
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def items(
        self,
        collection: str,
        *,
        fields: Sequence[str] = ("*",),
        filter: Optional[Dict[str, Any]] = None,
        sort: Optional[str] = None,
        limit: Optional[int] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> List[Dict[str, Any]]:
        """Return ``data`` from ``/items/<collection>``, or ``[]`` on any error."""
        assert self._client is not None, "Client not started"
        url = f"{self.base_url}/items/{collection}"
        query: Dict[str, Any] = {"fields": ",".join(fields)}
        if filter is not None:
            query["filter"] = json.dumps(filter)
        if sort:
            query["sort"] = sort
        if limit is not None:
            query["limit"] = str(limit)
        if params:
            query.update(params)

        try:
            resp = await self._client.get(url, params=query, headers=self._headers())
            resp.raise_for_status()
            data = resp.json().get("data") or []
        except Exception as e:
            logger.error("Error fetching CMS collection", collection=collection, error=str(e))
            return []
        return data if isinstance(data, list) else []


async def fetch_staff_by_department(cms: DirectusClient) -> Dict[str, List[Dict[str, Any]]]:
    """Active staff grouped by department name, with their teams joined in.

    Teams come from the ``staff_team`` junction table. Within a department,
    heads come first, then team leads, then by ``sort`` and name. Empty
    departments are dropped.
    """
    departments = await cms.items("departments", fields=("id", "name", "slug"), sort="sort")
    staff = await cms.items(
        "staff",
        fields=("*", "department_id.name", "department_id.slug"),
        filter={"status": {"_eq": "active"}},
        sort="department_id.name,-department_head,sort,last_name,first_name",
    )

    by_department: Dict[str, List[Dict[str, Any]]] = {d.get("name"): [] for d in departments}
    by_department["Other"] = []

    staff_ids = [member.get("id") for member in staff]
    relations: List[Dict[str, Any]] = []
    if staff_ids:
        relations = await cms.items(
            "staff_team",
            fields=("staff_id", "team_id"),
            filter={"staff_id": {"_in": staff_ids}},
        )

    team_ids: List[Any] = []
    for relation in relations:
        if relation.get("team_id") and relation["team_id"] not in team_ids:
            team_ids.append(relation["team_id"])

    teams: Dict[Any, Dict[str, Any]] = {}
    if team_ids:
        for team in await cms.items(
            "team",
            fields=("*", "team_lead.id", "team_lead.first_name", "team_lead.last_name"),
            filter={"id": {"_in": team_ids}},
        ):
            teams[team.get("id")] = team

    staff_teams: Dict[Any, List[Dict[str, Any]]] = {}
    for relation in relations:
        team = teams.get(relation.get("team_id"))
        if team is None:
            continue
        lead = team.get("team_lead") or {}
        staff_teams.setdefault(relation.get("staff_id"), []).append(
            {**team, "is_team_lead": lead.get("id") == relation.get("staff_id")}
        )

    for member in staff:
        department = (member.get("department_id") or {}).get("name") or "Other"
        member["department"] = department
        member["team"] = staff_teams.get(member.get("id"), [])
        member["is_team_lead"] = any(t["is_team_lead"] for t in member["team"])
        by_department.setdefault(department, []).append(member)

    for members in by_department.values():
        members.sort(
            key=lambda m: (
                not m.get("department_head"),
                not m.get("is_team_lead"),
                m.get("sort") if m.get("sort") is not None else 0,
                f"{m.get('last_name') or ''}{m.get('first_name') or ''}".lower(),
            )
        )

    return {name: members for name, members in by_department.items() if members}


async def fetch_all_pages(cms: DirectusClient) -> List[Dict[str, Any]]:
    return await cms.items("pages", sort="title")


async def fetch_all_research(cms: DirectusClient) -> List[Dict[str, Any]]:
    return await cms.items("research", sort="-date_created")


async def fetch_all_associated_orgs(cms: DirectusClient) -> List[Dict[str, Any]]:
    return await cms.items("associated_orgs", sort="name")


async def fetch_all_monitoring_networks(cms: DirectusClient) -> List[Dict[str, Any]]:
    return await cms.items("monitoring_networks", sort="title")


async def fetch_all_advisory_board(cms: DirectusClient) -> List[Dict[str, Any]]:
    return await cms.items("advisory_board", sort="last,first")


async def fetch_all_locations(cms: DirectusClient) -> List[Dict[str, Any]]:
    return await cms.items("locations", sort="name")


async def fetch_intern_faqs(cms: DirectusClient) -> List[Dict[str, Any]]:
    return await cms.items("intern_faqs", sort="sort")


async def fetch_intern_final_projects(cms: DirectusClient) -> List[Dict[str, Any]]:
    return await cms.items("intern_final_projects_details", sort="-project_year")


async def fetch_all_intern_projects(cms: DirectusClient) -> List[Dict[str, Any]]:
    return await cms.items("intern_projects", sort="-date_created")


async def fetch_all_labs(cms: DirectusClient) -> List[Dict[str, Any]]:
    return await cms.items("labs", sort="name")


async def fetch_all_news(cms: DirectusClient) -> List[Dict[str, Any]]:
    """Published articles, newest first."""
    return await cms.items(
        "articles",
        filter={"status": {"_eq": "published"}},
        sort="-publication_date",
    )


PUBLICATION_FIELDS = (
    "id",
    "status",
    "title",
    "cover",
    "tile_image",
    "publication_year",
    "series",
    "series_number",
    "issue",
    "url_webpage",
    "url_download",
    "doi",
    "comments",
    "author",
    "author_id.authors_id.last_name",
    "author_id.authors_id.first_name",
    "author_id.authors_id.middle_name",
    "type.name",
)


def _by_year_then_title(publications: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return sorted(
        publications,
        key=lambda p: (-int(p.get("publication_year") or 0), (p.get("title") or "").lower()),
    )


async def fetch_all_annual_reports(cms: DirectusClient) -> List[Dict[str, Any]]:
    reports = await cms.items(
        "publications",
        fields=PUBLICATION_FIELDS,
        limit=-1,
        params={
            "filter[_and][0][status][_eq]": "published",
            "filter[_and][1][comments][_icontains]": "kgs annual report",
        },
    )
    return _by_year_then_title(reports)


async def fetch_all_factsheets(cms: DirectusClient) -> List[Dict[str, Any]]:
    """Fact sheets, excluding ones marked as superseded."""
    sheets = await cms.items(
        "publications",
        fields=PUBLICATION_FIELDS,
        limit=-1,
        params={"filter[_and][0][type][_eq]": "ft"},
    )
    active = [s for s in sheets if "superseded by" not in (s.get("comments") or "").lower()]
    return _by_year_then_title(active)
