"""Builds the custom search index from CMS content.

Each content section is fetched and shaped on its own; a failing section is
logged and left out rather than failing the whole index.
"""

from __future__ import annotations

import html
import re
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

import structlog

from ..clients import cms as content
from ..clients.cms import DirectusClient
from ..models import ContentType, SearchRecord

logger = structlog.get_logger()

TAG_RE = re.compile(r"<[^>]*>")
SPACE_RE = re.compile(r"\s+")


def _join(*parts: Any) -> str:
    return " ".join("" if p is None else str(p) for p in parts)


def clean_html(text: Optional[str]) -> str:
    """Strip tags and decode entities from rich-text CMS fields."""
    text = TAG_RE.sub(" ", text or "")
    return SPACE_RE.sub(" ", html.unescape(text).replace("\xa0", " ")).strip()


def format_publication_date(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    try:
        date = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    return f"Published: {date:%B} {date.day}, {date.year}"


def staff_records(staff_by_department: Dict[str, List[Dict[str, Any]]]) -> List[SearchRecord]:
    records = []
    for members in staff_by_department.values():
        for member in members:
            teams = " ".join(t.get("name") or "" for t in member.get("team") or [])
            records.append(
                SearchRecord(
                    title=_join(member.get("first_name"), member.get("last_name")),
                    url=f"/staff/{member.get('slug')}",
                    content=_join(
                        member.get("first_name"),
                        member.get("last_name"),
                        member.get("working_title"),
                        member.get("department"),
                        member.get("expertise") or "",
                        member.get("bio_writeup") or "",
                        member.get("email") or "",
                        teams,
                    ),
                    type=ContentType.STAFF,
                    category="Staff Directory",
                    department=member.get("department"),
                    image=member.get("photo") or None,
                )
            )
    return records


def page_records(pages: Iterable[Dict[str, Any]]) -> List[SearchRecord]:
    return [
        SearchRecord(
            title=page.get("title") or "",
            url=page.get("url") or f"/{page.get('slug')}",
            content=_join(page.get("title"), page.get("content") or ""),
            type=ContentType.PAGE,
            category="Information",
        )
        for page in pages
    ]


def research_records(projects: Iterable[Dict[str, Any]]) -> List[SearchRecord]:
    return [
        SearchRecord(
            title=project.get("title") or "",
            url=f"/research/{project.get('slug')}",
            content=_join(project.get("title"), project.get("content") or ""),
            type=ContentType.RESEARCH,
            category="Research",
        )
        for project in projects
    ]


def lab_records(labs: Iterable[Dict[str, Any]]) -> List[SearchRecord]:
    return [
        SearchRecord(
            title=lab.get("name") or "",
            url=f"/labs/{lab.get('slug')}",
            content=_join(
                lab.get("name"),
                lab.get("short_name") or "",
                lab.get("short_description") or "",
                lab.get("description") or "",
                lab.get("mission") or "",
                lab.get("hardware_description") or "",
            ),
            type=ContentType.LAB,
            category="Research Labs",
            subtitle=lab.get("short_name"),
            image=lab.get("logo") or None,
        )
        for lab in labs
    ]


def location_records(locations: Iterable[Dict[str, Any]]) -> List[SearchRecord]:
    return [
        SearchRecord(
            title=location.get("name") or "",
            url=f"/locations/{location.get('slug')}",
            content=_join(
                location.get("name"),
                location.get("description") or "",
                location.get("address") or "",
                location.get("city") or "",
                location.get("state") or "",
            ),
            type=ContentType.LOCATION,
            category="Locations",
            address=", ".join(p for p in (location.get("city"), location.get("state")) if p) or None,
        )
        for location in locations
    ]


def organization_records(orgs: Iterable[Dict[str, Any]]) -> List[SearchRecord]:
    return [
        SearchRecord(
            title=org.get("name") or "",
            url=f"/about/orgs#{org.get('slug') or org.get('id')}",
            content=_join(org.get("name"), org.get("description") or ""),
            type=ContentType.ORGANIZATION,
            category="Organizations",
        )
        for org in orgs
    ]


def monitoring_records(networks: Iterable[Dict[str, Any]]) -> List[SearchRecord]:
    return [
        SearchRecord(
            title=network.get("title") or "",
            url=f"/monitoring#{network.get('slug') or network.get('id')}",
            content=_join(
                network.get("title"),
                network.get("description") or "",
                network.get("featured_image_caption") or "",
            ),
            type=ContentType.MONITORING,
            category="Monitoring Networks",
            image=network.get("featured_image") or None,
        )
        for network in networks
    ]


def board_records(board: Iterable[Dict[str, Any]]) -> List[SearchRecord]:
    return [
        SearchRecord(
            title=_join(member.get("first"), member.get("last")),
            url=f"/about/board#{member.get('id')}",
            content=_join(member.get("first"), member.get("last"), member.get("title") or ""),
            type=ContentType.BOARD,
            category="Advisory Board",
            subtitle=member.get("title"),
        )
        for member in board
    ]


def faq_records(faqs: Iterable[Dict[str, Any]]) -> List[SearchRecord]:
    return [
        SearchRecord(
            title=faq.get("question") or "",
            url=f"/intern/faq#{faq.get('id')}",
            content=_join(faq.get("question"), faq.get("answer") or ""),
            type=ContentType.FAQ,
            category="Intern Program",
        )
        for faq in faqs
    ]


def intern_project_records(projects: Iterable[Dict[str, Any]]) -> List[SearchRecord]:
    return [
        SearchRecord(
            title=project.get("title") or "",
            url=f"/intern/projects#{project.get('id')}",
            content=_join(
                project.get("title"),
                project.get("name_intern") or "",
                project.get("affiliation_intern") or "",
                project.get("research_question") or "",
                project.get("project_summary") or "",
            ),
            type=ContentType.INTERN_PROJECT,
            category="Intern Projects",
            subtitle=project.get("name_intern"),
        )
        for project in projects
    ]


def intern_year_records(final_projects: Iterable[Dict[str, Any]]) -> List[SearchRecord]:
    return [
        SearchRecord(
            title=f"{project.get('project_year')} Intern Program",
            url=f"/intern/archive/{project.get('project_year')}",
            content=_join(
                project.get("project_year"),
                project.get("overall_details") or "",
                project.get("final_project_image_caption") or "",
                project.get("interns_group_caption") or "",
            ),
            type=ContentType.INTERN_YEAR,
            category="Intern Program Archive",
        )
        for project in final_projects
    ]


def news_records(articles: Iterable[Dict[str, Any]]) -> List[SearchRecord]:
    records = []
    for article in articles:
        searchable = [
            article.get("title") or "",
            article.get("excerpt") or "",
            clean_html(article.get("content")),
            article.get("category") or "",
        ]
        records.append(
            SearchRecord(
                title=article.get("title") or "",
                url=f"/news/{article.get('slug')}",
                content=" ".join(part for part in searchable if part),
                type=ContentType.NEWS,
                category="News",
                subtitle=format_publication_date(article.get("publication_date")),
                image=article.get("tile_image") or article.get("main_image") or None,
                publicationDate=article.get("publication_date"),
                articleCategory=article.get("category"),
            )
        )
    return records


def annual_report_records(reports: Iterable[Dict[str, Any]]) -> List[SearchRecord]:
    records = []
    for report in reports:
        authors = " ".join(
            _join(a["authors_id"].get("first_name"), a["authors_id"].get("last_name"))
            for a in report.get("author_id") or []
            if a.get("authors_id")
        )
        records.append(
            SearchRecord(
                title=report.get("title") or "",
                url="/pubs/annual-reports",
                content=_join(
                    report.get("title"),
                    authors,
                    report.get("comments") or "",
                    report.get("publication_year"),
                ),
                type=ContentType.ANNUAL_REPORT,
                category="Annual Reports",
                subtitle=f"Annual Report {report.get('publication_year')}",
                image=report.get("tile_image") or None,
            )
        )
    return records


def factsheet_records(sheets: Iterable[Dict[str, Any]]) -> List[SearchRecord]:
    return [
        SearchRecord(
            title=sheet.get("title") or "",
            url="/pubs/factsheets",
            content=_join(
                sheet.get("title"),
                sheet.get("author") or "",
                sheet.get("series_number") or "",
                sheet.get("publication_year"),
            ),
            type=ContentType.FACTSHEET,
            category="Fact Sheets",
            subtitle=f"Fact Sheet {sheet.get('series_number') or ''}",
            image=sheet.get("tile_image") or None,
        )
        for sheet in sheets
    ]


Section = Callable[[DirectusClient], Awaitable[List[SearchRecord]]]


def _section(fetch: Callable[[DirectusClient], Awaitable[Any]], shape: Callable[[Any], List[SearchRecord]]) -> Section:
    async def run(cms: DirectusClient) -> List[SearchRecord]:
        return shape(await fetch(cms))

    return run


SECTIONS: List[tuple] = [
    ("staff", _section(content.fetch_staff_by_department, staff_records)),
    ("pages", _section(content.fetch_all_pages, page_records)),
    ("research", _section(content.fetch_all_research, research_records)),
    ("labs", _section(content.fetch_all_labs, lab_records)),
    ("locations", _section(content.fetch_all_locations, location_records)),
    ("organizations", _section(content.fetch_all_associated_orgs, organization_records)),
    ("monitoring networks", _section(content.fetch_all_monitoring_networks, monitoring_records)),
    ("advisory board", _section(content.fetch_all_advisory_board, board_records)),
    ("intern FAQs", _section(content.fetch_intern_faqs, faq_records)),
    ("intern projects", _section(content.fetch_all_intern_projects, intern_project_records)),
    ("intern final projects", _section(content.fetch_intern_final_projects, intern_year_records)),
    ("news", _section(content.fetch_all_news, news_records)),
    ("annual reports", _section(content.fetch_all_annual_reports, annual_report_records)),
    ("factsheets", _section(content.fetch_all_factsheets, factsheet_records)),
]


async def build_search_index(cms: DirectusClient) -> List[SearchRecord]:
    """Aggregate every content section into one flat list, in section order."""
    index: List[SearchRecord] = []
    for name, section in SECTIONS:
        try:
            records = await section(cms)
        except Exception as e:
            logger.error("Error indexing section", section=name, error=str(e))
            continue
        index.extend(records)
    logger.info("Built search index", items=len(index))
    return index
