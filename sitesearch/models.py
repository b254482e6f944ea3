"""Data models shared by the index builder, the search sources and the query engine."""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ContentType(str, Enum):
    """Fine-grained content type of a searchable record."""

    STAFF = "staff"
    PAGE = "page"
    RESEARCH = "research"
    LAB = "lab"
    LOCATION = "location"
    ORGANIZATION = "organization"
    MONITORING = "monitoring"
    NEWS = "news"
    BOARD = "board"
    FAQ = "faq"
    INTERN_PROJECT = "intern_project"
    INTERN_YEAR = "intern_year"
    ANNUAL_REPORT = "annual_report"
    FACTSHEET = "factsheet"


class SearchState(str, Enum):
    """Lifecycle of a query as seen by the page."""

    IDLE = "idle"
    LOADING = "loading"
    RESULTS = "results"
    EMPTY = "empty"


class SearchRecord(BaseModel):
    """One searchable item, from either the custom index or the static index.

    Extra keys emitted by the index builder (``department``,
    ``publicationDate`` ...) are kept as-is.
    """

    model_config = ConfigDict(frozen=True, extra="allow", use_enum_values=True)

    title: str = Field(..., description="Human-readable title")
    url: str = Field(..., description="Link target, also the dedupe key")
    content: str = Field(..., description="All searchable text, original case")
    type: ContentType = Field(..., description="Content type")
    category: str = Field(default="", description="Grouping label shown as a heading")
    subtitle: Optional[str] = None
    image: Optional[str] = None
    address: Optional[str] = None
    excerpt: Optional[str] = Field(default=None, description="Plain-text excerpt; highlighted when rendered")


class ResultGroup(BaseModel):
    """Results that share a category, in merge order."""

    category: str
    count: int
    items: List[SearchRecord]


class SearchOutcome(BaseModel):
    """Everything the presentation layer needs to render one query."""

    query: str
    category: str = ""
    state: SearchState
    total: int = 0
    groups: List[ResultGroup] = Field(default_factory=list)
    static_indexed: bool = False
    sequence: int = 0
