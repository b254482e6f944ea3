"""Observability package for the site search service."""

from .context import RequestContextMiddleware
from .metrics import SEARCHES, SOURCE_FAILURES, STALE_RESULTS

__all__ = [
    "RequestContextMiddleware",
    "SEARCHES",
    "SOURCE_FAILURES",
    "STALE_RESULTS",
]
