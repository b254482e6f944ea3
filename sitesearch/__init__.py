"""Hybrid site search: CMS-backed custom index merged with a static page index."""

__version__ = "0.1.0"
