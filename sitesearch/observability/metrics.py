"""Prometheus metrics shared by the app, the search engine and its sources."""

from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "sitesearch_requests_total",
    "Total number of HTTP requests",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "sitesearch_request_duration_seconds",
    "Request duration in seconds",
    ["method", "endpoint"],
)

SEARCHES = Counter(
    "sitesearch_searches_total",
    "Completed searches by resulting state",
    ["state"],
)

SEARCH_DURATION = Histogram(
    "sitesearch_search_duration_seconds",
    "Time to query both sources and merge the results",
)

SOURCE_FAILURES = Counter(
    "sitesearch_source_failures_total",
    "Search source calls that degraded to an empty result",
    ["source"],
)

STALE_RESULTS = Counter(
    "sitesearch_stale_results_total",
    "Search results dropped because a newer query was committed",
)
