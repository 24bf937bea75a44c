"""
Prometheus metrics shared by the cache layer and the HTTP app.

Metrics live on the default registry; the `/metrics` route exposes them.
"""
from prometheus_client import Counter, Histogram

# HTTP metrics
HTTP_REQUESTS_TOTAL = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
)

# Cache-aside metrics, labelled by the entity part of the logical key
CACHE_HITS_TOTAL = Counter(
    "cache_hits_total",
    "Reads served from the cache",
    ["entity"],
)

CACHE_MISSES_TOTAL = Counter(
    "cache_misses_total",
    "Reads that fell through to the document store",
    ["entity"],
)

CACHE_DEGRADED_TOTAL = Counter(
    "cache_degraded_total",
    "Cache reads or write-backs that failed and were tolerated",
    ["entity", "operation"],
)
