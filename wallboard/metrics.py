"""
Prometheus metrics for the wallboard app.

This module provides:
- HTTP request counter (method, path, status)
- Wall operation outcome counter (result)
- Request latency histogram (method, path)

Metrics are stored in-memory using prometheus-client.
"""

import re

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST


# =============================================================================
# Metric Definitions
# =============================================================================

# HTTP request counter with labels for method, path, and status code
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    labelnames=["method", "path", "status"]
)

# Wall operation outcome counter
# result: created, rejected, deleted, creator_mismatch, not_found
wall_operations_total = Counter(
    "wall_operations_total",
    "Total wall operation outcomes",
    labelnames=["result"]
)

# Request latency histogram in seconds
request_latency_seconds = Histogram(
    "request_latency_seconds",
    "Request latency in seconds",
    labelnames=["method", "path"]
)

_ID_SEGMENT = re.compile(r"/\d+(?=/|$)")


# =============================================================================
# Helper Functions
# =============================================================================

def normalize_path(path: str) -> str:
    """
    Collapse numeric path segments to keep label cardinality low.

    /walls/42 -> /walls/{id}
    """
    return _ID_SEGMENT.sub("/{id}", path.split("?")[0])


def record_http_request(method: str, path: str, status: int, latency_seconds: float) -> None:
    """
    Record an HTTP request in metrics.

    Args:
        method: HTTP method (GET, POST, etc.)
        path: Request path
        status: HTTP status code
        latency_seconds: Request processing time in seconds
    """
    normalized_path = normalize_path(path)

    http_requests_total.labels(
        method=method,
        path=normalized_path,
        status=str(status)
    ).inc()

    request_latency_seconds.labels(
        method=method,
        path=normalized_path
    ).observe(latency_seconds)


def record_wall_outcome(result: str) -> None:
    """
    Record a wall operation outcome.

    Args:
        result: one of created, rejected, deleted, creator_mismatch, not_found
    """
    wall_operations_total.labels(result=result).inc()


def get_metrics() -> bytes:
    """Generate Prometheus exposition format metrics."""
    return generate_latest()


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
