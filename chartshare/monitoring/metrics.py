"""
Prometheus metrics for the chart sharing service
"""

import time
from functools import wraps
from typing import Callable

from prometheus_client import Counter, Histogram, CollectorRegistry
from prometheus_client.exposition import generate_latest

# Create a custom registry
metrics_registry = CollectorRegistry()

# Request metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
    registry=metrics_registry
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint"],
    buckets=(.005, .01, .025, .05, .075, .1, .25, .5, .75, 1.0, 2.5, 5.0),
    registry=metrics_registry
)

# Authorization metrics
authorization_decisions_total = Counter(
    "authorization_decisions_total",
    "Authorization decisions by deciding source",
    ["source", "outcome"],
    registry=metrics_registry
)

# Rate limiting metrics
rate_limit_decisions_total = Counter(
    "rate_limit_decisions_total",
    "Rate limiter decisions",
    ["action", "outcome"],
    registry=metrics_registry
)

# Share link metrics
share_link_resolutions_total = Counter(
    "share_link_resolutions_total",
    "Share link token resolutions",
    ["outcome"],
    registry=metrics_registry
)

# Access request metrics
access_request_reviews_total = Counter(
    "access_request_reviews_total",
    "Access request reviews",
    ["action", "outcome"],
    registry=metrics_registry
)

# Store fault metrics
store_faults_total = Counter(
    "store_faults_total",
    "Record store faults absorbed by a failure policy",
    ["component", "policy"],
    registry=metrics_registry
)


def track_request(method: str, endpoint: str):
    """Decorator to track HTTP requests"""
    def decorator(func: Callable):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            start_time = time.time()
            status = "success"
            try:
                return await func(*args, **kwargs)
            except Exception:
                status = "error"
                raise
            finally:
                duration = time.time() - start_time
                http_requests_total.labels(
                    method=method,
                    endpoint=endpoint,
                    status=status
                ).inc()
                http_request_duration_seconds.labels(
                    method=method,
                    endpoint=endpoint
                ).observe(duration)
        return wrapper
    return decorator


def get_metrics() -> bytes:
    """Render the registry in Prometheus exposition format"""
    return generate_latest(metrics_registry)
