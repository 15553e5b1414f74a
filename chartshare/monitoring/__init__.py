"""
Monitoring module for application metrics
"""

from chartshare.monitoring.metrics import (
    access_request_reviews_total,
    authorization_decisions_total,
    get_metrics,
    metrics_registry,
    rate_limit_decisions_total,
    share_link_resolutions_total,
    store_faults_total,
    track_request,
)

__all__ = [
    "metrics_registry",
    "get_metrics",
    "track_request",
    "authorization_decisions_total",
    "rate_limit_decisions_total",
    "share_link_resolutions_total",
    "access_request_reviews_total",
    "store_faults_total",
]
