"""
Rate Limit Policies
Fixed-window limits per action
"""

from typing import Dict

from pydantic import BaseModel

HOUR_MS = 60 * 60 * 1000


class RateLimitPolicy(BaseModel):
    """Maximum attempts per epoch-aligned window"""

    max: int
    window_ms: int
    name: str


def _hourly(max_requests: int) -> RateLimitPolicy:
    return RateLimitPolicy(max=max_requests, window_ms=HOUR_MS, name="1 hour")


RATE_LIMITS: Dict[str, RateLimitPolicy] = {
    "SAVE_CHART": _hourly(100),
    "GET_CHARTS": _hourly(500),
    "GET_CHART": _hourly(1000),
    "DELETE_CHART": _hourly(20),
    "SHARE_CHART": _hourly(50),
    "EXPORT_CHART": _hourly(5),
    # Share link operations
    "SHARE_LINK_CREATE": _hourly(20),
    "SHARE_LINK_GET": _hourly(200),
    "SHARE_LINK_GET_META": _hourly(100),
    "SHARE_LINK_REVOKE": _hourly(20),
    # Anonymous callers, keyed by IP
    "ANONYMOUS_GET_CHARTS": _hourly(100),
    "ANONYMOUS_GET_CHART": _hourly(200),
    "REQUEST_ACCESS": _hourly(10),
    "ADMIN_OPERATION": _hourly(100),
}

ANONYMOUS_PREFIX = "ANONYMOUS_"
