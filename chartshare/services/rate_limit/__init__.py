"""
Rate Limiter
"""

from chartshare.services.rate_limit.models import RateLimitResult
from chartshare.services.rate_limit.policies import RATE_LIMITS, RateLimitPolicy
from chartshare.services.rate_limit.service import RateLimiter, get_client_ip
from chartshare.services.rate_limit.store import RateCounterStore

__all__ = [
    "RateLimiter",
    "RateLimitResult",
    "RateLimitPolicy",
    "RateCounterStore",
    "RATE_LIMITS",
    "get_client_ip",
]
