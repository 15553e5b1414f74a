"""
Rate Limit Models
"""

from typing import Optional

from pydantic import BaseModel


class RateLimitResult(BaseModel):
    """Outcome of a rate limit check"""

    allowed: bool
    remaining: Optional[int] = None
    retry_after_seconds: Optional[int] = None
    message: Optional[str] = None
