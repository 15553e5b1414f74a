"""
Share Link API Models
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from chartshare.models.common import RateLimitedResponse


class ShareLinkResponse(RateLimitedResponse):
    """A chart's share link as seen by its owner"""
    token: str
    url: str
    created_at: datetime
    expires_at: Optional[datetime] = None
    access_count: int = 0
    last_accessed_at: Optional[datetime] = None
    is_new: Optional[bool] = None


class RevokeShareLinkResponse(RateLimitedResponse):
    """Result of revoking a chart's share links"""
    success: bool
    message: str
    revoked_count: int


class SharedChartResponse(BaseModel):
    """Chart reached through a share link; never carries owner or permissions"""
    chart: Dict[str, Any]
    role: str = Field("viewer", description="Anonymous link holders are always viewers")
    shared_via: str = "link"
