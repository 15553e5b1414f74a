"""
Share Link Models
Pydantic models for anonymous capability links
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ResolutionFailure(str, Enum):
    """Why a token did not resolve, checked in this order"""

    NOT_FOUND = "NOT_FOUND"
    REVOKED = "REVOKED"
    EXPIRED = "EXPIRED"
    CHART_DELETED = "CHART_DELETED"
    SERVER_ERROR = "SERVER_ERROR"


class ShareLinkRecord(BaseModel):
    """A persisted share link"""

    id: str
    token: str
    chart_id: str
    created_by: str
    created_at: datetime
    expires_at: Optional[datetime] = None
    revoked_at: Optional[datetime] = None
    access_count: int = 0
    last_accessed_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ShareLinkResolution(BaseModel):
    """Outcome of resolving a token"""

    ok: bool
    reason: Optional[ResolutionFailure] = None
    message: Optional[str] = None
    link: Optional[ShareLinkRecord] = None
    chart: Optional[Dict[str, Any]] = Field(
        default=None, description="Chart content, without owner or permissions"
    )
    revoked_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None


class CreateLinkOutcome(BaseModel):
    """Result of create_or_get"""

    link: ShareLinkRecord
    is_new: bool


class RevokeLinksOutcome(BaseModel):
    """Result of revoking every active link of a chart"""

    success: bool
    revoked_count: int = 0
    message: str


class ShareLinkView(BaseModel):
    """Link metadata shown to the chart owner"""

    token: str
    url: str
    created_at: datetime
    expires_at: Optional[datetime] = None
    access_count: int = 0
    last_accessed_at: Optional[datetime] = None
