"""
Sharing API Models
Request/response schemas for per-chart roles and access checks
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from chartshare.models.common import RateLimitedResponse


class GrantRoleRequest(BaseModel):
    """Grant or change a user's role on a chart"""
    target_user_id: str = Field(..., min_length=1, max_length=255, description="User to share with")
    role: str = Field("viewer", description="viewer or editor")


class RevokeRoleRequest(BaseModel):
    """Remove a user's role on a chart"""
    target_user_id: str = Field(..., min_length=1, max_length=255, description="User to revoke")


class ShareMutationResponse(RateLimitedResponse):
    """Result of a grant or revoke"""
    success: bool
    message: str
    chart_id: str
    target_user_id: str
    role: Optional[str] = None


class PermissionEntryResponse(BaseModel):
    """A per-chart role entry"""
    user_id: str
    role: str
    granted_at: Optional[datetime] = None
    granted_by: Optional[str] = None
    updated_at: Optional[datetime] = None


class PermissionListResponse(RateLimitedResponse):
    """All per-chart entries of a chart"""
    chart_id: str
    permissions: List[PermissionEntryResponse]


class AccessCheckResponse(BaseModel):
    """Outcome of an authorization probe"""
    chart_id: str
    action: str
    allowed: bool
    effective_role: Optional[str] = None
    source: Optional[str] = None
    reason: Optional[str] = None
