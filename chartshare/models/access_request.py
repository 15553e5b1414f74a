"""
Access Request API Models
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from chartshare.models.common import RateLimitedResponse


class CreateAccessRequest(BaseModel):
    """Ask a chart owner for access"""
    requested_role: str = Field("editor", description="viewer or editor")
    reason: Optional[str] = Field(None, description="Why access is needed")


class ReviewAccessRequestBody(BaseModel):
    """Approve or deny an access request"""
    action: str = Field(..., description="approve or deny")
    notes: Optional[str] = Field(None, description="Review notes")
    granted_role: Optional[str] = Field(None, description="Role to grant instead of the requested one")


class SubmitAccessResponse(RateLimitedResponse):
    """Result of submitting an access request"""
    success: bool
    message: str
    request_id: str
    status: str
    is_update: bool = False


class ReviewAccessResponse(RateLimitedResponse):
    """Result of reviewing an access request"""
    success: bool
    message: str
    request_id: str
    action: str
    status: str
    granted_role: Optional[str] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None


class AccessRequestItem(BaseModel):
    """An access request as seen by the caller"""
    id: str
    chart_id: str
    chart_name: Optional[str] = None
    chart_owner_id: str
    requester_id: str
    requester_email: Optional[str] = None
    requested_role: str
    reason: str = ""
    status: str
    requested_at: datetime
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    review_notes: Optional[str] = None
    is_owner: bool = False
    is_requester: bool = False
    can_review: bool = False


class AccessRequestListResponse(RateLimitedResponse):
    """One page of access requests"""
    requests: List[AccessRequestItem]
    total: int
    limit: int
    offset: int
    has_more: bool
    is_admin: bool = False
