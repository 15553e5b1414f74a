"""
Access Request Models
States, actions and outcomes of the access request workflow
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class AccessRequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"

    @property
    def is_terminal(self) -> bool:
        return self is not AccessRequestStatus.PENDING


class ReviewAction(str, Enum):
    APPROVE = "approve"
    DENY = "deny"


class OutcomeKind(str, Enum):
    """How a caller should react to an outcome"""

    OK = "ok"
    NOT_FOUND = "not_found"
    DENIED = "denied"
    CONFLICT = "conflict"
    INVALID = "invalid"
    FAILED = "failed"


class AccessRequestRecord(BaseModel):
    """A persisted access request"""

    id: str
    chart_id: str
    chart_name: Optional[str] = None
    chart_owner_id: str
    requester_id: str
    requester_email: Optional[str] = None
    requested_role: str
    reason: str = ""
    status: AccessRequestStatus
    requested_at: datetime
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    review_notes: Optional[str] = None

    model_config = {"from_attributes": True}


class SubmitOutcome(BaseModel):
    """Result of submitting (or refreshing) an access request"""

    kind: OutcomeKind
    message: str
    request_id: Optional[str] = None
    status: Optional[AccessRequestStatus] = None
    is_update: bool = Field(default=False, description="An existing pending request was refreshed")
    current_role: Optional[str] = Field(default=None, description="Role already held, on conflict")

    @property
    def success(self) -> bool:
        return self.kind == OutcomeKind.OK


class ReviewOutcome(BaseModel):
    """Result of approving or denying an access request"""

    kind: OutcomeKind
    message: str
    request_id: str
    action: Optional[ReviewAction] = None
    status: Optional[AccessRequestStatus] = Field(default=None, description="Status after the call")
    granted_role: Optional[str] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    details: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.kind == OutcomeKind.OK


class AccessRequestView(AccessRequestRecord):
    """Access request as seen by a particular caller"""

    is_owner: bool = False
    is_requester: bool = False
    can_review: bool = False


class AccessRequestPage(BaseModel):
    """One page of access requests"""

    requests: List[AccessRequestView]
    total: int
    limit: int
    offset: int
    is_admin: bool = False

    @property
    def has_more(self) -> bool:
        return self.offset + len(self.requests) < self.total
