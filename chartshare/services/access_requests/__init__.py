"""
Access-Request State Machine
"""

from chartshare.services.access_requests.models import (
    AccessRequestPage,
    AccessRequestRecord,
    AccessRequestStatus,
    AccessRequestView,
    OutcomeKind,
    ReviewAction,
    ReviewOutcome,
    SubmitOutcome,
)
from chartshare.services.access_requests.service import AccessRequestService

__all__ = [
    "AccessRequestService",
    "AccessRequestStatus",
    "ReviewAction",
    "OutcomeKind",
    "SubmitOutcome",
    "ReviewOutcome",
    "AccessRequestRecord",
    "AccessRequestView",
    "AccessRequestPage",
]
