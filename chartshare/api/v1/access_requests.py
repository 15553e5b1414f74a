"""
Access Request API Routes
Request access to a chart, list requests, and review them
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from chartshare.api.dependencies import (
    Principal,
    get_access_request_service,
    get_current_principal,
    rate_limited,
    validate_uuid,
)
from chartshare.core.exceptions import (
    AppException,
    AuthorizationException,
    ConflictException,
    NotFoundException,
    StoreUnavailableException,
    ValidationException,
)
from chartshare.core.logging import get_logger
from chartshare.models.access_request import (
    AccessRequestItem,
    AccessRequestListResponse,
    CreateAccessRequest,
    ReviewAccessRequestBody,
    ReviewAccessResponse,
    SubmitAccessResponse,
)
from chartshare.monitoring import track_request
from chartshare.services.access_requests import (
    AccessRequestService,
    OutcomeKind,
    ReviewOutcome,
    SubmitOutcome,
)
from chartshare.services.rate_limit import RateLimitResult

logger = get_logger(__name__)
router = APIRouter()


def _raise_for_outcome(outcome) -> None:
    """Translate a non-OK workflow outcome into an HTTP error"""
    if outcome.kind == OutcomeKind.OK:
        return

    details = {}
    if isinstance(outcome, SubmitOutcome) and outcome.current_role:
        details["current_role"] = outcome.current_role
    if isinstance(outcome, ReviewOutcome):
        if outcome.status:
            details["status"] = outcome.status.value
        if outcome.reviewed_by:
            details["reviewed_by"] = outcome.reviewed_by
        if outcome.reviewed_at:
            details["reviewed_at"] = outcome.reviewed_at.isoformat()
        if outcome.details:
            details["reason"] = outcome.details

    if outcome.kind == OutcomeKind.INVALID:
        raise ValidationException(message=outcome.message, details=details)
    if outcome.kind == OutcomeKind.NOT_FOUND:
        raise NotFoundException(message=outcome.message, details=details)
    if outcome.kind == OutcomeKind.CONFLICT:
        raise ConflictException(message=outcome.message, details=details)
    if outcome.kind == OutcomeKind.DENIED:
        raise AuthorizationException(message=outcome.message, details=details)
    if isinstance(outcome, ReviewOutcome) and outcome.details:
        # The grant was refused; the request is still pending
        raise AppException(message=outcome.message, code="grant_failed", status_code=500, details=details)
    raise StoreUnavailableException(message=outcome.message, details=details)


@router.post(
    "/charts/{chart_id}/access-requests",
    response_model=SubmitAccessResponse,
    status_code=status.HTTP_201_CREATED,
)
@track_request("POST", "/charts/{chart_id}/access-requests")
async def request_access(
    chart_id: str,
    body: CreateAccessRequest,
    response: Response,
    rate: RateLimitResult = Depends(rate_limited("REQUEST_ACCESS")),
    principal: Principal = Depends(get_current_principal),
    service: AccessRequestService = Depends(get_access_request_service),
):
    """
    Ask a chart's owner for viewer or editor access

    A repeat request while one is pending refreshes it and returns 200.
    """
    validate_uuid(chart_id, "chart_id")

    outcome = await service.submit(
        chart_id,
        principal.user_id,
        requester_email=principal.email,
        requested_role=body.requested_role,
        reason=body.reason,
    )
    _raise_for_outcome(outcome)

    if outcome.is_update:
        response.status_code = status.HTTP_200_OK

    return SubmitAccessResponse(
        success=True,
        message=outcome.message,
        request_id=outcome.request_id,
        status=outcome.status.value,
        is_update=outcome.is_update,
        remaining=rate.remaining,
    )


@router.get("/access-requests", response_model=AccessRequestListResponse)
@track_request("GET", "/access-requests")
async def list_access_requests(
    status_filter: Optional[str] = Query(None, alias="status", description="pending, approved or denied"),
    limit: int = Query(50, description="Page size, capped at 100"),
    offset: int = Query(0, description="Items to skip"),
    rate: RateLimitResult = Depends(rate_limited("GET_CHARTS")),
    principal: Principal = Depends(get_current_principal),
    service: AccessRequestService = Depends(get_access_request_service),
):
    """List requests for the caller's charts and requests the caller made"""
    try:
        page = await service.list_for(principal.user_id, status=status_filter, limit=limit, offset=offset)
    except ValueError:
        raise ValidationException(
            message="Invalid status filter. Must be one of: pending, approved, denied",
            details={"status": status_filter},
        )

    return AccessRequestListResponse(
        requests=[AccessRequestItem(**view.model_dump(mode="json")) for view in page.requests],
        total=page.total,
        limit=page.limit,
        offset=page.offset,
        has_more=page.has_more,
        is_admin=page.is_admin,
        remaining=rate.remaining,
    )


@router.put("/access-requests/{request_id}", response_model=ReviewAccessResponse)
@track_request("PUT", "/access-requests/{request_id}")
async def review_access_request(
    request_id: str,
    body: ReviewAccessRequestBody,
    rate: RateLimitResult = Depends(rate_limited("SHARE_CHART")),
    principal: Principal = Depends(get_current_principal),
    service: AccessRequestService = Depends(get_access_request_service),
):
    """
    Approve or deny a pending request

    Only the chart owner or a global admin may review. Approval grants the
    role before the request is marked approved.
    """
    validate_uuid(request_id, "request_id")

    outcome = await service.review(
        request_id,
        principal.user_id,
        body.action,
        notes=body.notes,
        granted_role=body.granted_role,
    )
    _raise_for_outcome(outcome)

    return ReviewAccessResponse(
        success=True,
        message=outcome.message,
        request_id=request_id,
        action=outcome.action.value,
        status=outcome.status.value,
        granted_role=outcome.granted_role,
        reviewed_by=outcome.reviewed_by,
        reviewed_at=outcome.reviewed_at,
        remaining=rate.remaining,
    )
