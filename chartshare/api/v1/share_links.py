"""
Share Link API Routes
Owner management of share links, and anonymous access through them
"""

from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response, status

from chartshare.api.dependencies import (
    Principal,
    anonymous_rate_limited,
    get_current_principal,
    get_role_resolver,
    get_share_link_service,
    rate_limited,
    validate_uuid,
)
from chartshare.core.exceptions import (
    AuthorizationException,
    GoneException,
    NotFoundException,
    StoreUnavailableException,
)
from chartshare.core.logging import get_logger, mask_token
from chartshare.models.share_link import (
    RevokeShareLinkResponse,
    SharedChartResponse,
    ShareLinkResponse,
)
from chartshare.monitoring import track_request
from chartshare.services.authorization import RoleResolver
from chartshare.services.rate_limit import RateLimitResult
from chartshare.services.share_links import ResolutionFailure, ShareLinkService

logger = get_logger(__name__)
router = APIRouter()

SHARED_CHART_CACHE_CONTROL = "private, max-age=300"


async def _require_share_permission(resolver: RoleResolver, chart_id: str, user_id: str) -> None:
    decision = await resolver.resolve_permitted_action(chart_id, user_id, "share")
    if decision.allowed:
        return
    if decision.is_not_found:
        raise NotFoundException(message=decision.reason)
    raise AuthorizationException(message=decision.reason or "Only chart owners can manage share links")


def _link_response(service: ShareLinkService, link, request: Request, **extra) -> ShareLinkResponse:
    view = service.describe(link, request.headers)
    return ShareLinkResponse(**view.model_dump(), **extra)


@router.post("/charts/{chart_id}/share-link", response_model=ShareLinkResponse)
@track_request("POST", "/charts/{chart_id}/share-link")
async def create_share_link(
    chart_id: str,
    request: Request,
    response: Response,
    regenerate: bool = Query(False, description="Revoke the active link and mint a new one"),
    expires_in_days: Optional[int] = Query(None, ge=1, description="Link lifetime in days"),
    rate: RateLimitResult = Depends(rate_limited("SHARE_LINK_CREATE")),
    principal: Principal = Depends(get_current_principal),
    resolver: RoleResolver = Depends(get_role_resolver),
    service: ShareLinkService = Depends(get_share_link_service),
):
    """
    Return the chart's active share link, creating one if needed

    Responds 201 when a new link was minted and 200 when the existing one is
    returned.
    """
    validate_uuid(chart_id, "chart_id")
    await _require_share_permission(resolver, chart_id, principal.user_id)

    outcome = await service.create_or_get(
        chart_id,
        principal.user_id,
        regenerate=regenerate,
        expires_in=timedelta(days=expires_in_days) if expires_in_days else None,
    )
    response.status_code = status.HTTP_201_CREATED if outcome.is_new else status.HTTP_200_OK

    return _link_response(service, outcome.link, request, is_new=outcome.is_new, remaining=rate.remaining)


@router.get("/charts/{chart_id}/share-link", response_model=ShareLinkResponse)
@track_request("GET", "/charts/{chart_id}/share-link")
async def get_share_link(
    chart_id: str,
    request: Request,
    rate: RateLimitResult = Depends(rate_limited("SHARE_LINK_GET_META")),
    principal: Principal = Depends(get_current_principal),
    resolver: RoleResolver = Depends(get_role_resolver),
    service: ShareLinkService = Depends(get_share_link_service),
):
    """Metadata of the chart's active share link (owner only)"""
    validate_uuid(chart_id, "chart_id")
    await _require_share_permission(resolver, chart_id, principal.user_id)

    link = await service.lookup_active(chart_id)
    if link is None:
        raise NotFoundException(
            message="No active share link found for this chart",
            details={"error_type": "NO_ACTIVE_LINK"},
        )

    return _link_response(service, link, request, remaining=rate.remaining)


@router.delete("/charts/{chart_id}/share-link", response_model=RevokeShareLinkResponse)
@track_request("DELETE", "/charts/{chart_id}/share-link")
async def revoke_share_link(
    chart_id: str,
    rate: RateLimitResult = Depends(rate_limited("SHARE_LINK_REVOKE")),
    principal: Principal = Depends(get_current_principal),
    resolver: RoleResolver = Depends(get_role_resolver),
    service: ShareLinkService = Depends(get_share_link_service),
):
    """Revoke every active share link of the chart; none active is not an error"""
    validate_uuid(chart_id, "chart_id")
    await _require_share_permission(resolver, chart_id, principal.user_id)

    outcome = await service.revoke_all(chart_id)
    if not outcome.success:
        raise StoreUnavailableException(message=outcome.message, operation="revoke_all")

    return RevokeShareLinkResponse(
        success=True,
        message=outcome.message,
        revoked_count=outcome.revoked_count,
        remaining=rate.remaining,
    )


@router.get("/shared/{token}", response_model=SharedChartResponse)
@track_request("GET", "/shared/{token}")
async def get_shared_chart(
    token: str,
    response: Response,
    rate: RateLimitResult = Depends(anonymous_rate_limited("SHARE_LINK_GET")),
    service: ShareLinkService = Depends(get_share_link_service),
):
    """
    Read a chart through its share link, no sign-in required

    Unknown tokens are 404; revoked and expired links are 410 with distinct
    error types. The chart never includes its owner or permissions.
    """
    validate_uuid(token, "token")

    resolution = await service.resolve_by_token(token)
    if not resolution.ok:
        logger.info(f"Share link {mask_token(token)} rejected: {resolution.reason.value}")
        details = {"error_type": resolution.reason.value}
        if resolution.reason == ResolutionFailure.REVOKED:
            details["revoked_at"] = resolution.revoked_at.isoformat()
            raise GoneException(message=resolution.message, details=details)
        if resolution.reason == ResolutionFailure.EXPIRED:
            details["expires_at"] = resolution.expires_at.isoformat()
            raise GoneException(message=resolution.message, details=details)
        if resolution.reason == ResolutionFailure.SERVER_ERROR:
            raise StoreUnavailableException(message=resolution.message, operation="resolve_by_token", details=details)
        raise NotFoundException(message=resolution.message, details=details)

    response.headers["Cache-Control"] = SHARED_CHART_CACHE_CONTROL
    return SharedChartResponse(chart=resolution.chart)
