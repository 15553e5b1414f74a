"""
Chart Sharing API Routes
Grant, revoke and list per-chart roles, and probe a caller's access
"""

from fastapi import APIRouter, Depends, Query

from chartshare.api.dependencies import (
    Principal,
    get_current_principal,
    get_permission_mutator,
    get_role_resolver,
    rate_limited,
    validate_uuid,
)
from chartshare.core.exceptions import NotFoundException, ValidationException
from chartshare.core.logging import get_logger
from chartshare.models.sharing import (
    AccessCheckResponse,
    GrantRoleRequest,
    PermissionEntryResponse,
    PermissionListResponse,
    RevokeRoleRequest,
    ShareMutationResponse,
)
from chartshare.monitoring import track_request
from chartshare.services.authorization import RoleResolver
from chartshare.services.rate_limit import RateLimitResult
from chartshare.services.sharing import (
    MSG_NOT_FOUND_OR_NOT_PERMITTED,
    MutationResult,
    PermissionMutator,
)

logger = get_logger(__name__)
router = APIRouter()


def _raise_for_mutation(result: MutationResult) -> None:
    if result.success:
        return
    if result.is_not_found:
        raise NotFoundException(message=result.message)
    raise ValidationException(message=result.message)


@router.post("/{chart_id}/share", response_model=ShareMutationResponse)
@track_request("POST", "/charts/{chart_id}/share")
async def share_chart(
    chart_id: str,
    body: GrantRoleRequest,
    rate: RateLimitResult = Depends(rate_limited("SHARE_CHART")),
    principal: Principal = Depends(get_current_principal),
    mutator: PermissionMutator = Depends(get_permission_mutator),
):
    """
    Grant a viewer or editor role on a chart

    Only the owner may share. A missing chart and a chart owned by someone
    else produce the same 404.
    """
    validate_uuid(chart_id, "chart_id")

    result = await mutator.grant(chart_id, principal.user_id, body.target_user_id, body.role)
    _raise_for_mutation(result)

    return ShareMutationResponse(
        success=True,
        message=result.message,
        chart_id=chart_id,
        target_user_id=body.target_user_id,
        role=body.role,
        remaining=rate.remaining,
    )


@router.delete("/{chart_id}/share", response_model=ShareMutationResponse)
@track_request("DELETE", "/charts/{chart_id}/share")
async def revoke_chart_share(
    chart_id: str,
    body: RevokeRoleRequest,
    rate: RateLimitResult = Depends(rate_limited("SHARE_CHART")),
    principal: Principal = Depends(get_current_principal),
    mutator: PermissionMutator = Depends(get_permission_mutator),
):
    """Remove a user's role on a chart"""
    validate_uuid(chart_id, "chart_id")

    result = await mutator.revoke(chart_id, principal.user_id, body.target_user_id)
    _raise_for_mutation(result)

    return ShareMutationResponse(
        success=True,
        message=result.message,
        chart_id=chart_id,
        target_user_id=body.target_user_id,
        remaining=rate.remaining,
    )


@router.get("/{chart_id}/share", response_model=PermissionListResponse)
@track_request("GET", "/charts/{chart_id}/share")
async def list_chart_shares(
    chart_id: str,
    rate: RateLimitResult = Depends(rate_limited("GET_CHART")),
    principal: Principal = Depends(get_current_principal),
    mutator: PermissionMutator = Depends(get_permission_mutator),
):
    """List the per-chart role entries (owner only)"""
    validate_uuid(chart_id, "chart_id")

    entries = await mutator.list_entries(chart_id, principal.user_id)
    if entries is None:
        raise NotFoundException(message=MSG_NOT_FOUND_OR_NOT_PERMITTED)

    return PermissionListResponse(
        chart_id=chart_id,
        permissions=[PermissionEntryResponse(**entry.model_dump()) for entry in entries],
        remaining=rate.remaining,
    )


@router.get("/{chart_id}/access", response_model=AccessCheckResponse)
@track_request("GET", "/charts/{chart_id}/access")
async def check_chart_access(
    chart_id: str,
    action: str = Query("read", description="read, export, edit, delete or share"),
    rate: RateLimitResult = Depends(rate_limited("GET_CHART")),
    principal: Principal = Depends(get_current_principal),
    resolver: RoleResolver = Depends(get_role_resolver),
):
    """
    Report whether the caller may perform action on a chart

    A missing chart is a 404; every other decision, allow or deny, is
    reported in the body.
    """
    validate_uuid(chart_id, "chart_id")

    decision = await resolver.resolve_permitted_action(chart_id, principal.user_id, action)
    if decision.is_not_found:
        raise NotFoundException(message=decision.reason)

    return AccessCheckResponse(
        chart_id=chart_id,
        action=action,
        allowed=decision.allowed,
        effective_role=decision.effective_role.value if decision.effective_role else None,
        source=decision.source.value if decision.source else None,
        reason=decision.reason,
    )
