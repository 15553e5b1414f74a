"""
Admin API Routes
Global role management and metrics
"""

from fastapi import APIRouter, Depends, Response

from chartshare.api.dependencies import (
    Principal,
    get_current_principal,
    get_global_role_store,
    rate_limited,
)
from chartshare.core.config import settings
from chartshare.core.exceptions import AuthorizationException, NotFoundException, ValidationException
from chartshare.core.logging import get_logger
from chartshare.models.global_role import (
    GlobalRoleListResponse,
    GlobalRoleResponse,
    RoleChangeResponse,
    SetGlobalRoleRequest,
)
from chartshare.monitoring import get_metrics, track_request
from chartshare.services.global_roles import GlobalRoleStore
from chartshare.services.rate_limit import RateLimitResult

logger = get_logger(__name__)
router = APIRouter()


async def require_admin(
    principal: Principal = Depends(get_current_principal),
    global_roles: GlobalRoleStore = Depends(get_global_role_store),
) -> Principal:
    """
    Dependency that admits global admins only

    Raises:
        AuthorizationException: If the caller is not an admin
    """
    if not await global_roles.is_admin(principal.user_id):
        logger.warning(f"Non-admin {principal.user_id} attempted role management")
        raise AuthorizationException(message="Access denied: Admin role required")
    return principal


@router.get("/users", response_model=GlobalRoleListResponse)
@track_request("GET", "/admin/users")
async def list_global_roles(
    rate: RateLimitResult = Depends(rate_limited("ADMIN_OPERATION")),
    admin: Principal = Depends(require_admin),
    global_roles: GlobalRoleStore = Depends(get_global_role_store),
):
    """List bootstrap admins and every persisted global role"""
    bootstrap = [
        GlobalRoleResponse(user_id=user_id, role="admin", bootstrap=True)
        for user_id in global_roles.bootstrap_admin_ids()
    ]
    stored = [GlobalRoleResponse(**record.model_dump()) for record in await global_roles.list_roles()]

    users = bootstrap + stored
    return GlobalRoleListResponse(users=users, total=len(users))


@router.post("/users/{user_id}/role", response_model=RoleChangeResponse)
@track_request("POST", "/admin/users/{user_id}/role")
async def set_global_role(
    user_id: str,
    body: SetGlobalRoleRequest,
    rate: RateLimitResult = Depends(rate_limited("ADMIN_OPERATION")),
    admin: Principal = Depends(require_admin),
    global_roles: GlobalRoleStore = Depends(get_global_role_store),
):
    """Assign a user's application-wide role"""
    result = await global_roles.set_role(user_id, body.role, granted_by=admin.user_id)
    if not result.success:
        raise ValidationException(message=result.message, details={"user_id": user_id})

    logger.info(f"Admin {admin.user_id} set global role {body.role} for {user_id}")
    return RoleChangeResponse(success=True, message=result.message, user_id=user_id, role=body.role)


@router.delete("/users/{user_id}/role", response_model=RoleChangeResponse)
@track_request("DELETE", "/admin/users/{user_id}/role")
async def remove_global_role(
    user_id: str,
    rate: RateLimitResult = Depends(rate_limited("ADMIN_OPERATION")),
    admin: Principal = Depends(require_admin),
    global_roles: GlobalRoleStore = Depends(get_global_role_store),
):
    """Remove a user's persisted global role"""
    result = await global_roles.remove_role(user_id)
    if not result.success:
        if "no global role" in result.message.lower():
            raise NotFoundException(message=result.message, details={"user_id": user_id})
        raise ValidationException(message=result.message, details={"user_id": user_id})

    logger.info(f"Admin {admin.user_id} removed global role of {user_id}")
    return RoleChangeResponse(success=True, message=result.message, user_id=user_id)


@router.get("/metrics")
async def prometheus_metrics():
    """
    Prometheus metrics endpoint

    Returns metrics in Prometheus exposition format for scraping by Prometheus server.
    """
    if not settings.ENABLE_METRICS:
        raise NotFoundException(message="Metrics are disabled")
    metrics = get_metrics()
    return Response(content=metrics, media_type="text/plain")
