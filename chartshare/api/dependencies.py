"""
API Dependencies
Caller identity, service wiring and rate limiting for API routes
"""

import base64
import binascii
import json
import uuid
from typing import List, Optional

from fastapi import Depends, Header, Request
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from chartshare.core.config import settings
from chartshare.core.exceptions import (
    AuthenticationException,
    RateLimitException,
    ValidationException,
)
from chartshare.core.logging import get_logger
from chartshare.db.session import get_db_session
from chartshare.services.access_requests import AccessRequestService
from chartshare.services.authorization import RoleResolver
from chartshare.services.global_roles import GlobalRoleStore
from chartshare.services.rate_limit import RateLimiter, RateLimitResult, get_client_ip
from chartshare.services.share_links import ShareLinkService
from chartshare.services.sharing import PermissionMutator

logger = get_logger(__name__)


class Principal(BaseModel):
    """Authenticated caller, as asserted by the fronting identity platform"""

    user_id: str
    email: Optional[str] = None
    identity_provider: Optional[str] = None
    roles: List[str] = Field(default_factory=list)
    is_local_dev: bool = False


def parse_client_principal(header: Optional[str]) -> Optional[Principal]:
    """
    Decode an x-ms-client-principal header

    The header is base64 JSON carrying userId, userDetails, identityProvider
    and userRoles. Anything malformed yields None.
    """
    if not header:
        return None

    try:
        payload = json.loads(base64.b64decode(header).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return None

    if not isinstance(payload, dict):
        return None
    user_id = payload.get("userId")
    roles = payload.get("userRoles")
    if not user_id or not isinstance(roles, list):
        return None

    return Principal(
        user_id=str(user_id),
        email=payload.get("userDetails"),
        identity_provider=payload.get("identityProvider"),
        roles=[str(role) for role in roles],
    )


async def get_optional_principal(
    x_ms_client_principal: Optional[str] = Header(None),
    x_ms_client_principal_id: Optional[str] = Header(None),
    x_ms_client_principal_name: Optional[str] = Header(None),
) -> Optional[Principal]:
    """Caller identity, or None for anonymous requests"""
    if settings.ALLOW_ANONYMOUS:
        return Principal(
            user_id=settings.DEV_USER_ID,
            email=settings.DEV_USER_EMAIL,
            is_local_dev=True,
        )

    principal = parse_client_principal(x_ms_client_principal)
    if principal:
        return principal

    # The platform also forwards the id and name as plain headers
    if x_ms_client_principal_id:
        return Principal(user_id=x_ms_client_principal_id, email=x_ms_client_principal_name)

    return None


async def get_current_principal(
    principal: Optional[Principal] = Depends(get_optional_principal),
) -> Principal:
    """
    Dependency to get the authenticated caller

    Raises:
        AuthenticationException: If the request carries no valid identity
    """
    if principal is None:
        raise AuthenticationException()
    return principal


def validate_uuid(value: str, field: str) -> str:
    """
    Check an identifier is a UUID

    Raises:
        ValidationException: If value is not a UUID
    """
    try:
        uuid.UUID(value)
    except (ValueError, TypeError):
        raise ValidationException(
            message=f"Invalid {field} format",
            details={field: value, "expected_format": "UUID"},
        )
    return value


# Service wiring; every service shares the request's session

def get_global_role_store(db: AsyncSession = Depends(get_db_session)) -> GlobalRoleStore:
    return GlobalRoleStore(db)


def get_role_resolver(
    db: AsyncSession = Depends(get_db_session),
    global_roles: GlobalRoleStore = Depends(get_global_role_store),
) -> RoleResolver:
    return RoleResolver(db, global_roles=global_roles)


def get_permission_mutator(db: AsyncSession = Depends(get_db_session)) -> PermissionMutator:
    return PermissionMutator(db)


def get_access_request_service(
    db: AsyncSession = Depends(get_db_session),
    mutator: PermissionMutator = Depends(get_permission_mutator),
    global_roles: GlobalRoleStore = Depends(get_global_role_store),
) -> AccessRequestService:
    return AccessRequestService(db, mutator=mutator, global_roles=global_roles)


def get_share_link_service(db: AsyncSession = Depends(get_db_session)) -> ShareLinkService:
    return ShareLinkService(db)


def get_rate_limiter(db: AsyncSession = Depends(get_db_session)) -> RateLimiter:
    return RateLimiter(db)


async def _enforce(limiter: RateLimiter, identity: str, action: str, is_anonymous: bool) -> RateLimitResult:
    result = await limiter.check(identity, action, is_anonymous=is_anonymous)
    if not result.allowed:
        raise RateLimitException(
            message=result.message or "Rate limit exceeded",
            retry_after=result.retry_after_seconds,
        )
    return result


def rate_limited(action: str):
    """
    Dependency factory: authenticate, then count the call against action

    Raises:
        AuthenticationException: If the caller is anonymous
        RateLimitException: If the caller is over the action's limit
    """

    async def dependency(
        principal: Principal = Depends(get_current_principal),
        limiter: RateLimiter = Depends(get_rate_limiter),
    ) -> RateLimitResult:
        return await _enforce(limiter, principal.user_id, action, is_anonymous=False)

    return dependency


def anonymous_rate_limited(action: str):
    """Dependency factory for routes open to anonymous callers, keyed by IP"""

    async def dependency(
        request: Request,
        principal: Optional[Principal] = Depends(get_optional_principal),
        limiter: RateLimiter = Depends(get_rate_limiter),
    ) -> RateLimitResult:
        if principal is not None:
            return await _enforce(limiter, principal.user_id, action, is_anonymous=False)
        return await _enforce(limiter, get_client_ip(request.headers), action, is_anonymous=True)

    return dependency
