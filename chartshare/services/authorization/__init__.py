"""
Role Resolver
Ordered access resolution for charts
"""

from chartshare.services.authorization.base import ResolutionContext, ResolutionStep
from chartshare.services.authorization.models import (
    REASON_AUTH_REQUIRED,
    REASON_CHECK_FAILED,
    REASON_NO_PERMISSIONS,
    REASON_NOT_FOUND,
    AccessDecision,
    AccessSource,
)
from chartshare.services.authorization.service import RoleResolver
from chartshare.services.authorization.steps import (
    AuthenticatedCallerStep,
    AuthenticatedViewerStep,
    ChartExistsStep,
    ChartPermissionStep,
    GlobalRoleStep,
    OwnerStep,
)

__all__ = [
    "RoleResolver",
    "ResolutionContext",
    "ResolutionStep",
    "AccessDecision",
    "AccessSource",
    "ChartExistsStep",
    "AuthenticatedCallerStep",
    "OwnerStep",
    "ChartPermissionStep",
    "GlobalRoleStep",
    "AuthenticatedViewerStep",
    "REASON_NOT_FOUND",
    "REASON_AUTH_REQUIRED",
    "REASON_NO_PERMISSIONS",
    "REASON_CHECK_FAILED",
]
