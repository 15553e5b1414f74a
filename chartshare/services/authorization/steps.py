"""
Resolution Steps
The rungs of access resolution, in priority order
"""

from typing import Optional

from chartshare.core.permissions import (
    GLOBAL_TO_CHART_ROLE,
    ChartRole,
    parse_chart_role,
    role_rank,
)
from chartshare.services.authorization.base import ResolutionContext, ResolutionStep
from chartshare.services.authorization.models import (
    REASON_AUTH_REQUIRED,
    REASON_NO_PERMISSIONS,
    REASON_NOT_FOUND,
    AccessDecision,
    AccessSource,
)
from chartshare.services.global_roles import GlobalRoleStore


class ChartExistsStep(ResolutionStep):
    name = "chart-exists"

    async def evaluate(self, ctx: ResolutionContext) -> Optional[AccessDecision]:
        if ctx.chart is None:
            return AccessDecision.deny(REASON_NOT_FOUND)
        return None


class AuthenticatedCallerStep(ResolutionStep):
    """Anonymous callers only reach charts through share links"""

    name = "authenticated-caller"

    async def evaluate(self, ctx: ResolutionContext) -> Optional[AccessDecision]:
        if not ctx.caller_id:
            return AccessDecision.deny(REASON_AUTH_REQUIRED)
        return None


class OwnerStep(ResolutionStep):
    name = "owner"

    async def evaluate(self, ctx: ResolutionContext) -> Optional[AccessDecision]:
        if ctx.chart.owner_id == ctx.caller_id:
            decision = AccessDecision.allow(ChartRole.OWNER, AccessSource.OWNER)
            self._log_decision(ctx, decision)
            return decision
        return None


class ChartPermissionStep(ResolutionStep):
    """An explicit entry is authoritative, even when a global role is stronger"""

    name = "chart-permission"

    async def evaluate(self, ctx: ResolutionContext) -> Optional[AccessDecision]:
        entry = ctx.chart.permission_for(ctx.caller_id)
        if entry is None:
            return None

        entry_role = parse_chart_role(entry.role)
        if role_rank(entry_role) >= role_rank(ctx.required_role):
            decision = AccessDecision.allow(entry_role, AccessSource.CHART_PERMISSION)
        else:
            decision = AccessDecision.deny(
                f"Access denied: Requires {ctx.required_role.value} role, but user has {entry.role}",
                role=entry_role,
                source=AccessSource.CHART_PERMISSION,
            )
        self._log_decision(ctx, decision)
        return decision


class GlobalRoleStep(ResolutionStep):
    """Falls back to the caller's global role, mapped onto chart roles"""

    name = "global-role"

    def __init__(self, global_roles: GlobalRoleStore):
        self.global_roles = global_roles

    async def evaluate(self, ctx: ResolutionContext) -> Optional[AccessDecision]:
        global_role = await self.global_roles.get_role(ctx.caller_id)
        if global_role is None:
            return None

        mapped = GLOBAL_TO_CHART_ROLE.get(global_role)
        if mapped and role_rank(mapped) >= role_rank(ctx.required_role):
            decision = AccessDecision.allow(mapped, AccessSource.GLOBAL_ROLE)
            self._log_decision(ctx, decision)
            return decision
        return None


class AuthenticatedViewerStep(ResolutionStep):
    """Every authenticated caller can read every chart; always decides"""

    name = "authenticated-viewer"

    async def evaluate(self, ctx: ResolutionContext) -> Optional[AccessDecision]:
        if ctx.required_role == ChartRole.VIEWER:
            decision = AccessDecision.allow(ChartRole.VIEWER, AccessSource.AUTHENTICATED_USER)
        else:
            decision = AccessDecision.deny(REASON_NO_PERMISSIONS)
        self._log_decision(ctx, decision)
        return decision
