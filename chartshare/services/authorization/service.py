"""
Role Resolver
Decides whether a caller may act on a chart, and which role applied
"""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from chartshare.core.exceptions import FailurePolicy
from chartshare.core.logging import get_logger
from chartshare.core.permissions import ACTION_ROLE_MAP, ChartRole, parse_chart_role
from chartshare.db.models import Chart
from chartshare.monitoring import authorization_decisions_total, store_faults_total
from chartshare.services.authorization.base import ResolutionContext, ResolutionStep
from chartshare.services.authorization.models import REASON_CHECK_FAILED, AccessDecision
from chartshare.services.authorization.steps import (
    AuthenticatedCallerStep,
    AuthenticatedViewerStep,
    ChartExistsStep,
    ChartPermissionStep,
    GlobalRoleStep,
    OwnerStep,
)
from chartshare.services.global_roles import GlobalRoleStore

logger = get_logger(__name__)


class RoleResolver:
    """
    Resolves access through an ordered chain of steps

    Order: chart exists, caller authenticated, owner, per-chart entry,
    global role, default authenticated viewer. The first step to return a
    decision wins. Every call reads the store afresh; nothing is cached.
    """

    FAILURE_POLICY = FailurePolicy.FAIL_CLOSED

    def __init__(
        self,
        db: AsyncSession,
        global_roles: Optional[GlobalRoleStore] = None,
        steps: Optional[List[ResolutionStep]] = None,
    ):
        self.db = db
        self.global_roles = global_roles or GlobalRoleStore(db)
        self.steps = steps or self.default_steps(self.global_roles)

    @staticmethod
    def default_steps(global_roles: GlobalRoleStore) -> List[ResolutionStep]:
        return [
            ChartExistsStep(),
            AuthenticatedCallerStep(),
            OwnerStep(),
            ChartPermissionStep(),
            GlobalRoleStep(global_roles),
            AuthenticatedViewerStep(),
        ]

    async def _load_chart(self, chart_id: str) -> Optional[Chart]:
        result = await self.db.execute(
            select(Chart)
            .where(Chart.id == chart_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def resolve_access(
        self,
        chart_id: str,
        caller_id: Optional[str],
        required_role,
    ) -> AccessDecision:
        """
        Resolve whether caller_id holds at least required_role on chart_id

        Never raises: store faults become a denial.
        """
        try:
            required = parse_chart_role(required_role)
            if required is None:
                return AccessDecision.deny(f"Unknown role: {required_role}")

            chart = await self._load_chart(chart_id)
            ctx = ResolutionContext(
                chart_id=chart_id,
                chart=chart,
                caller_id=caller_id,
                required_role=required,
            )

            for step in self.steps:
                decision = await step.evaluate(ctx)
                if decision is not None:
                    self._record(decision)
                    return decision

            # The last default step always decides; reaching here is a wiring error
            return AccessDecision.deny(REASON_CHECK_FAILED)

        except Exception as e:
            logger.error(f"Authorization check error for chart {chart_id}: {e}")
            store_faults_total.labels(component="role_resolver", policy=self.FAILURE_POLICY.value).inc()
            authorization_decisions_total.labels(source="fault", outcome="deny").inc()
            return AccessDecision.deny(REASON_CHECK_FAILED)

    async def resolve_permitted_action(
        self,
        chart_id: str,
        caller_id: Optional[str],
        action: str,
    ) -> AccessDecision:
        """Map a symbolic action (read, export, edit, delete, share) to a role and resolve"""
        required = ACTION_ROLE_MAP.get(action)
        if required is None:
            return AccessDecision.deny(f"Unknown action: {action}")
        return await self.resolve_access(chart_id, caller_id, required)

    @staticmethod
    def _record(decision: AccessDecision) -> None:
        source = decision.source.value if decision.source else "none"
        outcome = "allow" if decision.allowed else "deny"
        authorization_decisions_total.labels(source=source, outcome=outcome).inc()
