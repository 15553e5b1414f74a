"""
Permission Mutator
Grants, updates and revokes per-chart role entries
"""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from chartshare.core.exceptions import FailurePolicy, StoreUnavailableException
from chartshare.core.logging import get_logger
from chartshare.core.permissions import GRANTABLE_ROLES, parse_chart_role
from chartshare.db.base import utcnow
from chartshare.db.models import Chart, ChartPermission
from chartshare.monitoring import store_faults_total
from chartshare.services.sharing.models import (
    MSG_NOT_FOUND_OR_NOT_PERMITTED,
    MSG_REVOKE_NOT_FOUND_OR_NOT_PERMITTED,
    MutationResult,
    PermissionEntryRecord,
)

logger = get_logger(__name__)


class PermissionMutator:
    """
    Changes per-chart role entries on behalf of a chart owner

    Ownership is verified with a single query on (id, owner_id), so a missing
    chart and a chart owned by someone else produce the same outcome.
    Concurrent changes to the same target are last-writer-wins.
    """

    FAILURE_POLICY = FailurePolicy.FAIL_CLOSED

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _owned_chart(self, chart_id: str, owner_id: str) -> Optional[Chart]:
        result = await self.db.execute(
            select(Chart)
            .where(Chart.id == chart_id, Chart.owner_id == owner_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _any_chart(self, chart_id: str) -> Optional[Chart]:
        result = await self.db.execute(
            select(Chart)
            .where(Chart.id == chart_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def grant(
        self,
        chart_id: str,
        acting_owner_id: str,
        target_id: str,
        role,
        bypass_ownership_check: bool = False,
        granted_by: Optional[str] = None,
    ) -> MutationResult:
        """
        Grant target_id a viewer or editor role on chart_id

        An existing entry for target_id is updated in place, so repeated
        grants converge on a single entry.

        Args:
            chart_id: Chart to share
            acting_owner_id: Identity the grant is made as (must own the chart)
            target_id: User receiving the role
            role: "viewer" or "editor"
            bypass_ownership_check: Skip the owner match (admin approvals only)
            granted_by: Recorded on new entries; defaults to acting_owner_id
        """
        parsed = parse_chart_role(role)
        if parsed not in GRANTABLE_ROLES:
            return MutationResult(success=False, message='Invalid role. Must be "viewer" or "editor"')

        if target_id == acting_owner_id:
            return MutationResult(success=False, message="Cannot share chart with yourself")

        try:
            if bypass_ownership_check:
                chart = await self._any_chart(chart_id)
            else:
                chart = await self._owned_chart(chart_id, acting_owner_id)

            if chart is None:
                return MutationResult(
                    success=False,
                    message="Chart not found" if bypass_ownership_check else MSG_NOT_FOUND_OR_NOT_PERMITTED,
                )

            now = utcnow()
            entry = chart.permission_for(target_id)
            if entry is not None:
                entry.role = parsed.value
                entry.updated_at = now
                message = f"Updated {target_id}'s role to {parsed.value}"
            else:
                chart.permissions.append(
                    ChartPermission(
                        user_id=target_id,
                        role=parsed.value,
                        granted_at=now,
                        granted_by=granted_by or acting_owner_id,
                    )
                )
                message = f"Granted {parsed.value} access to {target_id}"

            chart.updated_at = now
            await self.db.commit()

        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Share chart error for {chart_id}: {e}")
            store_faults_total.labels(component="permission_mutator", policy=self.FAILURE_POLICY.value).inc()
            return MutationResult(success=False, message="Failed to share chart")

        logger.info(f"{message} on chart {chart_id}")
        return MutationResult(success=True, message=message)

    async def revoke(self, chart_id: str, acting_owner_id: str, target_id: str) -> MutationResult:
        """Remove target_id's entry; no entry is a normal failure, not an error"""
        try:
            chart = await self._owned_chart(chart_id, acting_owner_id)
            if chart is None:
                return MutationResult(success=False, message=MSG_REVOKE_NOT_FOUND_OR_NOT_PERMITTED)

            entry = chart.permission_for(target_id)
            if entry is None:
                return MutationResult(success=False, message=f"No permissions found for {target_id}")

            chart.permissions.remove(entry)
            chart.updated_at = utcnow()
            await self.db.commit()

        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Revoke access error for {chart_id}: {e}")
            store_faults_total.labels(component="permission_mutator", policy=self.FAILURE_POLICY.value).inc()
            return MutationResult(success=False, message="Failed to revoke access")

        logger.info(f"Revoked access for {target_id} on chart {chart_id}")
        return MutationResult(success=True, message=f"Revoked access for {target_id}")

    async def list_entries(self, chart_id: str, acting_owner_id: str) -> Optional[List[PermissionEntryRecord]]:
        """
        Entries of an owned chart; None when not found or not the owner

        Raises:
            StoreUnavailableException: If the chart cannot be read
        """
        try:
            chart = await self._owned_chart(chart_id, acting_owner_id)
        except SQLAlchemyError as e:
            logger.error(f"List permissions error for {chart_id}: {e}")
            store_faults_total.labels(component="permission_mutator", policy=self.FAILURE_POLICY.value).inc()
            raise StoreUnavailableException(message="Failed to list permissions", operation="list_entries")

        if chart is None:
            return None

        return [
            PermissionEntryRecord(
                user_id=entry.user_id,
                role=entry.role,
                granted_at=entry.granted_at,
                granted_by=entry.granted_by,
                updated_at=entry.updated_at,
            )
            for entry in sorted(chart.permissions, key=lambda e: e.granted_at)
        ]
