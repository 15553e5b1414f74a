"""
Global Role Store
Application-wide roles from the bootstrap allow-list or persisted assignments
"""

from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from chartshare.core.config import settings
from chartshare.core.exceptions import FailurePolicy, StoreUnavailableException
from chartshare.core.logging import get_logger
from chartshare.core.permissions import (
    GLOBAL_ROLE_HIERARCHY,
    GlobalRole,
    parse_global_role,
)
from chartshare.db.base import utcnow
from chartshare.db.models import GlobalRoleAssignment
from chartshare.monitoring import store_faults_total
from chartshare.services.global_roles.models import GlobalRoleRecord, RoleChangeResult

logger = get_logger(__name__)


class GlobalRoleStore:
    """
    Resolves and manages a caller's application-wide role

    Identities in ADMIN_USER_IDS always resolve to ADMIN, ahead of any
    persisted assignment for the same identity.
    """

    FAILURE_POLICY = FailurePolicy.FAIL_CLOSED

    def __init__(self, db: AsyncSession, admin_ids: Optional[List[str]] = None):
        self.db = db
        self._admin_ids = admin_ids

    def bootstrap_admin_ids(self) -> List[str]:
        if self._admin_ids is not None:
            return list(self._admin_ids)
        return settings.admin_user_ids

    async def get_role(self, user_id: Optional[str]) -> Optional[GlobalRole]:
        """
        Resolve a user's global role

        Returns:
            GlobalRole, or None when the user has no assignment

        Raises:
            StoreUnavailableException: If the assignment cannot be read
        """
        if not user_id:
            return None

        if user_id in self.bootstrap_admin_ids():
            return GlobalRole.ADMIN

        try:
            result = await self.db.execute(
                select(GlobalRoleAssignment.role).where(GlobalRoleAssignment.user_id == user_id)
            )
            stored = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching global role for {user_id}: {e}")
            raise StoreUnavailableException(
                message="Failed to read global role",
                operation="get_role",
            )

        return parse_global_role(stored) if stored else None

    async def has_role(self, user_id: Optional[str], required: GlobalRole) -> bool:
        """True if the user's global role ranks at or above required; faults deny"""
        try:
            role = await self.get_role(user_id)
        except StoreUnavailableException:
            store_faults_total.labels(component="global_roles", policy=self.FAILURE_POLICY.value).inc()
            return False

        if role is None:
            return False
        return GLOBAL_ROLE_HIERARCHY[role] >= GLOBAL_ROLE_HIERARCHY[required]

    async def is_admin(self, user_id: Optional[str]) -> bool:
        return await self.has_role(user_id, GlobalRole.ADMIN)

    async def set_role(self, target_user_id: str, role: str, granted_by: str) -> RoleChangeResult:
        """Assign (or replace) a user's global role"""
        parsed = parse_global_role(role)
        if parsed is None:
            valid = ", ".join(r.value for r in GlobalRole)
            return RoleChangeResult(success=False, message=f"Invalid role. Must be one of: {valid}")

        try:
            existing = await self.db.get(GlobalRoleAssignment, target_user_id, populate_existing=True)
            if existing:
                existing.role = parsed.value
                existing.granted_by = granted_by
                existing.granted_at = utcnow()
            else:
                self.db.add(
                    GlobalRoleAssignment(
                        user_id=target_user_id,
                        role=parsed.value,
                        granted_by=granted_by,
                        granted_at=utcnow(),
                    )
                )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Error setting global role for {target_user_id}: {e}")
            store_faults_total.labels(component="global_roles", policy=self.FAILURE_POLICY.value).inc()
            return RoleChangeResult(success=False, message="Failed to set user role")

        logger.info(f"Global role {parsed.value} granted to {target_user_id} by {granted_by}")
        return RoleChangeResult(success=True, message=f"User {target_user_id} granted {parsed.value} role")

    async def remove_role(self, target_user_id: str) -> RoleChangeResult:
        """Delete a user's persisted global role"""
        try:
            result = await self.db.execute(
                delete(GlobalRoleAssignment).where(GlobalRoleAssignment.user_id == target_user_id)
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Error removing global role for {target_user_id}: {e}")
            store_faults_total.labels(component="global_roles", policy=self.FAILURE_POLICY.value).inc()
            return RoleChangeResult(success=False, message="Failed to remove user role")

        if result.rowcount and result.rowcount > 0:
            logger.info(f"Global role removed from {target_user_id}")
            return RoleChangeResult(success=True, message=f"Removed global role from {target_user_id}")

        return RoleChangeResult(success=False, message=f"No global role found for {target_user_id}")

    async def list_roles(self) -> List[GlobalRoleRecord]:
        """
        List persisted assignments, newest first

        Raises:
            StoreUnavailableException: If the assignments cannot be read
        """
        try:
            result = await self.db.execute(
                select(GlobalRoleAssignment).order_by(GlobalRoleAssignment.granted_at.desc())
            )
            rows = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error(f"Error listing global roles: {e}")
            raise StoreUnavailableException(
                message="Failed to list global roles",
                operation="list_roles",
            )

        return [
            GlobalRoleRecord(
                user_id=row.user_id,
                role=row.role,
                granted_by=row.granted_by,
                granted_at=row.granted_at,
            )
            for row in rows
        ]
