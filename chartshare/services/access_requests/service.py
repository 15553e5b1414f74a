"""
Access Request Service
Submit, review and list requests for access to a chart

States: pending -> approved | denied. Both outcomes are terminal and records
are never deleted. Approval grants the permission first and flips the status
only when the grant succeeded, so a crash in between leaves the request
pending and re-approvable (grants are idempotent).
"""

from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from chartshare.core.config import settings
from chartshare.core.exceptions import FailurePolicy, StoreUnavailableException
from chartshare.core.logging import get_logger
from chartshare.core.permissions import ChartRole, GRANTABLE_ROLES, parse_chart_role
from chartshare.db.base import new_id, utcnow
from chartshare.db.models import AccessRequest, Chart
from chartshare.monitoring import access_request_reviews_total, store_faults_total
from chartshare.services.access_requests.models import (
    AccessRequestPage,
    AccessRequestRecord,
    AccessRequestStatus,
    AccessRequestView,
    OutcomeKind,
    ReviewAction,
    ReviewOutcome,
    SubmitOutcome,
)
from chartshare.services.global_roles import GlobalRoleStore
from chartshare.services.sharing import PermissionMutator

logger = get_logger(__name__)

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100


class AccessRequestService:
    """Mediates the request -> review workflow for chart access"""

    FAILURE_POLICY = FailurePolicy.FAIL_CLOSED

    def __init__(
        self,
        db: AsyncSession,
        mutator: Optional[PermissionMutator] = None,
        global_roles: Optional[GlobalRoleStore] = None,
    ):
        self.db = db
        self.mutator = mutator or PermissionMutator(db)
        self.global_roles = global_roles or GlobalRoleStore(db)

    async def _pending_for(self, chart_id: str, requester_id: str) -> Optional[AccessRequest]:
        result = await self.db.execute(
            select(AccessRequest)
            .where(
                AccessRequest.chart_id == chart_id,
                AccessRequest.requester_id == requester_id,
                AccessRequest.status == AccessRequestStatus.PENDING.value,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @staticmethod
    def _refresh(request: AccessRequest, role: str, reason: str) -> None:
        request.requested_role = role
        request.reason = reason
        request.requested_at = utcnow()
        request.reviewed_by = None
        request.reviewed_at = None
        request.review_notes = None
        request.status = AccessRequestStatus.PENDING.value

    async def submit(
        self,
        chart_id: str,
        requester_id: str,
        requester_email: Optional[str] = None,
        requested_role=ChartRole.EDITOR,
        reason: Optional[str] = None,
    ) -> SubmitOutcome:
        """
        Ask the chart owner for a viewer or editor role

        A second request while one is pending refreshes the pending record
        (role, reason, timestamp) instead of creating another.
        """
        role = parse_chart_role(requested_role)
        if role not in GRANTABLE_ROLES:
            return SubmitOutcome(kind=OutcomeKind.INVALID, message="Invalid role. Must be one of: viewer, editor")

        reason = (reason or "").strip()
        if len(reason) > settings.MAX_REASON_LENGTH:
            return SubmitOutcome(
                kind=OutcomeKind.INVALID,
                message=f"Reason must be {settings.MAX_REASON_LENGTH} characters or less",
            )

        try:
            result = await self.db.execute(
                select(Chart).where(Chart.id == chart_id).execution_options(populate_existing=True)
            )
            chart = result.scalar_one_or_none()
            if chart is None:
                return SubmitOutcome(kind=OutcomeKind.NOT_FOUND, message="Chart not found")

            if chart.owner_id == requester_id:
                return SubmitOutcome(
                    kind=OutcomeKind.CONFLICT,
                    message="You are already the owner of this chart",
                    current_role=ChartRole.OWNER.value,
                )

            entry = chart.permission_for(requester_id)
            if entry is not None:
                return SubmitOutcome(
                    kind=OutcomeKind.CONFLICT,
                    message=f"You already have {entry.role} access to this chart",
                    current_role=entry.role,
                )

            existing = await self._pending_for(chart_id, requester_id)
            if existing is not None:
                self._refresh(existing, role.value, reason)
                request_id, is_update = existing.id, True
            else:
                request = AccessRequest(
                    id=new_id(),
                    chart_id=chart_id,
                    chart_name=chart.name,
                    chart_owner_id=chart.owner_id,
                    requester_id=requester_id,
                    requester_email=requester_email,
                    requested_role=role.value,
                    reason=reason,
                    status=AccessRequestStatus.PENDING.value,
                    requested_at=utcnow(),
                )
                self.db.add(request)
                request_id, is_update = request.id, False

            try:
                await self.db.commit()
            except IntegrityError:
                # A concurrent submit inserted the pending record first
                await self.db.rollback()
                existing = await self._pending_for(chart_id, requester_id)
                if existing is None:
                    raise
                self._refresh(existing, role.value, reason)
                await self.db.commit()
                request_id, is_update = existing.id, True

        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Access request submit failed for chart {chart_id}: {e}")
            store_faults_total.labels(component="access_requests", policy=self.FAILURE_POLICY.value).inc()
            return SubmitOutcome(kind=OutcomeKind.FAILED, message="Failed to create access request")

        logger.info(
            f"Access request {'updated' if is_update else 'created'}: {request_id} "
            f"chart={chart_id} requester={requester_id} role={role.value}"
        )
        return SubmitOutcome(
            kind=OutcomeKind.OK,
            message="Access request updated successfully" if is_update else "Access request submitted successfully",
            request_id=request_id,
            status=AccessRequestStatus.PENDING,
            is_update=is_update,
        )

    async def review(
        self,
        request_id: str,
        reviewer_id: str,
        action,
        notes: Optional[str] = None,
        granted_role=None,
    ) -> ReviewOutcome:
        """
        Approve or deny a pending request (chart owner or global admin only)

        Args:
            request_id: Request to review
            reviewer_id: Identity of the reviewer
            action: "approve" or "deny"
            notes: Optional review notes
            granted_role: Optional override of the requested role on approval
        """
        try:
            parsed_action = ReviewAction(action)
        except ValueError:
            return ReviewOutcome(
                kind=OutcomeKind.INVALID,
                message='Invalid action. Must be "approve" or "deny"',
                request_id=request_id,
            )

        notes = (notes or "").strip()
        if len(notes) > settings.MAX_REASON_LENGTH:
            return ReviewOutcome(
                kind=OutcomeKind.INVALID,
                message=f"Review notes must be {settings.MAX_REASON_LENGTH} characters or less",
                request_id=request_id,
            )

        override = None
        if granted_role:
            override = parse_chart_role(granted_role)
            if override not in GRANTABLE_ROLES:
                return ReviewOutcome(
                    kind=OutcomeKind.INVALID,
                    message='Invalid granted role. Must be "viewer" or "editor"',
                    request_id=request_id,
                )

        try:
            outcome = await self._review(request_id, reviewer_id, parsed_action, notes, override)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Access request review failed for {request_id}: {e}")
            store_faults_total.labels(component="access_requests", policy=self.FAILURE_POLICY.value).inc()
            outcome = ReviewOutcome(
                kind=OutcomeKind.FAILED,
                message="Failed to review access request",
                request_id=request_id,
                action=parsed_action,
            )

        access_request_reviews_total.labels(action=parsed_action.value, outcome=outcome.kind.value).inc()
        return outcome

    async def _review(
        self,
        request_id: str,
        reviewer_id: str,
        action: ReviewAction,
        notes: str,
        override: Optional[ChartRole],
    ) -> ReviewOutcome:
        is_admin = await self.global_roles.is_admin(reviewer_id)

        request = await self.db.get(AccessRequest, request_id, populate_existing=True)
        if request is None:
            return ReviewOutcome(kind=OutcomeKind.NOT_FOUND, message="Access request not found", request_id=request_id)

        current = AccessRequestStatus(request.status)
        if current.is_terminal:
            return ReviewOutcome(
                kind=OutcomeKind.CONFLICT,
                message=f"Request has already been {current.value}",
                request_id=request_id,
                action=action,
                status=current,
                reviewed_by=request.reviewed_by,
                reviewed_at=request.reviewed_at,
            )

        is_chart_owner = request.chart_owner_id == reviewer_id
        if not is_chart_owner and not is_admin:
            logger.warning(f"Unauthorized review attempt on {request_id} by {reviewer_id}")
            return ReviewOutcome(
                kind=OutcomeKind.DENIED,
                message="Access denied: You must be the chart owner or admin to review this request",
                request_id=request_id,
                action=action,
                status=current,
            )

        role_to_grant = None
        if action == ReviewAction.APPROVE:
            role_to_grant = (override or parse_chart_role(request.requested_role) or ChartRole.VIEWER).value
            grant = await self.mutator.grant(
                request.chart_id,
                request.chart_owner_id,
                request.requester_id,
                role_to_grant,
                bypass_ownership_check=is_admin and not is_chart_owner,
                granted_by=reviewer_id,
            )
            if not grant.success:
                logger.error(
                    f"Failed to grant permission during approval of {request_id}: {grant.message}"
                )
                return ReviewOutcome(
                    kind=OutcomeKind.FAILED,
                    message="Failed to grant chart permission. Request remains pending.",
                    request_id=request_id,
                    action=action,
                    status=AccessRequestStatus.PENDING,
                    details=grant.message,
                )
            # The grant committed; reload before flipping the status
            request = await self.db.get(AccessRequest, request_id, populate_existing=True)

        new_status = AccessRequestStatus.APPROVED if action == ReviewAction.APPROVE else AccessRequestStatus.DENIED
        reviewed_at = utcnow()
        request.status = new_status.value
        request.reviewed_by = reviewer_id
        request.reviewed_at = reviewed_at
        request.review_notes = notes
        await self.db.commit()

        logger.info(
            f"Access request {request_id} {new_status.value} by {reviewer_id} "
            f"(requester={request.requester_id}, granted_role={role_to_grant})"
        )
        return ReviewOutcome(
            kind=OutcomeKind.OK,
            message=(
                f"Access granted: {request.requester_id} now has {role_to_grant} access"
                if action == ReviewAction.APPROVE
                else "Access request denied"
            ),
            request_id=request_id,
            action=action,
            status=new_status,
            granted_role=role_to_grant,
            reviewed_by=reviewer_id,
            reviewed_at=reviewed_at,
        )

    async def get(self, request_id: str) -> Optional[AccessRequestRecord]:
        try:
            request = await self.db.get(AccessRequest, request_id, populate_existing=True)
        except SQLAlchemyError as e:
            logger.error(f"Error fetching access request {request_id}: {e}")
            store_faults_total.labels(component="access_requests", policy=self.FAILURE_POLICY.value).inc()
            raise StoreUnavailableException(message="Failed to read access request", operation="get")
        return AccessRequestRecord.model_validate(request) if request else None

    async def list_for(
        self,
        user_id: str,
        status: Optional[str] = None,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> AccessRequestPage:
        """
        List requests visible to user_id, newest first

        Admins see every request; everyone else sees requests for charts they
        own and requests they made.

        Raises:
            ValueError: If status is not a known request status
            StoreUnavailableException: If the requests cannot be read
        """
        status_filter = AccessRequestStatus(status) if status else None
        limit = max(1, min(limit or DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE))
        offset = max(offset or 0, 0)

        is_admin = await self.global_roles.is_admin(user_id)

        conditions = []
        if not is_admin:
            conditions.append(
                or_(AccessRequest.chart_owner_id == user_id, AccessRequest.requester_id == user_id)
            )
        if status_filter:
            conditions.append(AccessRequest.status == status_filter.value)

        count_query = select(func.count(AccessRequest.id))
        page_query = select(AccessRequest)
        if conditions:
            count_query = count_query.where(*conditions)
            page_query = page_query.where(*conditions)

        try:
            total = (await self.db.execute(count_query)).scalar() or 0
            result = await self.db.execute(
                page_query
                .order_by(AccessRequest.requested_at.desc())
                .offset(offset)
                .limit(limit)
            )
            requests = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error(f"Error listing access requests for {user_id}: {e}")
            store_faults_total.labels(component="access_requests", policy=self.FAILURE_POLICY.value).inc()
            raise StoreUnavailableException(message="Failed to list access requests", operation="list_for")

        views = []
        for request in requests:
            view = AccessRequestView.model_validate(request)
            view.is_owner = request.chart_owner_id == user_id
            view.is_requester = request.requester_id == user_id
            view.can_review = is_admin or view.is_owner
            views.append(view)

        return AccessRequestPage(requests=views, total=total, limit=limit, offset=offset, is_admin=is_admin)
