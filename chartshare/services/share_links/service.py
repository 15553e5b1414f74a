"""
Share Link Lifecycle
Issues, resolves and revokes anonymous read-only tokens for charts

Anonymous access through a link bypasses per-user roles; the chart returned
by a resolution never carries its owner or permission entries.
"""

import uuid
from datetime import datetime, timedelta
from typing import Mapping, Optional

from sqlalchemy import or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from chartshare.core.config import settings
from chartshare.core.exceptions import FailurePolicy, StoreUnavailableException
from chartshare.core.logging import get_logger, mask_token
from chartshare.db.base import new_id, utcnow
from chartshare.db.models import Chart, ShareLink
from chartshare.monitoring import share_link_resolutions_total, store_faults_total
from chartshare.services.share_links.models import (
    CreateLinkOutcome,
    ResolutionFailure,
    RevokeLinksOutcome,
    ShareLinkRecord,
    ShareLinkResolution,
    ShareLinkView,
)

logger = get_logger(__name__)


def build_share_url(token: str, headers: Mapping[str, str]) -> str:
    """
    Public URL for a token

    FRONTEND_URL wins; otherwise the base is derived from the forwarded host
    and protocol, using http for localhost and https elsewhere.
    """
    base_url = settings.FRONTEND_URL
    if not base_url:
        host = headers.get("x-forwarded-host") or headers.get("host") or "localhost"
        default_proto = "http" if host.startswith("localhost") or host.startswith("127.0.0.1") else "https"
        proto = headers.get("x-forwarded-proto") or default_proto
        base_url = f"{proto}://{host}"
    return f"{base_url.rstrip('/')}/shared.html?token={token}"


def _active_clause(now: datetime):
    return (
        ShareLink.revoked_at.is_(None),
        or_(ShareLink.expires_at.is_(None), ShareLink.expires_at > now),
    )


class ShareLinkService:
    """Lifecycle of share links; faults deny (resolution) or report failure"""

    FAILURE_POLICY = FailurePolicy.FAIL_CLOSED

    def __init__(self, db: AsyncSession):
        self.db = db

    async def lookup_active(self, chart_id: str, now: Optional[datetime] = None) -> Optional[ShareLinkRecord]:
        """
        The active link of a chart, if any

        Raises:
            StoreUnavailableException: If the links cannot be read
        """
        now = now or utcnow()
        try:
            link = await self._active_link(chart_id, now)
        except SQLAlchemyError as e:
            logger.error(f"Share link lookup failed for chart {chart_id}: {e}")
            raise StoreUnavailableException(
                message="Failed to look up share link",
                operation="lookup_active",
            )
        return ShareLinkRecord.model_validate(link) if link else None

    async def _active_link(self, chart_id: str, now: datetime) -> Optional[ShareLink]:
        result = await self.db.execute(
            select(ShareLink)
            .where(ShareLink.chart_id == chart_id, *_active_clause(now))
            .order_by(ShareLink.created_at.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def create_or_get(
        self,
        chart_id: str,
        created_by: str,
        regenerate: bool = False,
        expires_in: Optional[timedelta] = None,
        now: Optional[datetime] = None,
    ) -> CreateLinkOutcome:
        """
        Return the chart's active link, minting one if none exists

        With regenerate, the active link is revoked and a fresh token issued.

        Raises:
            StoreUnavailableException: If the links cannot be read or written
        """
        now = now or utcnow()
        if expires_in is None and settings.SHARE_LINK_TTL_DAYS:
            expires_in = timedelta(days=settings.SHARE_LINK_TTL_DAYS)

        try:
            existing = await self._active_link(chart_id, now)
            if existing is not None and not regenerate:
                return CreateLinkOutcome(link=ShareLinkRecord.model_validate(existing), is_new=False)

            if existing is not None:
                existing.revoked_at = now
                logger.info(f"Revoked share link {existing.id} of chart {chart_id} for regeneration")

            link = ShareLink(
                id=new_id(),
                token=str(uuid.uuid4()),
                chart_id=chart_id,
                created_by=created_by,
                created_at=now,
                expires_at=now + expires_in if expires_in else None,
                revoked_at=None,
                access_count=0,
                last_accessed_at=None,
            )
            self.db.add(link)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Share link creation failed for chart {chart_id}: {e}")
            store_faults_total.labels(component="share_links", policy=self.FAILURE_POLICY.value).inc()
            raise StoreUnavailableException(
                message="Failed to create share link",
                operation="create_or_get",
            )

        logger.info(f"Created share link {link.id} for chart {chart_id} by {created_by}")
        return CreateLinkOutcome(link=ShareLinkRecord.model_validate(link), is_new=True)

    async def resolve_by_token(self, token: str, now: Optional[datetime] = None) -> ShareLinkResolution:
        """
        Resolve a token to its chart

        Checks run in order: not found, revoked, expired. A revoked link
        reports revoked even when it has also expired.
        """
        now = now or utcnow()
        try:
            resolution = await self._resolve(token, now)
        except SQLAlchemyError as e:
            logger.error(f"Share link resolution failed for token {mask_token(token)}: {e}")
            store_faults_total.labels(component="share_links", policy=self.FAILURE_POLICY.value).inc()
            resolution = ShareLinkResolution(
                ok=False,
                reason=ResolutionFailure.SERVER_ERROR,
                message="Failed to retrieve shared chart",
            )

        share_link_resolutions_total.labels(
            outcome="ok" if resolution.ok else resolution.reason.value
        ).inc()
        return resolution

    async def _resolve(self, token: str, now: datetime) -> ShareLinkResolution:
        result = await self.db.execute(
            select(ShareLink).where(ShareLink.token == token).execution_options(populate_existing=True)
        )
        link = result.scalar_one_or_none()

        if link is None:
            logger.warning(f"Share link not found: {mask_token(token)}")
            return ShareLinkResolution(
                ok=False, reason=ResolutionFailure.NOT_FOUND, message="Share link not found"
            )

        if link.revoked_at is not None:
            logger.warning(f"Share link {link.id} revoked at {link.revoked_at}")
            return ShareLinkResolution(
                ok=False,
                reason=ResolutionFailure.REVOKED,
                message="This share link has been revoked",
                revoked_at=link.revoked_at,
            )

        if link.expires_at is not None and link.expires_at <= now:
            logger.warning(f"Share link {link.id} expired at {link.expires_at}")
            return ShareLinkResolution(
                ok=False,
                reason=ResolutionFailure.EXPIRED,
                message="This share link has expired",
                expires_at=link.expires_at,
            )

        chart_result = await self.db.execute(
            select(Chart).where(Chart.id == link.chart_id).execution_options(populate_existing=True)
        )
        chart = chart_result.scalar_one_or_none()
        if chart is None:
            logger.warning(f"Chart {link.chart_id} no longer exists for share link {link.id}")
            return ShareLinkResolution(
                ok=False, reason=ResolutionFailure.CHART_DELETED, message="Chart no longer exists"
            )

        record = ShareLinkRecord.model_validate(link)
        redacted = chart.to_redacted_dict()

        # A failed tracking update rolls back and expires link
        await self.record_access(record.id, now)

        logger.info(f"Shared chart {record.chart_id} accessed via link {record.id}")
        return ShareLinkResolution(ok=True, link=record, chart=redacted)

    async def record_access(self, link_id: str, now: Optional[datetime] = None) -> bool:
        """Best-effort access tracking; a failure is logged and never raised"""
        try:
            await self.db.execute(
                update(ShareLink)
                .where(ShareLink.id == link_id)
                .values(
                    last_accessed_at=now or utcnow(),
                    access_count=ShareLink.access_count + 1,
                )
            )
            await self.db.commit()
            return True
        except Exception as e:
            logger.error(f"Failed to update access tracking for link {link_id}: {e}")
            try:
                await self.db.rollback()
            except Exception as rollback_error:
                logger.error(f"Rollback after tracking failure also failed: {rollback_error}")
            return False

    async def revoke_all(self, chart_id: str, now: Optional[datetime] = None) -> RevokeLinksOutcome:
        """Revoke every active link of a chart; zero revoked is a normal outcome"""
        now = now or utcnow()
        try:
            result = await self.db.execute(
                update(ShareLink)
                .where(ShareLink.chart_id == chart_id, *_active_clause(now))
                .values(revoked_at=now)
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Share link revocation failed for chart {chart_id}: {e}")
            store_faults_total.labels(component="share_links", policy=self.FAILURE_POLICY.value).inc()
            return RevokeLinksOutcome(success=False, revoked_count=0, message="Failed to revoke share link")

        count = result.rowcount or 0
        if count == 0:
            return RevokeLinksOutcome(success=True, revoked_count=0, message="No active share links found for this chart")

        logger.info(f"Revoked {count} share link(s) for chart {chart_id}")
        return RevokeLinksOutcome(success=True, revoked_count=count, message=f"Revoked {count} share link(s)")

    @staticmethod
    def describe(link: ShareLinkRecord, headers: Mapping[str, str]) -> ShareLinkView:
        """Owner-facing view of a link, with its public URL"""
        return ShareLinkView(
            token=link.token,
            url=build_share_url(link.token, headers),
            created_at=link.created_at,
            expires_at=link.expires_at,
            access_count=link.access_count,
            last_accessed_at=link.last_accessed_at,
        )
