"""
SQLAlchemy Database Models
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    JSON,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from chartshare.db.base import Base, TimestampMixin, UUIDMixin, new_id, utcnow


class Chart(UUIDMixin, TimestampMixin, Base):
    """Chart (shareable document) model"""

    __tablename__ = "charts"

    owner_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    data: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)

    permissions: Mapped[List["ChartPermission"]] = relationship(
        "ChartPermission",
        back_populates="chart",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def permission_for(self, user_id: str) -> Optional["ChartPermission"]:
        """Per-chart entry for user_id, if any"""
        for entry in self.permissions:
            if entry.user_id == user_id:
                return entry
        return None

    def to_redacted_dict(self) -> Dict[str, Any]:
        """Content fields only; ownership and permissions are never included"""
        return {
            "id": self.id,
            "name": self.name,
            "data": self.data,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class ChartPermission(Base):
    """Per-chart role entry (viewer or editor)"""

    __tablename__ = "chart_permissions"
    __table_args__ = (
        UniqueConstraint("chart_id", "user_id", name="uq_chart_permissions_chart_user"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    chart_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("charts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    granted_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    granted_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    chart: Mapped[Chart] = relationship("Chart", back_populates="permissions")


class GlobalRoleAssignment(Base):
    """Application-wide role, one row per user"""

    __tablename__ = "user_roles"

    user_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    granted_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    granted_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, index=True)


class AccessRequest(UUIDMixin, Base):
    """Request for access to a chart, kept as an audit trail"""

    __tablename__ = "access_requests"
    __table_args__ = (
        # At most one pending request per requester and chart
        Index(
            "uq_access_requests_pending",
            "chart_id",
            "requester_id",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
    )

    chart_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    chart_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    chart_owner_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    requester_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    requester_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    requested_role: Mapped[str] = mapped_column(String(20), nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending", index=True)
    requested_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, index=True)
    reviewed_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    review_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class ShareLink(UUIDMixin, Base):
    """Anonymous read-only capability token bound to a chart"""

    __tablename__ = "chart_share_links"

    token: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)
    chart_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    created_by: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    revoked_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    access_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_accessed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    def is_active(self, now: datetime) -> bool:
        return self.revoked_at is None and (self.expires_at is None or self.expires_at > now)


class RateCounter(Base):
    """Attempt counter for one identity, action and fixed window"""

    __tablename__ = "rate_limits"
    __table_args__ = (
        Index("ix_rate_limits_user_action_window", "user_id", "action", "window_start"),
    )

    # identity:action:windowIndex
    id: Mapped[str] = mapped_column(String(512), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    action: Mapped[str] = mapped_column(String(64), nullable=False)
    count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    window_start: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
