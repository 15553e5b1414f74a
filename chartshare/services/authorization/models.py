"""
Authorization Models
Pydantic models for access decisions
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from chartshare.core.permissions import ChartRole


class AccessSource(str, Enum):
    """Which rung of the resolution chain produced an allow"""

    OWNER = "owner"
    CHART_PERMISSION = "chart-permission"
    GLOBAL_ROLE = "global-role"
    AUTHENTICATED_USER = "authenticated-user"


# Reasons callers match on
REASON_NOT_FOUND = "Chart not found"
REASON_AUTH_REQUIRED = "Authentication required"
REASON_NO_PERMISSIONS = "Access denied: No permissions for this chart"
REASON_CHECK_FAILED = "Authorization check failed"


class AccessDecision(BaseModel):
    """Result of resolving a caller's access to a chart"""

    allowed: bool = Field(description="Whether the caller may proceed")
    effective_role: Optional[ChartRole] = Field(default=None, description="Role that applied")
    source: Optional[AccessSource] = Field(default=None, description="Rung that decided")
    reason: Optional[str] = Field(default=None, description="Why access was denied")

    @property
    def is_not_found(self) -> bool:
        return not self.allowed and bool(self.reason) and "not found" in self.reason.lower()

    @classmethod
    def allow(cls, role: ChartRole, source: AccessSource) -> "AccessDecision":
        return cls(allowed=True, effective_role=role, source=source)

    @classmethod
    def deny(
        cls,
        reason: str,
        role: Optional[ChartRole] = None,
        source: Optional[AccessSource] = None,
    ) -> "AccessDecision":
        return cls(allowed=False, reason=reason, effective_role=role, source=source)
