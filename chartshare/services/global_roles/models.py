"""
Global Role Models
Pydantic models for global role operations
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class RoleChangeResult(BaseModel):
    """Outcome of setting or removing a global role"""

    success: bool = Field(description="Whether the store was changed")
    message: str = Field(description="Human-readable outcome")


class GlobalRoleRecord(BaseModel):
    """A persisted global role assignment"""

    user_id: str
    role: str
    granted_by: Optional[str] = None
    granted_at: Optional[datetime] = None
    bootstrap: bool = Field(default=False, description="Comes from ADMIN_USER_IDS, not the store")
