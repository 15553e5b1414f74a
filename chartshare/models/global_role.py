"""
Global Role API Models
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class SetGlobalRoleRequest(BaseModel):
    """Assign an application-wide role"""
    role: str = Field(..., description="viewer, editor or admin")


class GlobalRoleResponse(BaseModel):
    """A global role assignment"""
    user_id: str
    role: str
    granted_by: Optional[str] = None
    granted_at: Optional[datetime] = None
    bootstrap: bool = False


class GlobalRoleListResponse(BaseModel):
    """Every global role assignment, bootstrap admins first"""
    users: List[GlobalRoleResponse]
    total: int


class RoleChangeResponse(BaseModel):
    """Result of setting or removing a global role"""
    success: bool
    message: str
    user_id: str
    role: Optional[str] = None
