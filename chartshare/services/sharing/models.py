"""
Sharing Models
Pydantic models for per-chart permission changes
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

# Shared by "chart missing" and "not the owner" so neither leaks existence
MSG_NOT_FOUND_OR_NOT_PERMITTED = "Chart not found or you do not have permission to share it"
MSG_REVOKE_NOT_FOUND_OR_NOT_PERMITTED = "Chart not found or you do not have permission to modify it"


class MutationResult(BaseModel):
    """Outcome of a grant or revoke"""

    success: bool = Field(description="Whether the chart's permissions changed")
    message: str = Field(description="Human-readable outcome")

    @property
    def is_not_found(self) -> bool:
        return not self.success and "not found" in self.message.lower()


class PermissionEntryRecord(BaseModel):
    """A per-chart role entry"""

    user_id: str
    role: str
    granted_at: Optional[datetime] = None
    granted_by: Optional[str] = None
    updated_at: Optional[datetime] = None
