"""
Global Role Store
"""

from chartshare.services.global_roles.models import GlobalRoleRecord, RoleChangeResult
from chartshare.services.global_roles.service import GlobalRoleStore

__all__ = [
    "GlobalRoleStore",
    "GlobalRoleRecord",
    "RoleChangeResult",
]
