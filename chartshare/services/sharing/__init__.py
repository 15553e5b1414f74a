"""
Permission Mutator
"""

from chartshare.services.sharing.models import (
    MSG_NOT_FOUND_OR_NOT_PERMITTED,
    MutationResult,
    PermissionEntryRecord,
)
from chartshare.services.sharing.service import PermissionMutator

__all__ = [
    "PermissionMutator",
    "MutationResult",
    "PermissionEntryRecord",
    "MSG_NOT_FOUND_OR_NOT_PERMITTED",
]
