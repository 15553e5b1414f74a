"""
Role Vocabulary
Chart-level roles, global roles, and the action-to-role map
"""

from enum import Enum
from typing import Dict, Optional


class ChartRole(str, Enum):
    """Role a caller holds on a single chart"""

    OWNER = "owner"
    EDITOR = "editor"
    VIEWER = "viewer"


class GlobalRole(str, Enum):
    """Application-wide role"""

    VIEWER = "viewer"
    EDITOR = "editor"
    ADMIN = "admin"


# Higher roles include every capability of the lower ones
ROLE_HIERARCHY: Dict[ChartRole, int] = {
    ChartRole.OWNER: 3,
    ChartRole.EDITOR: 2,
    ChartRole.VIEWER: 1,
}

GLOBAL_ROLE_HIERARCHY: Dict[GlobalRole, int] = {
    GlobalRole.ADMIN: 3,
    GlobalRole.EDITOR: 2,
    GlobalRole.VIEWER: 1,
}

# Roles that may be stored as a per-chart entry (OWNER never is)
GRANTABLE_ROLES = (ChartRole.VIEWER, ChartRole.EDITOR)

ACTION_ROLE_MAP: Dict[str, ChartRole] = {
    "read": ChartRole.VIEWER,
    "export": ChartRole.VIEWER,
    "edit": ChartRole.EDITOR,
    "delete": ChartRole.OWNER,
    "share": ChartRole.OWNER,
}

# Global role seen through a single chart
GLOBAL_TO_CHART_ROLE: Dict[GlobalRole, ChartRole] = {
    GlobalRole.ADMIN: ChartRole.EDITOR,
    GlobalRole.EDITOR: ChartRole.EDITOR,
    GlobalRole.VIEWER: ChartRole.VIEWER,
}


def parse_chart_role(value) -> Optional[ChartRole]:
    """Coerce a string to ChartRole, None if it is not one"""
    if isinstance(value, ChartRole):
        return value
    try:
        return ChartRole(value)
    except ValueError:
        return None


def parse_global_role(value) -> Optional[GlobalRole]:
    """Coerce a string to GlobalRole, None if it is not one"""
    if isinstance(value, GlobalRole):
        return value
    try:
        return GlobalRole(value)
    except ValueError:
        return None


def role_rank(role) -> int:
    """Rank of a chart role; unknown values rank 0"""
    parsed = parse_chart_role(role)
    return ROLE_HIERARCHY.get(parsed, 0) if parsed else 0


def is_grantable(role) -> bool:
    return parse_chart_role(role) in GRANTABLE_ROLES
