"""Role-based access control for SafeWork.

Defines the role hierarchy and the capability checks used by the approval
workflow and the LMRA gate.
"""

from .roles import Role, ROLE_HIERARCHY, has_role, parse_role, get_role_display_name
from .checker import ActorContext, PermissionChecker, can_decide_step, can_manage_session

__all__ = [
    "Role",
    "ROLE_HIERARCHY",
    "has_role",
    "parse_role",
    "get_role_display_name",
    "ActorContext",
    "PermissionChecker",
    "can_decide_step",
    "can_manage_session",
]
