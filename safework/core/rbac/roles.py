"""Organization roles for SafeWork.

Roles are ordered; a higher role satisfies any requirement for a lower one:
1. Field Worker - performs LMRA sessions
2. Supervisor - reviews TRAs for their crews
3. Safety Manager - approves TRAs and supervises field sessions
4. Admin - full access
"""

from enum import Enum
from typing import Dict, Optional, Union


class Role(str, Enum):
    """Organization role."""

    FIELD_WORKER = "field_worker"
    SUPERVISOR = "supervisor"
    SAFETY_MANAGER = "safety_manager"
    ADMIN = "admin"


ROLE_HIERARCHY: Dict[Role, int] = {
    Role.FIELD_WORKER: 1,
    Role.SUPERVISOR: 2,
    Role.SAFETY_MANAGER: 3,
    Role.ADMIN: 4,
}

ROLE_DISPLAY_NAMES: Dict[Role, str] = {
    Role.FIELD_WORKER: "Field Worker",
    Role.SUPERVISOR: "Supervisor",
    Role.SAFETY_MANAGER: "Safety Manager",
    Role.ADMIN: "Administrator",
}


def parse_role(value: Union[str, Role, None]) -> Optional[Role]:
    """Parse a role string, returning None for unknown values."""
    if isinstance(value, Role):
        return value
    try:
        return Role(value)
    except ValueError:
        return None


def has_role(actual: Union[str, Role, None], required: Union[str, Role]) -> bool:
    """
    Check if a role is equal to or higher than the required role.

    Unknown roles never satisfy any requirement.
    """
    actual_role = parse_role(actual)
    required_role = parse_role(required)
    if actual_role is None or required_role is None:
        return False
    return ROLE_HIERARCHY[actual_role] >= ROLE_HIERARCHY[required_role]


def get_role_display_name(role: Union[str, Role]) -> str:
    parsed = parse_role(role)
    return ROLE_DISPLAY_NAMES[parsed] if parsed else str(role)
