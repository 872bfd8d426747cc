"""Authorization checks for SafeWork.

The request layer supplies an already-verified ``ActorContext``; these helpers
only decide whether that actor may act. Anything ambiguous is a denial.
"""

from dataclasses import dataclass
from typing import Any, Optional

from .roles import Role, has_role, parse_role


@dataclass(frozen=True)
class ActorContext:
    """Pre-verified identity of the caller."""

    actor_id: str
    role: Role
    organization_id: str
    display_name: Optional[str] = None

    @property
    def name(self) -> str:
        return self.display_name or "unknown"

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


class PermissionChecker:
    """Answers capability questions for a single actor."""

    def __init__(self, actor: ActorContext):
        self.actor = actor

    def has_role(self, required: Role) -> bool:
        return has_role(self.actor.role, required)

    def can_decide_step(self, step: Any) -> bool:
        """
        Check if the actor may decide (or sign) an approval step.

        Allowed for admins, for the step's exact required role, and for users
        on the step's explicit approver list.
        """
        if step is None:
            return False
        if self.actor.is_admin:
            return True
        required = parse_role(step.required_role)
        if required is not None and self.actor.role == required:
            return True
        return bool(self.actor.actor_id) and self.actor.actor_id in (step.approvers or [])

    def can_manage_session(self, session: Any) -> bool:
        """Check if the actor may update or complete an LMRA session.

        The performer always may; otherwise safety manager or above.
        """
        if session is None:
            return False
        if self.actor.actor_id and session.performed_by == self.actor.actor_id:
            return True
        return self.has_role(Role.SAFETY_MANAGER)

    def can_start_session(self) -> bool:
        return self.has_role(Role.FIELD_WORKER)


def can_decide_step(actor: ActorContext, step: Any) -> bool:
    return PermissionChecker(actor).can_decide_step(step)


def can_manage_session(actor: ActorContext, session: Any) -> bool:
    return PermissionChecker(actor).can_manage_session(session)
