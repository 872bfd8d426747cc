"""LMRA session gate.

Field work may only proceed once a session's location and all three check
categories are recorded. Completion is one-way: ``completedAt`` is written
once and never again. A ``stop_work`` outcome is stored exactly as given.
"""

import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from safework.core.approval.states import EXECUTABLE_STATUSES
from safework.core.exceptions import ChecklistIncompleteError, ConflictError, ForbiddenError, ValidationError
from safework.core.rbac import ActorContext, PermissionChecker
from safework.core.transition import REDACTED, AuditEntry, DomainEvent, EventType, Transition
from safework.models.common import ensure_aware, utcnow
from safework.models.lmra import (
    EquipmentCondition,
    LMRAAssessment,
    LMRASession,
    LocationVerification,
    SyncStatus,
)
from safework.models.tra import RiskAssessment

logger = logging.getLogger(__name__)

# Precondition categories, in the order they are reported
CHECK_CATEGORIES = ("location", "environmentalChecks", "personnelChecks", "equipmentChecks")

# Fields a performer may change before completion
UPDATABLE_FIELDS = {
    "location",
    "team_members",
    "environmental_checks",
    "personnel_checks",
    "equipment_checks",
    "photos",
    "stop_work_reason",
    "additional_hazards",
    "comments",
}


def check_details(session: LMRASession) -> Dict[str, bool]:
    """Map every precondition category to whether it is satisfied."""
    return {
        "location": session.location is not None,
        "environmentalChecks": len(session.environmental_checks) > 0,
        "personnelChecks": len(session.personnel_checks) > 0,
        "equipmentChecks": len(session.equipment_checks) > 0,
    }


def missing_checks(session: LMRASession) -> List[str]:
    details = check_details(session)
    return [category for category in CHECK_CATEGORIES if not details[category]]


def can_complete(session: LMRASession) -> bool:
    """True only when location and every check category are populated."""
    return not missing_checks(session)


def has_stop_work(session: LMRASession) -> bool:
    return session.overall_assessment == LMRAAssessment.STOP_WORK


def personnel_checks_complete(session: LMRASession) -> bool:
    """Every listed team member is checked in with verified competencies."""
    checks = session.personnel_checks
    return len(checks) > 0 and all(c.checked_in and c.competencies_verified for c in checks)


def equipment_checks_complete(session: LMRASession) -> bool:
    """Every required item is available and in usable condition."""
    usable = (EquipmentCondition.GOOD, EquipmentCondition.ACCEPTABLE)
    return all(c.available and c.condition in usable for c in session.equipment_checks if c.required)


def _require_manager(session: LMRASession, actor: ActorContext, action: str) -> None:
    if session.organization_id != actor.organization_id:
        raise ForbiddenError(action, actor.actor_id)
    if not PermissionChecker(actor).can_manage_session(session):
        raise ForbiddenError(action, actor.actor_id)


def start_session(
    tra: RiskAssessment,
    actor: ActorContext,
    *,
    session_id: Optional[str] = None,
    team_members: Optional[List[str]] = None,
    location: Optional[LocationVerification] = None,
    offline: bool = False,
    now: Optional[datetime] = None,
) -> Transition[LMRASession]:
    """
    Open a new LMRA session for an executable TRA.

    Raises:
        ForbiddenError: If the actor is outside the TRA's organization
        ConflictError: If the TRA is not active or approved
    """
    if tra.organization_id != actor.organization_id or not PermissionChecker(actor).can_start_session():
        raise ForbiddenError("start an LMRA session", actor.actor_id)
    if tra.status not in EXECUTABLE_STATUSES:
        raise ConflictError(f"TRA {tra.id} is {tra.status.value}; LMRA requires an active or approved TRA")

    now = now or utcnow()
    session = LMRASession(
        id=session_id or str(uuid.uuid4()),
        organization_id=tra.organization_id,
        tra_id=tra.id,
        project_id=tra.project_id,
        performed_by=actor.actor_id,
        performed_by_name=actor.display_name,
        team_members=list(team_members or []),
        location=location,
        started_at=now,
        sync_status=SyncStatus.PENDING_SYNC if offline else SyncStatus.SYNCED,
    )
    return Transition(
        document=session,
        audit=AuditEntry(
            organization_id=session.organization_id,
            subject_id=session.id,
            actor_id=actor.actor_id,
            action="lmra.start",
            payload={"traId": tra.id, "offline": offline},
        ),
    )


def update_session(
    session: LMRASession,
    actor: ActorContext,
    changes: Dict[str, Any],
    *,
    now: Optional[datetime] = None,
) -> Transition[LMRASession]:
    """
    Apply an incremental update to an open session.

    Args:
        session: Session being edited
        actor: Verified caller
        changes: Attribute name to new value; only ``UPDATABLE_FIELDS`` allowed

    Raises:
        ConflictError: If the session is already completed
        ForbiddenError: If the actor is neither performer nor safety manager+
        ValidationError: If a change targets a field that cannot be edited
    """
    if session.is_complete:
        raise ConflictError(f"LMRA session {session.id} is already completed")
    _require_manager(session, actor, "edit this LMRA session")

    unknown = sorted(set(changes) - UPDATABLE_FIELDS)
    if unknown:
        raise ValidationError("Fields cannot be updated", details={"fields": unknown})

    now = now or utcnow()
    data = session.model_dump()
    data.update(changes)
    data["updated_at"] = now
    data["sync_status"] = SyncStatus.SYNCED
    updated = LMRASession.model_validate(data)

    return Transition(
        document=updated,
        audit=AuditEntry(
            organization_id=session.organization_id,
            subject_id=session.id,
            actor_id=actor.actor_id,
            action="lmra.update",
            payload={"fields": sorted(changes)},
        ),
    )


def complete(
    session: LMRASession,
    actor: ActorContext,
    overall_assessment: Union[LMRAAssessment, str],
    *,
    comments: Optional[str] = None,
    signature: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Transition[LMRASession]:
    """
    Finalize an LMRA session.

    Raises:
        ConflictError: If the session was already completed
        ForbiddenError: If the actor is neither performer nor safety manager+
        ChecklistIncompleteError: If location or any check category is empty
        ValidationError: If the overall assessment is unknown
    """
    if session.is_complete:
        raise ConflictError(f"LMRA session {session.id} is already completed")
    _require_manager(session, actor, "complete this LMRA session")

    try:
        assessment = LMRAAssessment(overall_assessment)
    except ValueError:
        raise ValidationError(f"Unknown overall assessment: {overall_assessment!r}")

    missing = missing_checks(session)
    if missing:
        raise ChecklistIncompleteError(missing, check_details(session))

    now = ensure_aware(now) or utcnow()
    duration = int((now - ensure_aware(session.started_at)).total_seconds())
    if duration < 0:
        logger.warning("Negative duration %ds on LMRA session %s (clock skew), clamping to 0", duration, session.id)
        duration = 0

    updated = session.model_copy(deep=True)
    updated.completed_at = now
    updated.duration = duration
    updated.overall_assessment = assessment
    updated.comments = comments if comments is not None else session.comments
    if signature:
        updated.digital_signature = signature
    updated.sync_status = SyncStatus.SYNCED
    updated.updated_at = now

    event_data = {"traId": session.tra_id, "overallAssessment": assessment.value, "duration": duration}
    events = [
        DomainEvent(EventType.LMRA_COMPLETED, session.organization_id, session.id, actor.actor_id, now, event_data),
    ]
    if assessment == LMRAAssessment.STOP_WORK:
        events.append(
            DomainEvent(EventType.LMRA_STOP_WORK, session.organization_id, session.id, actor.actor_id, now,
                        dict(event_data, stopWorkReason=session.stop_work_reason))
        )

    return Transition(
        document=updated,
        audit=AuditEntry(
            organization_id=session.organization_id,
            subject_id=session.id,
            actor_id=actor.actor_id,
            action="lmra.complete",
            payload={
                "overallAssessment": assessment.value,
                "duration": duration,
                "comments": comments,
                "digitalSignature": REDACTED if signature else None,
            },
        ),
        events=events,
    )
