"""Approval workflow engine for Task Risk Assessments.

Every step-advance, rejection, reset and signature write goes through this
module. Functions are pure over the typed model: they never mutate their
input, hold no state between calls and return a ``Transition`` describing the
new document, its audit entry and its events.
"""

import logging
from datetime import datetime
from typing import Optional, Union

from safework.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from safework.core.rbac import ActorContext, PermissionChecker, Role
from safework.core.transition import REDACTED, AuditEntry, DomainEvent, EventType, Transition
from safework.models.common import utcnow
from safework.models.tra import (
    ApprovalStep,
    ApprovalWorkflow,
    RiskAssessment,
    StepSignature,
    StepStatus,
    TRAStatus,
)

from .states import (
    DEFAULT_STEP_NAME,
    REVIEWABLE_STATUSES,
    SUBMITTABLE_STATUSES,
    Decision,
    WorkflowAction,
    WorkflowState,
    can_transition,
    get_target_state,
    workflow_state,
)

logger = logging.getLogger(__name__)


class ApprovalWorkflowEngine:
    """
    State machine for the TRA approval workflow.

    Handles:
    - Submission, creating a default workflow or fully resetting an existing one
    - Stepwise approve/reject decisions on the current step only
    - Completion detection
    - Signature capture independent of decisions
    """

    def __init__(self, default_role: Role = Role.SAFETY_MANAGER):
        self.default_role = default_role

    def submit(
        self,
        assessment: RiskAssessment,
        actor: ActorContext,
        *,
        comments: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Transition[RiskAssessment]:
        """
        Submit a TRA for approval.

        Resubmission is a full reset: every step goes back to pending, all
        decision metadata and signatures are cleared, ``currentStep`` returns
        to 0 and ``completedAt`` is cleared.

        Raises:
            ForbiddenError: If the actor belongs to another organization
            ConflictError: If the TRA is not in draft or rejected status
        """
        self._require_same_org(assessment, actor, "submit this TRA")
        if assessment.status not in SUBMITTABLE_STATUSES:
            raise ConflictError(f"TRA {assessment.id} is not in a submittable state ({assessment.status.value})")
        from_state = workflow_state(assessment)
        target = self._require_transition(assessment, from_state, WorkflowAction.SUBMIT)

        now = now or utcnow()
        updated = assessment.model_copy(deep=True)

        if updated.approval_workflow is None:
            updated.approval_workflow = ApprovalWorkflow(
                steps=[
                    ApprovalStep(
                        step_number=1,
                        name=DEFAULT_STEP_NAME,
                        required_role=self.default_role,
                        approvers=[],
                    )
                ],
            )
        else:
            for step in updated.approval_workflow.steps:
                step.reset()
            updated.approval_workflow.current_step = 0
            updated.approval_workflow.completed_at = None

        updated.status = TRAStatus.SUBMITTED
        updated.submitted_at = now
        updated.submitted_by = actor.actor_id
        updated.updated_at = now
        updated.updated_by = actor.actor_id
        self._check_workflow(updated)

        logger.info(
            "TRA %s submitted by %s (%s -> %s, %d steps)",
            assessment.id, actor.actor_id, from_state.value,
            target.value, len(updated.approval_workflow.steps),
        )

        return Transition(
            document=updated,
            audit=AuditEntry(
                organization_id=assessment.organization_id,
                subject_id=assessment.id,
                actor_id=actor.actor_id,
                action="tra.submit",
                payload={"comments": comments},
            ),
            events=[
                DomainEvent(
                    event_type=EventType.TRA_SUBMITTED,
                    organization_id=assessment.organization_id,
                    subject_id=assessment.id,
                    actor_id=actor.actor_id,
                    occurred_at=now,
                    data={"stepCount": len(updated.approval_workflow.steps)},
                )
            ],
        )

    def decide(
        self,
        assessment: RiskAssessment,
        actor: ActorContext,
        decision: Union[Decision, str],
        step_number: int,
        *,
        comments: Optional[str] = None,
        signature: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Transition[RiskAssessment]:
        """
        Record an approve/reject decision on the current step.

        Args:
            assessment: TRA being reviewed
            actor: Verified caller
            decision: approve or reject
            step_number: Zero-based index of the step the caller is deciding.
                Must be the current step.
            comments: Optional reviewer comments
            signature: Optional signature captured with an approval
            now: Decision time (defaults to current UTC time)

        Raises:
            NotFoundError: If no workflow is configured
            ConflictError: If the workflow is complete, the TRA is not under
                review, or ``step_number`` is not the current step
            ForbiddenError: If the actor may not decide the current step
            ValidationError: If the decision is unknown
        """
        try:
            decision = Decision(decision)
        except ValueError:
            raise ValidationError(f"Unknown decision: {decision!r}")

        workflow = assessment.approval_workflow
        if workflow is None:
            raise NotFoundError("Approval workflow", assessment.id)
        if workflow.is_complete:
            raise ConflictError("All approval steps already completed")
        self._require_same_org(assessment, actor, "decide approval steps")
        if assessment.status not in REVIEWABLE_STATUSES:
            raise ConflictError(
                f"TRA {assessment.id} is {assessment.status.value}; resubmission is required before deciding"
            )
        self._check_workflow(assessment)
        self._require_transition(assessment, workflow_state(assessment), self._action_for(decision, workflow))

        # Stale steps conflict before any permission check
        if step_number != workflow.current_step:
            raise ConflictError(
                f"Step {step_number} is not the current approval step ({workflow.current_step})"
            )
        current = workflow.steps[workflow.current_step]
        if not PermissionChecker(actor).can_decide_step(current):
            logger.warning(
                "Denied %s on TRA %s step %d for %s (%s)",
                decision.value, assessment.id, workflow.current_step, actor.actor_id, actor.role.value,
            )
            raise ForbiddenError("decide this approval step", actor.actor_id)

        now = now or utcnow()
        updated = assessment.model_copy(deep=True)
        wf = updated.approval_workflow
        step = wf.steps[wf.current_step]
        step.decided_by = actor.actor_id
        step.decided_by_name = actor.name
        step.decided_at = now
        step.comments = comments
        events = []

        if decision == Decision.APPROVE:
            step.status = StepStatus.APPROVED
            if signature:
                step.digital_signature = StepSignature(
                    data=signature,
                    captured_by=actor.actor_id,
                    captured_by_name=actor.name,
                    captured_at=now,
                )
            wf.current_step = min(wf.current_step + 1, len(wf.steps))
            if wf.is_complete:
                wf.completed_at = now
                updated.status = TRAStatus.APPROVED
                updated.approved_at = now
                updated.approved_by = actor.actor_id
                events.append(self._event(EventType.TRA_APPROVED, updated, actor, now, step_number))
            else:
                updated.status = TRAStatus.IN_REVIEW
        else:
            step.status = StepStatus.REJECTED
            wf.completed_at = None
            updated.status = TRAStatus.REJECTED
            events.append(self._event(EventType.TRA_REJECTED, updated, actor, now, step_number))

        updated.updated_at = now
        updated.updated_by = actor.actor_id
        self._check_workflow(updated)

        logger.info(
            "TRA %s step %d %s by %s; status now %s",
            assessment.id, step_number, decision.value, actor.actor_id, updated.status.value,
        )

        return Transition(
            document=updated,
            audit=AuditEntry(
                organization_id=assessment.organization_id,
                subject_id=assessment.id,
                actor_id=actor.actor_id,
                action="approval.decision",
                payload={
                    "decision": decision.value,
                    "stepNumber": step_number,
                    "comments": comments,
                    "digitalSignature": REDACTED if signature else None,
                },
            ),
            events=events,
        )

    def attach_signature(
        self,
        assessment: RiskAssessment,
        actor: ActorContext,
        step_number: int,
        signature_blob: str,
        name: str,
        *,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Transition[RiskAssessment]:
        """
        Store a captured signature on a step without changing its status.

        Raises:
            NotFoundError: If there is no workflow or no step at ``step_number``
            ForbiddenError: If the actor may not decide that step
            ValidationError: If the signature or signer name is empty
        """
        workflow = assessment.approval_workflow
        if workflow is None or not 0 <= step_number < len(workflow.steps):
            raise NotFoundError("Approval step", str(step_number))
        self._require_same_org(assessment, actor, "sign approval steps")
        if not PermissionChecker(actor).can_decide_step(workflow.steps[step_number]):
            raise ForbiddenError("sign this approval step", actor.actor_id)
        if not signature_blob or not name:
            raise ValidationError("Signature data and signer name are required")

        now = now or utcnow()
        updated = assessment.model_copy(deep=True)
        step = updated.approval_workflow.steps[step_number]
        step.digital_signature = StepSignature(
            data=signature_blob,
            captured_by=actor.actor_id,
            captured_by_name=name,
            captured_at=now,
            reason=reason,
        )
        updated.updated_at = now
        updated.updated_by = actor.actor_id

        return Transition(
            document=updated,
            audit=AuditEntry(
                organization_id=assessment.organization_id,
                subject_id=assessment.id,
                actor_id=actor.actor_id,
                action="approval.signature.create",
                payload={
                    "stepNumber": step_number,
                    "capturedBy": actor.actor_id,
                    "capturedByName": name,
                    "reason": reason,
                    "signatureStored": True,
                },
            ),
        )

    @staticmethod
    def _require_same_org(assessment: RiskAssessment, actor: ActorContext, action: str) -> None:
        if assessment.organization_id != actor.organization_id:
            raise ForbiddenError(action, actor.actor_id)

    @staticmethod
    def _action_for(decision: Decision, workflow: ApprovalWorkflow) -> WorkflowAction:
        if decision == Decision.REJECT:
            return WorkflowAction.REJECT
        if workflow.current_step == len(workflow.steps) - 1:
            return WorkflowAction.APPROVE_FINAL
        return WorkflowAction.APPROVE_STEP

    @staticmethod
    def _require_transition(
        assessment: RiskAssessment,
        from_state: WorkflowState,
        action: WorkflowAction,
    ) -> WorkflowState:
        if not can_transition(from_state, action):
            raise ConflictError(
                f"Cannot {action.value} TRA {assessment.id} from approval state {from_state.value}"
            )
        return get_target_state(from_state, action)

    @staticmethod
    def _check_workflow(assessment: RiskAssessment) -> None:
        workflow = assessment.approval_workflow
        if workflow is None:
            return
        problems = workflow.invariant_violations()
        if problems:
            raise ValidationError(
                f"Approval workflow for TRA {assessment.id} is inconsistent",
                details={"problems": problems},
            )

    @staticmethod
    def _event(
        event_type: EventType,
        assessment: RiskAssessment,
        actor: ActorContext,
        now: datetime,
        step_number: int,
    ) -> DomainEvent:
        return DomainEvent(
            event_type=event_type,
            organization_id=assessment.organization_id,
            subject_id=assessment.id,
            actor_id=actor.actor_id,
            occurred_at=now,
            data={"stepNumber": step_number, "status": assessment.status.value},
        )
