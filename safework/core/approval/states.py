"""TRA approval workflow states and transitions.

State Machine Diagram:

    ┌─────────────┐
    │ NO_WORKFLOW │ ← TRA in draft, not yet submitted
    └──────┬──────┘
           │ submit (creates default step)
    ┌──────▼───────┐  approve (more steps left)
    │ PENDING_STEP │◄──────────────┐
    └──┬────────┬──┘───────────────┘
       │        │
       │ approve (last step)  reject
       │        │
    ┌──▼─────┐ ┌▼─────────┐
    │APPROVED│ │ REJECTED │
    └────────┘ └────┬─────┘
                    │ submit (full reset to step 0)
                    └──────► PENDING_STEP

Only the step at ``currentStep`` can be decided; later steps are unreachable
until every earlier one is approved.
"""

from enum import Enum
from typing import Dict, List, NamedTuple, Optional, Set, Tuple

from safework.models.tra import RiskAssessment, StepStatus, TRAStatus


class WorkflowState(str, Enum):
    """Approval state of a TRA, derived from its document."""

    NO_WORKFLOW = "no_workflow"
    PENDING_STEP = "pending_step"
    APPROVED = "approved"
    REJECTED = "rejected"


class Decision(str, Enum):
    """Approver decisions."""

    APPROVE = "approve"
    REJECT = "reject"


class WorkflowAction(str, Enum):
    """Actions that trigger workflow transitions."""

    SUBMIT = "submit"
    APPROVE_STEP = "approve_step"        # advances to next step
    APPROVE_FINAL = "approve_final"      # last step, workflow complete
    REJECT = "reject"


class TransitionRule(NamedTuple):
    from_state: WorkflowState
    to_state: WorkflowState
    action: WorkflowAction


TRANSITION_RULES: List[TransitionRule] = [
    TransitionRule(WorkflowState.NO_WORKFLOW, WorkflowState.PENDING_STEP, WorkflowAction.SUBMIT),
    TransitionRule(WorkflowState.REJECTED, WorkflowState.PENDING_STEP, WorkflowAction.SUBMIT),
    TransitionRule(WorkflowState.PENDING_STEP, WorkflowState.PENDING_STEP, WorkflowAction.APPROVE_STEP),
    TransitionRule(WorkflowState.PENDING_STEP, WorkflowState.APPROVED, WorkflowAction.APPROVE_FINAL),
    TransitionRule(WorkflowState.PENDING_STEP, WorkflowState.REJECTED, WorkflowAction.REJECT),
]

TRANSITION_TARGETS: Dict[Tuple[WorkflowState, WorkflowAction], TransitionRule] = {
    (rule.from_state, rule.action): rule for rule in TRANSITION_RULES
}

SUBMITTABLE_STATUSES: Set[TRAStatus] = {
    TRAStatus.DRAFT,
    TRAStatus.REJECTED,
}

REVIEWABLE_STATUSES: Set[TRAStatus] = {
    TRAStatus.SUBMITTED,
    TRAStatus.IN_REVIEW,
}

# TRA statuses under which field sessions may be started
EXECUTABLE_STATUSES: Set[TRAStatus] = {
    TRAStatus.ACTIVE,
    TRAStatus.APPROVED,
}

DEFAULT_STEP_NAME = "Safety manager approval"


def can_transition(from_state: WorkflowState, action: WorkflowAction) -> bool:
    return (from_state, action) in TRANSITION_TARGETS


def get_target_state(from_state: WorkflowState, action: WorkflowAction) -> Optional[WorkflowState]:
    rule = TRANSITION_TARGETS.get((from_state, action))
    return rule.to_state if rule else None


def workflow_state(assessment: RiskAssessment) -> WorkflowState:
    """Derive the approval state from a TRA document."""
    workflow = assessment.approval_workflow
    if workflow is None or assessment.status == TRAStatus.DRAFT:
        return WorkflowState.NO_WORKFLOW
    if workflow.is_complete:
        return WorkflowState.APPROVED
    current = workflow.steps[workflow.current_step]
    if current.status == StepStatus.REJECTED or assessment.status == TRAStatus.REJECTED:
        return WorkflowState.REJECTED
    return WorkflowState.PENDING_STEP
