"""Approval workflow module for SafeWork.

Implements the TRA approval state machine and its persistence service.
"""

from .states import (
    WorkflowState,
    Decision,
    WorkflowAction,
    SUBMITTABLE_STATUSES,
    REVIEWABLE_STATUSES,
    EXECUTABLE_STATUSES,
    workflow_state,
)
from .engine import ApprovalWorkflowEngine
from .service import ApprovalService

__all__ = [
    "WorkflowState",
    "Decision",
    "WorkflowAction",
    "SUBMITTABLE_STATUSES",
    "REVIEWABLE_STATUSES",
    "EXECUTABLE_STATUSES",
    "workflow_state",
    "ApprovalWorkflowEngine",
    "ApprovalService",
]
