"""Approval service for TRA workflows.

The single call site for the approval engine: loads the TRA document, runs
the engine, writes the result conditionally on the version that was read,
then records audit and emits events. Every HTTP route that touches the
approval workflow goes through here.
"""

import logging
from typing import Callable, Optional

from pydantic import ValidationError as PydanticValidationError

from safework.core.exceptions import ConcurrencyConflictError, ValidationError
from safework.core.rbac import ActorContext
from safework.core.transition import Transition
from safework.db.store import Document, PersistenceStore, tra_path
from safework.models.tra import RiskAssessment
from safework.services.audit import AuditRecorder, record_safely
from safework.services.events import EventDispatcher

from .engine import ApprovalWorkflowEngine
from .states import Decision

logger = logging.getLogger(__name__)


def load_assessment(body: dict) -> RiskAssessment:
    """Parse a stored TRA document into the typed model."""
    try:
        return RiskAssessment.from_document(body)
    except PydanticValidationError as e:
        raise ValidationError(
            "Stored TRA document is invalid",
            details={"errors": e.errors(include_url=False, include_context=False, include_input=False)},
        ) from e


class ApprovalService:
    """
    High-level service for TRA approvals.

    Handles:
    - Submission and resubmission
    - Approve/reject decisions
    - Signature capture
    - Bounded retry of lost optimistic-concurrency races
    """

    def __init__(
        self,
        store: PersistenceStore,
        *,
        audit: Optional[AuditRecorder] = None,
        dispatcher: Optional[EventDispatcher] = None,
        engine: Optional[ApprovalWorkflowEngine] = None,
        retries: int = 0,
    ):
        """
        Initialize the approval service.

        Args:
            store: Document store
            audit: Audit recorder (best-effort)
            dispatcher: Event dispatcher (best-effort)
            engine: Workflow engine
            retries: Extra attempts after a lost version race
        """
        self.store = store
        self.audit = audit
        self.dispatcher = dispatcher
        self.engine = engine or ApprovalWorkflowEngine()
        self.retries = max(0, retries)

    def get(self, org_id: str, tra_id: str) -> RiskAssessment:
        return self._load(self.store.get(tra_path(org_id), tra_id))

    def create(self, assessment: RiskAssessment) -> RiskAssessment:
        self.store.create(tra_path(assessment.organization_id), assessment.id, assessment.to_document())
        return assessment

    def submit(
        self,
        tra_id: str,
        actor: ActorContext,
        *,
        comments: Optional[str] = None,
    ) -> RiskAssessment:
        return self._apply(
            actor,
            tra_id,
            lambda tra: self.engine.submit(tra, actor, comments=comments),
        )

    def decide(
        self,
        tra_id: str,
        actor: ActorContext,
        decision: Decision,
        step_number: int,
        *,
        comments: Optional[str] = None,
        signature: Optional[str] = None,
    ) -> RiskAssessment:
        return self._apply(
            actor,
            tra_id,
            lambda tra: self.engine.decide(
                tra, actor, decision, step_number, comments=comments, signature=signature
            ),
        )

    def approve(self, tra_id: str, actor: ActorContext, step_number: int, **kwargs) -> RiskAssessment:
        return self.decide(tra_id, actor, Decision.APPROVE, step_number, **kwargs)

    def reject(self, tra_id: str, actor: ActorContext, step_number: int, **kwargs) -> RiskAssessment:
        return self.decide(tra_id, actor, Decision.REJECT, step_number, **kwargs)

    def attach_signature(
        self,
        tra_id: str,
        actor: ActorContext,
        step_number: int,
        signature_blob: str,
        name: str,
        *,
        reason: Optional[str] = None,
    ) -> RiskAssessment:
        return self._apply(
            actor,
            tra_id,
            lambda tra: self.engine.attach_signature(
                tra, actor, step_number, signature_blob, name, reason=reason
            ),
        )

    def _apply(
        self,
        actor: ActorContext,
        tra_id: str,
        step: Callable[[RiskAssessment], Transition[RiskAssessment]],
    ) -> RiskAssessment:
        """Read, transition and conditionally write one TRA document.

        Only ``ConcurrencyConflictError`` is retried; any other error from a
        re-run on fresh state is returned as-is.
        """
        path = tra_path(actor.organization_id)
        attempt = 0
        while True:
            doc = self.store.get(path, tra_id)
            transition = step(self._load(doc))
            transition.document.version = doc.version + 1
            try:
                self.store.update(path, tra_id, transition.document.to_document(), expected_version=doc.version)
                break
            except ConcurrencyConflictError:
                if attempt >= self.retries:
                    logger.warning("Lost version race on TRA %s after %d attempts", tra_id, attempt + 1)
                    raise
                attempt += 1
                logger.info("Version conflict on TRA %s, retrying (%d/%d)", tra_id, attempt, self.retries)

        record_safely(self.audit, transition.audit)
        if self.dispatcher is not None:
            self.dispatcher.emit_all(transition.events)
        return transition.document

    @staticmethod
    def _load(doc: Document) -> RiskAssessment:
        # The store owns the version counter
        assessment = load_assessment(doc.body)
        assessment.version = doc.version
        return assessment
