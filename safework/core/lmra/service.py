"""LMRA session service.

Loads sessions from the document store, runs the gate and writes the result
conditionally on the version that was read. Audit and events follow only a
successful write.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from safework.core.approval.service import load_assessment
from safework.core.exceptions import ConcurrencyConflictError, ValidationError
from safework.core.rbac import ActorContext
from safework.core.transition import Transition
from safework.db.store import Document, PersistenceStore, lmra_path, tra_path
from safework.models.lmra import LMRAAssessment, LMRASession, LocationVerification
from safework.services.audit import AuditRecorder, record_safely
from safework.services.events import EventDispatcher

from . import gate

logger = logging.getLogger(__name__)


def load_session(body: dict) -> LMRASession:
    """Parse a stored session document into the typed model."""
    try:
        return LMRASession.from_document(body)
    except PydanticValidationError as e:
        raise ValidationError(
            "Stored LMRA session document is invalid",
            details={"errors": e.errors(include_url=False, include_context=False, include_input=False)},
        ) from e


class LMRAService:
    """Start, update and complete LMRA sessions."""

    def __init__(
        self,
        store: PersistenceStore,
        *,
        audit: Optional[AuditRecorder] = None,
        dispatcher: Optional[EventDispatcher] = None,
        retries: int = 0,
    ):
        self.store = store
        self.audit = audit
        self.dispatcher = dispatcher
        self.retries = max(0, retries)

    def get(self, org_id: str, session_id: str) -> LMRASession:
        return self._load(self.store.get(lmra_path(org_id), session_id))

    def can_complete(self, org_id: str, session_id: str) -> Dict[str, Any]:
        """Readiness report for the completion gate."""
        session = self.get(org_id, session_id)
        return {
            "canComplete": gate.can_complete(session),
            "missing": gate.missing_checks(session),
            "details": gate.check_details(session),
            "completed": session.is_complete,
        }

    def start(
        self,
        tra_id: str,
        actor: ActorContext,
        *,
        session_id: Optional[str] = None,
        team_members: Optional[List[str]] = None,
        location: Optional[LocationVerification] = None,
        offline: bool = False,
    ) -> LMRASession:
        tra = load_assessment(self.store.get(tra_path(actor.organization_id), tra_id).body)
        transition = gate.start_session(
            tra,
            actor,
            session_id=session_id,
            team_members=team_members,
            location=location,
            offline=offline,
        )
        session = transition.document
        self.store.create(lmra_path(session.organization_id), session.id, session.to_document())
        self._after_write(transition)
        return session

    def update(self, session_id: str, actor: ActorContext, changes: Dict[str, Any]) -> LMRASession:
        return self._apply(actor, session_id, lambda s: gate.update_session(s, actor, changes))

    def complete(
        self,
        session_id: str,
        actor: ActorContext,
        overall_assessment: LMRAAssessment,
        *,
        comments: Optional[str] = None,
        signature: Optional[str] = None,
    ) -> LMRASession:
        return self._apply(
            actor,
            session_id,
            lambda s: gate.complete(s, actor, overall_assessment, comments=comments, signature=signature),
        )

    def _apply(
        self,
        actor: ActorContext,
        session_id: str,
        step: Callable[[LMRASession], Transition[LMRASession]],
    ) -> LMRASession:
        path = lmra_path(actor.organization_id)
        attempt = 0
        while True:
            doc = self.store.get(path, session_id)
            transition = step(self._load(doc))
            transition.document.version = doc.version + 1
            try:
                self.store.update(path, session_id, transition.document.to_document(), expected_version=doc.version)
                break
            except ConcurrencyConflictError:
                if attempt >= self.retries:
                    logger.warning("Lost version race on LMRA session %s after %d attempts", session_id, attempt + 1)
                    raise
                attempt += 1

        self._after_write(transition)
        return transition.document

    @staticmethod
    def _load(doc: Document) -> LMRASession:
        session = load_session(doc.body)
        session.version = doc.version
        return session

    def _after_write(self, transition: Transition[LMRASession]) -> None:
        record_safely(self.audit, transition.audit)
        if self.dispatcher is not None:
            self.dispatcher.emit_all(transition.events)
