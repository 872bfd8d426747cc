"""Audit recording for SafeWork.

Recorders are best-effort from the caller's point of view: ``record_safely``
logs any recorder failure and never lets it fail the primary operation.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Protocol

from sqlalchemy.orm import Session

from safework.core.transition import AuditEntry
from safework.db.models.audit import AuditLog, AuditSeverity

logger = logging.getLogger(__name__)


def audit_severity(payload: Dict[str, Any]) -> AuditSeverity:
    """Rejections and stop-work outcomes are flagged for review."""
    if payload.get("overallAssessment") == "stop_work" or payload.get("decision") == "reject":
        return AuditSeverity.WARNING
    return AuditSeverity.INFO


class AuditRecorder(Protocol):
    def record(
        self,
        org_id: str,
        subject_id: str,
        actor_id: str,
        action: str,
        payload: Dict[str, Any],
    ) -> None: ...


class SQLAlchemyAuditRecorder:
    """Writes immutable ``audit_logs`` rows."""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def record(
        self,
        org_id: str,
        subject_id: str,
        actor_id: str,
        action: str,
        payload: Dict[str, Any],
    ) -> None:
        severity = audit_severity(payload or {})
        with self.session_factory() as session, session.begin():
            session.add(AuditLog.create_entry(
                org_id,
                subject_id,
                action,
                actor_id=actor_id,
                payload=payload,
                severity=severity,
            ))


class LoggingAuditRecorder:
    """Writes audit entries to the application log only."""

    def __init__(self, logger_name: str = "safework.audit"):
        self.logger = logging.getLogger(logger_name)

    def record(
        self,
        org_id: str,
        subject_id: str,
        actor_id: str,
        action: str,
        payload: Dict[str, Any],
    ) -> None:
        self.logger.info(
            "audit org=%s subject=%s actor=%s action=%s payload=%s",
            org_id, subject_id, actor_id, action, payload,
        )


class InMemoryAuditRecorder:
    """Keeps entries in a list; handy for tests and local runs."""

    def __init__(self):
        self.entries: List[AuditEntry] = []

    def record(
        self,
        org_id: str,
        subject_id: str,
        actor_id: str,
        action: str,
        payload: Dict[str, Any],
    ) -> None:
        self.entries.append(AuditEntry(org_id, subject_id, actor_id, action, dict(payload)))

    def actions(self) -> List[str]:
        return [e.action for e in self.entries]


def record_safely(recorder: Optional[AuditRecorder], entry: Optional[AuditEntry]) -> bool:
    """Record an audit entry; log and swallow any recorder failure."""
    if recorder is None or entry is None:
        return False
    try:
        recorder.record(
            entry.organization_id,
            entry.subject_id,
            entry.actor_id,
            entry.action,
            entry.payload,
        )
        return True
    except Exception:
        logger.exception(
            "Failed to record audit entry %s for %s", entry.action, entry.subject_id
        )
        return False
